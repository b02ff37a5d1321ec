"""
GitHub REST API client with pagination and retry support.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from core.entities import ActivityEvent, EventKind, RepositoryRecord
from infrastructure.errors import MalformedResponseError
from infrastructure.http_adapter import HttpAdapter
from infrastructure.retry_utils import CancellationToken, RetryPolicy

logger = logging.getLogger(__name__)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse GitHub's ISO-8601 timestamps (``2024-05-01T10:00:00Z``)."""
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def parse_repository(node: dict) -> RepositoryRecord:
    try:
        return RepositoryRecord(
            repo_id=node["id"],
            owner=node["owner"]["login"],
            name=node["name"],
            full_name=node["full_name"],
            private=bool(node.get("private", False)),
            fork=bool(node.get("fork", False)),
            language=node.get("language"),
            size=node.get("size"),
            stars=node.get("stargazers_count") or 0,
            pushed_at=parse_timestamp(node.get("pushed_at")),
            description=node.get("description"),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedResponseError(f"Unexpected repository shape: {e}") from e


def parse_event(node: dict) -> ActivityEvent:
    try:
        created_at = parse_timestamp(node["created_at"])
        if created_at is None:
            raise ValueError("created_at is empty")
        return ActivityEvent(
            event_id=str(node["id"]),
            kind=EventKind.from_github_type(node.get("type")),
            created_at=created_at,
            repo_name=(node.get("repo") or {}).get("name"),
            payload=node.get("payload") or {},
        )
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedResponseError(f"Unexpected event shape: {e}") from e


class GitHubClient:
    """
    Client for GitHub's REST API.
    Drives the HTTP adapter across paginated listing endpoints.
    """

    PAGE_SIZE = 100
    REPO_PAGE_LIMIT = 5
    EVENT_PAGE_LIMIT = 3

    def __init__(
        self,
        adapter: HttpAdapter,
        api_url: str = "https://api.github.com",
        retry_policy: Optional[RetryPolicy] = None,
    ):
        """
        Initialize GitHub client.

        Args:
            adapter: HTTP adapter carrying the credentials
            api_url: REST API base URL
            retry_policy: Backoff policy applied to every call
        """
        self.adapter = adapter
        self.api_url = api_url.rstrip("/")
        self.retry_policy = retry_policy or RetryPolicy()

    def _get(
        self,
        endpoint: str,
        params: Optional[dict] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> Any:
        url = f"{self.api_url}{endpoint}"
        return self.retry_policy.call(
            lambda: self.adapter.request("GET", url, params=params, cancel=cancel),
            cancel=cancel,
            description=f"GET {endpoint}",
        )

    def fetch_all_pages(
        self,
        endpoint: str,
        params: Optional[dict] = None,
        max_pages: int = 5,
        cancel: Optional[CancellationToken] = None,
    ) -> list:
        """
        Fetch a listing endpoint page by page.

        Stops on an empty page, a short page, or after ``max_pages``. Any
        failure aborts the whole fetch.

        Args:
            endpoint: Path below the API base URL
            params: Extra query parameters
            max_pages: Page ceiling

        Returns:
            Concatenated items of every page, in page order
        """
        results: list = []

        for page in range(1, max_pages + 1):
            page_params = dict(params or {})
            page_params.update({"page": str(page), "per_page": str(self.PAGE_SIZE)})

            data = self._get(endpoint, page_params, cancel)

            if not isinstance(data, list) or not data:
                break
            results.extend(data)
            if len(data) < self.PAGE_SIZE:
                break

        logger.info(f"Fetched {len(results)} items from {endpoint}")
        return results

    def list_user_repos(
        self, cancel: Optional[CancellationToken] = None
    ) -> list[RepositoryRecord]:
        """
        List the authenticated user's public repositories, most recently pushed first.
        """
        nodes = self.fetch_all_pages(
            "/user/repos",
            {"sort": "pushed", "direction": "desc", "type": "public"},
            max_pages=self.REPO_PAGE_LIMIT,
            cancel=cancel,
        )
        return [parse_repository(node) for node in nodes]

    def list_user_events(
        self, username: str, cancel: Optional[CancellationToken] = None
    ) -> list[ActivityEvent]:
        """List a user's public event timeline (newest first)."""
        nodes = self.fetch_all_pages(
            f"/users/{username}/events",
            max_pages=self.EVENT_PAGE_LIMIT,
            cancel=cancel,
        )
        return [parse_event(node) for node in nodes]

    def get_repo_languages(
        self, full_name: str, cancel: Optional[CancellationToken] = None
    ) -> dict[str, int]:
        """Language name to byte count for one repository."""
        data = self._get(f"/repos/{full_name}/languages", cancel=cancel)
        if not isinstance(data, dict):
            raise MalformedResponseError(
                f"Expected a language map for {full_name}"
            )
        return data

    def get_authenticated_user(
        self, cancel: Optional[CancellationToken] = None
    ) -> dict:
        data = self._get("/user", cancel=cancel)
        if not isinstance(data, dict):
            raise MalformedResponseError("Expected a user object from /user")
        return data
