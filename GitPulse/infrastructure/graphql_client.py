"""
GitHub GraphQL API client for contribution calendars and count-only searches.
"""

import logging
from datetime import date, datetime
from typing import Any, Optional

from core.entities import ContributionWindow
from infrastructure.errors import MalformedResponseError, QueryError
from infrastructure.http_adapter import HttpAdapter
from infrastructure.retry_utils import CancellationToken, RetryPolicy

logger = logging.getLogger(__name__)


def _iso(moment: datetime) -> str:
    return moment.isoformat().replace("+00:00", "Z")


class GitHubGraphQLClient:
    """
    Client for GitHub's GraphQL API.
    Query-level errors are surfaced as ``QueryError`` and never retried.
    """

    GRAPHQL_ENDPOINT = "https://api.github.com/graphql"

    # contributionsCollection accepts at most one year per query
    CONTRIBUTIONS_QUERY = """
    query UserContributions($login: String!, $from: DateTime!, $to: DateTime!) {
      user(login: $login) {
        contributionsCollection(from: $from, to: $to) {
          totalCommitContributions
          totalIssueContributions
          totalPullRequestReviewContributions
          contributionCalendar {
            weeks {
              contributionDays {
                contributionCount
                date
              }
            }
          }
        }
      }
    }
    """

    SEARCH_COUNT_QUERY = """
    query SearchCount($query: String!) {
      search(query: $query, type: ISSUE, first: 0) {
        issueCount
      }
    }
    """

    def __init__(
        self,
        adapter: HttpAdapter,
        endpoint: Optional[str] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        """
        Initialize GraphQL client.

        Args:
            adapter: HTTP adapter carrying the credentials
            endpoint: GraphQL endpoint URL
            retry_policy: Backoff policy for transport and status failures
        """
        self.adapter = adapter
        self.endpoint = endpoint or self.GRAPHQL_ENDPOINT
        self.retry_policy = retry_policy or RetryPolicy()

    def _post(self, query: str, variables: dict, cancel: Optional[CancellationToken]) -> Any:
        return self.adapter.request(
            "POST",
            self.endpoint,
            json={"query": query, "variables": variables},
            cancel=cancel,
        )

    def execute(
        self,
        query: str,
        variables: dict,
        cancel: Optional[CancellationToken] = None,
    ) -> dict:
        """
        Execute a GraphQL query with retry logic.

        Args:
            query: GraphQL query string
            variables: Query variables

        Returns:
            The ``data`` member of the response envelope

        Raises:
            QueryError: If the response carries errors
            MalformedResponseError: If ``data`` is missing
        """
        envelope = self.retry_policy.call(
            lambda: self._post(query, variables, cancel),
            cancel=cancel,
            description="GraphQL query",
        )

        if not isinstance(envelope, dict):
            raise MalformedResponseError("GraphQL response is not an object")

        errors = envelope.get("errors")
        if errors:
            first = errors[0]
            message = first.get("message", "") if isinstance(first, dict) else str(first)
            logger.error(f"GraphQL errors: {message}")
            raise QueryError(message)

        data = envelope.get("data")
        if not data:
            raise MalformedResponseError("GraphQL response has no data")
        return data

    def fetch_contributions(
        self,
        login: str,
        start: datetime,
        end: datetime,
        cancel: Optional[CancellationToken] = None,
    ) -> ContributionWindow:
        """
        Contribution totals and weekly calendar for one (<= 1 year) range.
        """
        data = self.execute(
            self.CONTRIBUTIONS_QUERY,
            {"login": login, "from": _iso(start), "to": _iso(end)},
            cancel=cancel,
        )

        try:
            collection = data["user"]["contributionsCollection"]
            weeks = collection["contributionCalendar"]["weeks"]
            # Calendar weeks start on Sunday; regroup the days by ISO week
            active_week_keys = frozenset(
                tuple(date.fromisoformat(day["date"]).isocalendar())[:2]
                for week in weeks
                for day in week["contributionDays"]
                if day["contributionCount"] > 0
            )
            return ContributionWindow(
                commits=collection["totalCommitContributions"],
                issues=collection["totalIssueContributions"],
                reviews=collection["totalPullRequestReviewContributions"],
                active_week_keys=active_week_keys,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedResponseError(
                f"Unexpected contributionsCollection shape for {login}: {e}"
            ) from e

    def count_issues(
        self, search_query: str, cancel: Optional[CancellationToken] = None
    ) -> int:
        """
        Count issues or pull requests matching a search query.

        Args:
            search_query: GitHub search syntax, e.g. ``author:octocat is:pr``
        """
        data = self.execute(
            self.SEARCH_COUNT_QUERY, {"query": search_query}, cancel=cancel
        )
        try:
            return int(data["search"]["issueCount"])
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedResponseError(
                f"Unexpected search response for {search_query!r}: {e}"
            ) from e
