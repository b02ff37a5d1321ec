"""
Single-call HTTP adapter for the GitHub APIs.

Performs one request with a timeout and classifies the outcome. Retrying
is left to callers (see ``infrastructure.retry_utils.RetryPolicy``).
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Optional

import requests

from infrastructure.errors import (
    FatalStatusError,
    MalformedResponseError,
    RetryableStatusError,
    TransportError,
)
from infrastructure.retry_utils import CancellationToken, RateLimiter

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({408, 409, 429, 500, 502, 503, 504})


def _parse_retry_after(response: requests.Response) -> Optional[float]:
    """Server-suggested delay from ``Retry-After`` or the rate limit reset time."""
    retry_after = response.headers.get("Retry-After")
    if retry_after:
        try:
            return float(retry_after)
        except ValueError:
            return None

    if response.headers.get("X-RateLimit-Remaining") == "0":
        reset = response.headers.get("X-RateLimit-Reset")
        if reset and reset.isdigit():
            return max(0.0, int(reset) - time.time())

    return None


class HttpAdapter:
    """
    Thin wrapper over ``requests.Session`` that returns decoded JSON or raises
    a classified ``GitHubAPIError``.
    """

    def __init__(
        self,
        token: str,
        timeout: float = 15.0,
        rate_limiter: Optional[RateLimiter] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the adapter.

        Args:
            token: Bearer token sent with every request
            timeout: Per-attempt timeout in seconds
            rate_limiter: Shared rate limit tracker (a private one if omitted)
            session: Preconfigured session, mainly for tests
        """
        self.timeout = timeout
        self.rate_limiter = rate_limiter or RateLimiter()
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "gitpulse",
        })

    def _attempt_timeout(self, cancel: Optional[CancellationToken]) -> float:
        if cancel is None:
            return self.timeout
        remaining = cancel.remaining()
        if remaining is None:
            return self.timeout
        return max(0.001, min(self.timeout, remaining))

    def _track_rate_limit(self, response: requests.Response):
        remaining = response.headers.get("X-RateLimit-Remaining")
        reset = response.headers.get("X-RateLimit-Reset")
        if remaining is None or not remaining.isdigit():
            return
        reset_at = None
        if reset and reset.isdigit():
            reset_at = datetime.fromtimestamp(int(reset), tz=timezone.utc)
        self.rate_limiter.update_from_headers(int(remaining), reset_at)

    def request(
        self,
        method: str,
        url: str,
        params: Optional[dict] = None,
        json: Optional[dict] = None,
        headers: Optional[dict] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> Any:
        """
        Perform a single HTTP call.

        Returns:
            Decoded JSON body (None for an empty body)

        Raises:
            TransportError: Connection failure or timeout
            RetryableStatusError: 408/409/429/500/502/503/504
            FatalStatusError: Any other non-2xx status
            MalformedResponseError: 2xx body that is not valid JSON
            AnalysisCancelledError: If ``cancel`` already fired
        """
        if cancel is not None:
            cancel.raise_if_cancelled()

        self.rate_limiter.wait_if_needed(cancel)
        self.rate_limiter.record_request()

        try:
            response = self.session.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers,
                timeout=self._attempt_timeout(cancel),
            )
        except requests.Timeout as e:
            logger.debug(f"{method} {url} timed out")
            raise TransportError(f"Request to {url} timed out", timed_out=True) from e
        except requests.RequestException as e:
            raise TransportError(f"Request to {url} failed: {e}") from e

        self._track_rate_limit(response)

        status = response.status_code
        if status in RETRYABLE_STATUS_CODES:
            raise RetryableStatusError(status, _parse_retry_after(response))
        if not 200 <= status < 300:
            raise FatalStatusError(status, response.text[:600])

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"Could not decode JSON from {url}"
            ) from e
