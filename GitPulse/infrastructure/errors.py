"""
Failure taxonomy for calls made against the GitHub REST and GraphQL APIs.
"""

from typing import Optional


class GitHubAPIError(Exception):
    """Base class for every classified GitHub API failure."""

    kind = "github-error"


class TransportError(GitHubAPIError):
    """Connection failure or per-attempt timeout."""

    kind = "transport"

    def __init__(self, message: str, timed_out: bool = False):
        self.timed_out = timed_out
        super().__init__(message)


class RetryableStatusError(GitHubAPIError):
    """Transient HTTP status (408/409/429/5xx gateway errors)."""

    kind = "retryable-status"

    def __init__(self, status_code: int, retry_after: Optional[float] = None):
        self.status_code = status_code
        self.retry_after = retry_after
        super().__init__(f"GitHub API returned retryable status {status_code}")


class FatalStatusError(GitHubAPIError):
    """Any other non-2xx HTTP status."""

    kind = "fatal-status"

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"GitHub API error: {status_code}")


class QueryError(GitHubAPIError):
    """GraphQL rejected the query (non-empty ``errors`` array)."""

    kind = "query-error"


class MalformedResponseError(GitHubAPIError):
    """Response body could not be decoded or has the wrong shape."""

    kind = "malformed-response"


class RetriesExhaustedError(GitHubAPIError):
    """A retryable failure persisted through the whole retry budget."""

    kind = "retries-exhausted"

    def __init__(self, attempts: int, last_error: GitHubAPIError):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Giving up after {attempts} attempts: {last_error}"
        )


class AnalysisCancelledError(Exception):
    """Raised when the run-level cancellation token fires."""


class AnalysisError(Exception):
    """Single run-level failure surfaced to the caller of the engine."""

    def __init__(self, username: str, message: str):
        self.username = username
        super().__init__(f"Analysis failed for {username}: {message}")
