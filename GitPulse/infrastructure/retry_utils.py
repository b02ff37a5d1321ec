"""
Retry utilities with exponential backoff, run cancellation and rate limit tracking.
"""

import logging
import random
import threading
import time
from datetime import datetime, timezone
from typing import Callable, Optional, TypeVar

from infrastructure.errors import (
    AnalysisCancelledError,
    GitHubAPIError,
    RetriesExhaustedError,
    RetryableStatusError,
    TransportError,
)

logger = logging.getLogger(__name__)

T = TypeVar('T')


class CancellationToken:
    """
    Run-level cancellation signal with an optional deadline.

    Shared by every adapter call of one analysis run. Cancelling it aborts
    pending backoff sleeps and makes the next attempt fail fast.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            timeout: Seconds until the run deadline (None for no deadline)
            clock: Monotonic clock, injectable for tests
        """
        self._event = threading.Event()
        self._clock = clock
        self._deadline = clock() + timeout if timeout is not None else None

    def cancel(self):
        """Signal cancellation to every holder of this token."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and self._clock() >= self._deadline

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without a deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    def raise_if_cancelled(self):
        if self.cancelled:
            raise AnalysisCancelledError("Analysis run was cancelled")

    def sleep(self, seconds: float):
        """Sleep up to ``seconds``, waking early on cancellation."""
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        self._event.wait(max(0.0, seconds))
        self.raise_if_cancelled()


def is_transient(error: Exception) -> bool:
    """Transport failures and retryable statuses are retried in place."""
    return isinstance(error, (TransportError, RetryableStatusError))


def server_retry_after(error: Exception) -> Optional[float]:
    """Extract a server-suggested delay in seconds, if any."""
    return getattr(error, "retry_after", None)


class RetryPolicy:
    """
    Exponential backoff shared by the REST and GraphQL fetchers.

    Delay for attempt ``n`` (0-based) is ``base_delay * 2**n`` plus uniform
    jitter up to ``max_jitter``. A positive server-provided delay replaces
    the computed one.
    """

    def __init__(
        self,
        max_retries: int = 2,
        base_delay: float = 0.25,
        max_jitter: float = 0.15,
        exponential_base: float = 2.0,
        is_retryable: Callable[[Exception], bool] = is_transient,
        retry_after: Callable[[Exception], Optional[float]] = server_retry_after,
        sleep: Optional[Callable[[float], None]] = None,
        jitter: Optional[Callable[[], float]] = None,
    ):
        """
        Args:
            max_retries: Retries after the first attempt (2 => 3 attempts)
            base_delay: Initial delay in seconds
            max_jitter: Upper bound of the random jitter in seconds
            exponential_base: Multiplier for exponential growth
            is_retryable: Predicate deciding whether a failure is retried
            retry_after: Accessor for a server-suggested delay
            sleep: Sleep function override (tests)
            jitter: Jitter source override (tests)
        """
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_jitter = max_jitter
        self.exponential_base = exponential_base
        self.is_retryable = is_retryable
        self.retry_after = retry_after
        self._sleep = sleep
        self._jitter = jitter or (lambda: random.uniform(0, self.max_jitter))

    def compute_delay(self, attempt: int, error: Exception) -> float:
        suggested = self.retry_after(error)
        if suggested is not None and suggested > 0:
            return float(suggested)
        return self.base_delay * (self.exponential_base ** attempt) + self._jitter()

    def _wait(self, delay: float, cancel: Optional[CancellationToken]):
        if self._sleep is not None:
            self._sleep(delay)
            if cancel is not None:
                cancel.raise_if_cancelled()
        elif cancel is not None:
            cancel.sleep(delay)
        else:
            time.sleep(delay)

    def call(
        self,
        operation: Callable[[], T],
        cancel: Optional[CancellationToken] = None,
        description: str = "request",
    ) -> T:
        """
        Run ``operation`` until it succeeds, fails fatally, or the budget runs out.

        Raises:
            RetriesExhaustedError: If every attempt failed with a retryable error
            GitHubAPIError: Non-retryable failures, unchanged
            AnalysisCancelledError: If ``cancel`` fires
        """
        attempts = self.max_retries + 1

        for attempt in range(attempts):
            if cancel is not None:
                cancel.raise_if_cancelled()
            try:
                return operation()
            except GitHubAPIError as e:
                if not self.is_retryable(e):
                    raise
                if attempt == self.max_retries:
                    logger.error(
                        f"Max retries ({self.max_retries}) reached for {description}"
                    )
                    raise RetriesExhaustedError(attempts, e) from e

                delay = self.compute_delay(attempt, e)
                reason = "timed out" if getattr(e, "timed_out", False) else str(e)
                logger.warning(
                    f"Attempt {attempt + 1}/{attempts} failed for "
                    f"{description}: {reason}. Retrying in {delay:.2f}s..."
                )
                self._wait(delay, cancel)

        # Unreachable: the loop either returns or raises
        raise AssertionError("retry loop exited without a result")


class RateLimiter:
    """
    Tracks GitHub rate limit headers for one client.
    Injected into the HTTP adapter so concurrent runs can own separate instances.
    """

    def __init__(self, low_water_mark: int = 100, max_wait: float = 60.0):
        """
        Args:
            low_water_mark: Remaining budget below which calls are throttled
            max_wait: Longest pause taken before a call, in seconds
        """
        self.low_water_mark = low_water_mark
        self.max_wait = max_wait
        self.requests_made = 0
        self.remaining: Optional[int] = None
        self.last_reset_at: Optional[datetime] = None
        self._lock = threading.Lock()

    def record_request(self):
        """Record that a request was made."""
        with self._lock:
            self.requests_made += 1

    def update_from_headers(self, remaining: int, reset_at: Optional[datetime]):
        """
        Update rate limiter state from API response headers.

        Args:
            remaining: Remaining requests
            reset_at: When the rate limit resets
        """
        with self._lock:
            self.remaining = remaining
            self.last_reset_at = reset_at

        if remaining < 500:
            logger.info(f"Rate limit status: {remaining} requests remaining")

    def wait_if_needed(self, cancel: Optional[CancellationToken] = None):
        """Pause before a call when the remaining budget is nearly spent."""
        with self._lock:
            remaining = self.remaining
            reset_at = self.last_reset_at

        if remaining is None or remaining >= self.low_water_mark or not reset_at:
            return

        wait_time = (reset_at - datetime.now(timezone.utc)).total_seconds()
        if wait_time <= 0:
            return

        wait_time = min(wait_time, self.max_wait)
        logger.warning(
            f"Approaching rate limit ({remaining} remaining). "
            f"Waiting {wait_time:.1f}s"
        )
        if cancel is not None:
            cancel.sleep(wait_time)
        else:
            time.sleep(wait_time)
