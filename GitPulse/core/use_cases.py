"""
Business logic / use cases for analysing a user's GitHub activity.
This layer orchestrates the GitHub clients, the reconciler and the metric synthesis.
"""

import calendar
import logging
import random
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable, Optional

from core.entities import (
    AnalysisRequest,
    ContributionResult,
    RepositoryRecord,
    ReportMetrics,
)
from core.metrics import MetricsSynthesizer
from core.reconciler import ContributionReconciler, summarize_events
from core.repository_selector import (
    RepositoryEnricher,
    filter_analysis_universe,
    recent_repositories,
    select_repositories,
)
from infrastructure.errors import AnalysisError, GitHubAPIError
from infrastructure.github_client import GitHubClient
from infrastructure.retry_utils import CancellationToken

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def subtract_months(moment: datetime, months: int) -> datetime:
    """Same day-of-month ``months`` earlier, clamped to the month's last day."""
    month_index = moment.year * 12 + moment.month - 1 - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


class AnalyzeGitHubActivity:
    """
    Use case for turning a user's GitHub activity into ReportMetrics.
    Either returns a complete report or raises a single AnalysisError.
    """

    def __init__(
        self,
        github_client: GitHubClient,
        reconciler: ContributionReconciler,
        synthesizer: Optional[MetricsSynthesizer] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the use case.

        Args:
            github_client: GitHub REST client
            reconciler: Contribution reconciler (GraphQL with timeline fallback)
            synthesizer: Metric synthesizer
            rng: Random source for the per-repository placeholder estimates
            clock: Returns the current UTC time
        """
        self.github = github_client
        self.reconciler = reconciler
        self.synthesizer = synthesizer or MetricsSynthesizer()
        self.rng = rng or random.Random()
        self.clock = clock

    def execute(
        self,
        request: AnalysisRequest,
        cancel: Optional[CancellationToken] = None,
    ) -> ReportMetrics:
        """
        Execute the analysis.

        Args:
            request: Validated analysis parameters
            cancel: Run-level cancellation token

        Returns:
            Complete report metrics

        Raises:
            AnalysisError: If any GitHub call outside the reconciler fails
            AnalysisCancelledError: If the run was cancelled
        """
        cancel = cancel or CancellationToken()
        username = request.username

        try:
            return self._run(request, cancel)
        except GitHubAPIError as e:
            logger.error(f"Analysis failed for {username}: {e}", exc_info=True)
            raise AnalysisError(username, str(e)) from e

    def _run(self, request: AnalysisRequest, cancel: CancellationToken) -> ReportMetrics:
        username = request.username
        now = self.clock()
        cutoff = subtract_months(now, request.time_window_months)

        logger.info(
            f"Analysing {username} over {request.time_window_months} months "
            f"(since {cutoff.date().isoformat()})"
        )

        listing = self.github.list_user_repos(cancel=cancel)
        repos = select_repositories(
            listing, request.included_repo_full_names, request.max_repos
        )
        recent = recent_repositories(repos, cutoff)
        logger.info(
            f"{len(repos)} repositories in analysis set, {len(recent)} active"
        )

        timeline = self.github.list_user_events(username, cancel=cancel)
        events = [e for e in timeline if e.created_at > cutoff]
        allowed = set(request.included_repo_full_names)
        if allowed:
            events = [e for e in events if e.repo_name in allowed]

        enricher = RepositoryEnricher(self.github, username, self.rng)

        if not repos:
            # Nothing to attribute activity to; skip the GraphQL round trips
            contributions = ContributionResult.estimated(
                summarize_events(events, cutoff, now)
            )
            top_repositories = []
        else:
            contributions, top_repositories = self._reconcile_and_enrich(
                request, cutoff, now, events, recent, enricher, cancel
            )

        logger.info(
            f"Contribution summary for {username} is {contributions.source.value}"
        )

        private_repo_count = None
        if request.include_private_repo_count:
            private_repo_count = self._private_repo_count(cancel)

        return self.synthesizer.synthesize(
            repos=repos,
            recent_repos=recent,
            events=events,
            contributions=contributions,
            top_repositories=top_repositories,
            now=now,
            time_window_months=request.time_window_months,
            private_repo_count=private_repo_count,
        )

    def _reconcile_and_enrich(
        self, request, cutoff, now, events, recent, enricher, cancel
    ):
        with ThreadPoolExecutor(max_workers=1) as pool:
            future = pool.submit(
                self.reconciler.reconcile,
                request.username,
                cutoff,
                now,
                events,
                request.included_repo_full_names,
                cancel,
            )
            try:
                top_repositories = enricher.enrich(recent, cancel)
            except BaseException:
                cancel.cancel()
                raise
            try:
                contributions = future.result()
            except BaseException:
                cancel.cancel()
                raise
        return contributions, top_repositories

    def _private_repo_count(self, cancel: CancellationToken) -> Optional[int]:
        try:
            profile = self.github.get_authenticated_user(cancel=cancel)
        except GitHubAPIError as e:
            logger.warning(f"Could not read private repository count: {e}")
            return None
        count = profile.get("total_private_repos")
        return count if isinstance(count, int) else None


class ListPublicRepositories:
    """
    Use case for listing the repositories a user can pick for the allow-list.
    """

    def __init__(self, github_client: GitHubClient):
        self.github = github_client

    def execute(
        self, cancel: Optional[CancellationToken] = None
    ) -> list[RepositoryRecord]:
        """
        Returns:
            Public, non-fork repositories, most recently pushed first
        """
        return filter_analysis_universe(self.github.list_user_repos(cancel=cancel))
