"""
Contribution reconciliation.

Builds one ContributionSummary per run from the GraphQL contribution
calendar and search counts, falling back to the public event timeline when
the GraphQL path fails.
"""

import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional, Sequence

from core.entities import (
    ActivityEvent,
    ContributionResult,
    ContributionSummary,
    EventKind,
)
from infrastructure.errors import AnalysisCancelledError
from infrastructure.graphql_client import GitHubGraphQLClient
from infrastructure.retry_utils import CancellationToken

logger = logging.getLogger(__name__)

CHUNK_WEEKS = 52
MAX_SCOPED_REPOS = 20


def start_of_iso_week(moment: datetime) -> datetime:
    """Midnight of the Monday starting the ISO week containing ``moment``."""
    monday = moment - timedelta(days=moment.weekday())
    return monday.replace(hour=0, minute=0, second=0, microsecond=0)


def count_weeks(start: datetime, end: datetime) -> int:
    """Inclusive number of ISO weeks between two instants, at least 1."""
    span = start_of_iso_week(end) - start_of_iso_week(start)
    return max(1, span.days // 7 + 1)


def iter_chunks(start: datetime, end: datetime, weeks: int = CHUNK_WEEKS):
    """Yield consecutive ``(from, to)`` ranges of at most ``weeks`` weeks."""
    cursor = start
    while cursor < end:
        chunk_end = min(cursor + timedelta(weeks=weeks), end)
        yield cursor, chunk_end
        cursor = chunk_end


def summarize_events(
    events: Iterable[ActivityEvent],
    cutoff: datetime,
    now: datetime,
) -> ContributionSummary:
    """
    Approximate a ContributionSummary from the public event timeline.

    Push size is used as the commit count and active weeks are the distinct
    ISO ``(year, week)`` pairs of the events after ``cutoff``.
    """
    commits = prs = merged = opened = closed = reviews = 0
    weeks = set()
    earliest: Optional[datetime] = None

    for event in events:
        if event.created_at <= cutoff:
            continue
        payload = event.payload or {}
        action = payload.get("action")

        if event.kind is EventKind.PUSH:
            size = payload.get("size")
            if isinstance(size, int):
                commits += size
            else:
                commits += len(payload.get("commits") or [])
        elif event.kind is EventKind.PULL_REQUEST:
            if action in (None, "opened", "reopened"):
                prs += 1
            elif action == "closed" and (payload.get("pull_request") or {}).get("merged"):
                merged += 1
        elif event.kind is EventKind.ISSUE:
            if action == "opened":
                opened += 1
            elif action == "closed":
                closed += 1
        elif event.kind is EventKind.PULL_REQUEST_REVIEW:
            if action in (None, "created"):
                reviews += 1

        iso_year, iso_week, _ = event.created_at.isocalendar()
        weeks.add((iso_year, iso_week))
        if earliest is None or event.created_at < earliest:
            earliest = event.created_at

    anchor = max(earliest, cutoff) if earliest is not None else cutoff
    total_weeks = count_weeks(anchor, now)

    return ContributionSummary(
        total_commits=commits,
        total_prs=prs,
        merged_prs=merged,
        issues_opened=opened,
        issues_closed=closed,
        reviews_given=reviews,
        active_weeks=min(len(weeks), total_weeks),
        total_weeks=total_weeks,
    )


class ContributionReconciler:
    """
    Produces the run's ContributionSummary, preferring GraphQL data.
    """

    def __init__(self, graphql: GitHubGraphQLClient):
        """
        Args:
            graphql: GraphQL client used by the authoritative path
        """
        self.graphql = graphql

    def reconcile(
        self,
        username: str,
        cutoff: datetime,
        now: datetime,
        events: Sequence[ActivityEvent],
        included_repo_full_names: Sequence[str] = (),
        cancel: Optional[CancellationToken] = None,
    ) -> ContributionResult:
        """
        Compute the contribution summary for ``username`` since ``cutoff``.

        Any failure of the GraphQL path degrades to the event timeline
        estimate instead of failing the run. Cancellation still propagates.
        """
        try:
            summary = self._from_graphql(
                username, cutoff, now, included_repo_full_names, cancel
            )
            logger.info(f"Using contribution calendar for {username}")
            return ContributionResult.authoritative(summary)
        except AnalysisCancelledError:
            raise
        except Exception as e:
            logger.warning(
                f"Contribution calendar unavailable for {username} ({e}); "
                f"estimating from {len(events)} timeline events"
            )
            return ContributionResult.estimated(
                summarize_events(events, cutoff, now)
            )

    def _from_graphql(
        self,
        username: str,
        cutoff: datetime,
        now: datetime,
        included_repo_full_names: Sequence[str],
        cancel: Optional[CancellationToken],
    ) -> ContributionSummary:
        window_start = start_of_iso_week(cutoff)
        total_weeks = count_weeks(window_start, now)

        commits = issues = reviews = 0
        active_week_keys = set()
        for chunk_start, chunk_end in iter_chunks(window_start, now):
            window = self.graphql.fetch_contributions(
                username, chunk_start, chunk_end, cancel=cancel
            )
            commits += window.commits
            issues += window.issues
            reviews += window.reviews
            # an ISO week can straddle two chunks
            active_week_keys |= window.active_week_keys
        active_weeks = len(active_week_keys)

        date_range = f"{window_start.date().isoformat()}..{now.date().isoformat()}"
        total_prs = self._search_count(
            f"author:{username} is:pr created:{date_range}",
            included_repo_full_names, cancel,
        )
        merged_prs = self._search_count(
            f"author:{username} is:pr is:merged merged:{date_range}",
            included_repo_full_names, cancel,
        )
        issues_closed = self._search_count(
            f"author:{username} is:issue is:closed closed:{date_range}",
            included_repo_full_names, cancel,
        )

        return ContributionSummary(
            total_commits=commits,
            total_prs=total_prs,
            merged_prs=merged_prs,
            issues_opened=issues,
            issues_closed=issues_closed,
            reviews_given=reviews,
            active_weeks=min(active_weeks, total_weeks),
            total_weeks=total_weeks,
        )

    def _search_count(
        self,
        query: str,
        included_repo_full_names: Sequence[str],
        cancel: Optional[CancellationToken],
    ) -> int:
        if not included_repo_full_names:
            return self.graphql.count_issues(query, cancel=cancel)

        # One scoped query per repository keeps other repos out of the count
        return sum(
            self.graphql.count_issues(f"{query} repo:{full_name}", cancel=cancel)
            for full_name in included_repo_full_names[:MAX_SCOPED_REPOS]
        )
