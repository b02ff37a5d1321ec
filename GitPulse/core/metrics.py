"""
Metric synthesis: turns the contribution summary and repository data into
the normalized 0-100 report scores.

Every function here is deterministic. Rounding is half-up, so 0.5 always
rounds away from zero for the non-negative values handled here.
"""

import math
from collections import defaultdict
from datetime import datetime
from typing import Iterable, Optional, Sequence

from core.entities import (
    ActivityEvent,
    ContributionResult,
    ContributionSummary,
    LanguageStat,
    RepositoryRecord,
    RepositorySummary,
    ReportMetrics,
)

MAX_LANGUAGES = 5

LANGUAGE_COLORS = {
    "TypeScript": "#3178c6",
    "JavaScript": "#f1e05a",
    "Python": "#3572A5",
    "Java": "#b07219",
    "C++": "#f34b7d",
    "C": "#555555",
    "C#": "#178600",
    "Go": "#00ADD8",
    "Rust": "#dea584",
    "Ruby": "#701516",
    "PHP": "#4F5D95",
    "Swift": "#F05138",
    "Kotlin": "#A97BFF",
    "Scala": "#c22d40",
    "HTML": "#e34c26",
    "CSS": "#563d7c",
    "Shell": "#89e051",
    "Vue": "#41b883",
    "Dart": "#00B4AB",
    "Other": "#6e7681",
}

# (max age in days, weight); older events weigh 0.1
RECENCY_WEIGHTS = ((30, 1.0), (60, 0.6), (90, 0.3))
STALE_WEIGHT = 0.1


def round_half_up(value: float, digits: int = 0) -> float:
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def calculate_language_stats(
    repos: Iterable[RepositoryRecord],
) -> list[LanguageStat]:
    """
    Share of each primary language, weighted by repository size.
    """
    weights: dict[str, float] = defaultdict(float)
    for repo in repos:
        if not repo.language:
            continue
        size = repo.size if repo.size and repo.size > 0 else 1
        weights[repo.language] += size

    total = sum(weights.values())
    if total <= 0:
        return []

    stats = [
        LanguageStat(
            language=language,
            percentage=int(round_half_up(weight / total * 100)),
            color=LANGUAGE_COLORS.get(language, LANGUAGE_COLORS["Other"]),
        )
        for language, weight in weights.items()
    ]
    stats.sort(key=lambda stat: stat.percentage, reverse=True)
    return stats[:MAX_LANGUAGES]


def calculate_consistency_index(active_weeks: int, total_weeks: int) -> int:
    if total_weeks <= 0:
        return 0
    return int(min(100, round_half_up(active_weeks / total_weeks * 100)))


def event_weight(event: ActivityEvent, now: datetime) -> float:
    days_ago = (now - event.created_at).total_seconds() / 86400
    for max_days, weight in RECENCY_WEIGHTS:
        if days_ago <= max_days:
            return weight
    return STALE_WEIGHT


def calculate_recency_score(
    events: Sequence[ActivityEvent], now: datetime
) -> int:
    if not events:
        return 0
    mean = sum(event_weight(event, now) for event in events) / len(events)
    return int(min(100, round_half_up(mean * 100)))


def calculate_ownership_score(repos: Sequence[RepositorySummary]) -> int:
    if not repos:
        return 0
    mean_ownership = sum(r.ownership_percentage for r in repos) / len(repos)
    owner_count = sum(1 for r in repos if r.role == "owner")
    owner_bonus = owner_count / len(repos) * 20
    return int(min(100, round_half_up(mean_ownership + owner_bonus)))


def calculate_collaboration_index(summary: ContributionSummary) -> float:
    """
    Merge rate, review volume and closed issues blended into 0-100.

    Unlike the other scores this keeps up to two decimal places.
    """
    merge_rate = summary.merged_prs / summary.total_prs if summary.total_prs > 0 else 0
    review_score = min(1, summary.reviews_given / 10)
    issue_score = min(1, summary.issues_closed / 5)
    raw = merge_rate * 40 + review_score * 30 + issue_score * 30
    return min(100, round_half_up(raw, 2))


class MetricsSynthesizer:
    """Assembles ReportMetrics from the outputs of one analysis run."""

    def synthesize(
        self,
        repos: Sequence[RepositoryRecord],
        recent_repos: Sequence[RepositoryRecord],
        events: Sequence[ActivityEvent],
        contributions: ContributionResult,
        top_repositories: Sequence[RepositorySummary],
        now: datetime,
        time_window_months: int = 12,
        private_repo_count: Optional[int] = None,
    ) -> ReportMetrics:
        """
        Args:
            repos: Analysis set (public, non-fork, allow-listed, capped)
            recent_repos: Subset pushed to inside the window
            events: Timeline events inside the window
            contributions: Reconciled contribution summary
            top_repositories: Enriched top repositories
            now: Reference instant for recency weights
        """
        summary = contributions.summary
        return ReportMetrics(
            consistency_index=calculate_consistency_index(
                summary.active_weeks, summary.total_weeks
            ),
            recency_score=calculate_recency_score(events, now),
            ownership_score=calculate_ownership_score(top_repositories),
            collaboration_index=calculate_collaboration_index(summary),
            total_repos=len(repos),
            active_repos=len(recent_repos),
            primary_languages=tuple(calculate_language_stats(repos)),
            contribution_summary=summary,
            top_repositories=tuple(top_repositories),
            private_repo_count=private_repo_count,
            time_window_months=time_window_months,
            contribution_source=contributions.source,
        )
