"""
Core domain entities for GitPulse.
These are immutable value objects owned by the analysis run that produced them.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional

SUPPORTED_WINDOWS = (12, 24, 36)
MAX_REPO_NAME_LENGTH = 200
MAX_INCLUDED_REPOS = 200
REPO_FULL_NAME_RE = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")


def _json_number(value: float):
    """Whole floats serialize as integers, so 88.0 renders as 88."""
    return int(value) if float(value).is_integer() else value


@dataclass(frozen=True)
class RepositoryRecord:
    """
    A repository as returned by the listing endpoint.
    """
    repo_id: int
    owner: str
    name: str
    full_name: str
    private: bool = False
    fork: bool = False
    language: Optional[str] = None
    size: Optional[int] = None
    stars: int = 0
    pushed_at: Optional[datetime] = None
    description: Optional[str] = None

    def __post_init__(self):
        """Validate repository data."""
        if self.repo_id <= 0:
            raise ValueError("repo_id must be positive")
        if self.stars < 0:
            raise ValueError("stars cannot be negative")
        if not self.name or not self.owner:
            raise ValueError("name and owner are required")


class EventKind(str, Enum):
    PUSH = "push"
    PULL_REQUEST = "pull-request"
    ISSUE = "issue"
    PULL_REQUEST_REVIEW = "pull-request-review"
    OTHER = "other"

    @classmethod
    def from_github_type(cls, event_type: Optional[str]) -> "EventKind":
        return _EVENT_TYPES.get(event_type or "", cls.OTHER)


_EVENT_TYPES = {
    "PushEvent": EventKind.PUSH,
    "PullRequestEvent": EventKind.PULL_REQUEST,
    "IssuesEvent": EventKind.ISSUE,
    "PullRequestReviewEvent": EventKind.PULL_REQUEST_REVIEW,
}


@dataclass(frozen=True)
class ActivityEvent:
    """
    One entry of a user's public event timeline.

    The payload is kept opaque; only the timeline fallback reads it.
    """
    event_id: str
    kind: EventKind
    created_at: datetime
    repo_name: Optional[str] = None
    payload: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ContributionSummary:
    """Aggregate contribution counts over the analysis window."""
    total_commits: int = 0
    total_prs: int = 0
    merged_prs: int = 0
    issues_opened: int = 0
    issues_closed: int = 0
    reviews_given: int = 0
    active_weeks: int = 0
    total_weeks: int = 1

    def __post_init__(self):
        counts = (
            self.total_commits, self.total_prs, self.merged_prs,
            self.issues_opened, self.issues_closed, self.reviews_given,
            self.active_weeks,
        )
        if any(count < 0 for count in counts):
            raise ValueError("contribution counts cannot be negative")
        if self.total_weeks < 1:
            raise ValueError("total_weeks must be at least 1")
        if self.active_weeks > self.total_weeks:
            raise ValueError("active_weeks cannot exceed total_weeks")

    def to_dict(self) -> dict:
        return {
            "totalCommits": self.total_commits,
            "totalPRs": self.total_prs,
            "mergedPRs": self.merged_prs,
            "issuesOpened": self.issues_opened,
            "issuesClosed": self.issues_closed,
            "reviewsGiven": self.reviews_given,
            "activeWeeks": self.active_weeks,
            "totalWeeks": self.total_weeks,
        }


class ContributionSource(str, Enum):
    """Where a contribution summary came from."""
    AUTHORITATIVE = "authoritative"
    ESTIMATED = "estimated"


@dataclass(frozen=True)
class ContributionResult:
    """
    Contribution summary tagged with its source: the GraphQL contribution
    calendar and search counts (authoritative) or the event timeline
    (estimated).
    """
    source: ContributionSource
    summary: ContributionSummary

    @property
    def is_authoritative(self) -> bool:
        return self.source is ContributionSource.AUTHORITATIVE

    @classmethod
    def authoritative(cls, summary: ContributionSummary) -> "ContributionResult":
        return cls(ContributionSource.AUTHORITATIVE, summary)

    @classmethod
    def estimated(cls, summary: ContributionSummary) -> "ContributionResult":
        return cls(ContributionSource.ESTIMATED, summary)


@dataclass(frozen=True)
class ContributionWindow:
    """Totals returned by one contributionsCollection query."""
    commits: int
    issues: int
    reviews: int
    # ISO (year, week) of every calendar day with at least one contribution
    active_week_keys: frozenset[tuple[int, int]] = frozenset()

    @property
    def active_weeks(self) -> int:
        return len(self.active_week_keys)


@dataclass(frozen=True)
class LanguageStat:
    language: str
    percentage: int
    color: str

    def to_dict(self) -> dict:
        return {
            "language": self.language,
            "percentage": self.percentage,
            "color": self.color,
        }


@dataclass(frozen=True)
class RepositorySummary:
    """
    Enriched view of one of the most recently pushed repositories.

    ``commits``, ``prs`` and ``ownership_percentage`` are synthetic estimates
    seeded only by the ownership role. They are not derived from commit
    attribution and must not be presented as verified figures.
    """
    name: str
    full_name: str
    role: str
    languages: tuple[str, ...]
    commits: int
    prs: int
    ownership_percentage: int
    stars: int
    description: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "fullName": self.full_name,
            "role": self.role,
            "languages": list(self.languages),
            "commits": self.commits,
            "prs": self.prs,
            "ownershipPercentage": self.ownership_percentage,
            "stars": self.stars,
            "description": self.description,
        }


@dataclass(frozen=True)
class ReportMetrics:
    """
    Terminal aggregate of one analysis run.
    This is the only artifact handed to rendering and persistence.
    """
    consistency_index: int
    recency_score: int
    ownership_score: int
    collaboration_index: float
    total_repos: int
    active_repos: int
    primary_languages: tuple[LanguageStat, ...]
    contribution_summary: ContributionSummary
    top_repositories: tuple[RepositorySummary, ...]
    private_repo_count: Optional[int] = None
    time_window_months: int = 12
    contribution_source: ContributionSource = ContributionSource.ESTIMATED

    def to_dict(self) -> dict:
        return {
            "consistencyIndex": self.consistency_index,
            "recencyScore": self.recency_score,
            "ownershipScore": self.ownership_score,
            "collaborationIndex": _json_number(self.collaboration_index),
            "totalRepos": self.total_repos,
            "activeRepos": self.active_repos,
            "primaryLanguages": [l.to_dict() for l in self.primary_languages],
            "contributionSummary": self.contribution_summary.to_dict(),
            "topRepositories": [r.to_dict() for r in self.top_repositories],
            "privateRepoCount": self.private_repo_count,
        }


@dataclass(frozen=True)
class AnalysisRequest:
    """
    Validated input for one analysis run.
    """
    username: str
    time_window_months: int = 12
    included_repo_full_names: tuple[str, ...] = ()
    max_repos: Optional[int] = None
    include_private_repo_count: bool = False

    def __post_init__(self):
        """Validate request parameters."""
        if not self.username or not self.username.strip():
            raise ValueError("username is required")
        if self.time_window_months not in SUPPORTED_WINDOWS:
            raise ValueError(
                f"time_window_months must be one of {SUPPORTED_WINDOWS}"
            )
        if self.max_repos is not None and not 1 <= self.max_repos <= 50:
            raise ValueError("max_repos must be between 1 and 50")
        if len(self.included_repo_full_names) > MAX_INCLUDED_REPOS:
            raise ValueError(
                f"at most {MAX_INCLUDED_REPOS} repositories can be included"
            )
        for full_name in self.included_repo_full_names:
            if (
                len(full_name) > MAX_REPO_NAME_LENGTH
                or not REPO_FULL_NAME_RE.match(full_name)
            ):
                raise ValueError(f"invalid repository name: {full_name!r}")
