"""
Tests for the domain entities.
"""

import pytest
from datetime import datetime, timezone

from core.entities import (
    AnalysisRequest,
    ContributionResult,
    ContributionSource,
    ContributionSummary,
    ContributionWindow,
    EventKind,
    LanguageStat,
    RepositoryRecord,
    ReportMetrics,
)


class TestRepositoryRecord:
    """Test RepositoryRecord entity."""

    def test_valid_repository(self):
        """Test creating a valid repository."""
        repo = RepositoryRecord(
            repo_id=12345,
            owner="testuser",
            name="test-repo",
            full_name="testuser/test-repo",
            stars=100,
        )

        assert repo.repo_id == 12345
        assert repo.full_name == "testuser/test-repo"
        assert repo.private is False
        assert repo.fork is False

    def test_invalid_repo_id(self):
        """Test that invalid repo_id raises error."""
        with pytest.raises(ValueError, match="repo_id must be positive"):
            RepositoryRecord(repo_id=-1, owner="u", name="r", full_name="u/r")

    def test_negative_stars(self):
        """Test that negative stars raises error."""
        with pytest.raises(ValueError, match="stars cannot be negative"):
            RepositoryRecord(
                repo_id=1, owner="u", name="r", full_name="u/r", stars=-10
            )

    def test_empty_name(self):
        """Test that empty name raises error."""
        with pytest.raises(ValueError, match="name and owner are required"):
            RepositoryRecord(repo_id=1, owner="u", name="", full_name="u/")

    def test_is_immutable(self):
        repo = RepositoryRecord(repo_id=1, owner="u", name="r", full_name="u/r")
        with pytest.raises(AttributeError):
            repo.stars = 5


class TestEventKind:
    """Test mapping of GitHub event types."""

    @pytest.mark.parametrize("github_type,kind", [
        ("PushEvent", EventKind.PUSH),
        ("PullRequestEvent", EventKind.PULL_REQUEST),
        ("IssuesEvent", EventKind.ISSUE),
        ("PullRequestReviewEvent", EventKind.PULL_REQUEST_REVIEW),
        ("WatchEvent", EventKind.OTHER),
        (None, EventKind.OTHER),
    ])
    def test_from_github_type(self, github_type, kind):
        assert EventKind.from_github_type(github_type) is kind


class TestContributionSummary:
    """Test ContributionSummary invariants."""

    def test_defaults(self):
        summary = ContributionSummary()
        assert summary.active_weeks == 0
        assert summary.total_weeks == 1

    def test_active_weeks_cannot_exceed_total(self):
        with pytest.raises(ValueError, match="active_weeks cannot exceed"):
            ContributionSummary(active_weeks=5, total_weeks=4)

    def test_negative_counts_rejected(self):
        with pytest.raises(ValueError, match="cannot be negative"):
            ContributionSummary(total_commits=-1)

    def test_total_weeks_at_least_one(self):
        with pytest.raises(ValueError, match="total_weeks"):
            ContributionSummary(total_weeks=0)

    def test_to_dict_uses_report_keys(self):
        summary = ContributionSummary(
            total_commits=12, total_prs=3, merged_prs=2, issues_opened=1,
            issues_closed=1, reviews_given=4, active_weeks=5, total_weeks=10,
        )
        assert summary.to_dict() == {
            "totalCommits": 12,
            "totalPRs": 3,
            "mergedPRs": 2,
            "issuesOpened": 1,
            "issuesClosed": 1,
            "reviewsGiven": 4,
            "activeWeeks": 5,
            "totalWeeks": 10,
        }


class TestContributionResult:
    """Test the tagged contribution result."""

    def test_authoritative(self):
        result = ContributionResult.authoritative(ContributionSummary())
        assert result.source is ContributionSource.AUTHORITATIVE
        assert result.is_authoritative

    def test_estimated(self):
        result = ContributionResult.estimated(ContributionSummary())
        assert result.source is ContributionSource.ESTIMATED
        assert not result.is_authoritative


class TestContributionWindow:
    def test_active_weeks_counts_distinct_iso_weeks(self):
        window = ContributionWindow(
            commits=1, issues=0, reviews=0,
            active_week_keys=frozenset({(2023, 52), (2024, 1), (2024, 22)}),
        )
        assert window.active_weeks == 3

    def test_defaults_to_no_active_weeks(self):
        assert ContributionWindow(commits=0, issues=0, reviews=0).active_weeks == 0


class TestAnalysisRequest:
    """Test AnalysisRequest validation."""

    def test_valid_request(self):
        request = AnalysisRequest(
            username="alice",
            time_window_months=24,
            included_repo_full_names=("alice/app", "org/lib.py"),
            max_repos=10,
        )
        assert request.time_window_months == 24

    @pytest.mark.parametrize("months", [0, 6, 18, 48])
    def test_unsupported_window(self, months):
        with pytest.raises(ValueError, match="time_window_months"):
            AnalysisRequest(username="alice", time_window_months=months)

    @pytest.mark.parametrize("max_repos", [0, 51, -3])
    def test_max_repos_bounds(self, max_repos):
        with pytest.raises(ValueError, match="max_repos"):
            AnalysisRequest(username="alice", max_repos=max_repos)

    @pytest.mark.parametrize("full_name", [
        "no-slash",
        "too/many/slashes",
        "spaces in/name",
        "owner/" + "x" * 200,
    ])
    def test_invalid_repo_names(self, full_name):
        with pytest.raises(ValueError, match="invalid repository name"):
            AnalysisRequest(username="alice", included_repo_full_names=(full_name,))

    def test_too_many_repos(self):
        names = tuple(f"alice/repo{i}" for i in range(201))
        with pytest.raises(ValueError, match="at most 200"):
            AnalysisRequest(username="alice", included_repo_full_names=names)

    def test_blank_username(self):
        with pytest.raises(ValueError, match="username is required"):
            AnalysisRequest(username="  ")


class TestReportMetrics:
    """Test ReportMetrics serialization."""

    def test_to_dict(self):
        metrics = ReportMetrics(
            consistency_index=50,
            recency_score=70,
            ownership_score=80,
            collaboration_index=88.0,
            total_repos=4,
            active_repos=2,
            primary_languages=(LanguageStat("Python", 75, "#3572A5"),),
            contribution_summary=ContributionSummary(total_weeks=12),
            top_repositories=(),
            private_repo_count=3,
        )

        data = metrics.to_dict()

        assert data["consistencyIndex"] == 50
        assert data["collaborationIndex"] == 88
        assert isinstance(data["collaborationIndex"], int)
        assert data["primaryLanguages"] == [
            {"language": "Python", "percentage": 75, "color": "#3572A5"}
        ]
        assert data["contributionSummary"]["totalWeeks"] == 12
        assert data["topRepositories"] == []
        assert data["privateRepoCount"] == 3

    def test_fractional_collaboration_index_kept(self):
        metrics = ReportMetrics(
            consistency_index=0,
            recency_score=0,
            ownership_score=0,
            collaboration_index=62.35,
            total_repos=0,
            active_repos=0,
            primary_languages=(),
            contribution_summary=ContributionSummary(),
            top_repositories=(),
        )

        assert metrics.to_dict()["collaborationIndex"] == 62.35
