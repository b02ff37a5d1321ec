"""
Tests for metric synthesis.
"""

import pytest
from datetime import timedelta

from core.entities import (
    ContributionResult,
    ContributionSource,
    ContributionSummary,
    RepositorySummary,
)
from core.metrics import (
    LANGUAGE_COLORS,
    MetricsSynthesizer,
    calculate_collaboration_index,
    calculate_consistency_index,
    calculate_language_stats,
    calculate_ownership_score,
    calculate_recency_score,
    round_half_up,
)


def summary_for(role, ownership):
    return RepositorySummary(
        name="r", full_name="alice/r", role=role, languages=(),
        commits=10, prs=1, ownership_percentage=ownership, stars=0,
    )


class TestRounding:
    def test_half_up(self):
        assert round_half_up(12.5) == 13
        assert round_half_up(0.5) == 1
        assert round_half_up(2.125, 2) == 2.13
        assert round(2.125, 2) == 2.12


class TestConsistencyIndex:
    """Test the consistency index."""

    def test_half_the_weeks(self):
        assert calculate_consistency_index(6, 12) == 50

    def test_rounds_half_up(self):
        assert calculate_consistency_index(1, 8) == 13

    def test_capped_at_100(self):
        assert calculate_consistency_index(12, 12) == 100

    def test_zero_weeks(self):
        assert calculate_consistency_index(0, 0) == 0


class TestRecencyScore:
    """Test the recency score."""

    def test_no_events(self, now):
        assert calculate_recency_score([], now) == 0

    def test_weights_by_age(self, make_event, now):
        events = [
            make_event("push", now - timedelta(days=days))
            for days in (10, 45, 75, 200)
        ]

        # (1.0 + 0.6 + 0.3 + 0.1) / 4
        assert calculate_recency_score(events, now) == 50

    def test_boundaries_are_inclusive(self, make_event, now):
        events = [make_event("push", now - timedelta(days=30))]
        assert calculate_recency_score(events, now) == 100

        events = [make_event("push", now - timedelta(days=60))]
        assert calculate_recency_score(events, now) == 60

        events = [make_event("push", now - timedelta(days=90))]
        assert calculate_recency_score(events, now) == 30

    def test_all_recent(self, make_event, now):
        events = [make_event("push", now - timedelta(hours=h)) for h in range(5)]
        assert calculate_recency_score(events, now) == 100


class TestOwnershipScore:
    """Test the ownership score."""

    def test_empty(self):
        assert calculate_ownership_score([]) == 0

    def test_mean_plus_owner_bonus(self):
        repos = [summary_for("owner", 80), summary_for("contributor", 20)]
        assert calculate_ownership_score(repos) == 60

    def test_capped_at_100(self):
        repos = [summary_for("owner", 99), summary_for("owner", 95)]
        assert calculate_ownership_score(repos) == 100


class TestCollaborationIndex:
    """Test the collaboration index."""

    def test_full_example(self):
        summary = ContributionSummary(
            total_prs=10, merged_prs=7, reviews_given=10, issues_closed=5
        )
        assert calculate_collaboration_index(summary) == 88

    def test_no_pull_requests(self):
        summary = ContributionSummary(reviews_given=5)
        assert calculate_collaboration_index(summary) == 15.0

    def test_keeps_two_decimals(self):
        summary = ContributionSummary(total_prs=3, merged_prs=1)
        assert calculate_collaboration_index(summary) == 13.33

    def test_saturates(self):
        summary = ContributionSummary(
            total_prs=4, merged_prs=4, reviews_given=50, issues_closed=50
        )
        assert calculate_collaboration_index(summary) == 100

    def test_zero(self):
        assert calculate_collaboration_index(ContributionSummary()) == 0


class TestLanguageStats:
    """Test the language distribution."""

    def test_weighted_by_size(self, make_repo):
        repos = [
            make_repo("a", language="Python", size=400),
            make_repo("b", language="Python", size=200),
            make_repo("c", language="Go", size=300),
            make_repo("d", language="Rust", size=100),
            make_repo("e", language=None, size=9000),
        ]

        stats = calculate_language_stats(repos)

        assert [(s.language, s.percentage) for s in stats] == [
            ("Python", 60), ("Go", 30), ("Rust", 10)
        ]
        assert stats[0].color == LANGUAGE_COLORS["Python"]

    def test_missing_size_weighs_one(self, make_repo):
        repos = [
            make_repo("a", language="JavaScript", size=0),
            make_repo("b", language="JavaScript", size=None),
            make_repo("c", language="TypeScript", size=2),
        ]

        stats = calculate_language_stats(repos)

        assert {s.language: s.percentage for s in stats} == {
            "JavaScript": 50, "TypeScript": 50
        }

    def test_top_five_sorted(self, make_repo):
        languages = ["C", "Go", "Java", "Ruby", "PHP", "Dart", "Scala"]
        repos = [
            make_repo(name, language=name, size=(i + 1) * 10)
            for i, name in enumerate(languages)
        ]

        stats = calculate_language_stats(repos)

        assert len(stats) == 5
        percentages = [s.percentage for s in stats]
        assert percentages == sorted(percentages, reverse=True)
        assert stats[0].language == "Scala"

    def test_unknown_language_color(self, make_repo):
        [stat] = calculate_language_stats([make_repo("x", language="Elixir")])
        assert stat.color == LANGUAGE_COLORS["Other"]
        assert stat.percentage == 100

    def test_no_languages(self, make_repo):
        assert calculate_language_stats([make_repo("x", language=None)]) == []
        assert calculate_language_stats([]) == []


class TestMetricsSynthesizer:
    """Test assembly of ReportMetrics."""

    @pytest.fixture
    def inputs(self, make_repo, make_event, now):
        repos = [make_repo("app"), make_repo("lib", language="Go")]
        return {
            "repos": repos,
            "recent_repos": repos[:1],
            "events": [make_event("push", now - timedelta(days=d)) for d in (1, 40)],
            "contributions": ContributionResult.authoritative(
                ContributionSummary(
                    total_prs=10, merged_prs=7, reviews_given=10,
                    issues_closed=5, active_weeks=6, total_weeks=12,
                )
            ),
            "top_repositories": [summary_for("owner", 80)],
            "now": now,
            "time_window_months": 24,
            "private_repo_count": 2,
        }

    def test_synthesize(self, inputs):
        metrics = MetricsSynthesizer().synthesize(**inputs)

        assert metrics.consistency_index == 50
        assert metrics.recency_score == 80
        assert metrics.ownership_score == 100
        assert metrics.collaboration_index == 88
        assert metrics.total_repos == 2
        assert metrics.active_repos == 1
        assert [s.language for s in metrics.primary_languages] == ["Python", "Go"]
        assert metrics.private_repo_count == 2
        assert metrics.time_window_months == 24
        assert metrics.contribution_source is ContributionSource.AUTHORITATIVE

    def test_idempotent(self, inputs):
        synthesizer = MetricsSynthesizer()
        assert synthesizer.synthesize(**inputs) == synthesizer.synthesize(**inputs)

    def test_score_ranges(self, inputs):
        metrics = MetricsSynthesizer().synthesize(**inputs)

        for score in (metrics.consistency_index, metrics.recency_score,
                      metrics.ownership_score):
            assert isinstance(score, int)
            assert 0 <= score <= 100
        assert 0 <= metrics.collaboration_index <= 100
        assert round(metrics.collaboration_index, 2) == metrics.collaboration_index
