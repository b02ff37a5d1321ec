"""
Shared fixtures for GitPulse tests.
"""

import itertools
from datetime import datetime, timezone

import pytest

from core.entities import ActivityEvent, EventKind, RepositoryRecord


@pytest.fixture
def now():
    """A fixed Wednesday, midday UTC."""
    return datetime(2024, 6, 5, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_repo():
    """Factory for RepositoryRecord with sensible defaults."""
    ids = itertools.count(1)

    def factory(name="repo", owner="alice", **overrides):
        repo_id = next(ids)
        fields = {
            "repo_id": repo_id,
            "owner": owner,
            "name": name,
            "full_name": f"{owner}/{name}",
            "language": "Python",
            "size": 100,
            "stars": 3,
            "pushed_at": datetime(2024, 6, 1, tzinfo=timezone.utc),
            "description": f"{name} description",
        }
        fields.update(overrides)
        return RepositoryRecord(**fields)

    return factory


@pytest.fixture
def make_event():
    """Factory for ActivityEvent."""
    ids = itertools.count(1)

    def factory(kind, created_at, payload=None, repo_name="alice/repo"):
        return ActivityEvent(
            event_id=str(next(ids)),
            kind=EventKind(kind),
            created_at=created_at,
            repo_name=repo_name,
            payload=payload or {},
        )

    return factory
