"""
Repository selection and enrichment.
"""

import logging
import random
from datetime import datetime
from typing import Iterable, Optional, Sequence

from core.entities import RepositoryRecord, RepositorySummary
from infrastructure.errors import GitHubAPIError
from infrastructure.github_client import GitHubClient
from infrastructure.retry_utils import CancellationToken

logger = logging.getLogger(__name__)

TOP_REPOSITORY_COUNT = 5
MAX_DISPLAY_LANGUAGES = 3


def filter_analysis_universe(
    repos: Iterable[RepositoryRecord],
) -> list[RepositoryRecord]:
    """Drop private and forked repositories, keeping the listing order."""
    return [repo for repo in repos if not repo.private and not repo.fork]


def select_repositories(
    repos: Iterable[RepositoryRecord],
    included_full_names: Sequence[str] = (),
    max_repos: Optional[int] = None,
) -> list[RepositoryRecord]:
    """
    Build the analysis set.

    Args:
        repos: Repository listing, most recently pushed first
        included_full_names: Optional allow-list of ``owner/name`` values
        max_repos: Optional cap applied after filtering

    Returns:
        Public, non-fork repositories in listing order
    """
    selected = filter_analysis_universe(repos)

    allowed = {name for name in included_full_names if name.strip()}
    if allowed:
        selected = [repo for repo in selected if repo.full_name in allowed]

    if max_repos is not None:
        selected = selected[:max_repos]

    return selected


def recent_repositories(
    repos: Iterable[RepositoryRecord], cutoff: datetime
) -> list[RepositoryRecord]:
    """Repositories pushed to after ``cutoff``."""
    return [
        repo for repo in repos
        if repo.pushed_at is not None and repo.pushed_at > cutoff
    ]


class RepositoryEnricher:
    """
    Decorates the most recently pushed repositories with languages and
    ownership details.

    Commit, PR and ownership-percentage figures are placeholder estimates
    drawn at random within a range chosen by the ownership role. They are
    not verified against commit history.
    """

    def __init__(
        self,
        github: GitHubClient,
        username: str,
        rng: Optional[random.Random] = None,
    ):
        """
        Args:
            github: REST client used for the languages endpoint
            username: Login of the analysed user
            rng: Random source for the placeholder estimates
        """
        self.github = github
        self.username = username
        self.rng = rng or random.Random()

    def enrich(
        self,
        repos: Sequence[RepositoryRecord],
        cancel: Optional[CancellationToken] = None,
    ) -> list[RepositorySummary]:
        """Summarize the first five repositories of ``repos``."""
        return [
            self._summarize(repo, cancel)
            for repo in repos[:TOP_REPOSITORY_COUNT]
        ]

    def _languages(
        self, repo: RepositoryRecord, cancel: Optional[CancellationToken]
    ) -> tuple[str, ...]:
        try:
            byte_map = self.github.get_repo_languages(repo.full_name, cancel=cancel)
        except GitHubAPIError as e:
            logger.warning(
                f"Could not fetch languages for {repo.full_name}: {e}. "
                f"Using primary language"
            )
            return (repo.language,) if repo.language else ()

        ranked = sorted(byte_map.items(), key=lambda item: item[1], reverse=True)
        return tuple(name for name, _ in ranked[:MAX_DISPLAY_LANGUAGES])

    def _summarize(
        self, repo: RepositoryRecord, cancel: Optional[CancellationToken]
    ) -> RepositorySummary:
        is_owner = repo.owner == self.username

        if is_owner:
            ownership = self.rng.randrange(60, 100)
        else:
            ownership = self.rng.randrange(10, 40)

        return RepositorySummary(
            name=repo.name,
            full_name=repo.full_name,
            role="owner" if is_owner else "contributor",
            languages=self._languages(repo, cancel),
            commits=self.rng.randrange(10, 110),
            prs=self.rng.randrange(1, 21),
            ownership_percentage=ownership,
            stars=repo.stars,
            description=repo.description,
        )
