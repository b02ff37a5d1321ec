#!/usr/bin/env python3
"""
Main analysis script for GitPulse.
Fetches a user's GitHub activity and prints report metrics and a CV snippet.
"""

import argparse
import json
import logging
import sys
from typing import Optional

from core.cv_text import generate_cv_insert
from core.entities import SUPPORTED_WINDOWS, AnalysisRequest
from core.reconciler import ContributionReconciler
from core.use_cases import AnalyzeGitHubActivity
from infrastructure.config import Settings
from infrastructure.errors import AnalysisCancelledError
from infrastructure.github_client import GitHubClient
from infrastructure.graphql_client import GitHubGraphQLClient
from infrastructure.http_adapter import HttpAdapter
from infrastructure.retry_utils import CancellationToken, RateLimiter, RetryPolicy

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def build_use_case(settings: Settings) -> AnalyzeGitHubActivity:
    """Wire the clients, reconciler and use case from settings."""
    # The reconciler runs on a worker thread, so it gets its own session;
    # both adapters draw on one rate limit budget.
    rate_limiter = RateLimiter()
    rest_adapter = HttpAdapter(
        settings.token,
        timeout=settings.timeout_seconds,
        rate_limiter=rate_limiter,
    )
    graphql_adapter = HttpAdapter(
        settings.token,
        timeout=settings.timeout_seconds,
        rate_limiter=rate_limiter,
    )
    retry_policy = RetryPolicy(max_retries=settings.max_retries)
    github = GitHubClient(rest_adapter, settings.api_url, retry_policy)
    graphql = GitHubGraphQLClient(graphql_adapter, settings.graphql_url, retry_policy)
    return AnalyzeGitHubActivity(github, ContributionReconciler(graphql))


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Analyse a user's public GitHub activity"
    )
    parser.add_argument("username", help="GitHub login to analyse")
    parser.add_argument(
        "--months",
        type=int,
        choices=SUPPORTED_WINDOWS,
        default=12,
        help="Analysis window in months (default: 12)",
    )
    parser.add_argument(
        "--repo",
        action="append",
        default=[],
        metavar="OWNER/NAME",
        help="Restrict the analysis to this repository (repeatable)",
    )
    parser.add_argument(
        "--max-repos",
        type=int,
        default=None,
        help="Maximum number of repositories to analyse (1-50)",
    )
    parser.add_argument(
        "--include-private-count",
        action="store_true",
        help="Report the number of private repositories",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Deadline for the whole run in seconds",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the metrics as JSON instead of the CV snippet",
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """Main analysis entry point."""
    args = parse_args(argv)

    try:
        settings = Settings.from_env()

        logging.getLogger().setLevel(settings.log_level)

        request = AnalysisRequest(
            username=args.username,
            time_window_months=args.months,
            included_repo_full_names=tuple(args.repo),
            max_repos=args.max_repos,
            include_private_repo_count=args.include_private_count,
        )

        logger.info("=" * 60)
        logger.info("GitPulse - GitHub Activity Report")
        logger.info("=" * 60)
        logger.info(f"User: {request.username}")
        logger.info(f"Window: {request.time_window_months} months")
        if request.included_repo_full_names:
            logger.info(
                f"Repositories: {', '.join(request.included_repo_full_names)}"
            )
        logger.info("=" * 60)

        use_case = build_use_case(settings)
        metrics = use_case.execute(request, CancellationToken(args.timeout))

        if args.json:
            print(json.dumps(metrics.to_dict(), indent=2))
        else:
            print(generate_cv_insert(metrics))

        logger.info("Analysis completed successfully!")
        return 0

    except KeyboardInterrupt:
        logger.info("\nAnalysis interrupted by user.")
        return 130

    except AnalysisCancelledError:
        logger.error("Analysis exceeded its deadline")
        return 1

    except Exception as e:
        logger.error(f"Analysis failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
