"""
Runtime configuration, read from environment variables.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional


@dataclass(frozen=True)
class Settings:
    """Connection and retry settings for the GitHub clients."""

    token: str
    api_url: str = "https://api.github.com"
    graphql_url: str = "https://api.github.com/graphql"
    timeout_seconds: float = 15.0
    max_retries: int = 2
    log_level: str = "INFO"

    @classmethod
    def from_env(
        cls,
        token: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "Settings":
        """
        Build settings, letting environment variables override the defaults.

        Args:
            token: GitHub access token (or uses GITHUB_TOKEN env var)
            environ: Environment mapping (defaults to os.environ)
        """
        env = os.environ if environ is None else environ

        token = token or env.get("GITHUB_TOKEN")
        if not token:
            raise ValueError(
                "GitHub token required. Set GITHUB_TOKEN environment variable "
                "or pass token parameter."
            )

        return cls(
            token=token,
            api_url=env.get("GITHUB_API_URL", cls.api_url).rstrip("/"),
            graphql_url=env.get("GITHUB_GRAPHQL_URL", cls.graphql_url),
            timeout_seconds=float(
                env.get("GITHUB_TIMEOUT_SECONDS", cls.timeout_seconds)
            ),
            max_retries=int(env.get("GITHUB_MAX_RETRIES", cls.max_retries)),
            log_level=env.get("LOG_LEVEL", cls.log_level).upper(),
        )
