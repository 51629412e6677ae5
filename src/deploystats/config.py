"""Configuration parsing and validation for the GitHub deployment statistics tool."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .errors import AuthenticationError, ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TOTAL_DEPLOYMENTS = 500


@dataclass(frozen=True)
class Config:
    """Validated runtime settings used by the statistics run."""

    owner: str
    repo: str
    environment: str
    cutoff: Optional[datetime]
    total_deployments: int
    max_concurrency: Optional[int]
    token: str
    api_url: str = DEFAULT_API_URL


def parse_iso8601(value: str) -> datetime:
    """Parse an ISO8601 timestamp into a timezone-aware datetime.

    A trailing ``Z`` is accepted and naive values are interpreted as UTC.

    Raises:
        ValueError: If ``value`` is not a valid ISO8601 timestamp.
    """
    normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
    parsed = datetime.fromisoformat(normalized)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_cutoff(value: Optional[str]) -> Optional[datetime]:
    """Parse an optional ISO8601 cutoff timestamp.

    Raises:
        ConfigurationError: If ``value`` is not a valid ISO8601 timestamp.
    """
    if not value:
        return None

    try:
        return parse_iso8601(value)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid cutoff date: '{value}' is not an ISO8601 timestamp.") from exc


def _token_from_gh_cli() -> str:
    """Ask the GitHub CLI for the token of its logged-in account."""
    try:
        completed = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError) as exc:
        logger.debug("GitHub CLI token lookup failed", extra={"error": str(exc)})
        return ""
    return completed.stdout.strip()


def resolve_token() -> str:
    """Return a GitHub bearer token.

    Lookup order: ``GH_TOKEN``, ``GITHUB_TOKEN``, then ``gh auth token``.

    Raises:
        AuthenticationError: If no source yields a token.
    """
    for variable in ("GH_TOKEN", "GITHUB_TOKEN"):
        token = os.getenv(variable, "").strip()
        if token:
            return token

    token = _token_from_gh_cli()
    if not token:
        raise AuthenticationError(
            "Error getting GitHub auth token. "
            "Set 'GH_TOKEN' or 'GITHUB_TOKEN', or log in with 'gh auth login'."
        )
    return token


def load_config(
    owner: str,
    repo: str,
    environment: str,
    cutoff: Optional[str] = None,
    total_deployments: int = DEFAULT_TOTAL_DEPLOYMENTS,
    max_concurrency: Optional[int] = None,
) -> Config:
    """Build and validate application configuration.

    Args:
        owner: GitHub repository owner.
        repo: GitHub repository name.
        environment: Deployment environment name.
        cutoff: Optional ISO8601 timestamp splitting deployments in two groups.
        total_deployments: Positive number of most recent deployments to consider.
        max_concurrency: Optional positive cap on in-flight API requests.

    Returns:
        A validated ``Config`` instance.

    Raises:
        ConfigurationError: If a required value is empty or a number is not positive.
        AuthenticationError: If no GitHub token is available.
    """
    for name, value in (("owner", owner), ("repo", repo), ("environment", environment)):
        if not value or not value.strip():
            raise ConfigurationError(f"Missing required value for '{name}'.")

    if total_deployments <= 0:
        raise ConfigurationError(
            "Invalid value for 'deployments': expected an integer greater than 0."
        )
    if max_concurrency is not None and max_concurrency <= 0:
        raise ConfigurationError(
            "Invalid value for 'max-concurrency': expected an integer greater than 0."
        )

    parsed_cutoff = parse_cutoff(cutoff)
    api_url = os.getenv("GITHUB_API_URL", "").strip() or DEFAULT_API_URL

    return Config(
        owner=owner.strip(),
        repo=repo.strip(),
        environment=environment.strip(),
        cutoff=parsed_cutoff,
        total_deployments=total_deployments,
        max_concurrency=max_concurrency,
        token=resolve_token(),
        api_url=api_url.rstrip("/"),
    )
