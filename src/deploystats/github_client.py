"""GitHub REST API client for deployment and deployment status retrieval."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import aiohttp

from .config import Config, parse_iso8601
from .errors import ApiError
from .models import Deployment, DeploymentStatus

logger = logging.getLogger(__name__)


class GitHubClient:
    """Small, typed async client for the GitHub deployments API.

    Use as an async context manager so the underlying ``aiohttp`` session is
    opened and closed inside the running event loop::

        async with GitHubClient(config) as client:
            deployments = await client.list_deployments("production", page=1)
    """

    _API_VERSION = "2022-11-28"
    _MAX_PAGE_SIZE = 100

    def __init__(self, config: Config, session: Optional[aiohttp.ClientSession] = None) -> None:
        """Initialize an authenticated GitHub API client.

        Args:
            config: Validated runtime configuration including owner/repo/token.
            session: Pre-built session, mainly for tests. When omitted a session
                is created on ``__aenter__`` and closed on ``__aexit__``.
        """
        self._config = config
        self._base_url = f"{config.api_url}/repos/{config.owner}/{config.repo}"
        self._session = session
        self._owns_session = session is None
        self._semaphore = (
            asyncio.Semaphore(config.max_concurrency) if config.max_concurrency else None
        )

    async def __aenter__(self) -> "GitHubClient":
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def _headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self._config.token}",
            "User-Agent": "gh-deployment-stats",
            "X-GitHub-Api-Version": self._API_VERSION,
        }

    def _build_url(self, path: str) -> str:
        """Build a fully qualified API URL from a path below the repository."""
        return f"{self._base_url}/{path.lstrip('/')}"

    def _parse_datetime(self, value: Optional[str]) -> Optional[datetime]:
        """Parse GitHub ISO8601 timestamps into timezone-aware datetimes."""
        if not value:
            return None

        try:
            return parse_iso8601(value)
        except ValueError as exc:
            raise ApiError(f"GitHub API returned an invalid timestamp: {value!r}") from exc

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Execute a GET request and return the JSON array it responds with.

        Raises:
            ApiError: If the request fails, returns HTTP >= 400, does not return
                valid JSON, or the payload is not a JSON array.
        """
        session = self._session
        if session is None:
            raise ApiError("GitHubClient used outside of 'async with'.")

        url = self._build_url(path)
        if self._semaphore is None:
            return await self._request(session, url, dict(params or {}))
        async with self._semaphore:
            return await self._request(session, url, dict(params or {}))

    async def _request(
        self,
        session: aiohttp.ClientSession,
        url: str,
        params: Dict[str, Any],
    ) -> List[Dict[str, Any]]:
        try:
            async with session.get(url, params=params, headers=self._headers()) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise ApiError(
                        f"GitHub API request failed: GET {url} returned {response.status} - {body}"
                    )
                try:
                    payload = await response.json()
                except ValueError as exc:
                    raise ApiError(f"GitHub API returned invalid JSON: GET {url}") from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ApiError(f"GitHub request failed: GET {url}: {exc}") from exc

        if not isinstance(payload, list):
            raise ApiError(f"GitHub API returned unexpected payload shape: GET {url}")

        return payload

    async def list_deployments(
        self,
        environment: str,
        page: int,
        per_page: int = _MAX_PAGE_SIZE,
    ) -> List[Deployment]:
        """List one page of deployments for an environment, most recent first."""
        payload = await self._get_json(
            "deployments",
            params={"environment": environment, "per_page": per_page, "page": page},
        )
        deployments: List[Deployment] = []

        for item in payload:
            deployment_id = item.get("id")
            created_at = self._parse_datetime(item.get("created_at"))
            if deployment_id is None or created_at is None:
                raise ApiError(
                    "GitHub deployment payload is missing required fields: "
                    f"environment={environment}, page={page}, payload={item}"
                )
            deployments.append(Deployment(id=int(deployment_id), created_at=created_at))

        logger.debug(
            "Fetched deployments page",
            extra={"environment": environment, "page": page, "count": len(deployments)},
        )
        return deployments

    async def list_statuses(self, deployment_id: int) -> List[DeploymentStatus]:
        """List statuses of a deployment in the order GitHub returns them."""
        payload = await self._get_json(
            f"deployments/{deployment_id}/statuses",
            params={"per_page": self._MAX_PAGE_SIZE},
        )
        statuses: List[DeploymentStatus] = []

        for item in payload:
            state = item.get("state")
            created_at = self._parse_datetime(item.get("created_at"))
            if not state or created_at is None:
                raise ApiError(
                    "GitHub deployment status payload is missing required fields: "
                    f"deployment_id={deployment_id}, payload={item}"
                )
            statuses.append(DeploymentStatus(state=str(state), created_at=created_at))

        return statuses
