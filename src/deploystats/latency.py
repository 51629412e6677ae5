"""Deployment latency extraction logic.

This module correlates deployments with their first success status:
- Fetch the most recent deployments of an environment, page by page.
- Resolve each deployment's latency (creation to first ``success`` status).
- Split deployments around an optional cutoff instant.
- Aggregate latencies of a deployment group into summary statistics.

Page fetches and status lookups are issued as concurrent batches with
``asyncio.gather``. Results keep request order and the first failure of a
batch propagates to the caller.
"""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import datetime
from typing import List, Optional, Sequence

from .github_client import GitHubClient
from .models import Deployment, DeploymentStats, Partition
from .stats import compute_statistics, round_half_up

logger = logging.getLogger(__name__)

SUCCESS_STATE = "success"
PAGE_SIZE = 100


async def fetch_deployments(
    client: GitHubClient,
    environment: str,
    total_deployments: int = 500,
) -> List[Deployment]:
    """Fetch up to ``total_deployments`` deployments of an environment.

    All pages are requested at once. A short page does not stop the fetch: the
    page count is fixed by ``total_deployments`` (500 gives five pages of 100).
    Pages are concatenated in page order whatever order they arrive in.
    """
    per_page = min(PAGE_SIZE, total_deployments)
    page_count = math.ceil(total_deployments / per_page)

    pages = await asyncio.gather(
        *(
            client.list_deployments(environment, page=page, per_page=per_page)
            for page in range(1, page_count + 1)
        )
    )
    deployments = [deployment for page in pages for deployment in page]

    logger.info(
        "Fetched deployments",
        extra={"environment": environment, "pages": page_count, "deployments": len(deployments)},
    )
    return deployments[:total_deployments]


async def resolve_duration(client: GitHubClient, deployment: Deployment) -> Optional[int]:
    """Compute seconds from deployment creation to its first success status.

    Business logic:
    - Retrieve all statuses of the deployment in the order GitHub returns them.
    - Pick the first status whose state is ``success``.
    - Return the elapsed time rounded half up to whole seconds.

    Returns ``None`` when the deployment has no success status.
    """
    statuses = await client.list_statuses(deployment.id)
    success = next((status for status in statuses if status.state == SUCCESS_STATE), None)

    if success is None:
        logger.debug(
            "Deployment has no success status",
            extra={"deployment_id": deployment.id, "statuses": len(statuses)},
        )
        return None

    return round_half_up((success.created_at - deployment.created_at).total_seconds())


def partition(deployments: Sequence[Deployment], cutoff: Optional[datetime] = None) -> Partition:
    """Split deployments into those created before ``cutoff`` and the rest.

    Without a cutoff every deployment lands in ``before``. Input order is kept
    within each side.
    """
    result = Partition()
    for deployment in deployments:
        if cutoff is None or deployment.created_at < cutoff:
            result.before.append(deployment)
        else:
            result.at_or_after.append(deployment)
    return result


async def collect_durations(client: GitHubClient, deployments: Sequence[Deployment]) -> List[int]:
    """Resolve latencies for all deployments concurrently, dropping undefined ones."""
    resolved = await asyncio.gather(
        *(resolve_duration(client, deployment) for deployment in deployments)
    )
    return [duration for duration in resolved if duration is not None]


async def aggregate(
    client: GitHubClient,
    deployments: Sequence[Deployment],
    group: Optional[str] = None,
) -> DeploymentStats:
    """Aggregate latency statistics for a group of deployments.

    ``total`` is the size of the group. Deployments without a success status
    count toward ``total`` but not toward the average, minimum or maximum.
    """
    durations = await collect_durations(client, deployments)
    stats = compute_statistics(len(deployments), durations, group=group)

    logger.info(
        "Aggregated deployment latencies",
        extra={
            "group": group,
            "deployments_total": stats.total,
            "successful": stats.successful,
            "without_success": stats.total - stats.successful,
        },
    )
    return stats
