"""Domain models for GitHub deployment latency statistics.

These dataclasses intentionally model only the subset of API payload fields that
are required to correlate deployments with their success status.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True, slots=True)
class Deployment:
    """Represents one deployment of a repository to an environment."""

    id: int
    created_at: datetime


@dataclass(frozen=True, slots=True)
class DeploymentStatus:
    """Represents one state transition recorded for a deployment."""

    state: str
    created_at: datetime


@dataclass(slots=True)
class Partition:
    """Deployments split around a cutoff instant."""

    before: List[Deployment] = field(default_factory=list)
    at_or_after: List[Deployment] = field(default_factory=list)


@dataclass(slots=True)
class DeploymentStats:
    """Aggregated latency statistics for one group of deployments.

    ``total`` counts every deployment in the group, ``successful`` only those
    with a success status. Duration fields are ``None`` when ``successful`` is 0.
    """

    total: int
    successful: int
    average_seconds: Optional[int]
    min_seconds: Optional[int]
    max_seconds: Optional[int]
    group: Optional[str] = None
