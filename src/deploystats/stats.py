"""Statistics and formatting helpers for deployment latency reporting.

This module provides utilities for:
- Rounding second-based durations half away from zero.
- Aggregating count, average, minimum and maximum over duration samples.
- Formatting one summary line per deployment group and the full report.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Sequence

from .models import DeploymentStats


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties away from zero.

    Python's built-in ``round`` uses banker's rounding, which would turn an
    average of ``2.5`` seconds into ``2``. This helper returns ``3``.

    Args:
        value: Number to round.

    Returns:
        The rounded integer.
    """
    return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def compute_statistics(
    total: int,
    durations: Sequence[int],
    group: Optional[str] = None,
) -> DeploymentStats:
    """Compute average, minimum, and maximum for defined duration samples.

    Args:
        total: Number of deployments in the group, with or without a duration.
        durations: Defined durations in seconds.
        group: Optional group label carried into the summary.

    Returns:
        A ``DeploymentStats`` summary. When ``durations`` is empty the average,
        minimum and maximum are ``None`` rather than NaN.
    """
    if not durations:
        return DeploymentStats(
            total=total,
            successful=0,
            average_seconds=None,
            min_seconds=None,
            max_seconds=None,
            group=group,
        )

    return DeploymentStats(
        total=total,
        successful=len(durations),
        average_seconds=round_half_up(sum(durations) / len(durations)),
        min_seconds=min(durations),
        max_seconds=max(durations),
        group=group,
    )


def format_seconds(seconds: Optional[int]) -> str:
    """Format a duration in whole seconds, or ``"n/a"`` when undefined."""
    if seconds is None:
        return "n/a"
    return str(seconds)


def format_stats(stats: DeploymentStats) -> str:
    """Format one group summary as a single report line."""
    group_message = f"{stats.group} " if stats.group else ""
    return (
        f"- {stats.total} {group_message}deployments, {stats.successful} successful: "
        f"avg {format_seconds(stats.average_seconds)} secs, "
        f"min/max: {format_seconds(stats.min_seconds)}/{format_seconds(stats.max_seconds)} secs"
    )


def generate_report(environment: str, fetched: int, groups: Sequence[DeploymentStats]) -> str:
    """Generate the human-readable report for one statistics run.

    Args:
        environment: Deployment environment name.
        fetched: Number of deployments retrieved from GitHub.
        groups: One summary per reported group, in display order.

    Returns:
        Formatted multi-line text report.
    """
    lines: List[str] = [f"Fetched {fetched} deployments for {environment}:"]
    lines.extend(format_stats(stats) for stats in groups)
    return "\n".join(lines)
