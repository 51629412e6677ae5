"""Tests for deployment latency extraction logic."""

import asyncio
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from deploystats.errors import ApiError
from deploystats.latency import aggregate, collect_durations, fetch_deployments, partition, resolve_duration
from deploystats.models import Deployment, DeploymentStatus


T0 = datetime(2026, 1, 1, 10, 0, 0, tzinfo=timezone.utc)


def _deployment(deployment_id: int, offset_hours: int = 0) -> Deployment:
    return Deployment(id=deployment_id, created_at=T0 + timedelta(hours=offset_hours))


def _status(state: str, deployment: Deployment, after_seconds: float) -> DeploymentStatus:
    return DeploymentStatus(state=state, created_at=deployment.created_at + timedelta(seconds=after_seconds))


def _client_with_statuses(statuses_by_id) -> Mock:
    client = Mock()
    client.list_statuses = AsyncMock(side_effect=lambda deployment_id: statuses_by_id[deployment_id])
    return client


@pytest.mark.asyncio
async def test_fetch_deployments_requests_five_pages_and_keeps_page_order():
    """Verify the default fetch issues pages 1..5 concurrently and concatenates in page order."""
    started = []

    async def _list_deployments(environment, page, per_page):
        started.append(page)
        # Later pages answer first.
        await asyncio.sleep(0.001 * (6 - page))
        return [Deployment(id=page * 1000 + i, created_at=T0) for i in range(2)]

    client = Mock()
    client.list_deployments = AsyncMock(side_effect=_list_deployments)

    deployments = await fetch_deployments(client, "production")

    assert sorted(started) == [1, 2, 3, 4, 5]
    assert client.list_deployments.call_count == 5
    for call in client.list_deployments.call_args_list:
        assert call.args == ("production",)
        assert call.kwargs["per_page"] == 100
    assert [d.id for d in deployments] == [
        1000, 1001, 2000, 2001, 3000, 3001, 4000, 4001, 5000, 5001,
    ]


@pytest.mark.asyncio
async def test_fetch_deployments_does_not_stop_on_empty_pages():
    """Verify short or empty pages never reduce the number of requests."""
    client = Mock()
    client.list_deployments = AsyncMock(
        side_effect=lambda environment, page, per_page: [_deployment(page)] if page == 1 else []
    )

    deployments = await fetch_deployments(client, "production", total_deployments=500)

    assert client.list_deployments.call_count == 5
    assert deployments == [_deployment(1)]


@pytest.mark.asyncio
async def test_fetch_deployments_small_total_uses_single_smaller_page():
    """Verify totals under a full page request one page sized to the total."""
    client = Mock()
    client.list_deployments = AsyncMock(return_value=[_deployment(i) for i in range(30)])

    deployments = await fetch_deployments(client, "staging", total_deployments=30)

    client.list_deployments.assert_awaited_once_with("staging", page=1, per_page=30)
    assert len(deployments) == 30


@pytest.mark.asyncio
async def test_fetch_deployments_truncates_to_total():
    """Verify a total that is not a page multiple rounds pages up and truncates the result."""
    client = Mock()
    client.list_deployments = AsyncMock(
        side_effect=lambda environment, page, per_page: [
            _deployment(page * 1000 + i) for i in range(per_page)
        ]
    )

    deployments = await fetch_deployments(client, "production", total_deployments=250)

    assert client.list_deployments.call_count == 3
    assert len(deployments) == 250
    assert deployments[-1].id == 3049


@pytest.mark.asyncio
async def test_fetch_deployments_single_page_failure_fails_whole_fetch():
    """Verify any failing page request fails the fetch with no partial result."""

    async def _list_deployments(environment, page, per_page):
        if page == 3:
            raise ApiError("page 3 failed")
        return [_deployment(page)]

    client = Mock()
    client.list_deployments = AsyncMock(side_effect=_list_deployments)

    with pytest.raises(ApiError, match="page 3 failed"):
        await fetch_deployments(client, "production")


@pytest.mark.asyncio
async def test_resolve_duration_uses_first_success_in_source_order():
    """Verify the first success status returned wins, even if a later one is earlier in time."""
    deployment = _deployment(1)
    client = _client_with_statuses(
        {
            1: [
                _status("in_progress", deployment, 5),
                _status("success", deployment, 90),
                _status("success", deployment, 30),
            ]
        }
    )

    assert await resolve_duration(client, deployment) == 90
    client.list_statuses.assert_awaited_once_with(1)


@pytest.mark.asyncio
async def test_resolve_duration_without_success_returns_none():
    """Verify a deployment with no success status has an undefined duration."""
    deployment = _deployment(1)
    client = _client_with_statuses(
        {1: [_status("failure", deployment, 60), _status("pending", deployment, 1)]}
    )

    assert await resolve_duration(client, deployment) is None


@pytest.mark.asyncio
async def test_resolve_duration_rounds_half_up():
    """Verify sub-second remainders round to the nearest second with ties going up."""
    deployment = _deployment(1)
    client = _client_with_statuses(
        {
            1: [_status("success", deployment, 2.5)],
            2: [_status("success", deployment, 2.499)],
        }
    )

    assert await resolve_duration(client, deployment) == 3
    assert await resolve_duration(client, Deployment(id=2, created_at=deployment.created_at)) == 2


@pytest.mark.asyncio
async def test_resolve_duration_propagates_status_fetch_errors():
    """Verify status fetch failures are not mistaken for a missing success status."""
    client = Mock()
    client.list_statuses = AsyncMock(side_effect=ApiError("boom"))

    with pytest.raises(ApiError):
        await resolve_duration(client, _deployment(1))


def test_partition_splits_strictly_before_cutoff():
    """Verify deployments before the cutoff go to 'before', the rest to 'at_or_after'."""
    deployments = [_deployment(3, 2), _deployment(1, 0), _deployment(2, 1)]
    cutoff = T0 + timedelta(hours=1)

    result = partition(deployments, cutoff)

    assert result.before == [_deployment(1, 0)]
    assert result.at_or_after == [_deployment(3, 2), _deployment(2, 1)]
    assert sorted(result.before + result.at_or_after, key=lambda d: d.id) == sorted(
        deployments, key=lambda d: d.id
    )
    assert all(d.created_at < cutoff for d in result.before)
    assert all(d.created_at >= cutoff for d in result.at_or_after)


def test_partition_without_cutoff_keeps_everything_in_one_group():
    """Verify no cutoff yields a single group with input order preserved."""
    deployments = [_deployment(2, 1), _deployment(1, 0)]

    result = partition(deployments)

    assert result.before == deployments
    assert result.at_or_after == []


@pytest.mark.asyncio
async def test_collect_durations_drops_undefined_values_and_keeps_zero():
    """Verify only None durations are dropped; a zero-second latency is a value."""
    deployments = [_deployment(1), _deployment(2), _deployment(3)]
    client = _client_with_statuses(
        {
            1: [_status("success", deployments[0], 0)],
            2: [_status("error", deployments[1], 10)],
            3: [_status("success", deployments[2], 45)],
        }
    )

    assert sorted(await collect_durations(client, deployments)) == [0, 45]


@pytest.mark.asyncio
async def test_aggregate_end_to_end_with_cutoff_groups():
    """Verify the old/new split over durations of 10s, 20s and 30s."""
    d0, d1, d2 = _deployment(1, 0), _deployment(2, 1), _deployment(3, 2)
    client = _client_with_statuses(
        {
            1: [_status("success", d0, 10)],
            2: [_status("success", d1, 20)],
            3: [_status("success", d2, 30)],
        }
    )

    split = partition([d2, d1, d0], cutoff=d1.created_at)
    old = await aggregate(client, split.before, group="old")
    new = await aggregate(client, split.at_or_after, group="new")

    assert (old.total, old.successful, old.average_seconds, old.min_seconds, old.max_seconds) == (
        1, 1, 10, 10, 10,
    )
    assert (new.total, new.successful, new.average_seconds, new.min_seconds, new.max_seconds) == (
        2, 2, 25, 20, 30,
    )
    assert old.group == "old"
    assert new.group == "new"


@pytest.mark.asyncio
async def test_aggregate_counts_deployments_without_success_in_total_only():
    """Verify a deployment lacking success counts toward total but not avg/min/max."""
    d0, d1, d2 = _deployment(1, 0), _deployment(2, 1), _deployment(3, 2)
    client = _client_with_statuses(
        {
            1: [_status("success", d0, 11)],
            2: [_status("failure", d1, 5)],
            3: [_status("success", d2, 20)],
        }
    )

    stats = await aggregate(client, [d0, d1, d2])

    assert stats.total == 3
    assert stats.successful == 2
    assert stats.average_seconds == 16
    assert stats.min_seconds == 11
    assert stats.max_seconds == 20
    assert stats.group is None


@pytest.mark.asyncio
async def test_aggregate_without_successful_deployments_returns_sentinel():
    """Verify an empty duration set yields None statistics rather than NaN."""
    d0 = _deployment(1)
    client = _client_with_statuses({1: [_status("failure", d0, 5)]})

    stats = await aggregate(client, [d0])

    assert stats.total == 1
    assert stats.successful == 0
    assert stats.average_seconds is None
    assert stats.min_seconds is None
    assert stats.max_seconds is None


@pytest.mark.asyncio
async def test_aggregate_empty_group_makes_no_requests():
    """Verify an empty group aggregates to zero counts without API calls."""
    client = Mock()
    client.list_statuses = AsyncMock()

    stats = await aggregate(client, [], group="new")

    assert stats.total == 0
    assert stats.average_seconds is None
    client.list_statuses.assert_not_awaited()


@pytest.mark.asyncio
async def test_aggregate_fails_when_any_status_lookup_fails():
    """Verify one failing status lookup fails the whole aggregation."""
    d0, d1 = _deployment(1, 0), _deployment(2, 1)

    async def _list_statuses(deployment_id):
        if deployment_id == 2:
            raise ApiError("statuses unavailable")
        return [_status("success", d0, 10)]

    client = Mock()
    client.list_statuses = AsyncMock(side_effect=_list_statuses)

    with pytest.raises(ApiError, match="statuses unavailable"):
        await aggregate(client, [d0, d1])


class _InFlightTracker:
    """Count calls running at the same time and remember the peak."""

    def __init__(self) -> None:
        self.current = 0
        self.peak = 0

    async def hold(self) -> None:
        self.current += 1
        self.peak = max(self.peak, self.current)
        await asyncio.sleep(0.01)
        self.current -= 1


@pytest.mark.asyncio
async def test_fetch_deployments_issues_all_page_requests_together():
    """Verify all five page requests are in flight at the same time."""
    tracker = _InFlightTracker()

    async def _list_deployments(environment, page, per_page):
        await tracker.hold()
        return [_deployment(page)]

    client = Mock()
    client.list_deployments = AsyncMock(side_effect=_list_deployments)

    deployments = await fetch_deployments(client, "production")

    assert tracker.peak == 5
    assert [d.id for d in deployments] == [1, 2, 3, 4, 5]


@pytest.mark.asyncio
async def test_aggregate_issues_all_status_lookups_together():
    """Verify every status lookup of a group is in flight at the same time."""
    tracker = _InFlightTracker()
    deployments = [_deployment(i, i) for i in range(1, 8)]
    by_id = {d.id: d for d in deployments}

    async def _list_statuses(deployment_id):
        await tracker.hold()
        return [_status("success", by_id[deployment_id], deployment_id * 10)]

    client = Mock()
    client.list_statuses = AsyncMock(side_effect=_list_statuses)

    stats = await aggregate(client, deployments)

    assert tracker.peak == 7
    assert (stats.total, stats.successful, stats.min_seconds, stats.max_seconds) == (7, 7, 10, 70)
