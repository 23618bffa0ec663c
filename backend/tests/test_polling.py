"""Tests for periodic refresh tasks."""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from smart_risk.client import PeriodicTask, QuickStatsPoller


async def _until(predicate, timeout=1.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        PeriodicTask(lambda: None, 0)


@pytest.mark.asyncio
async def test_runs_repeatedly_until_stopped():
    calls = []

    async def tick():
        calls.append(1)

    task = PeriodicTask(tick, 0.01)
    task.start()
    await _until(lambda: task.runs >= 3)
    await task.stop()

    assert task.running is False
    stopped_at = len(calls)
    await asyncio.sleep(0.05)
    assert len(calls) == stopped_at


@pytest.mark.asyncio
async def test_start_twice_keeps_one_loop():
    calls = []

    async def tick():
        calls.append(1)

    task = PeriodicTask(tick, 10)
    task.start()
    task.start()
    await _until(lambda: task.runs == 1)
    await task.stop()

    assert len(calls) == 1


@pytest.mark.asyncio
async def test_failed_run_does_not_stop_the_loop():
    attempts = []

    async def flaky():
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("boom")

    task = PeriodicTask(flaky, 0.01)
    task.start()
    await _until(lambda: len(attempts) >= 2)
    await task.stop()

    assert len(attempts) >= 2


@pytest.mark.asyncio
async def test_stop_before_start_is_harmless():
    await PeriodicTask(lambda: None, 1).stop()


@pytest.mark.asyncio
async def test_quick_stats_refresh(remote):
    now = datetime.now(timezone.utc)
    remote.tables["user_profiles"].extend([
        {"id": "u1", "is_subscribed": True},
        {"id": "u2", "is_subscribed": False},
    ])
    remote.tables["payments"].extend([
        {"id": "p1", "created_at": now.isoformat()},
        {"id": "p2", "created_at": (now - timedelta(days=2)).isoformat()},
    ])
    poller = QuickStatsPoller(remote, interval=60)

    stats = await poller.refresh()

    assert stats.total_users == 2
    assert stats.subscribed_users == 1
    assert stats.payments_today == 1


@pytest.mark.asyncio
async def test_quick_stats_keep_last_value_on_failure(remote):
    remote.tables["user_profiles"].append({"id": "u1", "is_subscribed": True})
    poller = QuickStatsPoller(remote, interval=0.01)

    poller.start()
    await _until(lambda: poller.stats is not None)
    remote.failures.add("select")
    runs = poller.task.runs
    await _until(lambda: poller.task.runs > runs + 1)
    await poller.stop()

    assert poller.stats.total_users == 1
