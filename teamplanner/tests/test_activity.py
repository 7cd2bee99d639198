"""Tests for the user activity monitor."""
import pytest

from teamplanner.client.activity import ActivityMonitor


@pytest.fixture
def activity(scheduler):
    return ActivityMonitor(scheduler)


@pytest.mark.asyncio
async def test_active_until_quiet_period_passes(activity, scheduler):
    activity.mark_active()
    assert activity.is_active

    await scheduler.advance(1.9)
    assert activity.is_active

    await scheduler.advance(0.2)
    assert not activity.is_active


@pytest.mark.asyncio
async def test_new_activity_restarts_quiet_period(activity, scheduler):
    activity.mark_active()
    await scheduler.advance(1.5)
    activity.mark_active()
    await scheduler.advance(1.5)
    assert activity.is_active

    await scheduler.advance(0.6)
    assert not activity.is_active


@pytest.mark.asyncio
async def test_events_only_on_transitions(activity, scheduler):
    seen = []
    activity.events.subscribe("activity_changed", seen.append)

    activity.mark_active()
    activity.mark_active()
    await scheduler.advance(3.0)

    assert seen == [True, False]


def test_reset_clears_immediately(activity, scheduler):
    activity.mark_active()
    activity.reset()

    assert not activity.is_active
    assert scheduler.pending_timers == []
