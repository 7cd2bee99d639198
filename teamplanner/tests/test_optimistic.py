"""
Tests for optimistic state tracking.
Tests effective status, override reconciliation and the day-wipe cleanup.
"""
import asyncio

import pytest

from teamplanner.client.activity import ActivityMonitor
from teamplanner.client.optimistic import OptimisticStateTracker
from teamplanner.client.update_queue import UpdateQueue
from teamplanner.database.models import AvailabilityStatus as S
from teamplanner.models.schemas import PlayerAvailability
from teamplanner.tests.fakes import FakeStore, make_player

DATE = "2026-10-23"
TOM = make_player(1, "Tom")
JOSH = make_player(2, "Josh")


def matrix(tom=None, josh=None):
    return [
        PlayerAvailability(player=TOM, availability=tom or {}),
        PlayerAvailability(player=JOSH, availability=josh or {}),
    ]


@pytest.fixture
def activity(scheduler):
    return ActivityMonitor(scheduler)


@pytest.fixture
def store():
    return FakeStore([TOM, JOSH])


@pytest.fixture
def queue(store, scheduler):
    return UpdateQueue(store, scheduler)


@pytest.fixture
def tracker(queue, activity):
    t = OptimisticStateTracker(queue, activity)
    queue.events.subscribe("pending_changed", t.reconcile)
    return t


def edit(tracker, queue, player_id, hour, status):
    tracker.apply(player_id, hour, status)
    queue.queue_individual_update(player_id, DATE, hour, status)


# ============================================================================
# Effective status
# ============================================================================

def test_effective_status_prefers_override(tracker):
    tracker.set_server_data(matrix(tom={"19": "unready"}))
    assert tracker.get_effective_status(1, "19") == S.UNREADY

    tracker.apply(1, "19", S.READY)
    assert tracker.get_effective_status(1, "19") == S.READY


def test_missing_hour_is_unknown(tracker):
    tracker.set_server_data(matrix(tom={"19": "ready"}))
    assert tracker.get_effective_status(1, "20") == S.UNKNOWN
    assert tracker.get_effective_status(2, "19") == S.UNKNOWN


def test_bulk_status_uses_overrides(tracker):
    tracker.set_server_data(matrix(tom={"19": "unready", "20": "unready"}))
    tracker.apply_bulk(1, ["19", "20", "21"], S.READY)
    assert tracker.get_bulk_status(1, ["19", "20", "21"]) == S.READY


# ============================================================================
# Reconciliation
# ============================================================================

@pytest.mark.asyncio
async def test_override_kept_while_pending_even_if_server_matches(tracker, queue, scheduler):
    tracker.set_server_data(matrix(josh={"19": "ready"}))
    edit(tracker, queue, 1, "19", S.READY)

    tracker.set_server_data(matrix(tom={"19": "ready"}))
    assert (1, "19") in tracker.overrides

    await scheduler.advance(0.3)
    assert (1, "19") not in tracker.overrides
    assert tracker.get_effective_status(1, "19") == S.READY


@pytest.mark.asyncio
async def test_override_kept_until_server_catches_up(tracker, queue, scheduler):
    tracker.set_server_data(matrix(josh={"19": "ready"}))
    edit(tracker, queue, 1, "19", S.READY)

    await scheduler.advance(0.3)
    # Write succeeded, but the authoritative data has not been refetched yet
    assert tracker.overrides == {(1, "19"): S.READY}

    tracker.set_server_data(matrix(tom={"19": "ready"}, josh={"19": "ready"}))
    assert tracker.overrides == {}


@pytest.mark.asyncio
async def test_stale_server_value_does_not_hide_newer_edit(tracker, queue, scheduler):
    tracker.set_server_data(matrix(josh={"19": "ready"}))
    edit(tracker, queue, 1, "19", S.READY)
    edit(tracker, queue, 1, "19", S.UNCERTAIN)

    # Poll returns the first value while the second edit is still queued
    tracker.set_server_data(matrix(tom={"19": "ready"}, josh={"19": "ready"}))
    assert tracker.get_effective_status(1, "19") == S.UNCERTAIN


def snapshot(tracker, queue):
    return (
        dict(tracker.overrides),
        tracker.has_handled_delete,
        set(queue.pending_updates),
        set(queue.bulk_pending_players),
        queue.queued_individual,
        queue.queued_bulk,
    )


@pytest.mark.asyncio
async def test_reconcile_again_changes_nothing(tracker, queue, scheduler):
    tracker.set_server_data(matrix(josh={"19": "ready"}))
    edit(tracker, queue, 1, "19", S.READY)
    edit(tracker, queue, 1, "20", S.UNREADY)
    await scheduler.advance(0.3)

    tracker.set_server_data(matrix(tom={"19": "ready"}, josh={"19": "ready"}))
    # 19 is confirmed and no longer pending, 20 has not reached the server yet
    assert tracker.overrides == {(1, "20"): S.UNREADY}
    before = snapshot(tracker, queue)

    tracker.reconcile()
    tracker.reconcile()

    assert snapshot(tracker, queue) == before


def test_reconcile_after_day_wipe_changes_nothing(tracker, queue):
    wiped = []
    tracker.events.subscribe("day_wiped", lambda: wiped.append(True))
    tracker.set_server_data(matrix(josh={"19": "ready"}))
    edit(tracker, queue, 1, "19", S.READY)
    tracker.set_server_data(matrix())
    before = snapshot(tracker, queue)

    tracker.reconcile()
    tracker.reconcile()

    assert snapshot(tracker, queue) == before
    assert wiped == [True]


# ============================================================================
# Day wipe
# ============================================================================

def test_day_deleted_elsewhere_discards_local_state(tracker, queue):
    wiped = []
    tracker.events.subscribe("day_wiped", lambda: wiped.append(True))
    tracker.set_server_data(matrix(josh={"19": "ready"}))
    edit(tracker, queue, 1, "19", S.READY)

    tracker.set_server_data(matrix())

    assert tracker.overrides == {}
    assert not queue.has_pending
    assert not queue.has_queued
    assert tracker.has_handled_delete
    assert wiped == [True]


def test_day_wipe_runs_once(tracker, queue):
    wiped = []
    tracker.events.subscribe("day_wiped", lambda: wiped.append(True))
    tracker.set_server_data(matrix(josh={"19": "ready"}))
    edit(tracker, queue, 1, "19", S.READY)
    tracker.set_server_data(matrix())

    tracker.apply(1, "20", S.READY)
    tracker.set_server_data(matrix())

    assert wiped == [True]
    assert (1, "20") in tracker.overrides


def test_day_wipe_rearms_when_data_returns(tracker, queue):
    tracker.set_server_data(matrix(josh={"19": "ready"}))
    edit(tracker, queue, 1, "19", S.READY)
    tracker.set_server_data(matrix())
    assert tracker.has_handled_delete

    tracker.set_server_data(matrix(josh={"20": "ready"}))
    assert not tracker.has_handled_delete


@pytest.mark.asyncio
async def test_day_wipe_waits_while_user_active(tracker, queue, activity, scheduler):
    tracker.set_server_data(matrix(josh={"19": "ready"}))
    activity.mark_active()
    tracker.apply(1, "19", S.READY)

    tracker.set_server_data(matrix())
    assert tracker.overrides == {(1, "19"): S.READY}

    await scheduler.advance(2.5)
    tracker.set_server_data(matrix())
    assert tracker.overrides == {}


def test_empty_day_without_local_state_is_not_a_wipe(tracker):
    wiped = []
    tracker.events.subscribe("day_wiped", lambda: wiped.append(True))
    tracker.set_server_data(matrix())
    assert wiped == []
    assert not tracker.has_handled_delete


@pytest.mark.asyncio
async def test_write_in_flight_during_day_wipe_is_not_resent(tracker, queue, store, scheduler):
    store.gate = asyncio.Event()
    store.fail_writes = 1
    tracker.set_server_data(matrix(josh={"19": "ready"}))
    edit(tracker, queue, 1, "19", S.READY)
    flush = asyncio.create_task(queue.flush())
    await asyncio.sleep(0)

    tracker.set_server_data(matrix())
    assert tracker.has_handled_delete
    store.gate.set()
    await flush
    await scheduler.advance(1.0)

    assert store.write_calls() == [("individual", 1, DATE, "19", S.READY)]
    assert not queue.has_queued
    assert tracker.overrides == {}
