"""
Planner sessions: the state a renderer reads and the actions it triggers.

``DaySession`` ties one day's update queue and optimistic tracker together
and implements the cell / row interactions. ``PlannerSession`` owns the
two-week window, the shared activity monitor and the poller.
"""

import logging
from datetime import date as date_type
from typing import Dict, List, Optional, Sequence

from teamplanner.client.activity import ActivityMonitor
from teamplanner.client.optimistic import OptimisticStateTracker
from teamplanner.client.polling import AvailabilityPoller, WindowMatrix
from teamplanner.client.roster import RosterManager
from teamplanner.client.store import AvailabilityStore
from teamplanner.client.update_queue import UpdateQueue
from teamplanner.database.models import AvailabilityStatus
from teamplanner.models.schemas import PlayDayOpportunity, PlayerAvailability
from teamplanner.utils.constants import POLL_INTERVAL_SECONDS
from teamplanner.utils.datetime_utils import (
    format_date_for_storage,
    get_current_day_index,
    get_two_week_window,
)
from teamplanner.utils.grid_utils import (
    find_play_day_opportunities,
    get_all_hours,
    get_next_status,
    next_early_hour,
)
from teamplanner.utils.scheduling import AsyncioScheduler, Scheduler

logger = logging.getLogger(__name__)


class DaySession:
    """Grid state and interactions for one date."""

    def __init__(
        self,
        date: str,
        store: AvailabilityStore,
        scheduler: Scheduler,
        activity: ActivityMonitor,
    ):
        self.date = date
        self.activity = activity
        self.queue = UpdateQueue(store, scheduler)
        self.tracker = OptimisticStateTracker(self.queue, activity)
        self.additional_hours: List[str] = []

        self.queue.events.subscribe("pending_changed", self.tracker.reconcile)
        self.tracker.events.subscribe("day_wiped", self._on_day_wiped)

    @property
    def player_availabilities(self) -> List[PlayerAvailability]:
        return self.tracker.server_data

    def set_server_data(self, player_availabilities: Sequence[PlayerAvailability]) -> None:
        self.tracker.set_server_data(player_availabilities)

    @property
    def all_hours(self) -> List[str]:
        return get_all_hours(self.additional_hours, self.tracker.server_data)

    def get_effective_status(self, player_id: int, hour: str) -> AvailabilityStatus:
        return self.tracker.get_effective_status(player_id, hour)

    def get_bulk_status(self, player_id: int) -> AvailabilityStatus:
        return self.tracker.get_bulk_status(player_id, self.all_hours)

    def is_cell_pending(self, player_id: int, hour: str) -> bool:
        return self.queue.is_pending(player_id, hour)

    def is_bulk_pending(self, player_id: int) -> bool:
        return self.queue.is_bulk_pending(player_id)

    def toggle_cell(self, player_id: int, hour: str) -> AvailabilityStatus:
        """Advance one cell to its next status."""
        new_status = get_next_status(self.get_effective_status(player_id, hour))
        self.activity.mark_active()
        self.tracker.apply(player_id, hour, new_status)
        self.queue.queue_individual_update(player_id, self.date, hour, new_status)
        return new_status

    def toggle_bulk(self, player_id: int) -> AvailabilityStatus:
        """Set every shown hour of a player to the status after their most common one."""
        hours = self.all_hours
        new_status = get_next_status(self.get_bulk_status(player_id))
        self.activity.mark_active()
        self.tracker.apply_bulk(player_id, hours, new_status)
        self.queue.queue_bulk_update(player_id, self.date, hours, new_status)
        return new_status

    @property
    def can_add_early_hour(self) -> bool:
        return next_early_hour(self.all_hours) is not None

    def add_early_hour(self) -> Optional[str]:
        """Open the latest early hour not shown yet."""
        hour = next_early_hour(self.all_hours)
        if hour is not None:
            self.additional_hours.append(hour)
        return hour

    def opportunities(self) -> List[PlayDayOpportunity]:
        return find_play_day_opportunities(
            self.tracker.server_data,
            hours=self.all_hours,
            status_of=self.get_effective_status,
        )

    async def flush(self) -> None:
        await self.queue.flush()

    def cancel(self) -> None:
        self.queue.cancel()

    def _on_day_wiped(self) -> None:
        self.additional_hours = []


class PlannerSession:
    """The whole two-week planner."""

    def __init__(
        self,
        store: AvailabilityStore,
        scheduler: Optional[Scheduler] = None,
        dates: Optional[List[date_type]] = None,
        poll_interval_seconds: float = POLL_INTERVAL_SECONDS,
    ):
        self.store = store
        self.scheduler = scheduler or AsyncioScheduler()
        window = dates or get_two_week_window()
        self.dates = [format_date_for_storage(d) for d in window]
        self.current_day_index = get_current_day_index(window)
        self.activity = ActivityMonitor(self.scheduler)
        self.days: Dict[str, DaySession] = {
            d: DaySession(d, store, self.scheduler, self.activity) for d in self.dates
        }
        self.poller = AvailabilityPoller(
            store, self.dates, self.apply_window, self.activity, poll_interval_seconds
        )
        self.is_loading = True

    def day(self, date: str) -> DaySession:
        return self.days[date]

    def apply_window(self, matrix: WindowMatrix) -> None:
        """Replace every day's authoritative data."""
        for date, entries in matrix.items():
            day = self.days.get(date)
            if day is not None:
                day.set_server_data(entries)
        self.is_loading = False

    async def load(self) -> bool:
        """Fetch the whole window now, even if the user is active."""
        return await self.poller.refresh(force=True)

    def follow_roster(self, roster: RosterManager) -> None:
        """Reload the grid whenever the roster changes."""
        roster.events.subscribe(
            "players_changed", lambda players: self.scheduler.call_later(0, self.load)
        )

    async def delete_day(self, date: str) -> bool:
        """Delete a day's data on the server and reload."""
        try:
            await self.store.delete_day(date)
        except Exception as e:
            logger.error(f"Failed to delete day data for {date}: {e}")
            return False
        await self.load()
        return True

    def start(self) -> None:
        self.poller.start()

    def stop(self) -> None:
        self.poller.stop()
        self.activity.reset()
        for day in self.days.values():
            day.cancel()
