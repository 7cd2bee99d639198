"""
Polling / reconciliation loop.

Background worker that refetches the whole planner window every few seconds
and hands it to the planner, which replaces each day's authoritative data
and reconciles optimistic state. Ticks are skipped while the user is
actively editing; when editing stops the next tick runs immediately.
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional

from teamplanner.client.activity import ActivityMonitor
from teamplanner.client.store import AvailabilityStore
from teamplanner.models.schemas import PlayerAvailability
from teamplanner.utils.constants import POLL_INTERVAL_SECONDS

logger = logging.getLogger(__name__)

WindowMatrix = Dict[str, List[PlayerAvailability]]


async def load_window(store: AvailabilityStore, dates: List[str]) -> Optional[WindowMatrix]:
    """
    Fetch the matrix for every date of the window.

    A date that cannot be fetched gets an all-unknown matrix of the active
    players so the grid stays renderable.

    Returns:
        The window matrix, or None if even the player list could not be loaded
    """
    try:
        players = await store.get_players(active_only=True)
    except Exception as e:
        logger.error(f"Failed to load players: {e}")
        return None

    try:
        matrix = await store.get_availability_for_dates(dates)
        if all(date in matrix for date in dates):
            return {date: matrix[date] for date in dates}
        logger.warning("Window fetch returned incomplete data, loading day by day")
    except Exception as e:
        logger.warning(f"Failed to load availability window, loading day by day: {e}")

    result: WindowMatrix = {}
    for date in dates:
        try:
            result[date] = await store.get_availability_for_date(date)
        except Exception as e:
            logger.error(f"Failed to load availability for {date}: {e}")
            result[date] = [PlayerAvailability(player=p, availability={}) for p in players]
    return result


class AvailabilityPoller:
    """Periodic window refresh, suspended while the user is active."""

    def __init__(
        self,
        store: AvailabilityStore,
        dates: List[str],
        on_data: Callable[[WindowMatrix], None],
        activity: ActivityMonitor,
        interval_seconds: float = POLL_INTERVAL_SECONDS,
    ):
        self._store = store
        self._dates = list(dates)
        self._on_data = on_data
        self._activity = activity
        self._interval_seconds = interval_seconds
        self._worker_task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()
        self._wake_event = asyncio.Event()
        self._activity.events.subscribe("activity_changed", self._on_activity_changed)

    @property
    def is_running(self) -> bool:
        return self._worker_task is not None and not self._worker_task.done()

    async def refresh(self, force: bool = False) -> bool:
        """
        Fetch the window once and deliver it.

        Args:
            force: Refresh even while the user is active

        Returns:
            True if new data was delivered
        """
        if self._activity.is_active and not force:
            logger.debug("User is editing, skipping refresh")
            return False

        matrix = await load_window(self._store, self._dates)
        if matrix is None:
            return False
        self._on_data(matrix)
        return True

    def start(self) -> None:
        """Start the background polling worker."""
        if self._worker_task is None or self._worker_task.done():
            self._stop_event.clear()
            self._worker_task = asyncio.create_task(self._poll_loop())
            logger.info("Availability polling started")

    def stop(self) -> None:
        """Stop the background polling worker."""
        self._stop_event.set()
        self._wake_event.set()
        if self._worker_task and not self._worker_task.done():
            self._worker_task.cancel()
            logger.info("Availability polling stopped")

    def _on_activity_changed(self, is_active: bool) -> None:
        if not is_active:
            self._wake_event.set()

    async def _poll_loop(self) -> None:
        """Main loop: refresh, then wait for the interval or a wake-up. Repeats until stopped."""
        while not self._stop_event.is_set():
            try:
                await self.refresh()
            except Exception as e:
                logger.error(f"Error in availability polling: {e}", exc_info=True)

            try:
                await asyncio.wait_for(self._wake_event.wait(), timeout=self._interval_seconds)
            except asyncio.TimeoutError:
                # Interval elapsed, loop again
                pass
            self._wake_event.clear()
