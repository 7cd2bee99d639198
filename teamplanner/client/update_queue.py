"""
Update queue for availability writes.

Buffers cell and bulk edits so rapid clicks coalesce into a minimal set of
store writes:
- Individual edits are keyed by (player_id, hour), bulk edits by player_id;
  a newer entry replaces the queued one
- A debounce timer flushes shortly after the last edit
- A flush drains both queues at once and sends every write concurrently;
  only one flush runs at a time
- Pending markers stay set until the write for them succeeds
"""

import asyncio
import enum
import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Set, Tuple

from teamplanner.client.store import AvailabilityStore
from teamplanner.database.models import AvailabilityStatus
from teamplanner.utils.constants import (
    FOLLOW_UP_FLUSH_SECONDS,
    MAX_WRITE_ATTEMPTS,
    UPDATE_DEBOUNCE_SECONDS,
)
from teamplanner.utils.events import EventEmitter
from teamplanner.utils.scheduling import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

CellKey = Tuple[int, str]


class FlushState(str, enum.Enum):
    """Flush state of the queue."""

    IDLE = "idle"
    FLUSHING = "flushing"


@dataclass(frozen=True)
class IndividualUpdate:
    player_id: int
    date: str
    hour: str
    status: AvailabilityStatus
    attempts: int = 0
    generation: int = 0

    @property
    def key(self) -> CellKey:
        return (self.player_id, self.hour)


@dataclass(frozen=True)
class BulkUpdate:
    player_id: int
    date: str
    hours: Tuple[str, ...]
    status: AvailabilityStatus
    attempts: int = 0
    generation: int = 0


class UpdateQueue:
    """Debounced, coalescing write queue for one day.

    Events:
        pending_changed(): pending markers were added or removed
        write_failed(update, error): a write gave up after its last attempt
    """

    def __init__(
        self,
        store: AvailabilityStore,
        scheduler: Scheduler,
        debounce_seconds: float = UPDATE_DEBOUNCE_SECONDS,
        follow_up_seconds: float = FOLLOW_UP_FLUSH_SECONDS,
        max_attempts: int = MAX_WRITE_ATTEMPTS,
    ):
        self._store = store
        self._scheduler = scheduler
        self._debounce_seconds = debounce_seconds
        self._follow_up_seconds = follow_up_seconds
        self._max_attempts = max_attempts

        self._individual: Dict[CellKey, IndividualUpdate] = {}
        self._bulk: Dict[int, BulkUpdate] = {}
        self.pending_updates: Set[CellKey] = set()
        self.bulk_pending_players: Set[int] = set()

        self.state = FlushState.IDLE
        # Bumped by clear(); writes stamped with an older value are never retried
        self._generation = 0
        self._debounce_timer: Optional[TimerHandle] = None
        self._follow_up_timer: Optional[TimerHandle] = None
        self.events = EventEmitter()

    # ------------------------------------------------------------------
    # Queuing
    # ------------------------------------------------------------------

    def queue_individual_update(
        self, player_id: int, date: str, hour: str, status: AvailabilityStatus
    ) -> None:
        """Queue a single-cell write, replacing any queued write for the same cell."""
        update = IndividualUpdate(
            player_id, date, hour, AvailabilityStatus(status), generation=self._generation
        )
        self._individual[update.key] = update
        self.pending_updates.add(update.key)
        self.events.emit("pending_changed")
        self._arm_debounce()

    def queue_bulk_update(
        self, player_id: int, date: str, hours: List[str], status: AvailabilityStatus
    ) -> None:
        """Queue a whole-row write, replacing any queued bulk write for the player."""
        update = BulkUpdate(
            player_id, date, tuple(hours), AvailabilityStatus(status), generation=self._generation
        )
        self._bulk[player_id] = update
        self.bulk_pending_players.add(player_id)
        self.pending_updates.update((player_id, hour) for hour in hours)
        self.events.emit("pending_changed")
        self._arm_debounce()

    @property
    def queued_individual(self) -> List[IndividualUpdate]:
        return list(self._individual.values())

    @property
    def queued_bulk(self) -> List[BulkUpdate]:
        return list(self._bulk.values())

    @property
    def has_queued(self) -> bool:
        return bool(self._individual or self._bulk)

    def is_pending(self, player_id: int, hour: str) -> bool:
        return (player_id, hour) in self.pending_updates

    def is_bulk_pending(self, player_id: int) -> bool:
        return player_id in self.bulk_pending_players

    def _is_queued(self, key: CellKey) -> bool:
        player_id, hour = key
        bulk = self._bulk.get(player_id)
        return key in self._individual or (bulk is not None and hour in bulk.hours)

    @property
    def has_pending(self) -> bool:
        return bool(self.pending_updates or self.bulk_pending_players)

    # ------------------------------------------------------------------
    # Flushing
    # ------------------------------------------------------------------

    async def flush(self) -> None:
        """Send every queued write; no-op while another flush is running."""
        if self.state is FlushState.FLUSHING or not self.has_queued:
            return

        self.state = FlushState.FLUSHING
        updates = list(self._individual.values())
        bulk_updates = list(self._bulk.values())
        self._individual.clear()
        self._bulk.clear()

        try:
            await asyncio.gather(
                *(self._send_individual(u) for u in updates),
                *(self._send_bulk(u) for u in bulk_updates),
                return_exceptions=True,
            )
        finally:
            self.state = FlushState.IDLE

        # Edits queued while we were flushing (or re-queued retries)
        if self.has_queued:
            self._schedule_follow_up()

    async def _send_individual(self, update: IndividualUpdate) -> None:
        try:
            await self._store.update_individual_status(
                update.player_id, update.date, update.hour, update.status
            )
        except Exception as e:
            logger.error(
                f"Failed to update availability for player {update.player_id} "
                f"on {update.date} {update.hour}: {e}"
            )
            self._handle_individual_failure(update, e)
            return

        if not self._is_queued(update.key):
            self.pending_updates.discard(update.key)
            self.events.emit("pending_changed")

    async def _send_bulk(self, update: BulkUpdate) -> None:
        try:
            await self._store.update_bulk_status(
                update.player_id, update.date, list(update.hours), update.status
            )
        except Exception as e:
            logger.error(
                f"Failed to update bulk availability for player {update.player_id} "
                f"on {update.date}: {e}"
            )
            self._handle_bulk_failure(update, e)
            return

        if update.player_id not in self._bulk:
            self.bulk_pending_players.discard(update.player_id)
            for hour in update.hours:
                if not self._is_queued((update.player_id, hour)):
                    self.pending_updates.discard((update.player_id, hour))
            self.events.emit("pending_changed")

    def _handle_individual_failure(self, update: IndividualUpdate, error: Exception) -> None:
        attempts = update.attempts + 1
        if update.generation != self._generation:
            # Queue was cleared while this write was in flight
            return
        if update.key in self._individual:
            # A newer edit for this cell is already queued
            return
        if attempts < self._max_attempts:
            self._individual[update.key] = replace(update, attempts=attempts)
            return
        self.events.emit("write_failed", update, error)

    def _handle_bulk_failure(self, update: BulkUpdate, error: Exception) -> None:
        attempts = update.attempts + 1
        if update.generation != self._generation or update.player_id in self._bulk:
            return
        if attempts < self._max_attempts:
            self._bulk[update.player_id] = replace(update, attempts=attempts)
            return
        self.events.emit("write_failed", update, error)

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def _arm_debounce(self) -> None:
        if self._debounce_timer is not None:
            self._debounce_timer.cancel()
        self._debounce_timer = self._scheduler.call_later(self._debounce_seconds, self.flush)

    def _schedule_follow_up(self) -> None:
        if self._follow_up_timer is not None:
            self._follow_up_timer.cancel()
        self._follow_up_timer = self._scheduler.call_later(self._follow_up_seconds, self.flush)

    def cancel(self) -> None:
        """Disarm the debounce and follow-up timers."""
        for timer in (self._debounce_timer, self._follow_up_timer):
            if timer is not None:
                timer.cancel()
        self._debounce_timer = None
        self._follow_up_timer = None

    def clear(self) -> None:
        """
        Drop queued writes and pending markers.

        Writes already in flight still finish, but a failure among them is
        not retried.
        """
        self.cancel()
        self._generation += 1
        self._individual.clear()
        self._bulk.clear()
        had_pending = self.has_pending
        self.pending_updates.clear()
        self.bulk_pending_players.clear()
        if had_pending:
            self.events.emit("pending_changed")
