"""
Optimistic state tracking for one day of the grid.

Local edits are shown immediately through an override map keyed by
(player_id, hour). ``reconcile()`` runs whenever the authoritative data or
the pending markers change and:
- drops overrides the server has caught up with (same value, no longer pending)
- clears all local state once when the day's data disappears (deleted by
  another client) while the user is not actively editing
"""

import logging
from typing import Dict, Iterable, List, Sequence, Tuple

from teamplanner.client.activity import ActivityMonitor
from teamplanner.client.update_queue import UpdateQueue
from teamplanner.database.models import AvailabilityStatus
from teamplanner.models.schemas import PlayerAvailability
from teamplanner.utils.events import EventEmitter
from teamplanner.utils.grid_utils import get_bulk_status, server_status_lookup

logger = logging.getLogger(__name__)

CellKey = Tuple[int, str]


class OptimisticStateTracker:
    """Override map plus its reconciliation rules.

    Events:
        day_wiped(): local state was discarded because the day was deleted
    """

    def __init__(self, queue: UpdateQueue, activity: ActivityMonitor):
        self._queue = queue
        self._activity = activity
        self._server_data: List[PlayerAvailability] = []
        self._server_status = server_status_lookup([])
        self.overrides: Dict[CellKey, AvailabilityStatus] = {}
        self.has_handled_delete = False
        self.events = EventEmitter()

    @property
    def server_data(self) -> List[PlayerAvailability]:
        return self._server_data

    def set_server_data(self, player_availabilities: Sequence[PlayerAvailability]) -> None:
        """Replace the authoritative matrix and reconcile."""
        self._server_data = list(player_availabilities)
        self._server_status = server_status_lookup(self._server_data)
        self.reconcile()

    def apply(self, player_id: int, hour: str, status: AvailabilityStatus) -> None:
        self.overrides[(player_id, hour)] = AvailabilityStatus(status)

    def apply_bulk(self, player_id: int, hours: Iterable[str], status: AvailabilityStatus) -> None:
        for hour in hours:
            self.apply(player_id, hour, status)

    def get_effective_status(self, player_id: int, hour: str) -> AvailabilityStatus:
        """Override if present, else the server status, else unknown."""
        override = self.overrides.get((player_id, hour))
        if override is not None:
            return override
        return self._server_status(player_id, hour)

    def get_bulk_status(self, player_id: int, hours: Iterable[str]) -> AvailabilityStatus:
        return get_bulk_status(player_id, hours, self.get_effective_status)

    def reconcile(self) -> None:
        """Drop confirmed overrides and handle a day deleted elsewhere."""
        confirmed = [
            key
            for key, status in self.overrides.items()
            if self._server_status(*key) == status and not self._queue.is_pending(*key)
        ]
        for key in confirmed:
            del self.overrides[key]

        has_any_data = any(pa.availability for pa in self._server_data)
        has_local_state = bool(self.overrides) or self._queue.has_pending

        if (
            not has_any_data
            and not self.has_handled_delete
            and has_local_state
            and not self._activity.is_active
        ):
            logger.info("Day data was deleted, discarding local edits")
            self.has_handled_delete = True
            self.overrides.clear()
            self._queue.clear()
            self._activity.reset()
            self.events.emit("day_wiped")

        if has_any_data:
            self.has_handled_delete = False
