"""
User activity tracking.

The planner treats the user as "actively editing" from the first edit until
a quiet period passes without another edit. While active, polling is
suspended and the day-wipe cleanup is held back.
"""

import logging
from typing import Optional

from teamplanner.utils.constants import USER_ACTIVITY_QUIET_SECONDS
from teamplanner.utils.events import EventEmitter
from teamplanner.utils.scheduling import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class ActivityMonitor:
    """Reset-on-activity flag shared by all days of a planner.

    Events:
        activity_changed(is_active): emitted on every transition
    """

    def __init__(self, scheduler: Scheduler, quiet_seconds: float = USER_ACTIVITY_QUIET_SECONDS):
        self._scheduler = scheduler
        self._quiet_seconds = quiet_seconds
        self._active = False
        self._timer: Optional[TimerHandle] = None
        self.events = EventEmitter()

    @property
    def is_active(self) -> bool:
        return self._active

    def mark_active(self) -> None:
        """Record an edit and restart the quiet period."""
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._scheduler.call_later(self._quiet_seconds, self._expire)
        self._set(True)

    def reset(self) -> None:
        """Clear the flag immediately and drop the quiet-period timer."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._set(False)

    def _expire(self) -> None:
        self._timer = None
        self._set(False)

    def _set(self, active: bool) -> None:
        if active == self._active:
            return
        self._active = active
        logger.debug(f"User activity -> {active}")
        self.events.emit("activity_changed", active)
