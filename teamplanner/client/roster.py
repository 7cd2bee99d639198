"""
Roster management for the planner client.

Wraps the player operations of the store, keeps the player list in sync and
shows store errors in a timed banner (fade in, hold, fade out).
"""

import logging
from typing import List, Optional

from teamplanner.client.store import AvailabilityStore, StoreError
from teamplanner.database.models import PlayerRole
from teamplanner.models.schemas import PlayerResponse
from teamplanner.utils.constants import (
    ERROR_FADE_IN_SECONDS,
    ERROR_FADE_OUT_SECONDS,
    ERROR_HOLD_SECONDS,
)
from teamplanner.utils.events import EventEmitter
from teamplanner.utils.scheduling import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


class RosterManager:
    """Player list plus the add / edit / activate / delete / reorder actions.

    Events:
        players_changed(players): the player list was replaced
        error_changed(message, visible): the error banner changed
    """

    def __init__(self, store: AvailabilityStore, scheduler: Scheduler):
        self._store = store
        self._scheduler = scheduler
        self.players: List[PlayerResponse] = []
        self.error_message: Optional[str] = None
        self.is_error_visible = False
        self._error_timers: List[TimerHandle] = []
        self.events = EventEmitter()

    @property
    def active_players(self) -> List[PlayerResponse]:
        return [p for p in self.players if p.is_active]

    @property
    def inactive_players(self) -> List[PlayerResponse]:
        return [p for p in self.players if not p.is_active]

    async def load(self, active_only: bool = False) -> bool:
        try:
            players = await self._store.get_players(active_only=active_only)
        except StoreError as e:
            logger.error(f"Failed to load players: {e}")
            self.show_error(e.message)
            return False
        self._set_players(players)
        return True

    async def add_player(self, name: str, role: PlayerRole = PlayerRole.PLAYER) -> Optional[PlayerResponse]:
        """Add a player (inactive); blank names are ignored."""
        name = (name or "").strip()
        if not name:
            return None
        try:
            player = await self._store.add_player(name, role)
        except StoreError as e:
            self.show_error(e.message)
            return None
        await self.load()
        return player

    async def edit_player(self, player_id: int, name: str, role: PlayerRole) -> Optional[PlayerResponse]:
        name = (name or "").strip()
        if not name:
            return None
        try:
            player = await self._store.update_player(player_id, name, role)
        except StoreError as e:
            self.show_error(e.message)
            return None
        await self.load()
        return player

    async def toggle_active(self, player_id: int) -> bool:
        """Flip a player's active flag; the store rejects a seventh active player."""
        player = self._find(player_id)
        if player is None:
            return False
        try:
            await self._store.set_player_active(player_id, not player.is_active)
        except StoreError as e:
            self.show_error(e.message)
            return False
        await self.load()
        return True

    async def delete_player(self, player_id: int) -> bool:
        try:
            await self._store.delete_player(player_id)
        except StoreError as e:
            self.show_error(e.message)
            return False
        await self.load()
        return True

    async def reorder(self, player_ids: List[int]) -> bool:
        """
        Apply a new player order locally, then persist it.

        On failure the list is reloaded from the store instead of showing
        the error banner.
        """
        by_id = {p.id: p for p in self.players}
        ordered_ids = set(player_ids)
        reordered = [by_id[pid] for pid in player_ids if pid in by_id]
        reordered.extend(p for p in self.players if p.id not in ordered_ids)
        self._set_players(reordered)

        try:
            await self._store.update_player_order(player_ids)
        except StoreError as e:
            logger.error(f"Failed to update player order: {e}")
            await self.load()
            return False
        return True

    # ------------------------------------------------------------------
    # Error banner
    # ------------------------------------------------------------------

    def show_error(self, message: str) -> None:
        """Show ``message``, replacing any banner already on screen."""
        self._cancel_error_timers()
        self.error_message = message
        self.is_error_visible = False
        self.events.emit("error_changed", self.error_message, self.is_error_visible)
        self._error_timers.append(self._scheduler.call_later(ERROR_FADE_IN_SECONDS, self._fade_in_error))

    def dismiss_error(self) -> None:
        self._cancel_error_timers()
        self._hide_error()

    def _fade_in_error(self) -> None:
        self.is_error_visible = True
        self.events.emit("error_changed", self.error_message, self.is_error_visible)
        self._error_timers.append(self._scheduler.call_later(ERROR_HOLD_SECONDS, self._hide_error))

    def _hide_error(self) -> None:
        self.is_error_visible = False
        self.events.emit("error_changed", self.error_message, self.is_error_visible)
        self._error_timers.append(self._scheduler.call_later(ERROR_FADE_OUT_SECONDS, self._clear_error))

    def _clear_error(self) -> None:
        self._error_timers = []
        self.error_message = None
        self.events.emit("error_changed", None, False)

    def _cancel_error_timers(self) -> None:
        for timer in self._error_timers:
            timer.cancel()
        self._error_timers = []

    def _find(self, player_id: int) -> Optional[PlayerResponse]:
        return next((p for p in self.players if p.id == player_id), None)

    def _set_players(self, players: List[PlayerResponse]) -> None:
        self.players = list(players)
        self.events.emit("players_changed", self.players)
