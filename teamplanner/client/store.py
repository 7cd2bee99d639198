"""
Persistence boundary used by the planner client.

``AvailabilityStore`` is the interface the update queue, poller and roster
manager talk to. ``HttpAvailabilityStore`` calls the REST API with httpx;
``ServiceAvailabilityStore`` calls the service layer in-process with its own
database sessions.
"""

import logging
import os
from typing import Callable, Dict, List, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from teamplanner.database.models import AvailabilityStatus, PlayerRole
from teamplanner.models.schemas import PlayerAvailability, PlayerResponse
from teamplanner.services import data_service

logger = logging.getLogger(__name__)

DEFAULT_API_URL = os.getenv("PLANNER_API_URL", "http://localhost:8000")
HTTP_TIMEOUT_SECONDS = 10.0


class StoreError(Exception):
    """A store call failed; ``message`` is safe to show to the user."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AvailabilityStore:
    """Interface of the remote data store."""

    async def get_players(self, active_only: bool = False) -> List[PlayerResponse]:
        raise NotImplementedError

    async def get_availability_for_date(self, date: str) -> List[PlayerAvailability]:
        raise NotImplementedError

    async def get_availability_for_dates(self, dates: List[str]) -> Dict[str, List[PlayerAvailability]]:
        return {date: await self.get_availability_for_date(date) for date in dates}

    async def update_individual_status(
        self, player_id: int, date: str, hour: str, status: AvailabilityStatus
    ) -> None:
        raise NotImplementedError

    async def update_bulk_status(
        self, player_id: int, date: str, hours: List[str], status: AvailabilityStatus
    ) -> None:
        raise NotImplementedError

    async def delete_day(self, date: str) -> None:
        raise NotImplementedError

    async def add_player(self, name: str, role: PlayerRole = PlayerRole.PLAYER) -> PlayerResponse:
        raise NotImplementedError

    async def update_player(self, player_id: int, name: str, role: PlayerRole) -> PlayerResponse:
        raise NotImplementedError

    async def set_player_active(self, player_id: int, is_active: bool) -> PlayerResponse:
        raise NotImplementedError

    async def delete_player(self, player_id: int) -> None:
        raise NotImplementedError

    async def update_player_order(self, player_ids: List[int]) -> None:
        raise NotImplementedError


class HttpAvailabilityStore(AvailabilityStore):
    """Store backed by the Team Planner REST API."""

    def __init__(self, base_url: str = DEFAULT_API_URL, client: Optional[httpx.AsyncClient] = None):
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=HTTP_TIMEOUT_SECONDS)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise StoreError(f"Could not reach the planner server: {e}") from e

        if response.status_code >= 400:
            try:
                detail = response.json().get("detail")
            except ValueError:
                detail = None
            if not isinstance(detail, str):
                detail = f"Request failed with status {response.status_code}"
            raise StoreError(detail, status_code=response.status_code)
        return response

    async def get_players(self, active_only: bool = False) -> List[PlayerResponse]:
        response = await self._request(
            "GET", "/api/players", params={"active_only": str(active_only).lower()}
        )
        return [PlayerResponse.model_validate(p) for p in response.json()]

    async def get_availability_for_date(self, date: str) -> List[PlayerAvailability]:
        response = await self._request("GET", f"/api/availability/{date}")
        return [PlayerAvailability.model_validate(pa) for pa in response.json()]

    async def get_availability_for_dates(self, dates: List[str]) -> Dict[str, List[PlayerAvailability]]:
        response = await self._request("GET", "/api/availability", params=[("dates", d) for d in dates])
        return {
            date: [PlayerAvailability.model_validate(pa) for pa in entries]
            for date, entries in response.json().items()
        }

    async def update_individual_status(
        self, player_id: int, date: str, hour: str, status: AvailabilityStatus
    ) -> None:
        await self._request(
            "PUT",
            f"/api/availability/{date}/players/{player_id}/hours/{hour}",
            json={"status": AvailabilityStatus(status).value},
        )

    async def update_bulk_status(
        self, player_id: int, date: str, hours: List[str], status: AvailabilityStatus
    ) -> None:
        await self._request(
            "PUT",
            f"/api/availability/{date}/players/{player_id}",
            json={"hours": list(hours), "status": AvailabilityStatus(status).value},
        )

    async def delete_day(self, date: str) -> None:
        await self._request("DELETE", f"/api/availability/{date}")

    async def add_player(self, name: str, role: PlayerRole = PlayerRole.PLAYER) -> PlayerResponse:
        response = await self._request(
            "POST", "/api/players", json={"name": name, "role": PlayerRole(role).value}
        )
        return PlayerResponse.model_validate(response.json())

    async def update_player(self, player_id: int, name: str, role: PlayerRole) -> PlayerResponse:
        response = await self._request(
            "PUT", f"/api/players/{player_id}", json={"name": name, "role": PlayerRole(role).value}
        )
        return PlayerResponse.model_validate(response.json())

    async def set_player_active(self, player_id: int, is_active: bool) -> PlayerResponse:
        response = await self._request(
            "PATCH", f"/api/players/{player_id}/active", json={"is_active": is_active}
        )
        return PlayerResponse.model_validate(response.json())

    async def delete_player(self, player_id: int) -> None:
        await self._request("DELETE", f"/api/players/{player_id}")

    async def update_player_order(self, player_ids: List[int]) -> None:
        await self._request("PUT", "/api/players/order", json={"player_ids": list(player_ids)})


class ServiceAvailabilityStore(AvailabilityStore):
    """
    In-process store calling the service layer directly.

    Each call opens its own session from ``session_factory`` (defaults to
    ``db.AsyncSessionLocal``), so concurrent writes never share a session.
    """

    def __init__(self, session_factory: Optional[Callable[[], AsyncSession]] = None):
        self._session_factory = session_factory

    def _session(self) -> AsyncSession:
        if self._session_factory is not None:
            return self._session_factory()
        from teamplanner.database import db

        return db.AsyncSessionLocal()

    async def _call(self, func, *args, **kwargs):
        async with self._session() as session:
            try:
                return await func(session, *args, **kwargs)
            except ValueError as e:
                await session.rollback()
                raise StoreError(str(e)) from e
            except Exception as e:
                await session.rollback()
                logger.error(f"{func.__name__} failed: {e}", exc_info=True)
                raise StoreError(f"{func.__name__.replace('_', ' ').capitalize()} failed") from e

    async def get_players(self, active_only: bool = False) -> List[PlayerResponse]:
        players = await self._call(data_service.get_players, active_only=active_only)
        return [PlayerResponse.model_validate(p) for p in players]

    async def get_availability_for_date(self, date: str) -> List[PlayerAvailability]:
        entries = await self._call(data_service.get_availability_for_date, date)
        return [PlayerAvailability.model_validate(pa) for pa in entries]

    async def get_availability_for_dates(self, dates: List[str]) -> Dict[str, List[PlayerAvailability]]:
        matrix = await self._call(data_service.get_availability_for_dates, list(dates))
        return {
            date: [PlayerAvailability.model_validate(pa) for pa in entries]
            for date, entries in matrix.items()
        }

    async def update_individual_status(
        self, player_id: int, date: str, hour: str, status: AvailabilityStatus
    ) -> None:
        await self._call(data_service.update_individual_status, player_id, date, hour, status)

    async def update_bulk_status(
        self, player_id: int, date: str, hours: List[str], status: AvailabilityStatus
    ) -> None:
        await self._call(data_service.update_bulk_status, player_id, date, list(hours), status)

    async def delete_day(self, date: str) -> None:
        await self._call(data_service.delete_day, date)

    async def add_player(self, name: str, role: PlayerRole = PlayerRole.PLAYER) -> PlayerResponse:
        player = await self._call(data_service.add_player, name, role)
        return PlayerResponse.model_validate(player)

    async def update_player(self, player_id: int, name: str, role: PlayerRole) -> PlayerResponse:
        player = await self._call(data_service.update_player, player_id, name, role)
        return PlayerResponse.model_validate(player)

    async def set_player_active(self, player_id: int, is_active: bool) -> PlayerResponse:
        player = await self._call(data_service.set_player_active, player_id, is_active)
        return PlayerResponse.model_validate(player)

    async def delete_player(self, player_id: int) -> None:
        deleted = await self._call(data_service.delete_player, player_id)
        if not deleted:
            raise StoreError("Player not found")

    async def update_player_order(self, player_ids: List[int]) -> None:
        await self._call(data_service.update_player_order, list(player_ids))
