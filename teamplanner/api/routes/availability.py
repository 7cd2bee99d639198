"""Availability matrix read, write, delete-day and opportunity route handlers."""

import logging
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from teamplanner.api.routes import limiter
from teamplanner.database.db import get_db_session
from teamplanner.services import data_service
from teamplanner.services.data_service import PlayerNotFoundError
from teamplanner.models.schemas import (
    BulkStatusRequest,
    DeleteResponse,
    IndividualStatusRequest,
    PlayDayOpportunity,
    PlayerAvailability,
    validate_date_string,
    validate_hour_label,
)
from teamplanner.utils.grid_utils import find_play_day_opportunities, get_all_hours

logger = logging.getLogger(__name__)
router = APIRouter()


def _checked_date(date: str) -> str:
    try:
        return validate_date_string(date)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


def _checked_hour(hour: str) -> str:
    try:
        return validate_hour_label(hour)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/api/availability", response_model=Dict[str, List[PlayerAvailability]])
async def get_availability_for_dates(
    dates: List[str] = Query(...),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Get the grid matrix for several days.

    Query params: dates (repeatable, YYYY-MM-DD).
    """
    checked = [_checked_date(d) for d in dates]
    try:
        return await data_service.get_availability_for_dates(session, checked)
    except Exception as e:
        logger.error(f"Error fetching availability: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error fetching availability: {str(e)}")


@router.get("/api/availability/{date}", response_model=List[PlayerAvailability])
async def get_availability_for_date(
    date: str,
    session: AsyncSession = Depends(get_db_session),
):
    """Get the grid matrix for one day (active players, grid order)."""
    date = _checked_date(date)
    try:
        return await data_service.get_availability_for_date(session, date)
    except Exception as e:
        logger.error(f"Error fetching availability for {date}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error fetching availability: {str(e)}")


@router.put("/api/availability/{date}/players/{player_id}/hours/{hour}")
async def update_individual_status(
    date: str,
    player_id: int,
    hour: str,
    body: IndividualStatusRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Set one hour of a player's day.

    Request body:
        {"status": "ready"}
    """
    date = _checked_date(date)
    hour = _checked_hour(hour)
    try:
        hours = await data_service.update_individual_status(
            session, player_id, date, hour, body.status
        )
        return {"player_id": player_id, "date": date, "hours": hours}
    except PlayerNotFoundError:
        raise HTTPException(status_code=404, detail="Player not found")
    except Exception as e:
        logger.error(
            f"Error updating availability for player {player_id} on {date} {hour}: {e}",
            exc_info=True,
        )
        raise HTTPException(status_code=500, detail=f"Error updating availability status: {str(e)}")


@router.put("/api/availability/{date}/players/{player_id}")
async def update_bulk_status(
    date: str,
    player_id: int,
    body: BulkStatusRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Set several hours of a player's day to one status.

    Request body:
        {"hours": ["19", "20", "21"], "status": "unready"}
    """
    date = _checked_date(date)
    try:
        hours = await data_service.update_bulk_status(
            session, player_id, date, body.hours, body.status
        )
        return {"player_id": player_id, "date": date, "hours": hours}
    except PlayerNotFoundError:
        raise HTTPException(status_code=404, detail="Player not found")
    except Exception as e:
        logger.error(
            f"Error updating bulk availability for player {player_id} on {date}: {e}",
            exc_info=True,
        )
        raise HTTPException(status_code=500, detail=f"Error updating bulk availability: {str(e)}")


@router.delete("/api/availability/{date}", response_model=DeleteResponse)
@limiter.limit("10/minute")
async def delete_day(
    request: Request,
    date: str,
    session: AsyncSession = Depends(get_db_session),
):
    """Delete all availability of a day."""
    date = _checked_date(date)
    try:
        deleted = await data_service.delete_day(session, date)
        return {"success": True, "deleted": deleted}
    except Exception as e:
        logger.error(f"Error deleting day {date}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error deleting day data: {str(e)}")


@router.get("/api/availability/{date}/opportunities", response_model=List[PlayDayOpportunity])
async def get_opportunities(
    date: str,
    session: AsyncSession = Depends(get_db_session),
):
    """Play-day windows computed from the stored data of a day."""
    date = _checked_date(date)
    try:
        matrix = [
            PlayerAvailability.model_validate(entry)
            for entry in await data_service.get_availability_for_date(session, date)
        ]
        return find_play_day_opportunities(matrix, hours=get_all_hours([], matrix))
    except Exception as e:
        logger.error(f"Error computing opportunities for {date}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error computing opportunities: {str(e)}")
