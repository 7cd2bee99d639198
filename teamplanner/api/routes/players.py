"""Player list, create, edit, activate, delete and reorder route handlers."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from teamplanner.api.routes import limiter
from teamplanner.database.db import get_db_session
from teamplanner.services import data_service
from teamplanner.services.data_service import PlayerNotFoundError
from teamplanner.models.schemas import (
    CreatePlayerRequest,
    DeleteResponse,
    PlayerOrderRequest,
    PlayerResponse,
    SetPlayerActiveRequest,
    UpdatePlayerRequest,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/players", response_model=List[PlayerResponse])
async def list_players(
    active_only: bool = False,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Get players in grid order.

    Query params: active_only (bool, default false).
    """
    try:
        return await data_service.get_players(session, active_only=active_only)
    except Exception as e:
        logger.error(f"Error loading players: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error loading players: {str(e)}")


@router.post("/api/players", response_model=PlayerResponse)
@limiter.limit("30/minute")
async def create_player(
    request: Request,
    body: CreatePlayerRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Add a player. New players start inactive.

    Request body:
        {
            "name": "Josh",
            "role": "player"   // or "coach"
        }
    """
    try:
        return await data_service.add_player(session, name=body.name, role=body.role)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error adding player: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error adding player: {str(e)}")


# Must be registered before /api/players/{player_id}
@router.put("/api/players/order", response_model=List[PlayerResponse])
async def reorder_players(
    body: PlayerOrderRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """Set grid column order from a list of player ids."""
    try:
        return await data_service.update_player_order(session, body.player_ids)
    except PlayerNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating player order: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error updating player order: {str(e)}")


@router.put("/api/players/{player_id}", response_model=PlayerResponse)
async def edit_player(
    player_id: int,
    body: UpdatePlayerRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """Edit a player's name and role."""
    try:
        return await data_service.update_player(session, player_id, name=body.name, role=body.role)
    except PlayerNotFoundError:
        raise HTTPException(status_code=404, detail="Player not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error updating player {player_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error updating player: {str(e)}")


@router.patch("/api/players/{player_id}/active", response_model=PlayerResponse)
async def set_player_active(
    player_id: int,
    body: SetPlayerActiveRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """
    Activate or deactivate a player.

    Returns 400 when activating would exceed the active player limit.
    """
    try:
        return await data_service.set_player_active(session, player_id, body.is_active)
    except PlayerNotFoundError:
        raise HTTPException(status_code=404, detail="Player not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error toggling player {player_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error toggling player status: {str(e)}")


@router.delete("/api/players/{player_id}", response_model=DeleteResponse)
@limiter.limit("30/minute")
async def delete_player(
    request: Request,
    player_id: int,
    session: AsyncSession = Depends(get_db_session),
):
    """Delete a player and all of their availability."""
    try:
        deleted = await data_service.delete_player(session, player_id)
        if not deleted:
            raise HTTPException(status_code=404, detail="Player not found")
        return {"success": True, "deleted": 1}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting player {player_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error deleting player: {str(e)}")
