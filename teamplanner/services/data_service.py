"""
Data service layer for database operations.
Handles all CRUD operations for players and availability records.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from teamplanner.database.models import (
    Availability,
    AvailabilityStatus,
    Player,
    PlayerRole,
)
from teamplanner.utils.constants import MAX_ACTIVE_PLAYERS

logger = logging.getLogger(__name__)

MAX_ACTIVE_PLAYERS_MESSAGE = (
    f"Maximum {MAX_ACTIVE_PLAYERS} active players allowed. "
    "Deactivate another player first."
)


class PlayerNotFoundError(ValueError):
    """Raised when a player id does not exist."""


#
# Helper functions
#

def player_to_dict(player: Player) -> Dict:
    """Serialize a Player row."""
    return {
        "id": player.id,
        "name": player.name,
        "role": PlayerRole(player.role).value,
        "sort_order": player.sort_order,
        "is_active": player.is_active,
        "created_at": player.created_at,
    }


async def _get_player_row(session: AsyncSession, player_id: int) -> Player:
    result = await session.execute(select(Player).where(Player.id == player_id))
    player = result.scalar_one_or_none()
    if player is None:
        raise PlayerNotFoundError(f"Player {player_id} not found")
    return player


#
# Players
#

async def get_players(session: AsyncSession, active_only: bool = False) -> List[Dict]:
    """
    Get players in grid order.

    Args:
        session: Database session
        active_only: Only return active players

    Returns:
        List of player dicts ordered by sort_order, then name
    """
    query = select(Player).order_by(Player.sort_order.asc(), Player.name.asc(), Player.id.asc())
    if active_only:
        query = query.where(Player.is_active.is_(True))
    result = await session.execute(query)
    return [player_to_dict(p) for p in result.scalars().all()]


async def get_player(session: AsyncSession, player_id: int) -> Optional[Dict]:
    """Get a single player, or None."""
    result = await session.execute(select(Player).where(Player.id == player_id))
    player = result.scalar_one_or_none()
    return player_to_dict(player) if player else None


async def add_player(
    session: AsyncSession,
    name: str,
    role: PlayerRole = PlayerRole.PLAYER,
) -> Dict:
    """
    Add a player. New players start inactive at the end of the grid order.

    Raises:
        ValueError: If the name is blank
    """
    name = (name or "").strip()
    if not name:
        raise ValueError("Name is required")

    result = await session.execute(select(func.max(Player.sort_order)))
    max_order = result.scalar()
    player = Player(
        name=name,
        role=PlayerRole(role),
        sort_order=(max_order + 1) if max_order is not None else 0,
        is_active=False,
    )
    session.add(player)
    await session.commit()
    await session.refresh(player)
    logger.info(f"Added player {player.id} ({player.name!r})")
    return player_to_dict(player)


async def update_player(
    session: AsyncSession,
    player_id: int,
    name: str,
    role: PlayerRole,
) -> Dict:
    """
    Edit a player's name and role.

    Raises:
        ValueError: If the name is blank
        PlayerNotFoundError: If the player does not exist
    """
    name = (name or "").strip()
    if not name:
        raise ValueError("Name is required")

    player = await _get_player_row(session, player_id)
    player.name = name
    player.role = PlayerRole(role)
    await session.commit()
    await session.refresh(player)
    return player_to_dict(player)


async def count_active_players(session: AsyncSession) -> int:
    result = await session.execute(
        select(func.count(Player.id)).where(Player.is_active.is_(True))
    )
    return result.scalar() or 0


async def set_player_active(session: AsyncSession, player_id: int, is_active: bool) -> Dict:
    """
    Activate or deactivate a player.

    Raises:
        ValueError: When activating would exceed the active player limit
        PlayerNotFoundError: If the player does not exist
    """
    player = await _get_player_row(session, player_id)
    if is_active and not player.is_active:
        active_count = await count_active_players(session)
        if active_count >= MAX_ACTIVE_PLAYERS:
            raise ValueError(MAX_ACTIVE_PLAYERS_MESSAGE)

    player.is_active = is_active
    await session.commit()
    await session.refresh(player)
    logger.info(f"Player {player_id} {'activated' if is_active else 'deactivated'}")
    return player_to_dict(player)


async def delete_player(session: AsyncSession, player_id: int) -> bool:
    """Delete a player and all of their availability records.

    Returns:
        True if the player existed
    """
    # Delete related records first (SQLite does not enforce ON DELETE CASCADE by default)
    await session.execute(delete(Availability).where(Availability.player_id == player_id))
    result = await session.execute(delete(Player).where(Player.id == player_id))
    await session.commit()
    return result.rowcount > 0


async def update_player_order(session: AsyncSession, player_ids: List[int]) -> List[Dict]:
    """
    Set grid order: each listed player gets its list index as sort_order.

    Raises:
        PlayerNotFoundError: If any id does not exist
    """
    if len(set(player_ids)) != len(player_ids):
        raise ValueError("Duplicate player ids in order")

    result = await session.execute(select(Player.id).where(Player.id.in_(player_ids)))
    existing = set(result.scalars().all())
    missing = [pid for pid in player_ids if pid not in existing]
    if missing:
        raise PlayerNotFoundError(f"Players not found: {missing}")

    for index, player_id in enumerate(player_ids):
        await session.execute(
            update(Player).where(Player.id == player_id).values(sort_order=index)
        )
    await session.commit()
    return await get_players(session)


async def seed_players_if_needed(session: AsyncSession, names: List[str]) -> int:
    """
    Create the default roster (active, in the given order) when no players exist.

    Returns:
        Number of players created
    """
    result = await session.execute(select(func.count(Player.id)))
    if (result.scalar() or 0) > 0:
        return 0

    for index, name in enumerate(names):
        session.add(Player(name=name, role=PlayerRole.PLAYER, sort_order=index, is_active=True))
    await session.commit()
    return len(names)


#
# Availability
#

async def get_availability_for_date(session: AsyncSession, date: str) -> List[Dict]:
    """
    Get the grid matrix for one day.

    Returns:
        One entry per active player in grid order:
        {"player": {...}, "availability": {"19": "ready", ...}}
    """
    matrix = await get_availability_for_dates(session, [date])
    return matrix[date]


async def get_availability_for_dates(session: AsyncSession, dates: List[str]) -> Dict[str, List[Dict]]:
    """Get the grid matrix for several days in one query per table."""
    players = await get_players(session, active_only=True)
    records_by_key: Dict[tuple, Dict] = {}
    if dates:
        result = await session.execute(
            select(Availability.player_id, Availability.date, Availability.hours).where(
                Availability.date.in_(dates)
            )
        )
        for player_id, record_date, hours in result.all():
            records_by_key[(player_id, record_date)] = dict(hours or {})

    return {
        date: [
            {
                "player": player,
                "availability": records_by_key.get((player["id"], date), {}),
            }
            for player in players
        ]
        for date in dates
    }


async def _upsert_hours(
    session: AsyncSession,
    player_id: int,
    date: str,
    hours: Dict[str, str],
) -> Dict[str, str]:
    """
    Merge ``hours`` into a player's record for ``date`` in a single statement.

    The first write inserts the record; later writes merge their keys into
    the stored map inside the database, so concurrent writes for different
    hours of the same record all survive.
    """
    await _get_player_row(session, player_id)

    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(Availability).values(player_id=player_id, date=date, hours=dict(hours))
        merged = Availability.hours.op("||")(stmt.excluded.hours)
    elif dialect == "sqlite":
        stmt = sqlite.insert(Availability).values(player_id=player_id, date=date, hours=dict(hours))
        merged = func.json_patch(Availability.hours, stmt.excluded.hours)
    else:
        raise NotImplementedError(f"Availability upsert is not supported on {dialect}")

    stmt = stmt.on_conflict_do_update(
        index_elements=["player_id", "date"],
        set_=dict(hours=merged, updated_at=func.now()),
    ).returning(Availability.hours)
    result = await session.execute(stmt)
    stored = result.scalar_one()
    await session.commit()
    return dict(stored)


async def update_individual_status(
    session: AsyncSession,
    player_id: int,
    date: str,
    hour: str,
    status: AvailabilityStatus,
) -> Dict[str, str]:
    """
    Set one hour of a player's day, creating the record on first write.

    Returns:
        The player's updated hour map for that date
    """
    return await _upsert_hours(session, player_id, date, {hour: AvailabilityStatus(status).value})


async def update_bulk_status(
    session: AsyncSession,
    player_id: int,
    date: str,
    hours: List[str],
    status: AvailabilityStatus,
) -> Dict[str, str]:
    """Set several hours of a player's day to the same status."""
    value = AvailabilityStatus(status).value
    return await _upsert_hours(session, player_id, date, {hour: value for hour in hours})


async def delete_day(session: AsyncSession, date: str) -> int:
    """
    Delete every availability record of a day.

    Returns:
        Number of records deleted
    """
    result = await session.execute(delete(Availability).where(Availability.date == date))
    await session.commit()
    logger.info(f"Deleted {result.rowcount} availability record(s) for {date}")
    return result.rowcount
