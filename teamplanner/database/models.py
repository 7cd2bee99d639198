"""
SQLAlchemy ORM models for the team availability planner.
"""

import enum
from sqlalchemy import (
    JSON,
    Column,
    Integer,
    String,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    UniqueConstraint,
    Index,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from teamplanner.database.db import Base


class PlayerRole(str, enum.Enum):
    """Player role enum."""

    PLAYER = "player"
    COACH = "coach"


class AvailabilityStatus(str, enum.Enum):
    """Availability status for a single hour slot.

    Declaration order is the tie-break order used when picking the most
    common status of a row.
    """

    READY = "ready"
    UNCERTAIN = "uncertain"
    UNREADY = "unready"
    UNKNOWN = "unknown"


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
HoursType = JSON().with_variant(JSONB(), "postgresql")


class Player(Base):
    """Roster members shown as grid columns."""

    __tablename__ = "players"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    role = Column(
        Enum(PlayerRole, values_callable=lambda e: [m.value for m in e], name="playerrole"),
        nullable=False,
        default=PlayerRole.PLAYER,
        server_default=PlayerRole.PLAYER.value,
    )
    sort_order = Column(Integer, nullable=False, default=0, server_default="0")
    is_active = Column(Boolean, nullable=False, default=False, server_default="false")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    availability = relationship(
        "Availability",
        back_populates="player",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_players_sort_order", "sort_order"),
        Index("idx_players_is_active", "is_active"),
    )


class Availability(Base):
    """Per-player, per-day hour -> status map."""

    __tablename__ = "availability"

    id = Column(Integer, primary_key=True, autoincrement=True)
    player_id = Column(Integer, ForeignKey("players.id", ondelete="CASCADE"), nullable=False)
    date = Column(String(10), nullable=False)  # YYYY-MM-DD
    hours = Column(HoursType, nullable=False, default=dict)  # {"19": "ready", "20": "unready"}
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    player = relationship("Player", back_populates="availability")

    __table_args__ = (
        UniqueConstraint("player_id", "date", name="uq_availability_player_date"),
        Index("idx_availability_date", "date"),
    )
