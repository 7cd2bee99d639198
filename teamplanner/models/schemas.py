"""
Pydantic models for API request/response validation.

The same models are used by the planner client to parse server responses,
so the availability matrix round-trips unchanged between fetch, optimistic
merge and display.
"""

from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from teamplanner.database.models import AvailabilityStatus, PlayerRole
from teamplanner.utils.datetime_utils import parse_storage_date


def validate_hour_label(value: str) -> str:
    """Normalize an hour label ("7" / "07" -> "7") and check it is 0..23."""
    value = str(value).strip()
    if not value.isdigit() or not 0 <= int(value) <= 23:
        raise ValueError(f"Invalid hour label: {value!r}")
    return str(int(value))


def validate_date_string(value: str) -> str:
    """Check a YYYY-MM-DD date string."""
    try:
        parse_storage_date(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid date (expected YYYY-MM-DD): {value!r}")
    return value


class PlayerResponse(BaseModel):
    """Roster member."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    role: PlayerRole = PlayerRole.PLAYER
    sort_order: int = 0
    is_active: bool = False
    created_at: Optional[datetime] = None


class CreatePlayerRequest(BaseModel):
    """Request body for adding a player."""

    name: str = Field(..., min_length=1)
    role: PlayerRole = PlayerRole.PLAYER

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v


class UpdatePlayerRequest(CreatePlayerRequest):
    """Request body for editing a player's name and role."""


class SetPlayerActiveRequest(BaseModel):
    """Request body for activating / deactivating a player."""

    is_active: bool


class PlayerOrderRequest(BaseModel):
    """New grid column order as a list of player ids."""

    player_ids: List[int]


class PlayerAvailability(BaseModel):
    """One grid column: a player and their hour -> status map for a day."""

    player: PlayerResponse
    availability: Dict[str, AvailabilityStatus] = Field(default_factory=dict)


class IndividualStatusRequest(BaseModel):
    """Request body for setting one hour."""

    status: AvailabilityStatus


class BulkStatusRequest(BaseModel):
    """Request body for setting several hours of one player to one status."""

    hours: List[str] = Field(..., min_length=1)
    status: AvailabilityStatus

    @field_validator("hours")
    @classmethod
    def _validate_hours(cls, v: List[str]) -> List[str]:
        return [validate_hour_label(h) for h in v]


class PlayDayOpportunity(BaseModel):
    """Contiguous hour window (inclusive) with enough joint availability."""

    start_hour: int
    end_hour: int
    player_names: List[str]
    player_count: int

    @property
    def label(self) -> str:
        """Display range, e.g. "19:00-21:00" for hours 19 and 20."""
        return f"{self.start_hour:02d}:00-{self.end_hour + 1:02d}:00"


class ScheduleWindowResponse(BaseModel):
    """The dates shown by the planner."""

    dates: List[str]
    current_day_index: int


class DeleteResponse(BaseModel):
    """Generic delete result."""

    success: bool
    deleted: int = 0
