"""Health and schedule window route handlers."""

from fastapi import APIRouter

from teamplanner.models.schemas import ScheduleWindowResponse
from teamplanner.utils.datetime_utils import (
    format_date_for_storage,
    get_current_day_index,
    get_two_week_window,
)

router = APIRouter()


@router.get("/api/health")
async def health():
    """Liveness check."""
    return {"status": "healthy"}


@router.get("/api/window", response_model=ScheduleWindowResponse)
async def get_window():
    """The 14 days shown by the planner, starting at the next Friday."""
    dates = get_two_week_window()
    return {
        "dates": [format_date_for_storage(d) for d in dates],
        "current_day_index": get_current_day_index(dates),
    }
