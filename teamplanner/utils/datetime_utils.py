"""
Datetime utility functions.
Provides the schedule window and date formatting used by the planner.
"""

from datetime import date, datetime, timedelta
from typing import List, Optional, Union
import pytz

from teamplanner.utils.constants import WINDOW_DAYS, WINDOW_START_WEEKDAY


def utcnow() -> datetime:
    """
    Get current UTC datetime using pytz.UTC.

    Returns:
        Current UTC datetime with pytz timezone information
    """
    return datetime.now(pytz.UTC)


def get_next_friday(start: Optional[date] = None) -> date:
    """
    Get the next Friday on or after the given date.

    Args:
        start: Reference date (defaults to today)

    Returns:
        The same date if it is a Friday, otherwise the following Friday
    """
    start = start or date.today()
    days_ahead = (WINDOW_START_WEEKDAY - start.weekday()) % 7
    return start + timedelta(days=days_ahead)


def get_two_week_window(start: Optional[date] = None) -> List[date]:
    """
    Get the rolling planner window: 14 consecutive days from the next Friday.

    Args:
        start: Reference date (defaults to today)
    """
    first = get_next_friday(start)
    return [first + timedelta(days=i) for i in range(WINDOW_DAYS)]


def format_date_for_storage(value: Union[date, datetime]) -> str:
    """Format a date as the YYYY-MM-DD string used as availability key."""
    return value.strftime("%Y-%m-%d")


def parse_storage_date(value: str) -> date:
    """
    Parse a YYYY-MM-DD storage string.

    Raises:
        ValueError: If the string is not a valid calendar date
    """
    return datetime.strptime(value, "%Y-%m-%d").date()


def format_date_for_display(value: date) -> str:
    """Format a date like "Friday, Jan 3"."""
    return f"{value.strftime('%A')}, {value.strftime('%b')} {value.day}"


def get_current_day_index(dates: List[date], today: Optional[date] = None) -> int:
    """Index of today in the window, or 0 when today is not part of it."""
    today = today or date.today()
    for index, value in enumerate(dates):
        if value == today:
            return index
    return 0
