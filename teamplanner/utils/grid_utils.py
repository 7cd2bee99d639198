"""
Grid helpers: status cycling, visible hours, effective status, bulk status
and play-day opportunity detection.

All status reads go through a ``status_of(player_id, hour)`` callable so the
same code works on authoritative data and on optimistic-merged data.
"""

from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence

from teamplanner.database.models import AvailabilityStatus
from teamplanner.models.schemas import PlayDayOpportunity, PlayerAvailability
from teamplanner.utils.constants import (
    AVAILABLE_EARLY_HOURS,
    DEFAULT_HOURS,
    MIN_PLAY_DAY_HOURS,
    MIN_PLAYERS_FOR_PLAY_DAY,
)

StatusLookup = Callable[[int, str], AvailabilityStatus]

# Order used when cycling a chip by clicking it
STATUS_CYCLE = [
    AvailabilityStatus.UNKNOWN,
    AvailabilityStatus.READY,
    AvailabilityStatus.UNCERTAIN,
    AvailabilityStatus.UNREADY,
]

# Tie-break order for bulk status
STATUS_PRIORITY = list(AvailabilityStatus)

AVAILABLE_STATUSES = (AvailabilityStatus.READY, AvailabilityStatus.UNCERTAIN)


def get_next_status(current: AvailabilityStatus) -> AvailabilityStatus:
    """Next status in the unknown -> ready -> uncertain -> unready cycle."""
    index = STATUS_CYCLE.index(AvailabilityStatus(current))
    return STATUS_CYCLE[(index + 1) % len(STATUS_CYCLE)]


def sort_hours(hours: Iterable[str]) -> List[str]:
    """Deduplicate hour labels and sort them numerically."""
    return sorted(set(hours), key=int)


def get_all_hours(
    additional_hours: Iterable[str],
    player_availabilities: Sequence[PlayerAvailability],
) -> List[str]:
    """
    Hours shown for a day: opened early hours, the default evening block and
    any hour that already has data.
    """
    hours = list(additional_hours) + list(DEFAULT_HOURS)
    for pa in player_availabilities:
        hours.extend(pa.availability.keys())
    return sort_hours(hours)


def next_early_hour(all_hours: Iterable[str]) -> Optional[str]:
    """The early hour to open next (latest first), or None when all are open."""
    shown = set(all_hours)
    remaining = [h for h in AVAILABLE_EARLY_HOURS if h not in shown]
    return remaining[-1] if remaining else None


def server_status_lookup(player_availabilities: Sequence[PlayerAvailability]) -> StatusLookup:
    """Build a lookup over authoritative data; missing keys are unknown."""
    by_player: Dict[int, Dict[str, AvailabilityStatus]] = {
        pa.player.id: pa.availability for pa in player_availabilities
    }

    def status_of(player_id: int, hour: str) -> AvailabilityStatus:
        return AvailabilityStatus(
            by_player.get(player_id, {}).get(hour, AvailabilityStatus.UNKNOWN)
        )

    return status_of


def get_bulk_status(
    player_id: int,
    hours: Iterable[str],
    status_of: StatusLookup,
) -> AvailabilityStatus:
    """
    Most common status of a player over the given hours.

    Ties go to the first status in ``ready, uncertain, unready, unknown``;
    with no hours at all the result is unknown.
    """
    counts = {status: 0 for status in STATUS_PRIORITY}
    for hour in hours:
        counts[AvailabilityStatus(status_of(player_id, hour))] += 1

    best = AvailabilityStatus.UNKNOWN
    best_count = 0
    for status in STATUS_PRIORITY:
        if counts[status] > best_count:
            best = status
            best_count = counts[status]
    return best


def find_play_day_opportunities(
    player_availabilities: Sequence[PlayerAvailability],
    hours: Optional[Iterable[str]] = None,
    status_of: Optional[StatusLookup] = None,
    min_players: int = MIN_PLAYERS_FOR_PLAY_DAY,
) -> List[PlayDayOpportunity]:
    """
    Find windows where the same group of at least ``min_players`` players is
    ready or uncertain for two or more consecutive hours.

    A block ends as soon as the available group changes, even if the head
    count stays high enough, or when the next hour is not adjacent.

    Args:
        player_availabilities: Day matrix (grid order)
        hours: Hours to scan (defaults to the hours present in the matrix)
        status_of: Status lookup (defaults to the authoritative data)
        min_players: Minimum group size
    """
    if hours is None:
        hours = [h for pa in player_availabilities for h in pa.availability.keys()]
    ordered_hours = sort_hours(hours)
    if status_of is None:
        status_of = server_status_lookup(player_availabilities)

    opportunities: List[PlayDayOpportunity] = []
    block_start: Optional[int] = None
    block_end: Optional[int] = None
    block_group: FrozenSet[str] = frozenset()
    block_names: List[str] = []

    def close_block() -> None:
        if block_start is not None and block_end - block_start >= MIN_PLAY_DAY_HOURS - 1:
            opportunities.append(
                PlayDayOpportunity(
                    start_hour=block_start,
                    end_hour=block_end,
                    player_names=block_names,
                    player_count=len(block_group),
                )
            )

    for hour in ordered_hours:
        hour_value = int(hour)
        names = [
            pa.player.name
            for pa in player_availabilities
            if status_of(pa.player.id, hour) in AVAILABLE_STATUSES
        ]
        group = frozenset(names)

        if (
            block_start is not None
            and hour_value == block_end + 1
            and group == block_group
        ):
            block_end = hour_value
            continue

        close_block()
        if len(group) >= min_players:
            block_start, block_end = hour_value, hour_value
            block_group, block_names = group, names
        else:
            block_start, block_end = None, None
            block_group, block_names = frozenset(), []

    close_block()
    return opportunities
