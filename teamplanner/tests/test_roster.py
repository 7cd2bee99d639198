"""
Tests for roster management and the timed error banner.
"""
import pytest

from teamplanner.client.roster import RosterManager
from teamplanner.database.models import PlayerRole
from teamplanner.services.data_service import MAX_ACTIVE_PLAYERS_MESSAGE
from teamplanner.tests.fakes import FakeStore, make_player

NAMES = ["Mirko", "Toby", "Tom", "Denis", "Josh", "Jannis"]


@pytest.fixture
def store():
    players = [make_player(i + 1, name) for i, name in enumerate(NAMES)]
    players.append(make_player(7, "Alex", is_active=False))
    return FakeStore(players)


@pytest.fixture
def roster(store, scheduler):
    return RosterManager(store, scheduler)


@pytest.mark.asyncio
async def test_load_splits_active_and_inactive(roster):
    assert await roster.load() is True
    assert [p.name for p in roster.active_players] == NAMES
    assert [p.name for p in roster.inactive_players] == ["Alex"]


@pytest.mark.asyncio
async def test_add_player_starts_inactive(roster, store):
    await roster.load()

    player = await roster.add_player("  Sam ")

    assert player.name == "Sam"
    assert not player.is_active
    assert "Sam" in [p.name for p in roster.inactive_players]
    assert ("add_player", "Sam", PlayerRole.PLAYER) in store.calls


@pytest.mark.asyncio
async def test_blank_name_is_ignored(roster, store):
    assert await roster.add_player("   ") is None
    assert not any(c[0] == "add_player" for c in store.calls)


@pytest.mark.asyncio
async def test_edit_player_changes_role(roster):
    await roster.load()
    player = await roster.edit_player(3, "Tommy", PlayerRole.COACH)
    assert player.role == PlayerRole.COACH
    assert roster.players[2].name == "Tommy"


@pytest.mark.asyncio
async def test_seventh_active_player_is_rejected(roster, scheduler):
    await roster.load()

    assert await roster.toggle_active(7) is False

    assert roster.error_message == MAX_ACTIVE_PLAYERS_MESSAGE
    assert len(roster.active_players) == 6


@pytest.mark.asyncio
async def test_deactivate_then_activate(roster):
    await roster.load()
    assert await roster.toggle_active(1) is True
    assert await roster.toggle_active(7) is True
    assert "Alex" in [p.name for p in roster.active_players]
    assert "Mirko" not in [p.name for p in roster.active_players]


@pytest.mark.asyncio
async def test_delete_player(roster):
    await roster.load()
    assert await roster.delete_player(7) is True
    assert "Alex" not in [p.name for p in roster.players]


@pytest.mark.asyncio
async def test_delete_unknown_player_shows_error(roster):
    assert await roster.delete_player(99) is False
    assert roster.error_message == "Player not found"


# ============================================================================
# Reorder
# ============================================================================

@pytest.mark.asyncio
async def test_reorder_applies_and_persists(roster, store):
    await roster.load()
    new_order = [6, 5, 4, 3, 2, 1, 7]

    assert await roster.reorder(new_order) is True

    assert [p.id for p in roster.players] == new_order
    assert ("update_player_order", tuple(new_order)) in store.calls


@pytest.mark.asyncio
async def test_reorder_failure_reloads(roster, store):
    await roster.load()
    store.fail_order = True
    seen = []
    roster.events.subscribe("players_changed", lambda players: seen.append([p.id for p in players]))

    assert await roster.reorder([2, 1, 3, 4, 5, 6, 7]) is False

    # Optimistic order first, then the store's order again
    assert seen[0][:2] == [2, 1]
    assert [p.id for p in roster.players] == [1, 2, 3, 4, 5, 6, 7]
    assert roster.error_message is None


# ============================================================================
# Error banner
# ============================================================================

@pytest.mark.asyncio
async def test_error_banner_fades_in_holds_and_clears(roster, scheduler):
    roster.show_error("Something went wrong")
    assert roster.error_message == "Something went wrong"
    assert not roster.is_error_visible

    await scheduler.advance(0.05)
    assert roster.is_error_visible

    await scheduler.advance(3.9)
    assert roster.is_error_visible

    await scheduler.advance(0.2)
    assert not roster.is_error_visible
    assert roster.error_message == "Something went wrong"

    await scheduler.advance(0.3)
    assert roster.error_message is None


@pytest.mark.asyncio
async def test_new_error_replaces_banner(roster, scheduler):
    roster.show_error("first")
    await scheduler.advance(3.0)
    roster.show_error("second")
    await scheduler.advance(3.0)

    assert roster.error_message == "second"
    assert roster.is_error_visible


@pytest.mark.asyncio
async def test_dismiss_error(roster, scheduler):
    roster.show_error("oops")
    await scheduler.advance(0.05)
    roster.dismiss_error()
    assert not roster.is_error_visible

    await scheduler.advance(0.3)
    assert roster.error_message is None
