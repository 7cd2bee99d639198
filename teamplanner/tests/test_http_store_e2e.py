"""
End-to-end tests: planner client over the real API and database.

Requests go through httpx.ASGITransport straight into the FastAPI app, which
uses the test database via the patched db.AsyncSessionLocal.
"""
from datetime import date

import httpx
import pytest
import pytest_asyncio

from teamplanner.api.main import app
from teamplanner.client.roster import RosterManager
from teamplanner.client.session import PlannerSession
from teamplanner.client.store import HttpAvailabilityStore, ServiceAvailabilityStore, StoreError
from teamplanner.database import db
from teamplanner.database.init_defaults import init_defaults
from teamplanner.database.models import AvailabilityStatus as S
from teamplanner.services import data_service
from teamplanner.services.data_service import MAX_ACTIVE_PLAYERS_MESSAGE
from teamplanner.utils.constants import DEFAULT_PLAYER_NAMES

FRIDAY = date(2026, 10, 23)
DATE = "2026-10-23"


@pytest_asyncio.fixture
async def http_store(test_engine):
    client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")
    store = HttpAvailabilityStore(client=client)
    yield store
    await store.aclose()


@pytest_asyncio.fixture
async def service_store(test_engine):
    return ServiceAvailabilityStore()


@pytest_asyncio.fixture
async def seeded(test_engine):
    async with db.AsyncSessionLocal() as session:
        await data_service.seed_players_if_needed(session, DEFAULT_PLAYER_NAMES)
        return await data_service.get_players(session)


@pytest.fixture(params=["http", "service"])
def store(request, http_store, service_store):
    return http_store if request.param == "http" else service_store


@pytest.mark.asyncio
async def test_init_defaults_seeds_roster(test_engine, monkeypatch):
    monkeypatch.setenv("SEED_DEFAULT_PLAYERS", "true")
    await init_defaults()
    await init_defaults()

    async with db.AsyncSessionLocal() as session:
        players = await data_service.get_players(session)
    assert [p["name"] for p in players] == DEFAULT_PLAYER_NAMES


@pytest.mark.asyncio
async def test_edit_visible_before_round_trip_and_persisted(store, seeded, scheduler):
    planner = PlannerSession(store, scheduler=scheduler, dates=[FRIDAY])
    await planner.load()
    day = planner.day(DATE)
    tom = seeded[2]["id"]

    assert day.toggle_cell(tom, "19") == S.READY
    assert day.get_effective_status(tom, "19") == S.READY

    await scheduler.advance(0.3)
    assert not day.is_cell_pending(tom, "19")

    await planner.load()
    assert day.tracker.overrides == {}
    assert day.get_effective_status(tom, "19") == S.READY


@pytest.mark.asyncio
async def test_bulk_edit_persists_every_hour(store, seeded, scheduler):
    planner = PlannerSession(store, scheduler=scheduler, dates=[FRIDAY])
    await planner.load()
    day = planner.day(DATE)
    josh = seeded[4]["id"]

    day.add_early_hour()
    day.toggle_bulk(josh)
    await scheduler.advance(0.3)

    entries = await store.get_availability_for_date(DATE)
    row = next(e for e in entries if e.player.id == josh)
    assert row.availability == {h: S.READY for h in ["18", "19", "20", "21", "22", "23"]}


@pytest.mark.asyncio
async def test_delete_day_clears_data(store, seeded, scheduler):
    planner = PlannerSession(store, scheduler=scheduler, dates=[FRIDAY])
    await store.update_individual_status(seeded[0]["id"], DATE, "20", S.UNREADY)
    await planner.load()
    assert planner.day(DATE).get_effective_status(seeded[0]["id"], "20") == S.UNREADY

    assert await planner.delete_day(DATE) is True

    assert planner.day(DATE).get_effective_status(seeded[0]["id"], "20") == S.UNKNOWN


@pytest.mark.asyncio
async def test_seventh_active_player_error_message(store, seeded):
    extra = await store.add_player("Alex")
    assert extra.is_active is False

    with pytest.raises(StoreError) as exc_info:
        await store.set_player_active(extra.id, True)
    assert exc_info.value.message == MAX_ACTIVE_PLAYERS_MESSAGE


@pytest.mark.asyncio
async def test_roster_over_store(store, seeded, scheduler):
    roster = RosterManager(store, scheduler)
    await roster.load()

    new_order = [p.id for p in reversed(roster.players)]
    assert await roster.reorder(new_order) is True

    players = await store.get_players()
    assert [p.id for p in players] == new_order


@pytest.mark.asyncio
async def test_http_store_window_fetch(http_store, seeded):
    await http_store.update_individual_status(seeded[0]["id"], DATE, "19", S.READY)

    matrix = await http_store.get_availability_for_dates([DATE, "2026-10-24"])

    assert matrix[DATE][0].availability == {"19": S.READY}
    assert matrix["2026-10-24"][0].availability == {}


@pytest.mark.asyncio
async def test_http_store_missing_player(http_store, test_engine):
    with pytest.raises(StoreError) as exc_info:
        await http_store.update_individual_status(999, DATE, "19", S.READY)
    assert exc_info.value.status_code == 404
