# Ensure backend is at sys.path[0] when pytest runs (from repo root or from backend dir)
import sys
from pathlib import Path

_tests_dir = Path(__file__).resolve().parent
_backend = _tests_dir.parent
_str_backend = str(_backend)
if sys.path[0:1] != [_str_backend]:
    sys.path.insert(0, _str_backend)

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from clients.schema import IdentityProfile
from core.config import Settings
from core.database import dispose_database, get_database_manager, init_database
from fakes import OWNER, RIVAL, FakeApiClient, FakeClock, FakeSSOClient, make_match, make_pilot
from main import create_app
from services.aggregation import AggregationService


@pytest.fixture
def api():
    """alpha (1) and beta (2) owned by OWNER, gamma (3) owned by RIVAL."""
    return FakeApiClient(
        pilots=[
            make_pilot("1", "alpha", OWNER, version=2),
            make_pilot("2", "beta", OWNER, version=1),
            make_pilot("3", "gamma", RIVAL, version=4),
        ],
        matches=[
            make_match("m1", "1", 1, "3", 4, winner="TeamA", created_at=1_700_000_000_000),
            make_match("m2", "3", 4, "1", 2, winner="TeamA", created_at=1_700_000_100_000),
        ],
    )


@pytest.fixture
def sso():
    return FakeSSOClient(
        profiles={
            OWNER: IdentityProfile(id=OWNER, username="owner", avatar="abc"),
            RIVAL: IdentityProfile(id=RIVAL, username="rival"),
        },
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def aggregation(api, sso, clock):
    return AggregationService(api, sso, timer=clock)


@pytest_asyncio.fixture
async def db(tmp_path):
    """Fresh on-disk SQLite account store for one test."""
    await init_database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    yield get_database_manager()
    await dispose_database()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        base_url="http://testserver",
        session_secret="test-secret",
        prewarm_on_startup=False,
    )


@pytest_asyncio.fixture
async def client(db, settings, api, sso, clock):
    """HTTP client for an app wired to the fake remotes and the test database."""
    app = create_app(settings, api_client=api, sso_client=sso, timer=clock)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as c:
        yield c

