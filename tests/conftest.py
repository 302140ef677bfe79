"""Shared fixtures: in-memory databases and both backend flavours."""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from techmanager.backend.local import LocalBackend
from techmanager.backend.rest import RestBackend
from techmanager.config import AuthConfig, BackendConfig, LocalBackendConfig, Settings
from techmanager.db.engine import Database
from techmanager.main import create_app
from techmanager.services.seed import seed_demo_users

EMULATOR_URL = "http://test"


@pytest.fixture
def settings():
    return Settings(
        backend=BackendConfig(mode="local", url="", anon_key=""),
        auth=AuthConfig(fallback_timer_seconds=0.05),
        local=LocalBackendConfig(database_url="sqlite+aiosqlite:///:memory:", seed_demo_users=True),
    )


@pytest_asyncio.fixture
async def database():
    db = Database("sqlite+aiosqlite:///:memory:")
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def seeded_database(database, settings):
    async with database.session() as db:
        await seed_demo_users(db, settings.local)
    return database


@pytest_asyncio.fixture
async def emulator(settings, seeded_database):
    """HTTP client wired to the FastAPI backend emulator (no lifespan; tables are ready)."""
    app = create_app(settings, seeded_database)
    async with AsyncClient(transport=ASGITransport(app=app), base_url=EMULATOR_URL) as client:
        yield client


@pytest_asyncio.fixture
async def local_backend(settings, database):
    backend = LocalBackend(database, settings.auth, settings.local)
    yield backend
    await backend.aclose()


@pytest_asyncio.fixture(params=["local", "rest"])
async def make_backend(request, settings, seeded_database):
    """Factory for backends sharing one database, run once per backend flavour.

    Several backends stand for several signed-in clients of the same service.
    """
    client = None
    if request.param == "rest":
        app = create_app(settings, seeded_database)
        client = AsyncClient(transport=ASGITransport(app=app), base_url=EMULATOR_URL)
    created = []

    def make(**kwargs):
        if client is None:
            backend = LocalBackend(seeded_database, settings.auth, settings.local, **kwargs)
        else:
            backend = RestBackend(
                BackendConfig(url=EMULATOR_URL, anon_key="anon-key"), client=client, **kwargs,
            )
        created.append(backend)
        return backend

    yield make

    for backend in created:
        await backend.aclose()
    if client is not None:
        await client.aclose()

