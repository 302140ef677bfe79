import asyncio

import pytest_asyncio

from techmanager.backend.base import BackendError
from techmanager.backend.local import LocalBackend
from techmanager.db import crud
from techmanager.services.auth_bootstrap import AuthBootstrap, AuthStatus
from techmanager.services.auth_service import AuthService
from techmanager.services.data_service import DataService
from techmanager.services.technician_service import TechnicianService
from techmanager.store import AppStore

FALLBACK = 0.05


@pytest_asyncio.fixture
async def wire(settings, seeded_database):
    """Build backend + store + bootstrap; tears every piece down afterwards."""
    built = []

    def make(emit_initial_session=True):
        backend = LocalBackend(
            seeded_database, settings.auth, settings.local, emit_initial_session=emit_initial_session,
        )
        data = DataService(backend)
        store = AppStore(data, AuthService(backend), TechnicianService(backend))
        bootstrap = AuthBootstrap(backend, store, data, fallback_delay=FALLBACK)
        built.append((backend, bootstrap))
        return backend, store, data, bootstrap

    yield make

    for backend, bootstrap in built:
        await bootstrap.aclose()
        await backend.aclose()


def _count_profile_fetches(data):
    calls = []
    original = data.fetch_profile

    async def counting(user_id):
        calls.append(user_id)
        return await original(user_id)

    data.fetch_profile = counting
    return calls


async def test_no_session_resolves_to_signed_out(wire):
    backend, store, data, bootstrap = wire()
    assert bootstrap.status == AuthStatus.UNINITIALIZED
    bootstrap.start()
    assert bootstrap.is_loading

    await asyncio.sleep(0)
    assert bootstrap.status == AuthStatus.UNAUTHENTICATED
    assert bootstrap.user is None
    assert not bootstrap.is_loading


async def test_sign_in_publishes_fast_path_then_hydrates(wire, seeded_database):
    async with seeded_database.session() as db:
        await crud.update_rows(
            db, "profiles", {"full_name": "Ann Admin", "avatar_url": "https://img/ann.png"},
            {"email": "admin@example.com"},
        )
    backend, store, data, bootstrap = wire()
    bootstrap.start()
    await asyncio.sleep(0)

    await store.login("admin@example.com", "admin123")
    # Token claims only: no round trip has happened yet.
    assert bootstrap.status == AuthStatus.AUTHENTICATED
    assert bootstrap.user.name == "Administrator"
    assert bootstrap.user.is_admin
    assert store.current_user == bootstrap.user

    await bootstrap.wait_idle()
    assert bootstrap.status == AuthStatus.HYDRATED
    assert bootstrap.user.name == "Ann Admin"
    assert bootstrap.user.avatar_url == "https://img/ann.png"
    assert store.current_user.name == "Ann Admin"
    assert [u.email for u in store.users] == ["admin@example.com", "tech@example.com"]


async def test_existing_session_arrives_with_initial_event(wire):
    backend, store, data, bootstrap = wire()
    await backend.sign_in_with_password("tech@example.com", "tech123")

    bootstrap.start()
    await asyncio.sleep(0)
    assert bootstrap.user is not None
    assert bootstrap.user.email == "tech@example.com"
    assert not bootstrap.user.is_admin

    await bootstrap.wait_idle()
    assert bootstrap.status == AuthStatus.HYDRATED


async def test_fallback_timer_recovers_missed_initial_event(wire):
    backend, store, data, bootstrap = wire(emit_initial_session=False)
    await backend.sign_in_with_password("admin@example.com", "admin123")

    bootstrap.start()
    await asyncio.sleep(0)
    assert bootstrap.is_loading

    await asyncio.sleep(FALLBACK * 3)
    await bootstrap.wait_idle()
    assert bootstrap.status == AuthStatus.HYDRATED
    assert bootstrap.user.email == "admin@example.com"
    assert store.users


async def test_fallback_timer_without_session_stops_loading(wire):
    backend, store, data, bootstrap = wire(emit_initial_session=False)
    bootstrap.start()
    await asyncio.sleep(FALLBACK * 3)
    await bootstrap.wait_idle()
    assert bootstrap.status == AuthStatus.UNAUTHENTICATED
    assert not bootstrap.is_loading


async def test_fallback_session_check_error_leaves_user_signed_out(wire):
    backend, store, data, bootstrap = wire(emit_initial_session=False)

    async def broken():
        raise BackendError("storage unavailable")

    backend.get_session = broken
    bootstrap.start()
    await asyncio.sleep(FALLBACK * 3)
    await bootstrap.wait_idle()
    assert bootstrap.user is None
    assert not bootstrap.is_loading


async def test_initial_event_and_timer_hydrate_once(wire):
    backend, store, data, bootstrap = wire()
    calls = _count_profile_fetches(data)
    await backend.sign_in_with_password("admin@example.com", "admin123")

    bootstrap.start()
    await asyncio.sleep(FALLBACK * 3)
    await bootstrap.wait_idle()
    await store.login("admin@example.com", "admin123")
    await bootstrap.wait_idle()

    assert len(calls) == 1


async def test_hydration_failure_keeps_fast_path_user(wire):
    backend, store, data, bootstrap = wire()

    async def failing(user_id):
        raise BackendError("profiles unavailable", 500)

    data.fetch_profile = failing
    bootstrap.start()
    await store.login("tech@example.com", "tech123")
    await bootstrap.wait_idle()

    assert bootstrap.status == AuthStatus.AUTHENTICATED
    assert bootstrap.user.name == "Sample Technician"
    assert store.users  # the data refetch still ran


async def test_token_refresh_does_not_downgrade_or_rehydrate(wire):
    backend, store, data, bootstrap = wire()
    calls = _count_profile_fetches(data)
    bootstrap.start()
    await store.login("admin@example.com", "admin123")
    await bootstrap.wait_idle()
    hydrated = bootstrap.user

    await backend.refresh_session()
    await bootstrap.wait_idle()
    assert bootstrap.status == AuthStatus.HYDRATED
    assert bootstrap.user == hydrated
    assert len(calls) == 1


async def test_sign_out_publishes_no_user(wire):
    backend, store, data, bootstrap = wire()
    bootstrap.start()
    await store.login("admin@example.com", "admin123")
    await bootstrap.wait_idle()

    await store.logout()
    assert bootstrap.status == AuthStatus.UNAUTHENTICATED
    assert bootstrap.user is None
    assert store.current_user is None
    assert store.service_orders == []

    # Signing in again hydrates again.
    calls = _count_profile_fetches(data)
    await store.login("admin@example.com", "admin123")
    await bootstrap.wait_idle()
    assert len(calls) == 1


async def test_teardown_ignores_late_events(wire):
    backend, store, data, bootstrap = wire()
    bootstrap.start()
    bootstrap.stop()

    await asyncio.sleep(FALLBACK * 3)
    assert bootstrap.status == AuthStatus.LOADING
    assert store.current_user is None

    await backend.sign_in_with_password("admin@example.com", "admin123")
    assert bootstrap.user is None


async def test_teardown_cancels_inflight_hydration(wire):
    backend, store, data, bootstrap = wire()
    bootstrap.start()
    await store.login("admin@example.com", "admin123")
    await bootstrap.aclose()

    assert bootstrap.status == AuthStatus.AUTHENTICATED
    assert store.users == []
