from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from techmanager.db import crud
from techmanager.db.engine import Database


@pytest_asyncio.fixture
async def db():
    database = Database("sqlite+aiosqlite:///:memory:")
    await database.create_all()
    async with database.session() as session:
        yield session
    await database.dispose()


async def _technician(db, email="tech@test.com", name="Tech"):
    return await crud.create_account(db, email, "hash", name, role="technician")


async def _order(db, title="Fix printer", technician_id=None, date="2025-03-01T10:00:00"):
    return await crud.insert_row(db, "service_orders", {
        "title": title,
        "date": date,
        "location": {"lat": 1.0, "lng": 2.0, "address": "Springfield"},
        "assigned_technician_id": technician_id,
    })


async def test_create_account_creates_profile(db):
    account = await crud.create_account(db, "Ann@Test.com", "hash", "Ann", role="admin")
    profile = await crud.get_profile(db, account.id)
    assert profile is not None
    assert profile.full_name == "Ann"
    assert profile.role == "admin"

    fetched = await crud.get_account_by_email(db, "ann@test.com")
    assert fetched is not None
    assert fetched.id == account.id


async def test_insert_row_defaults(db):
    row = await _order(db)
    assert row["id"]
    assert row["status"] == "pending"
    assert row["assigned_technician_id"] is None
    assert row["created_at"].endswith("+00:00")
    assert row["location"] == {"lat": 1.0, "lng": 2.0, "address": "Springfield"}


async def test_select_rows_filters_and_orders(db):
    tech = await _technician(db)
    await _order(db, "early", tech.id, "2025-01-01T08:00:00")
    await _order(db, "late", None, "2025-06-01T08:00:00")

    newest = await crud.select_rows(db, "service_orders", order="date", descending=True)
    assert [r["title"] for r in newest] == ["late", "early"]

    mine = await crud.select_rows(db, "service_orders", {"assigned_technician_id": tech.id})
    assert [r["title"] for r in mine] == ["early"]

    unassigned = await crud.select_rows(db, "service_orders", {"assigned_technician_id": None})
    assert [r["title"] for r in unassigned] == ["late"]


async def test_update_and_delete_rows(db):
    row = await _order(db)
    updated = await crud.update_rows(db, "service_orders", {"status": "completed"}, {"id": row["id"]})
    assert updated[0]["status"] == "completed"

    assert await crud.delete_rows(db, "service_orders", {"id": row["id"]}) == 1
    assert await crud.select_rows(db, "service_orders") == []


async def test_unknown_table_and_column(db):
    with pytest.raises(crud.UnknownTableError):
        await crud.select_rows(db, "auth_users")
    with pytest.raises(crud.UnknownColumnError):
        await crud.select_rows(db, "service_orders", {"nope": 1})


async def test_delete_account_drops_profile_and_sessions(db):
    tech = await _technician(db)
    await crud.create_auth_session(db, tech.id, "token-hash", _far_future())

    await crud.delete_account(db, tech)

    assert await crud.get_profile(db, tech.id) is None
    assert await crud.get_auth_session_by_refresh_hash(db, "token-hash") is None


async def test_unassign_orders_for_technician(db):
    tech = await _technician(db)
    other = await _technician(db, "other@test.com", "Other")
    await _order(db, "a", tech.id)
    await _order(db, "b", tech.id)
    await _order(db, "c", other.id)

    assert await crud.unassign_orders_for_technician(db, tech.id) == 2
    rows = await crud.select_rows(db, "service_orders", order="title")
    assert [r["assigned_technician_id"] for r in rows] == [None, None, other.id]


def _far_future():
    return datetime.now(timezone.utc) + timedelta(days=1)
