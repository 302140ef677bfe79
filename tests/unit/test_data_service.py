import pytest

from techmanager.backend.base import BackendError
from techmanager.schemas import Location, ServiceOrderDraft, ServiceOrderStatus
from techmanager.services.data_service import DataService, order_from_row, order_to_row, user_from_row
from techmanager.services.technician_service import TechnicianService


def _draft(**overrides):
    values = dict(
        title="Fix printer",
        date="2025-03-01T10:00",
        location=Location(address="Springfield", lat=1, lng=2),
    )
    values.update(overrides)
    return ServiceOrderDraft(**values)


def test_user_from_row_name_fallbacks():
    assert user_from_row({"id": "1", "email": "ana@x.io", "full_name": "Ana"}).name == "Ana"
    assert user_from_row({"id": "1", "email": "ana@x.io", "full_name": ""}).name == "ana"
    assert user_from_row({"id": "1"}).name == "User"


def test_order_row_mapping():
    row = {
        "id": "o1",
        "title": "Fix printer",
        "description": None,
        "date": "2025-03-01T10:00:00+00:00",
        "location": {"lat": 1.5, "lng": 2.5, "address": "Springfield"},
        "status": "completed",
        "assigned_technician_id": None,
        "created_at": "2025-02-01T00:00:00+00:00",
    }
    order = order_from_row(row)
    assert order.description == ""
    assert order.status == ServiceOrderStatus.COMPLETED
    assert order.location.lat == 1.5


def test_order_to_row_forces_pending_and_leaves_created_at_to_server():
    row = order_to_row(_draft(assigned_technician_id=""), "admin-id")
    assert row["status"] == "pending"
    assert row["assigned_technician_id"] is None
    assert row["created_by"] == "admin-id"
    assert "created_at" not in row
    assert row["location"] == {"lat": 1.0, "lng": 2.0, "address": "Springfield"}


async def test_fetches_degrade_to_empty_when_signed_out(local_backend):
    data = DataService(local_backend)
    assert await data.fetch_users() == []
    assert await data.fetch_service_orders() == []


async def test_fetch_profile_propagates_errors(local_backend):
    with pytest.raises(BackendError) as exc:
        await DataService(local_backend).fetch_profile("nobody")
    assert exc.value.status == 401


async def test_create_update_assign_delete(local_backend):
    await local_backend.sign_in_with_password("admin@example.com", "admin123")
    data = DataService(local_backend)

    users = await data.fetch_users()
    assert [u.name for u in users] == ["Administrator", "Sample Technician"]
    tech = next(u for u in users if u.role == "technician")

    created = await data.create_service_order(_draft(), created_by=users[0].id)
    assert created.status == ServiceOrderStatus.PENDING
    assert created.assigned_technician_id is None

    updated = await data.update_status(created.id, ServiceOrderStatus.IN_PROGRESS)
    assert updated.status == ServiceOrderStatus.IN_PROGRESS
    assigned = await data.assign_technician(created.id, tech.id)
    assert assigned.assigned_technician_id == tech.id

    await data.delete_service_order(created.id)
    assert await data.fetch_service_orders() == []


async def test_update_of_missing_order_raises(local_backend):
    await local_backend.sign_in_with_password("admin@example.com", "admin123")
    with pytest.raises(BackendError, match="not found"):
        await DataService(local_backend).update_status("missing", "completed")


async def test_technician_service_validates_before_calling(local_backend):
    service = TechnicianService(local_backend)
    with pytest.raises(ValueError, match="Invalid email"):
        await service.create_technician("Bob", "bob", "secret1")
    with pytest.raises(ValueError, match="at least 6"):
        await service.create_technician("Bob", "bob@x.io", "123")
    with pytest.raises(BackendError) as exc:
        await service.create_technician("Bob", "bob@x.io", "secret1")
    assert exc.value.status == 401


class RowsBackend:
    def __init__(self, rows):
        self.rows = rows

    async def select(self, table, **kwargs):
        return list(self.rows)


async def test_malformed_order_row_is_skipped_not_the_whole_list():
    good = {
        "id": "o1", "title": "Fix printer", "date": "2025-03-01T10:00:00+00:00",
        "location": {"lat": 1, "lng": 2, "address": "Springfield"},
        "status": "pending", "created_at": "2025-02-01T00:00:00+00:00",
    }
    rows = [good, {**good, "id": "o2", "status": "archived"}, {"id": "o3", "title": "No dates"}]
    orders = await DataService(RowsBackend(rows)).fetch_service_orders()
    assert [o.id for o in orders] == ["o1"]


async def test_malformed_profile_row_is_skipped():
    rows = [{"id": "u1", "email": "a@x.io"}, {"email": "no-id@x.io"}, {"id": "u3", "role": "owner"}]
    users = await DataService(RowsBackend(rows)).fetch_users()
    assert [u.id for u in users] == ["u1"]
