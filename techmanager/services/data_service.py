"""Gateway for profile and service-order rows.

Bulk reads degrade to an empty list; single-row writes raise BackendError.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from techmanager.backend.base import Backend, BackendError
from techmanager.schemas import (
    Location, ServiceOrder, ServiceOrderDraft, ServiceOrderStatus, User,
)

logger = logging.getLogger(__name__)

PROFILES = "profiles"
SERVICE_ORDERS = "service_orders"


def user_from_row(row: dict[str, Any]) -> User:
    email = row.get("email") or ""
    return User(
        id=row["id"],
        name=row.get("full_name") or email.split("@")[0] or "User",
        email=email,
        role=row.get("role") or "technician",
        avatar_url=row.get("avatar_url"),
    )


def order_from_row(row: dict[str, Any]) -> ServiceOrder:
    location = row.get("location") or {}
    return ServiceOrder(
        id=row["id"],
        title=row.get("title") or "",
        description=row.get("description") or "",
        date=row["date"],
        location=Location(
            lat=location.get("lat"),
            lng=location.get("lng"),
            address=location.get("address") or "",
        ),
        status=row.get("status") or ServiceOrderStatus.PENDING,
        assigned_technician_id=row.get("assigned_technician_id"),
        created_at=row["created_at"],
    )


def order_to_row(draft: ServiceOrderDraft, created_by: str) -> dict[str, Any]:
    """Insert payload for a draft. Status is always pending; createdAt is left to the server."""
    return {
        "title": draft.title.strip(),
        "description": draft.description,
        "date": draft.date.isoformat(),
        "location": draft.location.model_dump(),
        "assigned_technician_id": draft.assigned_technician_id or None,
        "status": ServiceOrderStatus.PENDING.value,
        "created_by": created_by,
    }


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _map_rows(rows: list[dict[str, Any]], mapper, kind: str) -> list:
    """Map rows one by one; a row that does not fit is logged and skipped."""
    mapped = []
    for row in rows:
        try:
            mapped.append(mapper(row))
        except (KeyError, ValueError):
            logger.warning("Skipping malformed %s row %s", kind, row.get("id"), exc_info=True)
    return mapped


class DataService:
    def __init__(self, backend: Backend):
        self.backend = backend

    async def fetch_users(self) -> list[User]:
        try:
            rows = await self.backend.select(PROFILES, order="full_name")
            return _map_rows(rows, user_from_row, "profile")
        except BackendError:
            logger.exception("Error fetching users")
            return []

    async def fetch_profile(self, user_id: str) -> dict[str, Any] | None:
        """Raw profile row for one user, or None. Errors propagate."""
        rows = await self.backend.select(PROFILES, filters={"id": user_id})
        return rows[0] if rows else None

    async def fetch_service_orders(self) -> list[ServiceOrder]:
        try:
            rows = await self.backend.select(SERVICE_ORDERS, order="date", descending=True)
            return _map_rows(rows, order_from_row, "service order")
        except BackendError:
            logger.exception("Error fetching service orders")
            return []

    async def create_service_order(self, draft: ServiceOrderDraft, created_by: str) -> ServiceOrder:
        row = await self.backend.insert(SERVICE_ORDERS, order_to_row(draft, created_by))
        return order_from_row(row)

    async def _update_one(self, order_id: str, values: dict[str, Any]) -> ServiceOrder:
        rows = await self.backend.update(
            SERVICE_ORDERS, {**values, "updated_at": _now()}, filters={"id": order_id},
        )
        if not rows:
            raise BackendError("Service order not found", 404)
        return order_from_row(rows[0])

    async def update_status(self, order_id: str, status: ServiceOrderStatus) -> ServiceOrder:
        return await self._update_one(order_id, {"status": ServiceOrderStatus(status).value})

    async def assign_technician(self, order_id: str, technician_id: str | None) -> ServiceOrder:
        return await self._update_one(order_id, {"assigned_technician_id": technician_id or None})

    async def delete_service_order(self, order_id: str) -> None:
        await self.backend.delete(SERVICE_ORDERS, filters={"id": order_id})
