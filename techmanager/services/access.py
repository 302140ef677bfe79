"""Row access policy applied server side to every table call.

Client-side role checks in the views are cosmetic; this is the boundary.
"""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from techmanager.db import crud
from techmanager.schemas import UserRole
from techmanager.services.auth import AuthContext

# Columns a technician may change on an order assigned to them.
TECHNICIAN_ORDER_COLUMNS = {"status", "updated_at"}


def _is_admin(auth: AuthContext) -> bool:
    return auth.role == UserRole.ADMIN.value


async def ensure_can_write(
    db: AsyncSession,
    auth: AuthContext,
    table: str,
    action: str,  # insert | update | delete
    values: dict[str, Any] | None = None,
    filters: dict[str, Any] | None = None,
) -> None:
    crud.get_model(table)
    if _is_admin(auth):
        return

    if table == "profiles":
        if action == "update" and filters == {"id": auth.user_id} and "role" not in (values or {}):
            return
        raise HTTPException(403, "Only administrators can modify profiles")

    if table == "service_orders":
        if action != "update":
            raise HTTPException(403, "Only administrators can create or delete service orders")
        extra = set(values or {}) - TECHNICIAN_ORDER_COLUMNS
        if extra:
            raise HTTPException(403, "Technicians can only change the status of an order")
        rows = await crud.select_rows(db, table, filters)
        if any(row["assigned_technician_id"] != auth.user_id for row in rows):
            raise HTTPException(403, "Technicians can only update their own orders")
        return

    raise HTTPException(403, "Permission denied")
