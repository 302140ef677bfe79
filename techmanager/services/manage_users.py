"""Privileged technician management, run with service-role rights.

The caller's admin role is re-read from the profile table on every call.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from techmanager.config import AuthConfig
from techmanager.db import crud
from techmanager.schemas import UserRole
from techmanager.services.auth import authenticate_token, hash_password, require_admin

logger = logging.getLogger(__name__)


async def create_technician(
    db: AsyncSession, token: str | None, body: dict[str, Any], cfg: AuthConfig,
) -> dict[str, Any]:
    """Create a pre-confirmed technician account. Returns the new auth user."""
    caller = require_admin(await authenticate_token(db, token, cfg))

    email = (body.get("email") or "").strip()
    password = body.get("password") or ""
    full_name = (body.get("full_name") or "").strip()
    if not email or not password or not full_name:
        raise HTTPException(400, "Email, password and full name are required")
    if len(password) < cfg.min_password_length:
        raise HTTPException(400, f"Password should be at least {cfg.min_password_length} characters")
    if await crud.get_account_by_email(db, email):
        raise HTTPException(400, "A user with this email address has already been registered")

    account = await crud.create_account(
        db, email, hash_password(password), full_name, role=UserRole.TECHNICIAN.value, confirmed=True,
    )
    logger.info("Technician %s created by %s", account.id, caller.user_id)
    return {
        "user": {
            "id": account.id,
            "email": account.email,
            "user_metadata": account.user_metadata,
        }
    }


async def delete_technician(
    db: AsyncSession, token: str | None, body: dict[str, Any], cfg: AuthConfig,
) -> dict[str, Any]:
    """Unassign a user's orders, then delete the account and its profile."""
    caller = require_admin(await authenticate_token(db, token, cfg))

    user_id = body.get("user_id")
    if not user_id:
        raise HTTPException(400, "user_id is required")
    if user_id == caller.user_id:
        raise HTTPException(403, "You cannot delete yourself")

    account = await crud.get_account(db, user_id)
    if not account:
        raise HTTPException(404, "User not found")

    unassigned = await crud.unassign_orders_for_technician(db, user_id)
    await crud.delete_account(db, account)
    logger.info("User %s deleted by %s (%d orders unassigned)", user_id, caller.user_id, unassigned)
    return {"success": True}


async def handle(
    db: AsyncSession, method: str, token: str | None, body: dict[str, Any], cfg: AuthConfig,
) -> dict[str, Any]:
    method = method.upper()
    if method == "POST":
        return await create_technician(db, token, body, cfg)
    if method == "DELETE":
        return await delete_technician(db, token, body, cfg)
    raise HTTPException(405, "Method not allowed")
