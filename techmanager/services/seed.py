"""Seed the local backend with a demo admin and technician."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from techmanager.config import LocalBackendConfig
from techmanager.db import crud
from techmanager.schemas import UserRole
from techmanager.services.auth import hash_password

logger = logging.getLogger(__name__)


async def seed_demo_users(db: AsyncSession, cfg: LocalBackendConfig) -> None:
    """Create the demo accounts unless they already exist."""
    demo = [
        (cfg.demo_admin_email, cfg.demo_admin_password, cfg.demo_admin_name, UserRole.ADMIN),
        (cfg.demo_technician_email, cfg.demo_technician_password, cfg.demo_technician_name, UserRole.TECHNICIAN),
    ]
    for email, password, name, role in demo:
        if await crud.get_account_by_email(db, email):
            continue
        account = await crud.create_account(db, email, hash_password(password), name, role=role.value)
        logger.info("Seeded %s account %s", role.value, account.email)
