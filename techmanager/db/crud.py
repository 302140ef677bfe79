"""CRUD operations for the local backend tables."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, select
from sqlalchemy.ext.asyncio import AsyncSession

from techmanager.models import TABLES, AuthAccount, AuthSessionRecord, Profile, ServiceOrderRecord
from techmanager.models.base import utcnow


class UnknownTableError(LookupError):
    pass


class UnknownColumnError(ValueError):
    pass


# ── Row helpers ───────────────────────────────────────────

def get_model(table: str):
    try:
        return TABLES[table]
    except KeyError:
        raise UnknownTableError(f'relation "{table}" does not exist') from None


def _column(model, name: str):
    column = model.__table__.columns.get(name)
    if column is None:
        raise UnknownColumnError(f"Could not find the '{name}' column of '{model.__tablename__}'")
    return column


def _coerce(column, value: Any) -> Any:
    if isinstance(column.type, DateTime) and isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


def _where(model, stmt, filters: dict[str, Any] | None):
    for name, value in (filters or {}).items():
        column = _column(model, name)
        if value is None:
            stmt = stmt.where(column.is_(None))
        else:
            stmt = stmt.where(column == _coerce(column, value))
    return stmt


async def _matching(db: AsyncSession, model, filters: dict[str, Any] | None) -> list:
    result = await db.execute(_where(model, select(model), filters))
    return list(result.scalars().all())


# ── Generic table access ──────────────────────────────────

async def select_rows(
    db: AsyncSession, table: str, filters: dict[str, Any] | None = None,
    order: str | None = None, descending: bool = False,
) -> list[dict[str, Any]]:
    model = get_model(table)
    stmt = _where(model, select(model), filters)
    if order:
        column = _column(model, order)
        stmt = stmt.order_by(column.desc() if descending else column.asc())
    result = await db.execute(stmt)
    return [obj.as_row() for obj in result.scalars().all()]


async def insert_row(db: AsyncSession, table: str, values: dict[str, Any]) -> dict[str, Any]:
    model = get_model(table)
    obj = model(**{k: _coerce(_column(model, k), v) for k, v in values.items()})
    db.add(obj)
    await db.commit()
    await db.refresh(obj)
    return obj.as_row()


async def update_rows(
    db: AsyncSession, table: str, values: dict[str, Any], filters: dict[str, Any],
) -> list[dict[str, Any]]:
    model = get_model(table)
    coerced = {k: _coerce(_column(model, k), v) for k, v in values.items()}
    objs = await _matching(db, model, filters)
    for obj in objs:
        for k, v in coerced.items():
            setattr(obj, k, v)
    await db.commit()
    for obj in objs:
        await db.refresh(obj)
    return [obj.as_row() for obj in objs]


async def delete_rows(db: AsyncSession, table: str, filters: dict[str, Any]) -> int:
    model = get_model(table)
    objs = await _matching(db, model, filters)
    for obj in objs:
        await db.delete(obj)
    await db.commit()
    return len(objs)


# ── Accounts ─────────────────────────────────────────────

async def get_account(db: AsyncSession, user_id: str) -> AuthAccount | None:
    return await db.get(AuthAccount, user_id)


async def get_account_by_email(db: AsyncSession, email: str) -> AuthAccount | None:
    result = await db.execute(select(AuthAccount).where(AuthAccount.email == email.lower()))
    return result.scalars().first()


async def create_account(
    db: AsyncSession, email: str, password_hash: str, full_name: str,
    role: str = "technician", confirmed: bool = True,
) -> AuthAccount:
    """Create an auth account and its profile row in one transaction."""
    account = AuthAccount(
        email=email.lower(),
        password_hash=password_hash,
        user_metadata={"full_name": full_name, "role": role},
        email_confirmed_at=utcnow() if confirmed else None,
    )
    db.add(account)
    await db.flush()
    db.add(Profile(id=account.id, email=account.email, full_name=full_name, role=role))
    await db.commit()
    await db.refresh(account)
    return account


async def delete_account(db: AsyncSession, account: AuthAccount) -> None:
    """Remove an account together with its sessions and profile."""
    result = await db.execute(select(AuthSessionRecord).where(AuthSessionRecord.user_id == account.id))
    for s in result.scalars().all():
        await db.delete(s)
    profile = await db.get(Profile, account.id)
    if profile:
        await db.delete(profile)
    await db.delete(account)
    await db.commit()


async def mark_signed_in(db: AsyncSession, account: AuthAccount) -> AuthAccount:
    account.last_sign_in_at = utcnow()
    await db.commit()
    await db.refresh(account)
    return account


# ── Auth sessions ────────────────────────────────────────

async def create_auth_session(
    db: AsyncSession, user_id: str, refresh_token_hash: str, expires_at: datetime,
) -> AuthSessionRecord:
    record = AuthSessionRecord(user_id=user_id, refresh_token_hash=refresh_token_hash, expires_at=expires_at)
    db.add(record)
    await db.commit()
    await db.refresh(record)
    return record


async def get_auth_session(db: AsyncSession, session_id: str) -> AuthSessionRecord | None:
    return await db.get(AuthSessionRecord, session_id)


async def get_auth_session_by_refresh_hash(db: AsyncSession, token_hash: str) -> AuthSessionRecord | None:
    result = await db.execute(
        select(AuthSessionRecord).where(AuthSessionRecord.refresh_token_hash == token_hash)
    )
    return result.scalars().first()


async def delete_auth_session(db: AsyncSession, record: AuthSessionRecord) -> None:
    await db.delete(record)
    await db.commit()


# ── Profiles / orders ────────────────────────────────────

async def get_profile(db: AsyncSession, user_id: str) -> Profile | None:
    return await db.get(Profile, user_id)


async def get_service_order(db: AsyncSession, order_id: str) -> ServiceOrderRecord | None:
    return await db.get(ServiceOrderRecord, order_id)


async def unassign_orders_for_technician(db: AsyncSession, technician_id: str) -> int:
    """Null out every order assignment that points at a technician."""
    result = await db.execute(
        select(ServiceOrderRecord).where(ServiceOrderRecord.assigned_technician_id == technician_id)
    )
    orders = list(result.scalars().all())
    for order in orders:
        order.assigned_technician_id = None
        order.updated_at = utcnow()
    await db.commit()
    return len(orders)
