"""Declarative base for the local backend tables.

Rows leave the database as plain JSON-able dicts keyed by column name, the
same shape the hosted REST service returns, so both backends hand the data
services identical rows.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import String, DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from ulid import ULID


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(ULID())


def _wire_value(value: Any) -> Any:
    if isinstance(value, datetime):
        # SQLite drops tzinfo on the way back; stored values are UTC.
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    return value


class Base(DeclarativeBase):
    def as_row(self) -> dict[str, Any]:
        return {c.name: _wire_value(getattr(self, c.key)) for c in self.__table__.columns}


class ULIDMixin:
    """ULID primary key plus a server-assigned creation time."""

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=new_id)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
