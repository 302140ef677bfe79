"""Auth tables owned by the backend: accounts and refresh sessions.

Clients never read these directly; they only see the profile row and the
claims embedded in their access token.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import Mapped, mapped_column

from techmanager.models.base import Base, ULIDMixin


class AuthAccount(Base, ULIDMixin):
    __tablename__ = "auth_users"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    user_metadata: Mapped[dict] = mapped_column(JSON, default=dict)
    email_confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_sign_in_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class AuthSessionRecord(Base, ULIDMixin):
    __tablename__ = "auth_sessions"

    user_id: Mapped[str] = mapped_column(String(26), ForeignKey("auth_users.id"))
    refresh_token_hash: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
