"""FastAPI dependency providers for the DB session and bearer auth."""

from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from techmanager.config import AuthConfig
from techmanager.services.auth import AuthContext, authenticate_token


def get_auth_config(request: Request) -> AuthConfig:
    return request.app.state.settings.auth


async def get_db(request: Request) -> AsyncSession:
    """Yield a session on the app's database (one request at a time)."""
    async with request.app.state.database.session() as session:
        yield session


def bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return None


async def require_auth(
    request: Request,
    db: AsyncSession = Depends(get_db),
    cfg: AuthConfig = Depends(get_auth_config),
) -> AuthContext:
    """Require a valid access token. Returns AuthContext."""
    return await authenticate_token(db, bearer_token(request), cfg)
