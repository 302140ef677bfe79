"""Async SQLAlchemy engine and session factory for the local backend."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from techmanager.models import Base


class Database:
    """One engine plus a lock that serialises sessions.

    An in-memory SQLite database lives on a single shared connection, so
    concurrent sessions would interleave their transactions on it.
    """

    def __init__(self, url: str = "sqlite+aiosqlite:///:memory:"):
        self.url = url
        if ":memory:" in url:
            self.engine = create_async_engine(url, echo=False, poolclass=StaticPool)
        else:
            db_path = Path(url.replace("sqlite+aiosqlite:///", ""))
            db_path.parent.mkdir(parents=True, exist_ok=True)
            self.engine = create_async_engine(url, echo=False)
        self.session_factory = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)
        self._lock = asyncio.Lock()

    async def create_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self._lock:
            async with self.session_factory() as db:
                yield db

    async def dispose(self) -> None:
        await self.engine.dispose()
