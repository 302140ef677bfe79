"""In-process backend over SQLAlchemy, used when no hosted backend is configured.

Runs the same server-side services as the FastAPI emulator, so both
backends report the same errors and enforce the same access policy.
"""

from __future__ import annotations

import asyncio
from typing import Any

from fastapi import HTTPException

from techmanager.backend.base import Backend, BackendError
from techmanager.config import AuthConfig, LocalBackendConfig
from techmanager.db import crud
from techmanager.db.engine import Database
from techmanager.schemas import AuthEvent, AuthSession
from techmanager.services import access, auth, manage_users
from techmanager.services.seed import seed_demo_users

FUNCTIONS = {"manage-users": manage_users.handle}


def _backend_error(exc: Exception) -> BackendError:
    if isinstance(exc, HTTPException):
        return BackendError(str(exc.detail), exc.status_code)
    if isinstance(exc, crud.UnknownTableError):
        return BackendError(str(exc), 404)
    return BackendError(str(exc), 400)


class LocalBackend(Backend):
    def __init__(
        self,
        database: Database | None = None,
        auth_config: AuthConfig | None = None,
        local_config: LocalBackendConfig | None = None,
        *,
        emit_initial_session: bool = True,
    ):
        super().__init__(emit_initial_session=emit_initial_session)
        self.local_config = local_config or LocalBackendConfig()
        self.database = database or Database(self.local_config.database_url)
        self._owns_database = database is None
        self.auth_config = auth_config or AuthConfig()
        self._ready: asyncio.Task | None = None

    async def _ensure_ready(self) -> None:
        if self._ready is None:
            self._ready = asyncio.ensure_future(self._prepare())
        await self._ready

    async def _prepare(self) -> None:
        await self.database.create_all()
        if self.local_config.seed_demo_users:
            async with self.database.session() as db:
                await seed_demo_users(db, self.local_config)

    async def _run(self, operation):
        """Run ``operation(db)`` in a serialised session, mapping errors to BackendError."""
        await self._ensure_ready()
        try:
            async with self.database.session() as db:
                return await operation(db)
        except (HTTPException, crud.UnknownTableError, ValueError) as exc:
            raise _backend_error(exc) from exc

    async def _caller(self, db) -> auth.AuthContext:
        token = self._session.access_token if self._session else None
        return await auth.authenticate_token(db, token, self.auth_config)

    # ── Auth ─────────────────────────────────────────────

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        session = await self._run(lambda db: auth.sign_in_with_password(db, email, password, self.auth_config))
        self._set_session(AuthEvent.SIGNED_IN, session)
        return session

    async def sign_up(self, email: str, password: str, full_name: str) -> AuthSession:
        session = await self._run(lambda db: auth.sign_up(db, email, password, full_name, self.auth_config))
        self._set_session(AuthEvent.SIGNED_IN, session)
        return session

    async def refresh_session(self) -> AuthSession:
        if not self._session:
            raise BackendError("Auth session missing!", 401)
        refresh_token = self._session.refresh_token
        session = await self._run(lambda db: auth.refresh_session(db, refresh_token, self.auth_config))
        self._set_session(AuthEvent.TOKEN_REFRESHED, session)
        return session

    async def sign_out(self) -> None:
        current = self._session
        try:
            if current:
                session_id = auth.session_id_of(current.access_token)
                await self._run(lambda db: auth.remove_session(db, session_id))
        finally:
            self._set_session(AuthEvent.SIGNED_OUT, None)

    # ── Rows ─────────────────────────────────────────────

    async def select(self, table, *, filters=None, order=None, descending=False):
        async def op(db):
            await self._caller(db)
            return await crud.select_rows(db, table, filters, order, descending)
        return await self._run(op)

    async def insert(self, table: str, values: dict[str, Any]) -> dict[str, Any]:
        async def op(db):
            caller = await self._caller(db)
            await access.ensure_can_write(db, caller, table, "insert", values=values)
            return await crud.insert_row(db, table, values)
        return await self._run(op)

    async def update(self, table, values, *, filters):
        async def op(db):
            caller = await self._caller(db)
            await access.ensure_can_write(db, caller, table, "update", values=values, filters=filters)
            return await crud.update_rows(db, table, values, filters)
        return await self._run(op)

    async def delete(self, table, *, filters):
        async def op(db):
            caller = await self._caller(db)
            await access.ensure_can_write(db, caller, table, "delete", filters=filters)
            await crud.delete_rows(db, table, filters)
        await self._run(op)

    # ── Functions ────────────────────────────────────────

    async def invoke(self, function, *, method, body, token):
        handler = FUNCTIONS.get(function)
        if handler is None:
            raise BackendError(f"Function {function} not found", 404)
        return await self._run(lambda db: handler(db, method, token, body, self.auth_config))

    async def aclose(self) -> None:
        await super().aclose()
        if self._owns_database:
            await self.database.dispose()
