"""Backend interface shared by the hosted REST client and the local fake.

Shape follows the hosted service: an auth client with an event stream,
generic row verbs keyed by column filters, and named serverless functions.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

from techmanager.schemas import AuthEvent, AuthSession

logger = logging.getLogger(__name__)

AuthListener = Callable[[AuthEvent, AuthSession | None], Awaitable[None] | None]


class BackendError(Exception):
    """Any failure reported by the backend, carrying the upstream message."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.message = message
        self.status = status

    def __str__(self) -> str:
        return self.message


class Subscription:
    def __init__(self, unsubscribe: Callable[[], None]):
        self._unsubscribe = unsubscribe

    def unsubscribe(self) -> None:
        self._unsubscribe()


class Backend(ABC):
    """Base class holding the current session and the auth event listeners.

    Subclasses implement the wire calls and call ``_set_session`` whenever the
    session changes so listeners hear about it.
    """

    def __init__(self, *, emit_initial_session: bool = True):
        self._session: AuthSession | None = None
        self._listeners: list[AuthListener] = []
        self._tasks: set[asyncio.Task] = set()
        # Off simulates a cold page load where the first event never arrives.
        self.emit_initial_session = emit_initial_session

    # ── Auth event stream ────────────────────────────────

    def on_auth_state_change(self, callback: AuthListener) -> Subscription:
        """Register a listener. INITIAL_SESSION arrives on a later loop turn."""
        self._listeners.append(callback)
        if self.emit_initial_session:
            loop = asyncio.get_running_loop()
            loop.call_soon(self._dispatch, callback, AuthEvent.INITIAL_SESSION, self._session)
        return Subscription(lambda: self._remove_listener(callback))

    def _remove_listener(self, callback: AuthListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _dispatch(self, callback: AuthListener, event: AuthEvent, session: AuthSession | None) -> None:
        if callback not in self._listeners:
            return
        result = callback(event, session)
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Auth listener failed", exc_info=task.exception())

    def _set_session(self, event: AuthEvent, session: AuthSession | None) -> None:
        self._session = session
        for callback in list(self._listeners):
            self._dispatch(callback, event, session)

    async def get_session(self) -> AuthSession | None:
        return self._session

    # ── Auth verbs ───────────────────────────────────────

    @abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> AuthSession: ...

    @abstractmethod
    async def sign_up(self, email: str, password: str, full_name: str) -> AuthSession: ...

    @abstractmethod
    async def refresh_session(self) -> AuthSession: ...

    @abstractmethod
    async def sign_out(self) -> None: ...

    # ── Rows ─────────────────────────────────────────────

    @abstractmethod
    async def select(
        self, table: str, *, filters: dict[str, Any] | None = None,
        order: str | None = None, descending: bool = False,
    ) -> list[dict[str, Any]]: ...

    @abstractmethod
    async def insert(self, table: str, values: dict[str, Any]) -> dict[str, Any]: ...

    @abstractmethod
    async def update(
        self, table: str, values: dict[str, Any], *, filters: dict[str, Any],
    ) -> list[dict[str, Any]]: ...

    @abstractmethod
    async def delete(self, table: str, *, filters: dict[str, Any]) -> None: ...

    # ── Functions ────────────────────────────────────────

    @abstractmethod
    async def invoke(
        self, function: str, *, method: str, body: dict[str, Any], token: str | None,
    ) -> dict[str, Any]: ...

    async def aclose(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        self._listeners.clear()
