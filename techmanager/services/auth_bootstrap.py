"""Resolve the signed-in user for the UI root.

Two producers feed one user slot: the backend's auth event stream and a
fallback timer that checks for an existing session when no event has
produced a user yet (a cold load can miss the initial event). Both run the
same sequence: fast-path user from token claims, background profile
hydration, then an application-data refetch.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable

from techmanager.backend.base import Backend, BackendError, Subscription
from techmanager.schemas import AuthEvent, AuthSession, User, UserRole
from techmanager.services.auth import fast_path_user
from techmanager.services.data_service import DataService
from techmanager.store import AppStore

logger = logging.getLogger(__name__)

HYDRATING_EVENTS = (AuthEvent.SIGNED_IN, AuthEvent.INITIAL_SESSION)


class AuthStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    AUTHENTICATED = "authenticated"  # fast-path user from token claims
    HYDRATED = "hydrated"  # profile fields overlaid
    UNAUTHENTICATED = "unauthenticated"


class AuthBootstrap:
    def __init__(
        self,
        backend: Backend,
        store: AppStore,
        data: DataService,
        fallback_delay: float = 1.0,
    ):
        self.backend = backend
        self.store = store
        self.data = data
        self.fallback_delay = fallback_delay

        self.status = AuthStatus.UNINITIALIZED
        self.user: User | None = None

        self._alive = False
        self._subscription: Subscription | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()
        self._hydrated_for: str | None = None
        self._listeners: list[Callable[[], None]] = []

    @property
    def is_loading(self) -> bool:
        return self.status in (AuthStatus.UNINITIALIZED, AuthStatus.LOADING)

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ── Lifecycle ────────────────────────────────────────

    def start(self) -> None:
        """Subscribe to auth events and arm the fallback timer. Needs a running loop."""
        if self._alive:
            return
        self._alive = True
        self.status = AuthStatus.LOADING
        self._subscription = self.backend.on_auth_state_change(self._on_auth_event)
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.fallback_delay, self._on_fallback_timer)

    def stop(self) -> None:
        self._alive = False
        if self._subscription:
            self._subscription.unsubscribe()
            self._subscription = None
        if self._timer:
            self._timer.cancel()
            self._timer = None
        for task in list(self._tasks):
            task.cancel()

    async def aclose(self) -> None:
        tasks = list(self._tasks)
        self.stop()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def wait_idle(self) -> None:
        """Wait for in-flight hydration and session checks to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ── Producers ────────────────────────────────────────

    def _on_auth_event(self, event: AuthEvent, session: AuthSession | None) -> None:
        if not self._alive:
            return
        logger.debug("Auth event %s", event.value)
        if event == AuthEvent.SIGNED_OUT or session is None:
            self._hydrated_for = None
            self._publish(None, AuthStatus.UNAUTHENTICATED)
            return
        self._resolve(session, hydrate=event in HYDRATING_EVENTS)

    def _on_fallback_timer(self) -> None:
        self._timer = None
        if not self._alive or self.user is not None:
            return
        logger.debug("No auth event produced a user yet, checking the session directly")
        self._spawn(self._check_session())

    async def _check_session(self) -> None:
        try:
            session = await self.backend.get_session()
        except BackendError:
            logger.exception("Error checking the current session")
            session = None
        if not self._alive or self.user is not None:
            return
        if session is None:
            self._publish(None, AuthStatus.UNAUTHENTICATED)
            return
        self._resolve(session, hydrate=True)

    # ── Consumer ─────────────────────────────────────────

    def _resolve(self, session: AuthSession, *, hydrate: bool) -> None:
        user = fast_path_user(session)
        # A refreshed token must not downgrade an already hydrated user.
        if not (self.status == AuthStatus.HYDRATED and self.user and self.user.id == user.id):
            self._publish(user, AuthStatus.AUTHENTICATED)
        if hydrate and self._hydrated_for != user.id:
            self._hydrated_for = user.id
            self._spawn(self._hydrate(user))

    async def _hydrate(self, fast_user: User) -> None:
        try:
            profile = await self.data.fetch_profile(fast_user.id)
        except (BackendError, KeyError, ValueError):
            logger.exception("Profile hydration failed for %s, keeping token claims", fast_user.id)
            profile = None

        if not self._is_current(fast_user.id):
            return
        if profile:
            role = profile.get("role")
            self._publish(
                User(
                    id=fast_user.id,
                    email=profile.get("email") or fast_user.email,
                    name=profile.get("full_name") or fast_user.name,
                    role=role if role in (UserRole.ADMIN.value, UserRole.TECHNICIAN.value) else fast_user.role,
                    avatar_url=profile.get("avatar_url") or fast_user.avatar_url,
                ),
                AuthStatus.HYDRATED,
            )
        await self.store.fetch_data()

    def _is_current(self, user_id: str) -> bool:
        return self._alive and self.user is not None and self.user.id == user_id

    def _publish(self, user: User | None, status: AuthStatus) -> None:
        if not self._alive:
            return
        self.user = user
        self.status = status
        self.store.set_user(user)
        for listener in list(self._listeners):
            listener()

    def _spawn(self, coro) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Auth bootstrap task failed", exc_info=task.exception())
