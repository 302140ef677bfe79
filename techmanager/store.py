"""Application state store.

One instance per UI root, passed to the views that need it. It is the only
thing that talks to the backend gateway: views call its methods and re-render
from its fields when a subscribed listener fires.

Reads favour availability (empty lists on failure). Writes raise so the
calling form can show the message and keep its input.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from techmanager.backend.base import BackendError
from techmanager.schemas import (
    ServiceOrder, ServiceOrderDraft, ServiceOrderStatus, User, UserRole,
)
from techmanager.services.auth_service import AuthService
from techmanager.services.data_service import DataService
from techmanager.services.technician_service import TechnicianService

logger = logging.getLogger(__name__)

Listener = Callable[[], None]

THEMES = ("light", "dark")


class AppStore:
    def __init__(
        self,
        data: DataService,
        auth: AuthService,
        technicians: TechnicianService,
        default_theme: str = "dark",
    ):
        self.data = data
        self.auth = auth
        self.technician_service = technicians

        self.current_user: User | None = None
        self.users: list[User] = []
        self.service_orders: list[ServiceOrder] = []
        self.is_loading = False
        self.theme = default_theme if default_theme in THEMES else "dark"

        # Bumped whenever the signed-in identity changes; in-flight reads
        # started under an older epoch are dropped on arrival.
        self._epoch = 0
        self._listeners: list[Listener] = []
        self._fetches = 0
        # (order id, field) -> bookkeeping for overlapping optimistic writes
        self._pending: dict[tuple[str, str], dict[str, Any]] = {}

    # ── Subscription ─────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    # ── Derived ──────────────────────────────────────────

    @property
    def technicians(self) -> list[User]:
        return [u for u in self.users if u.role == UserRole.TECHNICIAN]

    def get_order(self, order_id: str) -> ServiceOrder | None:
        return next((o for o in self.service_orders if o.id == order_id), None)

    def _patch_order(self, order_id: str, **changes: Any) -> None:
        self.service_orders = [
            o.model_copy(update=changes) if o.id == order_id else o for o in self.service_orders
        ]
        self._notify()

    # ── Session ──────────────────────────────────────────

    def set_user(self, user: User | None) -> None:
        previous_id = self.current_user.id if self.current_user else None
        if previous_id != (user.id if user else None):
            self._epoch += 1
        self.current_user = user
        self._notify()

    async def login(self, email: str, password: str) -> None:
        """Sign in. The auth bootstrap picks up the resulting event."""
        await self.auth.sign_in(email, password)

    async def register(self, name: str, email: str, password: str) -> None:
        await self.auth.sign_up(name, email, password)

    async def logout(self) -> None:
        """Clear local state first, then sign out; sign-out failures are ignored."""
        self._epoch += 1
        self.current_user = None
        self.users = []
        self.service_orders = []
        self._notify()
        try:
            await self.auth.sign_out()
        except BackendError:
            logger.warning("Sign-out failed, local state already cleared", exc_info=True)

    # ── Reads ────────────────────────────────────────────

    async def fetch_data(self) -> None:
        """Load users and orders concurrently; each side fails independently."""
        epoch = self._epoch
        self._fetches += 1
        self.is_loading = True
        self._notify()
        try:
            users, orders = await asyncio.gather(
                self.data.fetch_users(),
                self.data.fetch_service_orders(),
                return_exceptions=True,
            )
            if isinstance(users, Exception):
                logger.error("Error fetching users", exc_info=users)
                users = []
            if isinstance(orders, Exception):
                logger.error("Error fetching service orders", exc_info=orders)
                orders = []
            if epoch != self._epoch:
                logger.info("Discarding data fetched for a previous session")
                return
            self.users = users
            self.service_orders = orders
        finally:
            self._fetches -= 1
            self.is_loading = self._fetches > 0
            self._notify()

    async def _refresh_orders(self) -> None:
        epoch = self._epoch
        orders = await self.data.fetch_service_orders()
        if epoch == self._epoch:
            self.service_orders = orders
            self._notify()

    # ── Orders ───────────────────────────────────────────

    async def add_service_order(self, draft: ServiceOrderDraft | dict) -> ServiceOrder:
        """Create an order (always pending), then reload the order list."""
        user = self.current_user
        if user is None:
            raise BackendError("Not authenticated", 401)
        if not isinstance(draft, ServiceOrderDraft):
            draft = ServiceOrderDraft.model_validate(draft)
        try:
            created = await self.data.create_service_order(draft, user.id)
        except BackendError:
            logger.exception("Error adding order")
            raise
        await self._refresh_orders()
        return created

    async def update_service_order_status(self, order_id: str, status: ServiceOrderStatus | str) -> None:
        """Patch the local status at once; restore it if the backend refuses."""
        status = ServiceOrderStatus(status)
        order = self.get_order(order_id)
        user = self.current_user
        if user and not user.is_admin and order and order.assigned_technician_id != user.id:
            raise BackendError("Technicians can only update their own orders", 403)
        try:
            await self._optimistic(order_id, "status", status, self.data.update_status(order_id, status))
        except BackendError:
            logger.exception("Error updating status of order %s", order_id)
            raise

    async def assign_service_order(self, order_id: str, technician_id: str | None) -> None:
        """Same optimistic discipline as status changes, for the assignee."""
        technician_id = technician_id or None
        try:
            await self._optimistic(
                order_id, "assigned_technician_id", technician_id,
                self.data.assign_technician(order_id, technician_id),
            )
        except BackendError:
            logger.exception("Error assigning order %s", order_id)
            raise

    async def _optimistic(self, order_id: str, field: str, value: Any, request) -> None:
        """Show ``value`` locally while ``request`` runs.

        Overlapping writes to the same field share one baseline, the last
        value the server accepted. When the last of them settles and any of
        them failed, the field is set back to that baseline.
        """
        key = (order_id, field)
        order = self.get_order(order_id)
        if order is None:
            await request
            return
        slot = self._pending.setdefault(key, {"in_flight": 0, "accepted": getattr(order, field), "failed": False})
        slot["in_flight"] += 1
        self._patch_order(order_id, **{field: value})
        accepted = False
        try:
            await request
            accepted = True
            slot["accepted"] = value
        finally:
            slot["in_flight"] -= 1
            slot["failed"] = slot["failed"] or not accepted
            if slot["in_flight"] == 0:
                del self._pending[key]
                current = self.get_order(order_id)
                if slot["failed"] and current is not None and getattr(current, field) != slot["accepted"]:
                    self._patch_order(order_id, **{field: slot["accepted"]})

    async def delete_service_order(self, order_id: str) -> None:
        try:
            await self.data.delete_service_order(order_id)
        except BackendError:
            logger.exception("Error deleting order %s", order_id)
            raise
        self.service_orders = [o for o in self.service_orders if o.id != order_id]
        self._notify()

    # ── Technicians ──────────────────────────────────────

    async def create_technician(self, name: str, email: str, password: str) -> str:
        user_id = await self.technician_service.create_technician(name, email, password)
        await self.fetch_data()
        return user_id

    async def delete_technician(self, user_id: str) -> None:
        """Delete through the privileged function, then reload users and orders.

        The function unassigns the technician's orders server side, so the
        reload brings those orders back unassigned.
        """
        await self.technician_service.delete_technician(user_id)
        await self.fetch_data()

    # ── UI preferences ───────────────────────────────────

    def toggle_theme(self) -> None:
        self.theme = "dark" if self.theme == "light" else "light"
        self._notify()
