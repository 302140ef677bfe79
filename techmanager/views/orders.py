"""Service orders page: filtered list, row actions and the create form."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable

from pydantic import ValidationError

from techmanager.backend.base import BackendError
from techmanager.schemas import (
    CityResult, Coordinates, Location, ServiceOrder, ServiceOrderDraft, ServiceOrderStatus, User,
)
from techmanager.services.geocode import GeocodingClient
from techmanager.store import AppStore
from techmanager.views.common import (
    StatusCounts, StatusFilter, filter_by_status, newest_first, technician_name,
)

logger = logging.getLogger(__name__)

SEARCH_DEBOUNCE_SECONDS = 0.4
LOCATION_REQUIRED = "Search for the address or click the map to set the location."

FILTERS: tuple[StatusFilter, ...] = (
    "all",
    ServiceOrderStatus.PENDING,
    ServiceOrderStatus.IN_PROGRESS,
    ServiceOrderStatus.COMPLETED,
    ServiceOrderStatus.CANCELLED,
)


def _message(exc: Exception) -> str:
    if isinstance(exc, ValidationError):
        return "; ".join(e["msg"].removeprefix("Value error, ") for e in exc.errors())
    return str(exc)


class Debouncer:
    """Run only the last call made within ``delay`` seconds."""

    def __init__(self, delay: float = SEARCH_DEBOUNCE_SECONDS):
        self.delay = delay
        self._task: asyncio.Task | None = None

    def __call__(self, func: Callable[..., Awaitable[Any]], *args: Any) -> asyncio.Task:
        self.cancel()
        self._task = asyncio.ensure_future(self._later(func, *args))
        return self._task

    async def _later(self, func, *args):
        await asyncio.sleep(self.delay)
        return await func(*args)

    def cancel(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()

    async def wait(self) -> None:
        if self._task:
            with contextlib.suppress(asyncio.CancelledError):
                await self._task


@dataclass
class OrderRow:
    order: ServiceOrder
    technician: str


@dataclass(frozen=True)
class OrdersView:
    rows: list[OrderRow]
    counts: StatusCounts
    technicians: list[User]
    active_filter: StatusFilter


def orders_view(store: AppStore, active_filter: StatusFilter = "all") -> OrdersView:
    orders = newest_first(filter_by_status(store.service_orders, active_filter))
    return OrdersView(
        rows=[OrderRow(o, technician_name(store.users, o.assigned_technician_id)) for o in orders],
        counts=StatusCounts.of(store.service_orders),
        technicians=store.technicians,
        active_filter=active_filter,
    )


@dataclass
class OrderForm:
    geocoder: GeocodingClient
    title: str = ""
    description: str = ""
    address: str = ""
    date: str | datetime = ""
    assigned_technician_id: str = ""
    coords: Coordinates | None = None
    suggestions: list[CityResult] = field(default_factory=list)
    show_suggestions: bool = False
    is_geocoding: bool = False
    geo_error: str = ""
    error: str = ""
    debouncer: Debouncer = field(default_factory=Debouncer)

    def set_address(self, value: str) -> None:
        """Keystroke in the address box: the city search runs once typing pauses."""
        self.address = value
        self.geo_error = ""
        self.debouncer(self.search_cities, value)

    async def search_cities(self, query: str) -> None:
        if len(query.strip()) < self.geocoder.config.min_query_length:
            self.suggestions = []
            return
        self.is_geocoding = True
        try:
            self.suggestions = await self.geocoder.search_cities(query)
            self.show_suggestions = bool(self.suggestions)
        finally:
            self.is_geocoding = False

    def select_city(self, city: CityResult) -> None:
        self.address = city.name
        self.coords = Coordinates(lat=city.lat, lng=city.lng)
        self.suggestions = []
        self.show_suggestions = False
        self.geo_error = ""

    def map_click(self, lat: float, lng: float) -> None:
        self.coords = Coordinates(lat=lat, lng=lng)
        self.geo_error = ""

    def draft(self) -> ServiceOrderDraft:
        return ServiceOrderDraft(
            title=self.title,
            description=self.description,
            date=self.date,
            location=Location(address=self.address, lat=self.coords.lat, lng=self.coords.lng),
            assigned_technician_id=self.assigned_technician_id or None,
        )

    async def submit(self, store: AppStore) -> ServiceOrder | None:
        """Create the order. On failure the message is shown and the input kept."""
        self.error = ""
        if self.coords is None:
            self.geo_error = LOCATION_REQUIRED
            return None
        try:
            created = await store.add_service_order(self.draft())
        except (BackendError, ValueError) as exc:
            self.error = _message(exc)
            return None
        self.reset()
        return created

    def reset(self) -> None:
        self.debouncer.cancel()
        self.title = ""
        self.description = ""
        self.address = ""
        self.date = ""
        self.assigned_technician_id = ""
        self.coords = None
        self.suggestions = []
        self.show_suggestions = False
        self.geo_error = ""
        self.error = ""


@dataclass
class OrdersPage:
    """Local state of the page: filter, pending delete confirmation, last error."""

    store: AppStore
    active_filter: StatusFilter = "all"
    delete_confirm: str | None = None
    error: str = ""

    def view(self) -> OrdersView:
        return orders_view(self.store, self.active_filter)

    def set_filter(self, key: StatusFilter) -> None:
        self.active_filter = key if key == "all" else ServiceOrderStatus(key)

    def ask_delete(self, order_id: str | None) -> None:
        self.delete_confirm = order_id

    async def confirm_delete(self) -> bool:
        order_id, self.delete_confirm = self.delete_confirm, None
        if order_id is None:
            return False
        return await self._attempt(self.store.delete_service_order(order_id))

    async def assign(self, order_id: str, technician_id: str | None) -> bool:
        return await self._attempt(self.store.assign_service_order(order_id, technician_id))

    async def change_status(self, order_id: str, status: ServiceOrderStatus | str) -> bool:
        return await self._attempt(self.store.update_service_order_status(order_id, status))

    async def _attempt(self, operation: Awaitable[None]) -> bool:
        self.error = ""
        try:
            await operation
            return True
        except (BackendError, ValueError) as exc:
            self.error = str(exc)
            return False
