"""Map page: status-coloured pins and the viewport that frames them."""

from __future__ import annotations

from dataclasses import dataclass

from techmanager.config import GeocodingConfig
from techmanager.schemas import ServiceOrder
from techmanager.store import AppStore
from techmanager.views.common import StatusCounts, StatusFilter, filter_by_status, relevant_orders, technician_name
from techmanager.views.status import pin_color

SINGLE_ORDER_ZOOM = 15
MAX_FIT_ZOOM = 16
DEFAULT_ZOOM = 4


@dataclass(frozen=True)
class Marker:
    order: ServiceOrder
    lat: float
    lng: float
    color: str
    technician: str


@dataclass(frozen=True)
class Viewport:
    center: tuple[float, float] | None = None
    zoom: int | None = None
    # ((south, west), (north, east)) when several pins must fit.
    bounds: tuple[tuple[float, float], tuple[float, float]] | None = None
    max_zoom: int | None = None


def map_markers(store: AppStore, active_filter: StatusFilter = "all") -> list[Marker]:
    """Pins for visible orders that carry both coordinates."""
    orders = filter_by_status(relevant_orders(store.service_orders, store.current_user), active_filter)
    return [
        Marker(
            order=o,
            lat=o.location.lat,
            lng=o.location.lng,
            color=pin_color(o.status),
            technician=technician_name(store.users, o.assigned_technician_id),
        )
        for o in orders
        if o.location.has_coordinates
    ]


def fit_viewport(markers: list[Marker], default: GeocodingConfig | None = None) -> Viewport:
    if not markers:
        default = default or GeocodingConfig()
        return Viewport(center=(default.default_lat, default.default_lng), zoom=DEFAULT_ZOOM)
    if len(markers) == 1:
        return Viewport(center=(markers[0].lat, markers[0].lng), zoom=SINGLE_ORDER_ZOOM)
    lats = [m.lat for m in markers]
    lngs = [m.lng for m in markers]
    return Viewport(
        bounds=((min(lats), min(lngs)), (max(lats), max(lngs))),
        max_zoom=MAX_FIT_ZOOM,
    )


def map_stats(store: AppStore) -> StatusCounts:
    return StatusCounts.of(relevant_orders(store.service_orders, store.current_user))
