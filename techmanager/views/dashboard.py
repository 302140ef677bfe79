from __future__ import annotations

from dataclasses import dataclass

from techmanager.schemas import ServiceOrder, UserRole
from techmanager.store import AppStore
from techmanager.views.common import StatusCounts, newest_first

RECENT_LIMIT = 5


@dataclass(frozen=True)
class DashboardView:
    counts: StatusCounts
    technician_count: int
    completion_rate: int
    recent_orders: list[ServiceOrder]


def dashboard_view(store: AppStore) -> DashboardView:
    """Headline numbers over every order the store holds, plus the newest five."""
    counts = StatusCounts.of(store.service_orders)
    return DashboardView(
        counts=counts,
        technician_count=sum(1 for u in store.users if u.role == UserRole.TECHNICIAN),
        completion_rate=counts.completion_rate,
        recent_orders=newest_first(store.service_orders)[:RECENT_LIMIT],
    )
