"""Projections shared by several pages."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal

from techmanager.schemas import ServiceOrder, ServiceOrderStatus, User

StatusFilter = ServiceOrderStatus | Literal["all"]

UNASSIGNED = "Unassigned"
UNKNOWN = "Unknown"


@dataclass(frozen=True)
class StatusCounts:
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    cancelled: int = 0

    @classmethod
    def of(cls, orders: Iterable[ServiceOrder]) -> StatusCounts:
        orders = list(orders)

        def count(status: ServiceOrderStatus) -> int:
            return sum(1 for o in orders if o.status == status)

        return cls(
            total=len(orders),
            pending=count(ServiceOrderStatus.PENDING),
            in_progress=count(ServiceOrderStatus.IN_PROGRESS),
            completed=count(ServiceOrderStatus.COMPLETED),
            cancelled=count(ServiceOrderStatus.CANCELLED),
        )

    @property
    def completion_rate(self) -> int:
        """Completed share as a rounded percentage, 0 when there are no orders."""
        return int(self.completed * 100 / self.total + 0.5) if self.total else 0

    def for_filter(self, key: StatusFilter) -> int:
        if key == "all":
            return self.total
        return {
            ServiceOrderStatus.PENDING: self.pending,
            ServiceOrderStatus.IN_PROGRESS: self.in_progress,
            ServiceOrderStatus.COMPLETED: self.completed,
            ServiceOrderStatus.CANCELLED: self.cancelled,
        }[ServiceOrderStatus(key)]


def relevant_orders(orders: Iterable[ServiceOrder], user: User | None) -> list[ServiceOrder]:
    """Everything for an admin, only their own orders for a technician.

    This is a display filter; the backend's access policy is the real boundary.
    """
    if user is None:
        return []
    if user.is_admin:
        return list(orders)
    return [o for o in orders if o.assigned_technician_id == user.id]


def filter_by_status(orders: Iterable[ServiceOrder], key: StatusFilter) -> list[ServiceOrder]:
    if key == "all":
        return list(orders)
    status = ServiceOrderStatus(key)
    return [o for o in orders if o.status == status]


def newest_first(orders: Iterable[ServiceOrder]) -> list[ServiceOrder]:
    return sorted(orders, key=lambda o: o.created_at, reverse=True)


def technician_name(users: Iterable[User], technician_id: str | None) -> str:
    if not technician_id:
        return UNASSIGNED
    return next((u.name for u in users if u.id == technician_id), UNKNOWN)


def initials(name: str) -> str:
    return "".join(word[0] for word in name.split()[:2]).upper()
