"""Technician roster and the admin form that creates technicians."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from techmanager.backend.base import BackendError
from techmanager.schemas import User
from techmanager.store import AppStore
from techmanager.views.common import StatusCounts, initials

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TechnicianRow:
    user: User
    initials: str
    counts: StatusCounts


@dataclass(frozen=True)
class TechnicianTotals:
    technicians: int
    assigned_orders: int
    unassigned_orders: int


def search_technicians(technicians: list[User], query: str) -> list[User]:
    q = query.strip().lower()
    if not q:
        return list(technicians)
    return [t for t in technicians if q in t.name.lower() or q in t.email.lower()]


def technician_rows(store: AppStore, query: str = "") -> list[TechnicianRow]:
    return [
        TechnicianRow(
            user=tech,
            initials=initials(tech.name),
            counts=StatusCounts.of(o for o in store.service_orders if o.assigned_technician_id == tech.id),
        )
        for tech in search_technicians(store.technicians, query)
    ]


def technician_totals(store: AppStore) -> TechnicianTotals:
    assigned = sum(1 for o in store.service_orders if o.assigned_technician_id)
    return TechnicianTotals(
        technicians=len(store.technicians),
        assigned_orders=assigned,
        unassigned_orders=len(store.service_orders) - assigned,
    )


@dataclass
class TechnicianForm:
    name: str = ""
    email: str = ""
    password: str = ""
    error: str = ""
    is_loading: bool = False

    async def submit(self, store: AppStore) -> str | None:
        """Create the technician; returns the new id, or None with ``error`` set."""
        self.error = ""
        self.is_loading = True
        try:
            user_id = await store.create_technician(self.name, self.email, self.password)
        except (BackendError, ValueError) as exc:
            logger.info("Technician creation failed: %s", exc)
            self.error = str(exc)
            return None
        finally:
            self.is_loading = False
        self.name = self.email = self.password = ""
        return user_id


async def delete_technician(store: AppStore, user_id: str) -> str:
    """Returns an error message, empty on success."""
    try:
        await store.delete_technician(user_id)
    except BackendError as exc:
        return exc.message
    return ""
