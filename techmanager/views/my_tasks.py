"""A technician's own orders with start/complete actions."""

from __future__ import annotations

from dataclasses import dataclass

from techmanager.backend.base import BackendError
from techmanager.schemas import ServiceOrder, ServiceOrderStatus
from techmanager.store import AppStore


@dataclass(frozen=True)
class TaskCard:
    order: ServiceOrder
    can_start: bool
    can_complete: bool


def task_card(order: ServiceOrder) -> TaskCard:
    return TaskCard(
        order=order,
        can_start=order.status not in (ServiceOrderStatus.IN_PROGRESS, ServiceOrderStatus.COMPLETED),
        can_complete=order.status != ServiceOrderStatus.COMPLETED,
    )


def my_tasks(store: AppStore) -> list[TaskCard]:
    user = store.current_user
    if user is None:
        return []
    return [task_card(o) for o in store.service_orders if o.assigned_technician_id == user.id]


async def start_task(store: AppStore, order_id: str) -> str:
    """Move a task to in-progress. Returns an error message, empty on success."""
    return await _set_status(store, order_id, ServiceOrderStatus.IN_PROGRESS)


async def complete_task(store: AppStore, order_id: str) -> str:
    return await _set_status(store, order_id, ServiceOrderStatus.COMPLETED)


async def _set_status(store: AppStore, order_id: str, status: ServiceOrderStatus) -> str:
    try:
        await store.update_service_order_status(order_id, status)
    except BackendError as exc:
        return exc.message
    return ""
