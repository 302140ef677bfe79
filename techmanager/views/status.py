"""Presentation of order statuses: labels, badge tones, calendar and pin colours."""

from __future__ import annotations

from techmanager.schemas import ServiceOrderStatus

_LABELS = {
    ServiceOrderStatus.PENDING: "Pending",
    ServiceOrderStatus.IN_PROGRESS: "In Progress",
    ServiceOrderStatus.COMPLETED: "Completed",
    ServiceOrderStatus.CANCELLED: "Cancelled",
}

_TONES = {
    ServiceOrderStatus.PENDING: "amber",
    ServiceOrderStatus.IN_PROGRESS: "blue",
    ServiceOrderStatus.COMPLETED: "emerald",
    ServiceOrderStatus.CANCELLED: "red",
}

_CALENDAR_COLORS = {
    ServiceOrderStatus.PENDING: "#d97706",
    ServiceOrderStatus.IN_PROGRESS: "#1d4ed8",
    ServiceOrderStatus.COMPLETED: "#047857",
    ServiceOrderStatus.CANCELLED: "#b91c1c",
}

_PIN_COLORS = {
    ServiceOrderStatus.PENDING: "#d97706",
    ServiceOrderStatus.IN_PROGRESS: "#2563eb",
    ServiceOrderStatus.COMPLETED: "#059669",
    ServiceOrderStatus.CANCELLED: "#dc2626",
}


def status_label(status: ServiceOrderStatus | str) -> str:
    return _LABELS[ServiceOrderStatus(status)]


def status_tone(status: ServiceOrderStatus | str) -> str:
    """Badge colour family used by every list and card."""
    return _TONES[ServiceOrderStatus(status)]


def calendar_color(status: ServiceOrderStatus | str) -> str:
    return _CALENDAR_COLORS[ServiceOrderStatus(status)]


def pin_color(status: ServiceOrderStatus | str) -> str:
    return _PIN_COLORS[ServiceOrderStatus(status)]
