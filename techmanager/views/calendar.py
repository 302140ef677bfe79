from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime

from techmanager.schemas import ServiceOrder
from techmanager.store import AppStore
from techmanager.views.common import StatusCounts, relevant_orders
from techmanager.views.status import calendar_color


@dataclass(frozen=True)
class CalendarEvent:
    title: str
    start: datetime
    end: datetime
    all_day: bool
    color: str
    order: ServiceOrder


def calendar_events(store: AppStore) -> list[CalendarEvent]:
    """One all-day event per visible order, on its scheduled date."""
    return [
        CalendarEvent(
            title=o.title,
            start=o.date,
            end=o.date,
            all_day=True,
            color=calendar_color(o.status),
            order=o,
        )
        for o in relevant_orders(store.service_orders, store.current_user)
    ]


def events_by_day(events: list[CalendarEvent]) -> dict[date, list[CalendarEvent]]:
    days: dict[date, list[CalendarEvent]] = defaultdict(list)
    for event in sorted(events, key=lambda e: e.start):
        days[event.start.date()].append(event)
    return dict(days)


def calendar_stats(store: AppStore) -> StatusCounts:
    return StatusCounts.of(relevant_orders(store.service_orders, store.current_user))
