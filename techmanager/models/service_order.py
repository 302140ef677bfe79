"""Service order row: a unit of field work scheduled for a technician."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, Text, ForeignKey, JSON, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from techmanager.models.base import Base, ULIDMixin


class ServiceOrderRecord(Base, ULIDMixin):
    __tablename__ = "service_orders"

    title: Mapped[str] = mapped_column(String(300))
    description: Mapped[str] = mapped_column(Text, default="")
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    location: Mapped[dict] = mapped_column(JSON, default=dict)  # {lat, lng, address}
    status: Mapped[str] = mapped_column(String(20), default="pending")  # pending | in-progress | completed | cancelled
    assigned_technician_id: Mapped[str | None] = mapped_column(
        String(26), ForeignKey("profiles.id"), nullable=True, default=None
    )
    created_by: Mapped[str | None] = mapped_column(String(26), nullable=True, default=None)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, default=None)
