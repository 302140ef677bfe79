from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, model_validator
from pydantic.alias_generators import to_camel


class ServiceOrderStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Location(BaseModel):
    lat: float | None = None
    lng: float | None = None
    address: str = ""

    model_config = {"frozen": True}

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None


class ServiceOrder(BaseModel):
    id: str
    title: str
    description: str = ""
    date: datetime
    location: Location = Location()
    status: ServiceOrderStatus = ServiceOrderStatus.PENDING
    assigned_technician_id: str | None = None
    created_at: datetime

    model_config = {"alias_generator": to_camel, "populate_by_name": True, "frozen": True}


class ServiceOrderDraft(BaseModel):
    """Admin input for a new order. Status and createdAt are never client-set."""

    title: str
    description: str = ""
    date: datetime
    location: Location
    assigned_technician_id: str | None = None

    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    @model_validator(mode="after")
    def _require_coordinates(self) -> ServiceOrderDraft:
        if not self.title.strip():
            raise ValueError("Title is required")
        if not self.location.has_coordinates:
            raise ValueError("Location needs both latitude and longitude")
        return self
