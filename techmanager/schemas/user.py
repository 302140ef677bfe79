from __future__ import annotations

from enum import Enum

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class UserRole(str, Enum):
    ADMIN = "admin"
    TECHNICIAN = "technician"


class User(BaseModel):
    id: str
    name: str
    email: str
    role: UserRole = UserRole.TECHNICIAN
    avatar_url: str | None = None

    model_config = {"alias_generator": to_camel, "populate_by_name": True, "frozen": True}

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
