from techmanager.schemas.user import User, UserRole
from techmanager.schemas.service_order import (
    Location,
    ServiceOrder,
    ServiceOrderDraft,
    ServiceOrderStatus,
)
from techmanager.schemas.auth import AuthEvent, AuthSession, AuthUser
from techmanager.schemas.geocode import CityResult, Coordinates

__all__ = [
    "User",
    "UserRole",
    "Location",
    "ServiceOrder",
    "ServiceOrderDraft",
    "ServiceOrderStatus",
    "AuthEvent",
    "AuthSession",
    "AuthUser",
    "CityResult",
    "Coordinates",
]
