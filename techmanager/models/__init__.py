"""SQLAlchemy ORM models for the local backend."""

from techmanager.models.base import Base
from techmanager.models.auth_models import AuthAccount, AuthSessionRecord
from techmanager.models.profile import Profile
from techmanager.models.service_order import ServiceOrderRecord

# Tables reachable through the row API, keyed by their public name.
TABLES = {
    "profiles": Profile,
    "service_orders": ServiceOrderRecord,
}

__all__ = [
    "Base", "AuthAccount", "AuthSessionRecord", "Profile", "ServiceOrderRecord", "TABLES",
]
