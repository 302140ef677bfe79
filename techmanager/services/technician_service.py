"""Client for the privileged manage-users function.

The function re-checks the caller's admin role on the server; the
client's own role claim is never trusted for this path.
"""

from __future__ import annotations

import logging

from techmanager.backend.base import Backend, BackendError

logger = logging.getLogger(__name__)

MANAGE_USERS = "manage-users"


class TechnicianService:
    def __init__(self, backend: Backend, min_password_length: int = 6):
        self.backend = backend
        self.min_password_length = min_password_length

    async def _token(self) -> str:
        session = await self.backend.get_session()
        if not session:
            raise BackendError("Not authenticated", 401)
        return session.access_token

    async def create_technician(self, name: str, email: str, password: str) -> str:
        """Create a technician account. Returns the new user id."""
        name, email, password = name.strip(), email.strip(), password.strip()
        if not email or "@" not in email:
            raise ValueError("Invalid email")
        if len(password) < self.min_password_length:
            raise ValueError(f"Password must be at least {self.min_password_length} characters")
        if not name:
            raise ValueError("Name is required")

        result = await self.backend.invoke(
            MANAGE_USERS, method="POST",
            body={"email": email, "password": password, "full_name": name},
            token=await self._token(),
        )
        user_id = (result.get("user") or {}).get("id", "")
        logger.info("Technician created: %s", user_id)
        return user_id

    async def delete_technician(self, user_id: str) -> None:
        await self.backend.invoke(
            MANAGE_USERS, method="DELETE", body={"user_id": user_id}, token=await self._token(),
        )
