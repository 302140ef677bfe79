"""Login and self-registration form."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from techmanager.backend.base import BackendError
from techmanager.store import AppStore

logger = logging.getLogger(__name__)

# Upstream auth message fragment -> what the form shows.
FRIENDLY_ERRORS = {
    "User already registered": "This email is already registered. Please sign in.",
    "Invalid login credentials": "Incorrect email or password.",
    "Email not confirmed": "Email not confirmed. Check your inbox.",
}
GENERIC_ERROR = "Authentication failed"


def friendly_auth_error(message: str) -> str:
    for fragment, friendly in FRIENDLY_ERRORS.items():
        if fragment in message:
            return friendly
    return message or GENERIC_ERROR


@dataclass
class LoginForm:
    mode: str = "sign_in"  # sign_in | sign_up
    email: str = ""
    password: str = ""
    full_name: str = ""
    error: str = ""
    is_loading: bool = False

    @property
    def is_sign_up(self) -> bool:
        return self.mode == "sign_up"

    def toggle_mode(self) -> None:
        self.mode = "sign_in" if self.is_sign_up else "sign_up"
        self.error = ""

    async def submit(self, store: AppStore) -> bool:
        """Sign in or register. On success the auth bootstrap takes over."""
        self.is_loading = True
        self.error = ""
        try:
            if self.is_sign_up:
                await store.register(self.full_name, self.email, self.password)
            else:
                await store.login(self.email, self.password)
            return True
        except BackendError as exc:
            logger.info("Authentication failed: %s", exc.message)
            self.error = friendly_auth_error(exc.message)
            return False
        finally:
            self.is_loading = False
