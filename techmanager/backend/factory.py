"""Pick the backend implementation at startup."""

from __future__ import annotations

import logging

from techmanager.backend.base import Backend
from techmanager.backend.local import LocalBackend
from techmanager.backend.rest import RestBackend
from techmanager.config import Settings

logger = logging.getLogger(__name__)


def create_backend(settings: Settings) -> Backend:
    mode = settings.backend.mode
    if mode == "rest" or (mode == "auto" and settings.backend.is_configured):
        return RestBackend(settings.backend)
    if mode == "auto":
        logger.warning("Backend URL or key is missing or invalid, using the local in-memory backend")
    elif mode != "local":
        raise ValueError(f"Unknown backend mode: {mode!r}")
    return LocalBackend(auth_config=settings.auth, local_config=settings.local)
