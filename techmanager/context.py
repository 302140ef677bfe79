"""Application context owned by the UI root.

Everything a view needs hangs off one object created at startup and handed
down explicitly; nothing here is a module-level singleton.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

from techmanager.backend.base import Backend
from techmanager.backend.factory import create_backend
from techmanager.config import Settings, get_settings
from techmanager.services.auth_bootstrap import AuthBootstrap
from techmanager.services.auth_service import AuthService
from techmanager.services.data_service import DataService
from techmanager.services.geocode import GeocodingClient
from techmanager.services.technician_service import TechnicianService
from techmanager.store import AppStore

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    backend: Backend
    store: AppStore
    auth: AuthBootstrap
    geocoder: GeocodingClient

    async def aclose(self) -> None:
        await self.auth.aclose()
        await self.geocoder.aclose()
        await self.backend.aclose()


def build_app_context(
    settings: Settings | None = None,
    backend: Backend | None = None,
    geocoder: GeocodingClient | None = None,
) -> AppContext:
    settings = settings or get_settings()
    backend = backend or create_backend(settings)
    data = DataService(backend)
    store = AppStore(
        data,
        AuthService(backend),
        TechnicianService(backend, settings.auth.min_password_length),
        default_theme=settings.ui.default_theme,
    )
    return AppContext(
        settings=settings,
        backend=backend,
        store=store,
        auth=AuthBootstrap(backend, store, data, settings.auth.fallback_timer_seconds),
        geocoder=geocoder or GeocodingClient(settings.geocoding),
    )


@asynccontextmanager
async def open_app_context(
    settings: Settings | None = None,
    backend: Backend | None = None,
    geocoder: GeocodingClient | None = None,
) -> AsyncIterator[AppContext]:
    """Build the context, start the auth bootstrap, and tear both down on exit."""
    ctx = build_app_context(settings, backend, geocoder)
    ctx.auth.start()
    logger.info("Application context started with %s", type(ctx.backend).__name__)
    try:
        yield ctx
    finally:
        await ctx.aclose()
