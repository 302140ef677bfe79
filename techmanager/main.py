"""FastAPI application emulating the hosted backend for local development."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from techmanager.api.router import api_router
from techmanager.config import Settings, get_settings
from techmanager.db.engine import Database
from techmanager.services.seed import seed_demo_users


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    settings = settings or get_settings()
    database = database or Database(settings.local.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await database.create_all()
        if settings.local.seed_demo_users:
            async with database.session() as db:
                await seed_demo_users(db, settings.local)
        yield
        await database.dispose()

    app = FastAPI(
        title="Tech Manager backend",
        description="Auth, row and function endpoints for the field-service dashboard.",
        version="0.3.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type", "prefer"],
    )
    app.include_router(api_router)

    @app.get("/health")
    async def health():
        return {"ok": True}

    return app


app = create_app()
