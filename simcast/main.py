"""FastAPI app entry point."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from simcast.core.config import settings
from simcast.routers import accounts, broadcasts, channels, favorites


def create_app() -> FastAPI:
    """Build FastAPI application."""

    logging.basicConfig(level=settings.log_level)

    app = FastAPI(title="simcast", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(channels.router)
    app.include_router(broadcasts.router)
    app.include_router(accounts.router)
    app.include_router(favorites.router)

    @app.get("/healthz", tags=["health"])
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
