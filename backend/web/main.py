"""Patchbay Web Backend - FastAPI Application."""

import logging
import os

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.web.core.config import PROJECT_ROOT
from backend.web.core.lifespan import lifespan
from backend.web.routers import agent, changes, command
from config.loader import load_settings
from config.schema import PatchbaySettings


def create_app(settings: PatchbaySettings | None = None) -> FastAPI:
    """Build the app. ``settings`` skips the on-disk settings lookup (tests, embedding)."""
    app = FastAPI(title="Patchbay Backend", lifespan=lifespan)
    if settings is not None:
        app.state.settings = settings
    origins = settings.server.cors_origins if settings else ["*"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(agent.router)
    app.include_router(changes.router)
    app.include_router(command.router)
    return app


app = create_app()


def _resolve_port(settings: PatchbaySettings) -> int:
    """Resolve backend port: env var > settings.server.port."""
    port = os.environ.get("PATCHBAY_BACKEND_PORT") or os.environ.get("PORT")
    if port:
        return int(port)
    return settings.server.port


def _resolve_host(settings: PatchbaySettings) -> str:
    return os.environ.get("PATCHBAY_HOST") or settings.server.host


def run() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    settings = load_settings(PROJECT_ROOT)
    # @@@port-precedence - PATCHBAY_BACKEND_PORT > PORT > settings.server.port
    port = _resolve_port(settings)
    # @@@module-launch-target - Package-qualified target keeps module launch (`python -m backend.web.main`) import-safe.
    uvicorn.run("backend.web.main:app", host=_resolve_host(settings), port=port)


if __name__ == "__main__":
    run()
