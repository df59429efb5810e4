"""Development relay: the real-time event contract over a FastAPI WebSocket."""
from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chat_sync.api.v1.routers import health, internal, ws

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title="chat-sync relay",
        version="0.1.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(ws.router)
    app.include_router(internal.router)

    logger.debug("Relay app created")
    return app
