"""Entrypoint: python -m chat_sync (runs the development relay)"""
from __future__ import annotations

import logging

import uvicorn

from chat_sync.config import settings


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(
        "chat_sync.app:create_app",
        factory=True,
        host=settings.RELAY_HOST,
        port=settings.RELAY_PORT,
        log_level="info",
    )


if __name__ == "__main__":
    main()
