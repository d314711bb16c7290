"""
Application lifecycle event handlers.

Configures logging on startup and releases the Cosmos DB client on
shutdown.
"""

from typing import Callable

import structlog
from fastapi import FastAPI

from core.config import get_settings
from core.logging import configure_logging
from db.cosmos_session import close_cosmos

logger = structlog.get_logger(__name__)


def create_start_app_handler(app: FastAPI) -> Callable:
    """Create startup event handler."""

    async def start_app() -> None:
        settings = get_settings()
        configure_logging(settings)
        logger.info("Starting Townsquare API...", env=settings.APP_ENV)

        if not settings.cosmos_enabled:
            logger.warning("cosmos_not_configured")

        logger.info("Townsquare API started successfully")

    return start_app


def create_stop_app_handler(app: FastAPI) -> Callable:
    """Create shutdown event handler."""

    async def stop_app() -> None:
        logger.info("Shutting down Townsquare API...")

        await close_cosmos()

        logger.info("Townsquare API shutdown complete")

    return stop_app
