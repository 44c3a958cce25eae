"""
Application lifecycle event handlers.

Manages startup and shutdown of the database engine and resolves the schema
capabilities the services are built with.
"""

from typing import Callable

import structlog
from fastapi import FastAPI

from core.config import settings
from db.capabilities import resolve_capabilities
from db.session import close_db, get_engine, init_db

logger = structlog.get_logger(__name__)


def create_start_app_handler(app: FastAPI) -> Callable:
    """Create startup event handler."""

    async def start_app() -> None:
        logger.info("Starting Vigia API...")

        await init_db()
        logger.info("Database initialized")

        # Resolved once; request handlers only read app.state
        app.state.capabilities = await resolve_capabilities(get_engine(), settings.SCHEMA_VERSION)

        logger.info("Vigia API started successfully", schema_version=app.state.capabilities.version)

    return start_app


def create_stop_app_handler(app: FastAPI) -> Callable:
    """Create shutdown event handler."""

    async def stop_app() -> None:
        logger.info("Shutting down Vigia API...")
        await close_db()
        logger.info("Vigia API shutdown complete")

    return stop_app
