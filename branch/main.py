"""
Main FastAPI application.

This is the entry point for the API server.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from branch import __version__
from branch.core.config import settings
from branch.core.logging import configure_logging
from branch.db.session import create_schema
from branch.errors import AppError, app_error_handler, request_validation_error_handler
from branch.routers import admin, auth, health, locations, pages, profile, scan, stats, tags
from branch.services.tag_migration_service import run_tag_migration

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for the FastAPI app.
    
    - On startup: configure logging, optionally create tables, copy legacy tags once.
    - On shutdown: log and exit.
    """
    configure_logging()
    logger.info("Starting %s...", settings.APP_NAME)
    
    if settings.AUTO_CREATE_SCHEMA:
        await create_schema()
    if settings.MIGRATE_TAGS_ON_STARTUP:
        report = await run_tag_migration()
        if not report.skipped_already_migrated:
            logger.info("Startup tag migration inserted %s facts", report.total_inserted)
    
    yield  # The server runs while we're "yielded" here
    
    logger.info("Shutting down %s...", settings.APP_NAME)


# Create the FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="GitHub tech-stack dashboard API",
    version=__version__,
    lifespan=lifespan,
)

app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_error_handler)


# Include routers (API endpoints)
app.include_router(health.router, tags=["Health"])
app.include_router(auth.router)
app.include_router(scan.router)
app.include_router(profile.router)
app.include_router(tags.router)
app.include_router(admin.router)
app.include_router(locations.router)
app.include_router(stats.router)

# Static pages last so /api routes win
app.include_router(pages.router)
