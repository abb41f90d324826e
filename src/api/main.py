"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures exception handlers, and lifespan events.
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from src.adapters.repository.memory import InMemoryVendorProfileRepository, InMemoryVendorRepository
from src.adapters.repository.postgres import (
    PostgresVendorProfileRepository,
    PostgresVendorRepository,
    run_migrations,
)
from src.adapters.smtp.console import ConsoleNotificationDispatcher
from src.api.errors import install_error_handlers
from src.api.v1 import router as v1_router
from src.config.logging import configure_logging
from src.config.settings import Settings, get_settings
from src.domain.credentials import CredentialService
from src.domain.pending import PendingRegistrationStore

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "vendors",
        "description": "Vendor onboarding API v1 - Register, verify email, complete profile, manage sessions",
    },
]


async def sweep_pending_registrations(app: FastAPI, interval_seconds: float) -> None:
    """
    Purge expired pending registrations on a fixed interval until cancelled.

    The store is looked up on app.state each tick, so a replaced store is
    the one that gets swept.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            app.state.pending_store.sweep_expired()
        except Exception:
            logger.exception("Pending registration sweep failed")


def build_credential_service(settings: Settings) -> CredentialService:
    return CredentialService(
        access_secret=settings.jwt_secret,
        refresh_secret=settings.jwt_refresh_secret,
        access_ttl=timedelta(minutes=settings.access_token_ttl_minutes),
        refresh_ttl=timedelta(days=settings.refresh_token_ttl_days),
        algorithm=settings.jwt_algorithm,
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
    )


def build_pending_store(settings: Settings) -> PendingRegistrationStore:
    return PendingRegistrationStore(
        registration_ttl=timedelta(minutes=settings.pending_ttl_minutes),
        otp_ttl=timedelta(minutes=settings.otp_ttl_minutes),
        max_attempts=settings.max_otp_attempts,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates the database connection pool and runs migrations
      (postgres backend) or in-memory repositories (memory backend)
    - Creates the pending registration store and starts its sweep task
    - Stops the sweep and closes the pool on shutdown
    """
    settings: Settings = app.state.settings
    configure_logging(settings.log_level)

    logger.info("Starting application...")
    pool: ConnectionPool | None = None

    if settings.storage_backend == "postgres":
        logger.info("Connecting to database...")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )
        logger.info("Running database migrations...")
        run_migrations(pool)
        app.state.pool = pool
        app.state.vendor_repository = PostgresVendorRepository(pool)
        app.state.profile_repository = PostgresVendorProfileRepository(pool)
    else:
        logger.warning("Using in-memory storage; vendor accounts are lost on restart")
        app.state.pool = None
        app.state.vendor_repository = InMemoryVendorRepository()
        app.state.profile_repository = InMemoryVendorProfileRepository()

    app.state.pending_store = build_pending_store(settings)
    app.state.credentials = build_credential_service(settings)
    app.state.notifier = ConsoleNotificationDispatcher()

    sweeper = asyncio.create_task(sweep_pending_registrations(app, settings.sweep_interval_minutes * 60))

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    sweeper.cancel()
    try:
        await sweeper
    except asyncio.CancelledError:
        pass
    if pool is not None:
        pool.close()
        logger.info("Database connection pool closed")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application; settings default to the environment."""
    app = FastAPI(
        title="clinickart-vendors",
        description="ClinicKart vendor onboarding API - OTP-verified signup, profile setup and JWT sessions",
        version="0.1.0",
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )
    app.state.settings = settings or get_settings()

    install_error_handlers(app)
    app.include_router(v1_router, prefix="/v1")

    @app.get("/health")
    async def health_check(request: Request) -> dict[str, str | int]:
        """
        Health check endpoint with database validation.

        Returns 200 OK if application and database are healthy.
        Raises exception if database connection fails.
        """
        pool = request.app.state.pool
        if pool is not None:
            with pool.connection() as conn:
                conn.execute("SELECT 1")

        stats = request.app.state.pending_store.stats()
        return {"status": "healthy", **stats}

    return app


app = create_app()
