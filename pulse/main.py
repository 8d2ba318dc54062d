"""
Application entrypoint: wires the database pool, Google clients and sync
services onto app.state and manages their lifecycle.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from pulse.config import settings
from pulse.db.pool import DatabasePoolManager
from pulse.features.relationship_sync import DashboardService, SyncOrchestrator, TokenService, sync_router
from pulse.features.relationship_sync.repository.postgres_store import PostgresStore
from pulse.infrastructure.observability.logging import get_logger, log_request, setup_logging
from pulse.repositories.user_token_repository import PostgresUserTokenStore
from pulse.routes import health
from pulse.services.calendar.google_client import GoogleCalendarService
from pulse.services.gmail.google_client import GoogleGmailService
from pulse.services.google_oauth_service import GoogleOAuthService
from pulse.services.infrastructure.encryption_service import validate_encryption_config

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown with proper resource management."""
    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    if not validate_encryption_config():
        raise RuntimeError("ENCRYPTION_KEY is missing or invalid")

    db_pool = DatabasePoolManager(settings)
    logger.info("Initializing database pool")
    await db_pool.initialize()

    gmail_client = GoogleGmailService()
    calendar_client = GoogleCalendarService()

    try:
        token_service = TokenService(PostgresUserTokenStore(db_pool), GoogleOAuthService())
    except Exception as e:
        logger.error("Failed to initialize services", error=str(e))
        await gmail_client.close()
        await calendar_client.close()
        await db_pool.close()
        raise

    store_provider = PostgresStore(db_pool)
    app.state.db_pool = db_pool
    app.state.sync_orchestrator = SyncOrchestrator(
        store_provider=store_provider,
        token_service=token_service,
        gmail_client=gmail_client,
        calendar_client=calendar_client,
    )
    app.state.dashboard_service = DashboardService(store_provider)
    logger.info("All services initialized successfully")

    yield

    logger.info("Application shutting down")
    shutdown_errors = []

    for name, client in (("gmail", gmail_client), ("calendar", calendar_client)):
        try:
            await client.close()
        except Exception as e:
            logger.error("Error closing Google client", client=name, error=str(e))
            shutdown_errors.append(f"{name}: {e}")

    # Close database pool last (may have active connections)
    try:
        logger.info("Closing database pool")
        await db_pool.close()
    except Exception as e:
        logger.error("Error closing database pool", error=str(e))
        shutdown_errors.append(f"Database: {e}")

    if shutdown_errors:
        logger.warning("Some services had shutdown errors", errors=shutdown_errors)
    else:
        logger.info("All services closed successfully")


app = FastAPI(
    title="Relationship Pulse",
    description="Gmail + Calendar ingestion and relationship health scoring",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(sync_router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    log_request(request.method, request.url.path, response.status_code, round(process_time, 2))
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
