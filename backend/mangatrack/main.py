"""
FastAPI Main Application for mangatrack

This module defines the main FastAPI application entry point with:
- API route registration
- Database table creation at startup
- Request logging middleware with X-Request-ID correlation
- Tracker factory shutdown (shared HTTP client)

Entry Point:
    Run with: uvicorn backend.mangatrack.main:app --reload
"""

import logging
import time
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

from .config import Config
from .models.base import Base
from .database import engine
from .adapters.tracker_factory import get_tracker_factory, reset_tracker_factory
from .services.structured_logging import (
    set_request_id, clear_context, generate_request_id, setup_json_logging
)

# Only set up logging if no handlers exist yet (uvicorn may have configured it)
root_logger = logging.getLogger()
if not root_logger.handlers:
    if Config.JSON_LOGS:
        setup_json_logging(level=Config.LOG_LEVEL)
    else:
        logging.basicConfig(format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
root_logger.setLevel(Config.LOG_LEVEL)

# Request bodies and tokens are logged by httpx at DEBUG
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log all HTTP requests and responses with correlation IDs.

    Correlation:
    - Extracts or generates X-Request-ID for request tracing
    - Sets correlation context for structured logging
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)

        client_ip = request.client.host if request.client else "unknown"
        logger.info(f"[{request_id}] {request.method} {request.url.path} from {client_ip}")

        start_time = time.time()
        try:
            response = await call_next(request)
            process_time = (time.time() - start_time) * 1000

            response.headers["X-Request-ID"] = request_id
            logger.info(f"[{request_id}] {response.status_code} ({process_time:.2f}ms)")

            return response
        except Exception as e:
            process_time = (time.time() - start_time) * 1000
            logger.error(
                f"[{request_id}] Request failed after {process_time:.2f}ms: "
                f"{type(e).__name__}: {e}"
            )
            raise
        finally:
            clear_context()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan context manager for startup and shutdown tasks.

    Startup Tasks:
        1. Validate configuration
        2. Create all database tables
        3. Create the tracker factory

    Shutdown Tasks:
        1. Close the shared tracker HTTP client
    """
    # ========== STARTUP ==========
    logger.info(f"Starting {Config.APP_TITLE} {Config.APP_VERSION}")
    logger.info(f"Configuration: {Config.get_summary()}")

    if not Config.validate():
        logger.error("Invalid configuration, check DATABASE_URL, APP_PORT and API_REQUEST_TIMEOUT")

    if not Config.shikimori_configured():
        logger.warning(
            "SHIKIMORI_CLIENT_ID / SHIKIMORI_CLIENT_SECRET not set. "
            "Shikimori login is unavailable."
        )

    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)

    factory = get_tracker_factory()
    logger.info(f"Tracker services: {[service.name for service in factory.get_all_services()]}")

    logger.info("Application startup complete")

    yield  # Application runs here

    # ========== SHUTDOWN ==========
    logger.info(f"Shutting down {Config.APP_TITLE}")
    await reset_tracker_factory()
    logger.info("Shutdown complete")


# OpenAPI Tags Metadata
tags_metadata = [
    {
        "name": "trackers",
        "description": "Tracker services: login, logout, OAuth callback and remote title search.",
    },
    {
        "name": "tracks",
        "description": "Local tracks bound to tracker library entries: bind, update and refresh.",
    },
]

app = FastAPI(
    title=Config.APP_TITLE,
    description=Config.APP_DESCRIPTION,
    version=Config.APP_VERSION,
    lifespan=lifespan,
    openapi_tags=tags_metadata,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(RequestLoggingMiddleware)

# Register API routes
from .api import tracker_routes  # noqa: E402

app.include_router(tracker_routes.router)


@app.get("/health")
async def health_check():
    """Liveness check with the application version."""
    return {"status": "ok", "version": Config.APP_VERSION}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=Config.APP_HOST, port=Config.APP_PORT)
