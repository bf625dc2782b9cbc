"""
SpendTrack Backend — FastAPI Application Factory
===================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() registers middleware, exception handlers and routers;
       the lifespan sets up logging on startup and disposes the engine
       on shutdown.
Who:   uvicorn (`uvicorn spendtrack.main:app`) and the test client.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware:  Request ID → Access log → CORS        │
    │                                                     │
    │  Routes:                                            │
    │  ┌────────────────┐ ┌──────────────────┐ ┌────────┐ │
    │  │ /api/auth/*    │ │ /api/expenses/*  │ │ /health│ │
    │  └────────────────┘ └──────────────────┘ └────────┘ │
    │                                                     │
    │  Exception Handlers:                                │
    │  SpendTrackError → {error: kind, message, ...}      │
    │  DatabaseError   → generic 500                      │
    │  Exception       → generic 500, traceback logged    │
    └─────────────────────────────────────────────────────┘
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from spendtrack import __version__
from spendtrack.config import settings
from spendtrack.database import dispose_engine
from spendtrack.exceptions import (
    DatabaseError,
    PartialPersistenceFailure,
    SpendTrackError,
)
from spendtrack.middleware.logging import RequestLoggingMiddleware
from spendtrack.middleware.request_id import RequestIDMiddleware, request_id_var
from spendtrack.routes import auth, expenses, health

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once at startup.

    Format: 2024-01-15T12:00:00 [INFO] spendtrack.services.materializer: ...
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # These log every statement / connection at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("SpendTrack Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: health checks and local development still work
        logger.error("Configuration error: %s", str(e))

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)

    yield

    logger.info("SpendTrack Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> str:
    # The catch-all handler runs outside RequestIDMiddleware, where the
    # ContextVar has already been reset; request.state outlives it
    return getattr(request.state, "request_id", "") or request_id_var.get("")


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to the ErrorResponse body.

    Handler resolution follows the class hierarchy, so the specific
    DatabaseError / PartialPersistenceFailure handlers win over the
    SpendTrackError one.
    """

    @app.exception_handler(SpendTrackError)
    async def handle_app_error(request: Request, exc: SpendTrackError):
        rid = _request_id(request)
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s", rid, exc.kind, exc.message)
        else:
            logger.warning("[%s] %s: %s", rid, exc.kind, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.kind,
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
        )

    @app.exception_handler(PartialPersistenceFailure)
    async def handle_partial_failure(request: Request, exc: PartialPersistenceFailure):
        rid = _request_id(request)
        logger.error("[%s] Partial persistence failure: %s | %s", rid, exc.message, exc.errors)
        # The per-item error text stays server-side; counts and ids go back
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.kind,
                "message": exc.message,
                "details": {
                    "attempted": exc.attempted,
                    "persisted": len(exc.persisted_ids),
                    "failed": len(exc.errors),
                    "persisted_ids": exc.persisted_ids,
                    "failed_items": [e["item_index"] for e in exc.errors],
                },
                "request_id": rid,
            },
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = _request_id(request)
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": exc.kind,
                "message": "An internal error occurred. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = _request_id(request)
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="SpendTrack API",
        description=(
            "Personal spending tracker: accounts, expenses, and expense capture "
            "from scanned QR receipts."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    # Middleware executes in REVERSE order of addition:
    # RequestID → Logging → CORS → route
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(expenses.router)
    app.include_router(health.router)

    return app


app = create_app()


def run() -> None:
    """Console entry point: `spendtrack-server`."""
    uvicorn.run(
        "spendtrack.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
