"""
WriteUp Backend: FastAPI Application Factory
============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() registers middleware, exception handlers, and routers.
Who:   Started by the desktop shell (uvicorn writeup.main:app) on loopback.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:  Request ID → Logging → GZip → CORS         │
    │                                                          │
    │  Routes:                                                 │
    │    /api/enhance  /api/chat  /api/providers               │
    │    /api/history  /api/privacy  /health                   │
    │                                                          │
    │  Exception Handlers → ErrorEnvelope:                     │
    │    ValidationError 400 │ NotFound 404 │ Providers 503    │
    │    Enhancement/Database/unexpected 500                   │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:   logging → create missing tables → seed default providers →
               load saved excluded apps
    Shutdown:  dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from writeup import __version__
from writeup.config import settings
from writeup.database import create_tables, dispose_engine
from writeup.exceptions import (
    AllProvidersFailedError,
    DatabaseError,
    EnhancementError,
    NoProvidersAvailableError,
    NotFoundError,
    ValidationError,
    WriteupError,
)
from writeup.middleware.logging import RequestLoggingMiddleware
from writeup.middleware.request_id import RequestIDMiddleware, request_id_var
from writeup.routes import chat, enhance, health, history, privacy, providers
from writeup.schemas.enhancement import ErrorEnvelope
from writeup.services.config_store import config_store
from writeup.services.enhancement_service import suggest_user_action, troubleshooting_steps
from writeup.services.privacy import privacy_gate

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the whole process.

    Format: 2024-01-15T12:00:00 [INFO] writeup.services.orchestrator: message
    Called once from the lifespan, before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries log every request at INFO/DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("anthropic").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("WriteUp Backend %s starting up...", __version__)

    await create_tables()
    await config_store.ensure_defaults()
    await privacy_gate.load()

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("WriteUp Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> Optional[str]:
    # The catch-all handler runs outside RequestIDMiddleware, where the
    # ContextVar is already reset; request.state still has the ID
    return getattr(request.state, "request_id", None) or request_id_var.get("") or None


def envelope_response(status_code: int, envelope: ErrorEnvelope) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=envelope.model_dump(by_alias=True, exclude_none=True, mode="json"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the exception hierarchy to HTTP statuses and ErrorEnvelopes.

    Handler hierarchy:
        ValidationError            → 400 (NO_TEXT_SELECTED, TEXT_TOO_LONG, ...)
        NotFoundError              → 404 NOT_FOUND
        NoProvidersAvailableError  → 503 NO_PROVIDERS_AVAILABLE
        AllProvidersFailedError    → 503 ALL_PROVIDERS_FAILED (+ errors[])
        EnhancementError           → 500 ENHANCEMENT_FAILED
        DatabaseError              → 500 DATABASE_ERROR (generic message)
        WriteupError (base)        → 500 with its own code
        Exception (fallback)       → 500 INTERNAL_ERROR (stack trace logged only)
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = _request_id(request)
        logger.warning("[%s] Validation error %s: %s", rid, exc.code, exc.message)
        return envelope_response(
            400,
            ErrorEnvelope(
                error=exc.message,
                code=exc.code,
                text_length=exc.text_length,
                enhancement_type=exc.enhancement_type,
                processing_time=exc.processing_time,
                user_action=exc.user_action,
                request_id=rid,
            ),
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return envelope_response(
            404,
            ErrorEnvelope(error=exc.message, code=exc.code, request_id=_request_id(request)),
        )

    @app.exception_handler(NoProvidersAvailableError)
    async def handle_no_providers(request: Request, exc: NoProvidersAvailableError):
        rid = _request_id(request)
        logger.warning("[%s] %s", rid, exc.message)
        return envelope_response(
            503,
            ErrorEnvelope(
                error=exc.message,
                code=exc.code,
                text_length=exc.text_length,
                enhancement_type=exc.enhancement_type,
                processing_time=exc.processing_time,
                user_action="Add and enable an AI provider in Settings",
                troubleshooting=troubleshooting_steps(exc.message),
                request_id=rid,
            ),
        )

    @app.exception_handler(AllProvidersFailedError)
    async def handle_all_failed(request: Request, exc: AllProvidersFailedError):
        rid = _request_id(request)
        logger.error("[%s] %s", rid, exc.message)
        return envelope_response(
            503,
            ErrorEnvelope(
                error=exc.message,
                code=exc.code,
                text_length=exc.text_length,
                enhancement_type=exc.enhancement_type,
                processing_time=exc.processing_time,
                errors=exc.errors,
                user_action=suggest_user_action(exc.message),
                troubleshooting=troubleshooting_steps(exc.message),
                request_id=rid,
            ),
        )

    @app.exception_handler(EnhancementError)
    async def handle_enhancement_error(request: Request, exc: EnhancementError):
        rid = _request_id(request)
        logger.error("[%s] Enhancement failed: %s | Context: %s", rid, exc.message, exc.context)
        return envelope_response(
            500,
            ErrorEnvelope(
                error=exc.message,
                code=exc.code,
                text_length=exc.text_length,
                enhancement_type=exc.enhancement_type,
                processing_time=exc.processing_time,
                user_action=suggest_user_action(exc.message),
                troubleshooting=troubleshooting_steps(exc.message),
                request_id=rid,
            ),
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = _request_id(request)
        # Full context stays in the server log
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return envelope_response(
            500,
            ErrorEnvelope(
                error="An internal error occurred. Please try again later.",
                code=exc.code,
                request_id=rid,
            ),
        )

    @app.exception_handler(WriteupError)
    async def handle_writeup_error(request: Request, exc: WriteupError):
        rid = _request_id(request)
        logger.error("[%s] %s: %s | Context: %s", rid, exc.code, exc.message, exc.context)
        return envelope_response(
            500,
            ErrorEnvelope(error=exc.message, code=exc.code, request_id=rid),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = _request_id(request)
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return envelope_response(
            500,
            ErrorEnvelope(
                error="An unexpected error occurred. Please try again.",
                code="INTERNAL_ERROR",
                request_id=rid,
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="WriteUp API",
        description=(
            "Local text-enhancement backend. Sends selected text to the configured "
            "AI providers in priority order and returns the first successful result."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(enhance.router)
    app.include_router(chat.router)
    app.include_router(providers.router)
    app.include_router(history.router)
    app.include_router(privacy.router)
    app.include_router(health.router)

    return app


# uvicorn imports `writeup.main:app`
app = create_app()
