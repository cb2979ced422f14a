"""
Newsletter Backend: FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() wires settings, the database engine and
       the email client onto `app.state`, then registers middleware,
       exception handlers and routes.
Who:   uvicorn (`newsletter.main:app`), `python -m newsletter serve`, and tests
       (which inject their own engine and email client).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:   Request ID → Access logging               │
    │                                                          │
    │  Routes:       GET  /health_check                        │
    │                POST /subscriptions                       │
    │                GET  /subscriptions/confirm               │
    │                POST /newsletters                         │
    │                GET  /   GET /login   POST /login         │
    │                                                          │
    │  Errors:       Validation→400  Auth→401  DB/Email→500    │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, validate production settings, log address
    Shutdown: dispose the database engine, close the email HTTP client
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncEngine

from newsletter import __version__
from newsletter.config import Settings, settings as default_settings
from newsletter.database import build_engine, build_session_factory, dispose_engine
from newsletter.exceptions import (
    AuthenticationError,
    DatabaseError,
    EmailDeliveryError,
    NewsletterError,
    ValidationError,
)
from newsletter.middleware.logging import RequestLoggingMiddleware
from newsletter.middleware.request_id import RequestIDFilter, RequestIDMiddleware, request_id_var
from newsletter.routes import health, newsletters, pages, subscriptions
from newsletter.services.email_client import EmailClient

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(log_level: str) -> None:
    """
    Configure the root logger once per process.

    Format: %(asctime)s [%(levelname)s] %(name)s [%(request_id)s] %(message)s
    The request ID comes from RequestIDFilter; it is "-" outside a request.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIDFilter())

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s [%(request_id)s] %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(settings.log_level)
    logger.info("Newsletter backend %s starting (env=%s)", __version__, settings.environment)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Not fatal: /health_check keeps answering so the problem is visible
        logger.error("Configuration error: %s", str(e))

    logger.info("Listening on http://%s:%d", settings.app_host, settings.app_port)
    logger.info("Confirmation links point at %s", settings.app_base_url)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Newsletter backend shutting down...")
    await dispose_engine(app.state.engine)
    await app.state.email_client.aclose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and JSON error bodies.

    Handler hierarchy:
        ValidationError / RequestValidationError → 400
        AuthenticationError                      → 401 (+ WWW-Authenticate)
        DatabaseError                            → 500 (generic message)
        EmailDeliveryError                       → 500
        NewsletterError (base)                   → 500
        Exception (fallback)                     → 500

    Server-side errors are logged with their context; responses never carry
    SQL, stack traces or upstream response bodies.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("Validation error: %s", exc.message)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": exc.message,
                "details": {"field": exc.field} if exc.field else None,
                "request_id": rid,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        """Missing form fields, query parameters or JSON body members."""
        rid = request_id_var.get("")
        fields = sorted({".".join(str(p) for p in err.get("loc", ())[1:]) for err in exc.errors()})
        logger.warning("Request validation failed for %s", fields)
        return JSONResponse(
            status_code=400,
            content={
                "error": "validation_error",
                "message": "The request is missing required fields or has invalid values.",
                "details": {"fields": fields},
                "request_id": rid,
            },
        )

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        rid = request_id_var.get("")
        headers = {}
        if exc.realm:
            headers["WWW-Authenticate"] = f'Basic realm="{exc.realm}"'
        return JSONResponse(
            status_code=401,
            content={
                "error": "unauthorized",
                "message": exc.message,
                "request_id": rid,
            },
            headers=headers,
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("Database error: %s | Context: %s", exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "An internal error occurred. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(EmailDeliveryError)
    async def handle_email_delivery_error(request: Request, exc: EmailDeliveryError):
        rid = request_id_var.get("")
        logger.error("Email delivery error: %s | Context: %s", exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "email_delivery_error",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(NewsletterError)
    async def handle_application_error(request: Request, exc: NewsletterError):
        rid = request_id_var.get("")
        logger.error("Application error: %s | Context: %s", exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        # Runs in ServerErrorMiddleware, outside RequestIDMiddleware: the
        # response header has to be set here
        rid = request_id_var.get("") or getattr(request.state, "request_id", "")
        logger.error("Unexpected error: %s", str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": rid,
            },
            headers={"X-Request-ID": rid} if rid else None,
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[AsyncEngine] = None,
    email_client: Optional[EmailClient] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Defaults to the module-level settings singleton.
        engine: Defaults to a pooled asyncpg engine built from the settings.
        email_client: Defaults to a client built from the settings.

    The engine and client are owned by the app: both are closed on shutdown.
    """
    settings = settings or default_settings
    engine = engine or build_engine(settings)
    email_client = email_client or EmailClient.from_settings(settings)

    app = FastAPI(
        title="Newsletter API",
        description=(
            "Newsletter subscriptions with email confirmation, and publishing "
            "of issues to confirmed subscribers."
        ),
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.email_client = email_client

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → Logging → routes
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(subscriptions.router)
    app.include_router(newsletters.router)
    app.include_router(pages.router)

    return app


app = create_app()
