"""
FormRelay Backend — FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application and wraps it with
       the Socket.IO server.
How:   create_app() returns a configured FastAPI instance; `asgi_app`
       mounts Socket.IO in front of it on the same port.
Who:   uvicorn formrelay.main:asgi_app

Application Architecture:
    ┌──────────────────────────────────────────────────────┐
    │  socketio.ASGIApp  (/socket.io → live notifications)  │
    │  ┌────────────────────────────────────────────────┐  │
    │  │                 FastAPI App                    │  │
    │  │  Middleware: Request ID → Access Log → GZip    │  │
    │  │              → CORS                            │  │
    │  │  Routes (/api/v1): users, admin, form,         │  │
    │  │                    templates, notification     │  │
    │  │  GET /health                                   │  │
    │  └────────────────────────────────────────────────┘  │
    └──────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, validate settings, seed bootstrap admin.
    Shutdown: dispose the database engine, forget live sessions.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import socketio
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import NoResultFound
from starlette.exceptions import HTTPException as StarletteHTTPException

from formrelay import __version__
from formrelay.config import settings
from formrelay.database import async_session_factory, dispose_engine
from formrelay.exceptions import (
    ConflictError,
    DatabaseError,
    ForbiddenError,
    FormRelayError,
    NotFoundError,
    TransactionTimeoutError,
    UnauthorizedError,
    ValidationError,
)
from formrelay.middleware.logging import RequestLoggingMiddleware
from formrelay.middleware.request_id import RequestIDMiddleware, request_id_var
from formrelay.realtime import notification_directory, sio
from formrelay.routes import admin, forms, health, notifications, templates, users
from formrelay.services.user_service import user_service

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """Configure the root logger once, at startup."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    for noisy in ("uvicorn.access", "sqlalchemy.engine", "socketio", "engineio", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("FormRelay Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving so /health can report; the operator sees this in the log
        logger.error("Configuration error: %s", str(e))

    async with async_session_factory() as session:
        await user_service.ensure_bootstrap_admin(session)

    logger.info(
        "Server ready at http://%s:%d%s (Socket.IO path /%s)",
        settings.backend_host, settings.backend_port, settings.api_prefix,
        settings.socketio_path,
    )

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("FormRelay Backend shutting down...")
    notification_directory.clear()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_body(error: str, message: str, details=None) -> dict:
    body = {
        "success": False,
        "error": error,
        "message": message,
        "request_id": request_id_var.get(""),
    }
    if details:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to status codes and the shared error body.

    Handler hierarchy:
        ValidationError / RequestValidationError → 400
        UnauthorizedError                        → 401
        ForbiddenError                           → 403
        NotFoundError / NoResultFound            → 404
        ConflictError                            → 409
        TransactionTimeoutError                  → 503
        DatabaseError                            → 500
        FormRelayError (base)                    → 500
        Exception (fallback)                     → 500

    5xx bodies never carry internal details; those are logged server-side.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=400,
            content=error_body("validation_error", exc.message, exc.context),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Invalid request")
        if location:
            message = f"{location}: {message}"
        return JSONResponse(
            status_code=400,
            content=error_body(
                "validation_error",
                message,
                {"errors": [{"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in errors]},
            ),
        )

    @app.exception_handler(UnauthorizedError)
    async def handle_unauthorized(request: Request, exc: UnauthorizedError):
        return JSONResponse(
            status_code=401,
            content=error_body("unauthorized", exc.message),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(ForbiddenError)
    async def handle_forbidden(request: Request, exc: ForbiddenError):
        return JSONResponse(
            status_code=403,
            content=error_body("forbidden", exc.message, exc.context),
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=404,
            content=error_body("not_found", exc.message, exc.context),
        )

    @app.exception_handler(NoResultFound)
    async def handle_no_result(request: Request, exc: NoResultFound):
        return JSONResponse(
            status_code=404,
            content=error_body("not_found", "The requested record was not found"),
        )

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return JSONResponse(
            status_code=409,
            content=error_body("conflict", exc.message, exc.context),
        )

    @app.exception_handler(TransactionTimeoutError)
    async def handle_transaction_timeout(request: Request, exc: TransactionTimeoutError):
        logger.error("[%s] Transaction timeout | Context: %s", request_id_var.get(""), exc.context)
        return JSONResponse(
            status_code=503,
            content=error_body("transaction_timeout", exc.message),
            headers={"Retry-After": "5"},
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error(
            "[%s] Database error: %s | Context: %s",
            request_id_var.get(""), exc.message, exc.context,
        )
        return JSONResponse(
            status_code=500,
            content=error_body("server_error", "An internal error occurred. Please try again later."),
        )

    @app.exception_handler(FormRelayError)
    async def handle_app_error(request: Request, exc: FormRelayError):
        logger.error("[%s] Unhandled application error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=500,
            content=error_body("server_error", exc.message),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        error = "not_found" if exc.status_code == 404 else "http_error"
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(error, str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content=error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="FormRelay API",
        description=(
            "Form-builder and survey backend with quota-gated submissions "
            "and real-time notifications."
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
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    for module in (users, admin, forms, templates, notifications):
        app.include_router(module.router, prefix=settings.api_prefix)
    app.include_router(health.router)

    return app


# ── Application Instances ────────────────────────────────────────────────
app = create_app()

# What uvicorn serves: Socket.IO handshakes on /socket.io, everything else to FastAPI
asgi_app = socketio.ASGIApp(sio, other_asgi_app=app, socketio_path=settings.socketio_path)
