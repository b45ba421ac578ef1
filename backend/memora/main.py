"""
Memora Backend — FastAPI Application Factory
=============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, the error handler and the routers.
Who:   uvicorn (`uvicorn memora.main:app`) and the test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:  Request ID → Logging → GZip → CORS         │
    │                                                          │
    │  Routes:                                                 │
    │    /api/auth/*   /api/notes/*   /api/attachments/*       │
    │    /health                                               │
    │                                                          │
    │  Exception Handling:                                     │
    │    MemoraError ──▶ STATUS_BY_KIND[exc.kind]              │
    │    Exception   ──▶ 500                                   │
    └──────────────────────────────────────────────────────────┘
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from memora import __version__
from memora.config import settings
from memora.database import dispose_engine
from memora.exceptions import ErrorKind, MemoraError
from memora.middleware.logging import RequestLoggingMiddleware
from memora.middleware.request_id import (
    REQUEST_ID_HEADER,
    RequestIDMiddleware,
    request_id_var,
)
from memora.routes import attachments, auth, health, notes

logger = logging.getLogger(__name__)

STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.PAYLOAD_TOO_LARGE: 413,
    ErrorKind.UNSUPPORTED_MEDIA_TYPE: 415,
    ErrorKind.INTERNAL: 500,
}

GENERIC_SERVER_ERROR = "An internal error occurred. Please try again later."


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, at startup.

    Format: 2024-01-15T12:00:00 [INFO] memora.access: GET /api/notes 200 ...
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Our access logger replaces uvicorn's
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("Memora Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Development defaults are allowed; make them impossible to miss
        logger.warning("Configuration warning: %s", str(e))

    logger.info(
        "Upload limits: %d..%d bytes",
        settings.file_upload_min_size_bytes,
        settings.file_upload_max_size_bytes,
    )
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Memora Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    One handler for every MemoraError, keyed on `exc.kind`.

    Client errors (4xx) return the exception's message and context.
    Server errors (5xx) return a generic message; message and context are
    logged server-side only.
    """

    @app.exception_handler(MemoraError)
    async def handle_memora_error(request: Request, exc: MemoraError):
        rid = request_id_var.get("")
        status_code = STATUS_BY_KIND.get(exc.kind, 500)

        if status_code >= 500:
            logger.error(
                "[%s] %s: %s | Context: %s",
                rid,
                type(exc).__name__,
                exc.message,
                exc.context,
            )
            content = {
                "error": ErrorKind.INTERNAL.value,
                "message": GENERIC_SERVER_ERROR,
                "details": None,
                "request_id": rid,
            }
        else:
            if status_code != 404:
                logger.warning("[%s] %s: %s", rid, exc.kind.value, exc.message)
            content = {
                "error": exc.kind.value,
                "message": exc.message,
                "details": exc.context or None,
                "request_id": rid,
            }

        headers = {}
        if status_code == 401:
            headers["WWW-Authenticate"] = "Bearer"

        return JSONResponse(status_code=status_code, content=content, headers=headers)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        # Served by ServerErrorMiddleware, outside RequestIDMiddleware
        rid = getattr(request.state, "request_id", None) or request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "details": None,
                "request_id": rid,
            },
            headers={REQUEST_ID_HEADER: rid} if rid else None,
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Memora API",
        description=(
            "Personal notes with image and video attachments. Attachments are "
            "validated by name, declared type, size and content signature, and "
            "are only ever visible to the owner of their note."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware executes in REVERSE order of addition:
    # RequestID → Logging → GZip → CORS → route
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "X-Total-Count",
            "Content-Disposition",
        ],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(notes.router)
    app.include_router(attachments.router)
    app.include_router(health.router)

    return app


app = create_app()
