"""
Marketplace Backend: FastAPI Application Factory
================================================

What:  Builds the FastAPI app: logging, lifecycle, middleware, exception
       handlers and routers.
Who:   uvicorn (`uvicorn marketplace.main:app`) and the test-suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware: Rate Limit → Request ID → Access Log        │
    │              → GZip → CORS                               │
    │                                                          │
    │  Routers: users · profiles · projects · interests        │
    │           messages · files · health                      │
    │                                                          │
    │  Exception Handlers:                                     │
    │    MarketplaceError → its status_code / error_code       │
    │    RequestValidationError → 400 validation_error         │
    │    HTTPException → same status, same body shape          │
    │    Exception → 500 internal_server_error                 │
    └──────────────────────────────────────────────────────────┘

Error body (every non-2xx response):
    {"error": "<code>", "message": "...", "details": {...}, "requestId": "..."}
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from marketplace import __version__
from marketplace.config import settings
from marketplace.database import dispose_engine
from marketplace.exceptions import (
    AuthenticationError,
    MarketplaceError,
    RateLimitExceededError,
)
from marketplace.middleware.logging import RequestLoggingMiddleware
from marketplace.middleware.rate_limit import RateLimitMiddleware
from marketplace.middleware.request_id import RequestIDMiddleware, request_id_var
from marketplace.routes import files, health, interests, messages, profiles, projects, users

logger = logging.getLogger(__name__)

# Pydantic prefixes custom validator messages with this
_VALUE_ERROR_PREFIX = "Value error, "

_HTTP_ERROR_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    413: "payload_too_large",
}


def setup_logging() -> None:
    """
    Configures the root logger once at startup.

    Format: 2024-01-15T12:00:00 [INFO] marketplace.services.project_service: ...
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Our access log replaces uvicorn's; SQL echo only when explicitly debugging
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    if settings.log_level != "DEBUG":
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("Marketplace backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        logger.error("Fix the configuration and restart the server.")

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Storage directory: %s", storage.resolve())
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Marketplace backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


def error_body(
    error: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {"error": error, "message": message}
    if details:
        body["details"] = details
    body["requestId"] = request_id_var.get() or None
    return body


def _field_from_loc(loc) -> Optional[str]:
    """("body", "budgetMin") → "budgetMin"; ("query", "limit") → "limit"."""
    parts = [str(p) for p in loc]
    if parts and parts[0] in ("body", "query", "path", "header", "cookie"):
        parts = parts[1:]
    return ".".join(parts) or None


def register_exception_handlers(app: FastAPI) -> None:
    """
    Every error leaves the API in the same shape. Internal details of 5xx
    responses are logged here and never returned.
    """

    @app.exception_handler(MarketplaceError)
    async def handle_marketplace_error(request: Request, exc: MarketplaceError):
        rid = request_id_var.get()
        headers: Dict[str, str] = {}

        if exc.status_code >= 500:
            logger.error(
                "[%s] %s: %s | Context: %s",
                rid, type(exc).__name__, exc.message, exc.context,
            )
            return JSONResponse(
                status_code=exc.status_code,
                content=error_body(exc.error_code, exc.message),
            )

        if isinstance(exc, AuthenticationError):
            headers["WWW-Authenticate"] = "Bearer"
        if isinstance(exc, RateLimitExceededError):
            headers["Retry-After"] = str(exc.retry_after)

        details = None
        field = exc.context.get("field")
        if field:
            details = {"field": field}

        logger.info("[%s] %s (%d): %s", rid, exc.error_code, exc.status_code, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.error_code, exc.message, details),
            headers=headers or None,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        """Malformed body, query or path parameters answer 400, not FastAPI's 422."""
        errors = exc.errors()
        first = errors[0] if errors else {}
        message = str(first.get("msg", "Invalid request"))
        if message.startswith(_VALUE_ERROR_PREFIX):
            message = message[len(_VALUE_ERROR_PREFIX):]
        field = _field_from_loc(first.get("loc", ()))

        logger.info("[%s] Request validation failed on %s: %s", request_id_var.get(), field, message)
        return JSONResponse(
            status_code=400,
            content=error_body(
                "validation_error",
                message,
                {"field": field} if field else None,
            ),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(
                _HTTP_ERROR_CODES.get(exc.status_code, "http_error"),
                str(exc.detail),
            ),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get() or getattr(request.state, "request_id", "")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "requestId": rid or None,
            },
        )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Market Place API",
        description=(
            "Freelance marketplace: clients post projects, developers express "
            "interest, and both sides message each other."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Added innermost first: the last middleware added runs first on a request
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(users.router)
    app.include_router(profiles.router)
    app.include_router(projects.router)
    app.include_router(interests.router)
    app.include_router(messages.router)
    app.include_router(files.router)
    app.include_router(health.router)

    return app


app = create_app()
