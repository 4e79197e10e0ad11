"""FastAPI server for the storefront concierge widget"""

from __future__ import annotations

import sqlite3
from typing import Any

from dotenv import find_dotenv, load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from concierge.api.routes.concierge import router as concierge_router
from concierge.api.routes.health import router as health_router
from concierge.api.routes.support import router as support_router
from concierge.catalog.providers import build_provider
from concierge.config import APP_VERSION, ConciergeSettings
from concierge.errors import ConciergeError
from concierge.infrastructure.database import Database
from concierge.infrastructure.database_schema import validate_schema
from concierge.intents.resolver import ConciergeResolver
from concierge.observability.logging import get_logger
from concierge.observability.telemetry import counter, log_event
from concierge.storage.demo_data import seed_demo_data
from concierge.storage.retention import RetentionReaper
from concierge.support.order_service import OrderService
from concierge.support.repository import OrderRepository
from concierge.support.widget_repository import WidgetRepository
from concierge.support.widget_service import WidgetService
from concierge.utils.error_sanitizer import generic_message, sanitize_error_message
from concierge.utils.redaction import redact

logger = get_logger(__name__)


def _allowed_origins(settings: ConciergeSettings) -> list[str]:
    # Storefront origins come from CONCIERGE_ALLOWED_ORIGINS (comma-separated)
    origins = list(settings.allowed_origins)
    # Allow localhost storefront dev servers in development only
    if settings.env == "development":
        origins.extend(
            [
                "http://localhost:3000",
                "http://localhost:8000",
                "http://127.0.0.1:3000",
                "http://127.0.0.1:8000",
            ]
        )
    return origins


def _error_response(status_code: int, code: str, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message, **extra}},
    )


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ConciergeError)
    async def concierge_error_handler(request: Request, exc: ConciergeError) -> JSONResponse:
        """
        Typed domain errors keep their code and status; the message is sanitized.

        Side Effects:
            - Logs the error (warning for 4xx, error for 5xx)
            - Increments api.errors.<code> counter
        """
        if exc.status_code >= 500:
            logger.error("%s on %s: %s", exc.code, redact(str(request.url.path)), exc.message)
        else:
            logger.warning("%s on %s: %s", exc.code, request.url.path, exc.message)
        counter(f"api.errors.{exc.code}")
        return _error_response(
            exc.status_code, exc.code, sanitize_error_message(exc.message, exc.status_code)
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """
        Validation error handler that only exposes field names, not validation rules.

        Side Effects:
            - Logs detailed validation errors for debugging
            - Increments validation error counter for monitoring
        """
        errors = exc.errors()
        logger.warning("Validation error on %s: %s", request.url.path, errors)
        counter("api.validation_errors")

        return _error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "validation_error",
            "Invalid request format. Please check your request and try again.",
            invalid_fields=[str(err["loc"][-1]) for err in errors],
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s", request.url.path)
        counter("api.errors.internal_error")
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", generic_message(500)
        )


def create_app(settings: ConciergeSettings | None = None) -> FastAPI:
    """
    Build the concierge API around one settings object.

    Side Effects:
        - Creates the SQLite schema if missing (idempotent)
        - Seeds demo catalog and orders when settings.seed_demo_data is set
        - Starts the retention reaper thread on startup (if interval > 0)
    """
    # Load environment variables from .env in the working directory
    load_dotenv(find_dotenv(usecwd=True))
    settings = settings or ConciergeSettings.from_env()

    db = Database(settings.db_path)
    try:
        logger.info("Initializing database schema...")
        db.init()
    except sqlite3.OperationalError as e:
        logger.critical("Database schema error: %s", e)
        logger.critical("Database may be corrupted or locked by another process")
        raise RuntimeError(f"Database initialization failed: {e}") from e

    if settings.seed_demo_data:
        seeded = seed_demo_data(db)
        logger.info("Demo data seeded: %s", seeded)

    provider = build_provider(settings, db)
    order_repository = OrderRepository(db)
    widget_repository = WidgetRepository(db)
    order_service = OrderService(order_repository, settings)
    widget_service = WidgetService(widget_repository, order_repository, settings)
    resolver = ConciergeResolver(provider, order_service, widget_service, settings)
    reaper = RetentionReaper(db, settings.reaper_interval_seconds)

    app = FastAPI(title="Concierge API", version=APP_VERSION)
    app.state.settings = settings
    app.state.db = db
    app.state.provider = provider
    app.state.order_service = order_service
    app.state.widget_service = widget_service
    app.state.resolver = resolver
    app.state.reaper = reaper

    _register_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_allowed_origins(settings),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )

    app.include_router(health_router)
    app.include_router(concierge_router)
    app.include_router(support_router)

    @app.on_event("startup")
    async def validate_database_schema() -> None:
        """Validate database schema on startup (fail fast if database is broken)

        Side Effects:
            - Reads sqlite_master
            - Starts the retention reaper
            - May raise RuntimeError on validation failure (crashes the app)
        """
        try:
            with db.connection() as conn:
                validate_schema(conn)
            logger.info("Database schema validation passed")
        except ValueError as e:
            logger.critical("Database schema invalid: %s", e)
            raise RuntimeError(f"Database schema validation failed: {e}") from e

        reaper.start()

    @app.on_event("shutdown")
    async def shutdown() -> None:
        reaper.stop()
        db.close()
        logger.info("Concierge API shut down")

    @app.get("/")
    def root() -> dict[str, Any]:
        return {
            "service": "Concierge API",
            "version": APP_VERSION,
            "provider": provider.name,
            "docs": "/docs",
        }

    log_event("api.startup", service="concierge", version=APP_VERSION, provider=provider.name)
    return app


def main() -> None:
    """Serve the API with uvicorn (`concierge-api`)."""
    import uvicorn

    from concierge.infrastructure.settings import API_HOST, API_PORT

    uvicorn.run(create_app(), host=API_HOST, port=API_PORT)
