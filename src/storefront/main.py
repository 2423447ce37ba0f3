"""
Main FastAPI application entry point for the Storefront API.

``create_app`` builds every long-lived service (database, token service,
password hasher, metrics collector, rate-limit policy, health aggregator) from
one ``Settings`` value and keeps them on ``app.state``. Run it with
``uvicorn storefront.main:create_app --factory`` or ``storefront serve``.
"""

import asyncio
import contextlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront import __version__
from storefront.api.responses import error_body
from storefront.auth.jwt_service import JWTService
from storefront.auth.passwords import PasswordHasher
from storefront.auth.router import auth_router
from storefront.db import Database
from storefront.environment import environment_router, secret_problems
from storefront.exceptions import ConfigurationError, StorefrontError
from storefront.logging import get_logger, setup_logging
from storefront.monitoring.collector import RequestMetricsCollector, run_periodic_cleanup
from storefront.monitoring.health import HealthAggregator
from storefront.monitoring.middleware import RequestMetricsMiddleware, SecurityHeadersMiddleware
from storefront.monitoring.router import monitoring_router
from storefront.products.router import products_router
from storefront.rate_limiting import RateLimitMiddleware, RateLimitPolicy
from storefront.settings import Settings, get_settings
from storefront.users.router import users_router

logger = get_logger(__name__)

HTTP_ERROR_CODES = {
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}

OPENAPI_TAGS = [
    {"name": "Authentication", "description": "Registration, login and profile"},
    {"name": "Users", "description": "Registered accounts"},
    {"name": "Products", "description": "Product catalog"},
    {"name": "Monitoring", "description": "Metrics, health and rate-limit status"},
    {"name": "Environment", "description": "Configuration report (non-production only)"},
    {"name": "Health", "description": "Liveness"},
]


def validate_startup_settings(settings: Settings) -> None:
    """Refuse to build an app that cannot sign tokens safely."""
    if not settings.jwt.secret_key:
        raise ConfigurationError("JWT secret key is required (set JWT__SECRET_KEY)")
    if settings.is_production:
        problems = secret_problems(settings.jwt.secret_key, production=True)
        if problems:
            raise ConfigurationError("; ".join(problems))


# ============================================================
# Exception handlers
# ============================================================


def _record_error(request: Request, exc: Exception) -> None:
    collector: RequestMetricsCollector = request.app.state.metrics_collector
    collector.on_error(getattr(request.state, "request_context", None), exc)


async def storefront_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render domain errors; 5xx messages stay generic unless details are exposed."""
    if not isinstance(exc, StorefrontError):
        raise exc
    _record_error(request, exc)
    settings: Settings = request.app.state.settings
    expose = exc.status_code < 500 or settings.expose_error_details
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(expose_message=expose))


async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    if not isinstance(exc, RequestValidationError):
        raise exc
    _record_error(request, exc)
    details = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=error_body("Validation failed", "VALIDATION_ERROR", details),
    )


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    if not isinstance(exc, StarletteHTTPException):
        raise exc
    _record_error(request, exc)
    code = HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail), code),
        headers=getattr(exc, "headers", None),
    )


# ============================================================
# Lifespan
# ============================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Create tables, start periodic metrics cleanup, and release resources on shutdown."""
    settings: Settings = app.state.settings
    database: Database = app.state.database
    collector: RequestMetricsCollector = app.state.metrics_collector

    logger.info(
        "service.startup.begin",
        service=settings.app_name,
        version=settings.app_version,
        environment=settings.environment.value,
    )

    await database.create_all()

    cleanup_task = asyncio.create_task(
        run_periodic_cleanup(collector, settings.monitoring.cleanup_interval_seconds)
    )
    logger.info("service.startup.complete", port=settings.port)

    try:
        yield
    finally:
        logger.info("service.shutdown.begin")
        cleanup_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await cleanup_task
        await database.dispose()
        logger.info("service.shutdown.complete")


# ============================================================
# Application factory
# ============================================================


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    validate_startup_settings(settings)
    setup_logging(settings)

    app = FastAPI(
        title="Storefront API",
        description="User authentication and product catalog service",
        version=settings.app_version or __version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=OPENAPI_TAGS,
    )

    database = Database.from_settings(settings)
    collector = RequestMetricsCollector.from_settings(settings)
    rate_limit_policy = RateLimitPolicy.from_settings(settings)

    app.state.settings = settings
    app.state.database = database
    app.state.jwt_service = JWTService.from_settings(settings)
    app.state.password_hasher = PasswordHasher.from_settings(settings)
    app.state.metrics_collector = collector
    app.state.rate_limit_policy = rate_limit_policy
    app.state.health_aggregator = HealthAggregator(
        database.ping,
        memory_threshold_mb=settings.monitoring.memory_warning_threshold_mb,
    )

    # Starlette wraps in reverse order: the last middleware added runs first.
    app.add_middleware(RateLimitMiddleware, policy=rate_limit_policy)
    app.add_middleware(SecurityHeadersMiddleware, hsts=settings.is_production)
    if settings.cors.enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors.origins,
            allow_credentials=settings.cors.credentials,
            allow_methods=settings.cors.methods,
            allow_headers=settings.cors.headers,
            expose_headers=settings.cors.expose_headers,
            max_age=settings.cors.max_age,
        )
    app.add_middleware(
        RequestMetricsMiddleware,
        collector=collector,
        api_version=settings.monitoring.api_version,
        expose_error_details=settings.expose_error_details,
        hsts=settings.is_production,
    )

    app.add_exception_handler(StorefrontError, storefront_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)

    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(products_router)
    app.include_router(monitoring_router)
    if not settings.is_production:
        app.include_router(environment_router)

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, Any]:
        """Liveness check; does not touch the database."""
        return {
            "success": True,
            "status": "healthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "version": settings.app_version,
            "environment": settings.environment.value,
        }

    logger.info(
        "app.created",
        environment=settings.environment.value,
        rate_limit_global=settings.global_rate_limit,
        rate_limit_auth=settings.auth_rate_limit,
        env_routes=not settings.is_production,
    )
    return app


__all__ = ["create_app", "lifespan", "validate_startup_settings"]
