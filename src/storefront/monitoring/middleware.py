"""
HTTP middleware for request metrics and security headers.

``RequestMetricsMiddleware`` must be the outermost middleware so it is first on
receive and last on send; exceptions no inner layer handled end here as a 500
envelope after being recorded.
"""

import json
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import parse_qsl

import structlog
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match
from starlette.types import ASGIApp

from storefront.api.responses import error_body
from storefront.logging import get_logger
from storefront.monitoring.collector import RequestMetricsCollector, format_duration

logger = get_logger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]

DOCS_PATHS = ("/docs", "/redoc", "/openapi.json")

CONTENT_SECURITY_POLICY = "; ".join(
    [
        "default-src 'self'",
        "base-uri 'self'",
        "font-src 'self' https: data:",
        "form-action 'self'",
        "frame-ancestors 'none'",
        "img-src 'self' data:",
        "object-src 'none'",
        "script-src 'self'",
        "script-src-attr 'none'",
        "style-src 'self' https: 'unsafe-inline'",
        "upgrade-insecure-requests",
    ]
)


def resolve_route_path(request: Request) -> str:
    """Return the matching route template (``/products/{product_id}``) or the raw path."""
    app = request.scope.get("app")
    router = getattr(app, "router", None)
    for route in getattr(router, "routes", ()):
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", request.url.path)
    return request.url.path


def request_url(request: Request) -> str:
    url = request.url.path
    if request.url.query:
        url = f"{url}?{request.url.query}"
    return url


async def read_body(request: Request) -> Any:
    """Decode a JSON or form-encoded body for logging; other payloads are skipped."""
    body = await request.body()
    if not body:
        return None
    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            return json.loads(body)
        except ValueError:
            return None
    if "application/x-www-form-urlencoded" in content_type:
        return dict(parse_qsl(body.decode("utf-8", errors="replace"), keep_blank_values=True))
    return None


def apply_security_headers(response: Response, path: str, *, hsts: bool = False) -> Response:
    headers = response.headers
    headers["X-Content-Type-Options"] = "nosniff"
    headers["X-Frame-Options"] = "DENY"
    headers["Referrer-Policy"] = "no-referrer"
    headers["X-DNS-Prefetch-Control"] = "off"
    headers["X-Permitted-Cross-Domain-Policies"] = "none"
    headers["Cross-Origin-Opener-Policy"] = "same-origin"
    headers["Cross-Origin-Resource-Policy"] = "cross-origin"
    headers["Origin-Agent-Cluster"] = "?1"

    # Swagger UI and ReDoc load scripts from a CDN
    if not path.startswith(DOCS_PATHS):
        headers["Content-Security-Policy"] = CONTENT_SECURITY_POLICY

    if hsts:
        headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

    return response


class RequestMetricsMiddleware(BaseHTTPMiddleware):
    """Drives the collector's receive/send/error hooks for every request."""

    def __init__(
        self,
        app: ASGIApp,
        collector: RequestMetricsCollector,
        api_version: str = "1.0.0",
        expose_error_details: bool = False,
        hsts: bool = False,
    ) -> None:
        super().__init__(app)
        self.collector = collector
        self.api_version = api_version
        self.expose_error_details = expose_error_details
        self.hsts = hsts

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        body = await read_body(request) if self.collector.log_body else None
        context = self.collector.on_receive(
            request.method,
            resolve_route_path(request),
            request_url(request),
            client_ip=request.client.host if request.client else None,
            headers=request.headers,
            body=body,
        )
        request.state.request_context = context

        with structlog.contextvars.bound_contextvars(request_id=context.request_id):
            try:
                response = await call_next(request)
            except Exception as exc:
                self.collector.on_error(context, exc)
                logger.exception(
                    "request.unhandled_exception",
                    method=context.method,
                    url=context.url,
                )
                message = str(exc) if self.expose_error_details else "Internal server error"
                response = JSONResponse(
                    status_code=500, content=error_body(message, "INTERNAL_ERROR")
                )
                # the inner security layer never saw this response
                apply_security_headers(response, request.url.path, hsts=self.hsts)

        duration_ms = self.collector.on_send(context, response.status_code)

        response.headers["X-Request-ID"] = context.request_id
        response.headers["X-Response-Time"] = format_duration(duration_ms)
        response.headers["X-API-Version"] = self.api_version
        response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
        response.headers["Pragma"] = "no-cache"
        response.headers["Expires"] = "0"
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds browser hardening headers to every response."""

    def __init__(self, app: ASGIApp, hsts: bool = False) -> None:
        super().__init__(app)
        self.hsts = hsts

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        response = await call_next(request)
        return apply_security_headers(response, request.url.path, hsts=self.hsts)


__all__ = [
    "RequestMetricsMiddleware",
    "SecurityHeadersMiddleware",
    "apply_security_headers",
    "read_body",
    "resolve_route_path",
]
