"""
Request Metrics Collector.

Observes the request/response/error lifecycle without touching business
outcomes: per-path request counts, per-error-kind counts and a bounded log of
slow requests. All mutable state sits behind one lock, shared by the request
hooks, ``reset`` and the periodic cleanup task, so snapshots are never torn and
increments are never lost.
"""

import asyncio
import secrets
import string
import threading
import time
import traceback
from collections import deque
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from storefront.logging import get_logger
from storefront.monitoring import system
from storefront.monitoring.sanitize import sanitize_body, sanitize_headers
from storefront.settings import Settings

logger = get_logger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits

DEFAULT_IGNORE_PATHS = ("/health", "/docs", "/redoc", "/openapi.json")
SLOWEST_REQUESTS_LIMIT = 10


def generate_request_id() -> str:
    """Return ``req_<epoch-ms>_<9 base36 chars>``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"req_{int(time.time() * 1000)}_{suffix}"


def format_duration(duration_ms: float) -> str:
    return f"{duration_ms:.0f}ms"


def validation_issues(error: BaseException) -> list[dict[str, Any]] | None:
    """Location, message and type of each validation failure, never the input."""
    if not isinstance(error, RequestValidationError | ValidationError):
        return None
    return [
        {
            "loc": ".".join(str(part) for part in issue["loc"]),
            "msg": issue["msg"],
            "type": issue["type"],
        }
        for issue in error.errors()
    ]


@dataclass
class RequestContext:
    """Per-request values populated once at entry and threaded through the hooks."""

    request_id: str
    method: str
    path: str
    url: str
    started_at: float
    ignored: bool = False
    client_ip: str | None = None
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SlowRequest:
    path: str
    duration_ms: float
    timestamp: datetime

    def as_dict(self) -> dict[str, str]:
        return {
            "path": self.path,
            "duration": format_duration(self.duration_ms),
            "timestamp": self.timestamp.isoformat(),
        }


class RequestMetricsCollector:
    """In-process request metrics with a rolling slow-request log."""

    def __init__(
        self,
        *,
        slow_request_threshold_ms: float = 1000.0,
        ignore_paths: Iterable[str] = DEFAULT_IGNORE_PATHS,
        retention: timedelta = timedelta(hours=1),
        capacity: int = 100,
        request_logging: bool = True,
        performance_tracking: bool = True,
        log_slow_requests: bool = True,
        error_tracking: bool = True,
        log_headers: bool = False,
        log_body: bool = False,
        max_body_length: int = 1000,
        include_stack: bool = False,
        environment: str = "development",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.slow_request_threshold_ms = slow_request_threshold_ms
        self.ignore_paths = tuple(ignore_paths)
        self.retention = retention
        self.capacity = capacity
        self.request_logging = request_logging
        self.performance_tracking = performance_tracking
        self.log_slow_requests = log_slow_requests
        self.error_tracking = error_tracking
        self.log_headers = log_headers
        self.log_body = log_body
        self.max_body_length = max_body_length
        self.include_stack = include_stack
        self.environment = environment
        self._clock = clock or (lambda: datetime.now(UTC))

        self._lock = threading.Lock()
        self._request_counts: dict[str, int] = {}
        self._error_counts: dict[str, int] = {}
        self._slow_requests: deque[SlowRequest] = deque(maxlen=capacity)

    @classmethod
    def from_settings(cls, settings: Settings) -> "RequestMetricsCollector":
        monitoring = settings.monitoring
        return cls(
            slow_request_threshold_ms=monitoring.slow_request_threshold_ms,
            ignore_paths=monitoring.ignore_paths,
            retention=timedelta(seconds=monitoring.slow_request_retention_seconds),
            capacity=monitoring.slow_request_capacity,
            request_logging=monitoring.request_logging_enabled,
            performance_tracking=monitoring.performance_enabled,
            log_slow_requests=monitoring.log_slow_requests,
            error_tracking=monitoring.error_tracking_enabled,
            log_headers=settings.log_request_headers,
            log_body=settings.log_request_body,
            max_body_length=monitoring.max_body_length,
            include_stack=settings.log_error_stack,
            environment=settings.environment.value,
        )

    def is_ignored(self, url: str) -> bool:
        return any(url.startswith(prefix) for prefix in self.ignore_paths)

    # ------------------------------------------------------------------
    # Lifecycle hooks
    # ------------------------------------------------------------------
    def on_receive(
        self,
        method: str,
        path: str,
        url: str | None = None,
        *,
        client_ip: str | None = None,
        headers: Mapping[str, str] | None = None,
        body: Any = None,
    ) -> RequestContext:
        """Start tracking a request and count it against ``path``."""
        url = url or path
        context = RequestContext(
            request_id=generate_request_id(),
            method=method,
            path=path,
            url=url,
            started_at=time.perf_counter(),
            ignored=self.is_ignored(url),
            client_ip=client_ip,
        )

        with self._lock:
            self._request_counts[path] = self._request_counts.get(path, 0) + 1

        if self.request_logging and not context.ignored:
            log_data: dict[str, Any] = {
                "request_id": context.request_id,
                "method": method,
                "url": url,
                "ip": client_ip,
            }
            if headers is not None:
                log_data["user_agent"] = headers.get("user-agent")
                if self.log_headers:
                    log_data["headers"] = sanitize_headers(headers)
            if self.log_body and body:
                log_data["body"] = sanitize_body(body, self.max_body_length)
            logger.info("request.received", **log_data)

        return context

    def on_send(self, context: RequestContext, status_code: int) -> float:
        """Finish tracking a request; returns its duration in milliseconds."""
        duration_ms = (time.perf_counter() - context.started_at) * 1000

        if self.performance_tracking and duration_ms > self.slow_request_threshold_ms:
            self.record_slow_request(f"{context.method} {context.url}", duration_ms)
            if self.log_slow_requests:
                logger.warning(
                    "request.slow",
                    request_id=context.request_id,
                    method=context.method,
                    url=context.url,
                    duration=format_duration(duration_ms),
                    threshold=format_duration(self.slow_request_threshold_ms),
                )

        if self.request_logging and not context.ignored:
            logger.info(
                "request.completed",
                request_id=context.request_id,
                method=context.method,
                url=context.url,
                status_code=status_code,
                duration=format_duration(duration_ms),
            )

        return duration_ms

    def on_error(self, context: RequestContext | None, error: BaseException) -> None:
        """Count ``error`` by its class name and log it."""
        if not self.error_tracking:
            return

        kind = type(error).__name__
        with self._lock:
            self._error_counts[kind] = self._error_counts.get(kind, 0) + 1

        if context is not None:
            context.errors.append(kind)

        log_data: dict[str, Any] = {
            "request_id": context.request_id if context else None,
            "method": context.method if context else None,
            "url": context.url if context else None,
            "error_type": kind,
        }
        issues = validation_issues(error)
        if issues is None:
            log_data["error_message"] = str(error)
        else:
            # pydantic's str() echoes the rejected input, credentials included
            log_data["error_message"] = f"{len(issues)} validation error(s)"
            log_data["validation_errors"] = issues
        if self.include_stack and issues is None:
            log_data["stack"] = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )
        logger.error("request.failed", **log_data)

    # ------------------------------------------------------------------
    # Slow request log
    # ------------------------------------------------------------------
    def record_slow_request(
        self, path: str, duration_ms: float, timestamp: datetime | None = None
    ) -> None:
        """Append to the slow-request log; the oldest entry drops out at capacity."""
        entry = SlowRequest(path=path, duration_ms=duration_ms, timestamp=timestamp or self._clock())
        with self._lock:
            self._slow_requests.append(entry)

    def cleanup_expired(self, now: datetime | None = None) -> int:
        """Drop slow requests older than the retention horizon; returns how many remain."""
        cutoff = (now or self._clock()) - self.retention
        with self._lock:
            kept = [entry for entry in self._slow_requests if entry.timestamp > cutoff]
            self._slow_requests.clear()
            self._slow_requests.extend(kept)
            remaining = len(self._slow_requests)
            total_endpoints = len(self._request_counts)
            total_errors = sum(self._error_counts.values())

        logger.info(
            "metrics.cleanup",
            remaining_slow_requests=remaining,
            total_endpoints=total_endpoints,
            total_errors=total_errors,
        )
        return remaining

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------
    def snapshot(self, now: datetime | None = None) -> dict[str, Any]:
        """Return a consistent copy of all counters plus process readings."""
        now = now or self._clock()
        cutoff = now - self.retention

        with self._lock:
            by_endpoint = dict(self._request_counts)
            by_type = dict(self._error_counts)
            recent = [entry for entry in self._slow_requests if entry.timestamp > cutoff]

        slowest = sorted(recent, key=lambda entry: entry.duration_ms, reverse=True)
        return {
            "requests": {
                "total": sum(by_endpoint.values()),
                "byEndpoint": by_endpoint,
                "slowRequestsLastHour": len(recent),
            },
            "errors": {
                "total": sum(by_type.values()),
                "byType": by_type,
            },
            "performance": {
                "slowestRequests": [
                    entry.as_dict() for entry in slowest[:SLOWEST_REQUESTS_LIMIT]
                ],
            },
            "system": {
                "uptime": system.process_uptime_seconds(),
                "memoryUsage": system.memory_usage_mb(),
                "pythonVersion": system.runtime_info()["pythonVersion"],
                "environment": self.environment,
            },
            "timestamp": now.isoformat(),
        }

    def reset(self) -> None:
        """Clear every counter and the slow-request log."""
        with self._lock:
            self._request_counts.clear()
            self._error_counts.clear()
            self._slow_requests.clear()
        logger.info("metrics.reset")


async def run_periodic_cleanup(collector: RequestMetricsCollector, interval: float) -> None:
    """Call ``collector.cleanup_expired`` every ``interval`` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        collector.cleanup_expired()


__all__ = [
    "RequestContext",
    "RequestMetricsCollector",
    "SlowRequest",
    "format_duration",
    "validation_issues",
    "generate_request_id",
    "run_periodic_cleanup",
]
