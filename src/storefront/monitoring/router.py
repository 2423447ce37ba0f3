"""
Monitoring endpoints: metrics snapshot, reset, detailed health, rate-limit quota.
"""

from typing import Any

from fastapi import APIRouter, Depends, Request

from storefront.monitoring.collector import RequestMetricsCollector
from storefront.monitoring.health import HEALTHY, HealthAggregator
from storefront.rate_limiting import RateLimitPolicy, RateLimitTier, client_key

monitoring_router = APIRouter(prefix="/api/monitoring", tags=["Monitoring"])


def get_metrics_collector(request: Request) -> RequestMetricsCollector:
    return request.app.state.metrics_collector


def get_health_aggregator(request: Request) -> HealthAggregator:
    return request.app.state.health_aggregator


def get_rate_limit_policy(request: Request) -> RateLimitPolicy:
    return request.app.state.rate_limit_policy


@monitoring_router.get("/metrics")
async def get_metrics(
    collector: RequestMetricsCollector = Depends(get_metrics_collector),
) -> dict[str, Any]:
    """Current request, error, performance and process metrics."""
    return {"success": True, "data": collector.snapshot()}


@monitoring_router.post("/reset")
async def reset_metrics(
    collector: RequestMetricsCollector = Depends(get_metrics_collector),
) -> dict[str, Any]:
    collector.reset()
    return {"success": True, "message": "Metrics reset successfully"}


@monitoring_router.get("/health-detailed")
async def health_detailed(
    aggregator: HealthAggregator = Depends(get_health_aggregator),
) -> dict[str, Any]:
    """Store probe, memory, uptime and runtime checks folded into one status."""
    report = await aggregator.check()
    return {"success": report["status"] == HEALTHY, **report}


@monitoring_router.get("/rate-limit-status")
async def rate_limit_status(
    request: Request,
    policy: RateLimitPolicy = Depends(get_rate_limit_policy),
) -> dict[str, Any]:
    """The caller's global quota for the current window."""
    key = client_key(request)
    status = policy.status(key, RateLimitTier.GLOBAL)
    return {
        "success": True,
        "data": {
            "ip": key,
            "remaining": status.remaining,
            "total": status.limit,
            "resetTime": status.reset_at.isoformat(),
            "timeWindow": policy.window_description,
        },
    }


__all__ = [
    "monitoring_router",
    "get_metrics_collector",
    "get_health_aggregator",
    "get_rate_limit_policy",
]
