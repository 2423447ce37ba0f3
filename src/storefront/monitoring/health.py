"""Composite health report: credential store, memory, uptime and runtime."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from storefront.logging import get_logger
from storefront.monitoring import system

logger = get_logger(__name__)

HEALTHY = "healthy"
WARNING = "warning"
UNHEALTHY = "unhealthy"


@dataclass
class CheckResult:
    """Outcome of one health check."""

    status: str
    message: str
    details: dict[str, Any] | None = None

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"status": self.status, "message": self.message}
        if self.details:
            payload.update(self.details)
        return payload


class HealthAggregator:
    """Runs the health checks and folds them into one status.

    ``probe`` is any coroutine function that raises when the store is
    unreachable, typically ``Database.ping``.
    """

    def __init__(
        self,
        probe: Callable[[], Awaitable[Any]],
        *,
        memory_threshold_mb: int = 500,
        memory_reader: Callable[[], dict[str, int]] = system.memory_usage_mb,
        uptime_reader: Callable[[], float] = system.process_uptime_seconds,
    ) -> None:
        self.probe = probe
        self.memory_threshold_mb = memory_threshold_mb
        self.memory_reader = memory_reader
        self.uptime_reader = uptime_reader

    async def check_database(self) -> CheckResult:
        try:
            await self.probe()
        except Exception as exc:
            logger.error("health.database.failed", error=str(exc))
            return CheckResult(UNHEALTHY, f"Database connection failed: {exc}")
        return CheckResult(HEALTHY, "Database connection successful")

    def check_memory(self, memory: dict[str, int]) -> CheckResult:
        used = memory["rss"]
        if used > self.memory_threshold_mb:
            return CheckResult(
                WARNING,
                f"Memory usage: {used}MB (above {self.memory_threshold_mb}MB)",
                {"usedMB": used},
            )
        return CheckResult(HEALTHY, f"Memory usage: {used}MB", {"usedMB": used})

    def check_uptime(self, seconds: float) -> CheckResult:
        human = system.format_uptime(seconds)
        return CheckResult(
            HEALTHY, f"Uptime: {human}", {"seconds": int(seconds), "human": human}
        )

    def check_runtime(self, runtime: dict[str, Any]) -> CheckResult:
        return CheckResult(HEALTHY, f"Python version: {runtime['pythonVersion']}")

    async def check(self) -> dict[str, Any]:
        """Run every check and derive the overall status.

        Unhealthy when the store probe fails; otherwise warning when memory is
        above the threshold; otherwise healthy.
        """
        memory = self.memory_reader()
        uptime = self.uptime_reader()
        runtime = system.runtime_info()

        checks = {
            "database": await self.check_database(),
            "memory": self.check_memory(memory),
            "uptime": self.check_uptime(uptime),
            "runtime": self.check_runtime(runtime),
        }

        overall = HEALTHY
        if checks["database"].status == UNHEALTHY:
            overall = UNHEALTHY
        elif checks["memory"].status == WARNING:
            overall = WARNING

        return {
            "status": overall,
            "timestamp": datetime.now(UTC).isoformat(),
            "checks": {name: result.as_dict() for name, result in checks.items()},
            "system": {
                "platform": runtime["platform"],
                "arch": runtime["arch"],
                "pythonVersion": runtime["pythonVersion"],
                "uptime": uptime,
                "memory": memory,
                "pid": runtime["pid"],
            },
        }


__all__ = ["CheckResult", "HealthAggregator", "HEALTHY", "WARNING", "UNHEALTHY"]
