"""
Per-client rate limiting.

Clients are keyed by remote address (``slowapi.util.get_remote_address``).
Counting uses fixed windows from the ``limits`` library, and the same limiter
that enforces a ceiling answers quota queries, so reported remaining counts
always match enforcement.
"""

import math
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from limits import RateLimitItem, RateLimitItemPerMinute
from limits.storage import storage_from_string
from limits.strategies import FixedWindowRateLimiter
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from storefront.exceptions import RateLimitExceededError
from storefront.logging import get_logger
from storefront.settings import Settings

logger = get_logger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]

AUTH_PATHS = frozenset({"/auth/login", "/auth/register"})


class RateLimitTier(str, Enum):
    GLOBAL = "global"
    AUTH = "auth"


@dataclass(frozen=True)
class RateLimitStatus:
    """Quota of one client in one tier for the current window."""

    limit: int
    remaining: int
    reset_at: datetime
    window: timedelta

    @property
    def seconds_until_reset(self) -> int:
        return max(0, math.ceil((self.reset_at - datetime.now(UTC)).total_seconds()))


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    status: RateLimitStatus


class RateLimitPolicy:
    """Two fixed-window tiers (global and auth) keyed by client address."""

    def __init__(
        self,
        *,
        global_limit: int,
        auth_limit: int,
        window_minutes: int = 15,
        storage_url: str = "memory://",
        allow_list: Iterable[str] = ("127.0.0.1", "::1"),
        enabled: bool = True,
    ) -> None:
        self.enabled = enabled
        self.window = timedelta(minutes=window_minutes)
        self.allow_list = frozenset(allow_list)
        self.storage = storage_from_string(storage_url)
        self.limiter = FixedWindowRateLimiter(self.storage)
        self.items: dict[RateLimitTier, RateLimitItem] = {
            RateLimitTier.GLOBAL: RateLimitItemPerMinute(global_limit, window_minutes),
            RateLimitTier.AUTH: RateLimitItemPerMinute(auth_limit, window_minutes),
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "RateLimitPolicy":
        return cls(
            global_limit=settings.global_rate_limit,
            auth_limit=settings.auth_rate_limit,
            window_minutes=settings.rate_limit.window_minutes,
            storage_url=settings.rate_limit.storage_url,
            allow_list=settings.rate_limit.allow_list,
            enabled=settings.rate_limit.enabled,
        )

    @property
    def window_description(self) -> str:
        minutes = int(self.window.total_seconds() // 60)
        return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"

    def is_exempt(self, key: str) -> bool:
        return key in self.allow_list

    def tier_for(self, path: str) -> RateLimitTier:
        """Auth endpoints get their own stricter tier instead of the global one."""
        return RateLimitTier.AUTH if path.rstrip("/") in AUTH_PATHS else RateLimitTier.GLOBAL

    def hit(self, key: str, tier: RateLimitTier = RateLimitTier.GLOBAL) -> RateLimitDecision:
        """Consume one request from ``key``'s quota."""
        allowed = self.limiter.hit(self.items[tier], tier.value, key)
        return RateLimitDecision(allowed=allowed, status=self.status(key, tier))

    def status(self, key: str, tier: RateLimitTier = RateLimitTier.GLOBAL) -> RateLimitStatus:
        """Report ``key``'s quota without consuming it."""
        item = self.items[tier]
        stats = self.limiter.get_window_stats(item, tier.value, key)
        reset_time = stats.reset_time if stats.reset_time > time.time() else time.time() + item.get_expiry()
        return RateLimitStatus(
            limit=item.amount,
            remaining=max(0, stats.remaining),
            reset_at=datetime.fromtimestamp(reset_time, UTC),
            window=self.window,
        )

    def reset(self) -> None:
        """Forget every client's usage."""
        self.storage.reset()


def client_key(request: Request) -> str:
    return get_remote_address(request)


def apply_rate_limit_headers(response: Response, status: RateLimitStatus) -> None:
    response.headers["X-RateLimit-Limit"] = str(status.limit)
    response.headers["X-RateLimit-Remaining"] = str(status.remaining)
    response.headers["X-RateLimit-Reset"] = str(status.seconds_until_reset)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Enforces the policy before routing; over-limit requests get a 429 envelope."""

    def __init__(self, app: ASGIApp, policy: RateLimitPolicy) -> None:
        super().__init__(app)
        self.policy = policy

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        if not self.policy.enabled or request.method == "OPTIONS":
            return await call_next(request)

        key = client_key(request)
        if self.policy.is_exempt(key):
            return await call_next(request)

        tier = self.policy.tier_for(request.url.path)
        decision = self.policy.hit(key, tier)

        if not decision.allowed:
            logger.warning(
                "rate_limit.exceeded",
                client=key,
                tier=tier.value,
                path=request.url.path,
                limit=decision.status.limit,
            )
            error = RateLimitExceededError()
            response: Response = JSONResponse(status_code=error.status_code, content=error.to_dict())
            response.headers["Retry-After"] = str(decision.status.seconds_until_reset)
        else:
            response = await call_next(request)

        apply_rate_limit_headers(response, decision.status)
        return response


__all__ = [
    "AUTH_PATHS",
    "RateLimitDecision",
    "RateLimitMiddleware",
    "RateLimitPolicy",
    "RateLimitStatus",
    "RateLimitTier",
    "apply_rate_limit_headers",
    "client_key",
]
