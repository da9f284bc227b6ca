"""Per-user, per-endpoint rate limiting for cost-incurring AI calls."""

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Protocol

logger = logging.getLogger("ratelimit.limiter")


@dataclass(frozen=True)
class RateLimitConfig:
    """Limits for one endpoint class."""
    max_per_minute: int
    max_per_hour: int
    min_interval_seconds: int


# Configuration per gated endpoint
RATE_LIMITS: Dict[str, RateLimitConfig] = {
    "ai-chat": RateLimitConfig(max_per_minute=10, max_per_hour=50, min_interval_seconds=2),
    "ai-search-plan": RateLimitConfig(max_per_minute=6, max_per_hour=40, min_interval_seconds=3),
    "ai-movie-insight": RateLimitConfig(max_per_minute=15, max_per_hour=100, min_interval_seconds=1),
}

REASON_NONE = "none"


class RateLimitBackend(Protocol):
    """Storage-side contract: one atomic check, one usage record."""

    def check(
        self,
        user_id: str,
        endpoint: str,
        max_per_minute: int,
        max_per_hour: int,
        min_interval_seconds: int,
    ) -> dict:
        ...

    def record(self, user_id: str, endpoint: str, cost_units: int = 0) -> None:
        ...


@dataclass(frozen=True)
class RateLimitResult:
    """Decision for one request."""
    allowed: bool
    reason: str = REASON_NONE
    wait_seconds: int = 0
    remaining: int = -1

    def to_dict(self) -> dict:
        return {
            "allowed": self.allowed,
            "reason": self.reason,
            "waitSeconds": self.wait_seconds,
            "remaining": self.remaining,
        }


FAIL_OPEN = RateLimitResult(allowed=True, reason=REASON_NONE, wait_seconds=0, remaining=-1)


class RateLimiter:
    """
    Gate combining a minimum interval, a per-minute cap and a per-hour cap.

    The limiter holds no counters itself; every check is one atomic call on
    the backend. If the backend errors, the limiter fails open: blocking a
    legitimate user is judged worse than an occasional unmetered burst.
    """

    def __init__(
        self,
        backend: RateLimitBackend,
        limits: Optional[Dict[str, RateLimitConfig]] = None,
    ):
        self.backend = backend
        self.limits = limits if limits is not None else RATE_LIMITS

    def config_for(self, endpoint: str) -> RateLimitConfig:
        try:
            return self.limits[endpoint]
        except KeyError:
            raise ValueError(f"No rate limit configured for endpoint '{endpoint}'") from None

    def check(self, user_id: str, endpoint: str) -> RateLimitResult:
        """
        Check (and on success, count) one request for the given user.

        Args:
            user_id: Authenticated user id
            endpoint: Gated endpoint name, must be in the limits table

        Returns:
            RateLimitResult; allowed with remaining=-1 when the backend failed
        """
        config = self.config_for(endpoint)

        try:
            data = self.backend.check(
                user_id,
                endpoint,
                config.max_per_minute,
                config.max_per_hour,
                config.min_interval_seconds,
            )
            result = RateLimitResult(
                allowed=bool(data["allowed"]),
                reason=data.get("reason") or REASON_NONE,
                wait_seconds=max(0, int(data.get("wait_seconds") or 0)),
                remaining=int(data.get("requests_remaining", -1)),
            )
        except Exception as e:
            logger.error(f"Rate limit check failed for {endpoint} (failing open): {e}")
            return FAIL_OPEN

        if not result.allowed:
            logger.info(
                f"RATE LIMITED: user={user_id} endpoint={endpoint} "
                f"reason={result.reason} wait={result.wait_seconds}s"
            )
        return result

    def record(self, user_id: str, endpoint: str, cost: int = 0) -> bool:
        """
        Attribute usage after the gated action succeeded.

        Failures are logged and otherwise ignored.
        """
        try:
            self.backend.record(user_id, endpoint, cost)
        except Exception as e:
            logger.error(f"Usage record failed for {endpoint}: {e}")
            return False
        return True


# Global rate limiter instance
_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Get the global rate limiter backed by the SQL store."""
    global _rate_limiter
    if _rate_limiter is None:
        from app.db import SessionLocal
        from .backend import SqlRateLimitBackend

        _rate_limiter = RateLimiter(SqlRateLimitBackend(SessionLocal))
    return _rate_limiter
