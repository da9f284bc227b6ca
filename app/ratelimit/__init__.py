"""
Per-user rate limiting for cost-incurring AI endpoints.
"""
from .limiter import (
    RATE_LIMITS,
    RateLimitConfig,
    RateLimiter,
    RateLimitResult,
    get_rate_limiter,
)
from .backend import RateLimitBackendError, SqlRateLimitBackend
from .messages import RateLimitExceeded, denial_message
from .guard import (
    RateLimitTicket,
    enforce_rate_limit,
    rate_limit_guard,
    user_id_from_authorization,
)

__all__ = [
    "RATE_LIMITS",
    "RateLimitConfig",
    "RateLimiter",
    "RateLimitResult",
    "get_rate_limiter",
    "RateLimitBackendError",
    "SqlRateLimitBackend",
    "RateLimitExceeded",
    "denial_message",
    "RateLimitTicket",
    "enforce_rate_limit",
    "rate_limit_guard",
    "user_id_from_authorization",
]
