"""
FastAPI wiring for rate-limited endpoints.

Collaborators that call a paid provider declare the guard as a dependency,
then call ticket.record(cost) once their upstream call succeeded:

    @app.post("/ai-chat")
    def ai_chat(body: ChatBody, ticket: RateLimitTicket = Depends(rate_limit_guard("ai-chat"))):
        reply = provider.complete(...)
        ticket.record(reply.total_tokens)
        return reply
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional

import jwt
from fastapi import Depends, Header

from app.cache.background import BackgroundWriter, get_background_writer
from .limiter import RateLimiter, RateLimitResult, get_rate_limiter
from .messages import RateLimitExceeded

logger = logging.getLogger("ratelimit.guard")


def user_id_from_authorization(authorization: Optional[str]) -> Optional[str]:
    """
    Read the `sub` claim from a bearer token.

    The signature has already been verified by the platform in front of the
    gateway; here the token only identifies whose counters to use.
    """
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization[len("Bearer "):].strip()
    try:
        payload = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return None
    sub = payload.get("sub")
    return str(sub) if sub else None


@dataclass
class RateLimitTicket:
    """Outcome of the guard for one request."""
    endpoint: str
    user_id: Optional[str]
    result: Optional[RateLimitResult]
    limiter: RateLimiter
    writer: BackgroundWriter

    def record(self, cost: int = 0) -> None:
        """Attribute usage in the background; anonymous calls are not metered."""
        if self.user_id is None:
            return
        self.writer.submit(
            f"usage:{self.endpoint}",
            self.limiter.record,
            self.user_id,
            self.endpoint,
            cost,
            retry=False,
        )


def enforce_rate_limit(
    limiter: RateLimiter,
    writer: BackgroundWriter,
    endpoint: str,
    authorization: Optional[str],
    language: Optional[str] = None,
) -> RateLimitTicket:
    """
    Check the limiter for the caller behind `authorization`.

    Raises:
        RateLimitExceeded: the check denied the request
    """
    user_id = user_id_from_authorization(authorization)
    if user_id is None:
        logger.debug(f"Anonymous call to {endpoint}, not metered")
        return RateLimitTicket(endpoint, None, None, limiter, writer)

    result = limiter.check(user_id, endpoint)
    if not result.allowed:
        raise RateLimitExceeded(result, language or "es-ES")
    return RateLimitTicket(endpoint, user_id, result, limiter, writer)


def rate_limit_guard(endpoint: str) -> Callable[..., RateLimitTicket]:
    """Build a FastAPI dependency gating `endpoint`."""
    def dependency(
        authorization: Optional[str] = Header(None),
        accept_language: Optional[str] = Header(None),
        limiter: RateLimiter = Depends(get_rate_limiter),
        writer: BackgroundWriter = Depends(get_background_writer),
    ) -> RateLimitTicket:
        return enforce_rate_limit(limiter, writer, endpoint, authorization, accept_language)

    return dependency
