"""
Error taxonomy for the gateway.

Every error raised on purpose by the proxy, bulk and rate-limit layers is a
GatewayError. The FastAPI app renders them all through one handler, so each
class only has to declare its HTTP status and machine-readable code.
"""
from typing import Any, Dict, Optional


class GatewayError(Exception):
    """Base class for errors that map to a JSON error response."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.code}

    def headers(self) -> Dict[str, str]:
        return {}


class ValidationError(GatewayError):
    """Malformed or missing request fields."""

    status_code = 400
    code = "INVALID_REQUEST"


class ForbiddenPath(GatewayError):
    """Requested path is not on the allow-list."""

    status_code = 403
    code = "FORBIDDEN_PATH"

    def __init__(self, path: str):
        super().__init__(f"Path not allowed: {path}")
        self.path = path


class ConfigError(GatewayError):
    """Required secret or setting is absent. Not actionable by the caller."""

    status_code = 500
    code = "CONFIG_ERROR"


class UpstreamError(GatewayError):
    """
    Upstream provider answered with a non-success status.

    The upstream status and body are passed through verbatim so callers can
    tell a rejected request apart from an unreachable provider.
    """

    code = "TMDB_ERROR"

    def __init__(self, status_code: int, body: str = ""):
        super().__init__("Upstream provider error")
        self.status_code = status_code
        self.body = body

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["status"] = self.status_code
        result["details"] = self.body
        return result


class UpstreamUnavailable(UpstreamError):
    """Upstream could not be reached (connection error, timeout)."""

    code = "UPSTREAM_UNAVAILABLE"

    def __init__(self, reason: str = ""):
        super().__init__(502, reason)
        self.message = "Upstream provider unreachable"


class InternalError(GatewayError):
    """Unexpected failure anywhere else."""

    status_code = 500
    code = "INTERNAL_ERROR"
