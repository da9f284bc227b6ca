"""Localized rate limit denials."""

from typing import Any, Dict

from app.errors import GatewayError
from .limiter import RateLimitResult


def _plural(n: int) -> str:
    return "s" if n != 1 else ""


def denial_message(result: RateLimitResult) -> Dict[str, str]:
    """Spanish and English explanation for a denied check."""
    wait = result.wait_seconds
    if result.reason == "too_fast":
        return {
            "es": f"Espera {wait} segundo{_plural(wait)} antes de enviar otro mensaje.",
            "en": f"Wait {wait} second{_plural(wait)} before sending another message.",
        }
    if result.reason == "minute_limit":
        return {
            "es": "Has enviado muchos mensajes. Espera un minuto.",
            "en": "You've sent too many messages. Wait a minute.",
        }
    if result.reason == "hour_limit":
        return {
            "es": "Has alcanzado el límite de mensajes por hora. Vuelve más tarde.",
            "en": "You've reached the hourly message limit. Try again later.",
        }
    return {
        "es": "Demasiadas solicitudes. Intenta de nuevo.",
        "en": "Too many requests. Please try again.",
    }


class RateLimitExceeded(GatewayError):
    """A rate limit check denied the request."""

    status_code = 429
    code = "RATE_LIMITED"

    def __init__(self, result: RateLimitResult, language: str = "es-ES"):
        self.result = result
        self.language = language or "es-ES"
        self.messages = denial_message(result)
        lang = "en" if self.language.lower().startswith("en") else "es"
        super().__init__(self.messages[lang])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": "rate_limited",
            "code": self.code,
            "reason": self.result.reason,
            "waitSeconds": self.result.wait_seconds,
            "message": self.messages,
        }

    def headers(self) -> Dict[str, str]:
        return {"Retry-After": str(self.result.wait_seconds)}
