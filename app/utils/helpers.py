"""
Utility helper functions for safe data handling.
"""
from datetime import datetime, timezone
from typing import Any, Optional


def utcnow() -> datetime:
    """
    Current UTC time as a naive datetime.

    All persisted timestamps are naive UTC so SQLite and PostgreSQL compare
    them the same way.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def clean_path(path: Any) -> str:
    """
    Strip leading and trailing slashes from a resource path.

    Args:
        path: Path as sent by the caller

    Returns:
        Path without surrounding slashes, or "" if path is None
    """
    if path is None:
        return ""
    return str(path).strip().strip("/")


def safe_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    """
    Convert value to int only if it is integral.

    Accepts ints, integral floats and numeric strings ("603", "603.0").
    Booleans, fractional numbers and anything else return the default.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    try:
        number = float(value)
    except (ValueError, TypeError):
        return default
    if number != number or number in (float("inf"), float("-inf")):
        return default
    if not number.is_integer():
        return default
    return int(number)
