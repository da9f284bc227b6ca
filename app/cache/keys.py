"""
Canonical cache keys.

Semantically identical requests must map to the same key no matter how the
caller ordered its query parameters, and requests whose upstream content
differs by locale must never share a key.
"""
import re
from typing import Any, Dict, Optional, Pattern, Tuple
from urllib.parse import quote

from app.utils.helpers import clean_path
from config.settings import settings


# Path classes whose upstream payload does not depend on language or region
LOCALE_INVARIANT_ROUTES: Tuple[Pattern[str], ...] = (
    re.compile(r"^configuration$"),
)

LANGUAGE_PARAM = "_lang"
REGION_PARAM = "_region"
RESERVED_PARAMS = frozenset((LANGUAGE_PARAM, REGION_PARAM))


def is_locale_sensitive(path: str) -> bool:
    cleaned = clean_path(path)
    return not any(pattern.match(cleaned) for pattern in LOCALE_INVARIANT_ROUTES)


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def build_cache_key(
    path: str,
    query: Optional[Dict[str, Any]] = None,
    language: Optional[str] = None,
    region: Optional[str] = None,
    namespace: Optional[str] = None,
) -> str:
    """
    Build a canonical cache key for a (path, query, locale) triple.

    Args:
        path: Upstream resource path, slashes at either end are ignored
        query: Query parameters; None and empty-string values are dropped
        language: Request language (falls back to the configured default)
        region: Request region, folded in only when given
        namespace: Optional prefix separating differently-shaped payloads

    Returns:
        "path" or "path?a=1&b=2" with parameters sorted by name, names and
        values percent-encoded

    Raises:
        ValueError: query uses one of the synthetic locale names
    """
    cleaned = clean_path(path)

    reserved = RESERVED_PARAMS.intersection(query or {})
    if reserved:
        raise ValueError(f"Reserved query parameter(s): {', '.join(sorted(reserved))}")

    params = {
        name: _stringify(value)
        for name, value in (query or {}).items()
        if not _is_empty(value)
    }

    if is_locale_sensitive(cleaned):
        params[LANGUAGE_PARAM] = language or settings.default_language
        if not _is_empty(region):
            params[REGION_PARAM] = region

    key = cleaned
    if params:
        key = cleaned + "?" + "&".join(
            f"{quote(name, safe='')}={quote(params[name], safe='')}" for name in sorted(params)
        )

    if namespace:
        return f"{namespace}:{key}"
    return key
