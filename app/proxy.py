"""
Single-resource proxy: validate, read cache, fetch upstream on miss, write back.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from app.cache import (
    BackgroundWriter,
    CacheStatus,
    CacheStore,
    RESERVED_PARAMS,
    build_cache_key,
    is_cacheable,
    ttl_for,
)
from app.errors import ForbiddenPath, ValidationError
from app.routes import is_allowed
from app.tmdb_client import TmdbClient
from app.utils.helpers import clean_path
from config.settings import settings

logger = logging.getLogger("proxy")


@dataclass
class ProxyResult:
    """Upstream payload plus how it was obtained."""
    payload: Any
    cache_status: CacheStatus
    cache_key: Optional[str] = None


def upstream_params(
    query: Optional[Dict[str, Any]],
    language: Optional[str],
    region: Optional[str],
) -> Dict[str, Any]:
    """
    Query string sent to the provider.

    Language always goes out (default locale when absent); region is also
    sent as watch_region for provider-availability endpoints. Caller query
    values come last and win; None and empty strings are dropped.
    """
    params: Dict[str, Any] = {"language": language or settings.default_language}
    if region:
        params["region"] = region
        params["watch_region"] = region
    for name, value in (query or {}).items():
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        params[name] = value
    return params


class ProxyHandler:
    """
    Orchestrates RouteValidator -> cache key -> cache -> upstream -> cache write.

    Usage:
        handler = ProxyHandler(get_tmdb_client(), get_cache_store(), get_background_writer())
        result = handler.handle("movie/603", language="en-US")
    """

    def __init__(self, client: TmdbClient, store: CacheStore, writer: BackgroundWriter):
        self.client = client
        self.store = store
        self.writer = writer

    def handle(
        self,
        path: Any,
        query: Optional[Dict[str, Any]] = None,
        language: Optional[str] = None,
        region: Optional[str] = None,
    ) -> ProxyResult:
        """
        Resolve one proxied request.

        Raises:
            ValidationError: path missing or not a string
            ForbiddenPath: path not on the allow-list
            UpstreamError: provider failure, passed through
        """
        if not path or not isinstance(path, str):
            raise ValidationError("Field 'path' is required", code="MISSING_PATH")
        if query is not None and not isinstance(query, dict):
            raise ValidationError("Field 'query' must be an object")
        reserved = RESERVED_PARAMS.intersection(query or {})
        if reserved:
            raise ValidationError(f"Reserved query parameter(s): {', '.join(sorted(reserved))}")
        if not is_allowed(path):
            logger.warning(f"Rejected path: {path!r}")
            raise ForbiddenPath(path)

        path = clean_path(path)
        use_cache = is_cacheable(path, query)
        cache_key = None

        if use_cache:
            cache_key = build_cache_key(path, query, language, region)
            cached = self.store.get(cache_key)
            if cached is not None:
                logger.info(f"CACHE HIT: {cache_key}")
                self.writer.submit(f"hit:{cache_key}", self.store.record_hit, cache_key, retry=False)
                return ProxyResult(cached.payload, CacheStatus.HIT, cache_key)
            logger.info(f"CACHE MISS: {cache_key}")

        payload = self.client.get(path, upstream_params(query, language, region))

        if not use_cache:
            logger.debug(f"CACHE BYPASS: {path}")
            return ProxyResult(payload, CacheStatus.BYPASS)

        self.writer.submit(f"put:{cache_key}", self.store.put, cache_key, payload, ttl_for(path))
        return ProxyResult(payload, CacheStatus.MISS, cache_key)
