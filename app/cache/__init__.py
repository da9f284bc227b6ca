"""
Response cache: canonical keys, ordered TTL rules, persistent store and
supervised background writes.
"""
from .core import CachedPayload, CacheStatus
from .keys import RESERVED_PARAMS, build_cache_key, is_locale_sensitive
from .ttl_policies import (
    TTL_RULES,
    TTLRule,
    is_cacheable,
    match_rule,
    ttl_for,
)
from .store import CacheStore
from .background import BackgroundWriter

__all__ = [
    # Core types
    "CachedPayload",
    "CacheStatus",
    # Keys
    "RESERVED_PARAMS",
    "build_cache_key",
    "is_locale_sensitive",
    # TTL policies
    "TTL_RULES",
    "TTLRule",
    "is_cacheable",
    "match_rule",
    "ttl_for",
    # Storage
    "CacheStore",
    "BackgroundWriter",
]
