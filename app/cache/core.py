"""
Core cache data structures.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from enum import Enum


class CacheStatus(Enum):
    """Cache outcome reported to the caller (X-Cache header)."""
    HIT = "HIT"         # Served from the cache table
    MISS = "MISS"       # Fetched upstream, cache write scheduled
    BYPASS = "BYPASS"   # Endpoint is never cached


@dataclass
class CachedPayload:
    """
    A live row read from the cache table.
    """
    key: str
    payload: Any
    expires_at: datetime
    hit_count: int = 0
