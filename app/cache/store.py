"""
Persistent cache table access.

The store is an optimization, never a correctness requirement: read errors
become misses, write errors are logged and reported as False, and hit
counting is advisory telemetry that may undercount.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.models import CacheEntry
from app.utils.helpers import utcnow
from .core import CachedPayload

logger = logging.getLogger("cache.store")


def upsert_statement(
    session: Session,
    model,
    values: Dict[str, Any],
    index_elements: List[str],
    update_columns: List[str],
):
    """
    Build INSERT ... ON CONFLICT DO UPDATE for the session's dialect.

    On conflict, update_columns take the values of the rejected insert, so a
    second write fully supersedes the first. Only SQLite and PostgreSQL are
    supported; both accept the same on_conflict_do_update signature.
    """
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        insert = postgresql.insert
    elif dialect == "sqlite":
        insert = sqlite.insert
    else:
        raise NotImplementedError(f"Upsert not supported for dialect {dialect}")
    stmt = insert(model).values(**values)
    if not update_columns:
        return stmt.on_conflict_do_nothing(index_elements=index_elements)
    return stmt.on_conflict_do_update(
        index_elements=index_elements,
        set_={name: stmt.excluded[name] for name in update_columns},
    )


class CacheStore:
    """
    Key/value overlay on the tmdb_cache table.

    Usage:
        store = CacheStore(SessionLocal)
        entry = store.get("movie/603?_lang=es-ES")
        if entry is None:
            store.put("movie/603?_lang=es-ES", payload, 86400)
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        now_fn: Optional[Callable[[], datetime]] = None,
    ):
        self._session_factory = session_factory
        self._now = now_fn or utcnow

    def get(self, key: str) -> Optional[CachedPayload]:
        """
        Read a live entry.

        Returns:
            CachedPayload, or None on miss, expiry or storage error
        """
        try:
            with self._session_factory() as session:
                row = session.get(CacheEntry, key)
                if row is None:
                    return None
                if row.expires_at <= self._now():
                    return None
                return CachedPayload(
                    key=row.key,
                    payload=row.payload,
                    expires_at=row.expires_at,
                    hit_count=row.hit_count or 0,
                )
        except (SQLAlchemyError, ValueError) as e:
            logger.error(f"Cache read error for {key}: {e}")
            return None

    def put(self, key: str, payload: Any, ttl_seconds: int) -> bool:
        """
        Upsert an entry, superseding any previous payload and expiry.

        Returns:
            True if the row was written, False on storage error
        """
        expires_at = self._now() + timedelta(seconds=ttl_seconds)
        try:
            with self._session_factory() as session:
                stmt = upsert_statement(
                    session,
                    CacheEntry,
                    values={
                        "key": key,
                        "payload": payload,
                        "expires_at": expires_at,
                        "hit_count": 0,
                    },
                    index_elements=["key"],
                    update_columns=["payload", "expires_at", "hit_count"],
                )
                session.execute(stmt)
                session.commit()
            logger.debug(f"Cache write: {key} (ttl={ttl_seconds}s)")
            return True
        except SQLAlchemyError as e:
            logger.error(f"Cache write error for {key}: {e}")
            return False

    def record_hit(self, key: str) -> bool:
        """Best-effort hit counter increment, done server-side in one UPDATE."""
        try:
            with self._session_factory() as session:
                session.execute(
                    update(CacheEntry)
                    .where(CacheEntry.key == key)
                    .values(hit_count=func.coalesce(CacheEntry.hit_count, 0) + 1)
                )
                session.commit()
            return True
        except SQLAlchemyError as e:
            logger.warning(f"Hit count update failed for {key}: {e}")
            return False

    def stats(self) -> Dict[str, Any]:
        """Get cache table statistics."""
        try:
            with self._session_factory() as session:
                total = session.scalar(select(func.count()).select_from(CacheEntry)) or 0
                live = session.scalar(
                    select(func.count())
                    .select_from(CacheEntry)
                    .where(CacheEntry.expires_at > self._now())
                ) or 0
                hits = session.scalar(select(func.sum(CacheEntry.hit_count))) or 0
        except SQLAlchemyError as e:
            logger.error(f"Cache stats error: {e}")
            return {"available": False}

        return {
            "available": True,
            "entries": total,
            "live_entries": live,
            "expired_entries": total - live,
            "total_hits": int(hits),
        }


# Global cache store instance
_cache_store: Optional[CacheStore] = None


def get_cache_store() -> CacheStore:
    """Get or create the global cache store."""
    global _cache_store
    if _cache_store is None:
        from app.db import SessionLocal

        _cache_store = CacheStore(SessionLocal)
    return _cache_store
