"""
Cache table tests: expiry, upsert semantics, hit counting, failure handling
"""
from datetime import timedelta

from sqlalchemy import func, select, text
from sqlalchemy.exc import OperationalError

from app.cache import CacheStore
from app.models import CacheEntry


class BrokenSessionFactory:
    """Session factory whose sessions fail like an unreachable database."""

    def __call__(self):
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))


def _row_count(session_factory, key):
    with session_factory() as session:
        return session.scalar(select(func.count()).select_from(CacheEntry).where(CacheEntry.key == key))


def test_get_missing_key_is_miss(store):
    assert store.get("movie/1?_lang=es-ES") is None


def test_put_then_get(store, clock):
    assert store.put("movie/603?_lang=en-US", {"id": 603}, 3600) is True
    entry = store.get("movie/603?_lang=en-US")
    assert entry.payload == {"id": 603}
    assert entry.expires_at == clock.now + timedelta(seconds=3600)
    assert entry.hit_count == 0


def test_expired_row_is_a_miss_but_not_deleted(store, clock, session_factory):
    store.put("movie/603?_lang=en-US", {"id": 603}, 60)
    clock.advance(60)
    assert store.get("movie/603?_lang=en-US") is None
    assert _row_count(session_factory, "movie/603?_lang=en-US") == 1


def test_entry_is_live_until_expiry(store, clock):
    store.put("movie/603?_lang=en-US", {"id": 603}, 60)
    clock.advance(59)
    assert store.get("movie/603?_lang=en-US") is not None


def test_second_put_supersedes_first(store, clock, session_factory):
    key = "movie/603?_lang=en-US"
    store.put(key, {"version": 1}, 60)
    store.record_hit(key)
    clock.advance(30)
    store.put(key, {"version": 2}, 7200)

    assert _row_count(session_factory, key) == 1
    entry = store.get(key)
    assert entry.payload == {"version": 2}
    assert entry.expires_at == clock.now + timedelta(seconds=7200)
    assert entry.hit_count == 0


def test_record_hit_increments(store):
    key = "configuration"
    store.put(key, {"images": {}}, 60)
    for _ in range(3):
        assert store.record_hit(key) is True
    assert store.get(key).hit_count == 3


def test_record_hit_on_missing_key_is_harmless(store):
    assert store.record_hit("movie/999?_lang=es-ES") is True
    assert store.get("movie/999?_lang=es-ES") is None


def test_read_error_is_a_miss():
    broken = CacheStore(BrokenSessionFactory())
    assert broken.get("movie/603") is None


def test_write_error_is_swallowed():
    broken = CacheStore(BrokenSessionFactory())
    assert broken.put("movie/603", {"id": 603}, 60) is False
    assert broken.record_hit("movie/603") is False
    assert broken.stats() == {"available": False}


def test_stats(store, clock):
    store.put("a", {}, 10)
    store.put("b", {}, 1000)
    store.record_hit("b")
    clock.advance(100)
    stats = store.stats()
    assert stats["entries"] == 2
    assert stats["live_entries"] == 1
    assert stats["expired_entries"] == 1
    assert stats["total_hits"] == 1


def test_unreadable_payload_is_a_miss(store, session_factory):
    key = "movie/603?_lang=en-US"
    store.put(key, {"id": 603}, 3600)
    with session_factory() as session:
        session.execute(text("UPDATE tmdb_cache SET payload = '{not json' WHERE \"key\" = :key"), {"key": key})
        session.commit()

    assert store.get(key) is None
