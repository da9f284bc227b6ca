"""
Shared fixtures: file-backed SQLite, a controllable clock and a fake TMDB client.
"""
import copy
import re
import threading
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from app.cache import BackgroundWriter, CacheStore
from app.cache.background import get_background_writer
from app.cache.store import get_cache_store
from app.db import build_engine, build_session_factory, init_db
from app.errors import UpstreamError
from app.main import app
from app.tmdb_client import get_tmdb_client


DETAIL_PATH = re.compile(r"^(movie|tv)/(\d+)$")


class FakeClock:
    """Callable returning a fixed 'now' that tests move forward by hand."""

    def __init__(self, start: datetime = datetime(2026, 3, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeTmdbClient:
    """
    Stand-in for TmdbClient.

    Detail paths return a small movie/TV record; other paths echo the request.
    `failures` maps a path to the exception raised for it.
    """

    def __init__(self, responses=None, failures=None):
        self.responses = responses or {}
        self.failures = failures or {}
        self.calls = []
        self._lock = threading.Lock()

    def get(self, path, params=None):
        with self._lock:
            self.calls.append((path, dict(params or {})))
        if path in self.failures:
            raise self.failures[path]
        if path in self.responses:
            return copy.deepcopy(self.responses[path])

        match = DETAIL_PATH.match(path)
        if match:
            content_type, item_id = match.group(1), int(match.group(2))
            title_field = "title" if content_type == "movie" else "name"
            return {
                "id": item_id,
                title_field: f"{content_type} {item_id}",
                "poster_path": f"/poster{item_id}.jpg",
                "backdrop_path": None,
                "vote_average": 7.5,
                "release_date": "1999-03-31",
                "runtime": 136,
                "genres": [{"id": 28, "name": "Action"}],
                "overview": "overview",
                "language": (params or {}).get("language"),
            }
        return {"path": path, "params": dict(params or {}), "results": []}

    def calls_for(self, path):
        return [call for call in self.calls if call[0] == path]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'gateway.db'}")
    init_db(engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def store(session_factory, clock):
    return CacheStore(session_factory, now_fn=clock)


@pytest.fixture
def writer():
    bg = BackgroundWriter(max_workers=2, max_attempts=3, backoff_seconds=0)
    yield bg
    bg.shutdown(wait=True)


@pytest.fixture
def tmdb():
    return FakeTmdbClient(
        failures={"movie/404": UpstreamError(404, '{"status_message": "not found"}')},
    )


@pytest.fixture
def client(store, writer, tmdb):
    app.dependency_overrides[get_cache_store] = lambda: store
    app.dependency_overrides[get_background_writer] = lambda: writer
    app.dependency_overrides[get_tmdb_client] = lambda: tmdb
    yield TestClient(app)
    app.dependency_overrides.clear()
