"""
Service endpoint tests: health, version, cache stats
"""
from fastapi.testclient import TestClient
from app.main import app

client = TestClient(app)


def test_health_endpoint_returns_200():
    """Test that /health returns HTTP 200"""
    response = client.get("/health")
    assert response.status_code == 200


def test_health_endpoint_returns_ok_status():
    """Test that /health returns status: ok"""
    response = client.get("/health")
    data = response.json()
    assert data["status"] == "ok"
    assert data["source"] == "tmdb"


def test_version_endpoint():
    """Test that /version reports name and version"""
    data = client.get("/version").json()
    assert data["name"] == "Catalog Gateway"
    assert data["version"].startswith("v")


def test_cache_stats_counts_entries(client, store, writer):
    """Test that /cache/stats reflects rows written to the cache table"""
    store.put("movie/1?_lang=es-ES", {"id": 1}, 60)
    data = client.get("/cache/stats").json()
    assert data["cache"]["available"] is True
    assert data["cache"]["entries"] == 1
    assert data["cache"]["live_entries"] == 1
    assert "pending" in data["background"]
