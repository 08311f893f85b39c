import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from fastapi.testclient import TestClient

from common.cache import JsonCache
from motorbike_service.config import Settings
from motorbike_service.main import APPROVED_CACHE_KEY, create_app


def test_cache_without_url_is_disabled():
    cache = JsonCache(None)
    cache.open()
    assert cache.enabled is False

    cache.set_json("bookings:approved", [{"id": "abc"}])
    assert cache.get_json("bookings:approved") is None
    cache.delete_prefix("bookings:")
    cache.close()


def test_unreachable_redis_disables_cache():
    cache = JsonCache("redis://127.0.0.1:1/0")
    cache.open()
    assert cache.enabled is False
    assert cache.get_json("bookings:approved") is None


class DictRedis:
    """In-memory stand-in for the handful of redis calls the cache makes."""

    def __init__(self):
        self.store = {}
        self.hits = 0

    def get(self, key):
        value = self.store.get(key)
        if value is not None:
            self.hits += 1
        return value

    def setex(self, key, ttl, value):
        self.store[key] = value

    def scan_iter(self, pattern):
        prefix = pattern.rstrip("*")
        return [k for k in list(self.store) if k.startswith(prefix)]

    def delete(self, key):
        self.store.pop(key, None)

    def close(self):
        pass


def submit(client, booking_time, return_time):
    res = client.post(
        "/api/bookings",
        json={
            "name": "Bob",
            "purpose": "Commute",
            "bookingTime": booking_time,
            "returnTime": return_time,
        },
    )
    assert res.status_code == 201
    return res.json()


def test_approved_view_is_cached_and_invalidated(tmp_path):
    app = create_app(Settings(database_url=f"sqlite:///{tmp_path / 'bookings.db'}"))

    with TestClient(app) as client:
        fake = DictRedis()
        app.state.cache._client = fake

        booking = submit(client, "2024-01-01T10:00", "2024-01-01T11:00")
        client.patch(f"/api/bookings/{booking['id']}", json={"status": "approved"})

        first = client.get("/api/bookings/approved").json()
        assert [b["id"] for b in first] == [booking["id"]]
        assert APPROVED_CACHE_KEY in fake.store
        assert fake.hits == 0

        second = client.get("/api/bookings/approved").json()
        assert second == first
        assert fake.hits == 1

        # status change clears the cached view
        client.patch(f"/api/bookings/{booking['id']}", json={"status": "rejected"})
        assert APPROVED_CACHE_KEY not in fake.store
        assert client.get("/api/bookings/approved").json() == []

        client.patch(f"/api/bookings/{booking['id']}", json={"status": "approved"})
        assert len(client.get("/api/bookings/approved").json()) == 1
        assert APPROVED_CACHE_KEY in fake.store

        # delete clears it too
        client.delete(f"/api/bookings/{booking['id']}")
        assert APPROVED_CACHE_KEY not in fake.store
        assert client.get("/api/bookings/approved").json() == []
