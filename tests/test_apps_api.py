"""Tests for the gallery API routes."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from gallery.api.deps import get_app_store, get_health_aggregator, get_screenshot_cache
from gallery.main import app as fastapi_app
from gallery.models.apps import App, ScreenshotImage
from gallery.services.database import AppStoreError
from gallery.services.health import HealthAggregator
from gallery.services.screenshot_cache import ScreenshotCache
from gallery.tools.probe import ProbeOutcome
from gallery.tools.screenshot import ScreenshotUnavailableError


class _FakeStore:
    def __init__(self, apps: list[App]):
        self.apps = apps
        self.error: Exception | None = None

    async def list_apps(self) -> list[App]:
        if self.error is not None:
            raise self.error
        return sorted(self.apps, key=lambda a: a.id)

    async def get_app(self, app_id: int) -> App | None:
        if self.error is not None:
            raise self.error
        return next((a for a in self.apps if a.id == app_id), None)


class _Upstream:
    """Stands in for both the probed origins and the imaging service."""

    def __init__(self):
        self.probes: list[str] = []
        self.screenshots: list[str] = []
        self.down: set[str] = set()
        self.imaging_down = False

    async def probe(self, url: str) -> ProbeOutcome:
        self.probes.append(url)
        if url in self.down:
            return ProbeOutcome(status_code=0, ok=False, error="timed out after 8.0s")
        return ProbeOutcome(status_code=200, ok=True)

    async def screenshot(self, url: str) -> ScreenshotImage:
        self.screenshots.append(url)
        if self.imaging_down:
            raise ScreenshotUnavailableError("Screenshot service unavailable (HTTP 503)")
        return ScreenshotImage(image_bytes=b"\x89PNG-preview", content_type="image/png")


@pytest.fixture
def store():
    return _FakeStore(
        [
            App(id=2, url="https://b.example/", name="Beta", category="Games"),
            App(id=1, url="https://a.example/", name="Alpha", stats="4 59 Sep 7th, 2025"),
            App(id=5, url="https://e.example/", name="Echo"),
        ]
    )


@pytest.fixture
def upstream():
    return _Upstream()


@pytest.fixture
def client(store, upstream):
    aggregator = HealthAggregator(store, prober=upstream.probe)
    cache = ScreenshotCache(fetcher=upstream.screenshot)
    fastapi_app.dependency_overrides[get_app_store] = lambda: store
    fastapi_app.dependency_overrides[get_health_aggregator] = lambda: aggregator
    fastapi_app.dependency_overrides[get_screenshot_cache] = lambda: cache
    yield TestClient(fastapi_app)
    fastapi_app.dependency_overrides.clear()


def test_service_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "gallery"}


def test_list_apps_returns_apps_in_id_order(client):
    response = client.get("/api/apps")
    assert response.status_code == 200
    data = response.json()
    assert [a["id"] for a in data] == [1, 2, 5]
    assert data[0] == {
        "id": 1,
        "name": "Alpha",
        "category": None,
        "url": "https://a.example/",
        "stats": "4 59 Sep 7th, 2025",
    }


def test_apps_health_reports_partial_failure(client, upstream):
    upstream.down.add("https://b.example/")

    response = client.get("/api/apps/health")

    assert response.status_code == 200
    assert response.headers["X-Cache"] == "MISS"
    assert response.json() == {
        "1": {"status": 200, "ok": True},
        "2": {"status": 0, "ok": False},
        "5": {"status": 200, "ok": True},
    }


def test_apps_health_is_cached_until_refresh(client, upstream):
    first = client.get("/api/apps/health")
    second = client.get("/api/apps/health")

    assert len(upstream.probes) == 3
    assert second.headers["X-Cache"] == "HIT"
    assert second.json() == first.json()

    refreshed = client.get("/api/apps/health", params={"refresh": "true"})
    assert refreshed.headers["X-Cache"] == "MISS"
    assert len(upstream.probes) == 6


def test_screenshot_is_fetched_once_then_served_from_cache(client, upstream):
    first = client.get("/api/apps/5/screenshot")
    second = client.get("/api/apps/5/screenshot")

    assert first.status_code == 200
    assert first.content == b"\x89PNG-preview"
    assert first.headers["content-type"] == "image/png"
    assert first.headers["cache-control"] == "public, max-age=3600"
    assert first.headers["X-Cache"] == "MISS"
    assert second.status_code == 200
    assert second.headers["X-Cache"] == "HIT"
    assert upstream.screenshots == ["https://e.example/"]


def test_screenshot_unknown_app_is_404(client, upstream):
    response = client.get("/api/apps/9999/screenshot")
    assert response.status_code == 404
    assert upstream.screenshots == []


@pytest.mark.parametrize("raw_id", ["abc", "1.5", "-3"])
def test_screenshot_non_numeric_id_is_400(client, upstream, raw_id):
    response = client.get(f"/api/apps/{raw_id}/screenshot")
    assert response.status_code == 400
    assert upstream.screenshots == []


def test_screenshot_id_beyond_column_range_is_404(client):
    response = client.get("/api/apps/99999999999/screenshot")
    assert response.status_code == 404


def test_screenshot_upstream_failure_is_502_and_not_cached(client, upstream):
    upstream.imaging_down = True
    failed = client.get("/api/apps/1/screenshot")
    assert failed.status_code == 502
    assert failed.json() == {"detail": "Screenshot service unavailable"}

    upstream.imaging_down = False
    recovered = client.get("/api/apps/1/screenshot")
    assert recovered.status_code == 200
    assert recovered.headers["X-Cache"] == "MISS"
    assert len(upstream.screenshots) == 2


@pytest.mark.parametrize(
    "path",
    ["/api/apps", "/api/apps/health", "/api/apps/1/screenshot"],
)
def test_store_failure_is_500(client, store, path):
    store.error = AppStoreError("database down")
    response = client.get(path)
    assert response.status_code == 500
    assert response.json() == {"detail": "App store unavailable"}
