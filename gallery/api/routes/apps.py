from __future__ import annotations

import re

from fastapi import APIRouter, Depends, HTTPException, Response
from loguru import logger

from gallery.api.deps import get_app_store, get_health_aggregator, get_screenshot_cache
from gallery.config import settings
from gallery.models.schemas import AppResponse, HealthStatus
from gallery.services.database import AppStore
from gallery.services.health import HealthAggregator
from gallery.services.screenshot_cache import ScreenshotCache
from gallery.tools.screenshot import ScreenshotUnavailableError

router = APIRouter(prefix="/api/apps", tags=["apps"])

_APP_ID_PATTERN = re.compile(r"[0-9]+")
# apps.id is a SERIAL (int4) column
MAX_APP_ID = 2**31 - 1


def _parse_app_id(raw_id: str) -> int:
    if not _APP_ID_PATTERN.fullmatch(raw_id):
        raise HTTPException(status_code=400, detail="Invalid app id")
    return int(raw_id)


@router.get("", response_model=list[AppResponse])
async def list_apps(store: AppStore = Depends(get_app_store)):
    """List every app in the gallery."""
    apps = await store.list_apps()
    return [
        AppResponse(id=a.id, name=a.name, category=a.category, url=a.url, stats=a.stats)
        for a in apps
    ]


@router.get("/health", response_model=dict[int, HealthStatus])
async def apps_health(
    response: Response,
    refresh: bool = False,
    aggregator: HealthAggregator = Depends(get_health_aggregator),
):
    """Reachability of every app, served from a short-lived snapshot unless refresh is set."""
    snapshot = await aggregator.get_health(force_refresh=refresh)
    response.headers["X-Cache"] = "HIT" if snapshot.from_cache else "MISS"
    return {
        app_id: HealthStatus(status=result.status_code, ok=result.ok)
        for app_id, result in snapshot.results.items()
    }


@router.get("/{app_id}/screenshot")
async def app_screenshot(
    app_id: str,
    store: AppStore = Depends(get_app_store),
    cache: ScreenshotCache = Depends(get_screenshot_cache),
):
    """Proxy a rendered preview image of the app's site."""
    parsed_id = _parse_app_id(app_id)
    app = await store.get_app(parsed_id) if parsed_id <= MAX_APP_ID else None
    if app is None:
        raise HTTPException(status_code=404, detail="App not found")

    try:
        screenshot = await cache.get(app.id, app.url)
    except ScreenshotUnavailableError as exc:
        logger.warning(f"Screenshot for app {app.id} unavailable: {exc}")
        raise HTTPException(status_code=502, detail="Screenshot service unavailable") from exc

    return Response(
        content=screenshot.image_bytes,
        media_type=screenshot.content_type,
        headers={
            "Cache-Control": f"public, max-age={settings.screenshot_browser_max_age}",
            "X-Cache": screenshot.source.upper(),
        },
    )
