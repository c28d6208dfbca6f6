from __future__ import annotations

from fastapi import Request

from gallery.services.database import AppStore
from gallery.services.health import HealthAggregator
from gallery.services.screenshot_cache import ScreenshotCache


def get_app_store(request: Request) -> AppStore:
    return request.app.state.app_store


def get_health_aggregator(request: Request) -> HealthAggregator:
    return request.app.state.health_aggregator


def get_screenshot_cache(request: Request) -> ScreenshotCache:
    return request.app.state.screenshot_cache
