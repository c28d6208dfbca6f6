from __future__ import annotations

import time
from typing import Awaitable, Callable

import httpx

from gallery.config import settings
from gallery.models.apps import CachedScreenshot, ScreenshotCacheEntry, ScreenshotImage
from gallery.services.logger import log_cache_event
from gallery.tools.screenshot import fetch_screenshot

Fetcher = Callable[[str], Awaitable[ScreenshotImage]]
Clock = Callable[[], float]


class ScreenshotCache:
    """Per-app preview images with a fixed lifetime and oldest-insertion eviction.

    Expired entries stay in the mapping until they are refetched or evicted;
    they are never served.
    """

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient | None = None,
        fetcher: Fetcher | None = None,
        capacity: int | None = None,
        ttl_seconds: float | None = None,
        clock: Clock = time.monotonic,
    ):
        if fetcher is None and http_client is None:
            raise ValueError("ScreenshotCache needs an http_client or a fetcher")
        self.capacity = settings.screenshot_cache_capacity if capacity is None else int(capacity)
        self.ttl_seconds = (
            settings.screenshot_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        )
        if self.capacity <= 0:
            raise ValueError("capacity must be positive")
        if self.ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._http_client = http_client
        self._fetcher = fetcher
        self._clock = clock
        self._entries: dict[int, ScreenshotCacheEntry] = {}
        self.fetch_count = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, app_id: object) -> bool:
        return app_id in self._entries

    def stored_at(self, app_id: int) -> float | None:
        entry = self._entries.get(app_id)
        return entry.stored_at if entry else None

    async def _fetch(self, url: str) -> ScreenshotImage:
        self.fetch_count += 1
        if self._fetcher is not None:
            return await self._fetcher(url)
        return await fetch_screenshot(self._http_client, url)

    def _lookup(self, app_id: int) -> ScreenshotCacheEntry | None:
        entry = self._entries.get(app_id)
        if entry is None:
            return None
        if self._clock() - entry.stored_at >= self.ttl_seconds:
            return None
        return entry

    def _evict_oldest(self) -> None:
        oldest = min(self._entries.values(), key=lambda e: e.stored_at)
        del self._entries[oldest.app_id]
        log_cache_event("screenshot", "evict", key=oldest.app_id, size=len(self._entries))

    def _store(self, app_id: int, image: ScreenshotImage) -> None:
        if app_id not in self._entries and len(self._entries) >= self.capacity:
            self._evict_oldest()
        self._entries[app_id] = ScreenshotCacheEntry(
            app_id=app_id,
            image_bytes=image.image_bytes,
            content_type=image.content_type,
            stored_at=self._clock(),
        )

    async def get(self, app_id: int, url: str) -> CachedScreenshot:
        """Serve a cached preview or fetch a fresh one.

        Raises ScreenshotUnavailableError when the fetch fails; nothing is
        written to the cache in that case.
        """
        entry = self._lookup(app_id)
        if entry is not None:
            log_cache_event("screenshot", "hit", key=app_id)
            return CachedScreenshot(entry.image_bytes, entry.content_type, "hit")

        image = await self._fetch(url)
        # No await between the capacity check and the insert.
        self._store(app_id, image)
        log_cache_event("screenshot", "miss", key=app_id, size=len(self._entries))
        return CachedScreenshot(image.image_bytes, image.content_type, "miss")
