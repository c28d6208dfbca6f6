from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable

import httpx

from gallery.config import settings
from gallery.models.apps import App, HealthResult, HealthSnapshot
from gallery.services.database import AppStore
from gallery.services.logger import log_cache_event, log_event, log_probe
from gallery.tools.probe import ProbeOutcome, probe_url

Prober = Callable[[str], Awaitable[ProbeOutcome]]
Clock = Callable[[], float]


class HealthAggregator:
    """Probes every app concurrently and caches the snapshot for a freshness window.

    The slot is replaced by a single assignment once every probe has settled,
    so readers during a refresh see the previous snapshot. Overlapping
    refreshes each run their own probe set.
    """

    def __init__(
        self,
        store: AppStore,
        *,
        http_client: httpx.AsyncClient | None = None,
        prober: Prober | None = None,
        ttl_seconds: float | None = None,
        probe_timeout: float | None = None,
        clock: Clock = time.monotonic,
    ):
        if prober is None and http_client is None:
            raise ValueError("HealthAggregator needs an http_client or a prober")
        self._store = store
        self._http_client = http_client
        self._prober = prober
        self.ttl_seconds = settings.health_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self.probe_timeout = (
            settings.health_probe_timeout_seconds if probe_timeout is None else probe_timeout
        )
        self._clock = clock
        self._snapshot: HealthSnapshot | None = None
        self.probe_count = 0

    @property
    def snapshot(self) -> HealthSnapshot | None:
        return self._snapshot

    def _is_fresh(self, snapshot: HealthSnapshot) -> bool:
        return self._clock() - snapshot.captured_at < self.ttl_seconds

    async def _probe(self, url: str) -> ProbeOutcome:
        if self._prober is not None:
            return await self._prober(url)
        return await probe_url(self._http_client, url, timeout=self.probe_timeout)

    async def _probe_app(self, app: App) -> ProbeOutcome:
        started = time.monotonic()
        outcome = await self._probe(app.url)
        log_probe(
            app.id,
            app.url,
            outcome.status_code,
            outcome.ok,
            duration_ms=int((time.monotonic() - started) * 1000),
            error=outcome.error,
        )
        return outcome

    async def _probe_all(self, apps: list[App]) -> dict[int, HealthResult]:
        self.probe_count += len(apps)
        outcomes = await asyncio.gather(
            *(self._probe_app(app) for app in apps),
            return_exceptions=True,
        )

        results: dict[int, HealthResult] = {}
        for app, outcome in zip(apps, outcomes):
            if isinstance(outcome, ProbeOutcome):
                results[app.id] = HealthResult(app.id, outcome.status_code, outcome.ok)
                continue
            log_probe(app.id, app.url, 0, False, error=repr(outcome))
            results[app.id] = HealthResult(app.id, 0, False)
        return results

    async def get_health(self, force_refresh: bool = False) -> HealthSnapshot:
        """Return the cached snapshot while fresh, otherwise probe every app."""
        cached = self._snapshot
        if not force_refresh and cached is not None and self._is_fresh(cached):
            log_cache_event("health", "hit", apps=len(cached.results))
            return HealthSnapshot(
                results=dict(cached.results),
                captured_at=cached.captured_at,
                from_cache=True,
            )

        apps = await self._store.list_apps()
        log_cache_event("health", "refresh" if force_refresh else "miss", apps=len(apps))
        results = await self._probe_all(apps)

        snapshot = HealthSnapshot(results=results, captured_at=self._clock(), from_cache=False)
        self._snapshot = snapshot
        log_event(
            "health_sweep",
            "Health sweep completed",
            apps=len(results),
            healthy=sum(1 for r in results.values() if r.ok),
        )
        return HealthSnapshot(
            results=dict(results),
            captured_at=snapshot.captured_at,
            from_cache=False,
        )
