"""Gallery - app health and screenshot tool

Simple CLI for running a health sweep or grabbing one app preview.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from gallery.services.database import AppStoreError, PostgresAppStore
from gallery.services.health import HealthAggregator
from gallery.services.screenshot_cache import ScreenshotCache
from gallery.tools.probe import build_probe_client
from gallery.tools.screenshot import ScreenshotUnavailableError, build_screenshot_client


async def run_health() -> int:
    """Probe every app once and print one line per app."""
    store = PostgresAppStore()
    async with build_probe_client() as client:
        aggregator = HealthAggregator(store, http_client=client)
        try:
            apps = {app.id: app for app in await store.list_apps()}
            snapshot = await aggregator.get_health(force_refresh=True)
        finally:
            await store.close()

    print(f"Health check: {len(snapshot.results)} apps")
    print("-" * 50)
    for app_id in sorted(snapshot.results):
        result = snapshot.results[app_id]
        marker = "[+]" if result.ok else "[!]"
        app = apps.get(app_id)
        label = app.name or app.url if app else str(app_id)
        print(f"{marker} {app_id:>5}  {result.status_code:>3}  {label}")

    healthy = sum(1 for r in snapshot.results.values() if r.ok)
    print(f"\n{healthy}/{len(snapshot.results)} healthy")
    return 0 if healthy == len(snapshot.results) else 1


async def run_screenshot(app_id: int, out: Path) -> int:
    """Fetch one preview image and write it to `out`."""
    store = PostgresAppStore()
    try:
        app = await store.get_app(app_id)
    finally:
        await store.close()
    if app is None:
        print(f"[!] App {app_id} not found")
        return 1

    async with build_screenshot_client() as client:
        cache = ScreenshotCache(http_client=client)
        try:
            screenshot = await cache.get(app.id, app.url)
        except ScreenshotUnavailableError as exc:
            print(f"[!] Error: {exc}")
            return 1

    out.write_bytes(screenshot.image_bytes)
    print(f"[*] Wrote {len(screenshot.image_bytes)} bytes ({screenshot.content_type}) to {out}")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Gallery health and screenshot tool")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--health", action="store_true", help="Probe every app once")
    group.add_argument("--screenshot", type=int, metavar="ID", help="Fetch a preview for one app")
    parser.add_argument("--out", type=Path, default=Path("screenshot.png"), help="Output file for --screenshot")

    args = parser.parse_args()

    try:
        if args.health:
            code = asyncio.run(run_health())
        else:
            code = asyncio.run(run_screenshot(args.screenshot, args.out))
    except AppStoreError as exc:
        print(f"[!] Error: {exc}")
        code = 2
    sys.exit(code)


if __name__ == "__main__":
    main()
