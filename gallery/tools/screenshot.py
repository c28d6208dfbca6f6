from __future__ import annotations

import asyncio
from urllib.parse import quote

import httpx

from gallery.config import settings
from gallery.models.apps import ScreenshotImage

DEFAULT_CONTENT_TYPE = "image/png"


class ScreenshotUnavailableError(RuntimeError):
    """The imaging service did not return a usable preview."""


def build_screenshot_url(target_url: str, service_url: str | None = None) -> str:
    template = service_url or settings.screenshot_service_url
    return template.format(url=quote(target_url, safe=""))


def build_screenshot_client(
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=transport,
        timeout=settings.screenshot_timeout_seconds if timeout is None else timeout,
        follow_redirects=True,
        headers={"User-Agent": settings.screenshot_user_agent},
    )


async def fetch_screenshot(
    client: httpx.AsyncClient,
    target_url: str,
    *,
    service_url: str | None = None,
    timeout: float | None = None,
) -> ScreenshotImage:
    """Fetch a rendered preview of `target_url` from the imaging service."""
    limit = settings.screenshot_timeout_seconds if timeout is None else timeout
    request_url = build_screenshot_url(target_url, service_url)

    try:
        response = await asyncio.wait_for(client.get(request_url), timeout=limit)
    except asyncio.TimeoutError as exc:
        raise ScreenshotUnavailableError(f"Screenshot request timed out after {limit}s") from exc
    except httpx.HTTPError as exc:
        raise ScreenshotUnavailableError(f"Failed to fetch screenshot: {exc}") from exc

    if not response.is_success:
        raise ScreenshotUnavailableError(
            f"Screenshot service unavailable (HTTP {response.status_code})"
        )

    content_type = response.headers.get("content-type") or DEFAULT_CONTENT_TYPE
    return ScreenshotImage(image_bytes=response.content, content_type=content_type)
