from __future__ import annotations

import asyncio
from dataclasses import dataclass

import httpx

from gallery.config import settings

# Origins that refuse HEAD get one GET instead.
HEAD_REJECTED_STATUSES = {405, 501}


@dataclass(frozen=True, slots=True)
class ProbeOutcome:
    status_code: int
    ok: bool
    error: str | None = None


UNREACHABLE = ProbeOutcome(status_code=0, ok=False)


def is_healthy_status(status_code: int) -> bool:
    return 200 <= status_code < 400


def build_probe_client(
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Shared client for probes: follows redirects and identifies as the health checker."""
    return httpx.AsyncClient(
        transport=transport,
        timeout=settings.health_probe_timeout_seconds if timeout is None else timeout,
        follow_redirects=True,
        headers={"User-Agent": settings.health_user_agent},
    )


async def _request_status(client: httpx.AsyncClient, url: str) -> int:
    response = await client.head(url, follow_redirects=True)
    if response.status_code in HEAD_REJECTED_STATUSES:
        response = await client.get(url, follow_redirects=True)
    return response.status_code


async def probe_url(
    client: httpx.AsyncClient,
    url: str,
    *,
    timeout: float | None = None,
) -> ProbeOutcome:
    """Check whether `url` answers within `timeout` seconds.

    Transport errors and timeouts are a normal outcome here and come back as
    status 0 rather than an exception. There is no retry.
    """
    limit = settings.health_probe_timeout_seconds if timeout is None else timeout
    try:
        status_code = await asyncio.wait_for(_request_status(client, url), timeout=limit)
    except asyncio.TimeoutError:
        return ProbeOutcome(status_code=0, ok=False, error=f"timed out after {limit}s")
    except httpx.HTTPError as exc:
        return ProbeOutcome(status_code=0, ok=False, error=f"{type(exc).__name__}: {exc}")
    return ProbeOutcome(status_code=status_code, ok=is_healthy_status(status_code))
