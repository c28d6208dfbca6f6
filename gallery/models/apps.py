from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal


CacheSource = Literal["hit", "miss"]


@dataclass(frozen=True, slots=True)
class App:
    id: int
    url: str
    name: str = ""
    category: str | None = None
    stats: str | None = None


@dataclass(frozen=True, slots=True)
class HealthResult:
    app_id: int
    status_code: int
    ok: bool


@dataclass(slots=True)
class HealthSnapshot:
    results: dict[int, HealthResult] = field(default_factory=dict)
    captured_at: float = 0.0
    from_cache: bool = False


@dataclass(frozen=True, slots=True)
class ScreenshotImage:
    image_bytes: bytes
    content_type: str


@dataclass(slots=True)
class ScreenshotCacheEntry:
    app_id: int
    image_bytes: bytes
    content_type: str
    stored_at: float


@dataclass(frozen=True, slots=True)
class CachedScreenshot:
    image_bytes: bytes
    content_type: str
    source: CacheSource
