from __future__ import annotations

from pydantic import BaseModel


# --- Responses ---


class AppResponse(BaseModel):
    id: int
    name: str
    category: str | None
    url: str
    stats: str | None


class HealthStatus(BaseModel):
    status: int
    ok: bool


class ServiceHealthResponse(BaseModel):
    status: str
    service: str
