"""PostgreSQL app store using asyncpg."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Protocol

import asyncpg

from gallery.config import settings
from gallery.models.apps import App
from gallery.services.logger import log_db_operation

_DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


class AppStoreError(RuntimeError):
    """The record store could not serve a request."""


class AppStore(Protocol):
    async def list_apps(self) -> list[App]: ...

    async def get_app(self, app_id: int) -> App | None: ...


def _row_to_app(row: Any) -> App:
    data = dict(row)
    return App(
        id=int(data["id"]),
        url=str(data["url"]),
        name=str(data.get("name") or ""),
        category=data.get("category"),
        stats=data.get("stats"),
    )


class PostgresAppStore:
    """Reads and writes gallery apps in the `apps` table."""

    def __init__(
        self,
        database_url: str | None = None,
        *,
        min_size: int | None = None,
        max_size: int | None = None,
    ):
        self.database_url = settings.database_url if database_url is None else database_url
        self.min_size = settings.database_pool_min_size if min_size is None else min_size
        self.max_size = settings.database_pool_max_size if max_size is None else max_size
        self._pool: asyncpg.Pool | None = None

    def is_configured(self) -> bool:
        return bool(self.database_url)

    async def _get_pool(self) -> asyncpg.Pool:
        if not self.is_configured():
            raise AppStoreError("Database not configured. Set DATABASE_URL in .env")
        if self._pool is None:
            try:
                self._pool = await asyncpg.create_pool(
                    self.database_url,
                    min_size=self.min_size,
                    max_size=self.max_size,
                )
            except _DB_ERRORS as exc:
                log_db_operation("connect", "apps", "failed", error=str(exc))
                raise AppStoreError(f"Could not connect to database: {exc}") from exc
        return self._pool

    @asynccontextmanager
    async def _connection(self, operation: str) -> AsyncIterator[asyncpg.Connection]:
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                yield conn
        except _DB_ERRORS as exc:
            log_db_operation(operation, "apps", "failed", error=str(exc))
            raise AppStoreError(f"{operation} failed: {exc}") from exc

    async def close(self) -> None:
        """Close the database connection pool."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def init_schema(self) -> None:
        async with self._connection("init_schema") as conn:
            await conn.execute(
                """
                CREATE TABLE IF NOT EXISTS apps (
                    id SERIAL PRIMARY KEY,
                    name TEXT NOT NULL,
                    category TEXT,
                    url TEXT NOT NULL,
                    stats TEXT
                )
                """
            )
        log_db_operation("init_schema", "apps", "success")

    async def list_apps(self) -> list[App]:
        """Get all apps ordered by id."""
        async with self._connection("list_apps") as conn:
            rows = await conn.fetch(
                """
                SELECT id, name, category, url, stats
                FROM apps
                ORDER BY id
                """
            )
        log_db_operation("list_apps", "apps", "success", details=f"{len(rows)} rows")
        return [_row_to_app(r) for r in rows]

    async def get_app(self, app_id: int) -> App | None:
        """Get an app by id."""
        async with self._connection("get_app") as conn:
            row = await conn.fetchrow(
                """
                SELECT id, name, category, url, stats
                FROM apps
                WHERE id = $1
                """,
                app_id,
            )
        return _row_to_app(row) if row else None

    async def create_app(
        self,
        name: str,
        url: str,
        *,
        category: str | None = None,
        stats: str | None = None,
    ) -> App:
        """Create a new app."""
        async with self._connection("create_app") as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO apps (name, category, url, stats)
                VALUES ($1, $2, $3, $4)
                RETURNING id, name, category, url, stats
                """,
                name,
                category,
                url,
                stats,
            )
        log_db_operation("create_app", "apps", "success", details=url)
        return _row_to_app(row)
