"""Centralized logging service using loguru."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from loguru import logger

from gallery.config import settings

LOG_DIR = Path(settings.log_dir)
LOG_DIR.mkdir(parents=True, exist_ok=True)

# Remove default handler
logger.remove()

logger.add(
    sys.stderr,
    format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
    level=settings.app_log_level.upper(),
    colorize=True,
)

logger.add(
    LOG_DIR / "gallery_{time:YYYY-MM-DD}.log",
    format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
    level="DEBUG",
    rotation="00:00",
    retention="7 days",
    compression="zip",
)

# Reduce noise from framework/network libraries
for logger_name in (
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
    "fastapi",
    "httpx",
    "httpcore",
    "asyncpg",
    "asyncio",
):
    logging.getLogger(logger_name).setLevel(settings.noisy_log_level.upper())


def log_probe(
    app_id: int,
    url: str,
    status_code: int,
    ok: bool,
    duration_ms: int = 0,
    error: Optional[str] = None,
) -> None:
    """Log the outcome of one health probe."""
    probe_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "app_id": app_id,
        "url": url,
        "status_code": status_code,
        "ok": ok,
        "duration_ms": duration_ms,
        "error": error,
    }
    if error:
        logger.warning(f"PROBE_FAILED: {probe_data}")
    else:
        logger.debug(f"PROBE: {probe_data}")


def log_cache_event(
    cache: str,
    outcome: str,
    key: Optional[int] = None,
    **kwargs,
) -> None:
    """Log a cache hit, miss or eviction."""
    cache_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "cache": cache,
        "outcome": outcome,
        "key": key,
        **kwargs,
    }
    logger.info(f"CACHE: {cache_data}")


def log_db_operation(
    operation: str,
    table: str,
    status: str,
    details: Optional[str] = None,
    error: Optional[str] = None,
) -> None:
    """Log a database operation."""
    op_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "operation": operation,
        "table": table,
        "status": status,
        "details": details,
        "error": error,
    }
    if error:
        logger.error(f"DB_OPERATION_FAILED: {op_data}")
    else:
        logger.debug(f"DB_OPERATION: {op_data}")


def log_event(
    event_type: str,
    message: str,
    **kwargs,
) -> None:
    """Log a generic event."""
    event_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": event_type,
        "message": message,
        **kwargs,
    }
    logger.info(f"EVENT: {event_data}")
