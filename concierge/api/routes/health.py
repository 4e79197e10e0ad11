"""Health check endpoints.

- /health - Service status, provider and database reachability
- /health/db - Connection pool and retention metrics
"""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends

from concierge.api.dependencies import get_database, get_provider, get_settings
from concierge.catalog.providers.base import ProductProvider
from concierge.config import APP_VERSION, ConciergeSettings
from concierge.infrastructure.database import Database
from concierge.observability.telemetry import get_counters
from concierge.storage.retention import get_retention_stats

router = APIRouter(tags=["health"])


@router.get("/health")
def health_check(
    db: Database = Depends(get_database),
    provider: ProductProvider = Depends(get_provider),
    settings: ConciergeSettings = Depends(get_settings),
) -> dict[str, Any]:
    """Service status, version and database reachability."""
    try:
        with db.connection() as conn:
            conn.execute("SELECT 1").fetchone()
        database_ok = True
    except (sqlite3.Error, FileNotFoundError, RuntimeError):
        database_ok = False

    return {
        "status": "healthy" if database_ok else "degraded",
        "service": "Concierge API",
        "version": APP_VERSION,
        "env": settings.env,
        "timestamp": datetime.now(UTC).isoformat(),
        "provider": provider.name,
        "database": {"ok": database_ok},
    }


@router.get("/health/db")
def database_health(db: Database = Depends(get_database)) -> dict[str, Any]:
    """
    Database health check endpoint.

    Returns connection pool health metrics for monitoring.
    Alerts if pool usage exceeds 80%.
    """
    stats = db.pool_stats()
    usage_percent = stats["usage_percent"]

    return {
        "status": "degraded" if usage_percent > 80 else "healthy",
        "pool": stats,
        "warning": "Pool usage high" if usage_percent > 80 else None,
        "retention": get_retention_stats(db),
        "counters": get_counters("retention."),
    }
