"""Health check endpoint — public, no auth required."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from src.dependencies import AppSettings, Runtime

router = APIRouter(tags=["system"])
logger = logging.getLogger("pulsewatch.health")


@router.get("/health")
async def health_check(runtime: Runtime, settings: AppSettings) -> dict:
    """Liveness probe. Returns 200 if the API process is up.

    Reports ``degraded`` while the last remote write failed.
    """
    monitor = runtime.monitor
    last_result = monitor.sync.last_result
    sync_ok = last_result is None or last_result.status == "success"

    return {
        "status": "healthy" if sync_ok else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "monitor": "running" if monitor.running else "paused",
        "sensor": "available" if monitor.sensor_available else "unavailable",
        "sink": settings.sink_backend,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
