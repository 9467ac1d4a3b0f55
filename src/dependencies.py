"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, Request

from src.config import Settings, get_settings
from src.monitor.base import SensorSource
from src.monitor.coordinator import HeartRateMonitor
from src.monitor.display import InMemoryDisplay
from src.monitor.sensors import PushSensorSource


@dataclass(frozen=True)
class MonitorRuntime:
    """The monitor and the collaborators the API talks to directly."""

    monitor: HeartRateMonitor
    sensor: SensorSource
    display: InMemoryDisplay

    @property
    def push_sensor(self) -> PushSensorSource | None:
        return self.sensor if isinstance(self.sensor, PushSensorSource) else None


async def get_runtime(request: Request) -> MonitorRuntime:
    """Return the runtime built by the app lifespan."""
    runtime: MonitorRuntime | None = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(status_code=503, detail="Monitor not initialized")
    return runtime


# Annotated shortcuts for route signatures
Runtime = Annotated[MonitorRuntime, Depends(get_runtime)]
AppSettings = Annotated[Settings, Depends(get_settings)]
