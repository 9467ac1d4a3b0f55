"""Endpoints for the watch: sensor ingestion, readings, display state, lifecycle."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, HTTPException

from src.dependencies import Runtime
from src.models.monitor import (
    DisplayRead,
    LayoutUpdate,
    MonitorStatusRead,
    ReadingRead,
    ReadingWithSyncRead,
    SensorEventBatch,
)
from src.monitor.base import SensorEvent
from src.monitor.coordinator import HeartRateMonitor

router = APIRouter(tags=["monitor"])
logger = logging.getLogger("pulsewatch.routers.monitor")


def _reading(monitor: HeartRateMonitor) -> dict[str, Any]:
    reading = monitor.stabilizer.reading
    return {
        "last_non_zero": reading.last_non_zero,
        "is_stale": reading.is_stale,
        "has_reading": reading.has_reading,
        "last_sample_at": monitor.last_sample.timestamp if monitor.last_sample else None,
    }


# ---------- Sensor events ----------

@router.post("/sensor-events", response_model=ReadingRead, status_code=202)
async def push_sensor_events(runtime: Runtime, body: SensorEventBatch) -> Any:
    sensor = runtime.push_sensor
    if sensor is None:
        raise HTTPException(status_code=409, detail="Monitor is using a simulated sensor")
    if not runtime.monitor.sensor_available:
        raise HTTPException(status_code=409, detail="Heart-rate sensor not available")
    if not runtime.monitor.running:
        raise HTTPException(status_code=409, detail="Monitor is paused")

    for event in body.events:
        sensor.publish(SensorEvent(event.sensor_type, event.raw_value, event.timestamp))
    return _reading(runtime.monitor)


# ---------- Readings ----------

@router.get("/reading", response_model=ReadingWithSyncRead)
async def get_reading(runtime: Runtime) -> Any:
    sync = runtime.monitor.sync
    last = sync.last_result
    return {
        "reading": _reading(runtime.monitor),
        "sync": {
            "ticks": sync.ticks,
            "skipped": sync.skipped,
            "successes": sync.successes,
            "failures": sync.failures,
            "in_flight": sync.in_flight,
            "last_heart_rate": last.heart_rate if last else None,
            "last_status": last.status if last else None,
            "last_error": last.error if last else None,
            "last_synced_at": last.synced_at if last else None,
        },
    }


# ---------- Display ----------

@router.get("/display", response_model=DisplayRead)
async def get_display(runtime: Runtime) -> Any:
    state = runtime.display.state
    return {"text": state.text, "color": state.color, "x": state.x, "y": state.y}


@router.put("/display/layout", response_model=DisplayRead)
async def update_layout(runtime: Runtime, body: LayoutUpdate) -> Any:
    runtime.display.set_layout(body.container_diameter, body.label_width, body.label_height)
    logger.debug(
        "Layout measured: container=%.0f label=%.0fx%.0f",
        body.container_diameter, body.label_width, body.label_height,
    )
    if runtime.display.state.x is None:
        # Place the label right away instead of waiting for the next tick
        await runtime.monitor.positioner.tick()
    state = runtime.display.state
    return {"text": state.text, "color": state.color, "x": state.x, "y": state.y}


# ---------- Lifecycle ----------

@router.get("/monitor", response_model=MonitorStatusRead)
async def get_monitor_status(runtime: Runtime) -> Any:
    return asdict(runtime.monitor.status())


@router.post("/monitor/resume", response_model=MonitorStatusRead)
async def resume_monitor(runtime: Runtime) -> Any:
    runtime.monitor.start()
    return asdict(runtime.monitor.status())


@router.post("/monitor/pause", response_model=MonitorStatusRead)
async def pause_monitor(runtime: Runtime) -> Any:
    runtime.monitor.stop()
    return asdict(runtime.monitor.status())
