"""Pulsewatch heart-rate monitor core.

This package holds the runtime coordinator that sits between a heart-rate
sensor, a remote document store and a positioned watch-face label.

Subpackages:
    sync/  — Periodic remote sync scheduler and RemoteSink backends

Core modules:
    base          — Data models, collaborator ABCs and errors
    stabilizer    — Last-known-good value across sensor dropouts
    position      — Anti-burn-in label repositioning
    periodic      — Cancellable periodic timers
    display       — Reading formatting and the in-memory display surface
    sensors       — Push and simulated sensor sources
    coordinator   — HeartRateMonitor lifecycle and wiring
    config_loader — Load/validate/hot-reload monitor_config.yaml
"""

from src.monitor.base import (
    DisplayColor,
    HeartRateSample,
    MonitorError,
    SafeZone,
    ScreenPosition,
    SensorEvent,
    SinkError,
    StabilizedReading,
    SyncRecord,
)
from src.monitor.config_loader import MonitorConfig, get_monitor_config
from src.monitor.coordinator import HeartRateMonitor

__all__ = [
    "DisplayColor",
    "HeartRateSample",
    "HeartRateMonitor",
    "MonitorConfig",
    "MonitorError",
    "SafeZone",
    "ScreenPosition",
    "SensorEvent",
    "SinkError",
    "StabilizedReading",
    "SyncRecord",
    "get_monitor_config",
]
