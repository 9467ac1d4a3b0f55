"""Pydantic models for the monitor API: sensor events, readings, display state."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from src.models.base import PulsewatchBase
from src.monitor.base import HEART_RATE_SENSOR, DisplayColor, utc_now


# ---------- Sensor events ----------

class SensorEventIn(PulsewatchBase):
    sensor_type: str = Field(default=HEART_RATE_SENSOR, max_length=50)
    raw_value: float
    timestamp: datetime = Field(default_factory=utc_now)


class SensorEventBatch(PulsewatchBase):
    events: list[SensorEventIn] = Field(min_length=1, max_length=500)


# ---------- Readings ----------

class ReadingRead(PulsewatchBase):
    last_non_zero: int
    is_stale: bool
    has_reading: bool
    last_sample_at: datetime | None = None


class SyncStatusRead(PulsewatchBase):
    ticks: int
    skipped: int
    successes: int
    failures: int
    in_flight: int
    last_heart_rate: int | None = None
    last_status: str | None = None
    last_error: str | None = None
    last_synced_at: datetime | None = None


class ReadingWithSyncRead(PulsewatchBase):
    reading: ReadingRead
    sync: SyncStatusRead


# ---------- Display ----------

class DisplayRead(PulsewatchBase):
    text: str
    color: DisplayColor
    x: float | None = None
    y: float | None = None


class LayoutUpdate(PulsewatchBase):
    container_diameter: float = Field(gt=0, le=4096)
    label_width: float = Field(ge=0, le=4096)
    label_height: float = Field(ge=0, le=4096)


# ---------- Lifecycle ----------

class MonitorStatusRead(PulsewatchBase):
    running: bool
    sensor_available: bool
    subscribed: bool
    sync_armed: bool
    reposition_armed: bool
    samples_processed: int
    samples_ignored: int
