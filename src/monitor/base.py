"""Data models and collaborator interfaces for the Pulsewatch heart-rate monitor.

The coordinator sits between three collaborators it does not implement:

    SensorSource   — delivers SensorEvents (heart-rate and anything else)
    RemoteSink     — create-or-overwrite writes to a remote document store
    DisplaySurface — the positioned text label on the watch face

Every type the stabilizer, sync scheduler and position randomizer exchange
is defined here so the API layer and tests share one vocabulary.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

HEART_RATE_SENSOR = "heart_rate"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class MonitorError(Exception):
    """Base class for all Pulsewatch monitor errors."""


class SinkError(MonitorError):
    """Raised by a RemoteSink when a write is rejected or times out."""


# ---------------------------------------------------------------------------
# Sensor data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SensorEvent:
    """One raw event from the sensor collaborator.

    Attributes:
        sensor_type: Sensor slug. Only ``"heart_rate"`` is processed.
        raw_value:   Value reported by the sensor (bpm for heart rate).
        timestamp:   When the sensor produced the value.
    """

    sensor_type: str
    raw_value: float
    timestamp: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class HeartRateSample:
    """A heart-rate sample after truncation to whole beats per minute."""

    value: int
    timestamp: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class StabilizedReading:
    """The value the watch face should show.

    Attributes:
        last_non_zero: Most recent strictly-positive sample, 0 if none yet.
        is_stale:      True when the most recent raw sample was a dropout.
    """

    last_non_zero: int = 0
    is_stale: bool = False

    @property
    def has_reading(self) -> bool:
        """False until the sensor has reported at least one positive value."""
        return self.last_non_zero > 0


# ---------------------------------------------------------------------------
# Sync data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SyncRecord:
    """Payload written to the fixed remote document on each sync tick."""

    heart_rate: int
    timestamp: datetime

    def to_fields(self) -> dict[str, Any]:
        return {"heartRate": self.heart_rate, "timestamp": self.timestamp}


@dataclass
class SyncResult:
    """Outcome of a single remote write.

    Attributes:
        heart_rate: The value that was written.
        status:     'success' or 'error'.
        error:      Error message if status == 'error'.
        synced_at:  UTC timestamp of completion.
    """

    heart_rate: int
    status: str = "success"
    error: str | None = None
    synced_at: datetime = field(default_factory=utc_now)


# ---------------------------------------------------------------------------
# Screen geometry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScreenPosition:
    """Top-left placement of the label inside its container."""

    x: float
    y: float


@dataclass(frozen=True)
class SafeZone:
    """Circular region, concentric with the container, for the label center.

    Attributes:
        diameter: Container diameter in pixels.
        margin:   Fraction of the container radius usable by the label center.
    """

    diameter: float
    margin: float = 0.8

    @property
    def center(self) -> float:
        return self.diameter / 2

    @property
    def cut_radius(self) -> float:
        return self.center * self.margin


class DisplayColor(str, Enum):
    NORMAL = "normal"
    ALERT = "alert"


# ---------------------------------------------------------------------------
# Collaborator interfaces
# ---------------------------------------------------------------------------

SensorListener = Callable[[SensorEvent], None]


class SensorSource(ABC):
    """Delivers sensor events to at most one subscribed listener at a time."""

    @abstractmethod
    def has_heart_rate_sensor(self) -> bool:
        """Return True if the device exposes a heart-rate sensor."""

    @abstractmethod
    def subscribe(self, listener: SensorListener) -> None:
        """Start delivering events to ``listener``."""

    @abstractmethod
    def unsubscribe(self, listener: SensorListener) -> None:
        """Stop delivering events to ``listener``."""


class RemoteSink(ABC):
    """Remote document store that supports create-or-overwrite writes."""

    name: str = "remote"

    @abstractmethod
    async def upsert(
        self, collection_id: str, document_id: str, fields: dict[str, Any]
    ) -> None:
        """Overwrite the document at (collection_id, document_id) with ``fields``.

        Raises:
            SinkError: If the store rejects the write or it times out.
        """

    async def close(self) -> None:
        """Release any network resources held by the sink."""


class DisplaySurface(ABC):
    """The positioned text label on the watch face."""

    @abstractmethod
    def set_text(self, text: str) -> None: ...

    @abstractmethod
    def set_color(self, color: DisplayColor) -> None: ...

    @abstractmethod
    def set_position(self, x: float, y: float) -> None: ...

    @abstractmethod
    def get_size(self) -> tuple[float, float] | None:
        """Return the label (width, height), or None if not yet measured."""

    @abstractmethod
    def get_container_size(self) -> float | None:
        """Return the container diameter, or None if not yet measured."""
