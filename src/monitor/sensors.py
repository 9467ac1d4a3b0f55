"""Sensor sources feeding the monitor.

PushSensorSource      — events are pushed in from outside (the HTTP API).
SimulatedSensorSource — generates a plausible heart-rate stream with
                        dropouts, for running without a watch attached.

Both deliver to at most one listener; events arriving while nobody is
subscribed are dropped, which is what halts sample processing on pause.
"""

from __future__ import annotations

import asyncio
import logging
import random

from src.monitor.base import (
    HEART_RATE_SENSOR,
    SensorEvent,
    SensorListener,
    SensorSource,
)

logger = logging.getLogger("pulsewatch.monitor.sensors")

# Physiological bounds for simulated readings
MIN_BPM = 30.0
MAX_BPM = 220.0


class PushSensorSource(SensorSource):
    """Sensor source driven by ``publish()`` calls."""

    def __init__(self, has_heart_rate: bool = True) -> None:
        self._has_heart_rate = has_heart_rate
        self._listener: SensorListener | None = None

    @property
    def subscribed(self) -> bool:
        return self._listener is not None

    def has_heart_rate_sensor(self) -> bool:
        return self._has_heart_rate

    def subscribe(self, listener: SensorListener) -> None:
        if self._listener == listener:
            return
        if self._listener is not None:
            logger.warning("Replacing existing sensor listener")
        self._listener = listener

    def unsubscribe(self, listener: SensorListener) -> None:
        if self._listener == listener:
            self._listener = None

    def publish(self, event: SensorEvent) -> bool:
        """Deliver one event to the subscribed listener.

        Returns:
            True if the event was delivered, False if nobody is subscribed.
        """
        if self._listener is None:
            return False
        self._listener(event)
        return True


class SimulatedSensorSource(SensorSource):
    """Random-walk heart rate with occasional zero-valued dropouts."""

    def __init__(
        self,
        *,
        interval_seconds: float = 1.0,
        baseline_bpm: int = 72,
        dropout_probability: float = 0.1,
        rng: random.Random | None = None,
    ) -> None:
        self._interval = interval_seconds
        self._baseline = baseline_bpm
        self._dropout_probability = dropout_probability
        self._rng = rng or random.Random()
        self._current = float(baseline_bpm)
        self._listener: SensorListener | None = None
        self._task: asyncio.Task | None = None

    def has_heart_rate_sensor(self) -> bool:
        return True

    def subscribe(self, listener: SensorListener) -> None:
        self._listener = listener
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(
                self._emit_forever(), name="sensor:simulated"
            )
            logger.info("Simulated heart-rate sensor started")

    def unsubscribe(self, listener: SensorListener) -> None:
        if self._listener != listener:
            return
        self._listener = None
        if self._task is not None:
            self._task.cancel()
            self._task = None
            logger.info("Simulated heart-rate sensor stopped")

    def next_value(self) -> float:
        """Return the next simulated reading (0.0 on a dropout)."""
        if self._rng.random() < self._dropout_probability:
            return 0.0
        # Mean-reverting walk around the baseline
        self._current += self._rng.gauss(0, 2) + (self._baseline - self._current) * 0.1
        self._current = min(max(self._current, MIN_BPM), MAX_BPM)
        return round(self._current, 1)

    async def _emit_forever(self) -> None:
        while self._listener is not None:
            self._listener(SensorEvent(HEART_RATE_SENSOR, self.next_value()))
            await asyncio.sleep(self._interval)
