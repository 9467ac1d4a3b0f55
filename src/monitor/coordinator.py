"""Runtime coordinator for the heart-rate watch face.

HeartRateMonitor wires one SensorSource, one RemoteSink and one
DisplaySurface together:

    sensor events ──► SampleStabilizer ──► DisplayPresenter
                            │
              sync timer ──►└─► SyncScheduler ──► RemoteSink
       reposition timer ──────► PositionRandomizer ──► DisplaySurface

Everything runs on one asyncio event loop, so the stabilizer's state needs
no locking: it is the only writer, and the sync scheduler only reads it.

``start()`` / ``stop()`` map to the watch app's resume / pause and are both
idempotent.
"""

from __future__ import annotations

import asyncio
import logging
import math
import random
from dataclasses import dataclass

from src.monitor.base import (
    HEART_RATE_SENSOR,
    DisplaySurface,
    HeartRateSample,
    RemoteSink,
    SensorEvent,
    SensorSource,
    StabilizedReading,
)
from src.monitor.config_loader import MonitorConfig, get_monitor_config
from src.monitor.display import DisplayPresenter
from src.monitor.periodic import PeriodicTask
from src.monitor.position import PositionRandomizer
from src.monitor.stabilizer import SampleStabilizer
from src.monitor.sync.scheduler import SyncScheduler

logger = logging.getLogger("pulsewatch.monitor.coordinator")


def sample_value(raw_value: float) -> int:
    """Truncate a raw sensor value to whole bpm; NaN, inf and negatives count as 0."""
    if not math.isfinite(raw_value):
        return 0
    return max(int(raw_value), 0)


@dataclass(frozen=True)
class MonitorStatus:
    running: bool
    sensor_available: bool
    subscribed: bool
    sync_armed: bool
    reposition_armed: bool
    samples_processed: int
    samples_ignored: int


class HeartRateMonitor:
    """Coordinate sampling, sync and repositioning for one watch face.

    Usage::

        monitor = HeartRateMonitor(sensor, sink, display)
        monitor.start()   # on resume
        ...
        monitor.stop()    # on pause
        await monitor.shutdown()
    """

    def __init__(
        self,
        sensor: SensorSource,
        sink: RemoteSink,
        display: DisplaySurface,
        config: MonitorConfig | None = None,
        *,
        rng: random.Random | None = None,
    ) -> None:
        cfg = config or get_monitor_config()
        self.config = cfg
        self._sensor = sensor
        self._sink = sink
        self._display = display

        self.stabilizer = SampleStabilizer()
        self.presenter = DisplayPresenter(
            display,
            unavailable_text=cfg.display.unavailable_text,
            no_reading_text=cfg.display.no_reading_text,
            reading_format=cfg.display.reading_format,
        )
        self.sync = SyncScheduler(
            self.stabilizer,
            sink,
            collection_id=cfg.sync.collection_id,
            document_id=cfg.sync.document_id,
            max_in_flight=cfg.sync.max_in_flight,
        )
        self.positioner = PositionRandomizer(
            display,
            margin=cfg.reposition.margin,
            container_diameter=cfg.reposition.container_diameter,
            contain_label_box=cfg.reposition.contain_label_box,
            rng=rng,
        )
        self.sync_timer = PeriodicTask("sync", cfg.sync.interval_seconds, self.sync.tick)
        self.reposition_timer = PeriodicTask(
            "reposition", cfg.reposition.interval_seconds, self.positioner.tick
        )

        self._listener = self.on_sensor_event
        self._running = False
        self._subscribed = False
        self._sensor_available: bool | None = None
        self.samples_processed = 0
        self.samples_ignored = 0
        self.last_sample: HeartRateSample | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._running

    @property
    def sensor_available(self) -> bool:
        if self._sensor_available is None:
            self._sensor_available = self._sensor.has_heart_rate_sensor()
        return self._sensor_available

    def start(self) -> bool:
        """Subscribe to the sensor and arm both timers.

        Must be called from inside a running event loop.

        Returns:
            True if the monitor was started, False if it was already running.

        Raises:
            RuntimeError: If no event loop is running; nothing is changed.
        """
        if self._running:
            logger.debug("Monitor already running")
            return False

        # Raises before any state changes when no loop is running
        asyncio.get_running_loop()

        first_start = self._sensor_available is None
        if self.sensor_available:
            if first_start:
                self.presenter.show_reading(self.stabilizer.reading)
            self._sensor.subscribe(self._listener)
            self._subscribed = True
        elif first_start:
            self.presenter.show_unavailable()

        self.sync_timer.start()
        self.reposition_timer.start()
        self._running = True
        logger.info("Heart-rate monitor started")
        return True

    def stop(self) -> bool:
        """Unsubscribe from the sensor and disarm both timers.

        Returns:
            True if the monitor was stopped, False if it was not running.
        """
        if not self._running:
            return False
        if self._subscribed:
            self._sensor.unsubscribe(self._listener)
            self._subscribed = False
        self.sync_timer.stop()
        self.reposition_timer.stop()
        self._running = False
        logger.info("Heart-rate monitor stopped")
        return True

    async def shutdown(self) -> None:
        """Stop, let outstanding writes finish, and close the sink."""
        self.stop()
        await self.sync.drain()
        await self._sink.close()

    # ------------------------------------------------------------------
    # Sensor callback
    # ------------------------------------------------------------------

    def on_sensor_event(self, event: SensorEvent) -> StabilizedReading | None:
        """Process one sensor event.

        Returns:
            The new reading, or None if the event was not a heart-rate event
            or the monitor is paused.
        """
        if not self._subscribed or event.sensor_type != HEART_RATE_SENSOR:
            self.samples_ignored += 1
            return None
        sample = HeartRateSample(sample_value(event.raw_value), event.timestamp)
        reading = self.stabilizer.on_sample(sample.value)
        self.last_sample = sample
        self.samples_processed += 1
        self.presenter.show_reading(reading)
        return reading

    def status(self) -> MonitorStatus:
        return MonitorStatus(
            running=self._running,
            sensor_available=self.sensor_available,
            subscribed=self._subscribed,
            sync_armed=self.sync_timer.armed,
            reposition_armed=self.reposition_timer.armed,
            samples_processed=self.samples_processed,
            samples_ignored=self.samples_ignored,
        )
