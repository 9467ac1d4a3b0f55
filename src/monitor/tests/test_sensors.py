"""Tests for the push and simulated sensor sources."""

from __future__ import annotations

import asyncio
import logging
import random

import pytest

from src.monitor.base import SensorEvent
from src.monitor.sensors import MAX_BPM, MIN_BPM, PushSensorSource, SimulatedSensorSource


class TestPushSensorSource:
    def test_publish_without_listener_drops_event(self) -> None:
        assert PushSensorSource().publish(SensorEvent("heart_rate", 70.0)) is False

    def test_publish_delivers_to_listener(self) -> None:
        received: list[SensorEvent] = []
        source = PushSensorSource()
        source.subscribe(received.append)
        event = SensorEvent("heart_rate", 70.0)
        assert source.publish(event) is True
        assert received == [event]

    def test_unsubscribe_stops_delivery(self) -> None:
        received: list[SensorEvent] = []
        source = PushSensorSource()
        source.subscribe(received.append)
        source.unsubscribe(received.append)
        source.publish(SensorEvent("heart_rate", 70.0))
        assert received == []
        assert not source.subscribed

    def test_resubscribing_same_bound_method_keeps_listener(self, caplog) -> None:
        received: list[SensorEvent] = []
        source = PushSensorSource()
        source.subscribe(received.append)
        with caplog.at_level(logging.WARNING, logger="pulsewatch.monitor.sensors"):
            source.subscribe(received.append)
        assert caplog.records == []
        assert source.publish(SensorEvent("heart_rate", 70.0)) is True
        assert len(received) == 1

    def test_unsubscribe_ignores_other_listener(self) -> None:
        received: list[SensorEvent] = []
        source = PushSensorSource()
        source.subscribe(received.append)
        source.unsubscribe([].append)
        assert source.subscribed

    def test_reports_missing_sensor(self) -> None:
        assert PushSensorSource(has_heart_rate=False).has_heart_rate_sensor() is False


class TestSimulatedSensorSource:
    def test_values_stay_in_physiological_range(self) -> None:
        source = SimulatedSensorSource(dropout_probability=0.0, rng=random.Random(42))
        values = [source.next_value() for _ in range(500)]
        assert all(MIN_BPM <= v <= MAX_BPM for v in values)

    def test_dropouts_are_zero(self) -> None:
        source = SimulatedSensorSource(dropout_probability=1.0, rng=random.Random(1))
        assert {source.next_value() for _ in range(10)} == {0.0}

    @pytest.mark.asyncio
    async def test_emits_until_unsubscribed(self) -> None:
        received: list[SensorEvent] = []
        source = SimulatedSensorSource(interval_seconds=0.01, rng=random.Random(3))
        source.subscribe(received.append)
        await asyncio.sleep(0.035)
        source.unsubscribe(received.append)
        count = len(received)
        await asyncio.sleep(0.03)

        assert count >= 2
        assert len(received) == count
        assert all(e.sensor_type == "heart_rate" for e in received)

    @pytest.mark.asyncio
    async def test_unsubscribe_cancels_emitter(self) -> None:
        received: list[SensorEvent] = []
        source = SimulatedSensorSource(interval_seconds=60, rng=random.Random(3))
        source.subscribe(received.append)
        task = source._task
        source.unsubscribe(received.append)
        await asyncio.gather(task, return_exceptions=True)

        assert source._task is None
        assert task.cancelled()
