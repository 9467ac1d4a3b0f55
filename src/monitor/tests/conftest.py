"""Shared fixtures and fake collaborators for the heart-rate monitor tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from src.monitor.base import RemoteSink, SinkError
from src.monitor.config_loader import MonitorConfig, load_monitor_config
from src.monitor.display import InMemoryDisplay
from src.monitor.sensors import PushSensorSource

TEST_TIME = datetime(2026, 2, 23, 7, 30, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class RecordingSink(RemoteSink):
    """RemoteSink that records every call and fails on request.

    ``failures`` is a list of booleans consumed one per call; True makes
    that call raise SinkError.
    """

    name = "recording"

    def __init__(self, failures: list[bool] | None = None) -> None:
        self.calls: list[tuple[str, str, dict[str, Any]]] = []
        self._failures = list(failures or [])
        self.closed = False

    async def upsert(
        self, collection_id: str, document_id: str, fields: dict[str, Any]
    ) -> None:
        self.calls.append((collection_id, document_id, dict(fields)))
        if self._failures and self._failures.pop(0):
            raise SinkError("write rejected")

    async def close(self) -> None:
        self.closed = True


class CountingSensor(PushSensorSource):
    """PushSensorSource that counts subscribe/unsubscribe calls."""

    def __init__(self, has_heart_rate: bool = True) -> None:
        super().__init__(has_heart_rate)
        self.subscribe_calls = 0
        self.unsubscribe_calls = 0

    def subscribe(self, listener) -> None:
        self.subscribe_calls += 1
        super().subscribe(listener)

    def unsubscribe(self, listener) -> None:
        self.unsubscribe_calls += 1
        super().unsubscribe(listener)


class SteppingClock:
    """Clock that advances a fixed step on every call."""

    def __init__(self, start: datetime = TEST_TIME, step: timedelta = timedelta(seconds=10)) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def monitor_config() -> MonitorConfig:
    """Load the real monitor config for tests."""
    return load_monitor_config()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def sensor() -> CountingSensor:
    return CountingSensor()


@pytest.fixture
def display() -> InMemoryDisplay:
    return InMemoryDisplay()


@pytest.fixture
def measured_display() -> InMemoryDisplay:
    """A display whose 450px container and 100x40 label are measured."""
    d = InMemoryDisplay()
    d.set_layout(450.0, 100.0, 40.0)
    return d
