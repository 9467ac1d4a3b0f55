"""Tests for the sync scheduler — skip, upsert, failure and backpressure."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from src.monitor.base import RemoteSink
from src.monitor.stabilizer import SampleStabilizer
from src.monitor.sync.scheduler import SyncScheduler
from src.monitor.tests.conftest import TEST_TIME, RecordingSink, SteppingClock


def make_scheduler(
    sink: RemoteSink, heart_rate: int = 0, **kwargs: Any
) -> tuple[SyncScheduler, SampleStabilizer]:
    stabilizer = SampleStabilizer()
    if heart_rate:
        stabilizer.on_sample(heart_rate)
    kwargs.setdefault("clock", SteppingClock())
    return SyncScheduler(stabilizer, sink, **kwargs), stabilizer


class BlockingSink(RemoteSink):
    """Sink whose writes stay in flight until released."""

    def __init__(self) -> None:
        self.release = asyncio.Event()
        self.calls = 0

    async def upsert(self, collection_id: str, document_id: str, fields: dict) -> None:
        self.calls += 1
        await self.release.wait()


class TestSyncTick:
    @pytest.mark.asyncio
    async def test_no_reading_never_calls_sink(self, sink: RecordingSink) -> None:
        scheduler, _ = make_scheduler(sink)
        assert await scheduler.tick() is None
        await scheduler.drain()
        assert sink.calls == []
        assert scheduler.skipped == 1

    @pytest.mark.asyncio
    async def test_upserts_fixed_document(self, sink: RecordingSink) -> None:
        scheduler, _ = make_scheduler(sink, heart_rate=85)
        record = await scheduler.tick()
        await scheduler.drain()

        assert record is not None
        assert len(sink.calls) == 1
        collection_id, document_id, fields = sink.calls[0]
        assert (collection_id, document_id) == ("heartRates", "latestHeartRate")
        assert fields == {"heartRate": 85, "timestamp": TEST_TIME}
        assert scheduler.successes == 1
        assert scheduler.last_result.status == "success"

    @pytest.mark.asyncio
    async def test_timestamps_strictly_increase(self, sink: RecordingSink) -> None:
        scheduler, _ = make_scheduler(sink, heart_rate=85)
        await scheduler.tick()
        await scheduler.tick()
        await scheduler.drain()
        first, second = (fields["timestamp"] for _, _, fields in sink.calls)
        assert second > first

    @pytest.mark.asyncio
    async def test_frozen_clock_still_increases(self, sink: RecordingSink) -> None:
        scheduler, _ = make_scheduler(sink, heart_rate=85, clock=lambda: TEST_TIME)
        first = await scheduler.tick()
        second = await scheduler.tick()
        await scheduler.drain()
        assert second.timestamp > first.timestamp

    @pytest.mark.asyncio
    async def test_stale_reading_still_synced(self, sink: RecordingSink) -> None:
        scheduler, stabilizer = make_scheduler(sink, heart_rate=70)
        stabilizer.on_sample(0)
        await scheduler.tick()
        await scheduler.drain()
        assert sink.calls[0][2]["heartRate"] == 70

    @pytest.mark.asyncio
    async def test_scheduler_does_not_mutate_stabilizer(self, sink: RecordingSink) -> None:
        scheduler, stabilizer = make_scheduler(sink, heart_rate=70)
        before = stabilizer.reading
        await scheduler.tick()
        await scheduler.drain()
        assert stabilizer.reading is before


class TestSyncFailure:
    @pytest.mark.asyncio
    async def test_failure_is_recorded_not_raised(self) -> None:
        sink = RecordingSink(failures=[True])
        scheduler, _ = make_scheduler(sink, heart_rate=85)
        await scheduler.tick()
        await scheduler.drain()
        assert scheduler.failures == 1
        assert scheduler.last_result.status == "error"
        assert "write rejected" in scheduler.last_result.error

    @pytest.mark.asyncio
    async def test_next_tick_after_failure_writes_again(self) -> None:
        sink = RecordingSink(failures=[True, False])
        scheduler, stabilizer = make_scheduler(sink, heart_rate=85)
        await scheduler.tick()
        await scheduler.drain()

        stabilizer.on_sample(90)
        await scheduler.tick()
        await scheduler.drain()

        assert len(sink.calls) == 2
        assert sink.calls[1][2]["heartRate"] == 90
        assert scheduler.failures == 1
        assert scheduler.successes == 1
        assert scheduler.last_result.status == "success"

    @pytest.mark.asyncio
    async def test_unexpected_exception_counts_as_failure(self) -> None:
        class BrokenSink(RemoteSink):
            async def upsert(self, collection_id: str, document_id: str, fields: dict) -> None:
                raise ConnectionResetError("peer reset")

        scheduler, _ = make_scheduler(BrokenSink(), heart_rate=85)
        await scheduler.tick()
        await scheduler.drain()
        assert scheduler.failures == 1


class TestInFlightWrites:
    @pytest.mark.asyncio
    async def test_tick_returns_before_write_completes(self) -> None:
        sink = BlockingSink()
        scheduler, _ = make_scheduler(sink, heart_rate=85)
        await scheduler.tick()
        await asyncio.sleep(0)
        assert scheduler.in_flight == 1
        assert sink.calls == 1

        sink.release.set()
        await scheduler.drain()
        assert scheduler.in_flight == 0
        assert scheduler.successes == 1

    @pytest.mark.asyncio
    async def test_ungated_writes_may_overlap(self) -> None:
        sink = BlockingSink()
        scheduler, _ = make_scheduler(sink, heart_rate=85)
        await scheduler.tick()
        await scheduler.tick()
        assert scheduler.in_flight == 2
        sink.release.set()
        await scheduler.drain()

    @pytest.mark.asyncio
    async def test_single_slot_gate_skips_tick(self) -> None:
        sink = BlockingSink()
        scheduler, _ = make_scheduler(sink, heart_rate=85, max_in_flight=1)
        assert await scheduler.tick() is not None
        assert await scheduler.tick() is None
        assert scheduler.skipped == 1

        sink.release.set()
        await scheduler.drain()
        assert await scheduler.tick() is not None
        await scheduler.drain()
        assert sink.calls == 2
