"""Periodic sync of the latest heart-rate reading to a remote document.

Every tick (10 seconds by default):
1. Snapshot the stabilizer's last non-zero value (read-only)
2. Skip the tick if there has never been a valid reading
3. Build a SyncRecord stamped with the current time
4. Dispatch an upsert of the fixed document, fire-and-forget
5. Log and record the outcome when the write completes

Failed writes are never retried: the next tick re-sends whatever the
then-current reading is.  Because every write overwrites the same
document, overlapping writes are harmless; ``max_in_flight`` can still cap
them when stricter backpressure is wanted.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable

from src.monitor.base import RemoteSink, SyncRecord, SyncResult, utc_now
from src.monitor.stabilizer import SampleStabilizer

logger = logging.getLogger("pulsewatch.monitor.sync.scheduler")

DEFAULT_COLLECTION_ID = "heartRates"
DEFAULT_DOCUMENT_ID = "latestHeartRate"
DEFAULT_SYNC_INTERVAL = 10.0  # seconds


class SyncScheduler:
    """Push the stabilized heart rate to a RemoteSink on each tick.

    The scheduler only reads from the stabilizer; it never mutates it.

    Usage::

        scheduler = SyncScheduler(stabilizer, FirestoreSink(...))
        await scheduler.tick()     # dispatches at most one write
        await scheduler.drain()    # wait for outstanding writes
    """

    def __init__(
        self,
        stabilizer: SampleStabilizer,
        sink: RemoteSink,
        *,
        collection_id: str = DEFAULT_COLLECTION_ID,
        document_id: str = DEFAULT_DOCUMENT_ID,
        max_in_flight: int = 0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the scheduler.

        Args:
            stabilizer:    Owner of the last-known-good reading.
            sink:          Remote document store to write to.
            collection_id: Remote collection of the fixed document.
            document_id:   Remote identity overwritten on every write.
            max_in_flight: Skip a tick while this many writes are still
                           outstanding. 0 disables the gate.
            clock:         Source of record timestamps.
        """
        self._stabilizer = stabilizer
        self._sink = sink
        self.collection_id = collection_id
        self.document_id = document_id
        self._max_in_flight = max_in_flight
        self._clock = clock
        self._in_flight: set[asyncio.Task] = set()
        self._last_timestamp: datetime | None = None

        self.ticks = 0
        self.skipped = 0
        self.successes = 0
        self.failures = 0
        self.last_record: SyncRecord | None = None
        self.last_result: SyncResult | None = None

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    async def tick(self) -> SyncRecord | None:
        """Run one sync iteration.

        Returns:
            The record that was dispatched, or None if the tick was skipped.
        """
        self.ticks += 1
        heart_rate = self._stabilizer.last_non_zero
        if heart_rate <= 0:
            self.skipped += 1
            logger.debug("No heart-rate reading yet, skipping sync")
            return None

        if self._max_in_flight and len(self._in_flight) >= self._max_in_flight:
            self.skipped += 1
            logger.warning(
                "Skipping sync: %d write(s) still in flight", len(self._in_flight)
            )
            return None

        record = SyncRecord(heart_rate=heart_rate, timestamp=self._next_timestamp())
        self.last_record = record

        task = asyncio.get_running_loop().create_task(
            self._push(record), name="sync:upsert"
        )
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return record

    async def drain(self) -> None:
        """Wait for every outstanding write to complete."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    async def _push(self, record: SyncRecord) -> SyncResult:
        try:
            await self._sink.upsert(
                self.collection_id, self.document_id, record.to_fields()
            )
        except Exception as exc:
            self.failures += 1
            result = SyncResult(heart_rate=record.heart_rate, status="error", error=str(exc))
            logger.error(
                "Failed to sync %d bpm to %s/%s: %s",
                record.heart_rate, self.collection_id, self.document_id, exc,
            )
        else:
            self.successes += 1
            result = SyncResult(heart_rate=record.heart_rate)
            logger.info("Sent: %d bpm", record.heart_rate)
        self.last_result = result
        return result

    def _next_timestamp(self) -> datetime:
        # Record timestamps must strictly increase even on a coarse clock
        now = self._clock()
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now
