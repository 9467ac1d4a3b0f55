"""Cancellable self-rescheduling timer for the monitor's periodic work.

Each PeriodicTask runs its action immediately on ``start()`` and then once
per interval, until ``stop()``.  The chain is a single asyncio task guarded
by an ``armed`` flag: the flag is checked after every action and before
every reschedule, so a stopped task never fires again even if ``stop()``
is called from inside its own action.

Usage::

    task = PeriodicTask("sync", 10.0, scheduler.tick)
    task.start()     # fires now, then every 10s
    task.start()     # no-op, already armed
    task.stop()      # disarms and cancels the pending sleep
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger("pulsewatch.monitor.periodic")

TickAction = Callable[[], Awaitable[object]]


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:  # no running loop
        return None


class PeriodicTask:
    """A named periodic action that never overlaps with itself."""

    def __init__(
        self,
        name: str,
        interval_seconds: float,
        action: TickAction,
        *,
        run_immediately: bool = True,
    ) -> None:
        """Initialize the task.

        Args:
            name:             Label used in logs and the asyncio task name.
            interval_seconds: Wait between the end of one tick and the next.
            action:           Async callable executed on each tick.
            run_immediately:  Fire the first tick on start instead of after
                              one interval.
        """
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self.name = name
        self.interval_seconds = interval_seconds
        self._action = action
        self._run_immediately = run_immediately
        self._armed = False
        self._task: asyncio.Task | None = None
        self.tick_count = 0

    @property
    def armed(self) -> bool:
        return self._armed

    def start(self) -> bool:
        """Arm the timer. Must be called from inside a running event loop.

        Returns:
            True if a new chain was started, False if already armed.

        Raises:
            RuntimeError: If no event loop is running; the timer stays disarmed.
        """
        if self._armed:
            logger.debug("PeriodicTask %s already armed", self.name)
            return False
        loop = asyncio.get_running_loop()
        self._armed = True
        self._task = loop.create_task(self._run(), name=f"periodic:{self.name}")
        logger.debug("PeriodicTask %s armed (every %.1fs)", self.name, self.interval_seconds)
        return True

    def stop(self) -> bool:
        """Disarm the timer and cancel its pending wait.

        Returns:
            True if the timer was armed, False if it was already stopped.
        """
        if not self._armed:
            return False
        self._armed = False
        task, self._task = self._task, None
        if task is not None and task is not _current_task():
            task.cancel()
        logger.debug("PeriodicTask %s disarmed", self.name)
        return True

    async def _run(self) -> None:
        me = asyncio.current_task()
        if not self._run_immediately:
            await asyncio.sleep(self.interval_seconds)
        while self._is_current(me):
            self.tick_count += 1
            try:
                await self._action()
            except Exception:
                logger.exception("PeriodicTask %s tick failed", self.name)
            if not self._is_current(me):
                break
            await asyncio.sleep(self.interval_seconds)

    def _is_current(self, task: asyncio.Task | None) -> bool:
        # A stop()/start() pair inside one tick replaces self._task; the old
        # chain must then end instead of running alongside the new one.
        return self._armed and self._task is task
