"""Carry the last good heart-rate value across sensor dropouts.

Optical wrist sensors report 0 whenever they lose skin contact or cannot
lock onto a pulse.  Those samples never replace the displayed value; they
only flag it as stale so the watch face can render it in the alert color.

No smoothing or averaging is applied: the stabilized value is always the
most recent strictly-positive sample.
"""

from __future__ import annotations

import logging

from src.monitor.base import StabilizedReading

logger = logging.getLogger("pulsewatch.monitor.stabilizer")


class SampleStabilizer:
    """Single owner (and only writer) of the last-known-good heart rate."""

    def __init__(self) -> None:
        self._reading = StabilizedReading()

    @property
    def reading(self) -> StabilizedReading:
        """Snapshot of the current state. Safe to hold across ticks."""
        return self._reading

    @property
    def last_non_zero(self) -> int:
        return self._reading.last_non_zero

    def on_sample(self, value: int) -> StabilizedReading:
        """Apply one sample and return the new reading.

        Args:
            value: Heart rate in bpm, already truncated to an integer.
                   Zero and negative values count as a dropout, which marks
                   an existing reading stale.

        Returns:
            The updated StabilizedReading.
        """
        if value > 0:
            self._reading = StabilizedReading(last_non_zero=value, is_stale=False)
        elif self._reading.has_reading:
            if not self._reading.is_stale:
                logger.debug(
                    "Sensor dropout, holding last reading %d bpm",
                    self._reading.last_non_zero,
                )
            self._reading = StabilizedReading(
                last_non_zero=self._reading.last_non_zero, is_stale=True
            )
        # Dropouts before the first positive sample leave the "no reading" state as is
        return self._reading

    def reset(self) -> None:
        self._reading = StabilizedReading()
