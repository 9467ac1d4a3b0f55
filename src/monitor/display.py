"""Render stabilized readings onto the watch-face label.

``DisplayPresenter`` maps monitor state to the DisplaySurface calls:

    sensor unavailable -> unavailable text, normal color
    no reading yet     -> no-reading text, alert color
    fresh reading      -> formatted bpm, normal color
    stale reading      -> formatted bpm, alert color

``InMemoryDisplay`` is the surface the API serves: the watch face polls its
state and reports its measured layout back into it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from src.monitor.base import DisplayColor, DisplaySurface, StabilizedReading

logger = logging.getLogger("pulsewatch.monitor.display")

UNAVAILABLE_TEXT = "Heart Rate Sensor not available"
NO_READING_TEXT = "--"
READING_FORMAT = "{bpm}"


@dataclass
class DisplayState:
    text: str = ""
    color: DisplayColor = DisplayColor.NORMAL
    x: float | None = None
    y: float | None = None
    container_diameter: float | None = None
    label_width: float | None = None
    label_height: float | None = None


class InMemoryDisplay(DisplaySurface):
    """A DisplaySurface that stores what it was told to show."""

    def __init__(self) -> None:
        self.state = DisplayState()

    def set_text(self, text: str) -> None:
        self.state.text = text

    def set_color(self, color: DisplayColor) -> None:
        self.state.color = color

    def set_position(self, x: float, y: float) -> None:
        self.state.x = x
        self.state.y = y

    def get_size(self) -> tuple[float, float] | None:
        if self.state.label_width is None or self.state.label_height is None:
            return None
        return self.state.label_width, self.state.label_height

    def get_container_size(self) -> float | None:
        return self.state.container_diameter

    def set_layout(
        self, container_diameter: float, label_width: float, label_height: float
    ) -> None:
        """Record the measured layout reported by the watch face."""
        self.state.container_diameter = container_diameter
        self.state.label_width = label_width
        self.state.label_height = label_height


class DisplayPresenter:
    """Format monitor state for a DisplaySurface."""

    def __init__(
        self,
        display: DisplaySurface,
        *,
        unavailable_text: str = UNAVAILABLE_TEXT,
        no_reading_text: str = NO_READING_TEXT,
        reading_format: str = READING_FORMAT,
    ) -> None:
        self._display = display
        self._unavailable_text = unavailable_text
        self._no_reading_text = no_reading_text
        self._reading_format = reading_format

    def format_reading(self, reading: StabilizedReading) -> str:
        if not reading.has_reading:
            return self._no_reading_text
        return self._reading_format.format(bpm=reading.last_non_zero)

    def show_reading(self, reading: StabilizedReading) -> None:
        self._display.set_text(self.format_reading(reading))
        # Before the first positive sample every sample is a dropout
        alert = reading.is_stale or not reading.has_reading
        self._display.set_color(DisplayColor.ALERT if alert else DisplayColor.NORMAL)

    def show_unavailable(self) -> None:
        logger.warning("No heart-rate sensor on this device")
        self._display.set_text(self._unavailable_text)
        self._display.set_color(DisplayColor.NORMAL)
