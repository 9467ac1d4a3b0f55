"""Anti-burn-in repositioning of the heart-rate label.

OLED watch faces burn in static content.  Every reposition tick the label
is moved to a random point inside a circular safe zone concentric with the
(round) container, keeping it clear of the bezel.

Only the label's center is constrained to the safe zone.  A large label
near the zone boundary can therefore extend past it; set
``contain_label_box`` to shrink the radius by half the label's larger side.
"""

from __future__ import annotations

import logging
import math
import random

from src.monitor.base import DisplaySurface, SafeZone, ScreenPosition

logger = logging.getLogger("pulsewatch.monitor.position")

DEFAULT_MARGIN = 0.8


def place_label(
    diameter: float,
    label_width: float,
    label_height: float,
    angle: float,
    distance: float,
) -> ScreenPosition:
    """Return the top-left position that centers the label at (angle, distance).

    The polar offset is measured from the container center.

    >>> place_label(450, 0, 0, 0.0, 0.0)
    ScreenPosition(x=225.0, y=225.0)
    """
    center = diameter / 2
    cx = center + distance * math.cos(angle)
    cy = center + distance * math.sin(angle)
    return ScreenPosition(x=cx - label_width / 2, y=cy - label_height / 2)


class PositionRandomizer:
    """Move the label to a random point in the safe zone on each tick."""

    def __init__(
        self,
        display: DisplaySurface,
        *,
        margin: float = DEFAULT_MARGIN,
        container_diameter: float | None = None,
        contain_label_box: bool = False,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the randomizer.

        Args:
            display:            Label collaborator (size, container, position).
            margin:             Fraction of the container radius available
                                to the label center.
            container_diameter: Fixed diameter overriding the measured one.
            contain_label_box:  Shrink the safe zone so the whole label box
                                stays inside it.
            rng:                Random source, injectable for tests.
        """
        if not 0.0 < margin <= 1.0:
            raise ValueError(f"margin must be in (0, 1], got {margin}")
        self._display = display
        self._margin = margin
        self._container_diameter = container_diameter
        self._contain_label_box = contain_label_box
        self._rng = rng or random.Random()
        self.last_position: ScreenPosition | None = None

    def safe_zone(self) -> SafeZone | None:
        diameter = self._container_diameter or self._display.get_container_size()
        if not diameter:
            return None
        return SafeZone(diameter=diameter, margin=self._margin)

    def next_position(self) -> ScreenPosition | None:
        """Draw a new position without applying it.

        Returns:
            The new top-left position, or None if the layout is not measured.
        """
        zone = self.safe_zone()
        size = self._display.get_size()
        if zone is None or size is None:
            return None
        width, height = size

        radius = zone.cut_radius
        if self._contain_label_box:
            radius = max(radius - max(width, height) / 2, 0.0)

        angle = self._rng.uniform(0.0, 2 * math.pi)
        # random() is in [0, 1), so the draw never reaches the boundary
        distance = self._rng.random() * radius
        return place_label(zone.diameter, width, height, angle, distance)

    async def tick(self) -> ScreenPosition | None:
        """Reposition the label. No-op while the layout is not measured."""
        position = self.next_position()
        if position is None:
            logger.debug("Layout not ready, skipping reposition")
            return None
        self._display.set_position(position.x, position.y)
        self.last_position = position
        logger.debug("Label moved to (%.1f, %.1f)", position.x, position.y)
        return position
