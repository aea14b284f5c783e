"""
drawing/measurement.py

Live distance/angle readout for the line being drawn.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

from models import InvalidArgument, MeasurementReading, Point, SnapState
from drawing.geometry import angle_degrees, distance, midpoint

STANDARD_ANGLES = (0.0, 45.0, 90.0, 135.0, 180.0, 225.0, 270.0, 315.0, 360.0)


def nearest_standard_angle(angle: float, tolerance: float = 5.0) -> Optional[float]:
    """Closest of the eight standard angles when within *tolerance* degrees.

    360 is reported as 0.
    """
    nearest = min(STANDARD_ANGLES, key=lambda a: abs(angle - a))
    if abs(angle - nearest) > tolerance:
        return None
    return 0.0 if nearest == 360.0 else nearest


def format_reading(reading: MeasurementReading, precision: int = 2) -> str:
    """Render a reading as ``"1.00 m · 45.0°"``."""
    return f"{reading.distance:.{precision}f} {reading.unit} · {reading.angle_degrees:.1f}°"


class MeasurementFeedback:
    """Derives measurement readings from the line tool's draft.

    The only state kept is the last reading and, after drawing stops, the
    time at which it should disappear.

    Args:
        unit: Display unit label.
        pixels_per_unit: Scene units per display unit.
        decay_ms: How long the last reading stays visible after drawing ends.
        standard_angle_tolerance: Window for highlighting standard angles.
        clock: Monotonic clock in seconds.
    """

    def __init__(self, unit: str = "m", pixels_per_unit: float = 100.0, decay_ms: int = 1500,
                 standard_angle_tolerance: float = 5.0,
                 clock: Callable[[], float] = time.monotonic):
        if pixels_per_unit <= 0:
            raise InvalidArgument(f"pixels_per_unit must be positive, got {pixels_per_unit!r}")
        if decay_ms < 0:
            raise InvalidArgument(f"decay_ms must be >= 0, got {decay_ms!r}")
        self.unit = unit
        self.pixels_per_unit = float(pixels_per_unit)
        self.decay_ms = decay_ms
        self.standard_angle_tolerance = standard_angle_tolerance
        self._clock = clock
        self._last: Optional[MeasurementReading] = None
        self._hide_at: Optional[float] = None

    @classmethod
    def from_settings(cls, settings, clock: Callable[[], float] = time.monotonic) -> "MeasurementFeedback":
        m = settings.measurement
        return cls(m.unit, m.pixels_per_unit, m.decay_ms, m.standard_angle_tolerance, clock)

    def update(self, start: Point, end: Point, snap_state: SnapState) -> MeasurementReading:
        """Compute a fresh reading for the draft from *start* to *end*."""
        pixels = distance(start, end)
        angle = angle_degrees(start, end)
        reading = MeasurementReading(
            distance=pixels / self.pixels_per_unit,
            angle_degrees=angle,
            is_grid_snapped=snap_state.grid_snapped,
            is_angle_snapped=snap_state.angle_snapped,
            unit=self.unit,
            pixel_length=pixels,
            midpoint=midpoint(start, end),
            nearest_standard_angle=nearest_standard_angle(angle, self.standard_angle_tolerance),
        )
        self._last = reading
        self._hide_at = None
        return reading

    def finish(self, now: Optional[float] = None) -> None:
        """Drawing ended; start the decay of the last reading."""
        if self._last is None:
            return
        now = self._clock() if now is None else now
        self._hide_at = now + self.decay_ms / 1000.0

    def clear(self) -> None:
        self._last = None
        self._hide_at = None

    def current(self, now: Optional[float] = None) -> Optional[MeasurementReading]:
        """The reading to display, or ``None`` once it has decayed."""
        if self._last is None:
            return None
        if self._hide_at is not None:
            now = self._clock() if now is None else now
            if now >= self._hide_at:
                self.clear()
                return None
        return self._last
