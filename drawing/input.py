"""
drawing/input.py

Unifies mouse, touch and stylus events into one stream of PointerSamples.

Classification happens once, here. Tools read ``sample.input_method`` and
never look at the raw event again.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Optional

from models import InputMethod, Point, PointerPhase, PointerSample, RawPointerEvent
from debug_trace import trace

log = logging.getLogger(__name__)

# Pressure values reported by devices that do not sense pressure.
# Default: 0.0 (hover), 0.5 (browser pointer-event default), 1.0 (Qt mouse button down)
DEFAULT_PRESSURE_SENTINELS = (0.0, 0.5, 1.0)

_SENTINEL_TOLERANCE = 1e-6

# Stylus pressure below this is treated as this
MIN_STYLUS_PRESSURE = 0.1


def pressure_adjusted_thickness(thickness: float, pressure: Optional[float]) -> float:
    """Stroke width for a stylus sample.

    Width follows ``pressure ** 1.5`` and never drops below half of
    *thickness*. Missing or non-finite pressure gives *thickness* unchanged.
    """
    if pressure is None or not math.isfinite(pressure):
        return thickness
    curve = max(pressure, MIN_STYLUS_PRESSURE) ** 1.5
    return max(thickness * curve, thickness * 0.5)


class InputNormalizer:
    """Classify raw pointer events and apply palm rejection.

    While a stylus is in contact, every non-stylus sample is dropped until
    that stylus lifts or the stroke is cancelled.

    Args:
        pressure_sentinels: Pressures that do not indicate a stylus.
        palm_rejection: Drop touch/mouse input during a stylus stroke.
    """

    def __init__(self, pressure_sentinels: Iterable[float] = DEFAULT_PRESSURE_SENTINELS,
                 palm_rejection: bool = True):
        self.pressure_sentinels = tuple(float(p) for p in pressure_sentinels)
        self.palm_rejection = palm_rejection
        self.last_sample: Optional[PointerSample] = None
        self._stylus_pointer: Optional[int] = None

    @classmethod
    def from_settings(cls, settings) -> "InputNormalizer":
        """Build a normalizer from ``AppSettings``."""
        return cls(settings.input.mouse_pressure_sentinels, settings.input.palm_rejection)

    @property
    def stylus_active(self) -> bool:
        return self._stylus_pointer is not None

    def _is_sentinel(self, pressure: float) -> bool:
        return any(abs(pressure - s) <= _SENTINEL_TOLERANCE for s in self.pressure_sentinels)

    def classify(self, raw: RawPointerEvent) -> InputMethod:
        """Decide the input method of a raw event."""
        pointer_type = (raw.pointer_type or "").lower()
        if pointer_type in ("pen", "stylus"):
            return InputMethod.STYLUS
        if raw.touch_count > 1:
            return InputMethod.TOUCH
        if (raw.pressure is not None and math.isfinite(raw.pressure)
                and not self._is_sentinel(raw.pressure)):
            return InputMethod.STYLUS
        if pointer_type == "touch":
            return InputMethod.TOUCH
        return InputMethod.MOUSE

    def normalize(self, raw: RawPointerEvent) -> Optional[PointerSample]:
        """Convert one raw event into a sample.

        Returns:
            The sample, or ``None`` when the event is dropped (non-finite
            coordinates or palm rejection).
        """
        if not (math.isfinite(raw.x) and math.isfinite(raw.y)):
            log.debug("dropping non-finite pointer event (%r, %r)", raw.x, raw.y)
            return None

        method = self.classify(raw)

        if method is InputMethod.STYLUS:
            if raw.phase is PointerPhase.DOWN:
                self._stylus_pointer = raw.pointer_id
            elif raw.phase in (PointerPhase.UP, PointerPhase.CANCEL) and raw.pointer_id == self._stylus_pointer:
                self._stylus_pointer = None
        elif self.palm_rejection and self._stylus_pointer is not None:
            trace(f"palm rejection: dropped {method.value} {raw.phase.value}", "INPUT")
            return None

        sample = PointerSample(
            point=Point(float(raw.x), float(raw.y)),
            input_method=method,
            pressure=raw.pressure,
            timestamp=raw.timestamp,
            phase=raw.phase,
        )
        self.last_sample = sample
        return sample

    def reset(self) -> None:
        """Forget the active stylus contact and the last sample."""
        self._stylus_pointer = None
        self.last_sample = None
