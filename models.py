"""
models.py

Data models, errors and constants for the FloorSketch line tool.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional


# ----------------------------
# Errors
# ----------------------------

class FloorSketchError(Exception):
    """Base class for all FloorSketch errors."""


class InvalidArgument(FloorSketchError, ValueError):
    """Raised when configuration or an argument is out of range."""


class CommitError(FloorSketchError):
    """Raised when the scene or history rejects a mutation."""


class TransactionError(FloorSketchError):
    """Raised when a transaction handle is used after it was closed."""


# ----------------------------
# Geometry value types
# ----------------------------

@dataclass(frozen=True)
class Point:
    """Immutable 2D scene coordinate."""
    x: float
    y: float

    def is_finite(self) -> bool:
        return math.isfinite(self.x) and math.isfinite(self.y)


@dataclass(frozen=True)
class Line:
    """A straight line entity, either in-progress or committed.

    ``start`` never changes once a drag has begun; use ``with_end()`` to
    produce the next draft while dragging.
    """
    start: Point
    end: Point
    thickness: float = 2.0
    color: str = "#000000"

    @property
    def length(self) -> float:
        return math.hypot(self.end.x - self.start.x, self.end.y - self.start.y)

    def with_end(self, end: Point) -> "Line":
        return replace(self, end=end)

    def is_finite(self) -> bool:
        return self.start.is_finite() and self.end.is_finite() and math.isfinite(self.length)


# ----------------------------
# Input model
# ----------------------------

class InputMethod(str, Enum):
    """Classified pointer input modality."""
    MOUSE = "mouse"
    TOUCH = "touch"
    STYLUS = "stylus"


class PointerPhase(str, Enum):
    """Phase of a pointer event."""
    DOWN = "down"
    MOVE = "move"
    UP = "up"
    CANCEL = "cancel"


@dataclass(frozen=True)
class RawPointerEvent:
    """Platform pointer event already mapped into scene coordinates.

    ``pointer_type`` mirrors the platform's own hint ("mouse", "touch",
    "pen") when one exists; ``touch_count`` is the number of simultaneous
    touch points reported with the event.
    """
    x: float
    y: float
    phase: PointerPhase
    pointer_id: int = 0
    pointer_type: Optional[str] = None
    pressure: Optional[float] = None
    touch_count: int = 0
    timestamp: float = 0.0


@dataclass(frozen=True)
class PointerSample:
    """Normalized input event consumed by tools."""
    point: Point
    input_method: InputMethod = InputMethod.MOUSE
    pressure: Optional[float] = None
    timestamp: float = 0.0
    phase: PointerPhase = PointerPhase.MOVE


# ----------------------------
# Tool state
# ----------------------------

class ToolState(str, Enum):
    """Line tool states."""
    IDLE = "idle"
    ARMED = "armed"
    DRAWING = "drawing"


@dataclass(frozen=True)
class GridConfig:
    """Grid configuration read by the line tool at drag start."""
    enabled: bool = True
    spacing: float = 10.0

    def __post_init__(self):
        if not isinstance(self.spacing, (int, float)) or not math.isfinite(self.spacing) or self.spacing <= 0:
            raise InvalidArgument(f"grid spacing must be a positive number, got {self.spacing!r}")


@dataclass(frozen=True)
class SnapState:
    """Derived snapping flags for the current draft. Never persisted."""
    grid_snapped: bool = False
    angle_snapped: bool = False
    snapped_angle_degrees: Optional[float] = None


@dataclass
class ToolSession:
    """Transient state of one line tool activation."""
    active: bool = False
    drawing: bool = False
    start_point: Optional[Point] = None
    current_line: Optional[Line] = None
    input_method: InputMethod = InputMethod.MOUSE
    grid: GridConfig = field(default_factory=GridConfig)
    constrain_angle: bool = False
    snap_state: SnapState = field(default_factory=SnapState)


@dataclass(frozen=True)
class MeasurementReading:
    """Live measurement derived from the draft line."""
    distance: float
    angle_degrees: float
    is_grid_snapped: bool
    is_angle_snapped: bool
    unit: str
    pixel_length: float = 0.0
    midpoint: Optional[Point] = None
    nearest_standard_angle: Optional[float] = None


@dataclass(frozen=True)
class Diagnostic:
    """Non-fatal condition surfaced to observers."""
    code: str
    message: str
    error: Optional[BaseException] = field(default=None, compare=False)
    context: Any = field(default=None, compare=False)


# ----------------------------
# Drawing mode constants
# ----------------------------

class Mode:
    """Tool mode constants for the canvas."""
    SELECT = "select"
    LINE = "line"


# ----------------------------
# Graphics item constants
# ----------------------------

ANN_ID_KEY = 1  # QGraphicsItem.data key for primitive id

# Floating point comparison tolerance. Default: 0.0001
FLOAT_TOLERANCE = 1e-4
