"""
drawing/geometry.py

Pure geometry helpers on scene points.
"""

from __future__ import annotations

import math

from models import FLOAT_TOLERANCE, Point


def distance(a: Point, b: Point) -> float:
    """Euclidean distance between two points."""
    dx = b.x - a.x
    dy = b.y - a.y
    return math.sqrt(dx * dx + dy * dy)


def midpoint(a: Point, b: Point) -> Point:
    """Point halfway between *a* and *b*."""
    return Point((a.x + b.x) / 2, (a.y + b.y) / 2)


def normalize_angle(degrees: float) -> float:
    """Fold an angle in degrees into ``[0, 360)``."""
    folded = math.fmod(degrees, 360.0)
    if folded < 0:
        folded += 360.0
    # fmod of a tiny negative value can land exactly on 360 after the shift
    if folded >= 360.0:
        folded -= 360.0
    return folded


def angle_degrees(a: Point, b: Point) -> float:
    """Direction from *a* to *b* in degrees, normalized to ``[0, 360)``.

    Uses scene coordinates as given, so with a y-down canvas a positive
    angle turns clockwise on screen.
    """
    return normalize_angle(math.degrees(math.atan2(b.y - a.y, b.x - a.x)))


_HALF_SQRT2 = math.sqrt(0.5)

# Exact unit vectors for the eight 45-degree directions; cos/sin leave
# residue like 6e-17 on the axes and unequal components on the diagonals.
_COMPASS = (
    (1.0, 0.0),
    (_HALF_SQRT2, _HALF_SQRT2),
    (0.0, 1.0),
    (-_HALF_SQRT2, _HALF_SQRT2),
    (-1.0, 0.0),
    (-_HALF_SQRT2, -_HALF_SQRT2),
    (0.0, -1.0),
    (_HALF_SQRT2, -_HALF_SQRT2),
)


def point_at(origin: Point, length: float, degrees: float) -> Point:
    """Point at *length* from *origin* along the direction *degrees*."""
    steps = degrees / 45.0
    if steps.is_integer():
        ux, uy = _COMPASS[int(steps) % 8]
    else:
        radians = math.radians(degrees)
        ux, uy = math.cos(radians), math.sin(radians)
    return Point(origin.x + length * ux, origin.y + length * uy)


def points_close(a: Point, b: Point, tolerance: float = FLOAT_TOLERANCE) -> bool:
    """True when both coordinates differ by at most *tolerance*."""
    return abs(a.x - b.x) <= tolerance and abs(a.y - b.y) <= tolerance
