"""
utils.py

Conversions between FloorSketch value types and Qt types.
"""

from __future__ import annotations

from PyQt6.QtCore import QLineF, QPointF
from PyQt6.QtGui import QColor

from models import Line, Point


def qcolor_to_hex(c: QColor, include_alpha: bool = False) -> str:
    """
    Convert a QColor to a hex string.

    Args:
        c: The QColor to convert
        include_alpha: If True, include alpha channel as 4th byte

    Returns:
        Hex string like "#RRGGBB" or "#RRGGBBAA"
    """
    if include_alpha:
        return "#{:02X}{:02X}{:02X}{:02X}".format(c.red(), c.green(), c.blue(), c.alpha())
    return "#{:02X}{:02X}{:02X}".format(c.red(), c.green(), c.blue())


def hex_to_qcolor(s: str, fallback: QColor) -> QColor:
    """
    Parse a hex string to a QColor.

    Args:
        s: Hex string like "#RRGGBB" or "#RRGGBBAA"
        fallback: Color to return if parsing fails

    Returns:
        Parsed QColor or fallback
    """
    if not s:
        return QColor(fallback)
    s = s.strip()
    if s.startswith("#"):
        s = s[1:]
    try:
        if len(s) == 6:
            return QColor(int(s[0:2], 16), int(s[2:4], 16), int(s[4:6], 16))
        if len(s) == 8:
            return QColor(int(s[0:2], 16), int(s[2:4], 16), int(s[4:6], 16), int(s[6:8], 16))
    except ValueError:
        pass
    return QColor(fallback)


def to_qpointf(p: Point) -> QPointF:
    return QPointF(p.x, p.y)


def to_qlinef(line: Line) -> QLineF:
    """Scene-coordinate QLineF for a Line."""
    return QLineF(line.start.x, line.start.y, line.end.x, line.end.y)
