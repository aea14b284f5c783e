"""
canvas/mixins.py

Mixin classes for graphics items providing primitive id linking and line styling.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QColor
from PyQt6.QtWidgets import QGraphicsItem

from models import Line
from utils import qcolor_to_hex, hex_to_qcolor


class LinkedMixin:
    """
    Mixin that links a graphics item to the primitive id handed out by the scene.
    """

    def __init__(self, primitive_id: str, on_change: Optional[Callable[[QGraphicsItem], None]]):
        self.primitive_id = primitive_id
        self.on_change = on_change

    def _notify_changed(self):
        """Notify that this item has changed."""
        if self.on_change:
            self.on_change(self)


class MetaMixin:
    """
    Mixin that adds stroke styling to line items.

    Provides:
      - pen_color / pen_width
      - style dict round-trip for the item's record
    """

    def __init__(self):
        self.kind = "unknown"
        self.pen_color = QColor(Qt.GlobalColor.black)
        self.pen_width = 2.0

    def apply_line_style(self, line: Line) -> None:
        """Take thickness and colour from a Line."""
        self.pen_color = hex_to_qcolor(line.color, self.pen_color)
        self.pen_width = float(line.thickness)

    def _style_dict(self) -> Dict[str, Any]:
        """Get style as dict for serialization."""
        return {
            "style": {
                "pen": {
                    "color": qcolor_to_hex(self.pen_color),
                    "width": round(self.pen_width, 2),
                },
            },
        }
