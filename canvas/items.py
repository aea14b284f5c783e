"""
canvas/items.py

Graphics items for the floor plan canvas: committed lines, the draft preview
and the measurement label.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from PyQt6.QtCore import Qt, QLineF, QRectF
from PyQt6.QtGui import QBrush, QColor, QFont, QPainter, QPen
from PyQt6.QtWidgets import QGraphicsItem, QGraphicsLineItem, QGraphicsSimpleTextItem

from models import ANN_ID_KEY, Line, MeasurementReading, Point
from canvas.mixins import LinkedMixin, MetaMixin
from drawing.measurement import format_reading
from settings import get_settings
from utils import qcolor_to_hex, to_qlinef, to_qpointf

# Overlay items sit above every committed primitive
OVERLAY_Z = 999999


def round2(value: float) -> float:
    """Round a value to 2 decimal place precision for geometry."""
    return round(value, 2)


class MetaLineItem(QGraphicsLineItem, MetaMixin, LinkedMixin):
    """Committed straight line primitive.

    The item is positioned at the line's start and holds its geometry in
    local coordinates starting at (0, 0).
    """

    def __init__(self, line: Line, primitive_id: str, on_change=None):
        QGraphicsLineItem.__init__(
            self, QLineF(0, 0, line.end.x - line.start.x, line.end.y - line.start.y))
        MetaMixin.__init__(self)
        LinkedMixin.__init__(self, primitive_id, on_change)

        self.kind = "line"
        self.setPos(to_qpointf(line.start))
        self.setData(ANN_ID_KEY, primitive_id)
        self.setFlags(
            QGraphicsItem.GraphicsItemFlag.ItemIsSelectable
            | QGraphicsItem.GraphicsItemFlag.ItemSendsGeometryChanges
        )
        self.apply_line_style(line)
        self._apply_pen()

    def _apply_pen(self):
        pen = QPen(self.pen_color, self.pen_width)
        pen.setCapStyle(Qt.PenCapStyle.RoundCap)
        self.setPen(pen)

    def to_line(self) -> Line:
        """The primitive as a scene-coordinate Line."""
        ln = self.line()
        p = self.pos()
        return Line(
            Point(p.x() + ln.x1(), p.y() + ln.y1()),
            Point(p.x() + ln.x2(), p.y() + ln.y2()),
            self.pen_width,
            qcolor_to_hex(self.pen_color),
        )

    def itemChange(self, change, value):
        if change == QGraphicsItem.GraphicsItemChange.ItemPositionHasChanged:
            self._notify_changed()
        return super().itemChange(change, value)

    def to_record(self) -> Dict[str, Any]:
        line = self.to_line()
        rec = {
            "id": self.primitive_id,
            "kind": self.kind,
            "geom": {
                "x1": round2(line.start.x),
                "y1": round2(line.start.y),
                "x2": round2(line.end.x),
                "y2": round2(line.end.y),
            },
        }
        rec.update(self._style_dict())
        return rec


class LinePreviewItem(QGraphicsLineItem):
    """Dashed rubber-band line shown while dragging. Not selectable."""

    def __init__(self, parent=None):
        super().__init__(parent)
        lines = get_settings().settings.canvas.lines
        pen = QPen(QColor(lines.preview_color), lines.default_thickness, Qt.PenStyle.DashLine)
        pen.setCosmetic(True)
        self.setPen(pen)
        self.setZValue(OVERLAY_Z)
        self.setVisible(False)

    def show_line(self, line: Optional[Line]) -> None:
        if line is None:
            self.setVisible(False)
            return
        pen = self.pen()
        pen.setWidthF(line.thickness)
        self.setPen(pen)
        self.setLine(to_qlinef(line))
        self.setVisible(True)


class MeasurementLabelItem(QGraphicsSimpleTextItem):
    """Distance/angle readout drawn at the draft line's midpoint."""

    PADDING = 4

    def __init__(self, parent=None):
        super().__init__(parent)
        font = QFont()
        font.setPointSize(10)
        self.setFont(font)
        self.setZValue(OVERLAY_Z + 1)
        self.setFlag(QGraphicsItem.GraphicsItemFlag.ItemIgnoresTransformations, True)
        self._snapped = False
        self.setVisible(False)

    def show_reading(self, reading: Optional[MeasurementReading]) -> None:
        if reading is None:
            self.setVisible(False)
            return
        precision = get_settings().settings.measurement.precision
        self.setText(format_reading(reading, precision))
        # Green when on a standard angle, like the angle tag in the toolbar
        self._snapped = reading.is_angle_snapped or reading.nearest_standard_angle is not None
        self.setBrush(QBrush(QColor("#15803D") if self._snapped else QColor("#374151")))
        if reading.midpoint is not None:
            self.setPos(to_qpointf(reading.midpoint))
        self.setVisible(True)

    def boundingRect(self) -> QRectF:
        return super().boundingRect().adjusted(-self.PADDING, -self.PADDING, self.PADDING, self.PADDING)

    def paint(self, painter: QPainter, option, widget=None):
        painter.setPen(QPen(QColor("#D1D5DB"), 1))
        painter.setBrush(QBrush(QColor(255, 255, 255, 220)))
        painter.drawRoundedRect(self.boundingRect(), 3, 3)
        super().paint(painter, option, widget)
