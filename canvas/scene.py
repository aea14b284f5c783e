"""
canvas/scene.py

QGraphicsScene hosting committed line primitives and the line tool.

Pointer events arriving here (mouse from the scene, tablet and touch
forwarded by the view) are turned into RawPointerEvents, classified by the
InputNormalizer and handed to the LineTool.
"""

from __future__ import annotations

import itertools
import math
from typing import Callable, Dict, List, Optional

from PyQt6.QtCore import Qt, QLineF, QRectF, QTimer
from PyQt6.QtGui import QColor, QPen
from PyQt6.QtWidgets import QGraphicsItem, QGraphicsScene, QGraphicsView

from models import Line, Mode, PointerPhase, RawPointerEvent
from canvas.items import LinePreviewItem, MeasurementLabelItem, MetaLineItem
from drawing.history import HistoryCoordinator, PrimitiveId, SceneMutator
from drawing.input import InputNormalizer
from drawing.line_tool import LineTool, LineToolConfig, LineToolObserver
from drawing.measurement import MeasurementFeedback
from debug_trace import trace
from settings import get_settings

# Below this many device pixels between grid lines only major lines are drawn
_MIN_GRID_PIXELS = 4.0


def _get_z_index_base() -> int:
    """Get z-index base from settings. Default: 1000."""
    return get_settings().settings.canvas.zorder.base


def _get_z_index_step() -> int:
    """Get z-index step from settings. Default: 10."""
    return get_settings().settings.canvas.zorder.step


class _SceneRenderer(LineToolObserver):
    """Mirrors the line tool's draft into the scene's overlay items."""

    def __init__(self, scene: "AnnotatorScene"):
        self.scene = scene

    def on_preview_changed(self, tool, line):
        self.scene.preview_item.show_line(line)
        if line is None:
            self.scene._schedule_measurement_refresh()

    def on_measurement(self, tool, reading):
        if reading is None:
            self.scene._measurement_timer.stop()
        self.scene.measurement_item.show_reading(reading)

    def on_diagnostic(self, tool, diagnostic):
        trace(f"{diagnostic.code}: {diagnostic.message}", "SCENE")


class AnnotatorScene(QGraphicsScene, SceneMutator):
    """
    Graphics scene with line drawing support.

    In Mode.LINE a left-button drag draws a line; holding Shift constrains
    it to standard angles. Escape cancels the drag, G toggles grid snapping
    and A toggles the persistent angle lock.
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self.mode = Mode.SELECT
        self.line_tool: Optional[LineTool] = None
        self.measurement: Optional[MeasurementFeedback] = None
        self.normalizer = InputNormalizer.from_settings(get_settings().settings)
        self._primitives: Dict[str, MetaLineItem] = {}
        self._ids = itertools.count(1)
        self._on_item_changed: Optional[Callable[[QGraphicsItem], None]] = None
        self._on_escape_key: Optional[Callable[[], None]] = None
        self._on_snap_toggled: Optional[Callable[[str, bool], None]] = None

        self.preview_item = LinePreviewItem()
        self.measurement_item = MeasurementLabelItem()
        self.addItem(self.preview_item)
        self.addItem(self.measurement_item)

        # Hides the measurement label once its decay has elapsed
        self._measurement_timer = QTimer(self)
        self._measurement_timer.setSingleShot(True)
        self._measurement_timer.timeout.connect(self._refresh_measurement)

    # ---- configuration ----

    def configure_line_tool(self, history: HistoryCoordinator,
                            metrics: Optional[LineToolObserver] = None) -> LineTool:
        """
        Create the line tool bound to this scene.

        Args:
            history: Transaction boundary for committed lines
            metrics: Optional extra observer (tool usage statistics)

        Returns:
            The configured LineTool
        """
        settings = get_settings().settings
        self.measurement = MeasurementFeedback.from_settings(settings)
        self.line_tool = LineTool(
            self,
            history,
            LineToolConfig.from_settings(settings),
            grid_source=lambda: get_settings().settings.grid_config(),
            measurement=self.measurement,
        )
        self.line_tool.add_observer(_SceneRenderer(self))
        if metrics is not None:
            self.line_tool.add_observer(metrics)
        if self.mode == Mode.LINE:
            self.line_tool.activate()
        return self.line_tool

    def set_item_changed_callback(self, callback: Optional[Callable[[QGraphicsItem], None]]):
        """Set callback for when a committed item moves."""
        self._on_item_changed = callback

    def set_escape_key_callback(self, callback: Optional[Callable[[], None]]):
        """Set callback for Escape with no drag in progress (used to leave line mode)."""
        self._on_escape_key = callback

    def set_snap_toggled_callback(self, callback: Optional[Callable[[str, bool], None]]):
        """Set callback for G / A toggles, called with ("grid" | "angle", enabled)."""
        self._on_snap_toggled = callback

    def set_mode(self, mode: str) -> None:
        """Set the current drawing mode."""
        trace(f"mode {self.mode!r} -> {mode!r}", "SCENE")
        self.mode = mode
        if self.line_tool is not None:
            self.line_tool.switch_tool(mode)
        for view in self.views():
            view.setDragMode(
                QGraphicsView.DragMode.NoDrag if mode == Mode.LINE else QGraphicsView.DragMode.RubberBandDrag)

    # ---- scene mutation API ----

    def add_primitive(self, line: Line) -> PrimitiveId:
        primitive_id = f"line-{next(self._ids)}"
        item = MetaLineItem(line, primitive_id, self._on_item_changed)
        self.addItem(item)
        item.setZValue(self._get_next_z_index())
        self._primitives[primitive_id] = item
        trace(f"added primitive {primitive_id}", "SCENE")
        return primitive_id

    def remove_primitive(self, primitive_id: PrimitiveId) -> None:
        item = self._primitives.pop(primitive_id, None)
        if item is None:
            raise KeyError(f"no primitive with id {primitive_id!r}")
        self.removeItem(item)
        trace(f"removed primitive {primitive_id}", "SCENE")

    def primitive_count(self) -> int:
        return len(self._primitives)

    def primitives(self) -> List[MetaLineItem]:
        """Committed line items in insertion order."""
        return list(self._primitives.values())

    def primitive(self, primitive_id: PrimitiveId) -> Optional[MetaLineItem]:
        return self._primitives.get(primitive_id)

    def _get_next_z_index(self) -> float:
        """Get the next z-index for a new item (higher than all existing items)."""
        if not self._primitives:
            return _get_z_index_base()
        max_z = max(i.zValue() for i in self._primitives.values())
        return max_z + _get_z_index_step()

    # ---- pointer input ----

    def handle_raw_event(self, raw: RawPointerEvent, constrain_angle: bool = False):
        """Normalize *raw* and route it to the active tool.

        Returns whatever the tool returns for the sample, or ``None`` when
        the event was dropped or no drawing tool is active.
        """
        sample = self.normalizer.normalize(raw)
        if sample is None or not self.drawing_active():
            return None
        return self.line_tool.handle_sample(sample, constrain_angle)

    def drawing_active(self) -> bool:
        """True when pointer input should go to the line tool."""
        return self.mode == Mode.LINE and self.line_tool is not None

    def _raw_from_mouse(self, event, phase: PointerPhase) -> RawPointerEvent:
        sp = event.scenePos()
        return RawPointerEvent(sp.x(), sp.y(), phase, pointer_type="mouse")

    @staticmethod
    def _shift_held(event) -> bool:
        return bool(event.modifiers() & Qt.KeyboardModifier.ShiftModifier)

    def _drawing_mouse(self, event) -> bool:
        # Mouse events synthesized from touch/tablet already reached the tool via the view
        return self.drawing_active() and event.source() == Qt.MouseEventSource.MouseEventNotSynthesized

    def keyPressEvent(self, event):
        """Handle key press events."""
        tool = self.line_tool
        if event.key() == Qt.Key.Key_Escape:
            if tool is not None and tool.cancel():
                event.accept()
                return
            if self._on_escape_key:
                self._on_escape_key()
                event.accept()
                return
        if tool is not None and self.mode == Mode.LINE and not event.modifiers():
            if event.key() in (Qt.Key.Key_G, Qt.Key.Key_A) and event.isAutoRepeat():
                # Holding the key toggles once
                event.accept()
                return
            if event.key() == Qt.Key.Key_G:
                enabled = tool.toggle_grid_snap()
                trace(f"grid snap {'on' if enabled else 'off'}", "SCENE")
                if self._on_snap_toggled:
                    self._on_snap_toggled("grid", enabled)
                event.accept()
                return
            if event.key() == Qt.Key.Key_A:
                enabled = tool.toggle_angle_lock()
                trace(f"angle lock {'on' if enabled else 'off'}", "SCENE")
                if self._on_snap_toggled:
                    self._on_snap_toggled("angle", enabled)
                event.accept()
                return
        super().keyPressEvent(event)

    def mousePressEvent(self, event):
        if self._drawing_mouse(event):
            if event.button() == Qt.MouseButton.LeftButton:
                self.handle_raw_event(self._raw_from_mouse(event, PointerPhase.DOWN))
                event.accept()
                return
            if event.button() == Qt.MouseButton.RightButton and self.line_tool.is_drawing:
                self.handle_raw_event(self._raw_from_mouse(event, PointerPhase.CANCEL))
                event.accept()
                return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event):
        if self._drawing_mouse(event) and self.line_tool.is_drawing:
            self.handle_raw_event(self._raw_from_mouse(event, PointerPhase.MOVE), self._shift_held(event))
            event.accept()
            return
        super().mouseMoveEvent(event)

    def mouseReleaseEvent(self, event):
        if (self._drawing_mouse(event) and event.button() == Qt.MouseButton.LeftButton
                and self.line_tool.is_drawing):
            self.handle_raw_event(self._raw_from_mouse(event, PointerPhase.UP), self._shift_held(event))
            event.accept()
            return
        super().mouseReleaseEvent(event)

    # ---- measurement decay ----

    def _schedule_measurement_refresh(self) -> None:
        if self.measurement is None:
            return
        self._measurement_timer.start(self.measurement.decay_ms + 1)

    def _refresh_measurement(self) -> None:
        if self.measurement is None or (self.line_tool is not None and self.line_tool.is_drawing):
            return
        reading = self.measurement.current()
        self.measurement_item.show_reading(reading)
        if reading is not None:
            # Timer fired early; try again shortly
            self._measurement_timer.start(50)

    # ---- background grid ----

    def drawBackground(self, painter, rect: QRectF):
        super().drawBackground(painter, rect)
        grid = get_settings().settings.canvas.grid
        if not grid.enabled:
            return

        spacing = float(grid.spacing)
        scale = painter.worldTransform().m11() or 1.0
        major_every = max(1, int(grid.major_every))
        draw_minor = spacing * abs(scale) >= _MIN_GRID_PIXELS

        minor_pen = QPen(QColor(grid.minor_color), 0)
        major_pen = QPen(QColor(grid.major_color), 0)

        first_col = math.floor(rect.left() / spacing)
        last_col = math.ceil(rect.right() / spacing)
        first_row = math.floor(rect.top() / spacing)
        last_row = math.ceil(rect.bottom() / spacing)
        if not draw_minor and (last_col - first_col) / major_every > 2000:
            return

        minor: List[QLineF] = []
        major: List[QLineF] = []
        for col in range(first_col, last_col + 1):
            x = col * spacing
            target = major if col % major_every == 0 else minor
            if target is major or draw_minor:
                target.append(QLineF(x, rect.top(), x, rect.bottom()))
        for row in range(first_row, last_row + 1):
            y = row * spacing
            target = major if row % major_every == 0 else minor
            if target is major or draw_minor:
                target.append(QLineF(rect.left(), y, rect.right(), y))

        painter.save()
        if minor:
            painter.setPen(minor_pen)
            painter.drawLines(minor)
        if major:
            painter.setPen(major_pen)
            painter.drawLines(major)
        painter.restore()

    # ---- export ----

    def to_records(self) -> List[dict]:
        """Records of all committed primitives, in insertion order."""
        return [item.to_record() for item in self._primitives.values()]
