"""
canvas/view.py

QGraphicsView with wheel zoom and stylus/touch forwarding to the scene.
"""

from __future__ import annotations

from PyQt6.QtCore import QEvent, QRectF, Qt
from PyQt6.QtGui import QPainter, QPointingDevice
from PyQt6.QtWidgets import QGraphicsView

from models import PointerPhase, RawPointerEvent
from canvas.scene import AnnotatorScene
from settings import get_settings

_TABLET_PHASES = {
    QEvent.Type.TabletPress: PointerPhase.DOWN,
    QEvent.Type.TabletMove: PointerPhase.MOVE,
    QEvent.Type.TabletRelease: PointerPhase.UP,
}

_TOUCH_PHASES = {
    QEvent.Type.TouchBegin: PointerPhase.DOWN,
    QEvent.Type.TouchUpdate: PointerPhase.MOVE,
    QEvent.Type.TouchEnd: PointerPhase.UP,
    QEvent.Type.TouchCancel: PointerPhase.CANCEL,
}


class AnnotatorView(QGraphicsView):
    """
    Graphics view for the floor plan canvas.

    Mouse input reaches the scene through the normal QGraphicsScene event
    path. Tablet and touch events are mapped to scene coordinates here and
    handed to AnnotatorScene.handle_raw_event so the scene sees every pointer
    kind in the same form.
    """

    def __init__(self, scene: AnnotatorScene, parent=None):
        super().__init__(scene, parent)
        self.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        self.setDragMode(QGraphicsView.DragMode.RubberBandDrag)
        self.setTransformationAnchor(QGraphicsView.ViewportAnchor.AnchorUnderMouse)
        self.viewport().setAttribute(Qt.WidgetAttribute.WA_AcceptTouchEvents, True)

    def annotator_scene(self) -> AnnotatorScene:
        return self.scene()

    def wheelEvent(self, event):
        """Zoom with mouse wheel."""
        delta = event.angleDelta().y()
        if delta == 0:
            return
        # Zoom factor from settings. Default: 1.15 (15% per scroll step)
        zoom_factor = get_settings().settings.canvas.zoom.wheel_factor
        factor = zoom_factor if delta > 0 else 1 / zoom_factor
        self.scale(factor, factor)

    def tabletEvent(self, event):
        """Forward pen input; anything else falls back to synthesized mouse events."""
        phase = _TABLET_PHASES.get(event.type())
        if phase is None or not self.annotator_scene().drawing_active() or event.pointerType() not in (
                QPointingDevice.PointerType.Pen, QPointingDevice.PointerType.Eraser):
            event.ignore()
            return

        sp = self.mapToScene(event.position().toPoint())
        device = event.pointingDevice()
        raw = RawPointerEvent(
            sp.x(),
            sp.y(),
            phase,
            pointer_id=int(device.systemId()) if device is not None else 0,
            pointer_type="pen",
            pressure=float(event.pressure()),
            timestamp=event.timestamp() / 1000.0,
        )
        constrain = bool(event.modifiers() & Qt.KeyboardModifier.ShiftModifier)
        self.annotator_scene().handle_raw_event(raw, constrain)
        event.accept()

    def viewportEvent(self, event):
        phase = _TOUCH_PHASES.get(event.type())
        if phase is None:
            return super().viewportEvent(event)

        scene = self.annotator_scene()
        if not scene.drawing_active():
            # Let Qt synthesize mouse events for selection and rubber-band drags
            return super().viewportEvent(event)

        points = event.points()
        if not points and phase is not PointerPhase.CANCEL:
            return super().viewportEvent(event)

        if points:
            primary = points[0]
            sp = self.mapToScene(primary.position().toPoint())
            x, y, pointer_id = sp.x(), sp.y(), primary.id()
        else:
            last = scene.normalizer.last_sample
            x, y, pointer_id = (last.point.x, last.point.y, 0) if last is not None else (0.0, 0.0, 0)

        # Qt already names the device, so pressure is not passed for touch
        raw = RawPointerEvent(
            x,
            y,
            phase,
            pointer_id=pointer_id,
            pointer_type="touch",
            touch_count=len(points),
            timestamp=event.timestamp() / 1000.0,
        )
        constrain = bool(event.modifiers() & Qt.KeyboardModifier.ShiftModifier)
        scene.handle_raw_event(raw, constrain)
        event.accept()
        return True

    def _content_rect(self) -> QRectF:
        rect = QRectF()
        for item in self.annotator_scene().primitives():
            rect = rect.united(item.sceneBoundingRect())
        return rect

    def zoom_fit(self):
        """Zoom to fit all committed lines in the view."""
        scene_rect = self._content_rect()
        if scene_rect.isNull() or scene_rect.isEmpty():
            # If no items, try scene rect
            scene_rect = self.scene().sceneRect()
        if not scene_rect.isNull() and not scene_rect.isEmpty():
            # Add small margin
            margin = 20
            scene_rect = scene_rect.adjusted(-margin, -margin, margin, margin)
            self.fitInView(scene_rect, Qt.AspectRatioMode.KeepAspectRatio)

    def zoom_reset(self):
        """Reset zoom to 100% (1:1 scale)."""
        self.resetTransform()

    def zoom_in(self):
        """Zoom in by the configured factor."""
        zoom_factor = get_settings().settings.canvas.zoom.wheel_factor
        self.scale(zoom_factor, zoom_factor)

    def zoom_out(self):
        """Zoom out by the configured factor."""
        zoom_factor = get_settings().settings.canvas.zoom.wheel_factor
        self.scale(1 / zoom_factor, 1 / zoom_factor)
