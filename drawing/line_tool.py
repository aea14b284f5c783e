"""
drawing/line_tool.py

Straight line tool: Idle -> Armed -> Drawing -> Armed.

The tool keeps its draft in a ToolSession and touches the scene exactly
once per line, inside a history transaction on pointer-up. Rendering of the
draft, measurement display and telemetry hang off LineToolObserver hooks.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Callable, List, Optional

from models import (
    CommitError,
    Diagnostic,
    GridConfig,
    InputMethod,
    InvalidArgument,
    Line,
    MeasurementReading,
    Point,
    PointerPhase,
    PointerSample,
    SnapState,
    ToolSession,
    ToolState,
)
from drawing.geometry import angle_degrees
from drawing.input import pressure_adjusted_thickness
from drawing.history import AddLineMutation, HistoryCoordinator, PrimitiveId, SceneMutator
from drawing.measurement import MeasurementFeedback
from drawing.snapping import (
    STANDARD_ANGLE_INCREMENT,
    snap_angle,
    snap_line_to_standard_angles,
    snap_to_grid,
)
from debug_trace import trace, trace_exception

log = logging.getLogger(__name__)

TOOL_NAME = "line"


@dataclass(frozen=True)
class LineToolConfig:
    """Line appearance and acceptance rules.

    Defaults:
        thickness: 2.0
        color: "#000000"
        min_length: 2.0
        angle_increment: 45.0
    """
    thickness: float = 2.0
    color: str = "#000000"
    min_length: float = 2.0
    angle_increment: float = STANDARD_ANGLE_INCREMENT

    def __post_init__(self):
        if not math.isfinite(self.thickness) or self.thickness <= 0:
            raise InvalidArgument(f"line thickness must be positive, got {self.thickness!r}")
        if not math.isfinite(self.min_length) or self.min_length < 0:
            raise InvalidArgument(f"minimum line length must be >= 0, got {self.min_length!r}")
        if not math.isfinite(self.angle_increment) or self.angle_increment <= 0:
            raise InvalidArgument(f"angle increment must be positive, got {self.angle_increment!r}")

    @classmethod
    def from_settings(cls, settings) -> "LineToolConfig":
        lines = settings.canvas.lines
        return cls(lines.default_thickness, lines.default_color, lines.min_length, lines.angle_increment)


class LineToolObserver:
    """Hooks invoked by LineTool. Override the ones you need."""

    def on_state_changed(self, tool: "LineTool", old: ToolState, new: ToolState) -> None:
        pass

    def on_tool_switched(self, tool: "LineTool", target: str) -> None:
        pass

    def on_preview_changed(self, tool: "LineTool", line: Optional[Line]) -> None:
        pass

    def on_measurement(self, tool: "LineTool", reading: Optional[MeasurementReading]) -> None:
        pass

    def on_committed(self, tool: "LineTool", line: Line, primitive_id: PrimitiveId) -> None:
        pass

    def on_discarded(self, tool: "LineTool", line: Optional[Line], reason: str) -> None:
        pass

    def on_cancelled(self, tool: "LineTool", line: Optional[Line]) -> None:
        pass

    def on_diagnostic(self, tool: "LineTool", diagnostic: Diagnostic) -> None:
        pass


class LineTool:
    """State machine for drawing straight lines.

    Args:
        scene: Where committed lines are inserted.
        history: Transaction boundary for the insertion.
        config: Appearance and acceptance rules.
        grid_source: Returns the grid configuration; read at drag start.
        measurement: Optional live measurement feedback.
    """

    def __init__(self, scene: SceneMutator, history: HistoryCoordinator,
                 config: Optional[LineToolConfig] = None,
                 grid_source: Optional[Callable[[], GridConfig]] = None,
                 measurement: Optional[MeasurementFeedback] = None):
        self.scene = scene
        self.history = history
        self.config = config or LineToolConfig()
        self.grid_source = grid_source or GridConfig
        self.measurement = measurement
        self.state = ToolState.IDLE
        self.session: Optional[ToolSession] = None
        self.grid_snap_enabled = True
        self.angle_lock = False
        self._observers: List[LineToolObserver] = []

    # ---- observers ----

    def add_observer(self, observer: LineToolObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def remove_observer(self, observer: LineToolObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def _emit(self, hook: str, *args) -> None:
        for observer in list(self._observers):
            getattr(observer, hook)(self, *args)

    def _set_state(self, new: ToolState) -> None:
        old = self.state
        if old is new:
            return
        self.state = new
        trace(f"line tool {old.value} -> {new.value}", "LINE")
        self._emit("on_state_changed", old, new)

    # ---- read-only views ----

    @property
    def is_drawing(self) -> bool:
        return self.state is ToolState.DRAWING

    @property
    def current_line(self) -> Optional[Line]:
        return self.session.current_line if self.session else None

    @property
    def snap_state(self) -> SnapState:
        return self.session.snap_state if self.session else SnapState()

    # ---- activation ----

    def activate(self) -> None:
        """Idle -> Armed. Does nothing when already active."""
        if self.state is not ToolState.IDLE:
            return
        self.session = ToolSession(active=True)
        self._set_state(ToolState.ARMED)

    def deactivate(self) -> None:
        """Armed -> Idle, cancelling any drag in progress first."""
        if self.state is ToolState.IDLE:
            return
        if self.state is ToolState.DRAWING:
            self.cancel()
        self.session = None
        self._set_state(ToolState.IDLE)

    def switch_tool(self, target: str) -> None:
        """Another tool was selected; never leaves a half-drawn line behind."""
        trace(f"tool switch to {target!r} (drawing={self.is_drawing})", "LINE")
        self._emit("on_tool_switched", target)
        if target == TOOL_NAME:
            self.activate()
        else:
            self.deactivate()

    def toggle_grid_snap(self) -> bool:
        """Flip grid snapping; takes effect on the next drag."""
        self.grid_snap_enabled = not self.grid_snap_enabled
        return self.grid_snap_enabled

    def toggle_angle_lock(self) -> bool:
        """Flip the persistent angle constraint."""
        self.angle_lock = not self.angle_lock
        return self.angle_lock

    # ---- pointer handling ----

    def handle_sample(self, sample: PointerSample, constrain_angle: bool = False):
        """Dispatch a normalized sample according to its phase."""
        if sample.phase is PointerPhase.DOWN:
            return self.pointer_down(sample)
        if sample.phase is PointerPhase.MOVE:
            return self.pointer_move(sample, constrain_angle)
        if sample.phase is PointerPhase.UP:
            return self.pointer_up(sample, constrain_angle)
        return self.cancel()

    def pointer_down(self, sample: PointerSample) -> bool:
        """Armed -> Drawing. Returns True when a drag started."""
        if self.state is ToolState.DRAWING:
            log.debug("ignoring duplicate pointer down while drawing")
            return False
        if self.state is not ToolState.ARMED:
            return False
        if not sample.point.is_finite():
            log.debug("dropping non-finite pointer down %r", sample.point)
            return False

        grid = self.grid_source()
        snap_grid = grid.enabled and self.grid_snap_enabled
        start = snap_to_grid(sample.point, grid.spacing) if snap_grid else sample.point

        self.session = ToolSession(
            active=True,
            drawing=True,
            start_point=start,
            current_line=Line(start, start, self._thickness_for(sample), self.config.color),
            input_method=sample.input_method,
            grid=GridConfig(snap_grid, grid.spacing),
            snap_state=SnapState(grid_snapped=snap_grid),
        )
        if self.measurement is not None:
            # The previous line's reading may still be decaying
            self.measurement.clear()
            self._emit("on_measurement", None)
        trace(f"pointer down at ({start.x:.2f}, {start.y:.2f}) via {sample.input_method.value}", "LINE")
        self._set_state(ToolState.DRAWING)
        self._emit("on_preview_changed", self.session.current_line)
        return True

    def pointer_move(self, sample: PointerSample, constrain_angle: bool = False) -> Optional[Line]:
        """Update the draft's end point. Returns the draft line."""
        if self.state is not ToolState.DRAWING:
            return None
        session = self.session
        if not sample.point.is_finite():
            log.debug("dropping non-finite pointer move %r", sample.point)
            return session.current_line
        session.constrain_angle = constrain_angle
        trace(f"pointer move ({sample.point.x:.2f}, {sample.point.y:.2f})", "MOVE")
        self._update_end(sample.point, self._thickness_for(sample))
        return session.current_line

    def pointer_up(self, sample: PointerSample, constrain_angle: Optional[bool] = None) -> Optional[PrimitiveId]:
        """Drawing -> Armed, committing the line when it is long enough.

        Returns:
            The id of the inserted primitive, or ``None`` when nothing was
            committed.
        """
        if self.state is not ToolState.DRAWING:
            return None
        session = self.session
        if constrain_angle is not None:
            session.constrain_angle = constrain_angle
        if sample.point.is_finite():
            self._update_end(sample.point)
        else:
            log.debug("non-finite pointer up %r, keeping last end point", sample.point)

        line = session.current_line
        self._end_drag()

        if line is None or not line.is_finite() or line.length < self.config.min_length or line.length == 0:
            reason = "non-finite" if line is None or not line.is_finite() else "too-short"
            trace(f"discarding line ({reason})", "LINE")
            self._emit("on_discarded", line, reason)
            return None

        handle = self.history.begin_transaction("Add line")
        try:
            primitive_id = self.history.commit(handle, AddLineMutation(self.scene, line))
        except CommitError as e:
            trace_exception("line commit failed")
            self.history.rollback(handle)
            self._emit("on_diagnostic", Diagnostic("commit-failed", str(e), e, line))
            return None

        trace(f"committed line {primitive_id!r} length={line.length:.2f}", "LINE")
        self._emit("on_committed", line, primitive_id)
        return primitive_id

    def cancel(self) -> bool:
        """Drop the draft without touching the scene.

        Returns:
            True if a drag was in progress.
        """
        if self.state is not ToolState.DRAWING:
            return False
        line = self.session.current_line
        self._end_drag()
        trace("line drawing cancelled", "LINE")
        self._emit("on_cancelled", line)
        return True

    # ---- internals ----

    def _thickness_for(self, sample: PointerSample) -> float:
        if sample.input_method is InputMethod.STYLUS:
            return pressure_adjusted_thickness(self.config.thickness, sample.pressure)
        return self.config.thickness

    def _update_end(self, raw: Point, thickness: Optional[float] = None) -> None:
        session = self.session
        try:
            end, snap_state = self._constrained_end(session, raw)
            line = session.current_line.with_end(end)
            if thickness is not None:
                line = replace(line, thickness=thickness)
            reading = None
            if self.measurement is not None:
                reading = self.measurement.update(session.start_point, end, snap_state)
        except Exception as e:
            # Keep the last good end point and carry on with the drag
            trace_exception("snap/measurement failed")
            self._emit("on_diagnostic", Diagnostic("snap-failed", str(e), e, raw))
            return
        session.current_line = line
        session.snap_state = snap_state
        self._emit("on_preview_changed", line)
        if reading is not None:
            self._emit("on_measurement", reading)

    def _constrained_end(self, session: ToolSession, raw: Point):
        start = session.start_point
        candidate = snap_to_grid(raw, session.grid.spacing) if session.grid.enabled else raw
        angle_snapped = session.constrain_angle or self.angle_lock
        snapped_angle = None
        if angle_snapped:
            candidate = snap_line_to_standard_angles(start, candidate, self.config.angle_increment)
            if candidate != start:
                snapped_angle = snap_angle(angle_degrees(start, candidate), self.config.angle_increment)
        if not candidate.is_finite():
            raise ArithmeticError(f"constrained end point is not finite: {candidate!r}")
        return candidate, SnapState(session.grid.enabled, angle_snapped, snapped_angle)

    def _end_drag(self) -> None:
        self.session = ToolSession(active=True, input_method=self.session.input_method)
        self._set_state(ToolState.ARMED)
        self._emit("on_preview_changed", None)
        if self.measurement is not None:
            self.measurement.finish()
