"""Tests for the line tool state machine (drawing/line_tool.py).

Uses an in-memory scene and the CommandStackHistory so no Qt objects are
involved.
"""
from __future__ import annotations

import pytest

from models import (
    GridConfig,
    InputMethod,
    InvalidArgument,
    Line,
    Point,
    PointerPhase,
    PointerSample,
    ToolState,
)
from drawing.geometry import angle_degrees
from drawing.history import CommandStackHistory, SceneMutator
from drawing.line_tool import LineTool, LineToolConfig, LineToolObserver
from drawing.measurement import MeasurementFeedback


class FakeScene(SceneMutator):
    def __init__(self):
        self.lines = {}
        self.add_calls = 0
        self.fail_next_add = False
        self._n = 0

    def add_primitive(self, line):
        self.add_calls += 1
        if self.fail_next_add:
            self.fail_next_add = False
            raise RuntimeError("scene is read-only")
        self._n += 1
        pid = f"p{self._n}"
        self.lines[pid] = line
        return pid

    def remove_primitive(self, primitive_id):
        del self.lines[primitive_id]

    def primitive_count(self):
        return len(self.lines)


class CountingHistory(CommandStackHistory):
    def __init__(self):
        super().__init__()
        self.begun = 0
        self.commits = 0
        self.rollbacks = 0

    def begin_transaction(self, label="Edit"):
        self.begun += 1
        return super().begin_transaction(label)

    def commit(self, handle, mutation):
        result = super().commit(handle, mutation)
        self.commits += 1
        return result

    def rollback(self, handle):
        self.rollbacks += 1
        super().rollback(handle)


class Recorder(LineToolObserver):
    def __init__(self):
        self.events = []

    def on_state_changed(self, tool, old, new):
        self.events.append(("state", old, new))

    def on_preview_changed(self, tool, line):
        self.events.append(("preview", line))

    def on_measurement(self, tool, reading):
        self.events.append(("measurement", reading))

    def on_committed(self, tool, line, primitive_id):
        self.events.append(("committed", line, primitive_id))

    def on_discarded(self, tool, line, reason):
        self.events.append(("discarded", reason))

    def on_cancelled(self, tool, line):
        self.events.append(("cancelled", line))

    def on_diagnostic(self, tool, diagnostic):
        self.events.append(("diagnostic", diagnostic.code))

    def of(self, kind):
        return [e for e in self.events if e[0] == kind]


def sample(x, y, phase=PointerPhase.MOVE, method=InputMethod.MOUSE):
    return PointerSample(Point(x, y), method, phase=phase)


@pytest.fixture()
def scene():
    return FakeScene()


@pytest.fixture()
def history():
    return CountingHistory()


@pytest.fixture()
def recorder():
    return Recorder()


@pytest.fixture()
def tool(scene, history, recorder):
    t = LineTool(scene, history, grid_source=lambda: GridConfig(True, 10))
    t.add_observer(recorder)
    t.activate()
    return t


class TestConfig:
    def test_defaults(self):
        cfg = LineToolConfig()
        assert cfg.thickness == 2.0
        assert cfg.min_length == 2.0
        assert cfg.angle_increment == 45.0

    @pytest.mark.parametrize("kwargs", [
        {"thickness": 0}, {"min_length": -1}, {"angle_increment": 0},
        {"angle_increment": float("nan")},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(InvalidArgument):
            LineToolConfig(**kwargs)

    def test_grid_spacing_must_be_positive(self):
        with pytest.raises(InvalidArgument):
            GridConfig(True, 0)


class TestStates:
    def test_starts_idle(self, scene, history):
        assert LineTool(scene, history).state is ToolState.IDLE

    def test_activate_arms(self, tool):
        assert tool.state is ToolState.ARMED
        assert tool.session.active and not tool.session.drawing

    def test_pointer_down_ignored_while_idle(self, scene, history):
        t = LineTool(scene, history)
        assert t.pointer_down(sample(0, 0, PointerPhase.DOWN)) is False
        assert t.state is ToolState.IDLE

    def test_pointer_down_starts_drawing(self, tool, recorder):
        assert tool.pointer_down(sample(13, 17, PointerPhase.DOWN))
        assert tool.state is ToolState.DRAWING
        assert tool.session.start_point == Point(10, 20)
        assert tool.current_line == Line(Point(10, 20), Point(10, 20))
        assert ("state", ToolState.ARMED, ToolState.DRAWING) in recorder.events

    def test_duplicate_pointer_down_is_ignored(self, tool):
        tool.pointer_down(sample(0, 0, PointerPhase.DOWN))
        assert tool.pointer_down(sample(50, 50, PointerPhase.DOWN)) is False
        assert tool.session.start_point == Point(0, 0)

    def test_non_finite_pointer_down_ignored(self, tool):
        assert tool.pointer_down(sample(float("nan"), 0, PointerPhase.DOWN)) is False
        assert tool.state is ToolState.ARMED

    def test_move_while_armed_is_ignored(self, tool, recorder):
        assert tool.pointer_move(sample(30, 30)) is None
        assert recorder.of("preview") == []


class TestDrawing:
    def test_down_move_up_commits_once(self, tool, scene, history, recorder):
        tool.handle_sample(sample(100, 100, PointerPhase.DOWN))
        for x in range(110, 200, 10):
            tool.handle_sample(sample(x, 100))
        pid = tool.handle_sample(sample(200, 100, PointerPhase.UP))

        assert scene.add_calls == 1
        assert history.commits == 1
        assert scene.lines[pid] == Line(Point(100, 100), Point(200, 100))
        assert tool.state is ToolState.ARMED
        assert tool.session.start_point is None
        assert tool.current_line is None
        assert len(recorder.of("committed")) == 1

    def test_move_updates_preview_with_grid_snap(self, tool, recorder):
        tool.pointer_down(sample(0, 0, PointerPhase.DOWN))
        line = tool.pointer_move(sample(43, 28))
        assert line.end == Point(40, 30)
        assert recorder.of("preview")[-1] == ("preview", line)
        assert tool.snap_state.grid_snapped

    def test_start_point_never_changes(self, tool):
        tool.pointer_down(sample(10, 10, PointerPhase.DOWN))
        for x, y in [(50, 20), (-40, 90), (300, -10)]:
            tool.pointer_move(sample(x, y))
            assert tool.current_line.start == Point(10, 10)

    def test_grid_snap_disabled(self, scene, history):
        t = LineTool(scene, history, grid_source=lambda: GridConfig(False, 10))
        t.activate()
        t.pointer_down(sample(13, 17, PointerPhase.DOWN))
        assert t.pointer_move(sample(41.5, 17)).end == Point(41.5, 17)
        assert not t.snap_state.grid_snapped

    def test_toggle_grid_snap_applies_to_next_drag(self, tool):
        assert tool.toggle_grid_snap() is False
        tool.pointer_down(sample(13, 17, PointerPhase.DOWN))
        assert tool.session.start_point == Point(13, 17)

    def test_grid_read_at_drag_start(self, scene, history):
        grid = {"cfg": GridConfig(True, 10)}
        t = LineTool(scene, history, grid_source=lambda: grid["cfg"])
        t.activate()
        t.pointer_down(sample(0, 0, PointerPhase.DOWN))
        grid["cfg"] = GridConfig(True, 100)
        assert t.pointer_move(sample(43, 0)).end == Point(40, 0)

    def test_constrained_move_snaps_to_45(self, tool):
        tool.pointer_down(sample(100, 100, PointerPhase.DOWN))
        line = tool.pointer_move(sample(150, 140), constrain_angle=True)
        assert angle_degrees(line.start, line.end) == 45.0
        assert tool.snap_state.angle_snapped
        assert tool.snap_state.snapped_angle_degrees == 45.0

    def test_constraint_sampled_per_move(self, tool):
        tool.pointer_down(sample(100, 100, PointerPhase.DOWN))
        tool.pointer_move(sample(150, 140), constrain_angle=True)
        line = tool.pointer_move(sample(150, 140), constrain_angle=False)
        assert line.end == Point(150, 140)
        assert not tool.snap_state.angle_snapped

    def test_angle_lock(self, tool):
        tool.toggle_angle_lock()
        tool.pointer_down(sample(0, 0, PointerPhase.DOWN))
        line = tool.pointer_move(sample(100, 10))
        assert line.end.x == pytest.approx(100.5, abs=0.01)
        assert line.end.y == 0

    def test_constrained_release_commits_snapped_line(self, tool, scene):
        tool.pointer_down(sample(100, 100, PointerPhase.DOWN))
        pid = tool.pointer_up(sample(150, 140, PointerPhase.UP), constrain_angle=True)
        committed = scene.lines[pid]
        assert angle_degrees(committed.start, committed.end) == 45.0

    def test_line_uses_configured_style(self, scene, history):
        t = LineTool(scene, history, LineToolConfig(thickness=4.0, color="#FF0000"))
        t.activate()
        t.pointer_down(sample(0, 0, PointerPhase.DOWN))
        pid = t.pointer_up(sample(50, 0, PointerPhase.UP))
        assert scene.lines[pid].thickness == 4.0
        assert scene.lines[pid].color == "#FF0000"

    def test_input_method_recorded(self, tool):
        tool.pointer_down(sample(0, 0, PointerPhase.DOWN, InputMethod.STYLUS))
        assert tool.session.input_method is InputMethod.STYLUS

    def test_stylus_pressure_sets_thickness(self, tool, scene):
        def pen(x, phase, pressure):
            return PointerSample(Point(x, 0), InputMethod.STYLUS, pressure=pressure, phase=phase)

        tool.pointer_down(pen(0, PointerPhase.DOWN, 0.81))
        assert tool.current_line.thickness == pytest.approx(2.0 * 0.729)
        line = tool.pointer_move(pen(50, PointerPhase.MOVE, 0.3))
        assert line.thickness == pytest.approx(1.0)
        tool.pointer_move(pen(80, PointerPhase.MOVE, 1.0))
        pid = tool.pointer_up(pen(80, PointerPhase.UP, 0.0))
        assert scene.lines[pid].thickness == pytest.approx(2.0)

    def test_mouse_pressure_is_ignored(self, tool, scene):
        tool.pointer_down(PointerSample(Point(0, 0), InputMethod.MOUSE, pressure=0.2, phase=PointerPhase.DOWN))
        pid = tool.pointer_up(PointerSample(Point(60, 0), InputMethod.MOUSE, pressure=0.2, phase=PointerPhase.UP))
        assert scene.lines[pid].thickness == 2.0

    def test_non_finite_move_keeps_previous_end(self, tool):
        tool.pointer_down(sample(0, 0, PointerPhase.DOWN))
        tool.pointer_move(sample(40, 0))
        line = tool.pointer_move(sample(float("inf"), 0))
        assert line.end == Point(40, 0)
        assert tool.is_drawing


class TestShortLines:
    def test_short_drag_commits_nothing(self, tool, scene, history, recorder):
        tool.pointer_down(sample(100, 100, PointerPhase.DOWN))
        assert tool.pointer_up(sample(101, 100, PointerPhase.UP)) is None
        assert scene.add_calls == 0
        assert history.begun == 0
        assert recorder.of("discarded") == [("discarded", "too-short")]
        assert tool.state is ToolState.ARMED

    def test_grid_collapsed_drag_is_discarded(self, tool, scene):
        tool.pointer_down(sample(100, 100, PointerPhase.DOWN))
        tool.pointer_up(sample(103, 104, PointerPhase.UP))
        assert scene.add_calls == 0

    def test_exact_minimum_is_committed(self, scene, history):
        t = LineTool(scene, history, grid_source=lambda: GridConfig(False, 10))
        t.activate()
        t.pointer_down(sample(0, 0, PointerPhase.DOWN))
        assert t.pointer_up(sample(2, 0, PointerPhase.UP)) is not None

    def test_zero_minimum_still_rejects_zero_length(self, scene, history):
        t = LineTool(scene, history, LineToolConfig(min_length=0))
        t.activate()
        t.pointer_down(sample(0, 0, PointerPhase.DOWN))
        assert t.pointer_up(sample(0, 0, PointerPhase.UP)) is None
        assert scene.add_calls == 0


class TestCancel:
    def test_cancel_leaves_scene_untouched(self, tool, scene, recorder):
        tool.pointer_down(sample(0, 0, PointerPhase.DOWN))
        tool.pointer_move(sample(80, 0))
        assert tool.cancel() is True
        assert scene.primitive_count() == 0
        assert tool.state is ToolState.ARMED
        assert tool.current_line is None
        assert len(recorder.of("cancelled")) == 1
        assert recorder.of("preview")[-1] == ("preview", None)

    def test_cancel_when_not_drawing(self, tool, recorder):
        assert tool.cancel() is False
        assert recorder.of("cancelled") == []

    def test_cancel_phase_sample(self, tool, scene):
        tool.handle_sample(sample(0, 0, PointerPhase.DOWN))
        tool.handle_sample(sample(50, 50, PointerPhase.CANCEL))
        assert not tool.is_drawing
        assert scene.add_calls == 0

    def test_up_after_cancel_is_ignored(self, tool, scene):
        tool.pointer_down(sample(0, 0, PointerPhase.DOWN))
        tool.cancel()
        assert tool.pointer_up(sample(80, 0, PointerPhase.UP)) is None
        assert scene.add_calls == 0

    def test_deactivate_while_drawing_cancels_once(self, tool, recorder, monkeypatch):
        calls = []
        original = tool.cancel

        def counting_cancel():
            calls.append(1)
            return original()

        monkeypatch.setattr(tool, "cancel", counting_cancel)
        tool.pointer_down(sample(0, 0, PointerPhase.DOWN))
        tool.deactivate()
        assert len(calls) == 1
        assert tool.state is ToolState.IDLE
        assert len(recorder.of("cancelled")) == 1

    def test_deactivate_while_armed_does_not_cancel(self, tool, recorder):
        tool.deactivate()
        assert tool.state is ToolState.IDLE
        assert recorder.of("cancelled") == []

    def test_switch_tool_mid_drag(self, tool, scene, recorder):
        tool.pointer_down(sample(0, 0, PointerPhase.DOWN))
        tool.pointer_move(sample(90, 0))
        tool.switch_tool("select")
        assert tool.state is ToolState.IDLE
        assert scene.primitive_count() == 0
        assert len(recorder.of("cancelled")) == 1

    def test_switch_back_to_line(self, tool):
        tool.switch_tool("select")
        tool.switch_tool("line")
        assert tool.state is ToolState.ARMED


class TestFailures:
    def test_commit_failure_rolls_back(self, tool, scene, history, recorder):
        scene.fail_next_add = True
        tool.pointer_down(sample(0, 0, PointerPhase.DOWN))
        assert tool.pointer_up(sample(100, 0, PointerPhase.UP)) is None
        assert scene.primitive_count() == 0
        assert history.rollbacks >= 1
        assert not history.can_undo()
        assert recorder.of("diagnostic") == [("diagnostic", "commit-failed")]
        assert recorder.of("committed") == []
        assert tool.state is ToolState.ARMED
        assert tool.current_line is None

    def test_tool_usable_after_commit_failure(self, tool, scene):
        scene.fail_next_add = True
        tool.pointer_down(sample(0, 0, PointerPhase.DOWN))
        tool.pointer_up(sample(100, 0, PointerPhase.UP))
        tool.pointer_down(sample(0, 0, PointerPhase.DOWN))
        assert tool.pointer_up(sample(100, 0, PointerPhase.UP)) is not None
        assert scene.primitive_count() == 1

    def test_snap_failure_keeps_last_end(self, tool, recorder, monkeypatch):
        tool.pointer_down(sample(0, 0, PointerPhase.DOWN))
        tool.pointer_move(sample(40, 0))

        def boom(session, raw):
            raise ArithmeticError("bad snap")

        monkeypatch.setattr(tool, "_constrained_end", boom)
        line = tool.pointer_move(sample(80, 0))
        assert line.end == Point(40, 0)
        assert tool.is_drawing
        assert recorder.of("diagnostic") == [("diagnostic", "snap-failed")]


class TestHistory:
    def test_undo_redo(self, tool, scene, history):
        tool.pointer_down(sample(0, 0, PointerPhase.DOWN))
        tool.pointer_up(sample(100, 0, PointerPhase.UP))
        assert scene.primitive_count() == 1
        history.undo()
        assert scene.primitive_count() == 0
        history.redo()
        assert scene.primitive_count() == 1

    def test_each_line_is_one_entry(self, tool, history):
        for i in range(3):
            tool.pointer_down(sample(0, i * 20, PointerPhase.DOWN))
            tool.pointer_up(sample(100, i * 20, PointerPhase.UP))
        assert history.count() == 3


class TestMeasurement:
    def test_readings_emitted_while_drawing(self, scene, history, recorder, clock):
        feedback = MeasurementFeedback(pixels_per_unit=100, decay_ms=1000, clock=clock)
        t = LineTool(scene, history, grid_source=lambda: GridConfig(True, 10), measurement=feedback)
        t.add_observer(recorder)
        t.activate()
        t.pointer_down(sample(0, 0, PointerPhase.DOWN))
        t.pointer_move(sample(100, 100), constrain_angle=True)
        reading = recorder.of("measurement")[-1][1]
        assert reading.distance == pytest.approx(1.4142, abs=1e-4)
        assert reading.angle_degrees == 45.0
        assert reading.is_angle_snapped and reading.is_grid_snapped

    def test_reading_decays_after_release(self, scene, history, clock):
        feedback = MeasurementFeedback(decay_ms=1000, clock=clock)
        t = LineTool(scene, history, measurement=feedback)
        t.activate()
        t.pointer_down(sample(0, 0, PointerPhase.DOWN))
        t.pointer_up(sample(100, 0, PointerPhase.UP))
        assert feedback.current() is not None
        clock.advance(1.0)
        assert feedback.current() is None

    def test_new_drag_hides_decaying_reading(self, scene, history, recorder, clock):
        feedback = MeasurementFeedback(decay_ms=1000, clock=clock)
        t = LineTool(scene, history, measurement=feedback)
        t.add_observer(recorder)
        t.activate()
        t.pointer_down(sample(0, 0, PointerPhase.DOWN))
        t.pointer_up(sample(100, 0, PointerPhase.UP))
        clock.advance(0.2)
        t.pointer_down(sample(200, 0, PointerPhase.DOWN))
        assert feedback.current() is None
        assert recorder.of("measurement")[-1] == ("measurement", None)
