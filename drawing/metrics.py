"""
drawing/metrics.py

Tool usage statistics collected through the line tool's observer hooks.
"""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, Optional

from models import Diagnostic, Line, ToolState
from drawing.line_tool import TOOL_NAME, LineTool, LineToolObserver


class ToolUsageMetrics(LineToolObserver):
    """Counts tool switches and outcomes, and accumulates time per tool.

    Durations are in seconds of the supplied clock.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.current_tool: Optional[str] = None
        self._started_at: Optional[float] = None
        self.tool_usage: Dict[str, float] = {}
        self.tool_switch_count = 0
        self.lines_committed = 0
        self.lines_cancelled = 0
        self.lines_discarded = 0
        self.diagnostics = 0

    def start_tool(self, name: str) -> None:
        """Begin timing *name*, closing out the previous tool."""
        if self.current_tool == name:
            return
        self.end_tool()
        self.current_tool = name
        self._started_at = self._clock()

    def end_tool(self) -> None:
        if self.current_tool is None or self._started_at is None:
            return
        elapsed = self._clock() - self._started_at
        self.tool_usage[self.current_tool] = self.tool_usage.get(self.current_tool, 0.0) + elapsed
        self.current_tool = None
        self._started_at = None

    @property
    def drawing_duration(self) -> float:
        return sum(self.tool_usage.values())

    # ---- LineToolObserver ----

    def on_state_changed(self, tool: LineTool, old: ToolState, new: ToolState) -> None:
        if old is ToolState.IDLE and new is ToolState.ARMED:
            self.start_tool(TOOL_NAME)
        elif new is ToolState.IDLE and self.current_tool == TOOL_NAME:
            self.end_tool()

    def on_tool_switched(self, tool: LineTool, target: str) -> None:
        if target == self.current_tool:
            return
        self.tool_switch_count += 1
        if target != TOOL_NAME:
            self.start_tool(target)

    def on_committed(self, tool: LineTool, line: Line, primitive_id) -> None:
        self.lines_committed += 1

    def on_cancelled(self, tool: LineTool, line: Optional[Line]) -> None:
        self.lines_cancelled += 1

    def on_discarded(self, tool: LineTool, line: Optional[Line], reason: str) -> None:
        self.lines_discarded += 1

    def on_diagnostic(self, tool: LineTool, diagnostic: Diagnostic) -> None:
        self.diagnostics += 1

    # ---- reporting ----

    def snapshot(self) -> Dict[str, Any]:
        """Plain dict of the collected statistics."""
        usage = dict(self.tool_usage)
        if self.current_tool is not None and self._started_at is not None:
            usage[self.current_tool] = usage.get(self.current_tool, 0.0) + self._clock() - self._started_at
        return {
            "current_tool": self.current_tool,
            "tool_usage": usage,
            "drawing_duration": sum(usage.values()),
            "tool_switch_count": self.tool_switch_count,
            "lines_committed": self.lines_committed,
            "lines_cancelled": self.lines_cancelled,
            "lines_discarded": self.lines_discarded,
            "diagnostics": self.diagnostics,
        }

    def clear(self) -> None:
        """Reset counters; keeps timing the current tool from now."""
        self.tool_usage = {}
        self.tool_switch_count = 0
        self.lines_committed = 0
        self.lines_cancelled = 0
        self.lines_discarded = 0
        self.diagnostics = 0
        if self.current_tool is not None:
            self._started_at = self._clock()
