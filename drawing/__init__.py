"""
drawing package

Qt-free core of the line tool: geometry, snapping, input normalization,
the line tool state machine, measurement feedback and the history boundary.
"""

from drawing.geometry import angle_degrees, distance, midpoint
from drawing.snapping import snap_line_to_standard_angles, snap_to_angle, snap_to_grid
from drawing.input import InputNormalizer
from drawing.history import (
    AddLineMutation,
    CommandStackHistory,
    HistoryCoordinator,
    SceneMutator,
    TransactionHandle,
)
from drawing.measurement import MeasurementFeedback
from drawing.line_tool import LineTool, LineToolConfig, LineToolObserver
from drawing.metrics import ToolUsageMetrics

__all__ = [
    "angle_degrees",
    "distance",
    "midpoint",
    "snap_line_to_standard_angles",
    "snap_to_angle",
    "snap_to_grid",
    "InputNormalizer",
    "AddLineMutation",
    "CommandStackHistory",
    "HistoryCoordinator",
    "SceneMutator",
    "TransactionHandle",
    "MeasurementFeedback",
    "LineTool",
    "LineToolConfig",
    "LineToolObserver",
    "ToolUsageMetrics",
]
