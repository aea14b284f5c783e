"""
main.py

FloorSketch - Main Application

PyQt6 floor plan canvas with a straight line tool:
- Grid snapping and Shift / A angle constraint to 45 degree steps
- Live distance and angle readout while drawing
- Mouse, touch and stylus input with palm rejection
- Undo / redo of every committed line

Usage:
    python main.py

Dependencies:
    pip install PyQt6 platformdirs tomli-w
"""

from __future__ import annotations

import sys
from typing import Dict

from PyQt6.QtCore import Qt, QSize
from PyQt6.QtGui import QAction, QKeySequence, QUndoStack
from PyQt6.QtWidgets import QApplication, QLabel, QMainWindow, QToolBar

from models import Mode
from canvas import AnnotatorScene, AnnotatorView
from drawing.metrics import ToolUsageMetrics
from undo_commands import UndoStackHistory
from settings import SettingsManager, get_settings
from debug_trace import trace, trace_exception, close_log


class MainWindow(QMainWindow):
    """Main application window: toolbar, canvas and status readout."""

    def __init__(self, settings_manager: SettingsManager):
        super().__init__()
        self.setWindowTitle("FloorSketch")
        self.settings_manager = settings_manager

        self.scene = AnnotatorScene(self)
        self.scene.setSceneRect(-5000, -5000, 10000, 10000)
        self.view = AnnotatorView(self.scene, self)
        self.setCentralWidget(self.view)

        # Undo/Redo stack
        self.undo_stack = QUndoStack(self)
        self.undo_stack.setUndoLimit(settings_manager.settings.history.undo_limit)
        self.history = UndoStackHistory(self.undo_stack)

        self.metrics = ToolUsageMetrics()
        self.line_tool = self.scene.configure_line_tool(self.history, self.metrics)

        self._sticky_mode = False
        self._build_menus()
        self._build_toolbar()

        self.scene.set_escape_key_callback(self._exit_sticky_mode)
        self.scene.set_snap_toggled_callback(self._on_snap_toggled)

        self._snap_label = QLabel()
        self.statusBar().addPermanentWidget(self._snap_label)
        self._update_snap_label()
        self.statusBar().showMessage("Press L to draw lines. Shift constrains angles, Esc cancels.")

    def _build_menus(self):
        """Build the application menu bar."""
        file_menu = self.menuBar().addMenu("&File")
        exit_act = QAction("Exit", self)
        exit_act.setShortcut(QKeySequence.StandardKey.Quit)
        exit_act.triggered.connect(self.close)
        file_menu.addAction(exit_act)

        edit_menu = self.menuBar().addMenu("&Edit")
        self.undo_act = self.undo_stack.createUndoAction(self, "Undo")
        self.undo_act.setShortcut(QKeySequence.StandardKey.Undo)
        edit_menu.addAction(self.undo_act)
        self.redo_act = self.undo_stack.createRedoAction(self, "Redo")
        self.redo_act.setShortcut(QKeySequence.StandardKey.Redo)
        edit_menu.addAction(self.redo_act)

        view_menu = self.menuBar().addMenu("&View")
        self.grid_act = QAction("Show Grid", self)
        self.grid_act.setCheckable(True)
        self.grid_act.setChecked(self.settings_manager.settings.canvas.grid.enabled)
        self.grid_act.toggled.connect(self._on_grid_toggled)
        view_menu.addAction(self.grid_act)
        view_menu.addSeparator()

        zoom_in_act = QAction("Zoom In", self)
        zoom_in_act.setShortcut(QKeySequence.StandardKey.ZoomIn)
        zoom_in_act.triggered.connect(self.view.zoom_in)
        view_menu.addAction(zoom_in_act)

        zoom_out_act = QAction("Zoom Out", self)
        zoom_out_act.setShortcut(QKeySequence.StandardKey.ZoomOut)
        zoom_out_act.triggered.connect(self.view.zoom_out)
        view_menu.addAction(zoom_out_act)

        zoom_fit_act = QAction("Fit All", self)
        zoom_fit_act.setShortcut("F")
        zoom_fit_act.triggered.connect(self.view.zoom_fit)
        view_menu.addAction(zoom_fit_act)

        zoom_reset_act = QAction("Actual Size", self)
        zoom_reset_act.setShortcut("1")
        zoom_reset_act.triggered.connect(self.view.zoom_reset)
        view_menu.addAction(zoom_reset_act)

    def _build_toolbar(self):
        """Build the application toolbar."""
        tb = QToolBar("Tools")
        tb.setIconSize(QSize(18, 18))
        self.addToolBar(tb)

        def add_mode_action(text: str, mode: str, shortcut: str, tooltip: str = ""):
            act = QAction(text, self)
            act.setCheckable(True)
            act.setShortcut(shortcut)
            if tooltip:
                act.setToolTip(f"{tooltip} ({shortcut})")
                act.setStatusTip(tooltip)
            act.triggered.connect(lambda checked, m=mode: self._on_mode_action_triggered(m))
            tb.addAction(act)
            return act

        self.act_select = add_mode_action("Select", Mode.SELECT, "S", "Select committed lines")
        self.act_line = add_mode_action("Line", Mode.LINE, "L", "Draw a straight line")
        self._mode_actions: Dict[str, QAction] = {
            Mode.SELECT: self.act_select,
            Mode.LINE: self.act_line,
        }
        self.act_select.setChecked(True)

        tb.addSeparator()
        tb.addAction(self.undo_act)
        tb.addAction(self.redo_act)

    def _on_mode_action_triggered(self, mode: str):
        """Handle mode action click - Ctrl+click keeps the line tool after Escape."""
        modifiers = QApplication.keyboardModifiers()
        self._sticky_mode = mode != Mode.SELECT and bool(modifiers & Qt.KeyboardModifier.ControlModifier)
        self.set_mode(mode)

    def set_mode(self, mode: str):
        """Set the current drawing mode."""
        self.scene.set_mode(mode)
        for m, act in self._mode_actions.items():
            act.setChecked(m == mode)
        self.statusBar().showMessage(f"Mode: {mode}")

    def _exit_sticky_mode(self):
        """Escape with no drag in progress returns to the Select tool."""
        if self._sticky_mode:
            return
        self.set_mode(Mode.SELECT)

    def _on_grid_toggled(self, checked: bool):
        self.settings_manager.settings.canvas.grid.enabled = checked
        self.scene.update()
        self._update_snap_label()

    def _on_snap_toggled(self, which: str, enabled: bool):
        self.statusBar().showMessage(f"{which.capitalize()} snap {'on' if enabled else 'off'}", 2000)
        self._update_snap_label()

    def _update_snap_label(self):
        grid_on = self.settings_manager.settings.canvas.grid.enabled and self.line_tool.grid_snap_enabled
        parts = [f"Grid: {'on' if grid_on else 'off'}", f"Angle lock: {'on' if self.line_tool.angle_lock else 'off'}"]
        self._snap_label.setText("  |  ".join(parts))

    def closeEvent(self, event):
        self.scene.set_mode(Mode.SELECT)
        trace(f"tool usage: {self.metrics.snapshot()}", "MAIN")
        super().closeEvent(event)


def main():
    """Application entry point."""
    trace("Application starting", "MAIN")
    app = QApplication(sys.argv)

    # Load settings (use singleton to ensure single instance)
    trace("Loading settings", "MAIN")
    settings_manager = get_settings()

    # Ensure settings file has all sections
    settings_manager.ensure_file_complete()

    # Save settings on application quit
    def save_on_quit():
        trace("Saving settings on quit", "MAIN")
        settings_manager.save()
        close_log()

    app.aboutToQuit.connect(save_on_quit)

    trace("Creating MainWindow", "MAIN")
    w = MainWindow(settings_manager)
    w.resize(1280, 860)
    w.show()
    trace("Entering event loop", "MAIN")
    sys.exit(app.exec())


if __name__ == "__main__":
    # Set up global exception handler to catch crashes
    def excepthook(exc_type, exc_value, exc_tb):
        import traceback
        trace("UNCAUGHT EXCEPTION:", "CRASH")
        trace("".join(traceback.format_exception(exc_type, exc_value, exc_tb)), "CRASH")
        close_log()
        sys.__excepthook__(exc_type, exc_value, exc_tb)

    sys.excepthook = excepthook

    try:
        main()
    except Exception as e:
        trace(f"FATAL: {type(e).__name__}: {e}", "CRASH")
        trace_exception("Fatal exception")
        close_log()
        raise
