"""
settings.py

Persistent settings management for FloorSketch.

Handles cross-platform settings storage using TOML format with platformdirs
for proper user config directory detection.

Settings file location:
    - Windows: %APPDATA%/floorsketch/settings.toml
    - macOS: ~/Library/Application Support/floorsketch/settings.toml
    - Linux: ~/.config/floorsketch/settings.toml

Default values are documented in comments throughout this file.
If settings.toml is corrupted, these defaults will be used.
"""

from __future__ import annotations

import math
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import platformdirs

# TOML reading - use tomllib for Python 3.11+, tomli for earlier versions
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

from models import GridConfig, InvalidArgument

APP_NAME = "floorsketch"

# Global settings manager instance (singleton)
_settings_manager: Optional["SettingsManager"] = None


def get_settings() -> "SettingsManager":
    """Get the global settings manager instance.

    Returns:
        The singleton SettingsManager instance.
    """
    global _settings_manager
    if _settings_manager is None:
        _settings_manager = SettingsManager()
    return _settings_manager


def set_settings(manager: Optional["SettingsManager"]) -> None:
    """Replace the global settings manager (``None`` resets it)."""
    global _settings_manager
    _settings_manager = manager


# =============================================================================
# Canvas Settings
# =============================================================================

@dataclass
class CanvasGridSettings:
    """Background grid and grid snapping settings.

    Defaults:
        enabled: True
        spacing: 10.0
        major_every: 10
        minor_color: "#E5E7EB"
        major_color: "#9CA3AF"
    """
    enabled: bool = True              # Default: True (snap to grid)
    spacing: float = 10.0             # Default: 10.0 scene units (0.1 m)
    major_every: int = 10             # Default: every 10th line is a major line
    minor_color: str = "#E5E7EB"      # Default: light gray
    major_color: str = "#9CA3AF"      # Default: gray


@dataclass
class CanvasLineSettings:
    """Line drawing settings.

    Defaults:
        default_thickness: 2.0
        default_color: "#000000"
        min_length: 2.0
        angle_increment: 45.0
        preview_color: "#2563EB"
    """
    default_thickness: float = 2.0     # Default: 2.0 pixels
    default_color: str = "#000000"     # Default: black
    min_length: float = 2.0            # Default: 2.0 units, shorter drags are discarded
    angle_increment: float = 45.0      # Default: 45 degrees
    preview_color: str = "#2563EB"     # Default: blue


@dataclass
class CanvasZOrderSettings:
    """Z-order layering settings.

    Defaults:
        base: 1000
        step: 10
    """
    base: int = 1000  # Default: 1000
    step: int = 10    # Default: 10


@dataclass
class CanvasZoomSettings:
    """Zoom behavior settings.

    Defaults:
        wheel_factor: 1.15
    """
    wheel_factor: float = 1.15  # Default: 1.15 (15% per scroll step)


@dataclass
class CanvasSettings:
    """All canvas-related settings."""
    grid: CanvasGridSettings = field(default_factory=CanvasGridSettings)
    lines: CanvasLineSettings = field(default_factory=CanvasLineSettings)
    zorder: CanvasZOrderSettings = field(default_factory=CanvasZOrderSettings)
    zoom: CanvasZoomSettings = field(default_factory=CanvasZoomSettings)


# =============================================================================
# Measurement Settings
# =============================================================================

@dataclass
class MeasurementSettings:
    """Live measurement feedback settings.

    Defaults:
        unit: "m"
        pixels_per_unit: 100.0
        precision: 2
        decay_ms: 1500
        standard_angle_tolerance: 5.0
    """
    unit: str = "m"                          # Default: metres
    pixels_per_unit: float = 100.0           # Default: 100 scene units per metre
    precision: int = 2                       # Default: 2 decimals
    decay_ms: int = 1500                     # Default: 1.5 s before the label hides
    standard_angle_tolerance: float = 5.0    # Default: 5 degrees


# =============================================================================
# Input Settings
# =============================================================================

@dataclass
class InputSettings:
    """Pointer input classification settings.

    Defaults:
        mouse_pressure_sentinels: [0.0, 0.5, 1.0]
        palm_rejection: True
    """
    # Pressure values reported by devices without pressure sensing
    mouse_pressure_sentinels: List[float] = field(default_factory=lambda: [0.0, 0.5, 1.0])
    palm_rejection: bool = True  # Default: True


# =============================================================================
# History Settings
# =============================================================================

@dataclass
class HistorySettings:
    """Undo history settings.

    Defaults:
        undo_limit: 50
    """
    undo_limit: int = 50  # Default: 50 entries


# =============================================================================
# Main App Settings
# =============================================================================

@dataclass
class AppSettings:
    """Application settings with default values.

    Attributes:
        canvas: Canvas-related settings.
        measurement: Measurement feedback settings.
        input: Pointer input settings.
        history: Undo history settings.
    """
    canvas: CanvasSettings = field(default_factory=CanvasSettings)
    measurement: MeasurementSettings = field(default_factory=MeasurementSettings)
    input: InputSettings = field(default_factory=InputSettings)
    history: HistorySettings = field(default_factory=HistorySettings)

    def validate(self) -> "AppSettings":
        """Check value ranges.

        Raises:
            InvalidArgument: if any value is out of range.
        """
        GridConfig(self.canvas.grid.enabled, self.canvas.grid.spacing)
        _require_positive("canvas.lines.angle_increment", self.canvas.lines.angle_increment)
        _require_positive("canvas.lines.default_thickness", self.canvas.lines.default_thickness)
        _require_non_negative("canvas.lines.min_length", self.canvas.lines.min_length)
        _require_positive("canvas.zoom.wheel_factor", self.canvas.zoom.wheel_factor)
        _require_positive("measurement.pixels_per_unit", self.measurement.pixels_per_unit)
        _require_non_negative("measurement.decay_ms", self.measurement.decay_ms)
        _require_non_negative("measurement.standard_angle_tolerance", self.measurement.standard_angle_tolerance)
        if self.history.undo_limit < 0:
            raise InvalidArgument(f"history.undo_limit must be >= 0, got {self.history.undo_limit!r}")
        return self

    def grid_config(self) -> GridConfig:
        """Current grid configuration as read by the line tool."""
        return GridConfig(self.canvas.grid.enabled, self.canvas.grid.spacing)


def _require_positive(name: str, value: Any) -> None:
    if not isinstance(value, (int, float)) or not math.isfinite(value) or value <= 0:
        raise InvalidArgument(f"{name} must be a positive number, got {value!r}")


def _require_non_negative(name: str, value: Any) -> None:
    if not isinstance(value, (int, float)) or not math.isfinite(value) or value < 0:
        raise InvalidArgument(f"{name} must be a non-negative number, got {value!r}")


# =============================================================================
# Settings Manager
# =============================================================================

class SettingsManager:
    """Manages loading, saving, and accessing application settings.

    Settings are stored in a TOML file at the platform-appropriate location.
    If the settings file doesn't exist, defaults are used and the file is
    created on first save.

    Args:
        app_name: Application name used for the config directory.
        settings_dir: Override for the config directory (used by tests).
    """

    def __init__(self, app_name: str = APP_NAME, settings_dir: Optional[Path] = None):
        if settings_dir is None:
            settings_dir = Path(platformdirs.user_config_dir(app_name))
        self.settings_dir = Path(settings_dir)
        self.settings_file = self.settings_dir / "settings.toml"
        self.settings = self.load()
        self._needs_save = not self.settings_file.exists()  # Save if file didn't exist

    def ensure_file_complete(self) -> None:
        """Ensure settings file exists with all sections. Call once at startup."""
        if self._needs_save or not self.settings_file.exists():
            self.save()
            self._needs_save = False

    def load(self) -> AppSettings:
        """Load settings from the TOML file.

        Returns:
            AppSettings instance with values from file or defaults if file
            doesn't exist or cannot be parsed.

        Raises:
            InvalidArgument: if the file parses but holds out-of-range values.
        """
        if not self.settings_file.exists():
            return AppSettings()

        try:
            with open(self.settings_file, "rb") as f:
                data = tomllib.load(f)
            settings = self._parse_toml(data)
        except (OSError, tomllib.TOMLDecodeError, AttributeError, TypeError):
            # If file is corrupted or invalid, return defaults
            return AppSettings()

        return settings.validate()

    def _parse_toml(self, data: Dict[str, Any]) -> AppSettings:
        """Parse TOML data into AppSettings.

        Args:
            data: Parsed TOML dictionary.

        Returns:
            AppSettings instance populated from TOML data.
        """
        settings = AppSettings()

        # Canvas section
        canvas = data.get("canvas", {})
        if "grid" in canvas:
            g = canvas["grid"]
            settings.canvas.grid.enabled = g.get("enabled", settings.canvas.grid.enabled)
            settings.canvas.grid.spacing = g.get("spacing", settings.canvas.grid.spacing)
            settings.canvas.grid.major_every = g.get("major_every", settings.canvas.grid.major_every)
            settings.canvas.grid.minor_color = g.get("minor_color", settings.canvas.grid.minor_color)
            settings.canvas.grid.major_color = g.get("major_color", settings.canvas.grid.major_color)
        if "lines" in canvas:
            li = canvas["lines"]
            settings.canvas.lines.default_thickness = li.get("default_thickness", settings.canvas.lines.default_thickness)
            settings.canvas.lines.default_color = li.get("default_color", settings.canvas.lines.default_color)
            settings.canvas.lines.min_length = li.get("min_length", settings.canvas.lines.min_length)
            settings.canvas.lines.angle_increment = li.get("angle_increment", settings.canvas.lines.angle_increment)
            settings.canvas.lines.preview_color = li.get("preview_color", settings.canvas.lines.preview_color)
        if "zorder" in canvas:
            z = canvas["zorder"]
            settings.canvas.zorder.base = z.get("base", settings.canvas.zorder.base)
            settings.canvas.zorder.step = z.get("step", settings.canvas.zorder.step)
        if "zoom" in canvas:
            zm = canvas["zoom"]
            settings.canvas.zoom.wheel_factor = zm.get("wheel_factor", settings.canvas.zoom.wheel_factor)

        # Measurement section
        m = data.get("measurement", {})
        settings.measurement.unit = m.get("unit", settings.measurement.unit)
        settings.measurement.pixels_per_unit = m.get("pixels_per_unit", settings.measurement.pixels_per_unit)
        settings.measurement.precision = m.get("precision", settings.measurement.precision)
        settings.measurement.decay_ms = m.get("decay_ms", settings.measurement.decay_ms)
        settings.measurement.standard_angle_tolerance = m.get(
            "standard_angle_tolerance", settings.measurement.standard_angle_tolerance)

        # Input section
        inp = data.get("input", {})
        settings.input.mouse_pressure_sentinels = [
            float(v) for v in inp.get("mouse_pressure_sentinels", settings.input.mouse_pressure_sentinels)
        ]
        settings.input.palm_rejection = inp.get("palm_rejection", settings.input.palm_rejection)

        # History section
        hist = data.get("history", {})
        settings.history.undo_limit = hist.get("undo_limit", settings.history.undo_limit)

        return settings

    def save(self) -> None:
        """Save current settings to the TOML file.

        Creates the settings directory if it doesn't exist.
        """
        # Ensure directory exists
        self.settings_dir.mkdir(parents=True, exist_ok=True)

        # Convert settings to TOML structure
        data = self._to_toml_dict()

        with open(self.settings_file, "wb") as f:
            tomli_w.dump(data, f)

    def _to_toml_dict(self) -> Dict[str, Any]:
        """Convert settings to a TOML-compatible dictionary structure.

        Returns:
            Dictionary organized by TOML sections.
        """
        s = self.settings
        return {
            "canvas": {
                "grid": {
                    "enabled": s.canvas.grid.enabled,
                    "spacing": s.canvas.grid.spacing,
                    "major_every": s.canvas.grid.major_every,
                    "minor_color": s.canvas.grid.minor_color,
                    "major_color": s.canvas.grid.major_color,
                },
                "lines": {
                    "default_thickness": s.canvas.lines.default_thickness,
                    "default_color": s.canvas.lines.default_color,
                    "min_length": s.canvas.lines.min_length,
                    "angle_increment": s.canvas.lines.angle_increment,
                    "preview_color": s.canvas.lines.preview_color,
                },
                "zorder": {
                    "base": s.canvas.zorder.base,
                    "step": s.canvas.zorder.step,
                },
                "zoom": {
                    "wheel_factor": s.canvas.zoom.wheel_factor,
                },
            },
            "measurement": {
                "unit": s.measurement.unit,
                "pixels_per_unit": s.measurement.pixels_per_unit,
                "precision": s.measurement.precision,
                "decay_ms": s.measurement.decay_ms,
                "standard_angle_tolerance": s.measurement.standard_angle_tolerance,
            },
            "input": {
                "mouse_pressure_sentinels": list(s.input.mouse_pressure_sentinels),
                "palm_rejection": s.input.palm_rejection,
            },
            "history": {
                "undo_limit": s.history.undo_limit,
            },
        }

    def to_toml(self) -> str:
        """Convert current settings to a TOML-formatted string.

        Returns:
            TOML representation of the current settings.
        """
        data = self._to_toml_dict()
        return tomli_w.dumps(data)

    def get_settings_path(self) -> Path:
        """Get the path to the settings file.

        Returns:
            Path object pointing to the settings file location.
        """
        return self.settings_file
