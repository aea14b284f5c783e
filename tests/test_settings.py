"""Tests for TOML-backed settings (settings.py)."""
from __future__ import annotations

import pytest

from models import GridConfig, InvalidArgument
from settings import AppSettings, SettingsManager, get_settings, set_settings


def write_settings(directory, text: str):
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "settings.toml").write_text(text, encoding="utf-8")


class TestDefaults:
    def test_missing_file_gives_defaults(self, tmp_path):
        sm = SettingsManager(settings_dir=tmp_path)
        s = sm.settings
        assert s.canvas.grid.enabled is True
        assert s.canvas.grid.spacing == 10.0
        assert s.canvas.lines.min_length == 2.0
        assert s.canvas.lines.angle_increment == 45.0
        assert s.measurement.pixels_per_unit == 100.0
        assert s.history.undo_limit == 50
        assert s.input.mouse_pressure_sentinels == [0.0, 0.5, 1.0]

    def test_grid_config(self):
        assert AppSettings().grid_config() == GridConfig(True, 10.0)

    def test_ensure_file_complete_writes_file(self, tmp_path):
        sm = SettingsManager(settings_dir=tmp_path / "cfg")
        sm.ensure_file_complete()
        assert sm.get_settings_path().exists()


class TestLoad:
    def test_partial_file_keeps_other_defaults(self, tmp_path):
        write_settings(tmp_path, "[canvas.grid]\nspacing = 25.0\n\n[measurement]\nunit = \"ft\"\n")
        s = SettingsManager(settings_dir=tmp_path).settings
        assert s.canvas.grid.spacing == 25.0
        assert s.canvas.grid.enabled is True
        assert s.measurement.unit == "ft"
        assert s.canvas.lines.default_thickness == 2.0

    def test_corrupt_file_falls_back_to_defaults(self, tmp_path):
        write_settings(tmp_path, "[canvas.grid\nspacing = = 3")
        s = SettingsManager(settings_dir=tmp_path).settings
        assert s.canvas.grid.spacing == 10.0

    @pytest.mark.parametrize("text", [
        "[canvas.grid]\nspacing = 0\n",
        "[canvas.lines]\nangle_increment = -45.0\n",
        "[canvas.lines]\nmin_length = -1.0\n",
        "[measurement]\npixels_per_unit = 0\n",
        "[measurement]\ndecay_ms = -5\n",
        "[history]\nundo_limit = -1\n",
    ])
    def test_out_of_range_values_raise(self, tmp_path, text):
        write_settings(tmp_path, text)
        with pytest.raises(InvalidArgument):
            SettingsManager(settings_dir=tmp_path)

    def test_save_and_reload(self, tmp_path):
        sm = SettingsManager(settings_dir=tmp_path)
        sm.settings.canvas.grid.spacing = 12.5
        sm.settings.canvas.lines.default_color = "#FF0000"
        sm.settings.input.palm_rejection = False
        sm.save()
        s = SettingsManager(settings_dir=tmp_path).settings
        assert s.canvas.grid.spacing == 12.5
        assert s.canvas.lines.default_color == "#FF0000"
        assert s.input.palm_rejection is False

    def test_to_toml_has_all_sections(self, tmp_path):
        text = SettingsManager(settings_dir=tmp_path).to_toml()
        for section in ("[canvas.grid]", "[canvas.lines]", "[measurement]", "[input]", "[history]"):
            assert section in text


class TestSingleton:
    def test_set_settings_replaces_singleton(self, tmp_path):
        sm = SettingsManager(settings_dir=tmp_path)
        set_settings(sm)
        try:
            assert get_settings() is sm
        finally:
            set_settings(None)
