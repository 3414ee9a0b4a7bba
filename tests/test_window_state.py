"""Tests for window geometry persistence and zoom stepping."""

import pytest
from PySide6.QtCore import QSettings

from mdview.window_state import (
    DEFAULT_HEIGHT,
    DEFAULT_WIDTH,
    ZOOM_MAX,
    ZOOM_MIN,
    WindowGeometry,
    is_on_screen,
    load_window_geometry,
    save_window_geometry,
    step_zoom,
)

DESKTOP = (0, 0, 1920, 1080)


@pytest.fixture
def settings_path(tmp_path):
    return str(tmp_path / "mdview.ini")


def _settings(path):
    return QSettings(path, QSettings.Format.IniFormat)


class TestIsOnScreen:
    def test_first_run_origin_is_not_on_screen(self):
        assert is_on_screen(0, 0, DESKTOP) is False

    def test_position_inside_desktop(self):
        assert is_on_screen(200, 150, DESKTOP) is True

    def test_zero_on_one_axis_only_is_allowed(self):
        assert is_on_screen(0, 10, DESKTOP) is True

    def test_slightly_off_left_edge_is_tolerated(self):
        assert is_on_screen(-40, 100, DESKTOP) is True

    def test_far_off_left_edge(self):
        assert is_on_screen(-60, 100, DESKTOP) is False

    def test_too_close_to_right_or_bottom(self):
        assert is_on_screen(1850, 100, DESKTOP) is False
        assert is_on_screen(100, 990, DESKTOP) is False

    def test_secondary_monitor_left_of_primary(self):
        assert is_on_screen(-1500, 200, (-1920, 0, 3840, 1080)) is True


class TestStepZoom:
    def test_zoom_in(self):
        assert step_zoom(1.0, 120) == 1.1

    def test_zoom_out(self):
        assert step_zoom(1.0, -120) == 0.9

    def test_clamped_at_max(self):
        assert step_zoom(ZOOM_MAX, 120) == ZOOM_MAX

    def test_clamped_at_min(self):
        assert step_zoom(ZOOM_MIN, -120) == ZOOM_MIN

    def test_no_delta_keeps_factor(self):
        assert step_zoom(1.3, 0) == 1.3

    def test_repeated_steps_do_not_drift(self):
        factor = 1.0
        for _ in range(10):
            factor = step_zoom(factor, 1)
        assert factor == 2.0

    def test_many_steps_stop_at_bounds(self):
        factor = 1.0
        for _ in range(50):
            factor = step_zoom(factor, -1)
        assert factor == ZOOM_MIN


class TestGeometrySettings:
    def test_defaults_when_nothing_saved(self, settings_path):
        assert load_window_geometry(_settings(settings_path)) == WindowGeometry()
        assert WindowGeometry().width == DEFAULT_WIDTH
        assert WindowGeometry().height == DEFAULT_HEIGHT

    def test_round_trip(self, settings_path):
        saved = WindowGeometry(left=120, top=80, width=1280, height=900, maximized=True)
        save_window_geometry(_settings(settings_path), saved)
        assert load_window_geometry(_settings(settings_path)) == saved

    def test_not_maximized_round_trip(self, settings_path):
        saved = WindowGeometry(left=5, top=6, width=700, height=500, maximized=False)
        save_window_geometry(_settings(settings_path), saved)
        assert load_window_geometry(_settings(settings_path)).maximized is False

    def test_invalid_size_falls_back_to_defaults(self, settings_path):
        settings = _settings(settings_path)
        settings.setValue("window/width", 0)
        settings.setValue("window/height", -5)
        settings.setValue("window/left", 30)
        settings.sync()
        geometry = load_window_geometry(_settings(settings_path))
        assert (geometry.width, geometry.height) == (DEFAULT_WIDTH, DEFAULT_HEIGHT)
        assert geometry.left == 30
