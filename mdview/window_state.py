"""Persisted window geometry and zoom helpers."""

from __future__ import annotations

import logging
from typing import NamedTuple

from PySide6.QtCore import QSettings

logger = logging.getLogger(__name__)

ORGANIZATION = "mdview"
APPLICATION = "mdview"

DEFAULT_WIDTH = 1000
DEFAULT_HEIGHT = 800

ZOOM_MIN = 0.5
ZOOM_MAX = 3.0
ZOOM_STEP = 0.1

# Margins keep at least a grabbable strip of the title bar on screen.
SCREEN_EDGE_MARGIN = 50
SCREEN_FAR_MARGIN = 100


class WindowGeometry(NamedTuple):
    left: int = 0
    top: int = 0
    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
    maximized: bool = False


def open_settings() -> QSettings:
    return QSettings(ORGANIZATION, APPLICATION)


def load_window_geometry(settings: QSettings) -> WindowGeometry:
    """Read the last saved geometry, using defaults for missing or bad values."""
    defaults = WindowGeometry()
    try:
        geometry = WindowGeometry(
            left=int(settings.value("window/left", defaults.left, type=int)),
            top=int(settings.value("window/top", defaults.top, type=int)),
            width=int(settings.value("window/width", defaults.width, type=int)),
            height=int(settings.value("window/height", defaults.height, type=int)),
            maximized=bool(settings.value("window/maximized", defaults.maximized, type=bool)),
        )
    except (TypeError, ValueError) as exc:
        logger.warning("Ignoring unreadable window settings: %s", exc)
        return defaults

    if geometry.width <= 0 or geometry.height <= 0:
        geometry = geometry._replace(width=defaults.width, height=defaults.height)
    return geometry


def save_window_geometry(settings: QSettings, geometry: WindowGeometry) -> None:
    settings.setValue("window/left", int(geometry.left))
    settings.setValue("window/top", int(geometry.top))
    settings.setValue("window/width", int(geometry.width))
    settings.setValue("window/height", int(geometry.height))
    settings.setValue("window/maximized", bool(geometry.maximized))
    settings.sync()
    logger.debug("Saved window geometry %s", geometry)


def is_on_screen(left: float, top: float, virtual_rect: tuple[int, int, int, int]) -> bool:
    """Check whether a saved top-left corner is visible on the virtual desktop.

    `virtual_rect` is `(x, y, width, height)` of all monitors combined. A
    position of exactly (0, 0) is what a first run stores, so it never counts.
    """
    if left == 0 and top == 0:
        return False

    x, y, width, height = virtual_rect
    return (
        left > x - SCREEN_EDGE_MARGIN
        and top > y - SCREEN_EDGE_MARGIN
        and left < x + width - SCREEN_FAR_MARGIN
        and top < y + height - SCREEN_FAR_MARGIN
    )


def step_zoom(current: float, delta: int) -> float:
    """Return the zoom factor after one wheel notch in the direction of `delta`."""
    if delta > 0:
        value = min(ZOOM_MAX, current + ZOOM_STEP)
    elif delta < 0:
        value = max(ZOOM_MIN, current - ZOOM_STEP)
    else:
        return current
    # Repeated 0.1 steps drift in binary floating point.
    return round(value, 2)
