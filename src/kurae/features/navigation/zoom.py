from __future__ import annotations

from typing import TYPE_CHECKING

from ...core.transform import clamp_scale, next_filter_level

if TYPE_CHECKING:
    from ...core.state import ViewerState


def zoom_by(app: "ViewerState", delta: float) -> None:
    app.transform.scale = clamp_scale(app.transform.scale + delta)


def zoom_in(app: "ViewerState") -> None:
    zoom_by(app, float(app.config['zoom_step']))


def zoom_out(app: "ViewerState") -> None:
    zoom_by(app, -float(app.config['zoom_step']))


def wheel_zoom(app: "ViewerState", delta_y: float) -> None:
    """``delta_y`` follows the DOM convention: positive scrolls down and zooms out."""
    zoom_by(app, delta_y * -float(app.config['wheel_factor']))


def cycle_brightness(app: "ViewerState") -> None:
    app.transform.brightness = next_filter_level(app.transform.brightness)


def cycle_contrast(app: "ViewerState") -> None:
    app.transform.contrast = next_filter_level(app.transform.contrast)
