from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ...core.model import LinearMeasurement, Point

if TYPE_CHECKING:
    from ...core.state import ViewerState

logger = logging.getLogger(__name__)

# Rubber-band and committed line styling (overlay)
LINE_COLOR: str = '#ef4444'
LINE_HALO_COLOR: str = 'white'
PREVIEW_DASH: tuple[int, int] = (4, 4)
ENDPOINT_RADIUS: int = 3


def measure_on_press(app: "ViewerState", point: Point) -> None:
    app.drawing.line_start = point
    app.drawing.line_end = point


def measure_on_motion(app: "ViewerState", point: Point) -> None:
    if app.drawing.line_start is None:
        return
    app.drawing.line_end = point


def measure_on_release(app: "ViewerState", point: Point) -> None:
    start = app.drawing.line_start
    if start is None:
        return
    app.drawing.line_start = None
    app.drawing.line_end = None
    dist = start.distance_to(point)
    if dist <= float(app.config['min_line_length']):
        logger.debug("Ignoring %.2f px line as an accidental click", dist)
        return
    app.add_line(LinearMeasurement.between(start, point))
