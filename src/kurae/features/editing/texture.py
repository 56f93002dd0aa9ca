from __future__ import annotations

from typing import TYPE_CHECKING

from ...core.model import Point
from ..analysis.tissue import classify

if TYPE_CHECKING:
    from ...core.state import ViewerState

PROBE_COLOR: str = 'white'


def texture_on_press(app: "ViewerState", point: Point) -> None:
    if app.pixel_source is None:
        return
    sample = classify(app.pixel_source, point, int(app.config['sample_half_width']))
    if sample is not None:
        app.add_tissue_sample(sample)


def texture_on_motion(app: "ViewerState", point: Point) -> None:
    app.drawing.probe = point
