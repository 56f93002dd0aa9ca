from __future__ import annotations

from typing import TYPE_CHECKING

from ...core.model import Point, Polygon

if TYPE_CHECKING:
    from ...core.state import ViewerState

# Visual parameters for interactive drawing
DRAW_MARKER_RADIUS: int = 4
FIRST_MARKER_EXTRA: int = 2
DRAW_MARKER_FILL: str = '#ef4444'
DRAW_MARKER_OUTLINE: str = 'white'
DRAW_PREVIEW_DASH: tuple[int, int] = (4, 4)
MIN_VERTICES: int = 3

# Palette for completed polygon overlays
POLYGON_FILL_COLORS: tuple[str, ...] = (
    '#fecaca',  # pale red
    '#bfdbfe',  # pale blue
    '#c5f5c9',  # pale green
    '#ffe0b3',  # pale orange
)


def closure_radius(app: "ViewerState") -> float:
    """Closure radius in image space; constant on screen whatever the zoom."""
    return float(app.config['close_radius']) / app.transform.scale


def area_on_press(app: "ViewerState", point: Point) -> None:
    vertices = app.drawing.vertices
    if len(vertices) >= MIN_VERTICES and point.distance_to(vertices[0]) <= closure_radius(app):
        finish_polygon(app)
        return
    vertices.append(point)


def area_on_motion(app: "ViewerState", point: Point) -> None:
    # Rubber band from the last vertex to the pointer
    app.drawing.probe = point if app.drawing.vertices else None


def finish_polygon(app: "ViewerState") -> None:
    vertices = app.drawing.vertices
    app.drawing.vertices = []
    app.drawing.probe = None
    if len(vertices) < MIN_VERTICES:
        return
    app.add_polygon(Polygon.closed(vertices))


def fill_color_for(index: int) -> str:
    return POLYGON_FILL_COLORS[index % len(POLYGON_FILL_COLORS)]
