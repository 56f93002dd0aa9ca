from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ...core.state import ViewerState


def pan_on_start(app: "ViewerState", x: float, y: float) -> None:
    """Anchor a drag at the offset between the pointer and the current pan."""
    app.drawing.dragging = True
    app.drawing.drag_anchor = (x - app.transform.pan_x, y - app.transform.pan_y)


def pan_on_move(app: "ViewerState", x: float, y: float) -> None:
    if not app.drawing.dragging:
        return
    anchor_x, anchor_y = app.drawing.drag_anchor
    app.transform.pan_x = x - anchor_x
    app.transform.pan_y = y - anchor_y


def pan_on_end(app: "ViewerState") -> None:
    app.drawing.dragging = False


def pan_by(app: "ViewerState", dx: float, dy: float) -> None:
    app.transform.pan_x += dx
    app.transform.pan_y += dy
