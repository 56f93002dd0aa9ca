from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ...core.state import ViewerState


# Only the view turns; stored annotations keep their image-space coordinates
# and follow the image because they are drawn through the same transform.
def rotate_right(app: "ViewerState") -> None:
    app.transform.rotation_deg = (app.transform.rotation_deg + 90) % 360


def rotate_left(app: "ViewerState") -> None:
    app.transform.rotation_deg = (app.transform.rotation_deg - 90) % 360
