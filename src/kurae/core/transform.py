"""Viewport transform shared by the source image and its annotation overlay.

Annotations are stored in image space: the pixel grid of the fitted source
image at zoom 1, before pan and rotation.  Rendering sends both the image and
every overlay point through :meth:`ViewerTransform.to_display`, so overlays
follow rotation without their stored coordinates ever changing.  The pointer
mapping (:func:`map_pointer`) undoes only the zoom relative to the displayed
image's bounding box; rotation is deliberately left uncompensated because the
overlay already lives inside the same transform.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Tuple

from PIL import Image, ImageEnhance, ImageOps

from .model import Point

SCALE_MIN = 0.5
SCALE_MAX = 5.0
FILTER_LEVELS: Tuple[int, ...] = (100, 125, 150)
GRID_SPACING = 20  # image-space units

# Exact unit vectors for quarter turns (clockwise, y axis pointing down)
_ROTATIONS = {
    0: (1, 0),
    90: (0, 1),
    180: (-1, 0),
    270: (0, -1),
}


class ImageBox(NamedTuple):
    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top


def map_pointer(client_x: float, client_y: float, box_left: float, box_top: float, scale: float) -> Point:
    """Convert a pointer position into image space relative to the displayed image box."""
    return Point((client_x - box_left) / scale, (client_y - box_top) / scale)


def clamp_scale(value: float) -> float:
    return min(max(SCALE_MIN, value), SCALE_MAX)


def next_filter_level(current: int) -> int:
    """100 -> 125 -> 150 -> 100."""
    try:
        idx = FILTER_LEVELS.index(current)
    except ValueError:
        return FILTER_LEVELS[0]
    return FILTER_LEVELS[(idx + 1) % len(FILTER_LEVELS)]


@dataclass
class ViewerTransform:
    scale: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0
    rotation_deg: int = 0
    brightness: int = 100
    contrast: int = 100
    invert: bool = False
    grayscale: bool = False
    show_grid: bool = False

    def reset(self) -> None:
        self.scale = 1.0
        self.pan_x = 0.0
        self.pan_y = 0.0
        self.rotation_deg = 0
        self.brightness = 100
        self.contrast = 100
        self.invert = False
        self.grayscale = False
        self.show_grid = False

    def is_default(self) -> bool:
        return self == ViewerTransform()

    def to_display(self, point: Point, image_size: Tuple[int, int], origin: Tuple[float, float]) -> Tuple[float, float]:
        """Map an image-space point to viewport coordinates.

        ``origin`` is the viewport position the image centre sits on when the
        pan offset is zero.
        """
        w, h = image_size
        cos_r, sin_r = _ROTATIONS[self.rotation_deg % 360]
        dx = (point.x - w / 2) * self.scale
        dy = (point.y - h / 2) * self.scale
        rx = dx * cos_r - dy * sin_r
        ry = dx * sin_r + dy * cos_r
        return origin[0] + self.pan_x + rx, origin[1] + self.pan_y + ry

    def display_box(self, image_size: Tuple[int, int], origin: Tuple[float, float]) -> ImageBox:
        """Axis-aligned bounding box of the displayed (scaled, rotated) image."""
        w, h = image_size
        corners = [
            self.to_display(Point(x, y), image_size, origin)
            for x, y in ((0, 0), (w, 0), (w, h), (0, h))
        ]
        xs = [c[0] for c in corners]
        ys = [c[1] for c in corners]
        return ImageBox(min(xs), min(ys), max(xs), max(ys))

    def pointer_to_image(self, client_x: float, client_y: float,
                         image_size: Tuple[int, int], origin: Tuple[float, float]) -> Point:
        box = self.display_box(image_size, origin)
        return map_pointer(client_x, client_y, box.left, box.top, self.scale)


def apply_filters(img: Image.Image, transform: ViewerTransform) -> Image.Image:
    """Apply brightness, contrast, invert and grayscale in that order."""
    out = img.convert('RGB')
    if transform.brightness != 100:
        out = ImageEnhance.Brightness(out).enhance(transform.brightness / 100.0)
    if transform.contrast != 100:
        out = ImageEnhance.Contrast(out).enhance(transform.contrast / 100.0)
    if transform.invert:
        out = ImageOps.invert(out)
    if transform.grayscale:
        out = ImageOps.grayscale(out).convert('RGB')
    return out


def render_view(img: Image.Image, transform: ViewerTransform) -> Image.Image:
    """Return the image as displayed: filtered, rotated and zoomed."""
    out = apply_filters(img, transform)
    if transform.rotation_deg % 360:
        out = out.rotate(-transform.rotation_deg, expand=True)
    new_size = (
        max(1, int(round(out.width * transform.scale))),
        max(1, int(round(out.height * transform.scale))),
    )
    if new_size != out.size:
        try:
            resample = Image.Resampling.LANCZOS
        except AttributeError:
            resample = Image.LANCZOS
        out = out.resize(new_size, resample)
    return out
