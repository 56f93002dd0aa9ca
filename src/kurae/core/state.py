"""Viewer state aggregate and the tool state machine.

Every change to the viewer goes through a method of :class:`ViewerState`;
rendering code only reads it.  Pointer handling is dispatched on the active
:class:`Tool` to the per-tool functions in ``kurae.features``.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .config import DEFAULT_CONFIG
from .model import AnnotationSet, LinearMeasurement, Point, Polygon, TissueSample
from .transform import ImageBox, ViewerTransform, map_pointer
from ..features.analysis.raster import PixelSource
from ..features.editing import draw, measure, scale, texture, undo
from ..features.navigation import pan, rotate, zoom
from ..features.report.summary import generate_summary

logger = logging.getLogger(__name__)

PATIENT_MODE_NOTICE = "Función exclusiva para personal sanitario"
RESET_PROMPT = "¿Borrar todas las mediciones y restablecer la vista?"

Entity = Union[LinearMeasurement, Polygon, TissueSample]


class Tool(enum.Enum):
    MOVE = "move"
    MEASURE = "measure"
    AREA = "area"
    TEXTURE = "texture"


class ViewMode(enum.Enum):
    DOCTOR = "doctor"
    PATIENT = "patient"


@dataclass
class DrawingState:
    """In-progress geometry of the active tool; never persisted."""

    tool: Tool = Tool.MOVE
    # Move
    dragging: bool = False
    drag_anchor: Tuple[float, float] = (0.0, 0.0)
    # Measure
    line_start: Optional[Point] = None
    line_end: Optional[Point] = None
    # Area
    vertices: List[Point] = field(default_factory=list)
    # Texture (cosmetic only)
    probe: Optional[Point] = None

    def clear(self) -> None:
        self.dragging = False
        self.drag_anchor = (0.0, 0.0)
        self.line_start = None
        self.line_end = None
        self.vertices = []
        self.probe = None


class ViewerState:
    def __init__(
        self,
        image_ref: str,
        image_size: Tuple[int, int],
        annotations: Optional[AnnotationSet] = None,
        store: Optional[Any] = None,
        pixel_source: Optional[PixelSource] = None,
        view_mode: ViewMode = ViewMode.DOCTOR,
        config: Optional[Dict[str, Any]] = None,
        notify: Optional[Callable[[str], None]] = None,
        confirm: Optional[Callable[[str], bool]] = None,
        on_close: Optional[Callable[[], None]] = None,
        on_analyze: Optional[Callable[[bytes], None]] = None,
        image_data: Optional[Callable[[], bytes]] = None,
    ) -> None:
        self.image_ref = image_ref
        self.image_size = image_size
        self.annotations = annotations if annotations is not None else AnnotationSet()
        self.store = store
        self.pixel_source = pixel_source
        self.view_mode = view_mode
        self.config: Dict[str, Any] = dict(DEFAULT_CONFIG)
        if config:
            self.config.update(config)
        self.transform = ViewerTransform()
        self.drawing = DrawingState()
        self.pending_reference: Optional[int] = None
        self.closed = False
        self._notify = notify
        self._confirm = confirm
        self._on_close = on_close
        self._on_analyze = on_analyze
        self._image_data = image_data

    # ----- Notifications -----
    def notify(self, msg: str) -> None:
        logger.debug("Notification: %s", msg)
        if self._notify is not None:
            self._notify(msg)

    # ----- Tool selection -----
    @property
    def tool(self) -> Tool:
        return self.drawing.tool

    def select_tool(self, tool: Tool) -> bool:
        """Switch tools, discarding any uncommitted geometry."""
        if self.view_mode is ViewMode.PATIENT:
            self.notify(PATIENT_MODE_NOTICE)
            return False
        self.drawing.clear()
        self.drawing.tool = tool
        return True

    # ----- Pointer events -----
    def pointer_down(self, client_x: float, client_y: float, box: ImageBox) -> None:
        tool = self.drawing.tool
        if tool is Tool.MOVE:
            pan.pan_on_start(self, client_x, client_y)
            return
        point = map_pointer(client_x, client_y, box.left, box.top, self.transform.scale)
        if tool is Tool.MEASURE:
            measure.measure_on_press(self, point)
        elif tool is Tool.AREA:
            draw.area_on_press(self, point)
        elif tool is Tool.TEXTURE:
            texture.texture_on_press(self, point)
        else:
            raise ValueError(f"Unhandled tool: {tool!r}")

    def pointer_move(self, client_x: float, client_y: float, box: ImageBox) -> None:
        tool = self.drawing.tool
        if tool is Tool.MOVE:
            pan.pan_on_move(self, client_x, client_y)
            return
        point = map_pointer(client_x, client_y, box.left, box.top, self.transform.scale)
        if tool is Tool.MEASURE:
            measure.measure_on_motion(self, point)
        elif tool is Tool.AREA:
            draw.area_on_motion(self, point)
        elif tool is Tool.TEXTURE:
            texture.texture_on_motion(self, point)
        else:
            raise ValueError(f"Unhandled tool: {tool!r}")

    def pointer_up(self, client_x: float, client_y: float, box: ImageBox) -> None:
        tool = self.drawing.tool
        if tool is Tool.MOVE:
            pan.pan_on_end(self)
        elif tool is Tool.MEASURE:
            point = map_pointer(client_x, client_y, box.left, box.top, self.transform.scale)
            measure.measure_on_release(self, point)
        elif tool in (Tool.AREA, Tool.TEXTURE):
            pass
        else:
            raise ValueError(f"Unhandled tool: {tool!r}")

    # ----- Commits -----
    def add_line(self, line: LinearMeasurement) -> None:
        first_line = not self.annotations.lines
        self.annotations.lines.append(line)
        if first_line and self.annotations.calibration_ratio is None:
            self.pending_reference = line.id
        self.persist()

    def add_polygon(self, polygon: Polygon) -> None:
        self.annotations.polygons.append(polygon)
        self.persist()

    def add_tissue_sample(self, sample: TissueSample) -> None:
        self.annotations.tissue_samples.append(sample)
        self.persist()

    def persist(self) -> None:
        if self.store is not None:
            self.store.save(self.image_ref, self.annotations)

    # ----- Calibration -----
    def request_reference(self, line_id: int) -> bool:
        if self.view_mode is ViewMode.PATIENT:
            self.notify(PATIENT_MODE_NOTICE)
            return False
        if self.annotations.find_line(line_id) is None:
            return False
        self.pending_reference = line_id
        return True

    def confirm_reference(self, text: str) -> bool:
        """Apply the typed real length to the pending line; keep the prompt open when invalid."""
        if self.pending_reference is None:
            return False
        real_mm = scale.parse_length(text)
        if real_mm is None:
            return False
        if not scale.set_reference(self.annotations, self.pending_reference, real_mm):
            return False
        self.pending_reference = None
        self.persist()
        return True

    def dismiss_reference(self) -> None:
        self.pending_reference = None

    # ----- Undo / reset -----
    def undo(self) -> Optional[Entity]:
        removed = undo.undo_last(self.annotations)
        if removed is None:
            return None
        if isinstance(removed, LinearMeasurement) and self.pending_reference == removed.id:
            self.pending_reference = None
        self.persist()
        return removed

    def request_reset(self) -> bool:
        if self._confirm is not None and not self._confirm(RESET_PROMPT):
            return False
        self.reset()
        return True

    def reset(self) -> None:
        self.transform.reset()
        self.drawing.clear()
        self.drawing.tool = Tool.MOVE
        self.pending_reference = None
        self.annotations.clear()
        if self.store is not None:
            self.store.delete(self.image_ref)

    # ----- Viewport -----
    def pan_by(self, dx: float, dy: float) -> None:
        pan.pan_by(self, dx, dy)

    def zoom_in(self) -> None:
        zoom.zoom_in(self)

    def zoom_out(self) -> None:
        zoom.zoom_out(self)

    def zoom_by(self, delta: float) -> None:
        zoom.zoom_by(self, delta)

    def wheel(self, delta_y: float) -> None:
        zoom.wheel_zoom(self, delta_y)

    def rotate_right(self) -> None:
        rotate.rotate_right(self)

    def rotate_left(self) -> None:
        rotate.rotate_left(self)

    def cycle_brightness(self) -> None:
        zoom.cycle_brightness(self)

    def cycle_contrast(self) -> None:
        zoom.cycle_contrast(self)

    def toggle_invert(self) -> None:
        self.transform.invert = not self.transform.invert

    def toggle_grayscale(self) -> None:
        self.transform.grayscale = not self.transform.grayscale

    def toggle_grid(self) -> None:
        self.transform.show_grid = not self.transform.show_grid

    # ----- Keyboard / lifecycle -----
    def escape(self) -> None:
        if self.drawing.vertices:
            self.drawing.vertices = []
            return
        self.close()

    def close(self) -> None:
        if self.closed:
            return
        self.drawing.clear()
        self.transform.reset()
        self.pending_reference = None
        self.closed = True
        if self._on_close is not None:
            self._on_close()

    @property
    def analysis_available(self) -> bool:
        return self._on_analyze is not None and self._image_data is not None

    def request_analysis(self) -> bool:
        """Hand the current image to the analyze callback."""
        if not self.analysis_available:
            return False
        self._on_analyze(self._image_data())
        return True

    # ----- Read-only views -----
    def summary(self) -> str:
        return generate_summary(self.annotations)

    def length_label(self, line: LinearMeasurement) -> str:
        return scale.format_length(line.length_px, self.annotations.calibration_ratio)

    def area_label(self, polygon: Polygon) -> str:
        return scale.format_area(polygon.area_px, self.annotations.calibration_ratio)
