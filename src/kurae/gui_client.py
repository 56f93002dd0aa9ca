#!/usr/bin/env python3
"""
Tkinter clinical image viewer for Kurae.

The window shows one source image with pan, zoom, 90° rotation and display
filters, and lets clinicians annotate it:

  * Measure: drag a line; the first line of an uncalibrated image asks for
    its real length in millimetres and calibrates every other measurement.
  * Area: click vertices, click near the first one to close the polygon.
  * Texture: click to classify the wound bed under the pointer.
  * Undo the newest annotation, reset everything, print a summary, chart the
    tissue composition or export all layers to CSV.

Annotations are saved after every change and reloaded the next time the same
image is opened.  All logic lives in :class:`kurae.core.state.ViewerState`;
this module only renders it and forwards input events.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Tuple

from PIL import Image

try:
    import tkinter as tk
    from tkinter import filedialog, messagebox, simpledialog
    from PIL import ImageTk
except ImportError:
    # When Tkinter is unavailable (e.g. headless environment), set tk to None.
    tk = None  # type: ignore

from .app_io.export_mod import export_csv
from .app_io.store import AnnotationStore, AnnotationStoreError
from .core.config import WINDOW_TITLE
from .core.model import Point
from .core.state import Tool, ViewerState, ViewMode
from .core.transform import GRID_SPACING, ImageBox, render_view
from .features.analysis.raster import PixelSource, RasterStatus
from .features.editing import draw, measure, texture
from .file_io import encode_png
from .ui.preview import hide_probe_preview, show_probe_preview
from .visualization.tissue_chart import generate_tissue_chart

logger = logging.getLogger(__name__)

TOOL_LABELS: Dict[Tool, str] = {
    Tool.MOVE: "Mover",
    Tool.MEASURE: "Medir",
    Tool.AREA: "Área",
    Tool.TEXTURE: "Textura",
}
TOOL_CURSORS: Dict[Tool, str] = {
    Tool.MOVE: "fleur",
    Tool.MEASURE: "crosshair",
    Tool.AREA: "tcross",
    Tool.TEXTURE: "dotbox",
}
GRID_COLOR = '#ef4444'
SAMPLE_RADIUS = 5
PAN_KEYS: Dict[str, Tuple[int, int]] = {
    "<Left>": (-50, 0),
    "<Right>": (50, 0),
    "<Up>": (0, -50),
    "<Down>": (0, 50),
}


class ViewerWindow:
    """Main class encapsulating the Tkinter viewer."""

    def __init__(
        self,
        root: "tk.Tk",
        image_ref: str,
        source_image: Image.Image,
        store: AnnotationStore,
        config: dict,
        view_mode: ViewMode = ViewMode.DOCTOR,
        on_analyze: Optional[Callable[[bytes], None]] = None,
        on_close: Optional[Callable[[], None]] = None,
    ) -> None:
        self.root = root
        self.root.title(WINDOW_TITLE)
        self.root.geometry("1200x860")
        self.source_image = source_image
        self._external_close = on_close
        self.photo: Optional[ImageTk.PhotoImage] = None
        self._photo_key: Optional[Tuple] = None
        self.probe_win: Optional[tk.Toplevel] = None
        self.probe_label: Optional[tk.Label] = None
        self.probe_size: int = 120
        self._reference_open = False

        try:
            annotations = store.load(image_ref)
        except AnnotationStoreError as e:
            messagebox.showerror("Anotaciones", f"No se pudieron cargar las anotaciones: {e}")
            annotations = None

        pixel_source = PixelSource.build_async(lambda: source_image)
        self.state = ViewerState(
            image_ref=image_ref,
            image_size=source_image.size,
            annotations=annotations,
            store=store,
            pixel_source=pixel_source,
            view_mode=view_mode,
            config=config,
            notify=self.show_status_message,
            confirm=lambda msg: messagebox.askyesno("Reset", msg),
            on_close=self._on_state_close,
            on_analyze=on_analyze,
            image_data=lambda: encode_png(self.source_image),
        )

        main_frame = tk.Frame(root)
        main_frame.pack(fill=tk.BOTH, expand=True)
        self.canvas = tk.Canvas(main_frame, bg='#f9fafb', highlightthickness=0)
        self.canvas.pack(side=tk.TOP, fill=tk.BOTH, expand=True)
        toolbar = tk.Frame(main_frame)
        toolbar.pack(side=tk.BOTTOM, fill=tk.X)
        self.tool_buttons: Dict[Tool, tk.Button] = {}
        self._build_toolbar(toolbar)
        # Status bar (transient notifications, zoom, raster state)
        status_frame = tk.Frame(main_frame)
        status_frame.pack(side=tk.BOTTOM, fill=tk.X)
        self.status_label = tk.Label(status_frame, text="", fg='gray')
        self.status_label.pack(side=tk.LEFT, padx=6)
        self.info_label = tk.Label(status_frame, text="", fg='gray')
        self.info_label.pack(side=tk.RIGHT, padx=6)

        self.canvas.bind("<ButtonPress-1>", self.on_press)
        self.canvas.bind("<B1-Motion>", self.on_motion)
        self.canvas.bind("<Motion>", self.on_motion)
        self.canvas.bind("<ButtonRelease-1>", self.on_release)
        self.canvas.bind("<Leave>", self.on_release)
        self.canvas.bind("<MouseWheel>", self.on_wheel)
        self.canvas.bind("<Button-4>", lambda e: self._guarded(self.state.wheel, -120))
        self.canvas.bind("<Button-5>", lambda e: self._guarded(self.state.wheel, 120))
        self.canvas.bind("<Configure>", lambda e: self.redraw())
        self.root.bind("<Escape>", lambda e: self._guarded(self.state.escape))
        self.root.bind("<Control-z>", lambda e: self._guarded(self.state.undo))
        for key, (dx, dy) in PAN_KEYS.items():
            self.root.bind(key, lambda e, d=(dx, dy): self._guarded(self.state.pan_by, *d))
        self.root.protocol("WM_DELETE_WINDOW", self.state.close)
        self.root.after(200, self._poll_raster)
        self.update_buttons_state()

    # ----- Toolbar -----
    def _build_toolbar(self, frame: "tk.Frame") -> None:
        tools = tk.Frame(frame)
        tools.pack(side=tk.LEFT, padx=4, pady=4)
        for tool in Tool:
            btn = tk.Button(tools, text=TOOL_LABELS[tool], command=lambda t=tool: self.select_tool(t))
            btn.pack(side=tk.LEFT, padx=1)
            self.tool_buttons[tool] = btn

        adjust = tk.Frame(frame)
        adjust.pack(side=tk.LEFT, padx=8)
        for text, action in (
            ("Brillo", self.state.cycle_brightness),
            ("Contraste", self.state.cycle_contrast),
            ("Invertir", self.state.toggle_invert),
            ("Grises", self.state.toggle_grayscale),
        ):
            tk.Button(adjust, text=text, command=lambda a=action: self._guarded(a)).pack(side=tk.LEFT, padx=1)

        view = tk.Frame(frame)
        view.pack(side=tk.LEFT, padx=8)
        for text, action in (
            ("−", self.state.zoom_out),
            ("+", self.state.zoom_in),
            ("⟲", self.state.rotate_left),
            ("⟳", self.state.rotate_right),
            ("Cuadrícula", self.state.toggle_grid),
        ):
            tk.Button(view, text=text, command=lambda a=action: self._guarded(a)).pack(side=tk.LEFT, padx=1)

        actions = tk.Frame(frame)
        actions.pack(side=tk.RIGHT, padx=4)
        tk.Button(actions, text="Calibrar", command=self.calibrate_last_line).pack(side=tk.LEFT, padx=1)
        tk.Button(actions, text="Deshacer", command=lambda: self._guarded(self.state.undo)).pack(side=tk.LEFT, padx=1)
        tk.Button(actions, text="Reset", command=lambda: self._guarded(self.state.request_reset)).pack(side=tk.LEFT, padx=1)
        tk.Button(actions, text="Resumen", command=self.show_summary).pack(side=tk.LEFT, padx=1)
        tk.Button(actions, text="Gráfico", command=self.show_tissue_chart).pack(side=tk.LEFT, padx=1)
        tk.Button(actions, text="Exportar CSV", command=self.export_csv).pack(side=tk.LEFT, padx=1)
        self.analyze_btn = tk.Button(actions, text="Analizar IA", command=self.request_analysis)
        self.analyze_btn.pack(side=tk.LEFT, padx=1)

    def update_buttons_state(self) -> None:
        for tool, btn in self.tool_buttons.items():
            btn.config(relief=tk.SUNKEN if tool is self.state.tool else tk.RAISED)
        self.analyze_btn.config(state=tk.NORMAL if self.state.analysis_available else tk.DISABLED)
        self.canvas.config(cursor=TOOL_CURSORS[self.state.tool])

    def select_tool(self, tool: Tool) -> None:
        if self.state.select_tool(tool):
            hide_probe_preview(self)
        self.update_buttons_state()
        self.redraw()

    # ----- Event plumbing -----
    def _guarded(self, action: Callable, *args) -> None:
        try:
            action(*args)
        except AnnotationStoreError as e:
            messagebox.showerror("Anotaciones", str(e))
        if not self.state.closed:
            self.update_buttons_state()
            self.redraw()

    def origin(self) -> Tuple[float, float]:
        return self.canvas.winfo_width() / 2, self.canvas.winfo_height() / 2

    def image_box(self) -> ImageBox:
        return self.state.transform.display_box(self.state.image_size, self.origin())

    def on_press(self, event) -> None:
        self._guarded(self.state.pointer_down, event.x, event.y, self.image_box())

    def on_motion(self, event) -> None:
        self.state.pointer_move(event.x, event.y, self.image_box())
        if self.state.tool is Tool.TEXTURE and self.state.drawing.probe is not None:
            show_probe_preview(self, self.state.drawing.probe)
        self.redraw()

    def on_release(self, event) -> None:
        self._guarded(self.state.pointer_up, event.x, event.y, self.image_box())
        if self.state.pending_reference is not None and not self._reference_open:
            self.root.after_idle(self.prompt_reference)

    def on_wheel(self, event) -> None:
        # Tk reports +120 per notch away from the user; the DOM deltaY is the opposite
        self._guarded(self.state.wheel, -event.delta)

    def _poll_raster(self) -> None:
        source = self.state.pixel_source
        if source is None or self.state.closed:
            return
        if source.status is RasterStatus.PENDING:
            self.root.after(200, self._poll_raster)
            return
        if source.status is RasterStatus.FAILED:
            self.show_status_message("Muestreo tisular no disponible para esta imagen", 0)

    # ----- Calibration prompt -----
    def calibrate_last_line(self) -> None:
        """Re-open the reference prompt for the newest line."""
        lines = self.state.annotations.lines
        if not lines:
            messagebox.showwarning("Calibrar referencia", "Dibuja primero una línea de referencia.")
            return
        if self.state.request_reference(lines[-1].id) and not self._reference_open:
            self.prompt_reference()

    def prompt_reference(self) -> None:
        if self.state.pending_reference is None:
            return
        self._reference_open = True
        state = self.state

        class ReferenceDialog(simpledialog.Dialog):
            def body(self, master):  # type: ignore[override]
                tk.Label(master, text="Calibrar referencia", font=("TkDefaultFont", 10, "bold")).grid(
                    row=0, column=0, columnspan=2, sticky="w", padx=6, pady=(6, 2))
                tk.Label(master, text="Introduce la longitud real de la línea dibujada\n"
                                      "para calibrar el resto de mediciones.", justify=tk.LEFT).grid(
                    row=1, column=0, columnspan=2, sticky="w", padx=6)
                tk.Label(master, text="Longitud (mm):").grid(row=2, column=0, sticky="e", padx=6, pady=6)
                self.len_var = tk.StringVar(value="")
                self.len_entry = tk.Entry(master, textvariable=self.len_var, width=12)
                self.len_entry.grid(row=2, column=1, sticky="w", padx=6, pady=6)
                return self.len_entry

            def validate(self) -> bool:  # type: ignore[override]
                try:
                    ok = state.confirm_reference(self.len_var.get())
                except AnnotationStoreError as e:
                    messagebox.showerror("Anotaciones", str(e))
                    return True
                if not ok:
                    messagebox.showerror("Calibrar referencia", "La longitud debe ser un número mayor que cero.")
                return ok

        ReferenceDialog(self.root, title="Calibrar referencia")
        # Closing the dialog without a valid length leaves the image uncalibrated
        self.state.dismiss_reference()
        self._reference_open = False
        self.redraw()

    # ----- Notifications -----
    def show_status_message(self, msg: str, duration_ms: Optional[int] = None) -> None:
        """Show a transient status message below the canvas."""
        if duration_ms is None:
            duration_ms = int(self.state.config['notification_ms'])
        self.status_label.config(text=msg)
        if duration_ms > 0:
            self.root.after(duration_ms, lambda: self.status_label.config(text=""))

    # ----- Reports -----
    def show_summary(self) -> None:
        messagebox.showinfo("Resumen clínico", self.state.summary())

    def show_tissue_chart(self) -> None:
        samples = self.state.annotations.tissue_samples
        if not samples:
            messagebox.showwarning("Gráfico", "Toma al menos una muestra de textura.")
            return
        try:
            chart = generate_tissue_chart(samples)
        except (ValueError, RuntimeError) as e:
            messagebox.showerror("Gráfico", f"No se pudo generar el gráfico: {e}")
            return
        top = tk.Toplevel(self.root)
        top.title("Composición tisular")
        photo = ImageTk.PhotoImage(chart)
        lbl = tk.Label(top, image=photo)
        lbl.image = photo
        lbl.pack()

    def export_csv(self) -> None:
        if self.state.annotations.is_empty():
            messagebox.showwarning("Exportar", "No hay anotaciones que exportar.")
            return
        path = filedialog.asksaveasfilename(title="Exportar CSV", defaultextension='.csv',
                                            filetypes=[("CSV", "*.csv")])
        if not path:
            return
        try:
            rows = export_csv(self.state.annotations, path)
        except OSError as e:
            messagebox.showerror("Exportar", f"No se pudo exportar: {e}")
            return
        self.show_status_message(f"{rows} anotaciones exportadas")

    def request_analysis(self) -> None:
        if self.state.request_analysis():
            self.show_status_message("Imagen enviada para análisis")

    # ----- Lifecycle -----
    def _on_state_close(self) -> None:
        hide_probe_preview(self)
        if self._external_close is not None:
            self._external_close()
        else:
            self.root.destroy()

    # ----- Drawing and Display -----
    def _display(self, point: Point) -> Tuple[float, float]:
        return self.state.transform.to_display(point, self.state.image_size, self.origin())

    def _flat(self, points: List[Point]) -> List[float]:
        coords: List[float] = []
        for p in points:
            coords.extend(self._display(p))
        return coords

    def redraw(self) -> None:
        """Clear and redraw the image and every overlay through the same transform."""
        state = self.state
        tr = state.transform
        self.canvas.delete("all")
        key = (tr.scale, tr.rotation_deg, tr.brightness, tr.contrast, tr.invert, tr.grayscale)
        if key != self._photo_key:
            self.photo = ImageTk.PhotoImage(render_view(self.source_image, tr))
            self._photo_key = key
        box = self.image_box()
        self.canvas.create_image(box.left, box.top, anchor=tk.NW, image=self.photo)

        if tr.show_grid:
            self._draw_grid(box)
        ann = state.annotations
        for idx, poly in enumerate(ann.polygons):
            coords = self._flat(poly.points)
            self.canvas.create_polygon(coords, fill=draw.fill_color_for(idx), outline='', stipple='gray25')
            self.canvas.create_polygon(coords, fill='', outline=measure.LINE_COLOR, width=2)
            anchor = poly.label_anchor
            if anchor is not None:
                self._label(self._display(anchor), state.area_label(poly))
        for line in ann.lines:
            (x1, y1), (x2, y2) = self._display(line.start), self._display(line.end)
            self.canvas.create_line(x1, y1, x2, y2, fill=measure.LINE_HALO_COLOR, width=4)
            self.canvas.create_line(x1, y1, x2, y2, fill=measure.LINE_COLOR, width=2)
            r = measure.ENDPOINT_RADIUS
            for x, y in ((x1, y1), (x2, y2)):
                self.canvas.create_oval(x - r, y - r, x + r, y + r, fill=measure.LINE_COLOR, outline='white')
            text = state.length_label(line)
            if line.id == ann.reference_line_id:
                text += " (ref)"
            self._label(self._display(line.midpoint), text)
        for sample in ann.tissue_samples:
            x, y = self._display(Point(sample.x, sample.y))
            r = SAMPLE_RADIUS
            self.canvas.create_oval(x - r, y - r, x + r, y + r, fill=sample.color, outline='white', width=2)
            self._label((x, y - 14), f"{sample.label} G{sample.granulation} E{sample.slough} N{sample.necrosis}")

        self._draw_in_progress()
        self.info_label.config(text=self._info_text())

    def _draw_in_progress(self) -> None:
        drawing = self.state.drawing
        if drawing.tool is Tool.MEASURE and drawing.line_start is not None and drawing.line_end is not None:
            (x1, y1), (x2, y2) = self._display(drawing.line_start), self._display(drawing.line_end)
            self.canvas.create_line(x1, y1, x2, y2, fill=measure.LINE_COLOR, width=2, dash=measure.PREVIEW_DASH)
        elif drawing.tool is Tool.AREA and drawing.vertices:
            coords = self._flat(drawing.vertices)
            if len(coords) >= 4:
                self.canvas.create_line(coords, fill=draw.DRAW_MARKER_FILL, width=2)
            if drawing.probe is not None:
                lx, ly = coords[-2], coords[-1]
                px, py = self._display(drawing.probe)
                self.canvas.create_line(lx, ly, px, py, fill=draw.DRAW_MARKER_FILL, width=2,
                                        dash=draw.DRAW_PREVIEW_DASH)
            for idx, vertex in enumerate(drawing.vertices):
                cx, cy = self._display(vertex)
                radius = draw.DRAW_MARKER_RADIUS + (draw.FIRST_MARKER_EXTRA if idx == 0 else 0)
                self.canvas.create_oval(cx - radius, cy - radius, cx + radius, cy + radius,
                                        fill=draw.DRAW_MARKER_FILL, outline=draw.DRAW_MARKER_OUTLINE, width=2)
        elif drawing.tool is Tool.TEXTURE and drawing.probe is not None:
            half = int(self.state.config['sample_half_width'])
            corners = [Point(drawing.probe.x + dx, drawing.probe.y + dy)
                       for dx, dy in ((-half, -half), (half, -half), (half, half), (-half, half))]
            self.canvas.create_polygon(self._flat(corners), fill='', outline=texture.PROBE_COLOR, width=1)

    def _draw_grid(self, box: ImageBox) -> None:
        step = GRID_SPACING * self.state.transform.scale
        x = box.left
        while x <= box.right:
            self.canvas.create_line(x, box.top, x, box.bottom, fill=GRID_COLOR, stipple='gray25')
            x += step
        y = box.top
        while y <= box.bottom:
            self.canvas.create_line(box.left, y, box.right, y, fill=GRID_COLOR, stipple='gray25')
            y += step

    def _label(self, pos: Tuple[float, float], text: str) -> None:
        x, y = pos
        item = self.canvas.create_text(x, y, text=text, fill='white', font=("TkDefaultFont", 9, "bold"))
        bbox = self.canvas.bbox(item)
        if bbox:
            bg = self.canvas.create_rectangle(bbox[0] - 3, bbox[1] - 1, bbox[2] + 3, bbox[3] + 1,
                                              fill='black', outline='')
            self.canvas.tag_lower(bg, item)

    def _info_text(self) -> str:
        tr = self.state.transform
        ratio = self.state.annotations.calibration_ratio
        cal = f"{ratio:.2f} px/mm" if ratio else "sin calibrar"
        return f"Zoom {round(tr.scale * 100)}% · {tr.rotation_deg}° · {cal}"


def open_viewer(
    image_ref: str,
    source_image: Image.Image,
    store: AnnotationStore,
    config: dict,
    view_mode: ViewMode = ViewMode.DOCTOR,
    on_analyze: Optional[Callable[[bytes], None]] = None,
) -> None:
    if tk is None:
        # Tkinter is unavailable (e.g. headless environment)
        raise RuntimeError("Tkinter is not available in this environment. Run the viewer on a system with a graphical desktop and Tk installed.")
    root = tk.Tk()
    ViewerWindow(root, image_ref, source_image, store, config, view_mode=view_mode, on_analyze=on_analyze)
    root.mainloop()
