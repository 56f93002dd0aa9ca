from __future__ import annotations

from typing import TYPE_CHECKING

from PIL import Image, ImageDraw

from ..core.model import Point

try:
    import tkinter as tk
except ImportError:  # pragma: no cover - preview only in GUI environments
    tk = None  # type: ignore

if TYPE_CHECKING:
    from ..gui_client import ViewerWindow

PROBE_MARGIN = 2  # extra context around the sampling square, in window widths


def probe_image(src: Image.Image, point: Point, half_width: int, size: int = 120) -> Image.Image:
    """Magnified neighbourhood of ``point`` with the sampling square outlined."""
    region = max(2, half_width * 2 * PROBE_MARGIN)
    left = int(point.x) - region // 2
    upper = int(point.y) - region // 2
    crop = src.crop((left, upper, left + region, upper + region))  # pads outside with black
    zoomed = crop.resize((size, size), Image.NEAREST)
    draw = ImageDraw.Draw(zoomed)
    factor = size / region
    sx0 = (int(point.x) - half_width - left) * factor
    sy0 = (int(point.y) - half_width - upper) * factor
    sx1 = sx0 + 2 * half_width * factor
    sy1 = sy0 + 2 * half_width * factor
    draw.rectangle((sx0, sy0, sx1, sy1), outline='white', width=2)
    cx, cy = (sx0 + sx1) / 2, (sy0 + sy1) / 2
    draw.line([(cx - 4, cy), (cx + 4, cy)], fill='red', width=1)
    draw.line([(cx, cy - 4), (cx, cy + 4)], fill='red', width=1)
    return zoomed


def show_probe_preview(win: "ViewerWindow", point: Point) -> None:
    if tk is None or win.source_image is None:
        return
    half = int(win.state.config['sample_half_width'])
    zoomed = probe_image(win.source_image, point, half, win.probe_size)
    from PIL import ImageTk
    preview_img = ImageTk.PhotoImage(zoomed)
    if win.probe_win is None or not win.probe_win.winfo_exists():
        win.probe_win = tk.Toplevel(win.root)
        win.probe_win.title("Sonda tisular")
        win.probe_win.resizable(False, False)
        win.probe_win.transient(win.root)
        win.probe_label = tk.Label(win.probe_win, image=preview_img)
        win.probe_label.image = preview_img
        win.probe_label.pack()
    else:
        win.probe_label.config(image=preview_img)
        win.probe_label.image = preview_img
    abs_x = win.root.winfo_pointerx()
    abs_y = win.root.winfo_pointery()
    win.probe_win.geometry(f"+{abs_x+20}+{abs_y+20}")


def hide_probe_preview(win: "ViewerWindow") -> None:
    if win.probe_win and win.probe_win.winfo_exists():
        win.probe_win.destroy()
    win.probe_win = None
    win.probe_label = None
