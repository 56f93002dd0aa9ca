from __future__ import annotations

import enum
import logging
import math
import threading
from typing import Callable, Optional, Tuple

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)


class RasterUnavailable(Exception):
    """Raised when pixels are requested before the raster exists or after its build failed."""


class RasterStatus(enum.Enum):
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


class PixelSource:
    """Immutable off-screen RGB copy of the source image.

    Built once per image load.  Until the build finishes (or if it failed),
    every read raises :class:`RasterUnavailable`.
    """

    def __init__(self) -> None:
        self._pixels: Optional[np.ndarray] = None
        self._status = RasterStatus.PENDING
        self._error: Optional[BaseException] = None
        self._done = threading.Event()

    @classmethod
    def from_image(cls, img: Image.Image) -> "PixelSource":
        source = cls()
        source._build(lambda: img)
        return source

    @classmethod
    def build_async(cls, loader: Callable[[], Image.Image],
                    on_done: Optional[Callable[["PixelSource"], None]] = None) -> "PixelSource":
        """Start building the raster on a worker thread and return the pending handle."""
        source = cls()

        def run() -> None:
            source._build(loader)
            if on_done is not None:
                on_done(source)

        threading.Thread(target=run, name="kurae-raster", daemon=True).start()
        return source

    def _build(self, loader: Callable[[], Image.Image]) -> None:
        try:
            img = loader()
            pixels = np.asarray(img.convert('RGB'), dtype=np.uint8).copy()
            pixels.setflags(write=False)
        except Exception as exc:
            logger.warning("Pixel source could not be built: %s", exc, exc_info=True)
            self._error = exc
            self._status = RasterStatus.FAILED
        else:
            self._pixels = pixels
            self._status = RasterStatus.READY
        finally:
            self._done.set()

    @property
    def status(self) -> RasterStatus:
        return self._status

    @property
    def ready(self) -> bool:
        return self._status is RasterStatus.READY

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._done.wait(timeout)

    @property
    def size(self) -> Tuple[int, int]:
        pixels = self._require()
        return pixels.shape[1], pixels.shape[0]

    def _require(self) -> np.ndarray:
        if self._status is RasterStatus.FAILED:
            raise RasterUnavailable(f"raster build failed: {self._error}")
        if self._pixels is None:
            raise RasterUnavailable("raster is still loading")
        return self._pixels

    def window(self, cx: float, cy: float, half_width: int) -> np.ndarray:
        """Return the ``2*half_width`` square around (cx, cy), clamped to the raster.

        The result has shape (rows, cols, 3) and may be empty when the window
        lies entirely outside the image.
        """
        pixels = self._require()
        h, w = pixels.shape[:2]
        left = math.floor(cx) - half_width
        top = math.floor(cy) - half_width
        x0 = max(0, left)
        y0 = max(0, top)
        x1 = min(w, left + 2 * half_width)
        y1 = min(h, top + 2 * half_width)
        if x1 <= x0 or y1 <= y0:
            return pixels[0:0, 0:0]
        return pixels[y0:y1, x0:x1]
