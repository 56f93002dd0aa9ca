from __future__ import annotations

import base64
import binascii
import io
import logging
import urllib.parse
from pathlib import Path
from typing import Tuple

import pymupdf as fitz
import requests
from PIL import Image

logger = logging.getLogger(__name__)

PDF_MAGIC = b'%PDF'


class ImageLoadError(Exception):
    """Raised when a source image cannot be fetched or decoded."""


def _pdf_page_to_image(pdf_bytes: bytes, page_number: int = 0) -> Image.Image:
    """Render the specified page of a PDF to a PIL Image."""
    doc = fitz.open(stream=pdf_bytes, filetype='pdf')
    if page_number < 0 or page_number >= len(doc):
        raise ValueError(f"Invalid page number {page_number} for PDF with {len(doc)} pages")
    page = doc.load_page(page_number)
    zoom = 2
    mat = fitz.Matrix(zoom, zoom)
    pix = page.get_pixmap(matrix=mat)
    mode = 'RGB' if pix.alpha == 0 else 'RGBA'
    return Image.frombytes(mode, [pix.width, pix.height], pix.samples)


def _decode_data_uri(image_ref: str) -> bytes:
    header, _, payload = image_ref.partition(',')
    if ';base64' in header:
        return base64.b64decode(payload, validate=True)
    return urllib.parse.unquote_to_bytes(payload)


def read_image_bytes(image_ref: str, timeout: float = 10) -> bytes:
    """Return the raw bytes behind a path, ``http(s)`` URL or ``data:`` URI."""
    try:
        if image_ref.startswith('data:'):
            return _decode_data_uri(image_ref)
        if image_ref.startswith(('http://', 'https://')):
            response = requests.get(image_ref, timeout=timeout)
            response.raise_for_status()
            return response.content
        return Path(image_ref).expanduser().read_bytes()
    except (OSError, binascii.Error, requests.RequestException) as exc:
        raise ImageLoadError(f"Failed to read image {image_ref[:80]}: {exc}") from exc


def fit_image(img: Image.Image, max_size: Tuple[int, int]) -> Image.Image:
    max_w, max_h = max_size
    scale = min(max_w / img.width, max_h / img.height, 1.0)
    if scale >= 1.0:
        return img
    new_size = (max(1, int(img.width * scale)), max(1, int(img.height * scale)))
    try:
        resample = Image.Resampling.LANCZOS
    except AttributeError:
        resample = Image.LANCZOS
    return img.resize(new_size, resample)


def load_source_image(image_ref: str, max_size: Tuple[int, int] = (1200, 800), timeout: float = 10) -> Image.Image:
    """Load a source image (or a PDF's first page) and fit it into ``max_size``.

    The fitted image defines image space for annotations, so ``max_size``
    must stay the same between sessions for stored coordinates to line up.
    """
    data = read_image_bytes(image_ref, timeout=timeout)
    try:
        if data.startswith(PDF_MAGIC):
            img = _pdf_page_to_image(data)
        else:
            with Image.open(io.BytesIO(data)) as opened:
                img = opened.convert('RGB')
    except (OSError, ValueError, RuntimeError) as exc:
        raise ImageLoadError(f"Failed to decode image: {exc}") from exc
    fitted = fit_image(img.convert('RGB'), max_size)
    logger.debug("Loaded %s at %sx%s (fitted to %sx%s)", image_ref[:80], img.width, img.height,
                 fitted.width, fitted.height)
    return fitted


def encode_png(img: Image.Image) -> bytes:
    """PNG bytes of the image, as handed to the analyze callback."""
    buffer = io.BytesIO()
    img.save(buffer, format='PNG')
    return buffer.getvalue()
