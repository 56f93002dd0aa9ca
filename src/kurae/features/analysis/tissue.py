"""Wound-bed tissue classification from a pixel neighbourhood.

Each pixel of the sampling window falls into exactly one bucket, checked in
this order:

* necrosis     mean(R, G, B) < 40
* granulation  R > G + 30 and R > B + 30
* slough       R > 150 and G > 150 and B < 140
* other        everything else

Percentages are rounded independently (half up) and ``other`` takes the
remainder, so it can drop below zero when the three rounded values sum to
101 or more.
"""
from __future__ import annotations

import logging
import math
from typing import Dict, Optional

import numpy as np

from ...core.model import (
    LABEL_GRANULATION,
    LABEL_NECROSIS,
    LABEL_OTHER,
    LABEL_SLOUGH,
    TISSUE_COLORS,
    Point,
    TissueSample,
    next_token,
)
from .raster import PixelSource, RasterUnavailable

logger = logging.getLogger(__name__)

NECROSIS_MAX_BRIGHTNESS = 40
GRANULATION_RED_MARGIN = 30
SLOUGH_MIN_RG = 150
SLOUGH_MAX_B = 140

NECROSIS_LABEL_PCT = 15
SLOUGH_LABEL_PCT = 20
GRANULATION_LABEL_PCT = 20


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def count_tissue_pixels(window: np.ndarray) -> Dict[str, int]:
    """Count window pixels per bucket; ``window`` has shape (rows, cols, 3)."""
    rgb = window.reshape(-1, 3).astype(np.int32)
    r, g, b = rgb[:, 0], rgb[:, 1], rgb[:, 2]
    brightness = (r + g + b) / 3.0

    necrosis = brightness < NECROSIS_MAX_BRIGHTNESS
    granulation = ~necrosis & (r > g + GRANULATION_RED_MARGIN) & (r > b + GRANULATION_RED_MARGIN)
    slough = ~necrosis & ~granulation & (r > SLOUGH_MIN_RG) & (g > SLOUGH_MIN_RG) & (b < SLOUGH_MAX_B)

    total = int(rgb.shape[0])
    n_necro = int(necrosis.sum())
    n_gran = int(granulation.sum())
    n_slough = int(slough.sum())
    return {
        'granulation': n_gran,
        'slough': n_slough,
        'necrosis': n_necro,
        'other': total - n_gran - n_slough - n_necro,
        'total': total,
    }


def label_for(granulation: int, slough: int, necrosis: int) -> str:
    if necrosis > NECROSIS_LABEL_PCT:
        return LABEL_NECROSIS
    if slough > SLOUGH_LABEL_PCT:
        return LABEL_SLOUGH
    if granulation > GRANULATION_LABEL_PCT:
        return LABEL_GRANULATION
    return LABEL_OTHER


def classify_window(window: np.ndarray, point: Point, token: Optional[int] = None) -> Optional[TissueSample]:
    counts = count_tissue_pixels(window)
    total = counts['total']
    if total == 0:
        logger.debug("No pixels under (%.1f, %.1f); sample dropped", point.x, point.y)
        return None
    gran = _round_half_up(counts['granulation'] * 100 / total)
    slough = _round_half_up(counts['slough'] * 100 / total)
    necro = _round_half_up(counts['necrosis'] * 100 / total)
    label = label_for(gran, slough, necro)
    return TissueSample(
        id=next_token() if token is None else token,
        x=point.x,
        y=point.y,
        granulation=gran,
        slough=slough,
        necrosis=necro,
        other=100 - (gran + slough + necro),
        label=label,
        color=TISSUE_COLORS[label],
    )


def classify(source: PixelSource, point: Point, half_width: int = 15) -> Optional[TissueSample]:
    """Sample the raster around ``point``; ``None`` when no sample can be taken."""
    try:
        window = source.window(point.x, point.y, half_width)
    except RasterUnavailable as exc:
        logger.info("Tissue sampling unavailable: %s", exc)
        return None
    return classify_window(window, point)
