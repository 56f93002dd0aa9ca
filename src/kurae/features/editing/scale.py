"""Real-world calibration from a reference line of known length."""
from __future__ import annotations

import logging
import math
from typing import Optional

from ...core.model import AnnotationSet

logger = logging.getLogger(__name__)


def parse_length(text: str) -> Optional[float]:
    """Parse a typed length in millimetres; ``None`` if not a positive number."""
    if text is None:
        return None
    try:
        value = float(str(text).strip().replace(',', '.'))
    except ValueError:
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return value


def set_reference(annotations: AnnotationSet, line_id: int, real_length_mm: float) -> bool:
    """Set pixels-per-millimetre from a stored line; silent no-op when invalid."""
    line = annotations.find_line(line_id)
    if line is None or not real_length_mm > 0:
        return False
    annotations.calibration_ratio = line.length_px / real_length_mm
    annotations.reference_line_id = line.id
    logger.info("Calibrated: %.4f px/mm (line %s = %s mm)",
                annotations.calibration_ratio, line.id, real_length_mm)
    return True


def px_to_mm(length_px: float, ratio: Optional[float]) -> Optional[float]:
    if not ratio:
        return None
    return length_px / ratio


def area_px_to_mm2(area_px: float, ratio: Optional[float]) -> Optional[float]:
    if not ratio:
        return None
    return area_px / (ratio ** 2)


def area_px_to_cm2(area_px: float, ratio: Optional[float]) -> Optional[float]:
    mm2 = area_px_to_mm2(area_px, ratio)
    return None if mm2 is None else mm2 / 100.0


def format_length(length_px: float, ratio: Optional[float]) -> str:
    mm = px_to_mm(length_px, ratio)
    if mm is None:
        return f"{round(length_px)} px"
    return f"{mm:.1f} mm"


def format_area(area_px: float, ratio: Optional[float]) -> str:
    cm2 = area_px_to_cm2(area_px, ratio)
    if cm2 is None:
        return f"{round(area_px)} px²"
    return f"{cm2:.2f} cm²"
