from __future__ import annotations

import logging
from typing import List, Optional, Union

from ...core.model import AnnotationSet, LinearMeasurement, Polygon, TissueSample

logger = logging.getLogger(__name__)

Entity = Union[LinearMeasurement, Polygon, TissueSample]


def undo_last(annotations: AnnotationSet) -> Optional[Entity]:
    """Remove the most recently created entity across all three layers."""
    layers: List[list] = [annotations.lines, annotations.polygons, annotations.tissue_samples]
    candidates = [layer for layer in layers if layer]
    if not candidates:
        return None
    newest = max(candidates, key=lambda layer: layer[-1].id)
    removed = newest.pop()
    if isinstance(removed, LinearMeasurement) and removed.id == annotations.reference_line_id:
        logger.info("Calibration reference removed; measurements revert to pixels")
        annotations.calibration_ratio = None
        annotations.reference_line_id = None
    return removed
