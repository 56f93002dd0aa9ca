from __future__ import annotations

import csv
from pathlib import Path
from typing import List, Optional, Union

from ..core.model import AnnotationSet
from ..features.editing.scale import area_px_to_cm2, px_to_mm

CSV_HEADER = [
    'type', 'id', 'value_px', 'value_real', 'unit',
    'granulation', 'slough', 'necrosis', 'other', 'label',
]


def _fmt(value: Optional[float]) -> str:
    return '' if value is None else f'{value:.4f}'


def annotation_rows(annotations: AnnotationSet) -> List[List[str]]:
    ratio = annotations.calibration_ratio
    rows: List[List[str]] = []
    for line in annotations.lines:
        kind = 'reference' if line.id == annotations.reference_line_id else 'line'
        rows.append([kind, str(line.id), _fmt(line.length_px),
                     _fmt(px_to_mm(line.length_px, ratio)), 'mm' if ratio else '', '', '', '', '', ''])
    for poly in annotations.polygons:
        rows.append(['area', str(poly.id), _fmt(poly.area_px),
                     _fmt(area_px_to_cm2(poly.area_px, ratio)), 'cm2' if ratio else '', '', '', '', '', ''])
    for sample in annotations.tissue_samples:
        rows.append(['tissue', str(sample.id), '', '', '%',
                     str(sample.granulation), str(sample.slough), str(sample.necrosis),
                     str(sample.other), sample.label])
    return rows


def export_csv(annotations: AnnotationSet, path: Union[str, Path]) -> int:
    """Write every annotation layer to ``path``; return the number of data rows."""
    rows = annotation_rows(annotations)
    with open(path, 'w', encoding='utf-8', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(CSV_HEADER)
        writer.writerows(rows)
    return len(rows)
