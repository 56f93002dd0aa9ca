"""Clinical text summary of an image's annotations."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from ...core.model import AnnotationSet
from ..editing.scale import area_px_to_cm2, px_to_mm

EMPTY_SUMMARY = "Sin mediciones calibradas ni muestras de tejido."


def summary_totals(annotations: AnnotationSet) -> Dict[str, Any]:
    """Aggregate figures behind the summary; physical values are ``None`` when uncalibrated."""
    ratio = annotations.calibration_ratio
    total_mm: Optional[float] = None
    areas_cm2: Optional[List[float]] = None
    if ratio:
        if annotations.lines:
            total_mm = sum(px_to_mm(line.length_px, ratio) for line in annotations.lines)
        if annotations.polygons:
            areas_cm2 = [area_px_to_cm2(poly.area_px, ratio) for poly in annotations.polygons]

    tissue: Optional[Dict[str, float]] = None
    samples = annotations.tissue_samples
    if samples:
        n = len(samples)
        tissue = {
            'granulation': sum(s.granulation for s in samples) / n,
            'slough': sum(s.slough for s in samples) / n,
            'necrosis': sum(s.necrosis for s in samples) / n,
            'count': n,
        }
    return {
        'total_length_mm': total_mm,
        'line_count': len(annotations.lines),
        'areas_cm2': areas_cm2,
        'total_area_cm2': sum(areas_cm2) if areas_cm2 else None,
        'tissue': tissue,
    }


def _count(n: int, singular: str, plural: str) -> str:
    return f"{n} {singular if n == 1 else plural}"


def generate_summary(annotations: AnnotationSet) -> str:
    totals = summary_totals(annotations)
    out: List[str] = []

    if totals['total_length_mm'] is not None:
        out.append(
            f"Medición lineal total: {totals['total_length_mm']:.1f} mm "
            f"({_count(totals['line_count'], 'medición', 'mediciones')})"
        )

    if totals['areas_cm2']:
        out.append("Áreas:")
        for idx, area in enumerate(totals['areas_cm2'], start=1):
            out.append(f"  Área {idx}: {area:.2f} cm²")
        out.append(f"Área total: {totals['total_area_cm2']:.2f} cm²")

    tissue = totals['tissue']
    if tissue:
        out.append(f"Composición tisular media ({_count(tissue['count'], 'muestra', 'muestras')}):")
        out.append(f"  Granulación: {tissue['granulation']:.0f}%")
        out.append(f"  Esfacelo: {tissue['slough']:.0f}%")
        out.append(f"  Necrosis: {tissue['necrosis']:.0f}%")

    if not out:
        return EMPTY_SUMMARY
    return "\n".join(out)
