from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

# Tissue labels and their overlay colours
LABEL_GRANULATION = "Granulación"
LABEL_SLOUGH = "Esfacelo"
LABEL_NECROSIS = "Necrosis"
LABEL_OTHER = "Piel/Otro"

TISSUE_COLORS: Dict[str, str] = {
    LABEL_NECROSIS: '#000000',
    LABEL_SLOUGH: '#f59e0b',
    LABEL_GRANULATION: '#ef4444',
    LABEL_OTHER: '#9ca3af',
}

_last_token = 0


def next_token() -> int:
    """Return a creation-order token (milliseconds), strictly increasing per process."""
    global _last_token
    token = max(int(time.time() * 1000), _last_token + 1)
    _last_token = token
    return token


def bump_token_floor(token: int) -> None:
    """Make sure tokens issued from now on sort after ``token``."""
    global _last_token
    if token > _last_token:
        _last_token = token


@dataclass(frozen=True)
class Point:
    x: float
    y: float

    def __post_init__(self) -> None:
        # coordinates are always floats
        object.__setattr__(self, 'x', float(self.x))
        object.__setattr__(self, 'y', float(self.y))

    def distance_to(self, other: "Point") -> float:
        return math.hypot(other.x - self.x, other.y - self.y)

    def to_dict(self) -> Dict[str, float]:
        return {'x': self.x, 'y': self.y}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Point":
        return cls(float(data['x']), float(data['y']))


def shoelace_area(points: Sequence[Point]) -> float:
    """Return the absolute area of a polygon using the shoelace formula."""
    if len(points) < 3:
        return 0.0
    area = 0.0
    n = len(points)
    for i in range(n):
        p1 = points[i]
        p2 = points[(i + 1) % n]
        area += p1.x * p2.y - p2.x * p1.y
    return abs(area) / 2.0


def polygon_perimeter(points: Sequence[Point]) -> float:
    """Return the perimeter length of a closed polygon."""
    if len(points) < 2:
        return 0.0
    n = len(points)
    return sum(points[i].distance_to(points[(i + 1) % n]) for i in range(n))


def vertex_centroid(points: Sequence[Point]) -> Optional[Point]:
    """Unweighted mean of the vertices; used only to place labels."""
    if not points:
        return None
    n = len(points)
    return Point(sum(p.x for p in points) / n, sum(p.y for p in points) / n)


@dataclass
class LinearMeasurement:
    id: int
    start: Point
    end: Point
    length_px: float

    @classmethod
    def between(cls, start: Point, end: Point, token: Optional[int] = None) -> "LinearMeasurement":
        # length is fixed at creation and never recomputed
        return cls(
            id=next_token() if token is None else token,
            start=start,
            end=end,
            length_px=math.hypot(end.x - start.x, end.y - start.y),
        )

    @property
    def midpoint(self) -> Point:
        return Point((self.start.x + self.end.x) / 2, (self.start.y + self.end.y) / 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'start': self.start.to_dict(),
            'end': self.end.to_dict(),
            'lengthPx': float(self.length_px),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LinearMeasurement":
        return cls(
            id=int(data['id']),
            start=Point.from_dict(data['start']),
            end=Point.from_dict(data['end']),
            length_px=float(data['lengthPx']),
        )


@dataclass
class Polygon:
    id: int
    points: List[Point] = field(default_factory=list)
    area_px: float = 0.0

    @classmethod
    def closed(cls, points: Sequence[Point], token: Optional[int] = None) -> "Polygon":
        return cls(
            id=next_token() if token is None else token,
            points=list(points),
            area_px=shoelace_area(points),
        )

    @property
    def perimeter_px(self) -> float:
        return polygon_perimeter(self.points)

    @property
    def label_anchor(self) -> Optional[Point]:
        return vertex_centroid(self.points)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'points': [p.to_dict() for p in self.points],
            'areaPx': float(self.area_px),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Polygon":
        return cls(
            id=int(data['id']),
            points=[Point.from_dict(p) for p in data['points']],
            area_px=float(data['areaPx']),
        )


@dataclass
class TissueSample:
    id: int
    x: float
    y: float
    granulation: int
    slough: int
    necrosis: int
    other: int
    label: str
    color: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'x': float(self.x),
            'y': float(self.y),
            'granulation': self.granulation,
            'slough': self.slough,
            'necrosis': self.necrosis,
            'other': self.other,
            'label': self.label,
            'color': self.color,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TissueSample":
        return cls(
            id=int(data['id']),
            x=float(data['x']),
            y=float(data['y']),
            granulation=int(data['granulation']),
            slough=int(data['slough']),
            necrosis=int(data['necrosis']),
            other=int(data['other']),
            label=str(data['label']),
            color=str(data['color']),
        )


@dataclass
class AnnotationSet:
    """All annotation layers of one source image plus its calibration."""

    lines: List[LinearMeasurement] = field(default_factory=list)
    polygons: List[Polygon] = field(default_factory=list)
    tissue_samples: List[TissueSample] = field(default_factory=list)
    calibration_ratio: Optional[float] = None  # pixels per millimetre
    reference_line_id: Optional[int] = None

    def is_empty(self) -> bool:
        return not (self.lines or self.polygons or self.tissue_samples)

    def clear(self) -> None:
        self.lines.clear()
        self.polygons.clear()
        self.tissue_samples.clear()
        self.calibration_ratio = None
        self.reference_line_id = None

    def find_line(self, line_id: int) -> Optional[LinearMeasurement]:
        for line in self.lines:
            if line.id == line_id:
                return line
        return None

    def newest_token(self) -> int:
        ids = [e.id for e in (*self.lines, *self.polygons, *self.tissue_samples)]
        return max(ids, default=0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'lines': [line.to_dict() for line in self.lines],
            'polygons': [poly.to_dict() for poly in self.polygons],
            'textures': [sample.to_dict() for sample in self.tissue_samples],
            'ratio': float(self.calibration_ratio) if self.calibration_ratio is not None else None,
            'referenceId': self.reference_line_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnnotationSet":
        ratio = data.get('ratio')
        ref_id = data.get('referenceId')
        annotations = cls(
            lines=[LinearMeasurement.from_dict(d) for d in data.get('lines', [])],
            polygons=[Polygon.from_dict(d) for d in data.get('polygons', [])],
            tissue_samples=[TissueSample.from_dict(d) for d in data.get('textures', [])],
            calibration_ratio=float(ratio) if ratio is not None else None,
            reference_line_id=int(ref_id) if ref_id is not None else None,
        )
        bump_token_floor(annotations.newest_token())
        return annotations
