import math
import unittest

from kurae.core.model import (
    AnnotationSet,
    LinearMeasurement,
    Point,
    Polygon,
    TissueSample,
    next_token,
    polygon_perimeter,
    shoelace_area,
    vertex_centroid,
)


class ShoelaceAreaTests(unittest.TestCase):
    def test_square(self) -> None:
        square = [Point(0, 0), Point(10, 0), Point(10, 10), Point(0, 10)]
        self.assertAlmostEqual(shoelace_area(square), 100.0)

    def test_winding_order_does_not_matter(self) -> None:
        square = [Point(0, 0), Point(0, 10), Point(10, 10), Point(10, 0)]
        self.assertAlmostEqual(shoelace_area(square), 100.0)

    def test_triangle(self) -> None:
        tri = [Point(0, 0), Point(4, 0), Point(0, 3)]
        self.assertAlmostEqual(shoelace_area(tri), 6.0)

    def test_degenerate_inputs(self) -> None:
        self.assertEqual(shoelace_area([]), 0.0)
        self.assertEqual(shoelace_area([Point(0, 0), Point(5, 5)]), 0.0)
        collinear = [Point(0, 0), Point(1, 1), Point(2, 2)]
        self.assertAlmostEqual(shoelace_area(collinear), 0.0)

    def test_perimeter_and_centroid(self) -> None:
        square = [Point(0, 0), Point(10, 0), Point(10, 10), Point(0, 10)]
        self.assertAlmostEqual(polygon_perimeter(square), 40.0)
        self.assertEqual(vertex_centroid(square), Point(5, 5))
        self.assertIsNone(vertex_centroid([]))


class EntityTests(unittest.TestCase):
    def test_line_length_fixed_at_creation(self) -> None:
        line = LinearMeasurement.between(Point(1, 2), Point(4, 6), token=7)
        self.assertEqual(line.id, 7)
        self.assertAlmostEqual(line.length_px, math.hypot(3, 4))
        self.assertEqual(line.midpoint, Point(2.5, 4.0))

    def test_polygon_closed_computes_area(self) -> None:
        poly = Polygon.closed([Point(0, 0), Point(20, 0), Point(20, 5)], token=3)
        self.assertEqual(poly.id, 3)
        self.assertAlmostEqual(poly.area_px, 50.0)

    def test_tokens_strictly_increase(self) -> None:
        tokens = [next_token() for _ in range(50)]
        self.assertEqual(tokens, sorted(set(tokens)))

    def test_loading_bumps_token_floor(self) -> None:
        far_future = next_token() + 10 ** 9
        payload = {
            'lines': [{'id': far_future, 'start': {'x': 0, 'y': 0},
                       'end': {'x': 3, 'y': 4}, 'lengthPx': 5.0}],
        }
        annotations = AnnotationSet.from_dict(payload)
        self.assertEqual(annotations.newest_token(), far_future)
        self.assertGreater(next_token(), far_future)

    def test_point_coordinates_are_floats(self) -> None:
        p = Point(3, 4)
        self.assertIsInstance(p.x, float)
        self.assertEqual(p.to_dict(), {'x': 3.0, 'y': 4.0})
        self.assertEqual(repr(p.to_dict()['y']), '4.0')

    def test_dict_keys(self) -> None:
        annotations = AnnotationSet(
            lines=[LinearMeasurement.between(Point(0, 0), Point(10, 0), token=1)],
            tissue_samples=[TissueSample(2, 5.0, 5.0, 10, 20, 30, 40, "Necrosis", "#000000")],
            calibration_ratio=2.0,
            reference_line_id=1,
        )
        data = annotations.to_dict()
        self.assertEqual(set(data), {'lines', 'polygons', 'textures', 'ratio', 'referenceId'})
        self.assertEqual(data['lines'][0]['lengthPx'], 10.0)
        self.assertEqual(data['textures'][0]['label'], "Necrosis")
        restored = AnnotationSet.from_dict(data)
        self.assertEqual(restored, annotations)

    def test_clear(self) -> None:
        annotations = AnnotationSet(
            lines=[LinearMeasurement.between(Point(0, 0), Point(10, 0), token=1)],
            calibration_ratio=2.0,
            reference_line_id=1,
        )
        annotations.clear()
        self.assertTrue(annotations.is_empty())
        self.assertIsNone(annotations.calibration_ratio)
        self.assertIsNone(annotations.reference_line_id)


if __name__ == "__main__":
    unittest.main()
