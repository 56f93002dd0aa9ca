import unittest

from kurae.core.model import AnnotationSet, LinearMeasurement, Point, Polygon, TissueSample
from kurae.features.report.summary import EMPTY_SUMMARY, generate_summary, summary_totals


def _sample(token: int, gran: int, slough: int, necro: int) -> TissueSample:
    return TissueSample(token, 0.0, 0.0, gran, slough, necro, 100 - gran - slough - necro,
                        "Granulación", "#ef4444")


def _square(token: int, side: float) -> Polygon:
    return Polygon.closed([Point(0, 0), Point(side, 0), Point(side, side), Point(0, side)], token=token)


class SummaryTests(unittest.TestCase):
    def test_empty(self) -> None:
        self.assertEqual(generate_summary(AnnotationSet()), EMPTY_SUMMARY)

    def test_uncalibrated_geometry_is_omitted(self) -> None:
        annotations = AnnotationSet(
            lines=[LinearMeasurement.between(Point(0, 0), Point(200, 0), token=1)],
            polygons=[_square(2, 100)],
        )
        self.assertEqual(generate_summary(annotations), EMPTY_SUMMARY)

    def test_calibrated_sections(self) -> None:
        annotations = AnnotationSet(
            lines=[
                LinearMeasurement.between(Point(0, 0), Point(200, 0), token=1),
                LinearMeasurement.between(Point(0, 0), Point(100, 0), token=2),
            ],
            polygons=[_square(3, 100), _square(4, 50)],
            tissue_samples=[_sample(5, 60, 30, 10), _sample(6, 40, 10, 20)],
            calibration_ratio=10.0,
            reference_line_id=1,
        )
        expected = "\n".join([
            "Medición lineal total: 30.0 mm (2 mediciones)",
            "Áreas:",
            "  Área 1: 1.00 cm²",
            "  Área 2: 0.25 cm²",
            "Área total: 1.25 cm²",
            "Composición tisular media (2 muestras):",
            "  Granulación: 50%",
            "  Esfacelo: 20%",
            "  Necrosis: 15%",
        ])
        self.assertEqual(generate_summary(annotations), expected)

    def test_tissue_only(self) -> None:
        annotations = AnnotationSet(tissue_samples=[_sample(1, 70, 20, 0)])
        text = generate_summary(annotations)
        self.assertTrue(text.startswith("Composición tisular media (1 muestra):"))
        self.assertNotIn("Medición", text)
        self.assertNotIn("Área", text)

    def test_singular_counts(self) -> None:
        annotations = AnnotationSet(
            lines=[LinearMeasurement.between(Point(0, 0), Point(200, 0), token=1)],
            tissue_samples=[_sample(2, 70, 20, 0)],
            calibration_ratio=10.0,
        )
        text = generate_summary(annotations)
        self.assertIn("Medición lineal total: 20.0 mm (1 medición)", text)
        self.assertIn("Composición tisular media (1 muestra):", text)

    def test_totals(self) -> None:
        annotations = AnnotationSet(
            lines=[LinearMeasurement.between(Point(0, 0), Point(50, 0), token=1)],
            calibration_ratio=10.0,
        )
        totals = summary_totals(annotations)
        self.assertAlmostEqual(totals['total_length_mm'], 5.0)
        self.assertIsNone(totals['areas_cm2'])
        self.assertIsNone(totals['tissue'])


if __name__ == "__main__":
    unittest.main()
