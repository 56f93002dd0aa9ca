import os
import tempfile
import unittest

from kurae.app_io.store import AnnotationStore, AnnotationStoreError, record_key
from kurae.core.model import AnnotationSet, LinearMeasurement, Point, Polygon, TissueSample


def _populated() -> AnnotationSet:
    return AnnotationSet(
        lines=[LinearMeasurement.between(Point(10.5, 20.25), Point(110.5, 20.25), token=1)],
        polygons=[Polygon.closed([Point(0, 0), Point(30, 0), Point(30, 30)], token=2)],
        tissue_samples=[TissueSample(3, 40.0, 41.0, 38, 38, 25, -1, "Necrosis", "#000000")],
        calibration_ratio=5.0,
        reference_line_id=1,
    )


class AnnotationStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.store = AnnotationStore(os.path.join(self._tmp.name, "records"))

    def test_missing_record_is_empty(self) -> None:
        annotations = self.store.load("never-seen.png")
        self.assertTrue(annotations.is_empty())
        self.assertIsNone(annotations.calibration_ratio)

    def test_round_trip_is_byte_identical(self) -> None:
        path = self.store.save("wound.png", _populated())
        first = path.read_bytes()
        loaded = self.store.load("wound.png")
        self.assertEqual(loaded, _populated())
        self.store.save("wound.png", loaded)
        self.assertEqual(path.read_bytes(), first)

    def test_integer_values_reload_identically(self) -> None:
        annotations = AnnotationSet(
            tissue_samples=[TissueSample(1, 40, 41, 100, 0, 0, 0, "Granulación", "#ef4444")],
            calibration_ratio=4,
        )
        path = self.store.save("wound.png", annotations)
        first = path.read_bytes()
        self.store.save("wound.png", self.store.load("wound.png"))
        self.assertEqual(path.read_bytes(), first)

    def test_delete(self) -> None:
        self.store.save("wound.png", _populated())
        self.assertTrue(self.store.delete("wound.png"))
        self.assertFalse(self.store.delete("wound.png"))
        self.assertTrue(self.store.load("wound.png").is_empty())

    def test_corrupt_record_raises(self) -> None:
        path = self.store.path_for("wound.png")
        path.parent.mkdir(parents=True)
        path.write_text("{not json", encoding="utf-8")
        with self.assertRaises(AnnotationStoreError):
            self.store.load("wound.png")

    def test_malformed_record_raises(self) -> None:
        path = self.store.path_for("wound.png")
        path.parent.mkdir(parents=True)
        path.write_text('{"lines": [{"id": 1}]}', encoding="utf-8")
        with self.assertRaises(AnnotationStoreError):
            self.store.load("wound.png")

    def test_records_are_per_image(self) -> None:
        self.store.save("a.png", _populated())
        self.assertTrue(self.store.load("b.png").is_empty())


class RecordKeyTests(unittest.TestCase):
    def test_key_is_stable_for_same_file(self) -> None:
        self.assertEqual(record_key("a.png"), record_key(os.path.abspath("a.png")))
        self.assertEqual(len(record_key("a.png")), 32)

    def test_urls_kept_verbatim(self) -> None:
        self.assertNotEqual(record_key("https://example.org/a.png"),
                            record_key("https://example.org/b.png"))
        self.assertEqual(record_key("https://example.org/a.png"),
                         record_key("https://example.org/a.png"))


if __name__ == "__main__":
    unittest.main()
