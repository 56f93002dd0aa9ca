import contextlib
import io
import json
import os
import tempfile
import unittest

from kurae.app_io.store import AnnotationStore
from kurae.core.config import DEFAULT_CONFIG, ConfigError, load_config, save_config
from kurae.core.model import AnnotationSet, LinearMeasurement, Point
from kurae.features.report.summary import EMPTY_SUMMARY
from kurae.main import main


class ConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.path = os.path.join(self._tmp.name, "config.json")

    def _write(self, payload: str) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            f.write(payload)

    def test_values_merged_and_coerced(self) -> None:
        self._write(json.dumps({"close_radius": "20", "sample_half_width": 10.0, "theme": "dark"}))
        cfg = load_config(self.path)
        self.assertEqual(cfg["close_radius"], 20.0)
        self.assertEqual(cfg["sample_half_width"], 10)
        self.assertEqual(cfg["theme"], "dark")
        self.assertEqual(cfg["min_line_length"], DEFAULT_CONFIG["min_line_length"])

    def test_missing_explicit_file(self) -> None:
        with self.assertRaises(ConfigError):
            load_config(os.path.join(self._tmp.name, "absent.json"))

    def test_bad_json_and_bad_shape(self) -> None:
        for payload in ("{oops", "[1, 2]", '{"zoom_step": "fast"}'):
            with self.subTest(payload=payload):
                self._write(payload)
                with self.assertRaises(ConfigError):
                    load_config(self.path)

    def test_save_then_load(self) -> None:
        cfg = dict(DEFAULT_CONFIG, close_radius=25.0)
        save_config(cfg, self.path)
        self.assertEqual(load_config(self.path), cfg)


class CommandLineTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.storage = os.path.join(self._tmp.name, "records")
        self.config = os.path.join(self._tmp.name, "config.json")
        save_config(dict(DEFAULT_CONFIG), self.config)

    def _run(self, *argv: str):
        out = io.StringIO()
        with contextlib.redirect_stdout(out):
            code = main(list(argv))
        return code, out.getvalue()

    def test_summary_of_unknown_image(self) -> None:
        code, out = self._run("wound.png", "--config", self.config,
                              "--storage-dir", self.storage, "--summary")
        self.assertEqual(code, 0)
        self.assertEqual(out.strip(), EMPTY_SUMMARY)

    def test_summary_of_stored_record(self) -> None:
        annotations = AnnotationSet(
            lines=[LinearMeasurement.between(Point(0, 0), Point(200, 0), token=1)],
            calibration_ratio=10.0,
            reference_line_id=1,
        )
        AnnotationStore(self.storage).save("wound.png", annotations)
        code, out = self._run("wound.png", "--config", self.config,
                              "--storage-dir", self.storage, "--summary")
        self.assertEqual(code, 0)
        self.assertIn("Medición lineal total: 20.0 mm (1 medición)", out)

    def test_export_csv(self) -> None:
        target = os.path.join(self._tmp.name, "out.csv")
        code, _ = self._run("wound.png", "--config", self.config,
                            "--storage-dir", self.storage, "--export-csv", target)
        self.assertEqual(code, 0)
        self.assertTrue(os.path.exists(target))

    def test_export_csv_to_missing_directory(self) -> None:
        target = os.path.join(self._tmp.name, "no", "such", "dir", "out.csv")
        err = io.StringIO()
        with contextlib.redirect_stderr(err):
            code, _ = self._run("wound.png", "--config", self.config,
                                "--storage-dir", self.storage, "--export-csv", target)
        self.assertEqual(code, 1)
        self.assertIn("ERROR", err.getvalue())

    def test_bad_config_exits_with_2(self) -> None:
        err = io.StringIO()
        with contextlib.redirect_stderr(err):
            code = main(["wound.png", "--config", os.path.join(self._tmp.name, "absent.json"),
                         "--summary"])
        self.assertEqual(code, 2)
        self.assertIn("ERROR", err.getvalue())

    def test_unreadable_image(self) -> None:
        err = io.StringIO()
        with contextlib.redirect_stderr(err):
            code = main([os.path.join(self._tmp.name, "missing.png"), "--config", self.config,
                         "--storage-dir", self.storage])
        self.assertEqual(code, 1)


if __name__ == "__main__":
    unittest.main()
