import unittest

from PIL import Image

from kurae.core.model import LinearMeasurement, Point
from kurae.core.state import ViewerState
from kurae.core.transform import (
    ImageBox,
    ViewerTransform,
    apply_filters,
    clamp_scale,
    map_pointer,
    next_filter_level,
    render_view,
)


class CoordinateMapperTests(unittest.TestCase):
    def test_map_pointer_undoes_zoom(self) -> None:
        p = map_pointer(110, 70, 10, 20, 2.0)
        self.assertEqual(p, Point(50.0, 25.0))

    def test_map_pointer_at_unit_scale(self) -> None:
        self.assertEqual(map_pointer(15, 5, 5, 5, 1.0), Point(10.0, 0.0))

    def test_pointer_round_trip_without_rotation(self) -> None:
        t = ViewerTransform(scale=2.0, pan_x=30, pan_y=-10)
        size, origin = (100, 50), (400, 300)
        shown = t.to_display(Point(20, 10), size, origin)
        self.assertEqual(t.pointer_to_image(shown[0], shown[1], size, origin), Point(20.0, 10.0))


class TransformStateTests(unittest.TestCase):
    def test_clamp_scale(self) -> None:
        self.assertEqual(clamp_scale(0.1), 0.5)
        self.assertEqual(clamp_scale(9.0), 5.0)
        self.assertEqual(clamp_scale(1.75), 1.75)

    def test_filter_cycle(self) -> None:
        self.assertEqual(next_filter_level(100), 125)
        self.assertEqual(next_filter_level(125), 150)
        self.assertEqual(next_filter_level(150), 100)
        self.assertEqual(next_filter_level(137), 100)

    def test_zoom_buttons_and_wheel(self) -> None:
        state = ViewerState("img.png", (100, 100))
        state.zoom_in()
        self.assertAlmostEqual(state.transform.scale, 1.25)
        state.zoom_out()
        state.zoom_out()
        self.assertAlmostEqual(state.transform.scale, 0.75)
        state.wheel(-100)
        self.assertAlmostEqual(state.transform.scale, 0.85)
        state.wheel(-100000)
        self.assertEqual(state.transform.scale, 5.0)
        state.wheel(100000)
        self.assertEqual(state.transform.scale, 0.5)

    def test_rotation_wraps(self) -> None:
        state = ViewerState("img.png", (100, 100))
        state.rotate_left()
        self.assertEqual(state.transform.rotation_deg, 270)
        for _ in range(2):
            state.rotate_right()
        self.assertEqual(state.transform.rotation_deg, 90)

    def test_toggles_and_reset(self) -> None:
        state = ViewerState("img.png", (100, 100))
        state.cycle_brightness()
        state.cycle_contrast()
        state.toggle_invert()
        state.toggle_grayscale()
        state.toggle_grid()
        self.assertEqual(state.transform.brightness, 125)
        self.assertTrue(state.transform.show_grid)
        self.assertFalse(state.transform.is_default())
        state.transform.reset()
        self.assertTrue(state.transform.is_default())


class RotationCouplingTests(unittest.TestCase):
    def test_rotation_moves_overlay_not_stored_points(self) -> None:
        state = ViewerState("img.png", (100, 50))
        line = LinearMeasurement.between(Point(0, 0), Point(40, 0), token=1)
        state.add_line(line)
        before = state.transform.to_display(line.start, state.image_size, (0, 0))
        state.rotate_right()
        after = state.transform.to_display(line.start, state.image_size, (0, 0))
        self.assertEqual(state.annotations.lines[0].start, Point(0, 0))
        self.assertEqual(before, (-50.0, -25.0))
        self.assertEqual(after, (25.0, -50.0))

    def test_display_box_swaps_sides_on_quarter_turn(self) -> None:
        t = ViewerTransform(rotation_deg=90)
        box = t.display_box((100, 50), (0, 0))
        self.assertIsInstance(box, ImageBox)
        self.assertEqual((box.width, box.height), (50, 100))


class RenderTests(unittest.TestCase):
    def test_render_view_rotates_then_zooms(self) -> None:
        img = Image.new('RGB', (100, 50), (10, 20, 30))
        out = render_view(img, ViewerTransform(scale=2.0, rotation_deg=90))
        self.assertEqual(out.size, (100, 200))

    def test_invert_filter(self) -> None:
        img = Image.new('RGB', (4, 4), (0, 0, 0))
        out = apply_filters(img, ViewerTransform(invert=True))
        self.assertEqual(out.getpixel((0, 0)), (255, 255, 255))


if __name__ == "__main__":
    unittest.main()
