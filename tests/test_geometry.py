from __future__ import annotations

import math
import unittest

from plotrecall.errors import InvalidRectangle
from plotrecall.geometry import Point, Rectangle


class RectangleTests(unittest.TestCase):
    def test_inverted_bounds_rejected(self) -> None:
        with self.assertRaises(InvalidRectangle):
            Rectangle(xmin=2.0, xmax=1.0, ymin=0.0, ymax=1.0)
        with self.assertRaises(InvalidRectangle):
            Rectangle(xmin=0.0, xmax=1.0, ymin=3.0, ymax=1.0)

    def test_nan_bound_rejected(self) -> None:
        with self.assertRaises(InvalidRectangle):
            Rectangle(xmin=float("nan"), xmax=1.0, ymin=0.0, ymax=1.0)

    def test_invalid_rectangle_is_value_error(self) -> None:
        with self.assertRaises(ValueError):
            Rectangle(xmin=1.0, xmax=0.0, ymin=0.0, ymax=1.0)

    def test_from_corners_normalizes_drag_direction(self) -> None:
        rect = Rectangle.from_corners(5.0, 1.0, 2.0, 4.0)
        self.assertEqual(rect, Rectangle(xmin=2.0, xmax=5.0, ymin=1.0, ymax=4.0))
        self.assertEqual(rect.width, 3.0)
        self.assertEqual(rect.height, 3.0)

    def test_one_directional_spans_are_unbounded_on_other_axis(self) -> None:
        rect = Rectangle.x_span(1.0, 2.0)
        self.assertEqual(rect.ymin, -math.inf)
        self.assertEqual(rect.ymax, math.inf)
        self.assertTrue(rect.contains(Point(1.5, 1e12)))
        self.assertFalse(rect.contains(Point(2.5, 0.0)))
        self.assertTrue(Rectangle.y_span(0.0, 1.0).contains(Point(-1e9, 1.0)))

    def test_contains_is_closed_on_edges(self) -> None:
        rect = Rectangle(xmin=0.0, xmax=1.0, ymin=0.0, ymax=1.0)
        self.assertTrue(rect.contains(Point(0.0, 1.0)))
        self.assertTrue(rect.contains(Point(1.0, 0.0)))
        self.assertFalse(rect.contains(Point(1.0000001, 0.5)))


if __name__ == "__main__":
    unittest.main()
