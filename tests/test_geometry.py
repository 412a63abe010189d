import math

import numpy as np
import pytest

from ocr_reconstruct.exceptions import GeometryError
from ocr_reconstruct.types import Quadrilateral
from ocr_reconstruct.utils.geometry import (
    crop_dimensions,
    crop_size,
    distance,
    is_vertical_crop,
    min_area_quad,
    order_points_by_angle,
    order_points_clockwise,
    order_points_min_area_rect,
    polygon_area,
    polygon_perimeter,
    rotate_point,
)


class TestOrdering:
    """Corner ordering helpers"""

    def setup_method(self):
        self.ordered = np.array([[10, 5], [90, 5], [90, 25], [10, 25]], dtype=np.float64)
        self.shuffled = self.ordered[[2, 0, 3, 1]]

    def test_min_area_rect_order_from_shuffled(self):
        result = order_points_min_area_rect(self.shuffled)
        np.testing.assert_array_equal(result, self.ordered)

    def test_min_area_rect_order_is_idempotent(self):
        once = order_points_min_area_rect(self.shuffled)
        twice = order_points_min_area_rect(once)
        np.testing.assert_array_equal(once, twice)

    def test_min_area_rect_order_idempotent_on_rotated_box(self):
        rotated = np.array([[50, 10], [90, 50], [50, 90], [10, 50]], dtype=np.float64)
        once = order_points_min_area_rect(rotated)
        np.testing.assert_array_equal(order_points_min_area_rect(once), once)

    def test_min_area_rect_tie_takes_second_as_top(self):
        # Equal y on the left pair: index 1 of the x-sorted pair is top-left
        pts = np.array([[0, 0], [1, 0], [5, 0], [5, 3]], dtype=np.float64)
        result = order_points_min_area_rect(pts)
        np.testing.assert_array_equal(result[0], [1, 0])
        np.testing.assert_array_equal(result[3], [0, 0])
        np.testing.assert_array_equal(result[1], [5, 0])
        np.testing.assert_array_equal(result[2], [5, 3])

    def test_clockwise_order(self):
        np.testing.assert_array_equal(order_points_clockwise(self.shuffled), self.ordered)

    def test_angle_order(self):
        np.testing.assert_array_equal(order_points_by_angle(self.shuffled), self.ordered)


class TestMeasures:
    """Area, perimeter and distances"""

    def test_rectangle_area_and_perimeter(self):
        rect = [[0, 0], [4, 0], [4, 3], [0, 3]]
        assert polygon_area(rect) == pytest.approx(12.0)
        assert polygon_perimeter(rect) == pytest.approx(14.0)

    def test_degenerate_polygons_are_zero(self):
        line = [[0, 0], [5, 0], [5, 0], [0, 0]]
        assert polygon_area(line) == 0.0
        assert polygon_perimeter(line) == 0.0
        assert polygon_area([[1, 1]] * 4) == 0.0

    def test_distance(self):
        assert distance((0, 0), (3, 4)) == pytest.approx(5.0)

    def test_crop_size_uses_longer_edges(self):
        quad = Quadrilateral(((0, 0), (10, 0), (12, 6), (0, 5)))
        width, height = crop_size(quad)
        assert width == pytest.approx(math.hypot(12, 1))
        assert height == pytest.approx(math.hypot(2, 6))

    def test_crop_dimensions_truncate(self):
        quad = Quadrilateral(((10, 10), (30, 13), (27, 43), (7, 40)))
        assert crop_dimensions(quad) == (20, 30)

    def test_vertical_crop_threshold(self):
        assert is_vertical_crop(20, 30)
        assert not is_vertical_crop(20, 29)
        assert not is_vertical_crop(0, 30)

    def test_rotate_point_quarter_turn(self):
        x, y = rotate_point(math.radians(-90), 3.0, 1.0)
        assert x == pytest.approx(-1.0)
        assert y == pytest.approx(3.0)


class TestMinAreaQuad:
    """Minimum-area rectangle fitting"""

    def test_axis_aligned_contour(self):
        contour = np.array([[[20, 10]], [[20, 30]], [[80, 30]], [[80, 10]]], dtype=np.int32)
        box, sside = min_area_quad(contour)
        assert sside == pytest.approx(20.0)
        assert box[0][0] == pytest.approx(20.0) and box[0][1] == pytest.approx(10.0)
        assert box[2][0] == pytest.approx(80.0) and box[2][1] == pytest.approx(30.0)


class TestQuadrilateral:
    """Quadrilateral value object"""

    def test_requires_four_points(self):
        with pytest.raises(GeometryError):
            Quadrilateral(((0, 0), (1, 0), (1, 1)))

    def test_map_returns_new_instance(self):
        quad = Quadrilateral.from_rect(0, 0, 10, 5)
        shifted = quad.map(lambda x, y: (x + 1, y))
        assert shifted is not quad
        assert quad.points[0] == (0.0, 0.0)
        assert shifted.points[0] == (1.0, 0.0)

    def test_from_array_round_trip_types(self):
        quad = Quadrilateral.from_array(np.array([[1, 2], [3, 2], [3, 4], [1, 4]], dtype=np.int32))
        assert all(isinstance(v, float) for point in quad.points for v in point)
        assert quad.to_list() == [[1.0, 2.0], [3.0, 2.0], [3.0, 4.0], [1.0, 4.0]]
        assert quad.bounds == (1.0, 2.0, 3.0, 4.0)
