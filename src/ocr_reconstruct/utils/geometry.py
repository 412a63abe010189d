"""Geometry helpers shared by detection and word-box reconstruction.

All functions are pure: they take point sequences (anything reshaping to
(N, 2)) and return new arrays or scalars. Degenerate polygons (fewer than
three distinct points) have zero area and zero perimeter.
"""

import math
from typing import Tuple

import cv2
import numpy as np

from ..types import Quadrilateral

# Crops at least this many times taller than wide are treated as vertical text
VERTICAL_RATIO = 1.5


def _as_points(points) -> np.ndarray:
    return np.asarray(points, dtype=np.float64).reshape(-1, 2)


def distance(p, q) -> float:
    """Euclidean distance between two points."""
    return math.hypot(float(q[0]) - float(p[0]), float(q[1]) - float(p[1]))


def _distinct_count(pts: np.ndarray) -> int:
    return len({(float(x), float(y)) for x, y in pts})


def polygon_area(points) -> float:
    """Absolute shoelace area of a closed polygon."""
    pts = _as_points(points)
    if _distinct_count(pts) < 3:
        return 0.0
    x, y = pts[:, 0], pts[:, 1]
    return float(abs(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1))) / 2.0)


def polygon_perimeter(points) -> float:
    """Sum of edge lengths of the closed polygon."""
    pts = _as_points(points)
    if _distinct_count(pts) < 3:
        return 0.0
    edges = np.roll(pts, -1, axis=0) - pts
    return float(np.hypot(edges[:, 0], edges[:, 1]).sum())


def order_points_min_area_rect(points) -> np.ndarray:
    """Order 4 points top-left, top-right, bottom-right, bottom-left.

    Points are stably sorted by x. Of the two leftmost, the one with the
    larger y is bottom-left; on a tie the second one is taken as top-left.
    The two rightmost are split the same way. Applying the function to its
    own output returns the same order.
    """
    pts = _as_points(points)
    order = sorted(range(4), key=lambda i: pts[i][0])
    left, right = pts[order[:2]], pts[order[2:]]

    if left[1][1] > left[0][1]:
        top_left, bottom_left = left[0], left[1]
    else:
        top_left, bottom_left = left[1], left[0]

    if right[1][1] > right[0][1]:
        top_right, bottom_right = right[0], right[1]
    else:
        top_right, bottom_right = right[1], right[0]

    return np.array([top_left, top_right, bottom_right, bottom_left])


def order_points_clockwise(points) -> np.ndarray:
    """Order 4 points by x, then split each side pair by y."""
    pts = _as_points(points)
    xs_sorted = pts[np.argsort(pts[:, 0], kind="stable")]
    left = xs_sorted[:2]
    right = xs_sorted[2:]
    top_left, bottom_left = left[np.argsort(left[:, 1], kind="stable")]
    top_right, bottom_right = right[np.argsort(right[:, 1], kind="stable")]
    return np.array([top_left, top_right, bottom_right, bottom_left])


def order_points_by_angle(points) -> np.ndarray:
    """Sort points by polar angle around their centroid.

    In image coordinates (y down) this yields top-left, top-right,
    bottom-right, bottom-left for a convex quadrilateral.
    """
    pts = _as_points(points)
    if len(pts) < 4:
        return pts
    cx, cy = pts.mean(axis=0)
    angles = np.arctan2(pts[:, 1] - cy, pts[:, 0] - cx)
    return pts[np.argsort(angles, kind="stable")]


def min_area_quad(contour) -> Tuple[np.ndarray, float]:
    """Fit the minimum-area rectangle around a contour.

    Returns the 4 corners ordered by ``order_points_min_area_rect`` and the
    length of the rectangle's shorter side.
    """
    rect = cv2.minAreaRect(np.asarray(contour, dtype=np.float32).reshape(-1, 1, 2))
    corners = cv2.boxPoints(rect)
    return order_points_min_area_rect(corners), float(min(rect[1]))


def rotate_point(angle: float, x: float, y: float,
                 cx: float = 0.0, cy: float = 0.0) -> Tuple[float, float]:
    """Rotate (x, y) about (cx, cy) by ``angle`` radians, clockwise on screen."""
    cos_a, sin_a = math.cos(angle), math.sin(angle)
    dx, dy = x - cx, y - cy
    return (dx * cos_a + dy * sin_a + cx,
            dy * cos_a - dx * sin_a + cy)


def crop_size(quad: Quadrilateral) -> Tuple[float, float]:
    """Width and height of the rectified crop for a line quadrilateral."""
    p0, p1, p2, p3 = quad.points
    width = max(distance(p0, p1), distance(p2, p3))
    height = max(distance(p0, p3), distance(p1, p2))
    return width, height


def crop_dimensions(quad: Quadrilateral) -> Tuple[int, int]:
    """Integer width and height a line crop is actually warped to."""
    width, height = crop_size(quad)
    return int(width), int(height)


def is_vertical_crop(width: int, height: int) -> bool:
    """Tall crops are turned a quarter before recognition."""
    return width > 0 and height / width >= VERTICAL_RATIO


__all__ = [
    "distance",
    "polygon_area",
    "polygon_perimeter",
    "order_points_min_area_rect",
    "order_points_clockwise",
    "order_points_by_angle",
    "min_area_quad",
    "rotate_point",
    "crop_size",
    "crop_dimensions",
    "is_vertical_crop",
    "VERTICAL_RATIO",
]
