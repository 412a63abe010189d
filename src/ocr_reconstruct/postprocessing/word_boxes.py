"""Word and ideograph boxes from CTC timestep positions.

The recognizer sees a rectified, possibly rotated crop of each text line.
Every kept CTC timestep corresponds to a column band of that crop, so the
columns of a decoded word give its horizontal extent in crop space. Those
crop-space boxes are then pushed back through the inverse of the crop's
perspective warp into detection space.

CJK words produce one box per ideograph; Latin/digit words produce one box
per word.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import cv2
import numpy as np

from ..types import DecodedLine, Orientation, Quadrilateral, Script, WordBoxResult
from ..utils.geometry import (
    crop_dimensions,
    is_vertical_crop,
    order_points_by_angle,
    rotate_point,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CellBox:
    """Horizontal band of a crop holding one word or ideograph."""
    left: float
    right: float
    text: str
    confidence: float

    def to_quad(self, height: float) -> Quadrilateral:
        return Quadrilateral.from_rect(self.left, 0.0, self.right, height)


def get_box_direction(quad: Quadrilateral) -> Orientation:
    """Vertical when the line was cropped and turned a quarter for recognition."""
    if is_vertical_crop(*crop_dimensions(quad)):
        return Orientation.VERTICAL
    return Orientation.HORIZONTAL


def average_char_widths(decoded: DecodedLine, cell_width: float,
                        fallback: float) -> Dict[Script, float]:
    """Mean glyph pitch per script, from words with at least two columns."""
    samples = {Script.CJK: [], Script.LATIN_OR_DIGIT: []}
    for word in decoded.words:
        if len(word.columns) <= 1:
            continue
        span = (word.columns[-1] - word.columns[0]) * cell_width
        samples[word.script].append(span / (len(word.columns) - 1))

    return {script: (sum(widths) / len(widths) if widths else fallback)
            for script, widths in samples.items()}


def cal_word_cells(decoded: DecodedLine, crop_width: float) -> List[CellBox]:
    """Crop-space bands for every word (Latin) or ideograph (CJK), sorted by left x."""
    if not decoded.words or not decoded.text_index_len:
        return []

    cell_width = crop_width / decoded.text_index_len
    fallback = crop_width / max(1, len(decoded.text))
    char_widths = average_char_widths(decoded, cell_width, fallback)

    cells = []
    for script in (Script.CJK, Script.LATIN_OR_DIGIT):
        half = char_widths[script] / 2.0
        for word in decoded.words:
            if word.script is not script:
                continue

            spans = []
            for column in word.columns:
                center = (column + 0.5) * cell_width
                left = max(math.floor(center - half), 0)
                right = min(math.floor(center + half), crop_width)
                spans.append((left, right))

            if script is Script.CJK:
                cells.extend(CellBox(left, right, char, conf)
                             for (left, right), char, conf
                             in zip(spans, word.characters, word.confidences))
            else:
                cells.append(CellBox(
                    min(s[0] for s in spans),
                    max(s[1] for s in spans),
                    word.text,
                    sum(word.confidences) / len(word.confidences),
                ))

    cells.sort(key=lambda cell: cell.left)
    return cells


def adjust_box_overlap(cells: Sequence[CellBox]) -> List[CellBox]:
    """Split each overlap between horizontal neighbours at its midpoint.

    Runs a single left-to-right pass; each pair sees the already-adjusted
    left neighbour.
    """
    adjusted = list(cells)
    for i in range(len(adjusted) - 1):
        cur, nxt = adjusted[i], adjusted[i + 1]
        if cur.right > nxt.left:
            overlap = cur.right - nxt.left
            half = overlap / 2.0
            adjusted[i] = CellBox(cur.left, cur.right - half, cur.text, cur.confidence)
            adjusted[i + 1] = CellBox(nxt.left + (overlap - half), nxt.right,
                                      nxt.text, nxt.confidence)
    return adjusted


def reverse_rotate_crop_image(line_quad: Quadrilateral,
                              word_quads: Sequence[Quadrilateral],
                              orientation: Orientation) -> List[Quadrilateral]:
    """Map crop-space quads back into the space of ``line_quad``."""
    left, top, _, _ = line_quad.bounds
    shifted = np.array([[x - left, y - top] for x, y in line_quad.points], dtype=np.float32)

    crop_w, crop_h = crop_dimensions(line_quad)
    if crop_w <= 0 or crop_h <= 0:
        logger.debug("Degenerate line quad, skipping word boxes")
        return []

    target = np.array([[0, 0], [crop_w, 0], [crop_w, crop_h], [0, crop_h]], dtype=np.float32)
    matrix = cv2.getPerspectiveTransform(shifted, target)
    inverse = np.linalg.inv(matrix)

    restored = []
    for quad in word_quads:
        points = []
        for x, y in quad.points:
            if orientation is Orientation.VERTICAL:
                # Undo the counter-clockwise quarter turn applied to tall crops
                x, y = rotate_point(-math.pi / 2, x, y)
                x += crop_w
            px, py, pz = inverse @ np.array([x, y, 1.0])
            points.append((px / pz + left, py / pz + top))
        restored.append(Quadrilateral.from_array(order_points_by_angle(points)))
    return restored


class WordBoxReconstructor:
    """Rebuild per-word boxes of recognized lines in detection space."""

    def reconstruct(self, decoded: DecodedLine, crop_shape: Tuple[int, int],
                    line_quad: Quadrilateral) -> WordBoxResult:
        """Boxes for one line.

        Args:
            decoded: Decoded line with word info and ``text_index_len``.
            crop_shape: (height, width) of the crop the recognizer saw.
            line_quad: The line's quadrilateral in detection space.
        """
        crop_h, crop_w = crop_shape[:2]
        orientation = get_box_direction(line_quad)

        cells = adjust_box_overlap(cal_word_cells(decoded, crop_w))
        if not cells:
            return WordBoxResult()

        crop_quads = [cell.to_quad(crop_h) for cell in cells]
        quads = reverse_rotate_crop_image(line_quad, crop_quads, orientation)
        if not quads:
            return WordBoxResult()

        return WordBoxResult(
            texts=[cell.text for cell in cells],
            quads=quads,
            confidences=[cell.confidence for cell in cells],
        )

    def __call__(self, crops: Sequence[np.ndarray], line_quads: Sequence[Quadrilateral],
                 decoded_lines: Sequence[DecodedLine]) -> List[WordBoxResult]:
        return [self.reconstruct(decoded, crop.shape[:2], quad)
                for crop, quad, decoded in zip(crops, line_quads, decoded_lines)]


__all__ = [
    "CellBox",
    "WordBoxReconstructor",
    "get_box_direction",
    "average_char_widths",
    "cal_word_cells",
    "adjust_box_overlap",
    "reverse_rotate_crop_image",
]
