"""Polygon extraction from a DB text-probability map.

Turns the detector's per-pixel probability map into scored quadrilaterals in
the destination (pre-detection) image space:

    threshold -> dilate -> trace contours -> min-area quad -> score
    -> unclip (polygon offset) -> refit -> rescale

Rejections (too small, low score, empty offset) are silent and logged at
DEBUG; only a missing or malformed map raises.
"""

import logging
from typing import List, Optional

import cv2
import numpy as np
import pyclipper

from ..exceptions import InputShapeError
from ..types import Quadrilateral, ScoredRegion
from ..utils.geometry import min_area_quad, polygon_area, polygon_perimeter

logger = logging.getLogger(__name__)

SCORE_MODES = ("fast", "slow")


class DBPostProcess:
    """Extract text regions from a DB probability map."""

    def __init__(self,
                 thresh: float = 0.3,
                 box_thresh: float = 0.5,
                 max_candidates: int = 1000,
                 unclip_ratio: float = 1.6,
                 score_mode: str = "fast",
                 use_dilation: bool = True,
                 min_size: int = 3):
        if score_mode not in SCORE_MODES:
            raise ValueError(f"score_mode must be one of {SCORE_MODES}, got {score_mode!r}")

        self.thresh = thresh
        self.box_thresh = box_thresh
        self.max_candidates = max_candidates
        self.unclip_ratio = unclip_ratio
        self.score_mode = score_mode
        self.min_size = min_size
        self.dilation_kernel = np.array([[1, 1], [1, 1]], dtype=np.uint8) if use_dilation else None

    def __call__(self, pred, dest_height: int, dest_width: int,
                 box_thresh: Optional[float] = None,
                 unclip_ratio: Optional[float] = None) -> List[ScoredRegion]:
        """Extract scored regions, rescaled to ``dest_height`` x ``dest_width``.

        ``box_thresh`` and ``unclip_ratio`` override the configured values
        for this call only.
        """
        prob = self._as_map(pred)
        box_thresh = self.box_thresh if box_thresh is None else box_thresh
        unclip_ratio = self.unclip_ratio if unclip_ratio is None else unclip_ratio

        mask = (prob > self.thresh).astype(np.uint8)
        if self.dilation_kernel is not None:
            mask = cv2.dilate(mask, self.dilation_kernel)

        regions = self.boxes_from_bitmap(prob, mask, dest_width, dest_height,
                                         box_thresh, unclip_ratio)
        logger.debug(f"DB postprocess kept {len(regions)} regions")
        return regions

    @staticmethod
    def _as_map(pred) -> np.ndarray:
        if pred is None:
            raise InputShapeError("Probability map is None", expected="HxW array")

        prob = np.asarray(pred)
        # Drop leading singleton batch/channel axes
        while prob.ndim > 2 and prob.shape[0] == 1:
            prob = prob[0]

        if prob.ndim != 2 or prob.shape[0] == 0 or prob.shape[1] == 0:
            raise InputShapeError(
                "Probability map must be a non-empty HxW array",
                expected="HxW, 1xHxW or 1x1xHxW",
                actual=np.asarray(pred).shape
            )
        return prob.astype(np.float32, copy=False)

    def boxes_from_bitmap(self, pred: np.ndarray, bitmap: np.ndarray,
                          dest_width: int, dest_height: int,
                          box_thresh: float, unclip_ratio: float) -> List[ScoredRegion]:
        height, width = bitmap.shape

        contours, _ = cv2.findContours(bitmap, cv2.RETR_LIST, cv2.CHAIN_APPROX_SIMPLE)
        num_contours = min(len(contours), self.max_candidates)

        regions = []
        for index in range(num_contours):
            contour = contours[index]
            box, sside = min_area_quad(contour)
            if sside < self.min_size:
                logger.debug(f"Contour {index}: short side {sside:.1f} below min size")
                continue

            if self.score_mode == "fast":
                score = self.box_score_fast(pred, box)
            else:
                score = self.box_score_slow(pred, contour)
            if score < box_thresh:
                logger.debug(f"Contour {index}: score {score:.3f} below box_thresh")
                continue

            expanded = self.unclip(box, unclip_ratio)
            if expanded is None:
                logger.debug(f"Contour {index}: unclip produced no polygon")
                continue

            box, sside = min_area_quad(expanded)
            if sside < self.min_size + 2:
                logger.debug(f"Contour {index}: expanded short side {sside:.1f} too small")
                continue

            box[:, 0] = np.clip(np.round(box[:, 0] / width * dest_width), 0, dest_width)
            box[:, 1] = np.clip(np.round(box[:, 1] / height * dest_height), 0, dest_height)
            regions.append(ScoredRegion(Quadrilateral.from_array(box), float(score)))

        return regions

    @staticmethod
    def unclip(box: np.ndarray, unclip_ratio: float) -> Optional[np.ndarray]:
        """Grow a quadrilateral outward by ``area * ratio / perimeter``."""
        perimeter = polygon_perimeter(box)
        if perimeter == 0:
            return None
        distance = polygon_area(box) * unclip_ratio / perimeter

        offset = pyclipper.PyclipperOffset()
        offset.AddPath(np.asarray(box).astype(np.int64).tolist(),
                       pyclipper.JT_ROUND, pyclipper.ET_CLOSEDPOLYGON)
        expanded = offset.Execute(distance)
        if not expanded:
            return None
        return np.array(expanded[0], dtype=np.float32).reshape(-1, 2)

    @staticmethod
    def box_score_fast(bitmap: np.ndarray, box: np.ndarray) -> float:
        """Mean probability inside the filled quad, over its bounding box."""
        h, w = bitmap.shape[:2]
        box = np.array(box, dtype=np.float64)
        xmin = int(np.clip(np.floor(box[:, 0].min()), 0, w - 1))
        xmax = int(np.clip(np.ceil(box[:, 0].max()), 0, w - 1))
        ymin = int(np.clip(np.floor(box[:, 1].min()), 0, h - 1))
        ymax = int(np.clip(np.ceil(box[:, 1].max()), 0, h - 1))
        if xmax <= xmin or ymax <= ymin:
            return 0.0

        mask = np.zeros((ymax - ymin + 1, xmax - xmin + 1), dtype=np.uint8)
        box[:, 0] -= xmin
        box[:, 1] -= ymin
        cv2.fillPoly(mask, box.reshape(1, -1, 2).astype(np.int32), 1)
        return float(cv2.mean(bitmap[ymin:ymax + 1, xmin:xmax + 1], mask)[0])

    @staticmethod
    def box_score_slow(bitmap: np.ndarray, contour: np.ndarray) -> float:
        """Mean probability inside the traced contour polygon."""
        h, w = bitmap.shape[:2]
        contour = np.array(contour, dtype=np.int32).reshape(-1, 2)
        xmin = int(np.clip(contour[:, 0].min(), 0, w - 1))
        xmax = int(np.clip(contour[:, 0].max(), 0, w - 1))
        ymin = int(np.clip(contour[:, 1].min(), 0, h - 1))
        ymax = int(np.clip(contour[:, 1].max(), 0, h - 1))
        if xmax <= xmin or ymax <= ymin:
            return 0.0

        mask = np.zeros((ymax - ymin + 1, xmax - xmin + 1), dtype=np.uint8)
        contour[:, 0] -= xmin
        contour[:, 1] -= ymin
        cv2.fillPoly(mask, contour.reshape(1, -1, 2), 1)
        return float(cv2.mean(bitmap[ymin:ymax + 1, xmin:xmax + 1], mask)[0])


__all__ = ["DBPostProcess"]
