"""
Text line detection: DB model inference followed by polygon extraction.
"""

import logging
import time
from typing import List, Optional, Tuple

import numpy as np

from ..config import DetectionConfig
from ..engines.inference import InferenceSession, OrtInferSession
from ..postprocessing.db_postprocess import DBPostProcess
from ..preprocessing.normalize import DetPreProcess
from ..types import Quadrilateral, ScoredRegion
from ..utils.geometry import distance, order_points_clockwise

logger = logging.getLogger(__name__)

MIN_BOX_SIDE = 3


class TextDetector:
    """Locate text lines and return their quadrilaterals in input-image space."""

    def __init__(self, config: Optional[DetectionConfig] = None,
                 session: Optional[InferenceSession] = None):
        self.config = config or DetectionConfig()
        self.session = session if session is not None else OrtInferSession(self.config.engine)
        self.postprocess_op = DBPostProcess(
            thresh=self.config.thresh,
            box_thresh=self.config.box_thresh,
            max_candidates=self.config.max_candidates,
            unclip_ratio=self.config.unclip_ratio,
            score_mode=self.config.score_mode,
            use_dilation=self.config.use_dilation,
            min_size=self.config.min_size,
        )

    def get_preprocess(self, max_wh: int) -> DetPreProcess:
        if self.config.limit_type == "min":
            limit_side_len = self.config.limit_side_len
        elif max_wh < 960:
            limit_side_len = 960
        elif max_wh < 1500:
            limit_side_len = 1500
        else:
            limit_side_len = 2000
        return DetPreProcess(limit_side_len, self.config.limit_type)

    def __call__(self, img: np.ndarray,
                 box_thresh: Optional[float] = None,
                 unclip_ratio: Optional[float] = None) -> Tuple[List[Quadrilateral], float]:
        start_time = time.time()
        ori_h, ori_w = img.shape[:2]

        preprocess_op = self.get_preprocess(max(ori_h, ori_w))
        preds = self.session(preprocess_op(img))

        regions = self.postprocess_op(preds, ori_h, ori_w,
                                      box_thresh=box_thresh, unclip_ratio=unclip_ratio)
        quads = self.filter_tag_det_res(regions, ori_h, ori_w)

        elapse = time.time() - start_time
        logger.debug(f"Detected {len(quads)} text lines in {elapse:.3f}s")
        return quads, elapse

    @staticmethod
    def filter_tag_det_res(regions: List[ScoredRegion], img_height: int,
                           img_width: int) -> List[Quadrilateral]:
        """Order clockwise, clip inside the image and drop slivers."""
        quads = []
        for region in regions:
            box = order_points_clockwise(region.quad.to_array(np.float64))
            box[:, 0] = np.clip(box[:, 0], 0, img_width - 1)
            box[:, 1] = np.clip(box[:, 1], 0, img_height - 1)

            rect_width = int(distance(box[0], box[1]))
            rect_height = int(distance(box[0], box[3]))
            if rect_width <= MIN_BOX_SIDE or rect_height <= MIN_BOX_SIDE:
                continue
            quads.append(Quadrilateral.from_array(box))
        return quads


__all__ = ["TextDetector"]
