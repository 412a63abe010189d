"""
Text line orientation classification (0 or 180 degrees).
"""

import logging
import time
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np

from ..config import ClassificationConfig
from ..engines.inference import InferenceSession, OrtInferSession
from ..postprocessing.cls_postprocess import ClsPostProcess
from ..preprocessing.normalize import resize_norm_img

logger = logging.getLogger(__name__)


class TextClassifier:
    """Detect upside-down line crops and turn them upright."""

    def __init__(self, config: Optional[ClassificationConfig] = None,
                 session: Optional[InferenceSession] = None):
        self.config = config or ClassificationConfig()
        self.session = session if session is not None else OrtInferSession(self.config.engine)
        self.postprocess_op = ClsPostProcess(self.config.label_list)

    def __call__(self, img_list: Sequence[np.ndarray]
                 ) -> Tuple[List[np.ndarray], List[Tuple[str, float]], float]:
        """Classify every crop.

        Returns:
            Tuple of (possibly rotated crops, (label, score) per crop, elapsed seconds).
            The input list is left untouched.
        """
        start_time = time.time()
        img_list = list(img_list)
        img_num = len(img_list)
        cls_res: List[Tuple[str, float]] = [("", 0.0)] * img_num

        # Sorting by aspect ratio keeps padding within a batch small
        width_list = [img.shape[1] / float(img.shape[0]) for img in img_list]
        indices = np.argsort(np.array(width_list), kind="stable")

        batch_num = self.config.cls_batch_num
        for beg_img_no in range(0, img_num, batch_num):
            end_img_no = min(img_num, beg_img_no + batch_num)

            norm_img_batch = np.stack([
                resize_norm_img(img_list[indices[ino]], self.config.cls_image_shape)
                for ino in range(beg_img_no, end_img_no)
            ]).astype(np.float32)

            prob_out = self.session(norm_img_batch)
            cls_result = self.postprocess_op(prob_out)

            for rno, (label, score) in enumerate(cls_result):
                idx = indices[beg_img_no + rno]
                cls_res[idx] = (label, score)
                if "180" in label and score > self.config.cls_thresh:
                    img_list[idx] = cv2.rotate(img_list[idx], cv2.ROTATE_180)

        elapse = time.time() - start_time
        logger.debug(f"Classified {img_num} crops in {elapse:.3f}s")
        return img_list, cls_res, elapse


__all__ = ["TextClassifier"]
