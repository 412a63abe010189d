"""Model-input tensors: resize, normalize, pad, and lay out as NCHW.

Examples
--------
    pre = DetPreProcess(limit_side_len=736, limit_type="min")
    tensor = pre(img)                      # (1, 3, H32, W32) float32

    batch = np.stack([resize_norm_img(c, (3, 48, 320), 6.7) for c in crops])
"""

import math
from typing import Sequence

import cv2
import numpy as np

from ..exceptions import ImageProcessingError


def normalize(img: np.ndarray, mean: float = 0.5, std: float = 0.5) -> np.ndarray:
    """Scale to [0, 1] and standardize."""
    return (img.astype(np.float32) / 255.0 - mean) / std


class DetPreProcess:
    """Resize to multiples of 32 and normalize for the detector."""

    def __init__(self, limit_side_len: int = 736, limit_type: str = "min"):
        self.limit_side_len = limit_side_len
        self.limit_type = limit_type

    def __call__(self, img: np.ndarray) -> np.ndarray:
        resized = self.resize(img)
        chw = normalize(resized).transpose(2, 0, 1)
        return np.expand_dims(chw, axis=0).astype(np.float32)

    def resize(self, img: np.ndarray) -> np.ndarray:
        h, w = img.shape[:2]

        if self.limit_type == "max":
            if max(h, w) > self.limit_side_len:
                ratio = float(self.limit_side_len) / h if h > w else float(self.limit_side_len) / w
            else:
                ratio = 1.0
        else:
            if min(h, w) < self.limit_side_len:
                ratio = float(self.limit_side_len) / h if h < w else float(self.limit_side_len) / w
            else:
                ratio = 1.0

        resize_h = int(round(int(h * ratio) / 32) * 32)
        resize_w = int(round(int(w * ratio) / 32) * 32)
        if resize_h <= 0 or resize_w <= 0:
            raise ImageProcessingError(
                f"Image {w}x{h} is too small for detection",
                operation="DetPreProcess.resize"
            )
        return cv2.resize(img, (resize_w, resize_h))


def resize_norm_img(img: np.ndarray, image_shape: Sequence[int],
                    max_wh_ratio: float = None) -> np.ndarray:
    """Resize to the model height, normalize, and right-pad with zeros.

    The padded width is ``img_h * max_wh_ratio`` when a ratio is given,
    otherwise the width of ``image_shape``.
    """
    img_c, img_h, img_w = image_shape[:3]
    if max_wh_ratio is not None:
        img_w = int(img_h * max_wh_ratio)

    h, w = img.shape[:2]
    ratio = w / float(h)
    resized_w = min(int(math.ceil(img_h * ratio)), img_w)
    resized_w = max(resized_w, 1)

    resized = cv2.resize(img, (resized_w, img_h))
    if resized.ndim == 2:
        resized = resized[:, :, np.newaxis]
    chw = normalize(resized).transpose(2, 0, 1)

    padding = np.zeros((img_c, img_h, img_w), dtype=np.float32)
    padding[:, :, :resized_w] = chw[:img_c]
    return padding


__all__ = ["normalize", "DetPreProcess", "resize_norm_img"]
