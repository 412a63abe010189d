"""Geometry-changing preprocessing steps and their inverse.

Every step that changes the image geometry before detection appends an entry
to a ``TransformRecord``. After detection (and word-box reconstruction) the
record is replayed backwards to map quadrilaterals into raw-image space.

Examples
--------
    record = TransformRecord(raw_height=h, raw_width=w)
    img = reduce_max_side(img, 2000, record)
    img = add_letterbox_if_needed(img, record, min_height=30, width_height_ratio=8)
    ...
    raw_quads = record.restore(det_quads)
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple, Union

import cv2
import numpy as np

from ..exceptions import ImageProcessingError
from ..types import ImageFrame, Quadrilateral

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScaleEntry:
    """Resize step; ratios are original size over resized size."""
    ratio_h: float
    ratio_w: float
    name: str = "scale"

    def invert(self, x: float, y: float) -> Tuple[float, float]:
        return x * self.ratio_w, y * self.ratio_h


@dataclass(frozen=True)
class PaddingEntry:
    """Border step; offsets are the pixels added above and to the left."""
    top: int
    left: int = 0
    name: str = "padding"

    def invert(self, x: float, y: float) -> Tuple[float, float]:
        return x - self.left, y - self.top


TransformEntry = Union[ScaleEntry, PaddingEntry]


@dataclass
class TransformRecord:
    """Ordered, append-only log of geometry changes applied to one image."""
    raw_height: int
    raw_width: int
    entries: List[TransformEntry] = field(default_factory=list)

    @property
    def frame(self) -> ImageFrame:
        return ImageFrame(self.raw_height, self.raw_width)

    def add_scale(self, ratio_h: float, ratio_w: float, name: str = "scale") -> None:
        self.entries.append(ScaleEntry(ratio_h, ratio_w, name))

    def add_padding(self, top: int, left: int = 0, name: str = "padding") -> None:
        self.entries.append(PaddingEntry(top, left, name))

    def __len__(self) -> int:
        return len(self.entries)

    def restore_point(self, x: float, y: float) -> Tuple[float, float]:
        for entry in reversed(self.entries):
            x, y = entry.invert(x, y)
        x = min(max(x, 0.0), float(self.raw_width))
        y = min(max(y, 0.0), float(self.raw_height))
        return x, y

    def restore_quad(self, quad: Quadrilateral) -> Quadrilateral:
        return quad.map(self.restore_point)

    def restore(self, quads: Sequence[Quadrilateral]) -> List[Quadrilateral]:
        """Map quadrilaterals back into raw-image space, clamped to its bounds."""
        return [self.restore_quad(quad) for quad in quads]


def _resize(img: np.ndarray, resize_h: int, resize_w: int,
            operation: str) -> Optional[np.ndarray]:
    """Resized copy, or None when snapping collapsed a side to zero."""
    if resize_h <= 0 or resize_w <= 0:
        logger.warning(f"Skipping {operation}: target {resize_w}x{resize_h} is not positive")
        return None
    try:
        return cv2.resize(img, (resize_w, resize_h))
    except cv2.error as e:
        raise ImageProcessingError(f"Resize failed: {e}", operation=operation) from e


def reduce_max_side(img: np.ndarray, max_side_len: int,
                    record: TransformRecord) -> np.ndarray:
    """Shrink so the longer side fits ``max_side_len``, snapping to multiples of 32.

    A side that would snap to zero leaves the image unchanged and unrecorded.
    """
    h, w = img.shape[:2]
    if max(h, w) <= max_side_len:
        return img

    ratio = float(max_side_len) / h if h > w else float(max_side_len) / w
    resize_h = int(round(int(h * ratio) / 32) * 32)
    resize_w = int(round(int(w * ratio) / 32) * 32)

    resized = _resize(img, resize_h, resize_w, "reduce_max_side")
    if resized is None:
        return img
    img = resized
    record.add_scale(h / resize_h, w / resize_w, "reduce_max_side")
    logger.debug(f"Reduced {w}x{h} to {resize_w}x{resize_h}")
    return img


def increase_min_side(img: np.ndarray, min_side_len: int,
                      record: TransformRecord) -> np.ndarray:
    """Grow so the shorter side reaches ``min_side_len``, snapping to multiples of 32."""
    h, w = img.shape[:2]
    if min(h, w) >= min_side_len:
        return img

    ratio = float(min_side_len) / h if h < w else float(min_side_len) / w
    resize_h = int(round(int(h * ratio) / 32) * 32)
    resize_w = int(round(int(w * ratio) / 32) * 32)

    resized = _resize(img, resize_h, resize_w, "increase_min_side")
    if resized is None:
        return img
    img = resized
    record.add_scale(h / resize_h, w / resize_w, "increase_min_side")
    logger.debug(f"Increased {w}x{h} to {resize_w}x{resize_h}")
    return img


def get_padding_h(h: int, w: int, min_height: int, width_height_ratio: float) -> int:
    """Pixels to add above (and below) a short or very wide image."""
    target_h = max(w / width_height_ratio, float(min_height))
    return abs(int(target_h) * 2 - h) // 2


def add_round_letterbox(img: np.ndarray, top: int, bottom: int,
                        left: int, right: int) -> np.ndarray:
    """Pad with black borders."""
    return cv2.copyMakeBorder(img, top, bottom, left, right,
                              cv2.BORDER_CONSTANT, value=(0, 0, 0))


def add_letterbox_if_needed(img: np.ndarray, record: TransformRecord,
                            min_height: int = 30,
                            width_height_ratio: float = 8.0) -> np.ndarray:
    """Pad top and bottom when the image is too short or too wide.

    A ``width_height_ratio`` of -1 disables the aspect check. A padding entry
    is recorded only when padding is applied.
    """
    h, w = img.shape[:2]
    use_limit_ratio = width_height_ratio != -1

    if h <= min_height or (use_limit_ratio and w / h > width_height_ratio):
        ratio = width_height_ratio if use_limit_ratio else 8.0
        padding_h = get_padding_h(h, w, min_height, ratio)
        if padding_h > 0:
            img = add_round_letterbox(img, padding_h, padding_h, 0, 0)
            record.add_padding(padding_h, 0, "letterbox")
            logger.debug(f"Letterboxed {w}x{h} with {padding_h}px top and bottom")
    return img


__all__ = [
    "ScaleEntry",
    "PaddingEntry",
    "TransformEntry",
    "TransformRecord",
    "reduce_max_side",
    "increase_min_side",
    "get_padding_h",
    "add_round_letterbox",
    "add_letterbox_if_needed",
]
