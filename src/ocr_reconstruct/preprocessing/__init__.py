"""Preprocessing steps and the transform record that undoes them."""

from .transforms import (
    ScaleEntry,
    PaddingEntry,
    TransformRecord,
    reduce_max_side,
    increase_min_side,
    add_letterbox_if_needed,
)
from .crop import get_rotate_crop_image, get_crop_img_list
from .normalize import DetPreProcess, normalize, resize_norm_img

__all__ = [
    "ScaleEntry",
    "PaddingEntry",
    "TransformRecord",
    "reduce_max_side",
    "increase_min_side",
    "add_letterbox_if_needed",
    "get_rotate_crop_image",
    "get_crop_img_list",
    "DetPreProcess",
    "normalize",
    "resize_norm_img",
]
