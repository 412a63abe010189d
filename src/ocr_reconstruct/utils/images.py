"""Image loading and validation.

Every supported input is normalized to a 3-channel BGR ``uint8`` array, the
layout the detector and crop helpers expect.

Examples
--------
    from ocr_reconstruct.utils.images import load_image

    image = load_image("document.jpg")
    image = load_image(open("document.png", "rb").read())
    image = load_image(PIL.Image.open("document.png"))
"""

import io
import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError
from pathlib import Path
from typing import Union
import logging

from ..exceptions import ImageProcessingError

logger = logging.getLogger(__name__)

ImageInput = Union[str, Path, bytes, np.ndarray, Image.Image]


def _pil_to_bgr(image: Image.Image) -> np.ndarray:
    if image.mode != "RGB":
        image = image.convert("RGB")
    return cv2.cvtColor(np.array(image), cv2.COLOR_RGB2BGR)


def to_bgr(image: np.ndarray) -> np.ndarray:
    """Convert grayscale or BGRA arrays to BGR."""
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.ndim == 3 and image.shape[2] == 1:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    if image.ndim == 3 and image.shape[2] == 3:
        return image
    raise ImageProcessingError(f"Unsupported image shape {image.shape}", operation="to_bgr")


def load_image(source: ImageInput) -> np.ndarray:
    """Load an image from a path, encoded bytes, a PIL image or an array."""
    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.exists():
            raise ImageProcessingError(f"Image file not found: {path}", image_path=str(path),
                                       operation="load_image")
        image = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
        if image is None:
            # cv2 cannot read some formats or non-ASCII paths; Pillow can
            try:
                with Image.open(path) as pil_image:
                    image = _pil_to_bgr(pil_image)
            except (UnidentifiedImageError, OSError) as e:
                raise ImageProcessingError(f"Could not decode image: {e}", image_path=str(path),
                                           operation="load_image") from e
        logger.debug(f"Loaded image {path} with shape {image.shape}")

    elif isinstance(source, (bytes, bytearray)):
        try:
            with Image.open(io.BytesIO(source)) as pil_image:
                image = _pil_to_bgr(pil_image)
        except (UnidentifiedImageError, OSError) as e:
            raise ImageProcessingError(f"Could not decode image bytes: {e}",
                                       operation="load_image") from e

    elif isinstance(source, Image.Image):
        image = _pil_to_bgr(source)

    elif isinstance(source, np.ndarray):
        image = source

    else:
        raise ImageProcessingError(f"Unsupported image input type: {type(source).__name__}",
                                   operation="load_image")

    if not validate_image(image):
        raise ImageProcessingError("Image is empty or malformed", operation="load_image")

    if image.dtype != np.uint8:
        image = np.clip(image, 0, 255).astype(np.uint8)
    return to_bgr(image)


def validate_image(image: np.ndarray) -> bool:
    """Check that an array is a non-empty 2D or 3D image."""
    if not isinstance(image, np.ndarray):
        return False
    if image.ndim not in (2, 3) or image.size == 0:
        return False
    return image.shape[0] > 0 and image.shape[1] > 0


__all__ = ["ImageInput", "load_image", "validate_image", "to_bgr"]
