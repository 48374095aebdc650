"""Size normalization for receipt photos.

Small phone crops are upscaled so glyphs are large enough for recognition;
oversized camera images are downscaled to bound processing time.
"""

import cv2
import numpy as np

from receipt_ocr.utils.logger import get_logger

logger = get_logger(__name__)


def target_size(
    width: int, height: int, min_dimension: int = 1200, max_dimension: int = 3000
) -> tuple[int, int]:
    """Compute the isotropically scaled ``(width, height)`` for an image.

    Args:
        width: Current image width in pixels.
        height: Current image height in pixels.
        min_dimension: Images with both sides below this are upscaled so the
            larger side reaches it.
        max_dimension: Images with either side above this are downscaled so
            the larger side equals it.

    Returns:
        The new size, or the current size when no scaling applies.
    """
    larger = max(width, height)
    if larger < min_dimension:
        scale = min_dimension / larger
    elif larger > max_dimension:
        scale = max_dimension / larger
    else:
        return width, height
    return max(1, round(width * scale)), max(1, round(height * scale))


def resize_for_ocr(
    image: np.ndarray, min_dimension: int = 1200, max_dimension: int = 3000
) -> np.ndarray:
    """Scale an image into the ``[min_dimension, max_dimension]`` band.

    Args:
        image: Input image (BGR or grayscale).
        min_dimension: Minimum length of the larger side.
        max_dimension: Maximum length of the larger side.

    Returns:
        Resized image, or the input itself when already within bounds.
    """
    h, w = image.shape[:2]
    new_w, new_h = target_size(w, h, min_dimension, max_dimension)
    if (new_w, new_h) == (w, h):
        return image

    interpolation = cv2.INTER_CUBIC if new_w > w else cv2.INTER_AREA
    result = cv2.resize(image, (new_w, new_h), interpolation=interpolation)
    logger.debug("Resized image %dx%d -> %dx%d", w, h, new_w, new_h)
    return result
