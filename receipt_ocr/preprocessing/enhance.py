"""Contrast boosting and sharpening for faint thermal-paper receipts."""

import cv2
import numpy as np

from receipt_ocr.utils.logger import get_logger

logger = get_logger(__name__)


def boost_contrast(
    image: np.ndarray, contrast: float = 1.8, brightness: float = 20.0
) -> np.ndarray:
    """Apply ``clamp(0, 255, pixel * contrast + brightness)`` to every channel.

    Args:
        image: Input 8-bit image.
        contrast: Multiplicative gain.
        brightness: Additive offset applied after the gain.

    Returns:
        Contrast-enhanced image with the same shape.
    """
    scaled = image.astype(np.float32) * contrast + brightness
    result = np.clip(scaled, 0, 255).astype(np.uint8)
    logger.debug("Boosted contrast (gain=%.2f, offset=%.1f)", contrast, brightness)
    return result


def sharpen_kernel(center: float = 5.0) -> np.ndarray:
    """Build the 3x3 Laplacian sharpening kernel.

    The four direct neighbours weigh -1 and the corners 0.
    """
    return np.array(
        [[0, -1, 0], [-1, center, -1], [0, -1, 0]],
        dtype=np.float32,
    )


def sharpen(image: np.ndarray, center: float = 5.0) -> np.ndarray:
    """Sharpen each channel with a Laplacian kernel.

    The outermost 1-pixel border is left untouched.

    Args:
        image: Input 8-bit image (BGR or grayscale).
        center: Centre weight of the kernel.

    Returns:
        Sharpened image with the same shape and dtype.
    """
    h, w = image.shape[:2]
    if h < 3 or w < 3:
        return image.copy()

    filtered = cv2.filter2D(image, -1, sharpen_kernel(center))
    result = image.copy()
    result[1:-1, 1:-1] = filtered[1:-1, 1:-1]
    logger.debug("Applied sharpening (center=%.1f)", center)
    return result
