"""Soft binarization for receipt images.

A hard threshold erases anti-aliased thin strokes, so the black/white
mask is blended back into the original pixels instead of replacing them.
"""

import numpy as np

from receipt_ocr.utils.logger import get_logger

logger = get_logger(__name__)


def luminance(image: np.ndarray) -> np.ndarray:
    """Compute per-pixel luminance as the mean of the channels.

    Args:
        image: Input image (multi-channel or grayscale).

    Returns:
        Float array of shape ``(height, width)``.
    """
    if image.ndim == 3:
        return image.astype(np.float32).mean(axis=2)
    return image.astype(np.float32)


def binarize_blend(
    image: np.ndarray, threshold: int = 135, mix: float = 0.4
) -> np.ndarray:
    """Blend a thresholded black/white mask into the image.

    Each channel becomes ``channel * (1 - mix) + binary * mix`` where
    ``binary`` is 255 for pixels brighter than ``threshold`` and 0 otherwise.

    Args:
        image: Input 8-bit image (BGR or grayscale).
        threshold: Luminance threshold.
        mix: Weight of the binary value, between 0 and 1.

    Returns:
        Blended image with the same shape and dtype.
    """
    binary = np.where(luminance(image) > threshold, 255.0, 0.0).astype(np.float32)
    if image.ndim == 3:
        binary = binary[:, :, np.newaxis]

    blended = image.astype(np.float32) * (1.0 - mix) + binary * mix
    result = np.clip(np.rint(blended), 0, 255).astype(np.uint8)
    logger.debug("Applied binarization blend (threshold=%d, mix=%.2f)", threshold, mix)
    return result
