"""Configurable image preprocessing pipeline for receipt OCR.

Decodes an uploaded image, then applies resize, contrast boost, sharpening,
and binarization blend in that order, tracking quality metrics. The
processed image can be re-encoded losslessly on demand.
"""

from dataclasses import dataclass
from functools import cached_property

import cv2
import numpy as np

from receipt_ocr.exceptions import ImageDecodeError
from receipt_ocr.utils.config import PreprocessingConfig
from receipt_ocr.utils.logger import get_logger

from .binarize import binarize_blend
from .enhance import boost_contrast, sharpen
from .resize import resize_for_ocr

logger = get_logger(__name__)


@dataclass
class QualityMetrics:
    """Before/after image quality measurements."""

    sharpness_before: float
    sharpness_after: float
    contrast_before: float
    contrast_after: float


@dataclass
class PreprocessedImage:
    """Output of the preprocessing pipeline."""

    image: np.ndarray
    original_size: tuple[int, int]
    metrics: QualityMetrics

    @cached_property
    def png_bytes(self) -> bytes:
        """Lossless PNG encoding of the processed image, built on first access."""
        return encode_png(self.image)

    @property
    def size(self) -> tuple[int, int]:
        """Processed ``(width, height)``."""
        h, w = self.image.shape[:2]
        return w, h


def calculate_sharpness(image: np.ndarray) -> float:
    """Calculate image sharpness using Laplacian variance.

    Args:
        image: Input image (BGR or grayscale).

    Returns:
        Sharpness score (higher means sharper).
    """
    gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY) if len(image.shape) == 3 else image
    return float(cv2.Laplacian(gray, cv2.CV_64F).var())


def calculate_contrast(image: np.ndarray) -> float:
    """Calculate image contrast as the standard deviation of pixel intensities."""
    gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY) if len(image.shape) == 3 else image
    return float(gray.std())


def decode_image(data: bytes) -> np.ndarray:
    """Decode encoded image bytes into a BGR array.

    Args:
        data: Raw bytes of a JPEG, PNG, or other OpenCV-readable image.

    Returns:
        Three-channel BGR image.

    Raises:
        ImageDecodeError: If the bytes are empty or not a decodable image.
    """
    if not data:
        raise ImageDecodeError("Empty image upload")
    try:
        image = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
    except cv2.error as exc:
        raise ImageDecodeError(f"Could not decode image: {exc}") from exc
    if image is None:
        raise ImageDecodeError("Could not decode image: unsupported or corrupt data")
    return image


def encode_png(image: np.ndarray) -> bytes:
    """Encode an image as PNG, which is always lossless."""
    ok, buffer = cv2.imencode(".png", image)
    if not ok:
        raise ImageDecodeError("Could not re-encode processed image as PNG")
    return buffer.tobytes()


class PreprocessingPipeline:
    """Receipt image preprocessing pipeline.

    Args:
        config: Preprocessing configuration controlling which steps to apply
            and their parameters.
    """

    def __init__(self, config: PreprocessingConfig) -> None:
        self.config = config

    def process_bytes(self, data: bytes) -> PreprocessedImage:
        """Decode uploaded bytes and run the full pipeline.

        Raises:
            ImageDecodeError: If the bytes cannot be decoded.
        """
        image = decode_image(data)
        h, w = image.shape[:2]
        processed, metrics = self.process(image)
        return PreprocessedImage(
            image=processed,
            original_size=(w, h),
            metrics=metrics,
        )

    def process(self, image: np.ndarray) -> tuple[np.ndarray, QualityMetrics]:
        """Run the enabled preprocessing steps on a decoded image.

        Args:
            image: Input image (BGR or grayscale).

        Returns:
            Tuple of (processed_image, quality_metrics).
        """
        metrics = QualityMetrics(
            sharpness_before=calculate_sharpness(image),
            contrast_before=calculate_contrast(image),
            sharpness_after=0.0,
            contrast_after=0.0,
        )

        result = image.copy()
        cfg = self.config

        if cfg.resize_enabled:
            result = resize_for_ocr(result, cfg.min_dimension, cfg.max_dimension)

        if cfg.contrast_enabled:
            result = boost_contrast(result, cfg.contrast, cfg.brightness)

        if cfg.sharpen_enabled:
            result = sharpen(result, cfg.sharpen_center)

        if cfg.binarize_enabled:
            result = binarize_blend(result, cfg.binarize_threshold, cfg.binarize_mix)

        metrics.sharpness_after = calculate_sharpness(result)
        metrics.contrast_after = calculate_contrast(result)

        logger.info(
            "Preprocessing complete: sharpness %.1f->%.1f, contrast %.1f->%.1f",
            metrics.sharpness_before,
            metrics.sharpness_after,
            metrics.contrast_before,
            metrics.contrast_after,
        )
        return result, metrics
