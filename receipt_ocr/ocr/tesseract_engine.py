"""Tesseract OCR engine wrapper tuned for receipts.

Receipts are sparse, irregular layouts rather than paragraphs, so the engine
runs in sparse-text segmentation mode with inter-word spacing preserved and
an output alphabet restricted to what Turkish receipts actually contain.
"""

from dataclasses import dataclass

import cv2
import numpy as np
import pytesseract
from PIL import Image

from receipt_ocr.exceptions import RecognitionError
from receipt_ocr.utils.config import OCRConfig
from receipt_ocr.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class RecognizedText:
    """Raw text recognized from one image."""

    text: str
    confidence: float
    language: str
    word_count: int


def build_tesseract_config(config: OCRConfig) -> str:
    """Build the Tesseract command-line configuration string.

    Args:
        config: Recognition settings.

    Returns:
        Options string passed to pytesseract as ``config``.
    """
    options = [f"--oem {config.oem}", f"--psm {config.psm}"]
    if config.preserve_interword_spaces:
        options.append("-c preserve_interword_spaces=1")
    if config.char_whitelist:
        options.append(f"-c tessedit_char_whitelist={config.char_whitelist}")
    return " ".join(options)


class TesseractEngine:
    """Wrapper around Tesseract for receipt text recognition.

    Construction checks that the Tesseract binary is usable, which is the
    expensive part of setting the engine up. Instances are meant to be
    owned by an :class:`~receipt_ocr.ocr.engine_handle.EngineHandle`.

    Args:
        config: Recognition settings.

    Raises:
        RecognitionError: If Tesseract is not installed or not runnable.
    """

    def __init__(self, config: OCRConfig) -> None:
        if config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = config.tesseract_cmd
        self.config = config
        self.tesseract_config = build_tesseract_config(config)

        try:
            version = pytesseract.get_tesseract_version()
        except pytesseract.TesseractNotFoundError as exc:
            raise RecognitionError("Tesseract is not installed or not on PATH") from exc
        except Exception as exc:
            raise RecognitionError(f"Could not start Tesseract: {exc}") from exc

        self._closed = False
        logger.info("Tesseract %s ready (lang=%s)", version, config.default_lang)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release the engine. A closed engine refuses further work."""
        self._closed = True
        logger.info("Tesseract engine released")

    def recognize(self, image: np.ndarray, lang: str | None = None) -> RecognizedText:
        """Recognize text in a preprocessed image.

        Args:
            image: BGR or grayscale image as a numpy array.
            lang: Tesseract language string. Defaults to the configured one.

        Returns:
            Recognized text with the mean word confidence on a 0-100 scale.

        Raises:
            RecognitionError: If the engine is closed or Tesseract fails.
        """
        if self._closed:
            raise RecognitionError("Recognition engine has been released")

        lang = lang or self.config.default_lang
        rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB) if image.ndim == 3 else image
        pil_image = Image.fromarray(rgb)

        try:
            text = pytesseract.image_to_string(
                pil_image, lang=lang, config=self.tesseract_config
            )
            data = pytesseract.image_to_data(
                pil_image,
                lang=lang,
                config=self.tesseract_config,
                output_type=pytesseract.Output.DICT,
            )
        except Exception as exc:
            raise RecognitionError(f"Text recognition failed: {exc}") from exc

        confidences = [
            float(conf)
            for conf, word in zip(data["conf"], data["text"], strict=False)
            if float(conf) > 0 and str(word).strip()
        ]
        avg_conf = sum(confidences) / len(confidences) if confidences else 0.0

        logger.info(
            "OCR recognized %d words (%d chars) with average confidence %.1f",
            len(confidences),
            len(text),
            avg_conf,
        )
        return RecognizedText(
            text=text,
            confidence=min(100.0, max(0.0, avg_conf)),
            language=lang,
            word_count=len(confidences),
        )
