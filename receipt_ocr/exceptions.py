"""Exception hierarchy for the receipt OCR pipeline.

``ImageDecodeError`` and ``RecognitionError`` end the OCR attempt for an
upload; callers fall back to manual entry. ``AIExtractionError`` is recovered
inside the pipeline by keeping the heuristic result.
"""


class ReceiptOCRError(Exception):
    """Base exception for all receipt OCR errors."""


class ImageDecodeError(ReceiptOCRError):
    """Raised when uploaded bytes cannot be decoded as an image."""


class RecognitionError(ReceiptOCRError):
    """Raised when the text recognition engine fails."""


class AIExtractionError(ReceiptOCRError):
    """Raised when the AI service call fails at the transport or envelope level."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
