"""Reconciliation of heuristic and AI extraction into one result.

AI output, when the model actually returned a usable object, replaces the
heuristic fields wholesale; fields are never mixed between the two sources.
Otherwise the heuristic result stands and its candidate list is kept so the
user can pick among plausible totals.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from receipt_ocr.utils.config import ExtractionConfig
from receipt_ocr.utils.logger import get_logger

from .ai_extractor import AIExtraction
from .amounts import AmountCandidate, distinct_values
from .rule_extractor import HeuristicResult

logger = get_logger(__name__)


@dataclass
class OCRResult:
    """Pipeline output used to pre-fill the invoice entry form."""

    text: str
    amount: Decimal | None = None
    confidence: float = 0.0
    invoice_number: str | None = None
    date: str | None = None
    vendor: str | None = None
    detected_amounts: list[AmountCandidate] = field(default_factory=list)
    ai_enhanced: bool = False
    category: str | None = None
    ai_error: str | None = None


def clamp_confidence(value: float) -> float:
    """Clamp a confidence score to [0, 100]."""
    return min(100.0, max(0.0, value))


class ResultMerger:
    """Selects between heuristic and AI extraction output.

    Args:
        config: Extraction configuration (candidate list length).
    """

    def __init__(self, config: ExtractionConfig | None = None) -> None:
        self.config = config or ExtractionConfig()

    def merge(
        self,
        text: str,
        heuristic: HeuristicResult,
        ocr_confidence: float,
        ai: AIExtraction | None = None,
        ai_error: str | None = None,
        blend_confidence: bool = False,
    ) -> OCRResult:
        """Build the final result.

        Args:
            text: Raw recognized text.
            heuristic: Rule-based extraction output, always available.
            ocr_confidence: Recognition confidence on 0-100.
            ai: AI output, or ``None`` when AI was not attempted or failed.
            ai_error: Message describing a failed AI attempt.
            blend_confidence: Report ``max(ocr, ai * 100)`` instead of the AI
                confidence alone (image plus text hybrid mode).

        Returns:
            The merged :class:`OCRResult`.
        """
        if ai is not None and ai.json_found:
            ai_confidence = ai.confidence * 100.0
            if blend_confidence:
                confidence = max(ocr_confidence, ai_confidence)
            else:
                confidence = ai_confidence
            logger.info("Using AI extraction (confidence %.1f)", confidence)
            return OCRResult(
                text=text,
                amount=ai.amount,
                confidence=clamp_confidence(confidence),
                invoice_number=ai.invoice_number,
                date=ai.date,
                vendor=ai.vendor,
                detected_amounts=[],
                ai_enhanced=True,
                category=ai.category,
            )

        if ai is not None and ai_error is None:
            ai_error = "AI reply contained no usable data"

        logger.info(
            "Using rule-based extraction (confidence %.1f%s)",
            ocr_confidence,
            f", AI unavailable: {ai_error}" if ai_error else "",
        )
        return OCRResult(
            text=text,
            amount=heuristic.amount,
            confidence=clamp_confidence(ocr_confidence),
            invoice_number=heuristic.invoice_number,
            date=heuristic.date,
            vendor=heuristic.vendor,
            detected_amounts=distinct_values(
                heuristic.candidates, self.config.max_candidates
            ),
            ai_enhanced=False,
            ai_error=ai_error,
        )
