"""Pydantic request/response schemas for the FastAPI endpoints."""

from pydantic import BaseModel

from receipt_ocr.extraction.merge import OCRResult
from receipt_ocr.extraction.prefill import FormSuggestion


class AmountCandidateResponse(BaseModel):
    """One plausible amount the user may pick instead of the selected one."""

    value: float
    priority: int
    matched_text: str
    raw_digits: str


class OCRResultResponse(BaseModel):
    """Response schema for an extraction result."""

    text: str
    amount: float | None = None
    confidence: float
    invoice_number: str | None = None
    date: str | None = None
    vendor: str | None = None
    detected_amounts: list[AmountCandidateResponse] = []
    ai_enhanced: bool = False
    category: str | None = None
    ai_error: str | None = None

    @classmethod
    def from_result(cls, result: OCRResult) -> "OCRResultResponse":
        return cls(
            text=result.text,
            amount=float(result.amount) if result.amount is not None else None,
            confidence=result.confidence,
            invoice_number=result.invoice_number,
            date=result.date,
            vendor=result.vendor,
            detected_amounts=[
                AmountCandidateResponse(
                    value=float(c.value),
                    priority=c.priority,
                    matched_text=c.matched_text,
                    raw_digits=c.raw_digits,
                )
                for c in result.detected_amounts
            ],
            ai_enhanced=result.ai_enhanced,
            category=result.category,
            ai_error=result.ai_error,
        )


class FormSuggestionResponse(BaseModel):
    """Suggested form values derived from the extraction result."""

    title: str | None = None
    amount: float | None = None
    date: str | None = None
    invoice_number: str | None = None
    category: str | None = None

    @classmethod
    def from_suggestion(cls, suggestion: FormSuggestion) -> "FormSuggestionResponse":
        return cls(
            title=suggestion.title,
            amount=float(suggestion.amount) if suggestion.amount is not None else None,
            date=suggestion.date_iso,
            invoice_number=suggestion.invoice_number,
            category=suggestion.category,
        )


class ExtractionResponse(BaseModel):
    """Response schema for the OCR endpoints."""

    result: OCRResultResponse
    suggestion: FormSuggestionResponse
    processing_time_ms: float


class TextExtractionRequest(BaseModel):
    """Request schema for extraction from already-recognized text."""

    text: str
    use_ai: bool = True


class VerifyKeyResponse(BaseModel):
    """Response schema for the AI key check."""

    valid: bool


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
    ai_configured: bool
