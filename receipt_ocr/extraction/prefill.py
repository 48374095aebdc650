"""Conversion of an OCR result into suggested entry-form values."""

import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from receipt_ocr.utils.logger import get_logger

from .merge import OCRResult

logger = get_logger(__name__)

TITLE_MAX_LENGTH = 50


@dataclass
class FormSuggestion:
    """Values to pre-populate the invoice form with; the user confirms them."""

    title: str | None = None
    amount: Decimal | None = None
    date_iso: str | None = None
    invoice_number: str | None = None
    category: str | None = None


def parse_receipt_date(value: str | None) -> date | None:
    """Parse a day-first receipt date such as ``28.07.2023`` or ``28/07/2023``.

    Returns:
        The calendar date, or ``None`` if the text is not a valid date.
    """
    if not value:
        return None
    parts = re.split(r"[./-]", value.strip())
    if len(parts) != 3:
        return None
    day, month, year = parts
    try:
        return datetime(int(year), int(month), int(day)).date()
    except ValueError:
        logger.debug("Ignoring invalid receipt date %r", value)
        return None


def suggest_title(result: OCRResult) -> str | None:
    """Use the vendor name, else the first non-empty text line, as a title."""
    if result.vendor:
        return result.vendor[:TITLE_MAX_LENGTH]
    for line in result.text.splitlines():
        if line.strip():
            return line.strip()[:TITLE_MAX_LENGTH]
    return None


def build_form_suggestion(result: OCRResult) -> FormSuggestion:
    """Derive form values from an OCR result."""
    parsed = parse_receipt_date(result.date)
    return FormSuggestion(
        title=suggest_title(result),
        amount=result.amount,
        date_iso=parsed.isoformat() if parsed else None,
        invoice_number=result.invoice_number,
        category=result.category,
    )
