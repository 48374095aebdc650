"""Tests for form pre-fill suggestions."""

from datetime import date
from decimal import Decimal

import pytest

from receipt_ocr.extraction.merge import OCRResult
from receipt_ocr.extraction.prefill import (
    TITLE_MAX_LENGTH,
    build_form_suggestion,
    parse_receipt_date,
    suggest_title,
)


class TestParseReceiptDate:
    """Tests for day-first date parsing."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("28.07.2023", date(2023, 7, 28)),
            ("28/07/2023", date(2023, 7, 28)),
            ("5-3-2024", date(2024, 3, 5)),
        ],
    )
    def test_valid(self, value: str, expected: date) -> None:
        assert parse_receipt_date(value) == expected

    @pytest.mark.parametrize("value", ["31.02.2023", "2023", "", None, "aa.bb.cccc"])
    def test_invalid(self, value: str | None) -> None:
        assert parse_receipt_date(value) is None


class TestSuggestTitle:
    """Tests for title selection."""

    def test_vendor_preferred(self) -> None:
        result = OCRResult(text="first line\nsecond", vendor="MIGROS")
        assert suggest_title(result) == "MIGROS"

    def test_first_non_empty_line(self) -> None:
        result = OCRResult(text="\n  KAFE ÇINAR  \nTOPLAM 10,00")
        assert suggest_title(result) == "KAFE ÇINAR"

    def test_truncated(self) -> None:
        result = OCRResult(text="", vendor="X" * 80)
        assert suggest_title(result) == "X" * TITLE_MAX_LENGTH

    def test_empty(self) -> None:
        assert suggest_title(OCRResult(text="")) is None


class TestBuildFormSuggestion:
    """Tests for the complete form suggestion."""

    def test_from_result(self) -> None:
        result = OCRResult(
            text="HIRFANLI PETROL A.S.",
            amount=Decimal("1850.53"),
            invoice_number="276850-5",
            date="28.07.2023",
            vendor="HIRFANLI PETROL A.S.",
            category="Ulaşım",
        )
        suggestion = build_form_suggestion(result)
        assert suggestion.title == "HIRFANLI PETROL A.S."
        assert suggestion.amount == Decimal("1850.53")
        assert suggestion.date_iso == "2023-07-28"
        assert suggestion.invoice_number == "276850-5"
        assert suggestion.category == "Ulaşım"

    def test_invalid_date_omitted(self) -> None:
        suggestion = build_form_suggestion(OCRResult(text="x", date="31.02.2023"))
        assert suggestion.date_iso is None
