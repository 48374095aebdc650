"""Rule-based field extraction for receipt text.

Recovers amount, date, vendor, and invoice number from raw OCR output using
ordered regular expressions and layout heuristics. Nothing here raises: a
field that no rule finds is simply absent.
"""

import re
from dataclasses import dataclass, field
from decimal import Decimal

from receipt_ocr.utils.config import ExtractionConfig
from receipt_ocr.utils.logger import get_logger

from .amounts import AmountCandidate, AmountExtractor

logger = get_logger(__name__)

_DATE = r"(\d{1,2}([./-])\d{1,2}\2\d{4})(?!\d)"

# Label-qualified patterns are tried before bare ones.
_DATE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(rf"\b(?:tar[iİıI]h[iİıI]?|date)\s*[:.]?\s*{_DATE}", re.IGNORECASE),
    re.compile(rf"(?<![\d./-]){_DATE}"),
]

_INVOICE_TOKEN = r"([A-Z0-9][A-Z0-9\-/]*[A-Z0-9]|[A-Z0-9])"

_INVOICE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(
        r"\b(?:fatura|invoice|belge|f[iİıI][sşSŞ])[ \t]*"
        r"(?:no|nr|number|num(?:ara(?:s[iı])?)?)\b"
        rf"[ \t]*[.:#]?[ \t]*{_INVOICE_TOKEN}",
        re.IGNORECASE,
    ),
    re.compile(r"\bno[ \t]*[.:#][ \t]*([A-Z]{2,}\d+)", re.IGNORECASE),
]


@dataclass
class HeuristicResult:
    """Fields recovered by the rule-based extractor."""

    amount: Decimal | None = None
    invoice_number: str | None = None
    date: str | None = None
    vendor: str | None = None
    candidates: list[AmountCandidate] = field(default_factory=list)


class RuleExtractor:
    """Regex and layout heuristics for receipt fields.

    Args:
        config: Extraction settings (vendor bounds and scan depth).
        amount_extractor: Amount rule engine. Defaults to the standard table.
    """

    def __init__(
        self,
        config: ExtractionConfig | None = None,
        amount_extractor: AmountExtractor | None = None,
    ) -> None:
        self.config = config or ExtractionConfig()
        self.amount_extractor = amount_extractor or AmountExtractor()

    def extract(self, text: str) -> HeuristicResult:
        """Extract every supported field from recognized text.

        Args:
            text: Raw OCR text, possibly empty.

        Returns:
            Extracted fields; absent fields are ``None``.
        """
        amount, candidates = self.amount_extractor.extract(text)
        result = HeuristicResult(
            amount=amount,
            invoice_number=self.extract_invoice_number(text),
            date=self.extract_date(text),
            vendor=self.extract_vendor(text),
            candidates=candidates,
        )
        logger.info(
            "Rule extraction: amount=%s date=%s vendor=%s invoice_no=%s "
            "(%d candidates)",
            result.amount,
            result.date,
            result.vendor,
            result.invoice_number,
            len(candidates),
        )
        return result

    def extract_date(self, text: str) -> str | None:
        """Find the first DD.MM.YYYY, DD/MM/YYYY, or DD-MM-YYYY date.

        The matched text is returned verbatim; calendar validity is not
        checked here.
        """
        for pattern in _DATE_PATTERNS:
            match = pattern.search(text)
            if match:
                return match.group(1)
        return None

    def extract_vendor(self, text: str) -> str | None:
        """Pick the longest of the first non-empty lines as the vendor name.

        Returns:
            The line, or ``None`` when its length falls outside the
            configured bounds.
        """
        lines = [line.strip() for line in text.splitlines() if line.strip()]
        head = lines[: self.config.vendor_scan_lines]
        if not head:
            return None

        longest = max(head, key=len)
        cfg = self.config
        if cfg.vendor_min_length <= len(longest) <= cfg.vendor_max_length:
            return longest
        logger.debug("Vendor candidate rejected by length: %d chars", len(longest))
        return None

    def extract_invoice_number(self, text: str) -> str | None:
        """Find an invoice/receipt number after a "fatura no"-style label."""
        for pattern in _INVOICE_PATTERNS:
            match = pattern.search(text)
            if match:
                return match.group(1)
        return None
