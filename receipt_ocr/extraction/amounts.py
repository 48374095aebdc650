"""Priority-ranked amount extraction from noisy receipt text.

Amounts are found by an ordered table of rules. Each rule pairs a keyword
cluster ("toplam", "k.kart", "nakit", ...) or a currency context with a
numeric capture group. A rule's position in the table fixes the priority of
everything it matches, so a keyword-qualified total always outranks a bare
number, however many bare numbers the receipt contains.

Captured digit strings are normalised per candidate because Turkish
receipts write ``1.850,53`` while imported goods and card slips often print
``1,850.53``.
"""

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from receipt_ocr.utils.logger import get_logger

logger = get_logger(__name__)

MIN_AMOUNT = Decimal("0.01")
MAX_AMOUNT = Decimal("10000000")

# Digit groups separated by '.', ',' or a space, ending in exactly two decimals.
_AMOUNT = r"(\d+(?:[.,\s]\d{3})*[.,]\d{2})(?![.,]?\d)"
# A leading minus marks a refund or discount line, never a payable amount.
_NUMBER = rf"(?<![\d.,\-]){_AMOUNT}"
_GROUPED_NUMBER = r"(?<![\d.,\-])(\d{1,3}(?:[.,\s]\d{3})+[.,]\d{2})(?![.,]?\d)"
_CURRENCY = r"(?:₺|\$|€|£|\btl\b)"
# Dot leaders are separators; a dash only when it stands apart from the number.
_SEPARATORS = r"(?:[\s:*=#.]|-(?=\s))*"
_KEYWORD_END = r"(?![a-zçğıöşü])"

# Highest priority first.
_KEYWORD_CLUSTERS: list[tuple[str, str]] = [
    ("grand_total", r"genel\s?toplam[iı]?|grand\s?total"),
    ("total", r"(?<!ara )toplam[iı]?|(?<!sub )total"),
    ("card_payment", r"k\.?\s?kart[iı]?|kredi\s?kart[iı]?|kart|card"),
    ("cash_payable", r"nakit|[oö]denecek(?:\s?tutar)?|cash|amount\s?due"),
    ("net_gross", r"net|br[uü]t|gross"),
    ("sales", r"sat[iı][sş](?:\s?tutar[iı]?)?|sales?"),
    (
        "invoice",
        r"fatura(?:\s?tutar[iı]?)?|invoice|receipt|fi[sş](?:\s?tutar[iı]?)?",
    ),
    ("vat_inclusive", r"kdv\s?dahil|vat\s?incl(?:uded|\.)?"),
    ("generic", r"tutar[iı]?|bedel[iı]?|fiyat[iı]?|amount"),
]


@dataclass(frozen=True)
class AmountRule:
    """A named amount pattern; group 1 captures the digit string."""

    name: str
    pattern: re.Pattern[str]


@dataclass(frozen=True)
class AmountCandidate:
    """A provisional amount found in the text."""

    value: Decimal
    priority: int
    matched_text: str
    raw_digits: str
    rule: str = ""


def _keyword_rule(name: str, keywords: str) -> AmountRule:
    pattern = (
        rf"\b(?:{keywords}){_KEYWORD_END}{_SEPARATORS}"
        rf"(?:{_CURRENCY}{_SEPARATORS})?{_AMOUNT}"
    )
    return AmountRule(name, re.compile(pattern))


def default_rules() -> list[AmountRule]:
    """Build the standard rule table, most specific rule first."""
    rules = [_keyword_rule(name, keywords) for name, keywords in _KEYWORD_CLUSTERS]
    rules.extend(
        [
            AmountRule("currency_prefix", re.compile(rf"{_CURRENCY}\s?{_NUMBER}")),
            AmountRule("currency_suffix", re.compile(rf"{_NUMBER}\s?{_CURRENCY}")),
            AmountRule("grouped_number", re.compile(_GROUPED_NUMBER)),
            AmountRule("bare_number", re.compile(_NUMBER)),
        ]
    )
    return rules


def normalize_text(text: str) -> str:
    """Collapse whitespace runs and lowercase, folding Turkish dotted capital I."""
    text = text.replace("İ", "i")
    return re.sub(r"\s+", " ", text).strip().lower()


def normalize_amount(raw: str) -> str:
    """Rewrite a captured digit string with '.' as the only decimal separator.

    Separator roles are decided from the count and last position of
    ``.`` and ``,``:

    * one comma after the last dot: dots group thousands, comma is decimal
      (``1.850,53``);
    * one dot after the last comma: commas group thousands (``1,850.53``);
    * several commas and no dot: all commas are thousands separators;
    * several dots: all but the last are thousands separators.

    Args:
        raw: Digits and separators as captured from the text.

    Returns:
        A string parseable by :class:`~decimal.Decimal`.
    """
    s = re.sub(r"\s+", "", raw)
    dots = s.count(".")
    commas = s.count(",")
    last_dot = s.rfind(".")
    last_comma = s.rfind(",")

    if commas == 1 and last_comma > last_dot:
        return s.replace(".", "").replace(",", ".")
    if dots == 1 and last_dot > last_comma:
        return s.replace(",", "")
    if commas > 1 and dots == 0:
        return s.replace(",", "")
    if dots > 1:
        s = s.replace(",", "")
        head, _, tail = s.rpartition(".")
        return head.replace(".", "") + "." + tail

    # Mixed leftovers such as "1.234,56,78": the last separator is decimal.
    last = max(last_dot, last_comma)
    if last < 0:
        return s
    return s[:last].replace(".", "").replace(",", "") + "." + s[last + 1 :]


def parse_amount(raw: str) -> Decimal | None:
    """Normalise and parse a captured digit string, or ``None`` if unparseable."""
    try:
        value = Decimal(normalize_amount(raw))
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def in_range(value: Decimal) -> bool:
    """Whether a parsed value is a plausible receipt amount."""
    return MIN_AMOUNT <= value <= MAX_AMOUNT


def rank_candidates(candidates: list[AmountCandidate]) -> list[AmountCandidate]:
    """Order candidates by priority, then by value, both descending."""
    return sorted(candidates, key=lambda c: (c.priority, c.value), reverse=True)


def distinct_values(
    candidates: list[AmountCandidate], limit: int
) -> list[AmountCandidate]:
    """Keep the best-ranked candidate for each value, up to ``limit`` entries."""
    seen: set[Decimal] = set()
    result: list[AmountCandidate] = []
    for candidate in candidates:
        if candidate.value in seen:
            continue
        seen.add(candidate.value)
        result.append(candidate)
        if len(result) == limit:
            break
    return result


class AmountExtractor:
    """Data-driven amount extractor.

    Args:
        rules: Ordered rule table, most specific first. Defaults to
            :func:`default_rules`.
    """

    def __init__(self, rules: list[AmountRule] | None = None) -> None:
        self.rules = rules if rules is not None else default_rules()

    def find_candidates(self, text: str) -> list[AmountCandidate]:
        """Find, parse, filter, and rank every amount match in the text.

        Args:
            text: Raw recognized text.

        Returns:
            Candidates sorted by priority then value, both descending.
        """
        normalized = normalize_text(text)
        total = len(self.rules)
        candidates: list[AmountCandidate] = []

        for index, rule in enumerate(self.rules):
            for match in rule.pattern.finditer(normalized):
                raw = match.group(1)
                value = parse_amount(raw)
                if value is None or not in_range(value):
                    logger.debug("Rejected amount %r from rule %s", raw, rule.name)
                    continue
                candidates.append(
                    AmountCandidate(
                        value=value,
                        priority=total - index,
                        matched_text=match.group(0).strip(),
                        raw_digits=raw,
                        rule=rule.name,
                    )
                )

        ranked = rank_candidates(candidates)
        logger.debug("Amount extraction found %d candidates", len(ranked))
        return ranked

    def extract(self, text: str) -> tuple[Decimal | None, list[AmountCandidate]]:
        """Return the selected amount and the ranked candidate list."""
        candidates = self.find_candidates(text)
        return (candidates[0].value if candidates else None), candidates
