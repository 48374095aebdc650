"""Tests for priority-ranked amount extraction."""

from decimal import Decimal

import pytest

from receipt_ocr.extraction.amounts import (
    AmountCandidate,
    AmountExtractor,
    distinct_values,
    in_range,
    normalize_amount,
    normalize_text,
    parse_amount,
    rank_candidates,
)


def _candidate(value: str, priority: int = 1) -> AmountCandidate:
    return AmountCandidate(
        value=Decimal(value), priority=priority, matched_text=value, raw_digits=value
    )


class TestNormalizeAmount:
    """Tests for locale-aware separator handling."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("1.850,53", "1850.53"),
            ("1,850.53", "1850.53"),
            ("12,50", "12.50"),
            ("12.50", "12.50"),
            ("1 850,53", "1850.53"),
            ("1.234.567,89", "1234567.89"),
            ("1,234,567", "1234567"),
            ("1.234.567", "1234.567"),
        ],
    )
    def test_separator_rules(self, raw: str, expected: str) -> None:
        assert normalize_amount(raw) == expected

    def test_parse_amount(self) -> None:
        assert parse_amount("1.850,53") == Decimal("1850.53")

    def test_parse_unparseable(self) -> None:
        assert parse_amount("abc") is None

    def test_parse_rejects_non_finite(self) -> None:
        assert parse_amount("NaN") is None


class TestNormalizeText:
    """Tests for text normalization before matching."""

    def test_collapses_whitespace_and_lowercases(self) -> None:
        assert normalize_text("TOPLAM   :\n 10,00") == "toplam : 10,00"

    def test_folds_turkish_dotted_capital(self) -> None:
        assert normalize_text("FİŞ") == "fiş"


class TestRange:
    """Tests for the plausible amount range."""

    def test_bounds_inclusive(self) -> None:
        assert in_range(Decimal("0.01"))
        assert in_range(Decimal("10000000"))

    def test_outside_rejected(self) -> None:
        assert not in_range(Decimal("0"))
        assert not in_range(Decimal("10000000.01"))


class TestAmountExtractor:
    """Tests for the rule-table amount extractor."""

    def test_keyword_outranks_bare_number(self) -> None:
        amount, _ = AmountExtractor().extract("TOPLAM: 100,00 TL\n50,00")
        assert amount == Decimal("100.00")

    def test_keyword_outranks_larger_bare_number(self) -> None:
        amount, _ = AmountExtractor().extract("TOPLAM 45,00\nKASA 9.999,00")
        assert amount == Decimal("45.00")

    def test_subtotal_not_treated_as_total(self) -> None:
        text = "ARA TOPLAM 80,00\nKDV 20,00\nGENEL TOPLAM 100,00"
        amount, candidates = AmountExtractor().extract(text)
        assert amount == Decimal("100.00")
        assert candidates[0].rule == "grand_total"

    def test_card_payment(self) -> None:
        amount, candidates = AmountExtractor().extract("K.KART 45,90")
        assert amount == Decimal("45.90")
        assert candidates[0].rule == "card_payment"

    def test_english_total_with_comma_grouping(self) -> None:
        amount, _ = AmountExtractor().extract("Subtotal 1,500.00\nTOTAL: 1,850.53")
        assert amount == Decimal("1850.53")

    def test_currency_prefix(self) -> None:
        amount, candidates = AmountExtractor().extract("Ödeme ₺1.250,00")
        assert amount == Decimal("1250.00")
        assert candidates[0].rule == "currency_prefix"

    def test_date_not_read_as_amount(self) -> None:
        amount, candidates = AmountExtractor().extract("28.07.2023")
        assert amount is None
        assert candidates == []

    def test_out_of_range_rejected(self) -> None:
        amount, candidates = AmountExtractor().extract(
            "TOPLAM 0,00\nTUTAR 20.000.000,00"
        )
        assert amount is None
        assert candidates == []

    def test_equal_priority_sorted_by_value(self) -> None:
        candidates = AmountExtractor().find_candidates("12,50\n99,90\n5,00")
        assert [c.value for c in candidates] == [
            Decimal("99.90"),
            Decimal("12.50"),
            Decimal("5.00"),
        ]

    def test_candidates_non_increasing(self, receipt_text: str) -> None:
        candidates = AmountExtractor().find_candidates(receipt_text)
        keys = [(c.priority, c.value) for c in candidates]
        assert keys == sorted(keys, reverse=True)

    def test_every_candidate_in_range(self) -> None:
        text = "TOPLAM 0,00\nNAKIT 12,34\n99.999.999,99\nKDV 1,23"
        for candidate in AmountExtractor().find_candidates(text):
            assert in_range(candidate.value)

    @pytest.mark.parametrize("text", ["TOPLAM -50,00", "İNDİRİM -5,00", "-1.250,00 TL"])
    def test_negative_amounts_ignored(self, text: str) -> None:
        assert AmountExtractor().extract(text) == (None, [])

    def test_discount_line_does_not_win(self) -> None:
        amount, candidates = AmountExtractor().extract("İNDİRİM -75,00\nTOPLAM 24,90")
        assert amount == Decimal("24.90")
        assert Decimal("75.00") not in [c.value for c in candidates]

    def test_spaced_dash_leader_accepted(self) -> None:
        amount, candidates = AmountExtractor().extract("TOPLAM - 50,00")
        assert amount == Decimal("50.00")
        assert candidates[0].rule == "total"

    def test_dot_leader_keeps_keyword_priority(self) -> None:
        amount, candidates = AmountExtractor().extract("TOPLAM.......: 12,50\n99,90")
        assert amount == Decimal("12.50")
        assert candidates[0].rule == "total"

    def test_possessive_total(self) -> None:
        amount, candidates = AmountExtractor().extract("SATIŞ TOPLAMI 99,90\n150,00")
        assert amount == Decimal("99.90")
        assert candidates[0].rule == "total"

    def test_possessive_subtotal_not_total(self) -> None:
        _, candidates = AmountExtractor().extract("ARA TOPLAMI 80,00")
        assert all(c.rule != "total" for c in candidates)

    def test_empty_text(self) -> None:
        assert AmountExtractor().extract("") == (None, [])


class TestRanking:
    """Tests for candidate ordering and de-duplication."""

    def test_rank_candidates(self) -> None:
        ranked = rank_candidates([_candidate("5.00", 1), _candidate("3.00", 4)])
        assert [c.value for c in ranked] == [Decimal("3.00"), Decimal("5.00")]

    def test_distinct_values_keeps_best_per_value(self) -> None:
        candidates = [
            _candidate("10.00", 9),
            _candidate("10.00", 1),
            _candidate("7.00", 1),
        ]
        result = distinct_values(candidates, limit=5)
        assert [(c.value, c.priority) for c in result] == [
            (Decimal("10.00"), 9),
            (Decimal("7.00"), 1),
        ]

    def test_distinct_values_limit(self) -> None:
        candidates = [_candidate(f"{n}.00") for n in range(10, 0, -1)]
        assert len(distinct_values(candidates, limit=5)) == 5
