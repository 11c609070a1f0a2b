# ============================================================================
# FILE: tests/unit/test_range_parser.py
# ============================================================================
"""
Unit tests for the reference range grammar
"""

import logging

import pytest

from biomarker_reconciliation.core.context import Direction, RangeStatus
from biomarker_reconciliation.processors.range_parser import (
    GreaterOrEqual,
    GreaterThan,
    Interval,
    LessOrEqual,
    LessThan,
    Unknown,
    format_predicate,
    parse_range,
)
from biomarker_reconciliation.validators.range_matcher import match_range


def test_interval_with_unit():
    """Test dash-delimited interval followed by a unit"""
    expr = parse_range("162-240 mg/dL")
    assert expr.predicate == Interval(162.0, 240.0, "mg/dL")
    assert expr.alternate is None
    assert expr.raw_text == "162-240 mg/dL"


@pytest.mark.parametrize("text,low,high", [
    ("12.0 - 15.5", 12.0, 15.5),
    ("4.44–5.0 mmol/L", 4.44, 5.0),
    ("10 to 20", 10.0, 20.0),
    ("0.0-0.3 ×10³/µL", 0.0, 0.3),
])
def test_interval_variants(text, low, high):
    """Test spaced, en-dash and 'to' intervals"""
    predicate = parse_range(text).predicate
    assert isinstance(predicate, Interval)
    assert predicate.low == low
    assert predicate.high == high


def test_interval_unit_captured():
    """Test unit token kept with the interval"""
    assert parse_range("0.0-0.3 ×10³/µL").predicate.unit == "×10³/µL"
    assert parse_range("5.0-5.3 %").predicate.unit == "%"
    assert parse_range("12.0 - 15.5").predicate.unit is None


def test_swapped_bounds_normalized(caplog):
    """Test reversed interval bounds are read low-high, never inverted"""
    with caplog.at_level(logging.WARNING):
        expr = parse_range("240-162 mg/dL")

    assert expr.predicate == Interval(162.0, 240.0, "mg/dL")
    assert expr.predicate.low <= expr.predicate.high
    assert "reversed" in caplog.text


@pytest.mark.parametrize("text,expected", [
    ("<50", LessThan(50.0)),
    ("< 13 %", LessThan(13.0, "%")),
    ("≤ 0.09 ×10³/µL", LessOrEqual(0.09, "×10³/µL")),
    ("<= 5.6", LessOrEqual(5.6)),
    ("≥40", GreaterOrEqual(40.0)),
    (">= 40", GreaterOrEqual(40.0)),
    ("=> 40", GreaterOrEqual(40.0)),
    ("> 90 mL/min/m²", GreaterThan(90.0, "mL/min/m²")),
])
def test_comparators(text, expected):
    """Test ASCII and Unicode comparator glyphs"""
    assert parse_range(text).predicate == expected


def test_parenthetical_alternate_unit():
    """Test parenthetical range in a second unit becomes the alternate"""
    expr = parse_range("0.68-1.13 mg/dL (60-100 µmol/L)")

    assert expr.predicate == Interval(0.68, 1.13, "mg/dL")
    assert expr.alternate == Interval(60.0, 100.0, "µmol/L")


def test_comparator_with_parenthetical_comparator():
    """Test comparator outside and inside parentheses"""
    expr = parse_range("≤5.6 (≤100 mg/dL)")

    assert expr.predicate == LessOrEqual(5.6)
    assert expr.alternate == LessOrEqual(100.0, "mg/dL")


def test_parenthetical_remark_is_not_alternate():
    """Test a parenthetical without its own unit is ignored"""
    expr = parse_range("> 90 mL/min/m² (> 60 if high muscle mass)")

    assert expr.predicate == GreaterThan(90.0, "mL/min/m²")
    assert expr.alternate is None


def test_first_parenthetical_wins():
    """Test only the first usable parenthetical is attached"""
    expr = parse_range("4.2-6.4 mmol/L (162-240 mg/dL) (1.62-2.40 g/L)")
    assert expr.alternate == Interval(162.0, 240.0, "mg/dL")


def test_unparseable_outer_falls_back_to_parenthetical():
    """Test the parenthetical is kept when the outer text has no range"""
    expr = parse_range("Optimal (60-100 µmol/L)")

    assert isinstance(expr.predicate, Unknown)
    assert expr.alternate == Interval(60.0, 100.0, "µmol/L")
    assert not expr.is_unknown


@pytest.mark.parametrize("text", [
    "Refer to lab specific range",
    "Negative",
    "see comment",
    "",
    None,
])
def test_unparseable_text_is_unknown(text):
    """Test parser never raises and degrades to Unknown"""
    expr = parse_range(text)
    assert isinstance(expr.predicate, Unknown)
    assert expr.is_unknown


def test_malformed_range_logged_as_warning(caplog):
    """Test malformed expressions are logged, not raised"""
    with caplog.at_level(logging.WARNING):
        parse_range("within normal limits for age")
    assert "Malformed range expression" in caplog.text


def test_format_predicate():
    """Test predicates render back to readable text"""
    assert format_predicate(Interval(4.2, 6.4, "mmol/L")) == "4.2-6.4 mmol/L"
    assert format_predicate(GreaterOrEqual(40.0)) == "≥ 40"
    assert format_predicate(LessThan(13.0, "%")) == "< 13 %"


@pytest.mark.parametrize("text,expected", [
    ("150,000-450,000 /µL", Interval(150000.0, 450000.0, "/µL")),
    ("1,000-4,000", Interval(1000.0, 4000.0)),
    ("-2 to 2 mmol/L", Interval(-2.0, 2.0, "mmol/L")),
    ("-5 - -1", Interval(-5.0, -1.0)),
    ("> -2.5", GreaterThan(-2.5)),
    ("< 1,500 mg", LessThan(1500.0, "mg")),
])
def test_signed_and_grouped_numbers(text, expected):
    """Test thousands separators and signs are read as whole numbers"""
    assert parse_range(text).predicate == expected


@pytest.mark.parametrize("text", [
    "4,5-6,5",
    "1.2.3-4",
])
def test_number_fragments_never_match(text):
    """Test text that only contains pieces of numbers degrades to Unknown"""
    assert isinstance(parse_range(text).predicate, Unknown)


def test_thousands_range_classification():
    """Test platelet-style ranges classify whole values"""
    assert match_range(300000, None, "150,000-450,000").status == RangeStatus.IN_RANGE
    low = match_range(300, None, "150,000-450,000")
    assert low.status == RangeStatus.OUT_OF_RANGE
    assert low.direction == Direction.LOW
