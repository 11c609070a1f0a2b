# ============================================================================
# FILE: tests/unit/test_range_matcher.py
# ============================================================================
"""
Unit tests for range matching and analysis rows
"""

from datetime import date

import pytest

from biomarker_reconciliation.constants.units import NOT_AVAILABLE
from biomarker_reconciliation.core.catalog import BenchmarkEntry
from biomarker_reconciliation.core.context import CanonicalObservation, Direction, Gender, RangeStatus
from biomarker_reconciliation.validators.range_matcher import RangeMatcher, match_range


def _observation(name, value, unit):
    return CanonicalObservation(
        canonical_name=name,
        value=value,
        unit=unit,
        test_date=None,
        provenance=("doc-1",),
        winning_document_id="doc-1",
    )


def test_less_than_out_of_range_high():
    """Test '<50' with 62 is out of range, high"""
    result = match_range(62, None, "<50")
    assert result.status == RangeStatus.OUT_OF_RANGE
    assert result.direction == Direction.HIGH


def test_greater_or_equal_out_of_range_low():
    """Test '≥40' with 35 is out of range, low"""
    result = match_range(35, None, "≥40")
    assert result.status == RangeStatus.OUT_OF_RANGE
    assert result.direction == Direction.LOW


@pytest.mark.parametrize("value,range_text,status,direction", [
    (200, "162-240 mg/dL", RangeStatus.IN_RANGE, None),
    (162, "162-240 mg/dL", RangeStatus.IN_RANGE, None),
    (240, "162-240 mg/dL", RangeStatus.IN_RANGE, None),
    (241, "162-240 mg/dL", RangeStatus.OUT_OF_RANGE, Direction.HIGH),
    (150, "162-240 mg/dL", RangeStatus.OUT_OF_RANGE, Direction.LOW),
    (50, "<50", RangeStatus.OUT_OF_RANGE, Direction.HIGH),
    (50, "≤50", RangeStatus.IN_RANGE, None),
    (40, ">40", RangeStatus.OUT_OF_RANGE, Direction.LOW),
    (40, "≥40", RangeStatus.IN_RANGE, None),
    (5, "Refer to lab specific range", RangeStatus.UNKNOWN, None),
])
def test_predicate_evaluation(value, range_text, status, direction):
    """Test every predicate kind including boundaries"""
    result = match_range(value, None, range_text)
    assert result.status == status
    assert result.direction == direction


def test_swapped_interval_keeps_direction():
    """Test reversed bounds do not invert high/low"""
    assert match_range(300, None, "240-162").direction == Direction.HIGH
    assert match_range(100, None, "240-162").direction == Direction.LOW


@pytest.mark.parametrize("range_text", ["<50", "≥40", "4.2-6.4 mmol/L", "Refer to lab specific range"])
def test_not_available_is_always_unknown(range_text):
    """Test N/A values are unknown with no direction for any range"""
    result = match_range(NOT_AVAILABLE, "mmol/L", range_text)
    assert result.status == RangeStatus.UNKNOWN
    assert result.direction is None


def test_alternate_unit_used_when_value_in_that_unit(creatinine_mg_entry):
    """Test µmol/L value is classified against the parenthetical µmol/L range"""
    matcher = RangeMatcher()

    in_range = matcher.evaluate(80, "µmol/L", creatinine_mg_entry, Gender.MALE)
    assert in_range.status == RangeStatus.IN_RANGE
    assert in_range.predicate.unit == "µmol/L"

    high = matcher.evaluate(120, "umol/L", creatinine_mg_entry, Gender.MALE)
    assert high.status == RangeStatus.OUT_OF_RANGE
    assert high.direction == Direction.HIGH


def test_outer_range_used_for_its_unit(creatinine_mg_entry):
    """Test mg/dL value is classified against the outer range"""
    result = RangeMatcher().evaluate(1.5, "mg/dL", creatinine_mg_entry)
    assert result.status == RangeStatus.OUT_OF_RANGE
    assert result.direction == Direction.HIGH
    assert result.predicate.unit == "mg/dL"


def test_unit_matching_neither_side_is_unknown(creatinine_mg_entry):
    """Test value in a unit the range is not written in is unknown"""
    result = RangeMatcher().evaluate(1.5, "mg/L", creatinine_mg_entry)
    assert result.status == RangeStatus.UNKNOWN
    assert result.direction is None


def test_gender_specific_range(catalog):
    """Test female range selected for female patients"""
    matcher = RangeMatcher()
    hemoglobin = catalog.get("Hemoglobin")

    assert matcher.evaluate(140, "g/L", hemoglobin, Gender.FEMALE).status == RangeStatus.IN_RANGE
    assert matcher.evaluate(140, "g/L", hemoglobin, "female").status == RangeStatus.IN_RANGE
    male = matcher.evaluate(140, "g/L", hemoglobin, Gender.MALE)
    assert male.direction == Direction.LOW


def test_absent_or_other_gender_defaults_to_male(catalog):
    """Test male range used when gender is absent or other"""
    matcher = RangeMatcher()
    hemoglobin = catalog.get("Hemoglobin")

    for gender in (None, Gender.OTHER, "unknown"):
        assert matcher.evaluate(140, "g/L", hemoglobin, gender).direction == Direction.LOW


def test_default_gender_from_config(catalog):
    """Test configured default gender"""
    matcher = RangeMatcher({"default_gender": "female"})
    hemoglobin = catalog.get("Hemoglobin")
    assert matcher.evaluate(140, "g/L", hemoglobin, None).status == RangeStatus.IN_RANGE


def test_evaluation_is_idempotent(catalog):
    """Test re-running the matcher yields identical output"""
    matcher = RangeMatcher()
    entry = catalog.get("Total Cholesterol")
    observation = _observation("Total Cholesterol", 7.1, "mmol/L")

    first = matcher.match(observation, entry, Gender.MALE)
    second = matcher.match(observation, entry, Gender.MALE)
    assert first == second
    assert first.direction == Direction.HIGH


def test_build_rows_covers_full_catalog(catalog):
    """Test every catalog biomarker gets a row, missing ones as N/A"""
    matcher = RangeMatcher()
    observations = [
        _observation("Fasting Glucose", 4.8, "mmol/L"),
        _observation("Ferritin", 20.0, "µg/L"),
    ]

    rows = matcher.build_rows(observations, catalog, Gender.FEMALE)

    assert len(rows) == len(catalog)
    names = [row.biomarker_name for row in rows]
    assert names == sorted(names, key=str.casefold)

    by_name = {row.biomarker_name: row for row in rows}
    assert by_name["Fasting Glucose"].status == RangeStatus.IN_RANGE
    assert by_name["Ferritin"].direction == Direction.LOW
    assert by_name["Ferritin"].optimal_range_display == "50-150 µg/L"

    missing = by_name["TSH"]
    assert missing.value == NOT_AVAILABLE
    assert missing.status == RangeStatus.UNKNOWN
    assert missing.direction is None
    assert missing.unit == "mIU/L"


def test_build_rows_skips_names_outside_catalog(catalog):
    """Test observations not in the catalog do not become rows"""
    observations = [_observation("Mystery Marker", 7.0, "U")]
    rows = RangeMatcher().build_rows(observations, catalog)
    assert all(row.biomarker_name != "Mystery Marker" for row in rows)


def test_generate_summary(catalog):
    """Test summary counts"""
    matcher = RangeMatcher()
    rows = matcher.build_rows([
        _observation("Fasting Glucose", 4.8, "mmol/L"),
        _observation("Ferritin", 20.0, "µg/L"),
        _observation("TSH", NOT_AVAILABLE, "mIU/L"),
    ], catalog, Gender.MALE)

    summary = matcher.generate_summary(rows)

    assert summary.total == len(catalog)
    assert summary.measured == 2
    assert summary.missing == len(catalog) - 2
    assert summary.in_range == 1
    assert summary.out_of_range == 1
    assert summary.unknown == len(catalog) - 2
