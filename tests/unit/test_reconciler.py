# ============================================================================
# FILE: tests/unit/test_reconciler.py
# ============================================================================
"""
End-to-end tests for ReconciliationEngine
"""

import json
from datetime import date

import pytest

from biomarker_reconciliation import ReconciliationEngine, reconcile
from biomarker_reconciliation.core.context import (
    ConfidenceLevel,
    Direction,
    DocumentExtraction,
    RangeStatus,
    SuggestedAction,
)
from biomarker_reconciliation.utils.exceptions import (
    EmptyInputBatch,
    NoObservationsError,
    RegistryLookupError,
)


@pytest.fixture
def result(catalog, two_report_payloads):
    return ReconciliationEngine(catalog).run(two_report_payloads)


def test_profile_consolidated(result):
    """Test name kept as first written and only the test date disagreeing"""
    profile = result.profile

    assert profile.name == "ASHLEY LEBEDEV"
    assert profile.display_name == "Ashley Lebedev"
    assert profile.date_of_birth == date(1990, 5, 20)
    assert profile.gender.value == "female"
    assert profile.test_date == date(2024, 1, 1)
    assert profile.conflicting_fields == ("test_date",)
    assert profile.confidence == ConfidenceLevel.MEDIUM


def test_one_row_per_catalog_entry(catalog, result):
    """Test rows cover the whole catalog sorted by name"""
    names = [row.biomarker_name for row in result.rows]

    assert len(result.rows) == len(catalog)
    assert names == sorted(names, key=str.casefold)
    assert result.row_for("Mystery Marker") is None


def test_most_recent_value_wins(result):
    """Test glucose from the later report, converted to mmol/L"""
    row = result.row_for("Fasting Glucose")

    assert row.value == 6.11
    assert row.unit == "mmol/L"
    assert row.status == RangeStatus.OUT_OF_RANGE
    assert row.direction == Direction.HIGH
    assert row.provenance == ("document-1", "document-2")


def test_value_replaces_missing(result):
    """Test N/A vitamin D filled in from the second report"""
    row = result.row_for("Vitamin D (25-Hydroxy D)")

    assert row.value == 112.32
    assert row.unit == "nmol/L"
    assert row.status == RangeStatus.OUT_OF_RANGE
    assert row.direction == Direction.LOW


def test_female_range_used(result):
    """Test hemoglobin converted and matched against the female range"""
    row = result.row_for("Hemoglobin")

    assert row.value == 130.0
    assert row.optimal_range_display == "135-145 g/L (13.5-14.5 g/dL)"
    assert row.direction == Direction.LOW


def test_missing_biomarker_row(result):
    """Test catalog entry without observation"""
    row = result.row_for("ALT")

    assert row.value == "N/A"
    assert row.unit == "IU/L"
    assert row.status == RangeStatus.UNKNOWN
    assert row.direction is None


def test_summary_counts(catalog, result):
    """Test summary over the full catalog"""
    summary = result.summary

    assert summary.total == len(catalog)
    assert summary.measured == 4
    assert summary.missing == len(catalog) - 4
    assert summary.out_of_range == 4
    assert summary.in_range == 0


def test_unmatched_observations_kept(result):
    """Test names outside the catalog are reported separately"""
    assert [obs.canonical_name for obs in result.unmatched_observations] == ["Mystery Marker"]
    unmatched = result.unmatched_observations[0]
    assert unmatched.value == 7.0
    assert unmatched.unit == "U"


def test_dated_analyses(result):
    """Test one analysis per test date"""
    dated = result.dated_analyses

    assert [analysis.test_date for analysis in dated] == [date(2024, 1, 1), date(2024, 6, 1)]

    first = {obs.canonical_name: obs for obs in dated[0].observations}
    assert first["Fasting Glucose"].value == 5.27
    assert first["Vitamin D (25-Hydroxy D)"].value == "N/A"
    assert "Hemoglobin" not in first

    assert dated[1].summary.measured == 3


def test_split_by_test_date_disabled(catalog, two_report_payloads):
    """Test per-date split can be switched off"""
    result = ReconciliationEngine(catalog, config={"split_by_test_date": False}).run(two_report_payloads)
    assert result.dated_analyses == ()


def test_single_date_has_no_split(catalog, two_report_payloads):
    """Test a single report produces no per-date analyses"""
    result = ReconciliationEngine(catalog).run(two_report_payloads[:1])
    assert result.dated_analyses == ()
    assert result.profile.confidence == ConfidenceLevel.HIGH


def test_no_registry_suggests_create_new(result):
    """Test match result without a registry"""
    assert not result.match.matched
    assert result.match.suggested_action == SuggestedAction.CREATE_NEW
    assert result.match.confidence == ConfidenceLevel.MEDIUM


def test_registry_match(catalog, registry, two_report_payloads):
    """Test exact name with DOB missing in the registry"""
    result = ReconciliationEngine(catalog, registry=registry).run(two_report_payloads)

    assert result.match.matched
    assert result.match.client_id == "c-003"
    assert result.match.confidence == ConfidenceLevel.MEDIUM
    assert result.match.suggested_action == SuggestedAction.USE_EXISTING
    assert result.match.requires_confirmation
    assert result.match.confirmed_client_id(accepted=False) is None


def test_registry_failure_propagates(catalog, two_report_payloads):
    """Test registry errors abort the run"""
    def broken(name, date_of_birth):
        raise TimeoutError("registry down")

    with pytest.raises(RegistryLookupError):
        ReconciliationEngine(catalog, registry=broken).run(two_report_payloads)


def test_empty_batch(catalog):
    """Test empty input batch"""
    with pytest.raises(EmptyInputBatch):
        ReconciliationEngine(catalog).run([])


def test_documents_without_biomarkers(catalog):
    """Test batch with metadata only"""
    with pytest.raises(NoObservationsError):
        ReconciliationEngine(catalog).run([{"patientInfo": {"name": "Jane Doe"}, "biomarkers": []}])


def test_document_extraction_from_dict():
    """Test malformed biomarker entries are skipped"""
    extraction = DocumentExtraction.from_dict({
        "documentId": "lab-7",
        "patient_info": {"name": "  Jane   Doe ", "dob": "03/14/1980", "test_date": "2024-02-01"},
        "biomarkers": [
            {"name": "Glucose", "value": 5.1, "unit": "mmol/L"},
            {"value": "12"},
            "not an entry",
            {"name": "TSH", "value": "2.1", "unit": "mIU/L", "testDate": "2024-02-03"},
        ],
    })

    assert extraction.document_id == "lab-7"
    assert extraction.profile.name == "Jane Doe"
    assert extraction.profile.date_of_birth == date(1980, 3, 14)
    assert [obs.biomarker_name_raw for obs in extraction.observations] == ["Glucose", "TSH"]
    assert extraction.observations[0].test_date == date(2024, 2, 1)
    assert extraction.observations[1].test_date == date(2024, 2, 3)


def test_accepts_document_extractions(catalog, two_report_payloads):
    """Test engine takes DocumentExtraction objects as well as dicts"""
    documents = [
        DocumentExtraction.from_dict(payload, document_id=f"report-{i}")
        for i, payload in enumerate(two_report_payloads)
    ]
    result = ReconciliationEngine(catalog).run(documents)

    assert result.row_for("Fasting Glucose").provenance == ("report-0", "report-1")


def test_deterministic(catalog, two_report_payloads):
    """Test same batch gives the same rows"""
    first = ReconciliationEngine(catalog).run(two_report_payloads)
    second = ReconciliationEngine(catalog).run(two_report_payloads)

    assert first.rows == second.rows
    assert first.run_id != second.run_id


def test_result_serializable(result):
    """Test to_dict is JSON serializable"""
    payload = json.loads(json.dumps(result.to_dict()))

    assert payload["profile"]["display_name"] == "Ashley Lebedev"
    assert payload["summary"]["measured"] == 4
    assert len(payload["dated_analyses"]) == 2


def test_reconcile_convenience(two_report_payloads):
    """Test convenience function with the built-in catalog"""
    result = reconcile(two_report_payloads)
    assert result.row_for("ferritin").value == 40.0
