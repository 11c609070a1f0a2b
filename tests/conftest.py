# ============================================================================
# FILE: tests/conftest.py
# ============================================================================
"""
Pytest configuration and shared fixtures for testing.
"""

import pytest
from datetime import date

from biomarker_reconciliation.core.catalog import BenchmarkCatalog, BenchmarkEntry, UnitConversion
from biomarker_reconciliation.core.context import (
    ClientRecord,
    NormalizedObservation,
    PatientProfileFragment,
    RawObservation,
)
from biomarker_reconciliation.matching.registry import InMemoryClientRegistry


@pytest.fixture(scope="session")
def catalog():
    """Built-in benchmark catalog snapshot"""
    return BenchmarkCatalog.builtin()


@pytest.fixture
def creatinine_mg_entry():
    """Benchmark written with mg/dL outside and µmol/L in parentheses"""
    return BenchmarkEntry(
        id="test-creatinine",
        canonical_name="Creatinine",
        male_range="0.68-1.13 mg/dL (60-100 µmol/L)",
        female_range="0.68-1.13 mg/dL (60-100 µmol/L)",
        canonical_unit="mg/dL",
        alias_names=("Creat",),
        unit_aliases={"µmol/L": UnitConversion(factor=1 / 88.4)},
    )


@pytest.fixture
def make_normalized():
    """Factory for normalized observations"""
    def _make(doc, name, value, unit="mmol/L", test_date=None, in_catalog=True):
        return NormalizedObservation(
            source_document_id=doc,
            canonical_name=name,
            value=value,
            unit=unit,
            test_date=test_date,
            original_name=name,
            original_value=value,
            original_unit=unit,
            in_catalog=in_catalog,
        )
    return _make


@pytest.fixture
def make_raw():
    """Factory for raw observations"""
    def _make(doc, name, value, unit, test_date=None):
        return RawObservation(
            source_document_id=doc,
            biomarker_name_raw=name,
            value_raw=value,
            unit_raw=unit,
            test_date=test_date,
        )
    return _make


@pytest.fixture
def john_smith_fragments():
    """Two documents disagreeing on the patient name"""
    return [
        PatientProfileFragment(
            source_document_id="doc-1",
            name="John Smith",
            date_of_birth=date(1980, 3, 14),
            gender="M",
            test_date=date(2024, 1, 1),
        ),
        PatientProfileFragment(
            source_document_id="doc-2",
            name="Jon Smith",
            date_of_birth=date(1980, 3, 14),
            gender="Male",
            test_date=date(2024, 1, 1),
        ),
    ]


@pytest.fixture
def registry():
    """Small in-memory client registry"""
    return InMemoryClientRegistry([
        ClientRecord(client_id="c-001", name="John Smith", date_of_birth=date(1980, 3, 14), gender="male"),
        ClientRecord(client_id="c-002", name="Maria Garcia", date_of_birth=date(1975, 7, 2), gender="female"),
        ClientRecord(client_id="c-003", name="Ashley Lebedev", date_of_birth=None, gender="female"),
    ])


@pytest.fixture
def two_report_payloads():
    """Extractor output for two reports of the same patient, six months apart"""
    return [
        {
            "patientInfo": {
                "name": "ASHLEY LEBEDEV",
                "dateOfBirth": "1990-05-20",
                "gender": "Female",
                "testDate": "2024-01-01",
            },
            "biomarkers": [
                {"name": "Glucose", "value": "95", "unit": "mg/dL"},
                {"name": "Vitamin D", "value": "N/A", "unit": "ng/mL"},
                {"name": "Ferritin", "value": "40", "unit": "ng/mL"},
                {"name": "Mystery Marker", "value": "7", "unit": "U"},
            ],
        },
        {
            "patientInfo": {
                "name": "Ashley Lebedev",
                "dateOfBirth": "1990-05-20",
                "gender": "F",
                "testDate": "2024-06-01",
            },
            "biomarkers": [
                {"name": "Fasting Glucose", "value": "110", "unit": "mg/dL"},
                {"name": "25-OH Vitamin D", "value": "45", "unit": "ng/mL"},
                {"name": "Hemoglobin", "value": "13.0", "unit": "g/dL"},
            ],
        },
    ]
