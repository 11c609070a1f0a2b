# ============================================================================
# src/biomarker_reconciliation/core/context/analysis.py
# ============================================================================
"""
Analysis output classes

- DocumentExtraction: one document's extraction payload (profile + observations)
- AnalysisRow / AnalysisSummary: per-biomarker result against the catalog
- DatedAnalysis: rows for a single test date
- ReconciliationResult: everything a run hands to persistence
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ...utils.parsing import normalize_whitespace, parse_date
from .enums import Direction, RangeStatus
from .observation import CanonicalObservation, RawObservation, Value
from .patient import CanonicalPatientProfile, MatchResult, PatientProfileFragment

logger = logging.getLogger(__name__)


def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = normalize_whitespace(str(value))
    return text or None


@dataclass
class DocumentExtraction:
    """One source document as delivered by the extraction step."""
    document_id: str
    profile: PatientProfileFragment
    observations: List[RawObservation] = field(default_factory=list)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any], document_id: Optional[str] = None) -> "DocumentExtraction":
        """
        Build from the extractor's JSON.

        Accepts {"patientInfo": {...}, "biomarkers": [...]} with camelCase or
        snake_case keys. Malformed fields are treated as absent; biomarker
        entries without a name are skipped.
        """
        if not isinstance(payload, Mapping):
            payload = {}

        doc_id = document_id or _text(_pick(payload, "documentId", "document_id", "id")) or "document"

        info = _pick(payload, "patientInfo", "patient_info", "patient")
        if not isinstance(info, Mapping):
            info = {}

        document_test_date = parse_date(_pick(info, "testDate", "test_date"))
        profile = PatientProfileFragment(
            source_document_id=doc_id,
            name=_text(_pick(info, "name", "patientName", "patient_name")),
            date_of_birth=parse_date(_pick(info, "dateOfBirth", "date_of_birth", "dob")),
            gender=_text(_pick(info, "gender", "sex")),
            test_date=document_test_date,
        )

        entries = _pick(payload, "biomarkers", "observations", "results")
        if not isinstance(entries, Sequence) or isinstance(entries, (str, bytes)):
            entries = []

        observations = []
        skipped = 0
        for entry in entries:
            if not isinstance(entry, Mapping):
                skipped += 1
                continue
            name = _text(_pick(entry, "name", "biomarker", "test"))
            if not name:
                skipped += 1
                continue

            test_date = parse_date(_pick(entry, "testDate", "test_date")) or document_test_date
            observations.append(RawObservation(
                source_document_id=doc_id,
                biomarker_name_raw=name,
                value_raw=_pick(entry, "value", "result"),
                unit_raw=_text(_pick(entry, "unit", "units")),
                test_date=test_date,
            ))

        if skipped:
            logger.debug(f"Document {doc_id}: skipped {skipped} malformed biomarker entries")

        return cls(document_id=doc_id, profile=profile, observations=observations)


@dataclass(frozen=True)
class AnalysisRow:
    biomarker_name: str
    value: Value
    unit: str
    optimal_range_display: str
    status: RangeStatus
    direction: Optional[Direction] = None
    category: Optional[str] = None
    provenance: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "biomarker_name": self.biomarker_name,
            "value": self.value,
            "unit": self.unit,
            "optimal_range": self.optimal_range_display,
            "status": self.status.value,
            "direction": self.direction.value if self.direction else None,
            "category": self.category,
            "provenance": list(self.provenance),
        }


@dataclass(frozen=True)
class AnalysisSummary:
    total: int = 0
    measured: int = 0
    missing: int = 0
    in_range: int = 0
    out_of_range: int = 0
    unknown: int = 0

    @classmethod
    def from_rows(cls, rows: Sequence[AnalysisRow]) -> "AnalysisSummary":
        measured = sum(1 for row in rows if isinstance(row.value, (int, float)))
        return cls(
            total=len(rows),
            measured=measured,
            missing=len(rows) - measured,
            in_range=sum(1 for row in rows if row.status == RangeStatus.IN_RANGE),
            out_of_range=sum(1 for row in rows if row.status == RangeStatus.OUT_OF_RANGE),
            unknown=sum(1 for row in rows if row.status == RangeStatus.UNKNOWN),
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "measured": self.measured,
            "missing": self.missing,
            "in_range": self.in_range,
            "out_of_range": self.out_of_range,
            "unknown": self.unknown,
        }


@dataclass(frozen=True)
class DatedAnalysis:
    test_date: date
    observations: Tuple[CanonicalObservation, ...]
    rows: Tuple[AnalysisRow, ...]
    summary: AnalysisSummary

    def to_dict(self) -> Dict[str, Any]:
        return {
            "test_date": self.test_date.isoformat(),
            "observations": [obs.to_dict() for obs in self.observations],
            "rows": [row.to_dict() for row in self.rows],
            "summary": self.summary.to_dict(),
        }


@dataclass(frozen=True)
class ReconciliationResult:
    run_id: str
    profile: CanonicalPatientProfile
    match: MatchResult
    observations: Tuple[CanonicalObservation, ...]
    rows: Tuple[AnalysisRow, ...]
    summary: AnalysisSummary
    dated_analyses: Tuple[DatedAnalysis, ...] = ()
    unmatched_observations: Tuple[CanonicalObservation, ...] = ()

    def row_for(self, biomarker_name: str) -> Optional[AnalysisRow]:
        """Row by canonical name (case-insensitive)."""
        key = biomarker_name.casefold()
        for row in self.rows:
            if row.biomarker_name.casefold() == key:
                return row
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "profile": self.profile.to_dict(),
            "match": self.match.to_dict(),
            "observations": [obs.to_dict() for obs in self.observations],
            "rows": [row.to_dict() for row in self.rows],
            "summary": self.summary.to_dict(),
            "dated_analyses": [analysis.to_dict() for analysis in self.dated_analyses],
            "unmatched_observations": [obs.to_dict() for obs in self.unmatched_observations],
        }
