# src/biomarker_reconciliation/core/context/__init__.py

from .enums import ConfidenceLevel, Direction, Gender, RangeStatus, SuggestedAction
from .observation import CanonicalObservation, NormalizedObservation, RawObservation
from .patient import (
    CanonicalPatientProfile,
    ClientRecord,
    MatchResult,
    PatientProfileFragment,
)
from .analysis import (
    AnalysisRow,
    AnalysisSummary,
    DatedAnalysis,
    DocumentExtraction,
    ReconciliationResult,
)

__all__ = [
    "ConfidenceLevel",
    "Direction",
    "Gender",
    "RangeStatus",
    "SuggestedAction",
    "RawObservation",
    "NormalizedObservation",
    "CanonicalObservation",
    "PatientProfileFragment",
    "CanonicalPatientProfile",
    "ClientRecord",
    "MatchResult",
    "DocumentExtraction",
    "AnalysisRow",
    "AnalysisSummary",
    "DatedAnalysis",
    "ReconciliationResult",
]
