# ============================================================================
# src/biomarker_reconciliation/core/context/patient.py
# ============================================================================
"""
Patient identity classes

- PatientProfileFragment: demographics extracted from one document
- CanonicalPatientProfile: merged profile plus every field-level disagreement
- ClientRecord: an existing client as returned by the registry
- MatchResult: outcome of identity resolution (never applied automatically)
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Optional, Tuple

from .enums import ConfidenceLevel, Gender, SuggestedAction

IDENTITY_FIELDS = ("name", "date_of_birth")


def title_case_name(name: Optional[str]) -> Optional[str]:
    """Title-case names written all upper or all lower case; keep mixed case."""
    if name and (name.isupper() or name.islower()):
        return name.title()
    return name


@dataclass(frozen=True)
class PatientProfileFragment:
    source_document_id: str
    name: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    test_date: Optional[date] = None


@dataclass(frozen=True)
class CanonicalPatientProfile:
    """
    One value per field plus the human-readable discrepancies found while
    merging. Built once per run; a new run builds a new profile.
    """
    name: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    test_date: Optional[date] = None

    discrepancies: Tuple[str, ...] = ()
    conflicting_fields: Tuple[str, ...] = ()
    confidence: ConfidenceLevel = ConfidenceLevel.HIGH
    source_document_ids: Tuple[str, ...] = ()

    @property
    def has_identity_conflict(self) -> bool:
        """Name or date of birth disagreed between documents."""
        return any(f in self.conflicting_fields for f in IDENTITY_FIELDS)

    @property
    def display_name(self) -> Optional[str]:
        """Name for presentation; name itself stays as first written."""
        return title_case_name(self.name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "date_of_birth": self.date_of_birth.isoformat() if self.date_of_birth else None,
            "gender": self.gender.value if self.gender else None,
            "test_date": self.test_date.isoformat() if self.test_date else None,
            "discrepancies": list(self.discrepancies),
            "confidence": self.confidence.value,
            "source_document_ids": list(self.source_document_ids),
        }


@dataclass(frozen=True)
class ClientRecord:
    client_id: str
    name: str
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class MatchResult:
    """
    Identity resolution outcome.

    A match is a suggestion only: callers obtain the client id to merge into
    through confirmed_client_id(), which needs an explicit acceptance.
    """
    matched: bool
    client_id: Optional[str]
    confidence: ConfidenceLevel
    suggested_action: SuggestedAction
    explanation: str = ""
    candidate: Optional[ClientRecord] = field(default=None, compare=False)

    @property
    def requires_confirmation(self) -> bool:
        return True

    def confirmed_client_id(self, accepted: bool) -> Optional[str]:
        """Client id to merge into, or None unless the caller accepted the match."""
        if not (accepted and self.matched):
            return None
        return self.client_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matched": self.matched,
            "client_id": self.client_id,
            "confidence": self.confidence.value,
            "suggested_action": self.suggested_action.value,
            "explanation": self.explanation,
            "requires_confirmation": self.requires_confirmation,
        }
