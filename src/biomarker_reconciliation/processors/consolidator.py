# ============================================================================
# src/biomarker_reconciliation/processors/consolidator.py
# ============================================================================
"""
Document Consolidator

Merges per-document patient metadata into one CanonicalPatientProfile.

Per field (name, date of birth, gender, test date) the first non-empty value
in document order is canonical and is never changed afterwards. Each later
document with a different non-empty value adds one discrepancy string.
Strings are compared case-insensitively with whitespace normalized; dates
exactly.

Confidence:
- high:   no discrepancies
- medium: only gender / test date disagree
- low:    name or date of birth disagree
"""

import logging
from datetime import date
from typing import Any, Dict, List, Sequence

from ..core.context.enums import ConfidenceLevel, Gender
from ..core.context.patient import IDENTITY_FIELDS, CanonicalPatientProfile, PatientProfileFragment
from ..utils.exceptions import EmptyInputBatch
from ..utils.parsing import normalize_key, normalize_whitespace, parse_date

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("name", "date_of_birth", "gender", "test_date")

FIELD_LABELS = {
    "name": "Name",
    "date_of_birth": "Date of birth",
    "gender": "Gender",
    "test_date": "Test date",
}


def _field_value(fragment: PatientProfileFragment, field_name: str) -> Any:
    """Fragment field with empty / unparseable values read as absent."""
    value = getattr(fragment, field_name)

    if field_name == "name":
        return normalize_whitespace(value) or None
    if field_name == "gender":
        return Gender.parse(value)
    return parse_date(value)


def _comparison_key(value: Any) -> Any:
    if isinstance(value, str):
        return normalize_key(value)
    return value


def _display(value: Any) -> str:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Gender):
        return value.value
    return str(value)


class DocumentConsolidator:
    """
    Consolidate patient metadata from several documents.
    """

    def consolidate(self, fragments: Sequence[PatientProfileFragment]) -> CanonicalPatientProfile:
        """
        Args:
            fragments: One profile fragment per document, in submission order

        Returns:
            CanonicalPatientProfile with discrepancies and confidence

        Raises:
            EmptyInputBatch: no fragments
        """
        if not fragments:
            raise EmptyInputBatch("No documents to consolidate")

        canonical: Dict[str, Any] = {}
        canonical_source: Dict[str, str] = {}
        discrepancies: List[str] = []
        conflicting: List[str] = []

        for fragment in fragments:
            for field_name in PROFILE_FIELDS:
                value = _field_value(fragment, field_name)
                if value is None:
                    continue

                if field_name not in canonical:
                    canonical[field_name] = value
                    canonical_source[field_name] = fragment.source_document_id
                    continue

                if _comparison_key(value) == _comparison_key(canonical[field_name]):
                    continue

                discrepancies.append(
                    f"{FIELD_LABELS[field_name]} differs: "
                    f"'{_display(canonical[field_name])}' in {canonical_source[field_name]} vs "
                    f"'{_display(value)}' in {fragment.source_document_id}"
                )
                if field_name not in conflicting:
                    conflicting.append(field_name)

        confidence = self._confidence(conflicting)

        profile = CanonicalPatientProfile(
            name=canonical.get("name"),
            date_of_birth=canonical.get("date_of_birth"),
            gender=canonical.get("gender"),
            test_date=canonical.get("test_date"),
            discrepancies=tuple(discrepancies),
            conflicting_fields=tuple(conflicting),
            confidence=confidence,
            source_document_ids=tuple(f.source_document_id for f in fragments),
        )

        if discrepancies:
            logger.info(
                f"Consolidated {len(fragments)} documents with {len(discrepancies)} discrepancies "
                f"in {', '.join(conflicting)} (confidence: {confidence.value})"
            )
            for discrepancy in discrepancies:
                logger.debug(discrepancy)
        else:
            logger.info(f"Consolidated {len(fragments)} documents, no discrepancies")

        return profile

    def _confidence(self, conflicting: Sequence[str]) -> ConfidenceLevel:
        if any(field_name in IDENTITY_FIELDS for field_name in conflicting):
            return ConfidenceLevel.LOW
        if conflicting:
            return ConfidenceLevel.MEDIUM
        return ConfidenceLevel.HIGH


# ============================================================================
# CONVENIENCE FUNCTION
# ============================================================================

def consolidate_profiles(fragments: Sequence[PatientProfileFragment]) -> CanonicalPatientProfile:
    """Quick consolidation of profile fragments."""
    return DocumentConsolidator().consolidate(fragments)
