# ============================================================================
# src/biomarker_reconciliation/core/context/observation.py
# ============================================================================
"""
Biomarker observations at each stage of a reconciliation run
- RawObservation: as extracted from one document
- NormalizedObservation: name resolved against the catalog, unit converted
- CanonicalObservation: one per canonical name after deduplication
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Optional, Tuple, Union

from ...constants.units import NOT_AVAILABLE

Value = Union[float, str]


@dataclass(frozen=True)
class RawObservation:
    source_document_id: str
    biomarker_name_raw: str
    value_raw: Any = None
    unit_raw: Optional[str] = None
    test_date: Optional[date] = None


@dataclass(frozen=True)
class NormalizedObservation:
    """
    Observation after name and unit normalization.

    value is a float, or NOT_AVAILABLE when the raw value was missing or
    non-numeric. The original_* fields keep what the document said.
    """
    source_document_id: str
    canonical_name: str
    value: Value
    unit: str
    test_date: Optional[date] = None

    original_name: str = ""
    original_value: Any = None
    original_unit: Optional[str] = None

    name_confidence: float = 1.0
    conversion_applied: bool = False
    in_catalog: bool = True

    @property
    def has_value(self) -> bool:
        return self.value != NOT_AVAILABLE


@dataclass(frozen=True)
class CanonicalObservation:
    canonical_name: str
    value: Value
    unit: str
    test_date: Optional[date]
    provenance: Tuple[str, ...]
    winning_document_id: str
    conversion_applied: bool = False
    in_catalog: bool = True

    @property
    def has_value(self) -> bool:
        return self.value != NOT_AVAILABLE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "canonical_name": self.canonical_name,
            "value": self.value,
            "unit": self.unit,
            "test_date": self.test_date.isoformat() if self.test_date else None,
            "provenance": list(self.provenance),
            "winning_document_id": self.winning_document_id,
            "conversion_applied": self.conversion_applied,
            "in_catalog": self.in_catalog,
        }
