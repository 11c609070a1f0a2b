# ============================================================================
# src/biomarker_reconciliation/core/context/enums.py
# ============================================================================
"""
Reconciliation Enums
- Confidence tiers (identity matching and consolidation)
- Range status and direction
- Suggested client action
- Gender used for range selection
"""

from enum import Enum
from typing import Any, Optional


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    def downgrade(self) -> "ConfidenceLevel":
        """One tier lower; LOW stays LOW."""
        if self is ConfidenceLevel.HIGH:
            return ConfidenceLevel.MEDIUM
        return ConfidenceLevel.LOW


class RangeStatus(str, Enum):
    IN_RANGE = "in-range"
    OUT_OF_RANGE = "out-of-range"
    UNKNOWN = "unknown"


class Direction(str, Enum):
    HIGH = "high"
    LOW = "low"


class SuggestedAction(str, Enum):
    USE_EXISTING = "use-existing"
    CREATE_NEW = "create-new"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> Optional["Gender"]:
        """Map extracted sex/gender text (M, Female, hombre...) to a Gender."""
        if value is None:
            return None
        if isinstance(value, Gender):
            return value

        text = str(value).strip().lower()
        if not text:
            return None
        if text in _MALE_TOKENS:
            return cls.MALE
        if text in _FEMALE_TOKENS:
            return cls.FEMALE
        return cls.OTHER


_MALE_TOKENS = {"m", "male", "man", "masculino", "hombre", "homme", "männlich", "maschio"}
_FEMALE_TOKENS = {"f", "female", "woman", "femenino", "mujer", "femme", "weiblich", "femmina", "w"}
