# ============================================================================
# src/biomarker_reconciliation/config/thresholds_config.py
# ============================================================================
"""
Confidence Thresholds
- Fuzzy patient-name matching
- Registry candidate pre-filter
- Biomarker name alias resolution
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ThresholdSettings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore")

    NAME_SIMILARITY_THRESHOLD: float = Field(
        default=0.80,
        ge=0.0, le=1.0,
        description="Minimum normalized Levenshtein similarity for a fuzzy (low tier) name match"
    )
    REGISTRY_CANDIDATE_FLOOR: float = Field(
        default=0.50,
        ge=0.0, le=1.0,
        description="In-memory registry returns clients at or above this name similarity"
    )
    ALIAS_FUZZY_CONFIDENCE: float = Field(
        default=0.80,
        ge=0.0, le=1.0,
        description="Confidence reported when a biomarker name resolves only after stripping specimen words"
    )
    UNKNOWN_NAME_CONFIDENCE: float = Field(
        default=0.30,
        ge=0.0, le=1.0,
        description="Confidence reported for biomarker names outside the catalog"
    )


threshold_settings = ThresholdSettings()
