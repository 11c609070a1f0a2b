# ============================================================================
# src/biomarker_reconciliation/config/reconciliation_config.py
# ============================================================================
"""
Reconciliation Settings
- Gender used for range selection when the profile has none
- Rounding of converted values
- Per-test-date analyses
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ReconciliationSettings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore")

    DEFAULT_GENDER: str = Field(
        default="male",
        description="Range column used when gender is absent or not male/female"
    )
    CONVERSION_PRECISION: int = Field(
        default=2,
        ge=0, le=6,
        description="Decimal places kept after a unit conversion"
    )
    SPLIT_BY_TEST_DATE: bool = Field(
        default=True,
        description="Also produce one analysis per distinct test date when a batch spans several"
    )

    @field_validator("DEFAULT_GENDER")
    @classmethod
    def _check_gender(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in ("male", "female"):
            raise ValueError("DEFAULT_GENDER must be 'male' or 'female'")
        return value


reconciliation_settings = ReconciliationSettings()
