# ============================================================================
# src/biomarker_reconciliation/config/base_config.py
# ============================================================================
"""
Base Configuration
- Knowledge directory holding the built-in benchmark catalog
- Optional user catalog with custom / overriding benchmarks
"""

from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Pick up a project-level .env before any settings object is built
load_dotenv(find_dotenv(usecwd=True))


class BaseSettingsConfig(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore")

    # Knowledge bases
    KNOWLEDGE_DIR: Path = Field(
        default_factory=lambda: Path(__file__).parent.parent / "knowledge",
        description="Directory containing the built-in benchmark catalog"
    )

    BENCHMARK_CATALOG_FILE: str = Field(
        default="benchmarks.json",
        description="File name of the built-in catalog inside KNOWLEDGE_DIR"
    )

    # User overrides
    CUSTOM_BENCHMARKS_PATH: Optional[Path] = Field(
        default=None,
        description="JSON file of user-added or overriding benchmarks (export format)"
    )

    def get_catalog_path(self) -> Path:
        """Get full path of the built-in benchmark catalog"""
        return self.KNOWLEDGE_DIR / self.BENCHMARK_CATALOG_FILE


# Global instance
base_settings = BaseSettingsConfig()
