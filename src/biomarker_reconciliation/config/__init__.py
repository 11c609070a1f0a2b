# ============================================================================
# src/biomarker_reconciliation/config/__init__.py
# ============================================================================
"""
Convenient imports for all settings
"""

from .base_config import base_settings
from .thresholds_config import threshold_settings
from .reconciliation_config import reconciliation_settings
from .logging_config import logging_settings
