# ============================================================================
# src/biomarker_reconciliation/__init__.py
# ============================================================================
"""
Biomarker Reconciliation & Range-Matching Engine

Turns per-document lab extractions for one patient into a single reconciled
record: canonical patient profile, one value per biomarker, and a status
against a gender-specific reference range.
"""

__version__ = "0.1.0"

from .core.catalog import BenchmarkCatalog, BenchmarkEntry, load_catalog
from .core.reconciler import ReconciliationEngine, reconcile

__all__ = [
    "BenchmarkCatalog",
    "BenchmarkEntry",
    "load_catalog",
    "ReconciliationEngine",
    "reconcile",
]
