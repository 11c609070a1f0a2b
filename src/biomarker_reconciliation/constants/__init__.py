# ============================================================================
# src/biomarker_reconciliation/constants/__init__.py
# ============================================================================

from .units import NOT_AVAILABLE, UNIT_SYMBOL_REWRITES, normalize_unit_symbol, unit_key
from .benchmarks import BUILTIN_BENCHMARKS, SPECIMEN_PREFIXES, SPECIMEN_SUFFIXES
