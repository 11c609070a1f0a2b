# ============================================================================
# src/biomarker_reconciliation/constants/benchmarks.py
# ============================================================================
"""
Built-in Benchmark Catalog
- Optimal ranges per biomarker, male and female columns
- Canonical unit and unit conversion factors
- Name aliases (abbreviations, specimen variants, translations)
"""

import json
from pathlib import Path

# Path: constants/ -> biomarker_reconciliation/ -> knowledge/
_knowledge_dir = Path(__file__).parent.parent / "knowledge"

try:
    with open(_knowledge_dir / "benchmarks.json", encoding="utf-8") as f:
        _benchmark_data = json.load(f)
except FileNotFoundError:
    _benchmark_data = {"benchmarks": []}

# Raw catalog rows, in file order; default ids are "default-<index>"
BUILTIN_BENCHMARKS = tuple(_benchmark_data.get("benchmarks", []))

# Words stripped when a biomarker name has no exact alias match
SPECIMEN_PREFIXES = ("serum", "plasma", "blood", "total", "free")
SPECIMEN_SUFFIXES = ("serum", "level", "count")
