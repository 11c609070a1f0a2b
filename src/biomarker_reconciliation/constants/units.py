# ============================================================================
# src/biomarker_reconciliation/constants/units.py
# ============================================================================
"""
Unit Symbols
- Display normalization (mcg -> µg, 10^3 -> 10³, mg/dl -> mg/dL)
- Comparison key that ignores case, spacing, micro sign and superscripts
"""

import re
import unicodedata
from typing import Optional

# Value placeholder when a biomarker has no numeric result
NOT_AVAILABLE = "N/A"

# Applied in order
UNIT_SYMBOL_REWRITES = [
    (re.compile(r'mcg'), 'µg'),
    (re.compile(r'μ'), 'µ'),                        # Greek mu -> micro sign
    (re.compile(r'\bu(g|mol|IU|L)\b'), r'µ\1'),
    (re.compile(r'10\^3\b'), '10³'),
    (re.compile(r'10\^12\b'), '10¹²'),
    (re.compile(r'\bx\s*(?=10)'), '×'),
    (re.compile(r'/dl\b', re.IGNORECASE), '/dL'),
    (re.compile(r'/ml\b', re.IGNORECASE), '/mL'),
    (re.compile(r'/l\b', re.IGNORECASE), '/L'),
]

_SUPERSCRIPTS = str.maketrans("⁰¹²³⁴⁵⁶⁷⁸⁹", "0123456789")


def normalize_unit_symbol(unit: Optional[str]) -> str:
    """Rewrite a unit into the symbols used by the benchmark catalog."""
    if not unit:
        return ""

    result = re.sub(r'\s+', ' ', unit).strip()
    for pattern, replacement in UNIT_SYMBOL_REWRITES:
        result = pattern.sub(replacement, result)
    return result


def unit_key(unit: Optional[str]) -> str:
    """
    Comparison key for units.

    µmol/L, umol/L, μmol/l and "umol / L" share one key; so do ×10³/µL,
    x10^3/uL and 10*3/uL.
    """
    if not unit:
        return ""

    key = unicodedata.normalize("NFKC", unit)
    key = key.translate(_SUPERSCRIPTS).lower()
    key = re.sub(r'\s+', '', key)
    key = key.replace('µ', 'u').replace('μ', 'u')
    key = key.replace('mcg', 'ug')
    key = key.replace('×', 'x').replace('*', '')
    key = key.replace('^', '')
    # "10*3/uL" written without the multiplication sign
    key = re.sub(r'^10(?=\d)', 'x10', key)
    return key
