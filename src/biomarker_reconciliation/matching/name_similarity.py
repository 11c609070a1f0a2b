# ============================================================================
# src/biomarker_reconciliation/matching/name_similarity.py
# ============================================================================
"""
Person-name comparison helpers used by identity resolution.

Exact matching is case-insensitive with whitespace normalized. Fuzzy matching
uses normalized Levenshtein similarity on token-sorted names, so
"Smith, John" and "john smith" score 1.0 and "Jon Smith" scores 0.9.
"""

import re
import unicodedata
from datetime import date
from typing import Optional

from ..utils.parsing import normalize_key


def levenshtein_distance(s1: str, s2: str) -> int:
    """Calculate Levenshtein edit distance between two strings."""
    if len(s1) < len(s2):
        return levenshtein_distance(s2, s1)

    if len(s2) == 0:
        return len(s1)

    previous_row = range(len(s2) + 1)
    for i, c1 in enumerate(s1):
        current_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        previous_row = current_row

    return previous_row[-1]


def normalize_person_name(name: Optional[str]) -> str:
    """Lowercase, accents and punctuation removed, tokens sorted."""
    if not name:
        return ""
    text = unicodedata.normalize("NFKD", name)
    text = "".join(c for c in text if not unicodedata.combining(c))
    text = re.sub(r"[^\w\s]", " ", text.casefold())
    return " ".join(sorted(text.split()))


def names_equal(a: Optional[str], b: Optional[str]) -> bool:
    """Exact case-insensitive match (whitespace normalized)."""
    key_a, key_b = normalize_key(a), normalize_key(b)
    return bool(key_a) and key_a == key_b


def name_similarity(a: Optional[str], b: Optional[str]) -> float:
    """Normalized Levenshtein similarity in [0, 1] of token-sorted names."""
    norm_a, norm_b = normalize_person_name(a), normalize_person_name(b)
    if not norm_a or not norm_b:
        return 0.0
    if norm_a == norm_b:
        return 1.0
    distance = levenshtein_distance(norm_a, norm_b)
    return 1.0 - distance / max(len(norm_a), len(norm_b))


def dates_transposed(a: Optional[date], b: Optional[date]) -> bool:
    """Same date with day and month swapped (03/04 vs 04/03)."""
    if a is None or b is None or a == b:
        return False
    return a.year == b.year and a.month == b.day and a.day == b.month
