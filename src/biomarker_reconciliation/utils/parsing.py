# ============================================================================
# src/biomarker_reconciliation/utils/parsing.py
# ============================================================================
"""
Parsing utilities for extracted values.

Extraction output is free text produced upstream, so every helper here is
total: anything it cannot read comes back as None rather than raising.
"""

import math
import re
from datetime import date, datetime
from typing import Any, Optional

# Values extractors emit when a result is missing
_MISSING_TOKENS = {
    "", "n/a", "na", "n.a.", "-", "--", "none", "null", "nil",
    "not detected", "nd", "pending", "tnp", "not tested", "see note",
}

# Reject strings that look like units (would produce garbage numbers)
_UNIT_LIKE_PATTERNS = [
    re.compile(r'^x?10E\d', re.IGNORECASE),        # x10E3, 10E6
    re.compile(r'^[a-zA-Zµμ]+/[a-zA-Z]+'),         # g/dL, mg/dL
    re.compile(r'^/[a-zA-Z]+'),                    # /uL
    re.compile(r'^\d*E\d+/', re.IGNORECASE),       # 10E3/uL
]

# Trailing abnormal flags that labs print next to the result
_FLAG_PATTERN = re.compile(r'\s*(\b(?:high|low|hh|ll|h|l|critical)\b|\*+)\s*$', re.IGNORECASE)

_THOUSANDS_NUMBER = re.compile(r'^[+-]?\d{1,3}(?:,\d{3})+(?:\.\d+)?$')
_DECIMAL_COMMA_NUMBER = re.compile(r'^[+-]?\d+,\d+$')
_PLAIN_NUMBER = re.compile(r'^[+-]?(?:\d+\.?\d*|\.\d+)$')
_LEADING_NUMBER = re.compile(r'^([+-]?[\d.,]+)\s+\S')

_DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%d/%m/%Y",  # only reached when the first field cannot be a month
    "%d.%m.%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%d %B %Y",
    "%d %b %Y",
]


def normalize_whitespace(text: Optional[str]) -> str:
    """Collapse runs of whitespace and strip the ends."""
    if not text:
        return ""
    return re.sub(r'\s+', ' ', str(text)).strip()


def normalize_key(text: Optional[str]) -> str:
    """Case-insensitive, whitespace-normalized comparison key."""
    return normalize_whitespace(text).casefold()


def is_missing(value: Any) -> bool:
    """True for None and the textual placeholders extractors use for 'no result'."""
    if value is None:
        return True
    if isinstance(value, str):
        return normalize_key(value) in _MISSING_TOKENS
    return False


def _to_float(token: str) -> Optional[float]:
    if _THOUSANDS_NUMBER.match(token):
        token = token.replace(',', '')
    elif _DECIMAL_COMMA_NUMBER.match(token):
        token = token.replace(',', '.')
    elif not _PLAIN_NUMBER.match(token):
        return None

    try:
        number = float(token)
    except ValueError:
        return None

    return number if math.isfinite(number) else None


def parse_numeric_value(value: Any) -> Optional[float]:
    """
    Extract a numeric value from an extracted result.

    Handles values like:
    - 12.5 / "12.5"
    - "1,234"      (thousands separator)
    - "4,5"        (decimal comma)
    - "1024 High"  (value with embedded flag)
    - "95 mg/dL"   (value with trailing unit)

    Returns None for:
    - missing markers ("N/A", "--", "pending")
    - censored values ("< 0.5", "> 100"), which have no single number
    - unit-like strings ("x10E3/uL", "g/dL")
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None

    if not isinstance(value, str) or is_missing(value):
        return None

    text = value.strip()

    if text[0] in '<>≤≥⩽⩾':
        return None

    for pattern in _UNIT_LIKE_PATTERNS:
        if pattern.match(text):
            return None

    text = _FLAG_PATTERN.sub('', text).strip()
    if not text:
        return None

    number = _to_float(text)
    if number is not None:
        return number

    match = _LEADING_NUMBER.match(text)
    if match:
        return _to_float(match.group(1))

    return None


def parse_date(value: Any) -> Optional[date]:
    """
    Parse a test date / date of birth.

    Accepts date and datetime objects, ISO strings (with or without a time
    part), and the common US / European numeric and month-name formats.
    Returns None when nothing matches.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, date):
        return value

    if not isinstance(value, str):
        return None

    text = normalize_whitespace(value)
    if not text or is_missing(text):
        return None

    # ISO timestamp: keep the date part
    iso_match = re.match(r'^(\d{4}-\d{2}-\d{2})[T ]', text)
    if iso_match:
        text = iso_match.group(1)

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    return None
