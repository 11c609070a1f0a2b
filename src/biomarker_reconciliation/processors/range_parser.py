# ============================================================================
# src/biomarker_reconciliation/processors/range_parser.py
# ============================================================================
"""
Reference Range Grammar

Parses free-text optimal/reference range notation into a predicate:

    "162-240 mg/dL"                   -> Interval(162, 240, "mg/dL")
    "10 to 20"                        -> Interval(10, 20)
    "<50", "< 13 %"                   -> LessThan(50) / LessThan(13, "%")
    "≤ 0.09 ×10³/µL"                  -> LessOrEqual(0.09, "×10³/µL")
    "≥40", ">= 40", "=> 40"           -> GreaterOrEqual(40)
    "0.68-1.13 mg/dL (60-100 µmol/L)" -> Interval(0.68, 1.13, "mg/dL")
                                         + alternate Interval(60, 100, "µmol/L")
    "Refer to lab specific range"     -> Unknown

Rules are tried in a fixed order on the text outside parentheses (interval,
then comparator); parenthetical blocks are parsed with the same rules and the
first one that parses becomes the alternate-unit expression. Anything that
does not match ends in Unknown, so parse_range never raises.
"""

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Union

from ..constants.units import unit_key
from ..utils.exceptions import MalformedRangeExpression
from ..utils.parsing import parse_numeric_value

logger = logging.getLogger(__name__)

# Signed number with optional thousands groups; never the tail of a longer number
_NUMBER = r'(?<![\d.,])[+-]?(?:\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?|\.\d+)(?![.,]?\d)'

# Bare word following a number that is not a unit ("> 60 if high muscle mass")
_NOT_UNITS = {
    "if", "to", "and", "or", "for", "in", "with", "when", "of",
    "male", "female", "males", "females", "men", "women", "adult", "adults",
    "years", "yrs", "optimal", "normal", "desirable",
}

INTERVAL_PATTERN = re.compile(
    rf'(?P<low>{_NUMBER})\s*(?:-|–|—|\bto\b)\s*(?P<high>{_NUMBER})(?:\s*(?P<unit>[^\s,;()]+))?',
    re.IGNORECASE
)

COMPARATOR_PATTERN = re.compile(
    rf'(?P<op><=|>=|=<|=>|≤|≥|⩽|⩾|<|>)\s*(?P<value>{_NUMBER})(?:\s*(?P<unit>[^\s,;()]+))?'
)

PARENTHETICAL_PATTERN = re.compile(r'\(([^()]*)\)')

_LESS_OR_EQUAL_OPS = {"<=", "=<", "≤", "⩽"}
_GREATER_OR_EQUAL_OPS = {">=", "=>", "≥", "⩾"}


# ============================================================================
# PREDICATES
# ============================================================================

@dataclass(frozen=True)
class Interval:
    low: float
    high: float
    unit: Optional[str] = None


@dataclass(frozen=True)
class LessThan:
    value: float
    unit: Optional[str] = None


@dataclass(frozen=True)
class LessOrEqual:
    value: float
    unit: Optional[str] = None


@dataclass(frozen=True)
class GreaterThan:
    value: float
    unit: Optional[str] = None


@dataclass(frozen=True)
class GreaterOrEqual:
    value: float
    unit: Optional[str] = None


@dataclass(frozen=True)
class Unknown:
    raw_text: str = ""
    unit: Optional[str] = None


RangePredicate = Union[Interval, LessThan, LessOrEqual, GreaterThan, GreaterOrEqual, Unknown]


@dataclass(frozen=True)
class RangeExpression:
    """
    Parsed range text.

    predicate is what classification uses. alternate is the same range in a
    second unit, taken from a parenthetical; it is used only when the
    observation is reported in that unit or the outer text did not parse.
    """
    raw_text: str
    predicate: RangePredicate
    alternate: Optional[RangePredicate] = None

    @property
    def is_unknown(self) -> bool:
        return isinstance(self.predicate, Unknown) and self.alternate is None


# ============================================================================
# GRAMMAR
# ============================================================================

def _number(token: str) -> float:
    number = parse_numeric_value(token)
    if number is None:
        raise MalformedRangeExpression(f"Unreadable number '{token}'", raw_text=token)
    return number


def _clean_unit(token: Optional[str]) -> Optional[str]:
    if not token:
        return None
    token = token.strip().rstrip('.:')
    if not token or token.lower() in _NOT_UNITS:
        return None
    if not re.match(r'^[%×xµμA-Za-z/]', token):
        return None
    return token


def _match_interval(text: str) -> Optional[Interval]:
    match = INTERVAL_PATTERN.search(text)
    if not match:
        return None

    low = _number(match.group('low'))
    high = _number(match.group('high'))
    unit = _clean_unit(match.group('unit'))

    if low > high:
        logger.warning(f"Range '{text}' has its bounds reversed; reading as {high}-{low}")
        low, high = high, low

    return Interval(low=low, high=high, unit=unit)


def _match_comparator(text: str) -> Optional[RangePredicate]:
    match = COMPARATOR_PATTERN.search(text)
    if not match:
        return None

    op = match.group('op')
    value = _number(match.group('value'))
    unit = _clean_unit(match.group('unit'))

    if op in _LESS_OR_EQUAL_OPS:
        return LessOrEqual(value=value, unit=unit)
    if op == "<":
        return LessThan(value=value, unit=unit)
    if op in _GREATER_OR_EQUAL_OPS:
        return GreaterOrEqual(value=value, unit=unit)
    return GreaterThan(value=value, unit=unit)


def _parse_predicate(text: str) -> RangePredicate:
    """
    Apply the grammar rules in order to text without parentheses.

    Raises:
        MalformedRangeExpression: when no rule matches
    """
    predicate = _match_interval(text) or _match_comparator(text)
    if predicate is None:
        raise MalformedRangeExpression(f"No range pattern in '{text}'", raw_text=text)
    return predicate


def _parse_alternate(blocks, outer: RangePredicate) -> Optional[RangePredicate]:
    """First parenthetical that parses and adds information wins."""
    outer_unknown = isinstance(outer, Unknown)

    for block in blocks:
        try:
            candidate = _parse_predicate(block)
        except MalformedRangeExpression:
            continue

        if outer_unknown:
            return candidate

        # A parenthetical in the same unit (or without one) is a remark, not an alternate
        if candidate.unit and unit_key(candidate.unit) != unit_key(outer.unit):
            return candidate

    return None


@lru_cache(maxsize=1024)
def parse_range(raw_text: Optional[str]) -> RangeExpression:
    """
    Parse a reference range string.

    Never raises: unparseable text yields RangeExpression(predicate=Unknown).

    Args:
        raw_text: Range as written in the catalog or on the report

    Returns:
        RangeExpression with the outer predicate and optional alternate
    """
    text = (raw_text or "").strip()
    if not text:
        return RangeExpression(raw_text="", predicate=Unknown(""))

    blocks = PARENTHETICAL_PATTERN.findall(text)
    outer_text = PARENTHETICAL_PATTERN.sub(' ', text).strip()

    try:
        predicate = _parse_predicate(outer_text)
    except MalformedRangeExpression as e:
        logger.warning(f"Malformed range expression: {e}")
        predicate = Unknown(raw_text=text)

    alternate = _parse_alternate(blocks, predicate)

    return RangeExpression(raw_text=text, predicate=predicate, alternate=alternate)


def format_predicate(predicate: RangePredicate) -> str:
    """Human-readable form of a predicate ("4.2-6.4 mmol/L", "≥ 40")."""
    unit = f" {predicate.unit}" if predicate.unit else ""

    if isinstance(predicate, Interval):
        return f"{predicate.low:g}-{predicate.high:g}{unit}"
    if isinstance(predicate, LessThan):
        return f"< {predicate.value:g}{unit}"
    if isinstance(predicate, LessOrEqual):
        return f"≤ {predicate.value:g}{unit}"
    if isinstance(predicate, GreaterThan):
        return f"> {predicate.value:g}{unit}"
    if isinstance(predicate, GreaterOrEqual):
        return f"≥ {predicate.value:g}{unit}"
    return predicate.raw_text
