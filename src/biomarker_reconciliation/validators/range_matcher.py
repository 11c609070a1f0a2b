# ============================================================================
# src/biomarker_reconciliation/validators/range_matcher.py
# ============================================================================
"""
Range Matcher

Classifies a normalized value against the gender-specific benchmark range:

    Interval(low, high)       in-range iff low <= value <= high, else high/low
    LessThan / LessOrEqual    in-range iff value < x (<= x), else high
    GreaterThan / GreaterOrEq in-range iff value > x (>= x), else low
    Unknown, "N/A"            unknown, no direction

Predicate choice follows the observation's unit: the outer range is used
unless the value is reported in the parenthetical alternate's unit, or the
outer range did not parse. A value in a unit neither side is written in is
unknown.

evaluate() and evaluate_predicate() are pure, so rows can be re-highlighted
for display without renormalizing anything.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from ..config import reconciliation_settings
from ..constants.units import NOT_AVAILABLE, unit_key
from ..core.catalog import BenchmarkCatalog, BenchmarkEntry
from ..core.context.analysis import AnalysisRow, AnalysisSummary
from ..core.context.enums import Direction, Gender, RangeStatus
from ..core.context.observation import CanonicalObservation
from ..processors.range_parser import (
    GreaterOrEqual,
    GreaterThan,
    Interval,
    LessOrEqual,
    LessThan,
    RangeExpression,
    RangePredicate,
    Unknown,
    parse_range,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RangeEvaluation:
    status: RangeStatus
    direction: Optional[Direction] = None
    predicate: Optional[RangePredicate] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "direction": self.direction.value if self.direction else None,
        }


UNKNOWN_EVALUATION = RangeEvaluation(status=RangeStatus.UNKNOWN)


def evaluate_predicate(predicate: RangePredicate, value: float) -> Tuple[RangeStatus, Optional[Direction]]:
    """Status and direction of value against a single predicate."""
    if isinstance(predicate, Interval):
        if value > predicate.high:
            return RangeStatus.OUT_OF_RANGE, Direction.HIGH
        if value < predicate.low:
            return RangeStatus.OUT_OF_RANGE, Direction.LOW
        return RangeStatus.IN_RANGE, None

    if isinstance(predicate, LessThan):
        if value < predicate.value:
            return RangeStatus.IN_RANGE, None
        return RangeStatus.OUT_OF_RANGE, Direction.HIGH

    if isinstance(predicate, LessOrEqual):
        if value <= predicate.value:
            return RangeStatus.IN_RANGE, None
        return RangeStatus.OUT_OF_RANGE, Direction.HIGH

    if isinstance(predicate, GreaterThan):
        if value > predicate.value:
            return RangeStatus.IN_RANGE, None
        return RangeStatus.OUT_OF_RANGE, Direction.LOW

    if isinstance(predicate, GreaterOrEqual):
        if value >= predicate.value:
            return RangeStatus.IN_RANGE, None
        return RangeStatus.OUT_OF_RANGE, Direction.LOW

    return RangeStatus.UNKNOWN, None


def _same_unit(predicate: RangePredicate, unit_k: str) -> bool:
    return bool(predicate.unit) and unit_key(predicate.unit) == unit_k


def select_predicate(expression: RangeExpression, unit: Optional[str]) -> Optional[RangePredicate]:
    """
    Predicate of expression that applies to a value reported in unit.

    Returns None when the value's unit matches neither the outer range nor
    its alternate.
    """
    primary = expression.predicate
    alternate = expression.alternate
    unit_k = unit_key(unit)

    if alternate is not None and unit_k and _same_unit(alternate, unit_k) and not _same_unit(primary, unit_k):
        return alternate

    if not isinstance(primary, Unknown):
        if not primary.unit or not unit_k or _same_unit(primary, unit_k):
            return primary
        return None

    # Outer range unparseable: fall back to the alternate
    if alternate is not None and (not alternate.unit or not unit_k or _same_unit(alternate, unit_k)):
        return alternate

    return primary


class RangeMatcher:
    """
    Match canonical observations against benchmark ranges.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.default_gender = self.config.get('default_gender', reconciliation_settings.DEFAULT_GENDER)

    def _gender(self, gender: Union[Gender, str, None]) -> Optional[Gender]:
        return Gender.parse(gender)

    def range_text(self, entry: BenchmarkEntry, gender: Union[Gender, str, None]) -> str:
        """Range string for the patient's gender (default gender when absent/other)."""
        return entry.range_for(self._gender(gender), self.default_gender)

    def evaluate(
        self,
        value: Any,
        unit: Optional[str],
        entry: BenchmarkEntry,
        gender: Union[Gender, str, None] = None
    ) -> RangeEvaluation:
        """
        Classify value (in unit) against entry's range for gender.

        Args:
            value: Number, or "N/A"
            unit: Unit the value is expressed in
            entry: Benchmark for the biomarker
            gender: Patient gender

        Returns:
            RangeEvaluation with status, direction and the predicate used
        """
        if value == NOT_AVAILABLE or isinstance(value, bool) or not isinstance(value, (int, float)):
            return UNKNOWN_EVALUATION

        expression = entry.expression_for(self._gender(gender), self.default_gender)
        predicate = select_predicate(expression, unit)

        if predicate is None:
            logger.debug(
                f"{entry.canonical_name}: unit '{unit}' matches no unit in range '{expression.raw_text}'"
            )
            return UNKNOWN_EVALUATION

        status, direction = evaluate_predicate(predicate, float(value))
        return RangeEvaluation(status=status, direction=direction, predicate=predicate)

    def match(
        self,
        observation: CanonicalObservation,
        entry: BenchmarkEntry,
        gender: Union[Gender, str, None] = None
    ) -> RangeEvaluation:
        return self.evaluate(observation.value, observation.unit, entry, gender)

    def build_rows(
        self,
        observations: Iterable[CanonicalObservation],
        catalog: BenchmarkCatalog,
        gender: Union[Gender, str, None] = None
    ) -> List[AnalysisRow]:
        """
        One row per catalog entry, sorted by name.

        Biomarkers without an observation get value "N/A" and status unknown.
        Observations for names outside the catalog are not rows.
        """
        by_name = {}
        for observation in observations:
            by_name.setdefault(observation.canonical_name.casefold(), observation)

        rows = []
        for entry in catalog:
            observation = by_name.get(entry.canonical_name.casefold())
            display = self.range_text(entry, gender)

            if observation is None:
                rows.append(AnalysisRow(
                    biomarker_name=entry.canonical_name,
                    value=NOT_AVAILABLE,
                    unit=entry.canonical_unit,
                    optimal_range_display=display,
                    status=RangeStatus.UNKNOWN,
                    category=entry.category,
                ))
                continue

            evaluation = self.match(observation, entry, gender)
            rows.append(AnalysisRow(
                biomarker_name=entry.canonical_name,
                value=observation.value,
                unit=observation.unit,
                optimal_range_display=display,
                status=evaluation.status,
                direction=evaluation.direction,
                category=entry.category,
                provenance=observation.provenance,
            ))

        rows.sort(key=lambda row: row.biomarker_name.casefold())
        return rows

    def generate_summary(self, rows: Iterable[AnalysisRow]) -> AnalysisSummary:
        return AnalysisSummary.from_rows(list(rows))


# ============================================================================
# CONVENIENCE FUNCTION
# ============================================================================

def match_range(value: Any, unit: Optional[str], range_text: str) -> RangeEvaluation:
    """
    Classify a value against a bare range string (no catalog entry needed).

    Example:
        match_range(62, None, "<50") -> out-of-range, high
    """
    if value == NOT_AVAILABLE or isinstance(value, bool) or not isinstance(value, (int, float)):
        return UNKNOWN_EVALUATION

    predicate = select_predicate(parse_range(range_text), unit)
    if predicate is None:
        return UNKNOWN_EVALUATION

    status, direction = evaluate_predicate(predicate, float(value))
    return RangeEvaluation(status=status, direction=direction, predicate=predicate)
