# ============================================================================
# src/biomarker_reconciliation/processors/unit_normalizer.py
# ============================================================================
"""
Unit Normalizer

Brings one extracted observation onto the catalog's terms:
- biomarker name resolved to its canonical name (with a confidence)
- raw value parsed to a number, or "N/A"
- unit converted to the canonical unit when the catalog knows a factor

Unknown units and units without a factor pass through unconverted; the range
matcher later classifies such values as unknown. Normalization never invents a
value: a missing or non-numeric raw value is "N/A" whatever the unit.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from ..config import reconciliation_settings, threshold_settings
from ..constants.units import NOT_AVAILABLE, normalize_unit_symbol
from ..core.catalog import BenchmarkCatalog, BenchmarkEntry, NameResolution
from ..core.context.observation import NormalizedObservation, RawObservation
from ..utils.exceptions import UnresolvableUnit
from ..utils.parsing import parse_numeric_value

logger = logging.getLogger(__name__)


class UnitNormalizer:
    """
    Normalize biomarker names, values and units against a catalog snapshot.
    """

    def __init__(self, catalog: BenchmarkCatalog, config: Optional[Dict[str, Any]] = None):
        self.catalog = catalog
        self.config = config or {}

        self.precision = self.config.get('conversion_precision', reconciliation_settings.CONVERSION_PRECISION)
        self.name_confidence = {
            "exact": 1.0,
            "compact": 0.9,
            "stripped": self.config.get('alias_fuzzy_confidence', threshold_settings.ALIAS_FUZZY_CONFIDENCE),
            "unknown": self.config.get('unknown_name_confidence', threshold_settings.UNKNOWN_NAME_CONFIDENCE),
        }

    def resolve_name(self, raw_name: str) -> Tuple[NameResolution, float]:
        """Canonical name lookup plus the confidence of the lookup method."""
        resolution = self.catalog.resolve_name(raw_name)
        return resolution, self.name_confidence[resolution.method]

    def convert(self, value: float, unit: Optional[str], entry: BenchmarkEntry) -> Tuple[float, str, bool]:
        """
        Convert value from unit into entry's canonical unit.

        Returns:
            (value, unit, conversion_applied). An unknown unit comes back
            unchanged with conversion_applied False.

        Raises:
            UnresolvableUnit: unit is a known alias without a conversion factor
        """
        # No unit on the report: the catalog unit is assumed
        if not unit or entry.is_canonical_unit(unit):
            return value, entry.canonical_unit, False

        conversion = entry.conversion_for(unit)
        if conversion is None:
            return value, normalize_unit_symbol(unit), False

        if not conversion.is_convertible:
            raise UnresolvableUnit(
                f"{entry.canonical_name}: no conversion from {unit} to {entry.canonical_unit}",
                from_unit=unit,
                to_unit=entry.canonical_unit
            )

        converted = conversion.apply(value, self.precision)
        return converted, entry.canonical_unit, True

    def normalize(self, observation: RawObservation) -> NormalizedObservation:
        """
        Normalize one raw observation.

        Args:
            observation: Observation as extracted from a document

        Returns:
            NormalizedObservation keeping the original name/value/unit
        """
        resolution, confidence = self.resolve_name(observation.biomarker_name_raw)
        entry = resolution.entry
        unit_raw = observation.unit_raw
        number = parse_numeric_value(observation.value_raw)

        value: Any = NOT_AVAILABLE
        conversion_applied = False

        if entry is None:
            if number is not None:
                value = number
            unit = normalize_unit_symbol(unit_raw)
            logger.debug(f"'{observation.biomarker_name_raw}' is not in the benchmark catalog")

        elif number is None:
            # Unit relabelled only when it is one the catalog already knows
            if not unit_raw or entry.is_canonical_unit(unit_raw) or entry.conversion_for(unit_raw):
                unit = entry.canonical_unit
            else:
                unit = normalize_unit_symbol(unit_raw)

        else:
            try:
                value, unit, conversion_applied = self.convert(number, unit_raw, entry)
            except UnresolvableUnit as e:
                logger.info(f"Unit left unconverted: {e}")
                value, unit = number, normalize_unit_symbol(unit_raw)

            if conversion_applied:
                logger.debug(
                    f"{entry.canonical_name}: {number} {unit_raw} -> {value} {unit}"
                )

        return NormalizedObservation(
            source_document_id=observation.source_document_id,
            canonical_name=resolution.canonical_name,
            value=value,
            unit=unit,
            test_date=observation.test_date,
            original_name=observation.biomarker_name_raw,
            original_value=observation.value_raw,
            original_unit=unit_raw,
            name_confidence=confidence,
            conversion_applied=conversion_applied,
            in_catalog=entry is not None,
        )


# ============================================================================
# CONVENIENCE FUNCTION
# ============================================================================

def normalize_observation(
    observation: RawObservation,
    catalog: BenchmarkCatalog,
    config: Optional[Dict[str, Any]] = None
) -> NormalizedObservation:
    """Quick normalization of a single observation."""
    return UnitNormalizer(catalog, config).normalize(observation)
