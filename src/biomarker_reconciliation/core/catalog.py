# ============================================================================
# src/biomarker_reconciliation/core/catalog.py
# ============================================================================
"""
Benchmark Catalog

Immutable snapshot of the reference-range catalog:
- Built-in benchmarks from knowledge/benchmarks.json
- User custom entries, which replace a built-in with the same canonical name
- Name/alias lookup used by the normalizer and deduplicator
- Per-unit conversion to the canonical unit

A snapshot is built once and passed explicitly to every component; changing
the catalog (with_overrides, remove_custom) returns a new snapshot.
"""

import json
import logging
import re
import unicodedata
from decimal import ROUND_HALF_UP, Decimal
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from ..config import base_settings
from ..constants.benchmarks import BUILTIN_BENCHMARKS, SPECIMEN_PREFIXES, SPECIMEN_SUFFIXES
from ..constants.units import unit_key
from ..processors.range_parser import RangeExpression, parse_range
from ..utils.exceptions import CatalogError
from .context.enums import Gender

logger = logging.getLogger(__name__)

CATALOG_FORMAT_VERSION = 1

_DASHES = re.compile(r'[‐‑‒–—―]')
_STRIP_PREFIX = re.compile(rf'^(?:{"|".join(SPECIMEN_PREFIXES)})\s+')
_STRIP_SUFFIX = re.compile(rf'\s+(?:{"|".join(SPECIMEN_SUFFIXES)})$')


def name_key(name: Optional[str]) -> str:
    """Lookup key for biomarker names: lowercase, trimmed, single spaces, ASCII dashes."""
    if not name:
        return ""
    key = unicodedata.normalize("NFKC", name)
    key = _DASHES.sub('-', key)
    key = re.sub(r'\s+', ' ', key).strip()
    return key.casefold()


def compact_key(name: Optional[str]) -> str:
    """name_key without punctuation or spaces ("HDL-C" == "HDL C" == "hdlc")."""
    return re.sub(r'[\W_]+', '', name_key(name))


# ============================================================================
# UNIT CONVERSION
# ============================================================================

@dataclass(frozen=True)
class UnitConversion:
    """
    Conversion from an alias unit into the canonical unit.

    value_in_canonical = value * factor + offset, or function(value) when a
    callable was supplied. A conversion with neither is a recognised unit that
    cannot be converted.
    """
    factor: Optional[float] = None
    offset: float = 0.0
    function: Optional[Callable[[float], float]] = field(default=None, compare=False)

    @property
    def is_convertible(self) -> bool:
        return self.function is not None or self.factor is not None

    def apply(self, value: float, precision: Optional[int] = None) -> float:
        """
        Convert value; with precision, round half-up to that many decimals.

        Factor conversions are computed in decimal so 70 * 0.0555 is 3.885
        and rounds to 3.89.
        """
        if self.function is not None:
            result = Decimal(repr(float(self.function(value))))
        else:
            result = Decimal(repr(float(value))) * Decimal(repr(self.factor)) + Decimal(repr(self.offset))

        if precision is not None:
            result = result.quantize(Decimal(1).scaleb(-precision), rounding=ROUND_HALF_UP)
        return float(result)

    @classmethod
    def from_spec(cls, spec: Any) -> "UnitConversion":
        """Build from catalog JSON: number, null, {"factor", "offset"}, or a callable."""
        if spec is None:
            return cls()
        if callable(spec):
            return cls(function=spec)
        if isinstance(spec, bool):
            raise CatalogError(f"Invalid unit conversion: {spec!r}")
        if isinstance(spec, (int, float)):
            return cls(factor=float(spec))
        if isinstance(spec, Mapping) and "factor" in spec:
            return cls(factor=float(spec["factor"]), offset=float(spec.get("offset", 0.0)))
        raise CatalogError(f"Invalid unit conversion: {spec!r}")

    def to_spec(self) -> Any:
        if self.factor is None:
            return None
        if self.offset:
            return {"factor": self.factor, "offset": self.offset}
        return self.factor


# ============================================================================
# ENTRIES
# ============================================================================

@dataclass(frozen=True)
class BenchmarkEntry:
    id: str
    canonical_name: str
    male_range: str
    female_range: str
    canonical_unit: str
    alias_names: Tuple[str, ...] = ()
    unit_aliases: Mapping[str, UnitConversion] = field(default_factory=dict)
    category: Optional[str] = None
    is_custom: bool = False

    def range_for(self, gender: Optional[Gender], default_gender: str = "male") -> str:
        """Raw range text for a gender; absent/other falls back to default_gender."""
        if gender is None or gender == Gender.OTHER:
            gender = Gender(default_gender)
        return self.female_range if gender == Gender.FEMALE else self.male_range

    def expression_for(self, gender: Optional[Gender], default_gender: str = "male") -> RangeExpression:
        return parse_range(self.range_for(gender, default_gender))

    def conversion_for(self, unit: Optional[str]) -> Optional[UnitConversion]:
        """Alias conversion for unit, matched case/spacing/micro-sign insensitively."""
        key = unit_key(unit)
        if not key:
            return None
        for alias, conversion in self.unit_aliases.items():
            if unit_key(alias) == key:
                return conversion
        return None

    def is_canonical_unit(self, unit: Optional[str]) -> bool:
        return bool(unit) and unit_key(unit) == unit_key(self.canonical_unit)

    def names(self) -> Tuple[str, ...]:
        return (self.canonical_name,) + tuple(self.alias_names)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], default_id: str, is_custom: bool = False) -> "BenchmarkEntry":
        """
        Build an entry from catalog JSON (snake_case or the camelCase export format).

        Raises:
            CatalogError: missing name or invalid conversion data
        """
        if not isinstance(data, Mapping):
            raise CatalogError(f"Benchmark entry must be an object, got {type(data).__name__}")

        name = data.get("name") or data.get("canonical_name") or data.get("canonicalName")
        if not name or not str(name).strip():
            raise CatalogError(f"Benchmark entry {default_id} has no name")

        shared_range = data.get("range") or ""
        male_range = data.get("male_range", data.get("maleRange", shared_range)) or ""
        female_range = data.get("female_range", data.get("femaleRange", shared_range)) or ""

        raw_aliases = data.get("unit_aliases", data.get("unitAliases")) or {}
        if not isinstance(raw_aliases, Mapping):
            raise CatalogError(f"Benchmark '{name}': unit aliases must be an object")

        aliases = data.get("aliases", data.get("alias_names", data.get("aliasNames"))) or []
        if isinstance(aliases, str):
            aliases = [aliases]

        return cls(
            id=str(data.get("id") or default_id),
            canonical_name=str(name).strip(),
            male_range=str(male_range).strip(),
            female_range=str(female_range).strip(),
            canonical_unit=str(data.get("canonical_unit", data.get("canonicalUnit", data.get("unit"))) or "").strip(),
            alias_names=tuple(str(a).strip() for a in aliases if a and str(a).strip()),
            unit_aliases={str(unit): UnitConversion.from_spec(spec) for unit, spec in raw_aliases.items()},
            category=data.get("category"),
            is_custom=bool(data.get("is_custom", data.get("isCustom", is_custom))),
        )

    def to_dict(self) -> Dict[str, Any]:
        unit_aliases = {}
        for unit, conversion in self.unit_aliases.items():
            if conversion.function is not None:
                logger.warning(f"Benchmark '{self.canonical_name}': callable conversion for {unit} is not exported")
                continue
            unit_aliases[unit] = conversion.to_spec()

        return {
            "id": self.id,
            "name": self.canonical_name,
            "category": self.category,
            "male_range": self.male_range,
            "female_range": self.female_range,
            "canonical_unit": self.canonical_unit,
            "unit_aliases": unit_aliases,
            "aliases": list(self.alias_names),
            "is_custom": self.is_custom,
        }


@dataclass(frozen=True)
class NameResolution:
    """Outcome of looking a raw biomarker name up in the catalog."""
    canonical_name: str
    entry: Optional[BenchmarkEntry]
    method: str  # "exact", "compact", "stripped", "unknown"

    @property
    def in_catalog(self) -> bool:
        return self.entry is not None


# ============================================================================
# CATALOG SNAPSHOT
# ============================================================================

class BenchmarkCatalog:
    """
    Read-only catalog snapshot.

    defaults are the built-in entries; custom entries shadow a default with
    the same canonical name (case-insensitive) or are appended.
    """

    def __init__(
        self,
        defaults: Iterable[BenchmarkEntry],
        custom: Iterable[BenchmarkEntry] = ()
    ):
        self._defaults = tuple(defaults)
        self._custom = tuple(replace(entry, is_custom=True) if not entry.is_custom else entry for entry in custom)

        custom_by_name = {}
        for entry in self._custom:
            custom_by_name[entry.canonical_name.casefold()] = entry

        entries = []
        for entry in self._defaults:
            entries.append(custom_by_name.pop(entry.canonical_name.casefold(), entry))
        # Remaining custom entries are new biomarkers, kept in insertion order
        entries.extend(custom_by_name.values())

        self._entries = tuple(entries)
        self._by_name = {entry.canonical_name.casefold(): entry for entry in self._entries}
        self._alias_index, self._compact_index = self._build_indexes(self._entries)

    @staticmethod
    def _build_indexes(entries: Sequence[BenchmarkEntry]):
        alias_index: Dict[str, BenchmarkEntry] = {}
        compact_index: Dict[str, BenchmarkEntry] = {}

        # Canonical names first so an alias can never hide another biomarker
        names = [(entry.canonical_name, entry) for entry in entries]
        names += [(alias, entry) for entry in entries for alias in entry.alias_names]

        for name, entry in names:
            for index, key in ((alias_index, name_key(name)), (compact_index, compact_key(name))):
                if not key:
                    continue
                existing = index.setdefault(key, entry)
                if existing is not entry and index is alias_index:
                    logger.debug(
                        f"Alias '{name}' of {entry.canonical_name} already maps to "
                        f"{existing.canonical_name}; keeping the first"
                    )

        return alias_index, compact_index

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def builtin(cls) -> "BenchmarkCatalog":
        """Catalog of the packaged default benchmarks."""
        return cls(_entries_from_rows(BUILTIN_BENCHMARKS, id_prefix="default"))

    @classmethod
    def from_rows(cls, rows: Iterable[Mapping[str, Any]]) -> "BenchmarkCatalog":
        return cls(_entries_from_rows(rows, id_prefix="default"))

    def with_overrides(self, custom: Iterable[Union[BenchmarkEntry, Mapping[str, Any]]]) -> "BenchmarkCatalog":
        """
        New snapshot with custom entries added.

        An entry whose canonical name matches an existing custom entry replaces
        it; one matching a built-in shadows that built-in.
        """
        merged = {entry.canonical_name.casefold(): entry for entry in self._custom}
        offset = len(merged)
        for i, item in enumerate(custom):
            if not isinstance(item, BenchmarkEntry):
                item = BenchmarkEntry.from_dict(item, default_id=f"custom-{offset + i}", is_custom=True)
            merged[item.canonical_name.casefold()] = item
        return BenchmarkCatalog(self._defaults, merged.values())

    def remove_custom(self, canonical_name: str) -> "BenchmarkCatalog":
        """New snapshot without the named custom entry; a shadowed built-in comes back."""
        key = canonical_name.casefold()
        return BenchmarkCatalog(
            self._defaults,
            [entry for entry in self._custom if entry.canonical_name.casefold() != key]
        )

    def defaults_only(self) -> "BenchmarkCatalog":
        """New snapshot with every custom entry dropped."""
        return BenchmarkCatalog(self._defaults)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @property
    def entries(self) -> Tuple[BenchmarkEntry, ...]:
        return self._entries

    @property
    def custom_entries(self) -> Tuple[BenchmarkEntry, ...]:
        return self._custom

    @property
    def canonical_names(self) -> List[str]:
        return [entry.canonical_name for entry in self._entries]

    def get(self, canonical_name: str) -> Optional[BenchmarkEntry]:
        return self._by_name.get((canonical_name or "").strip().casefold())

    def find(self, name: str) -> Optional[BenchmarkEntry]:
        """Entry by canonical name or any alias."""
        return self.resolve_name(name).entry

    def resolve_name(self, raw_name: Optional[str]) -> NameResolution:
        """
        Map a raw biomarker name to its canonical catalog name.

        Lookup order:
        1. exact name/alias (case, whitespace and dash insensitive)
        2. same without punctuation ("HDL-C" / "HDL C")
        3. after stripping specimen words ("Serum Ferritin Level" -> "ferritin")
        Names that never match keep their trimmed raw text.
        """
        key = name_key(raw_name)
        display = re.sub(r'\s+', ' ', raw_name or "").strip()

        entry = self._alias_index.get(key)
        if entry is not None:
            return NameResolution(entry.canonical_name, entry, "exact")

        entry = self._compact_index.get(compact_key(raw_name))
        if entry is not None:
            return NameResolution(entry.canonical_name, entry, "compact")

        stripped = _STRIP_SUFFIX.sub('', _STRIP_PREFIX.sub('', key))
        if stripped and stripped != key:
            entry = self._alias_index.get(stripped) or self._compact_index.get(compact_key(stripped))
            if entry is not None:
                return NameResolution(entry.canonical_name, entry, "stripped")

        return NameResolution(display, None, "unknown")

    def __iter__(self) -> Iterator[BenchmarkEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    # ------------------------------------------------------------------
    # Import / export
    # ------------------------------------------------------------------

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Export every effective entry (defaults and custom)."""
        payload = {
            "version": CATALOG_FORMAT_VERSION,
            "benchmarks": [entry.to_dict() for entry in self._entries],
        }
        return json.dumps(payload, indent=indent, ensure_ascii=False)

    def import_json(self, text: str) -> "BenchmarkCatalog":
        """
        New snapshot with the custom entries of an exported catalog applied.

        From a full export ({"benchmarks": [...]}) only entries flagged
        is_custom are taken. A bare list is read as a list of custom entries.

        Raises:
            CatalogError: text is not a catalog export
        """
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise CatalogError(f"Catalog import is not valid JSON: {e}") from e

        if isinstance(payload, list):
            rows = payload
            custom = [row for row in rows if isinstance(row, Mapping)]
        elif isinstance(payload, Mapping) and isinstance(payload.get("benchmarks"), list):
            rows = payload["benchmarks"]
            custom = [row for row in rows if isinstance(row, Mapping) and row.get("is_custom", row.get("isCustom"))]
        else:
            raise CatalogError("Catalog import must contain a 'benchmarks' list")

        logger.info(f"Importing {len(custom)} custom benchmarks ({len(rows) - len(custom)} defaults ignored)")
        return self.with_overrides(custom)


def _entries_from_rows(rows: Iterable[Mapping[str, Any]], id_prefix: str) -> List[BenchmarkEntry]:
    return [
        BenchmarkEntry.from_dict(row, default_id=f"{id_prefix}-{i}")
        for i, row in enumerate(rows)
    ]


def _read_json(path: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise CatalogError(f"Catalog file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise CatalogError(f"Catalog file {path} is not valid JSON: {e}") from e


# ============================================================================
# CONVENIENCE FUNCTION
# ============================================================================

def load_catalog(
    catalog_path: Optional[Path] = None,
    overrides_path: Optional[Path] = None
) -> BenchmarkCatalog:
    """
    Load a catalog snapshot.

    Args:
        catalog_path: Built-in catalog JSON (default: base_settings catalog path)
        overrides_path: Exported catalog whose custom entries are applied
            (default: base_settings.CUSTOM_BENCHMARKS_PATH, if set)

    Raises:
        CatalogError: missing/invalid files or an empty catalog
    """
    path = Path(catalog_path) if catalog_path else base_settings.get_catalog_path()
    payload = _read_json(path)

    rows = payload.get("benchmarks") if isinstance(payload, Mapping) else payload
    if not isinstance(rows, list) or not rows:
        raise CatalogError(f"Catalog file {path} has no benchmarks")

    catalog = BenchmarkCatalog.from_rows(rows)

    overrides_path = overrides_path or base_settings.CUSTOM_BENCHMARKS_PATH
    if overrides_path:
        overrides = _read_json(Path(overrides_path))
        catalog = catalog.import_json(json.dumps(overrides))

    logger.info(f"Loaded benchmark catalog: {len(catalog)} entries ({len(catalog.custom_entries)} custom)")
    return catalog
