# ============================================================================
# src/biomarker_reconciliation/processors/deduplicator.py
# ============================================================================
"""
Biomarker Deduplicator

Collapses normalized observations into one CanonicalObservation per canonical
name. Observations are folded left in document submission order; per name:

1. The first observation seeds the entry.
2. A seeded "N/A" is replaced by the first later observation with a value.
3. Between two values, the candidate wins only when both carry a test date
   and the candidate's is strictly later. Equal or missing dates keep the
   value seen first.
4. Every contributing document is recorded in provenance, winner or not.

Grouping is on the canonical name, case-insensitive and whitespace-trimmed;
alias resolution already happened in the normalizer.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from ..core.context.observation import CanonicalObservation, NormalizedObservation
from ..utils.parsing import normalize_key

logger = logging.getLogger(__name__)


@dataclass
class _Group:
    winner: NormalizedObservation
    provenance: List[str] = field(default_factory=list)

    def add_source(self, document_id: str):
        if document_id not in self.provenance:
            self.provenance.append(document_id)


def _replaces(existing: NormalizedObservation, candidate: NormalizedObservation) -> str:
    """Name of the rule under which candidate replaces existing, or ''."""
    if not existing.has_value:
        return "value-over-missing" if candidate.has_value else ""

    if not candidate.has_value:
        return ""

    if existing.test_date and candidate.test_date and candidate.test_date > existing.test_date:
        return "most-recent"

    return ""


class BiomarkerDeduplicator:
    """
    Deduplicate observations spanning several documents.
    """

    def deduplicate(self, observations: Iterable[NormalizedObservation]) -> List[CanonicalObservation]:
        """
        Args:
            observations: Normalized observations in document order

        Returns:
            One CanonicalObservation per canonical name, in first-seen order
        """
        groups: Dict[str, _Group] = {}

        for observation in observations:
            key = normalize_key(observation.canonical_name)
            group = groups.get(key)

            if group is None:
                group = groups[key] = _Group(winner=observation)
            else:
                rule = _replaces(group.winner, observation)
                if rule:
                    logger.debug(
                        f"{group.winner.canonical_name}: value from {observation.source_document_id} "
                        f"replaces {group.winner.source_document_id} ({rule})"
                    )
                    group.winner = observation

            group.add_source(observation.source_document_id)

        canonical = []
        for group in groups.values():
            winner = group.winner
            canonical.append(CanonicalObservation(
                canonical_name=winner.canonical_name,
                value=winner.value,
                unit=winner.unit,
                test_date=winner.test_date,
                provenance=tuple(group.provenance),
                winning_document_id=winner.source_document_id,
                conversion_applied=winner.conversion_applied,
                in_catalog=winner.in_catalog,
            ))

        return canonical


# ============================================================================
# CONVENIENCE FUNCTION
# ============================================================================

def deduplicate(observations: Iterable[NormalizedObservation]) -> List[CanonicalObservation]:
    """Quick deduplication using the default rules."""
    return BiomarkerDeduplicator().deduplicate(observations)
