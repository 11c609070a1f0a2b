# ============================================================================
# src/biomarker_reconciliation/temporal/date_grouping.py
# ============================================================================
"""
Test-date grouping

A batch can hold reports from several blood draws. Observations are grouped
by test date (ascending) so each draw can be analysed on its own; undated
observations belong to no group.
"""

from collections import OrderedDict
from datetime import date
from typing import Dict, Iterable, List

from ..core.context.observation import NormalizedObservation


def group_by_test_date(
    observations: Iterable[NormalizedObservation]
) -> "OrderedDict[date, List[NormalizedObservation]]":
    """Dated observations keyed by test date, oldest first, document order kept within a date."""
    groups: Dict[date, List[NormalizedObservation]] = {}
    for observation in observations:
        if observation.test_date is None:
            continue
        groups.setdefault(observation.test_date, []).append(observation)

    return OrderedDict(sorted(groups.items()))
