# ============================================================================
# src/biomarker_reconciliation/matching/registry.py
# ============================================================================
"""
Client registry interface.

The registry belongs to the surrounding application; the engine only needs
find_candidates(name, date_of_birth=None). InMemoryClientRegistry is a
reference implementation for tests and small deployments.
"""

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Protocol, runtime_checkable

from ..config import threshold_settings
from ..core.context.patient import ClientRecord
from .name_similarity import dates_transposed, name_similarity

logger = logging.getLogger(__name__)


@runtime_checkable
class ClientRegistry(Protocol):
    def find_candidates(self, name: str, date_of_birth: Optional[date] = None) -> List[ClientRecord]:
        ...


class InMemoryClientRegistry:
    """
    Registry backed by a list of ClientRecord.

    Candidates are clients whose name similarity reaches the configured floor,
    or whose date of birth matches (also day/month swapped) the one given.
    """

    def __init__(self, clients: Iterable[ClientRecord] = (), config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.candidate_floor = self.config.get('candidate_floor', threshold_settings.REGISTRY_CANDIDATE_FLOOR)
        self._clients: List[ClientRecord] = list(clients)

    def add(self, client: ClientRecord):
        self._clients.append(client)

    def __len__(self) -> int:
        return len(self._clients)

    def find_candidates(self, name: str, date_of_birth: Optional[date] = None) -> List[ClientRecord]:
        candidates = []
        for client in self._clients:
            similarity = name_similarity(name, client.name)
            dob_hit = date_of_birth is not None and client.date_of_birth is not None and (
                client.date_of_birth == date_of_birth or dates_transposed(client.date_of_birth, date_of_birth)
            )
            if similarity >= self.candidate_floor or (dob_hit and similarity > 0):
                candidates.append(client)

        logger.debug(f"Registry lookup returned {len(candidates)} of {len(self._clients)} clients")
        return candidates
