# ============================================================================
# src/biomarker_reconciliation/matching/identity_resolver.py
# ============================================================================
"""
Patient Identity Resolver

Looks the consolidated profile up in the client registry and scores every
candidate into a confidence tier:

- high:   exact (case-insensitive) name AND exact date of birth
- medium: exact name with date of birth missing on either side, or with
          day and month transposed; similar name with exact date of birth
- low:    similar name (similarity >= NAME_SIMILARITY_THRESHOLD) without
          date of birth corroboration

A candidate whose date of birth contradicts the profile is not a match.

The result never merges anything: MatchResult.confirmed_client_id() returns
the client id only after the caller accepts it.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from ..config import threshold_settings
from ..core.context.enums import ConfidenceLevel, SuggestedAction
from ..core.context.patient import CanonicalPatientProfile, ClientRecord, MatchResult
from ..utils.exceptions import AmbiguousIdentityMatch, RegistryLookupError
from .name_similarity import dates_transposed, name_similarity, names_equal
from .registry import ClientRegistry

logger = logging.getLogger(__name__)

TIER_RANK = {
    ConfidenceLevel.HIGH: 3,
    ConfidenceLevel.MEDIUM: 2,
    ConfidenceLevel.LOW: 1,
}

RegistryLike = Union[ClientRegistry, Callable[..., Sequence[ClientRecord]]]


@dataclass(frozen=True)
class CandidateScore:
    client: ClientRecord
    tier: Optional[ConfidenceLevel]
    similarity: float
    explanation: str

    @property
    def is_match(self) -> bool:
        return self.tier is not None


def score_candidate(
    profile: CanonicalPatientProfile,
    client: ClientRecord,
    threshold: Optional[float] = None
) -> CandidateScore:
    """
    Pure scoring of one registry client against the profile.

    Args:
        profile: Consolidated patient profile
        client: Registry record
        threshold: Minimum fuzzy name similarity (default from settings)
    """
    if threshold is None:
        threshold = threshold_settings.NAME_SIMILARITY_THRESHOLD

    similarity = name_similarity(profile.name, client.name)
    exact_name = names_equal(profile.name, client.name)

    dob_a, dob_b = profile.date_of_birth, client.date_of_birth
    dob_missing = dob_a is None or dob_b is None
    dob_exact = not dob_missing and dob_a == dob_b
    dob_swapped = dates_transposed(dob_a, dob_b)

    def result(tier, explanation):
        return CandidateScore(client=client, tier=tier, similarity=similarity, explanation=explanation)

    if exact_name:
        if dob_exact:
            return result(ConfidenceLevel.HIGH, "exact name and date of birth match")
        if dob_missing:
            return result(ConfidenceLevel.MEDIUM, "exact name match; date of birth not available on both sides")
        if dob_swapped:
            return result(ConfidenceLevel.MEDIUM, "exact name match; date of birth has day and month swapped")
        return result(None, "name matches but date of birth differs")

    if similarity >= threshold:
        if dob_exact:
            return result(ConfidenceLevel.MEDIUM, f"similar name ({similarity:.2f}) and exact date of birth match")
        if dob_missing or dob_swapped:
            return result(ConfidenceLevel.LOW, f"similar name ({similarity:.2f}) without date of birth corroboration")
        return result(None, f"similar name ({similarity:.2f}) but date of birth differs")

    return result(None, f"name similarity {similarity:.2f} below {threshold:.2f}")


def pick_best(scores: Sequence[CandidateScore]) -> CandidateScore:
    """
    Best-tier candidate, most similar name first.

    Raises:
        AmbiguousIdentityMatch: several distinct clients share the best tier
    """
    matches = [score for score in scores if score.is_match]
    best_rank = max(TIER_RANK[score.tier] for score in matches)
    top = [score for score in matches if TIER_RANK[score.tier] == best_rank]
    top.sort(key=lambda score: -score.similarity)

    if len({score.client.client_id for score in top}) > 1:
        raise AmbiguousIdentityMatch(
            f"{len(top)} registry clients tie at {top[0].tier.value} confidence",
            candidates=top
        )
    return top[0]


class PatientIdentityResolver:
    """
    Resolve a consolidated profile against the client registry.

    registry may be an object with find_candidates(name, date_of_birth) or a
    plain callable with the same signature. Without a registry every profile
    resolves to create-new.
    """

    def __init__(self, registry: Optional[RegistryLike] = None, config: Optional[Dict[str, Any]] = None):
        self.registry = registry
        self.config = config or {}
        self.threshold = self.config.get('name_similarity_threshold', threshold_settings.NAME_SIMILARITY_THRESHOLD)

    def _lookup(self, profile: CanonicalPatientProfile) -> List[ClientRecord]:
        lookup = getattr(self.registry, "find_candidates", self.registry)
        try:
            return list(lookup(profile.name, profile.date_of_birth) or [])
        except Exception as e:
            logger.error(f"Client registry lookup failed: {type(e).__name__}")
            raise RegistryLookupError(f"Client registry lookup failed ({type(e).__name__})") from e

    def _no_match(self, profile: CanonicalPatientProfile, explanation: str) -> MatchResult:
        return MatchResult(
            matched=False,
            client_id=None,
            confidence=profile.confidence,
            suggested_action=SuggestedAction.CREATE_NEW,
            explanation=explanation,
        )

    def resolve(self, profile: CanonicalPatientProfile) -> MatchResult:
        """
        Args:
            profile: Consolidated patient profile

        Returns:
            MatchResult; matched results still need caller confirmation

        Raises:
            RegistryLookupError: the registry raised (not retried)
        """
        if not profile.name:
            logger.info("No patient name extracted; skipping registry lookup")
            return MatchResult(
                matched=False,
                client_id=None,
                confidence=ConfidenceLevel.LOW,
                suggested_action=SuggestedAction.CREATE_NEW,
                explanation="no patient name to search on",
            )

        if self.registry is None:
            return self._no_match(profile, "no client registry configured")

        candidates = self._lookup(profile)
        scores = [score_candidate(profile, client, self.threshold) for client in candidates]

        if not any(score.is_match for score in scores):
            logger.info(f"No registry match among {len(candidates)} candidates")
            return self._no_match(profile, f"no registry client matched ({len(candidates)} candidates checked)")

        try:
            best = pick_best(scores)
            tier = best.tier
            explanation = best.explanation
        except AmbiguousIdentityMatch as e:
            best = e.candidates[0]
            tier = best.tier.downgrade()
            explanation = f"{best.explanation}; {len(e.candidates)} registry clients are equally likely"
            logger.warning(f"Ambiguous identity match: {e}")

        if profile.has_identity_conflict and tier == ConfidenceLevel.HIGH:
            tier = ConfidenceLevel.MEDIUM
            explanation += "; source documents disagree on name or date of birth"

        logger.info(f"Registry match {best.client.client_id} at {tier.value} confidence (confirmation required)")

        return MatchResult(
            matched=True,
            client_id=best.client.client_id,
            confidence=tier,
            suggested_action=SuggestedAction.USE_EXISTING,
            explanation=explanation,
            candidate=best.client,
        )


# ============================================================================
# CONVENIENCE FUNCTION
# ============================================================================

def resolve_identity(
    profile: CanonicalPatientProfile,
    registry: Optional[RegistryLike] = None,
    config: Optional[Dict[str, Any]] = None
) -> MatchResult:
    """Quick identity resolution."""
    return PatientIdentityResolver(registry, config).resolve(profile)
