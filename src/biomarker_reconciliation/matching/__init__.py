# src/biomarker_reconciliation/matching/__init__.py

from .identity_resolver import PatientIdentityResolver, resolve_identity, score_candidate
from .registry import ClientRegistry, InMemoryClientRegistry

__all__ = [
    "PatientIdentityResolver",
    "resolve_identity",
    "score_candidate",
    "ClientRegistry",
    "InMemoryClientRegistry",
]
