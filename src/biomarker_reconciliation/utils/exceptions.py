# ============================================================================
# src/biomarker_reconciliation/utils/exceptions.py
# ============================================================================
"""
Custom exceptions for the reconciliation engine.

Only EmptyInputBatch (and NoObservationsError) abort a run. The others are
raised at the point of failure and absorbed by the component that owns the
fallback behaviour.
"""


class ReconciliationError(Exception):
    """Base exception for all reconciliation errors."""
    pass


class MalformedRangeExpression(ReconciliationError):
    """Reference range text could not be parsed into a predicate."""

    def __init__(self, message: str, raw_text: str = ""):
        super().__init__(message)
        self.raw_text = raw_text


class UnresolvableUnit(ReconciliationError):
    """Unit is recognised but cannot be converted to the canonical unit."""

    def __init__(self, message: str, from_unit: str, to_unit: str):
        super().__init__(message)
        self.from_unit = from_unit
        self.to_unit = to_unit


class AmbiguousIdentityMatch(ReconciliationError):
    """Several registry clients match the profile equally well."""

    def __init__(self, message: str, candidates=None):
        super().__init__(message)
        self.candidates = list(candidates or [])


class EmptyInputBatch(ReconciliationError):
    """A reconciliation run was started without any documents."""
    pass


class NoObservationsError(EmptyInputBatch):
    """Documents were supplied but none of them carried a biomarker."""
    pass


class CatalogError(ReconciliationError):
    """Benchmark catalog data is missing or malformed."""
    pass


class RegistryLookupError(ReconciliationError):
    """The client registry collaborator failed."""
    pass
