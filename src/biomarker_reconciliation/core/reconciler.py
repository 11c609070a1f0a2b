# ============================================================================
# src/biomarker_reconciliation/core/reconciler.py
# ============================================================================
"""
Reconciliation Engine

One run reconciles one patient's document batch:

    documents
      -> consolidate patient metadata            (DocumentConsolidator)
      -> normalize + deduplicate biomarkers      (UnitNormalizer, BiomarkerDeduplicator)
      -> resolve identity against the registry   (PatientIdentityResolver)
      -> match every catalog biomarker           (RangeMatcher)
      -> ReconciliationResult

Runs share no mutable state. The reduce steps follow document submission
order. A run either returns a complete result or raises EmptyInputBatch /
NoObservationsError / RegistryLookupError.
"""

import logging
import uuid
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from ..config import reconciliation_settings
from ..matching.identity_resolver import PatientIdentityResolver, RegistryLike
from ..processors.consolidator import DocumentConsolidator
from ..processors.deduplicator import BiomarkerDeduplicator
from ..processors.unit_normalizer import UnitNormalizer
from ..temporal.date_grouping import group_by_test_date
from ..utils.exceptions import EmptyInputBatch, NoObservationsError
from ..utils.logging import LogContext, log_performance
from ..validators.range_matcher import RangeMatcher
from .catalog import BenchmarkCatalog
from .context.analysis import AnalysisSummary, DatedAnalysis, DocumentExtraction, ReconciliationResult
from .context.enums import Gender
from .context.observation import NormalizedObservation

logger = logging.getLogger(__name__)

DocumentInput = Union[DocumentExtraction, Mapping[str, Any]]


class ReconciliationEngine:
    """
    Reconcile multi-document biomarker extractions for one patient.

    The catalog snapshot is injected and never modified; the same snapshot
    and documents always produce the same result.
    """

    def __init__(
        self,
        catalog: BenchmarkCatalog,
        registry: Optional[RegistryLike] = None,
        config: Optional[Dict[str, Any]] = None
    ):
        self.catalog = catalog
        self.config = config or {}

        self.split_by_test_date = self.config.get('split_by_test_date', reconciliation_settings.SPLIT_BY_TEST_DATE)

        self.normalizer = UnitNormalizer(catalog, self.config)
        self.deduplicator = BiomarkerDeduplicator()
        self.consolidator = DocumentConsolidator()
        self.matcher = RangeMatcher(self.config)
        self.resolver = PatientIdentityResolver(registry, self.config)

    def run(self, documents: Sequence[DocumentInput]) -> ReconciliationResult:
        """
        Reconcile a batch of documents.

        Args:
            documents: DocumentExtraction objects or extractor JSON payloads,
                in submission order

        Returns:
            ReconciliationResult

        Raises:
            EmptyInputBatch: no documents
            NoObservationsError: documents without any biomarker
            RegistryLookupError: client registry failed
        """
        run_id = uuid.uuid4().hex[:12]
        with LogContext(logger, run_id=run_id):
            return self._run(run_id, documents)

    @log_performance(logger, "Reconciliation run")
    def _run(self, run_id: str, documents: Sequence[DocumentInput]) -> ReconciliationResult:
        if not documents:
            raise EmptyInputBatch("A reconciliation run requires at least one document")

        extractions = self._prepare(documents)
        logger.info(f"Run {run_id}: {len(extractions)} documents")

        profile = self.consolidator.consolidate([doc.profile for doc in extractions])

        normalized = self._normalize(extractions)
        if not normalized:
            raise NoObservationsError(
                f"None of the {len(extractions)} documents contains a biomarker"
            )

        observations = self.deduplicator.deduplicate(normalized)

        match = self.resolver.resolve(profile)

        rows = self.matcher.build_rows(observations, self.catalog, profile.gender)
        summary = self.matcher.generate_summary(rows)

        dated = self._dated_analyses(normalized, profile.gender) if self.split_by_test_date else []
        unmatched = [obs for obs in observations if not obs.in_catalog]

        if unmatched:
            logger.info(f"{len(unmatched)} biomarkers are not in the benchmark catalog")
        logger.info(
            f"Run {run_id}: {summary.measured}/{summary.total} measured, "
            f"{summary.in_range} in range, {summary.out_of_range} out of range, {summary.unknown} unknown"
        )

        return ReconciliationResult(
            run_id=run_id,
            profile=profile,
            match=match,
            observations=tuple(observations),
            rows=tuple(rows),
            summary=summary,
            dated_analyses=tuple(dated),
            unmatched_observations=tuple(unmatched),
        )

    def _prepare(self, documents: Sequence[DocumentInput]) -> List[DocumentExtraction]:
        extractions = []
        for i, document in enumerate(documents):
            if not isinstance(document, DocumentExtraction):
                document = DocumentExtraction.from_dict(document, document_id=f"document-{i + 1}")
            extractions.append(document)
        return extractions

    def _normalize(self, extractions: Sequence[DocumentExtraction]) -> List[NormalizedObservation]:
        normalized = []
        for extraction in extractions:
            document_date = extraction.profile.test_date
            for observation in extraction.observations:
                # Observation without its own date inherits the document's
                if observation.test_date is None and document_date is not None:
                    observation = replace(observation, test_date=document_date)
                normalized.append(self.normalizer.normalize(observation))
        return normalized

    def _dated_analyses(
        self,
        normalized: Sequence[NormalizedObservation],
        gender: Optional[Gender]
    ) -> List[DatedAnalysis]:
        """One analysis per test date, only when the batch spans several dates."""
        groups = group_by_test_date(normalized)
        if len(groups) < 2:
            return []

        analyses = []
        for test_date, group in groups.items():
            observations = self.deduplicator.deduplicate(group)
            rows = self.matcher.build_rows(observations, self.catalog, gender)
            analyses.append(DatedAnalysis(
                test_date=test_date,
                observations=tuple(observations),
                rows=tuple(rows),
                summary=AnalysisSummary.from_rows(rows),
            ))

        logger.info(f"Split into {len(analyses)} per-date analyses")
        return analyses


# ============================================================================
# CONVENIENCE FUNCTION
# ============================================================================

def reconcile(
    documents: Sequence[DocumentInput],
    catalog: Optional[BenchmarkCatalog] = None,
    registry: Optional[RegistryLike] = None,
    config: Optional[Dict[str, Any]] = None
) -> ReconciliationResult:
    """
    Quick reconciliation with the built-in catalog unless one is given.

    Example:
        result = reconcile([
            {"patientInfo": {"name": "Jane Doe", "gender": "F"},
             "biomarkers": [{"name": "Glucose", "value": "95", "unit": "mg/dL"}]},
        ])
        result.row_for("Fasting Glucose").status
    """
    if catalog is None:
        catalog = BenchmarkCatalog.builtin()
    return ReconciliationEngine(catalog, registry, config).run(documents)
