"""Medical report extraction pipeline.

A strictly linear pipeline over already-decoded report text:

1. Classify: genetic report, lab report, or Unknown.
2. Generate: every registered strategy for the type scans the full text,
   in parallel; outputs are unioned.
3. Aggregate: deduplicate and rank by strategy priority, then confidence.
4. Resolve: canonical vocabulary lookup and unit normalization for the
   survivors. Unresolved entities are kept with matched=False.
5. Score: one document-level confidence.

Data-quality problems never raise. Unknown documents, dropped candidates,
resolution misses and low confidence all come back as an ExtractionResult.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Sequence

from medextract.core.config import Settings, settings as default_settings
from medextract.schemas.base import DocumentType
from medextract.schemas.extraction import ExtractionResult, ResolvedBiomarker, ResolvedVariant
from medextract.services.aggregator import CandidateAggregator
from medextract.services.candidates import BiomarkerCandidate, GeneticVariantCandidate
from medextract.services.canonical_resolver import CanonicalResolver, VariantResolver
from medextract.services.classifier import ClassificationResult, DocumentClassifier
from medextract.services.confidence import ConfidenceScorer
from medextract.services.layout import analyze_layout
from medextract.services.name_validation import NameValidator
from medextract.services.strategies import CandidateStrategy, build_strategies
from medextract.services.units import normalize_unit
from medextract.services.vocabulary import BIOMARKER_VOCABULARY, VARIANT_VOCABULARY

logger = logging.getLogger(__name__)

EXTRACTABLE_TYPES = (DocumentType.BIOMARKER, DocumentType.GENETIC)


class ExtractionEngine:
    """Classifies report text and extracts biomarkers or genetic variants.

    All state is built once in the constructor and is read-only afterwards,
    so one engine can serve concurrent extract() calls.

    Usage:
        engine = ExtractionEngine()
        result = engine.extract("Glucose: 95.5 mg/dL\\nTotal Cholesterol: 180 mg/dL")
        for biomarker in result.biomarkers:
            print(biomarker.name, biomarker.value, biomarker.unit, biomarker.canonical_key)
        if result.needs_review:
            ...
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or default_settings
        self.classifier = DocumentClassifier(self.settings)
        self.name_validator = NameValidator(self.settings)
        self.aggregator = CandidateAggregator(self.settings)
        self.scorer = ConfidenceScorer(self.settings)
        self.biomarker_resolver = CanonicalResolver(BIOMARKER_VOCABULARY, self.settings)
        self.variant_resolver = VariantResolver(VARIANT_VOCABULARY, self.settings)
        self.strategies: dict[DocumentType, list[CandidateStrategy]] = {
            document_type: build_strategies(document_type, self.settings, self.name_validator)
            for document_type in EXTRACTABLE_TYPES
        }
        logger.info(
            "Extraction engine ready: "
            + ", ".join(f"{dt.value}={len(s)} strategies" for dt, s in self.strategies.items())
        )

    def _run_strategy(self, strategy: CandidateStrategy, text: str) -> list:
        try:
            return strategy.generate(text)
        except Exception as e:
            logger.warning(f"Strategy {strategy.name} failed: {e}")
            return []

    def generate(self, document_type: DocumentType, text: str) -> list[tuple[CandidateStrategy, list]]:
        """Run every strategy for a document type.

        Results come back in registry order regardless of which strategy
        finishes first.
        """
        strategies = self.strategies.get(document_type, [])
        if self.settings.parallel_generation and len(strategies) > 1:
            workers = min(self.settings.max_workers, len(strategies))
            with ThreadPoolExecutor(max_workers=workers) as executor:
                outputs = list(executor.map(lambda s: self._run_strategy(s, text), strategies))
        else:
            outputs = [self._run_strategy(s, text) for s in strategies]

        for strategy, output in zip(strategies, outputs):
            logger.debug(f"{strategy.name}: {len(output)} candidates")
        return list(zip(strategies, outputs))

    def classify(self, text: str, type_hint: DocumentType | None = None) -> tuple[DocumentType, ClassificationResult]:
        """Classify text; the hint only applies when the classifier is undecided."""
        classification = self.classifier.classify_with_scores(text)
        document_type = classification.document_type
        if (
            document_type == DocumentType.UNKNOWN
            and type_hint in EXTRACTABLE_TYPES
            and text.strip()
        ):
            logger.debug(f"Classifier undecided, using type hint {type_hint.value}")
            document_type = type_hint
        return document_type, classification

    def resolve_biomarker(self, candidate: BiomarkerCandidate) -> ResolvedBiomarker:
        key = self.biomarker_resolver.resolve(candidate.name)
        return ResolvedBiomarker(
            name=candidate.name,
            canonical_key=key,
            matched=key is not None,
            value=candidate.value,
            unit=normalize_unit(candidate.unit),
            reference_range=candidate.reference_range,
            status=candidate.status,
            confidence=round(candidate.confidence, 1),
            source=candidate.source,
            source_text=candidate.source_text,
        )

    def resolve_variant(self, candidate: GeneticVariantCandidate) -> ResolvedVariant:
        key = self.variant_resolver.resolve(candidate.identifier, candidate.gene, candidate.mutation)
        return ResolvedVariant(
            identifier=candidate.identifier,
            gene=candidate.gene,
            mutation=candidate.mutation,
            genotype=candidate.genotype,
            zygosity=candidate.zygosity,
            canonical_key=key,
            matched=key is not None,
            confidence=round(candidate.confidence, 1),
            source=candidate.source,
            source_text=candidate.source_text,
        )

    def _result(
        self,
        document_type: DocumentType,
        confidence: float,
        stats: dict[str, Any],
        biomarkers: Sequence[ResolvedBiomarker] = (),
        variants: Sequence[ResolvedVariant] = (),
    ) -> ExtractionResult:
        return ExtractionResult(
            document_type=document_type,
            biomarkers=list(biomarkers),
            variants=list(variants),
            confidence=confidence,
            needs_review=confidence < self.settings.review_confidence_threshold,
            stats=stats,
        )

    def extract(self, text: str | None, type_hint: DocumentType | None = None) -> ExtractionResult:
        """Extract structured entities from report text.

        Args:
            text: Decoded report text. Callers bound its size beforehand
                (see collaborators.bound_input).
            type_hint: Advisory document type, used when the classifier
                cannot decide.

        Returns:
            ExtractionResult. Unknown documents come back with empty entity
            lists and the fixed Unknown confidence.
        """
        start_time = time.perf_counter()
        text = text or ""

        document_type, classification = self.classify(text, type_hint)
        stats: dict[str, Any] = {
            "genetic_score": classification.genetic_score,
            "chemistry_score": classification.chemistry_score,
            "classified_as": classification.document_type.value,
            "type_hint": type_hint.value if type_hint else None,
        }

        if document_type == DocumentType.UNKNOWN:
            logger.info("Extraction: document type unknown, nothing extracted")
            return self._result(DocumentType.UNKNOWN, self.settings.unknown_document_confidence, stats)

        generated = self.generate(document_type, text)
        candidates = [candidate for _, output in generated for candidate in output]
        stats["candidates_by_strategy"] = {strategy.name: len(output) for strategy, output in generated}

        aggregation = self.aggregator.aggregate(candidates)
        stats["aggregation"] = aggregation.stats

        layout = analyze_layout(text)
        stats["layout"] = layout.get_stats()
        confidence = self.scorer.score(document_type, aggregation.candidates, layout)

        biomarkers: list[ResolvedBiomarker] = []
        variants: list[ResolvedVariant] = []
        if document_type == DocumentType.BIOMARKER:
            biomarkers = [self.resolve_biomarker(c) for c in aggregation.candidates]
            resolved = biomarkers
        else:
            variants = [self.resolve_variant(c) for c in aggregation.candidates]
            resolved = variants
        stats["matched_count"] = sum(1 for entity in resolved if entity.matched)
        stats["unmatched_count"] = len(resolved) - stats["matched_count"]

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            f"Extraction: {document_type.value} document, {len(biomarkers)} biomarkers, "
            f"{len(variants)} variants, confidence {confidence} ({elapsed_ms:.1f} ms)"
        )
        return self._result(document_type, confidence, stats, biomarkers, variants)


# Singleton Pattern

_engine: ExtractionEngine | None = None
_engine_lock = threading.Lock()


def get_extraction_engine() -> ExtractionEngine:
    """Get or create the singleton engine."""
    global _engine

    if _engine is None:
        with _engine_lock:
            if _engine is None:
                _engine = ExtractionEngine()

    return _engine


def reset_extraction_engine() -> None:
    """Reset the singleton engine (for testing)."""
    global _engine
    with _engine_lock:
        _engine = None


def extract(text: str | None, type_hint: DocumentType | None = None) -> ExtractionResult:
    """Extract entities from report text with the shared engine."""
    return get_extraction_engine().extract(text, type_hint)
