"""Services for the medical report extraction engine.

- DocumentClassifier: genetic / biomarker / unknown decision
- Candidate strategies: independent scanners per document type
- CandidateAggregator: deduplication and ranking
- CanonicalResolver / VariantResolver: vocabulary resolution
- ConfidenceScorer: document-level confidence
- ExtractionEngine: the pipeline tying them together
"""

from medextract.services.aggregator import AggregationResult, CandidateAggregator
from medextract.services.candidates import BiomarkerCandidate, GeneticVariantCandidate, ReferenceRange
from medextract.services.canonical_resolver import (
    CanonicalResolver,
    VariantResolver,
    resolve_biomarker,
    resolve_variant,
)
from medextract.services.classifier import ClassificationResult, DocumentClassifier, classify
from medextract.services.collaborators import (
    ExtractionRepository,
    TextExtractionService,
    bound_input,
    persist_result,
    to_persistence_records,
)
from medextract.services.confidence import ConfidenceScorer
from medextract.services.extraction_pipeline import (
    ExtractionEngine,
    extract,
    get_extraction_engine,
    reset_extraction_engine,
)
from medextract.services.units import normalize_unit
from medextract.services.vocabulary import (
    BIOMARKER_VOCABULARY,
    VARIANT_VOCABULARY,
    CanonicalEntry,
    CanonicalVocabulary,
    VocabularyLoadError,
)

__all__ = [
    # Candidates
    "BiomarkerCandidate",
    "GeneticVariantCandidate",
    "ReferenceRange",
    # Classifier
    "ClassificationResult",
    "DocumentClassifier",
    "classify",
    # Aggregation and scoring
    "AggregationResult",
    "CandidateAggregator",
    "ConfidenceScorer",
    # Resolution
    "BIOMARKER_VOCABULARY",
    "VARIANT_VOCABULARY",
    "CanonicalEntry",
    "CanonicalResolver",
    "CanonicalVocabulary",
    "VariantResolver",
    "VocabularyLoadError",
    "normalize_unit",
    "resolve_biomarker",
    "resolve_variant",
    # Pipeline
    "ExtractionEngine",
    "extract",
    "get_extraction_engine",
    "reset_extraction_engine",
    # Collaborators
    "ExtractionRepository",
    "TextExtractionService",
    "bound_input",
    "persist_result",
    "to_persistence_records",
]
