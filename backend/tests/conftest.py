"""Pytest configuration and fixtures for engine tests."""

import pytest

from medextract.core.config import Settings
from medextract.services.aggregator import CandidateAggregator
from medextract.services.canonical_resolver import CanonicalResolver, VariantResolver
from medextract.services.classifier import DocumentClassifier
from medextract.services.confidence import ConfidenceScorer
from medextract.services.extraction_pipeline import ExtractionEngine, reset_extraction_engine
from medextract.services.name_validation import NameValidator
from medextract.services.vocabulary import BIOMARKER_VOCABULARY, VARIANT_VOCABULARY


@pytest.fixture
def test_settings() -> Settings:
    """Default settings with sequential strategy execution.

    Sequential runs keep log capture and failure injection simple; the
    parallel path is covered separately.
    """
    return Settings(parallel_generation=False)


@pytest.fixture
def classifier(test_settings: Settings) -> DocumentClassifier:
    return DocumentClassifier(test_settings)


@pytest.fixture
def name_validator(test_settings: Settings) -> NameValidator:
    return NameValidator(test_settings)


@pytest.fixture
def aggregator(test_settings: Settings) -> CandidateAggregator:
    return CandidateAggregator(test_settings)


@pytest.fixture
def scorer(test_settings: Settings) -> ConfidenceScorer:
    return ConfidenceScorer(test_settings)


@pytest.fixture
def biomarker_resolver(test_settings: Settings) -> CanonicalResolver:
    return CanonicalResolver(BIOMARKER_VOCABULARY, test_settings)


@pytest.fixture
def variant_resolver(test_settings: Settings) -> VariantResolver:
    return VariantResolver(VARIANT_VOCABULARY, test_settings)


@pytest.fixture
def engine(test_settings: Settings) -> ExtractionEngine:
    return ExtractionEngine(test_settings)


@pytest.fixture(autouse=True)
def fresh_engine_singleton():
    """Each test starts without a cached module-level engine."""
    reset_extraction_engine()
    yield
    reset_extraction_engine()


@pytest.fixture
def lab_report() -> str:
    """Mixed-layout lab report: column table, vendor row, labeled range, boilerplate."""
    return (
        "COMPREHENSIVE METABOLIC PANEL\n"
        "Test   Result   Units   Reference Range\n"
        "Glucose   88   mg/dL   65-99\n"
        "Sodium   140   mmol/L   135-146\n"
        "CHOLESTEROL, TOTAL 222 HIGH <200 mg/dL 01\n"
        "Ferritin: 45 ng/mL (Reference Range: 30-400)\n"
        "Patient: John Doe   Page 1 of 3\n"
    )


@pytest.fixture
def genetic_report() -> str:
    """Genetic panel rows with result codes and genotypes."""
    return (
        "GENETIC REPORT\n"
        "MTHFR C677T rs1801133 -+ Heterozygous CT\n"
        "MTHFR A1298C rs1801131 -- AA\n"
        "COMT V158M rs4680 ++ Homozygous AA\n"
    )
