"""Document classifier.

Scores report text against two independent signatures, genetic and
chemistry, and decides which candidate strategies to run:

- genetic: variant identifiers (rs####), upper-case allele strings
  ("CT", "C/T"), identifier-genotype pairs and terms such as "genotype",
  "zygosity", "variant".
- chemistry: unit tokens (mg/dL, mmol/L, ...) and terms such as
  "reference range", "lab report" and common analyte names.

Literal terms are counted with an Aho-Corasick automaton; shapes that need
a pattern (identifiers, alleles, units) use regexes.
"""

import logging
import re
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

import ahocorasick

from medextract.core.config import Settings, settings as default_settings
from medextract.schemas.base import DocumentType

if TYPE_CHECKING:
    from ahocorasick import Automaton

logger = logging.getLogger(__name__)

GENETIC = "genetic"
CHEMISTRY = "chemistry"

# Literal indicator terms per signature (matched case-insensitively on
# word boundaries)
SIGNATURE_TERMS: dict[str, tuple[str, ...]] = {
    GENETIC: (
        "genotype", "zygosity", "variant", "snp", "allele", "mutation",
        "heterozygous", "homozygous", "wild type",
    ),
    CHEMISTRY: (
        "lab report", "blood test", "cbc", "cmp", "desired range",
        "reference range", "cholesterol", "glucose", "hemoglobin",
    ),
}

SIGNATURE_PATTERNS: dict[str, tuple[re.Pattern, ...]] = {
    GENETIC: (
        re.compile(r"\brs\d{4,}\b", re.IGNORECASE),
        # Allele letters are upper-case in reports; lower-case would hit
        # ordinary words ("at", "act")
        re.compile(r"\b[ACGT]{2,4}\b"),
        re.compile(r"\b[ACGT]/[ACGT]\b"),
        re.compile(r"\b[rR][sS]\d+\s*:?\s*\(?[ACGT]{1,2}(?:/[ACGT])?\)?(?![A-Za-z])"),
    ),
    CHEMISTRY: (
        re.compile(r"\bmg/dl\b", re.IGNORECASE),
        re.compile(r"\bmmol/l\b", re.IGNORECASE),
        re.compile(r"\bng/ml\b", re.IGNORECASE),
        re.compile(r"\bu/l\b", re.IGNORECASE),
        re.compile(r"\bg/dl\b", re.IGNORECASE),
    ),
}


@dataclass(frozen=True)
class ClassificationResult:
    """Classifier decision with the scores it was based on."""

    document_type: DocumentType
    genetic_score: int
    chemistry_score: int


def _is_word_boundary(text: str, start: int, end: int) -> bool:
    """Check that an automaton hit is a whole word (like \\b in regex)."""
    if start > 0 and (text[start - 1].isalnum() or text[start - 1] == "_"):
        return False
    if end < len(text) and (text[end].isalnum() or text[end] == "_"):
        return False
    return True


class DocumentClassifier:
    """Decides whether text is a genetic report, a lab report, or neither.

    Usage:
        classifier = DocumentClassifier()
        classifier.classify("rs1801133: CT")  # DocumentType.GENETIC
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or default_settings
        self._automaton: "Automaton" = self._build_automaton()

    @staticmethod
    def _build_automaton() -> "Automaton":
        automaton = ahocorasick.Automaton()
        for signature, terms in SIGNATURE_TERMS.items():
            for term in terms:
                automaton.add_word(term, (signature, term))
        automaton.make_automaton()
        return automaton

    def score(self, text: str) -> tuple[int, int]:
        """Count signature matches.

        Returns:
            (genetic score, chemistry score)
        """
        scores = {GENETIC: 0, CHEMISTRY: 0}

        text_lower = text.lower()
        for end_index, (signature, term) in self._automaton.iter(text_lower):
            start = end_index - len(term) + 1
            if _is_word_boundary(text_lower, start, end_index + 1):
                scores[signature] += 1

        for signature, patterns in SIGNATURE_PATTERNS.items():
            for pattern in patterns:
                scores[signature] += sum(1 for _ in pattern.finditer(text))

        return scores[GENETIC], scores[CHEMISTRY]

    def decide(self, genetic_score: int, chemistry_score: int) -> DocumentType:
        """Map signature scores to a document type.

        A clear winner needs the strong threshold; otherwise either side
        reaching the weak threshold decides, genetic first.
        """
        strong = self.settings.classifier_strong_threshold
        weak = self.settings.classifier_weak_threshold

        if genetic_score > chemistry_score and genetic_score >= strong:
            return DocumentType.GENETIC
        if chemistry_score > genetic_score and chemistry_score >= strong:
            return DocumentType.BIOMARKER
        if genetic_score >= weak:
            return DocumentType.GENETIC
        if chemistry_score >= weak:
            return DocumentType.BIOMARKER
        return DocumentType.UNKNOWN

    def classify_with_scores(self, text: str) -> ClassificationResult:
        """Classify text and keep the scores for diagnostics."""
        if not text or not text.strip():
            return ClassificationResult(DocumentType.UNKNOWN, 0, 0)

        genetic_score, chemistry_score = self.score(text)
        document_type = self.decide(genetic_score, chemistry_score)
        logger.debug(
            f"Classifier scores: genetic={genetic_score} chemistry={chemistry_score} "
            f"-> {document_type.value}"
        )
        return ClassificationResult(document_type, genetic_score, chemistry_score)

    def classify(self, text: str) -> DocumentType:
        """Classify text into a document type."""
        return self.classify_with_scores(text).document_type


_classifier: DocumentClassifier | None = None
_classifier_lock = threading.Lock()


def get_document_classifier() -> DocumentClassifier:
    """Get or create the shared classifier (default settings)."""
    global _classifier

    if _classifier is None:
        with _classifier_lock:
            if _classifier is None:
                _classifier = DocumentClassifier()

    return _classifier


def classify(text: str) -> DocumentType:
    """Classify text with the shared classifier."""
    return get_document_classifier().classify(text)
