"""Tests for the document classifier."""

import pytest

from medextract.core.config import Settings
from medextract.schemas.base import DocumentType
from medextract.services.classifier import DocumentClassifier, classify


class TestScoring:
    """Test signature scoring."""

    def test_genetic_signature(self, classifier):
        """Test identifier, allele and identifier-genotype signals."""
        genetic, chemistry = classifier.score("rs1801133: CT")
        assert genetic == 3
        assert chemistry == 0

    def test_chemistry_signature(self, classifier):
        """Test analyte terms and unit tokens."""
        genetic, chemistry = classifier.score("Glucose: 95.5 mg/dL\nTotal Cholesterol: 180 mg/dL")
        assert genetic == 0
        assert chemistry == 4

    def test_terms_match_whole_words(self, classifier):
        """Test that indicator terms inside longer words are ignored."""
        genetic, _ = classifier.score("genotypes were not reviewed")
        assert genetic == 0

    def test_lowercase_allele_words_ignored(self, classifier):
        """Test that ordinary words such as "at" are not alleles."""
        genetic, _ = classifier.score("the cat sat at the gate")
        assert genetic == 0


class TestDecide:
    """Test the threshold rules."""

    @pytest.mark.parametrize(
        "genetic,chemistry,expected",
        [
            (6, 2, DocumentType.GENETIC),
            (1, 7, DocumentType.BIOMARKER),
            (5, 5, DocumentType.GENETIC),
            (2, 4, DocumentType.BIOMARKER),
            (3, 0, DocumentType.GENETIC),
            (0, 3, DocumentType.BIOMARKER),
            (2, 2, DocumentType.UNKNOWN),
            (0, 0, DocumentType.UNKNOWN),
        ],
    )
    def test_thresholds(self, classifier, genetic, chemistry, expected):
        """Test strong-winner and weak fallback rules."""
        assert classifier.decide(genetic, chemistry) == expected

    def test_custom_thresholds(self):
        """Test thresholds from settings."""
        lenient = DocumentClassifier(Settings(classifier_weak_threshold=1))
        assert lenient.classify("Glucose") == DocumentType.BIOMARKER


class TestClassify:
    """Test end-to-end classification."""

    def test_genetic_report(self, classifier, genetic_report):
        """Test a genotype table."""
        assert classifier.classify(genetic_report) == DocumentType.GENETIC

    def test_lab_report(self, classifier, lab_report):
        """Test a chemistry panel."""
        assert classifier.classify(lab_report) == DocumentType.BIOMARKER

    def test_single_identifier(self, classifier):
        """Test a one-line genotype."""
        assert classifier.classify("rs1801133: CT") == DocumentType.GENETIC

    def test_key_value_labs(self, classifier):
        """Test key/value lab lines."""
        text = "Glucose: 95.5 mg/dL\nTotal Cholesterol: 180 mg/dL"
        assert classifier.classify(text) == DocumentType.BIOMARKER

    def test_administrative_text(self, classifier):
        """Test text with no medical signal."""
        text = "Patient name: Jane Roe\nAppointment scheduled for Monday."
        result = classifier.classify_with_scores(text)
        assert result.document_type == DocumentType.UNKNOWN
        assert (result.genetic_score, result.chemistry_score) == (0, 0)

    @pytest.mark.parametrize("text", ["", "   \n\t"])
    def test_blank_text(self, classifier, text):
        """Test empty and whitespace-only input."""
        assert classifier.classify(text) == DocumentType.UNKNOWN

    def test_module_level_classify(self):
        """Test the shared-classifier helper."""
        assert classify("rs1801133: CT") == DocumentType.GENETIC
