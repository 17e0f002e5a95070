"""Tests for document-level confidence scoring."""

import pytest

from medextract.core.config import Settings
from medextract.schemas.base import DocumentType, StrategySource
from medextract.services.candidates import BiomarkerCandidate
from medextract.services.confidence import ConfidenceScorer
from medextract.services.layout import analyze_layout


def entity(source=StrategySource.TABLE_STRUCTURE, confidence=80.0):
    return BiomarkerCandidate(name="Glucose", value=95.0, unit="mg/dL", confidence=confidence, source=source)


class TestBonuses:
    """Test the score components."""

    def test_structural_bonus(self, scorer):
        """Test saturation and the cap."""
        layout = analyze_layout("Glucose: 95.5 mg/dL\nTotal Cholesterol: 180 mg/dL")
        assert scorer.structural_bonus(layout) == 30.0
        assert scorer.structural_bonus(None) == 0.0

    def test_partial_structural_bonus(self, scorer):
        """Test a single table row with a measurement."""
        layout = analyze_layout("Glucose 95 mg/dL")
        assert scorer.structural_bonus(layout) == pytest.approx(15.0)

    @pytest.mark.parametrize("count,expected", [(0, 0.0), (1, 12.5), (2, 18.75), (3, 21.875)])
    def test_entity_bonus(self, scorer, count, expected):
        """Test diminishing returns per entity."""
        assert scorer.entity_bonus(count) == pytest.approx(expected)


class TestScore:
    """Test the combined score."""

    def test_unknown(self, scorer):
        """Test the fixed Unknown confidence."""
        assert scorer.score(DocumentType.UNKNOWN, [entity()]) == 10.0

    def test_no_entities(self, scorer):
        """Test the empty-result multiplier."""
        assert scorer.score(DocumentType.BIOMARKER, []) == 20.0

    def test_table_entity(self, scorer):
        """Test base, table bonus, structure and entity bonus scaled by confidence."""
        layout = analyze_layout("Glucose 95 mg/dL")
        # (40 + 25 + 15 + 12.5) * 0.80
        assert scorer.score(DocumentType.BIOMARKER, [entity()], layout) == pytest.approx(74.0)

    def test_table_bonus_needs_table_source(self, scorer):
        """Test that other strategies get no table bonus."""
        # (40 + 12.5) * 0.80
        score = scorer.score(DocumentType.BIOMARKER, [entity(StrategySource.FREE_FORM)])
        assert score == pytest.approx(42.0)

    def test_clamped(self):
        """Test the upper bound."""
        scorer = ConfidenceScorer(Settings(score_base=500.0))
        assert scorer.score(DocumentType.GENETIC, [entity(confidence=99.0)]) == 100.0
