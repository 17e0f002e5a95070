"""Tests for candidate aggregation."""

from medextract.core.config import Settings
from medextract.schemas.base import StrategySource
from medextract.services.aggregator import CandidateAggregator, rank_key
from medextract.services.candidates import BiomarkerCandidate, GeneticVariantCandidate


def biomarker(name, value, source, confidence, offset=0):
    return BiomarkerCandidate(
        name=name,
        value=value,
        unit="mg/dL",
        confidence=confidence,
        source=source,
        start_offset=offset,
    )


def variant(source, confidence, identifier=None, gene=None, mutation=None, genotype="CT"):
    return GeneticVariantCandidate(
        genotype=genotype,
        confidence=confidence,
        source=source,
        identifier=identifier,
        gene=gene,
        mutation=mutation,
    )


class TestBiomarkerAggregation:
    """Test biomarker dedup and ranking."""

    def test_agreeing_strategies_boost(self, aggregator):
        """Test that a second strategy finding the same value boosts confidence."""
        result = aggregator.aggregate([
            biomarker("Glucose", 95.0, StrategySource.TABLE_STRUCTURE, 90.0),
            biomarker("glucose", 95.0, StrategySource.FREE_FORM, 60.0),
        ])
        [survivor] = result.candidates
        assert survivor.source == StrategySource.TABLE_STRUCTURE
        assert survivor.confidence == 95.0
        assert result.stats["duplicate_count"] == 1
        assert result.stats["agreement_boosts"] == 1

    def test_same_strategy_does_not_boost(self, aggregator):
        """Test that repeats from one strategy merge without a boost."""
        result = aggregator.aggregate([
            biomarker("Iron", 80.0, StrategySource.FREE_FORM, 60.0, offset=0),
            biomarker("Iron", 80.0, StrategySource.FREE_FORM, 60.0, offset=40),
        ])
        [survivor] = result.candidates
        assert survivor.confidence == 60.0
        assert survivor.start_offset == 0
        assert result.stats["agreement_boosts"] == 0

    def test_value_epsilon(self, aggregator):
        """Test that values closer than epsilon are duplicates."""
        result = aggregator.aggregate([
            biomarker("Glucose", 95.0, StrategySource.DELIMITER_PAIR, 80.0),
            biomarker("Glucose", 95.005, StrategySource.FREE_FORM, 60.0),
            biomarker("Glucose", 120.0, StrategySource.FREE_FORM, 60.0),
        ])
        assert [c.value for c in result.candidates] == [95.0, 120.0]

    def test_boost_capped(self, aggregator):
        """Test the maximum entity confidence."""
        result = aggregator.aggregate([
            biomarker("TSH", 2.1, StrategySource.TABLE_STRUCTURE, 98.0),
            biomarker("TSH", 2.1, StrategySource.DELIMITER_PAIR, 80.0),
            biomarker("TSH", 2.1, StrategySource.UNIT_ANCHORED, 70.0),
            biomarker("TSH", 2.1, StrategySource.FREE_FORM, 60.0),
        ])
        assert result.candidates[0].confidence == 99.0

    def test_priority_beats_confidence(self, aggregator):
        """Test that the more specific strategy survives."""
        result = aggregator.aggregate([
            biomarker("Ferritin", 45.0, StrategySource.FREE_FORM, 95.0),
            biomarker("Ferritin", 45.0, StrategySource.TABLE_STRUCTURE, 85.0),
        ])
        [survivor] = result.candidates
        assert survivor.source == StrategySource.TABLE_STRUCTURE
        assert survivor.confidence == 90.0

    def test_below_threshold_filtered(self, aggregator):
        """Test the minimum candidate confidence."""
        result = aggregator.aggregate([
            biomarker("Iron", 80.0, StrategySource.FREE_FORM, 45.0),
            biomarker("Ferritin", 45.0, StrategySource.FREE_FORM, 60.0),
        ])
        assert [c.name for c in result.candidates] == ["Ferritin"]
        assert result.stats["below_threshold_count"] == 1

    def test_implausible_value_floor(self, aggregator):
        """Test that absurd magnitudes are kept at the floor confidence."""
        result = aggregator.aggregate([biomarker("Platelets", 250000.0, StrategySource.TABLE_STRUCTURE, 90.0)])
        [survivor] = result.candidates
        assert survivor.confidence == 50.0
        assert result.stats["implausible_count"] == 1

    def test_rank_order(self, aggregator):
        """Test priority, confidence, then position ordering."""
        result = aggregator.aggregate([
            biomarker("Iron", 80.0, StrategySource.FREE_FORM, 60.0, offset=0),
            biomarker("Sodium", 140.0, StrategySource.TABLE_STRUCTURE, 85.0, offset=50),
            biomarker("Glucose", 88.0, StrategySource.TABLE_STRUCTURE, 85.0, offset=20),
            biomarker("Ferritin", 45.0, StrategySource.LABELED_RANGE, 90.0, offset=10),
        ])
        assert [c.name for c in result.candidates] == ["Glucose", "Sodium", "Ferritin", "Iron"]
        assert result.candidates == sorted(result.candidates, key=rank_key)

    def test_inputs_not_mutated(self, aggregator):
        """Test that boosting works on copies."""
        first = biomarker("Glucose", 95.0, StrategySource.TABLE_STRUCTURE, 90.0)
        aggregator.aggregate([first, biomarker("Glucose", 95.0, StrategySource.FREE_FORM, 60.0)])
        assert first.confidence == 90.0

    def test_empty(self, aggregator):
        """Test aggregation of nothing."""
        result = aggregator.aggregate([])
        assert result.candidates == []
        assert result.stats["output_count"] == 0

    def test_configurable_boost(self):
        """Test the boost amount from settings."""
        aggregator = CandidateAggregator(Settings(agreement_boost=2.0))
        result = aggregator.aggregate([
            biomarker("Glucose", 95.0, StrategySource.DELIMITER_PAIR, 80.0),
            biomarker("Glucose", 95.0, StrategySource.FREE_FORM, 60.0),
        ])
        assert result.candidates[0].confidence == 82.0


class TestVariantAggregation:
    """Test variant dedup."""

    def test_same_identifier(self, aggregator):
        """Test identifiers compared case-insensitively."""
        result = aggregator.aggregate([
            variant(StrategySource.IDENTIFIER_CONTEXT, 90.0, identifier="rs1801133"),
            variant(StrategySource.GENOTYPE_PATTERN, 70.0, identifier="RS1801133"),
        ])
        [survivor] = result.candidates
        assert survivor.confidence == 95.0

    def test_different_identifiers(self, aggregator):
        """Test that distinct identifiers never merge."""
        result = aggregator.aggregate([
            variant(StrategySource.IDENTIFIER_CONTEXT, 90.0, identifier="rs1801133", gene="MTHFR"),
            variant(StrategySource.IDENTIFIER_CONTEXT, 90.0, identifier="rs1801131", gene="MTHFR"),
        ])
        assert len(result.candidates) == 2

    def test_gene_and_genotype(self, aggregator):
        """Test merging when one side has no identifier."""
        result = aggregator.aggregate([
            variant(StrategySource.TABLE_STRUCTURE, 95.0, identifier="rs1801133", gene="MTHFR"),
            variant(StrategySource.FREE_FORM, 60.0, gene="mthfr"),
        ])
        [survivor] = result.candidates
        assert survivor.identifier == "rs1801133"
        assert survivor.confidence == 99.0

    def test_different_mutations(self, aggregator):
        """Test that two named mutations of one gene stay apart."""
        result = aggregator.aggregate([
            variant(StrategySource.GENE_MUTATION, 80.0, gene="MTHFR", mutation="C677T"),
            variant(StrategySource.GENE_MUTATION, 80.0, gene="MTHFR", mutation="A1298C"),
        ])
        assert len(result.candidates) == 2

    def test_different_genotypes(self, aggregator):
        """Test that gene matches alone are not enough."""
        assert not aggregator.is_duplicate_variant(
            variant(StrategySource.FREE_FORM, 60.0, gene="COMT", genotype="AG"),
            variant(StrategySource.FREE_FORM, 60.0, gene="COMT", genotype="GG"),
        )
