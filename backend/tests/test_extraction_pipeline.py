"""Tests for the end-to-end extraction pipeline."""

import logging

import pytest

from medextract import extract
from medextract.core.config import Settings
from medextract.schemas.base import BiomarkerStatus, DocumentType, StrategySource, Zygosity
from medextract.services.canonical_resolver import normalize_term
from medextract.services.extraction_pipeline import ExtractionEngine, get_extraction_engine


class TestBiomarkerExtraction:
    """Test lab report extraction."""

    def test_single_line_with_hint(self, engine):
        """Test a line the classifier cannot decide on alone."""
        result = engine.extract("Glucose 95 mg/dL", DocumentType.BIOMARKER)

        assert result.document_type == DocumentType.BIOMARKER
        assert result.variants == []
        [glucose] = result.biomarkers
        assert glucose.name == "Glucose"
        assert glucose.value == 95.0
        assert glucose.unit == "mg/dL"
        assert glucose.canonical_key == "glucose_fasting"
        assert glucose.matched is True
        assert glucose.source == StrategySource.TABLE_STRUCTURE
        assert glucose.confidence == 95.0
        assert result.confidence == pytest.approx(87.9, abs=0.1)
        assert result.needs_review is False
        assert result.stats["classified_as"] == "unknown"
        assert result.stats["type_hint"] == "biomarker"

    def test_key_value_lines(self, engine):
        """Test "name: value unit" lines."""
        result = engine.extract("Glucose: 95.5 mg/dL\nTotal Cholesterol: 180 mg/dL")

        assert result.document_type == DocumentType.BIOMARKER
        assert [(b.name, b.value, b.canonical_key) for b in result.biomarkers] == [
            ("Glucose", 95.5, "glucose_fasting"),
            ("Total Cholesterol", 180.0, "cholesterol_total"),
        ]
        assert all(b.source == StrategySource.DELIMITER_PAIR for b in result.biomarkers)
        assert all(b.confidence == 85.0 for b in result.biomarkers)
        assert result.confidence == pytest.approx(75.4, abs=0.1)

    def test_lab_report(self, engine, lab_report):
        """Test a mixed-layout report end to end."""
        result = engine.extract(lab_report)

        assert result.document_type == DocumentType.BIOMARKER
        assert [b.canonical_key for b in result.biomarkers] == [
            "glucose_fasting",
            "sodium",
            "cholesterol_total",
            "ferritin",
        ]
        by_key = {b.canonical_key: b for b in result.biomarkers}
        assert by_key["cholesterol_total"].status == BiomarkerStatus.HIGH
        assert by_key["cholesterol_total"].reference_range == "<200"
        assert by_key["ferritin"].reference_range == "30-400"
        assert by_key["glucose_fasting"].status == BiomarkerStatus.NORMAL
        assert result.stats["matched_count"] == 4
        assert result.stats["unmatched_count"] == 0

    def test_no_duplicate_entities(self, engine, lab_report):
        """Test that no two biomarkers share a name and value."""
        result = engine.extract(lab_report)
        seen = {(normalize_term(b.name), b.value) for b in result.biomarkers}
        assert len(seen) == len(result.biomarkers)

    def test_unmatched_entities_kept(self, engine):
        """Test that vocabulary misses are reported, not dropped."""
        result = engine.extract("Zzyzx: 42 mg/dL\nGlucose: 95 mg/dL")

        unmatched = [b for b in result.biomarkers if not b.matched]
        assert [b.name for b in unmatched] == ["Zzyzx"]
        assert unmatched[0].canonical_key is None
        assert result.stats["unmatched_count"] == 1


class TestGeneticExtraction:
    """Test genetic report extraction."""

    def test_single_identifier(self, engine):
        """Test "rs####: genotype"."""
        result = engine.extract("rs1801133: CT")

        assert result.document_type == DocumentType.GENETIC
        assert result.biomarkers == []
        [variant] = result.variants
        assert variant.identifier == "rs1801133"
        assert variant.genotype == "CT"
        assert variant.zygosity == Zygosity.HETEROZYGOUS
        assert variant.canonical_key == "mthfr_c677t"
        assert variant.source == StrategySource.IDENTIFIER_CONTEXT

    def test_genetic_report(self, engine, genetic_report):
        """Test a result table with result codes."""
        result = engine.extract(genetic_report)

        assert [(v.canonical_key, v.zygosity) for v in result.variants] == [
            ("mthfr_c677t", Zygosity.HETEROZYGOUS),
            ("mthfr_a1298c", Zygosity.WILD_TYPE),
            ("comt_v158m", Zygosity.HOMOZYGOUS),
        ]
        assert all(v.source == StrategySource.TABLE_STRUCTURE for v in result.variants)
        assert all(v.confidence <= 99.0 for v in result.variants)


class TestUnknownDocuments:
    """Test documents that cannot be processed."""

    @pytest.mark.parametrize(
        "text",
        [
            "",
            None,
            "   ",
            "Patient: John Doe, DOB: 1/1/1980, Page 1 of 3",
            "Patient name: Jane Roe\nAppointment scheduled for Monday.",
        ],
    )
    def test_unknown(self, engine, text):
        """Test empty and non-medical input."""
        result = engine.extract(text)
        assert result.document_type == DocumentType.UNKNOWN
        assert result.biomarkers == []
        assert result.variants == []
        assert result.confidence == 10.0
        assert result.needs_review is True
        assert result.is_processed is False

    def test_hint_ignored_for_blank_text(self, engine):
        """Test that a hint cannot turn empty input into a lab report."""
        assert engine.extract("   ", DocumentType.BIOMARKER).document_type == DocumentType.UNKNOWN

    def test_hint_does_not_override_classifier(self, engine):
        """Test that a decided classification wins over the hint."""
        result = engine.extract("rs1801133: CT", DocumentType.BIOMARKER)
        assert result.document_type == DocumentType.GENETIC


class TestRobustness:
    """Test failure isolation and determinism."""

    def test_failing_strategy_is_isolated(self, engine, lab_report, monkeypatch, caplog):
        """Test that one broken strategy does not fail the extraction."""
        table = engine.strategies[DocumentType.BIOMARKER][0]

        def boom(text):
            raise RuntimeError("boom")

        monkeypatch.setattr(table, "generate", boom)
        with caplog.at_level(logging.WARNING, logger="medextract.services.extraction_pipeline"):
            result = engine.extract(lab_report)

        assert "Strategy table-structure failed: boom" in caplog.text
        assert result.document_type == DocumentType.BIOMARKER
        assert result.biomarkers
        assert all(b.source != StrategySource.TABLE_STRUCTURE for b in result.biomarkers)
        assert result.stats["candidates_by_strategy"]["table-structure"] == 0

    def test_deterministic(self, engine, lab_report):
        """Test that repeated calls give identical results."""
        assert engine.extract(lab_report).model_dump() == engine.extract(lab_report).model_dump()

    def test_parallel_matches_sequential(self, engine, lab_report, genetic_report):
        """Test that thread-pool generation gives the same result."""
        parallel = ExtractionEngine(Settings(parallel_generation=True, max_workers=4))
        for text in (lab_report, genetic_report):
            assert parallel.extract(text).model_dump() == engine.extract(text).model_dump()

    def test_review_threshold(self, engine):
        """Test that scores below the review threshold are flagged for review."""
        result = engine.extract("Patient notes pending", type_hint=DocumentType.BIOMARKER)
        assert result.document_type == DocumentType.BIOMARKER
        assert result.biomarkers == []
        assert result.confidence == pytest.approx(20.0)
        assert result.needs_review is True

    def test_score_at_review_threshold_passes(self, engine):
        """Test that a score equal to the threshold does not need review."""
        score = engine.extract("Glucose 95 mg/dL", type_hint=DocumentType.BIOMARKER).confidence
        at_threshold = ExtractionEngine(Settings(parallel_generation=False, review_confidence_threshold=score))
        assert at_threshold.extract("Glucose 95 mg/dL", type_hint=DocumentType.BIOMARKER).needs_review is False
        above = ExtractionEngine(Settings(parallel_generation=False, review_confidence_threshold=score + 0.1))
        assert above.extract("Glucose 95 mg/dL", type_hint=DocumentType.BIOMARKER).needs_review is True


class TestModuleLevelEngine:
    """Test the shared engine helpers."""

    def test_singleton(self):
        """Test that the engine is built once."""
        assert get_extraction_engine() is get_extraction_engine()

    def test_extract(self):
        """Test the package-level entry point."""
        result = extract("rs4680: AG")
        assert result.document_type == DocumentType.GENETIC
        assert result.variants[0].canonical_key == "comt_v158m"
