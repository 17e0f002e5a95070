"""Tests for the caller-side collaborator helpers."""

import logging

from medextract.schemas.base import DocumentType, StrategySource
from medextract.schemas.extraction import ExtractionResult, ResolvedBiomarker
from medextract.services.collaborators import bound_input, persist_result, to_persistence_records


class FakeRepository:
    """In-memory repository keyed like the real upserts."""

    def __init__(self):
        self.biomarkers = {}
        self.variants = {}
        self.calls = 0

    def upsert_biomarkers(self, user_id, records):
        self.calls += 1
        for record in records:
            self.biomarkers[(user_id, record.key)] = record

    def upsert_variants(self, user_id, records):
        self.calls += 1
        for record in records:
            self.variants[(user_id, record.key)] = record


def resolved(name, value, canonical_key=None, confidence=90.0):
    return ResolvedBiomarker(
        name=name,
        canonical_key=canonical_key,
        matched=canonical_key is not None,
        value=value,
        unit="mg/dL",
        confidence=confidence,
        source=StrategySource.TABLE_STRUCTURE,
    )


class TestBoundInput:
    """Test the input size limit."""

    def test_short_text_unchanged(self):
        """Test text within the limit."""
        assert bound_input("Glucose: 95 mg/dL", max_chars=100) == "Glucose: 95 mg/dL"

    def test_truncation(self, caplog):
        """Test truncation with a warning."""
        with caplog.at_level(logging.WARNING):
            assert bound_input("x" * 50, max_chars=10) == "x" * 10
        assert "truncated to 10" in caplog.text

    def test_missing_text(self):
        """Test None and empty input."""
        assert bound_input(None) == ""
        assert bound_input("") == ""


class TestPersistenceRecords:
    """Test record building."""

    def test_record_keys(self):
        """Test canonical keys, raw-name fallback and first-wins collapse."""
        result = ExtractionResult(
            document_type=DocumentType.BIOMARKER,
            biomarkers=[
                resolved("Glucose", 95.0, "glucose_fasting", 95.0),
                resolved("Fasting Glucose", 97.0, "glucose_fasting", 80.0),
                resolved("Zzyzx", 42.0),
            ],
            confidence=80.0,
            needs_review=False,
        )
        records = to_persistence_records(result, "user-1")
        assert [(r.key, r.value) for r in records.biomarkers] == [("glucose_fasting", 95.0), ("Zzyzx", 42.0)]
        assert all(r.user_id == "user-1" for r in records.biomarkers)
        assert records.variants == []


class TestPersistResult:
    """Test upserting results."""

    def test_idempotent(self, engine, genetic_report):
        """Test that submitting the same report twice does not duplicate rows."""
        repository = FakeRepository()
        result = engine.extract(genetic_report)

        persist_result(repository, result, "user-1")
        persist_result(repository, result, "user-1")

        assert sorted(key for _, key in repository.variants) == ["rs1801131", "rs1801133", "rs4680"]
        assert repository.biomarkers == {}

    def test_unknown_not_persisted(self, engine):
        """Test that unprocessable documents never reach the repository."""
        repository = FakeRepository()
        records = persist_result(repository, engine.extract("Appointment on Monday."), "user-1")
        assert repository.calls == 0
        assert records.biomarkers == []
        assert records.variants == []
