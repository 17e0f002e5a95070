"""Interfaces to the engine's external collaborators.

The engine only ever sees decoded text and hands back an ExtractionResult.
Turning an uploaded file into text and storing the extracted entities are
the caller's job; these protocols describe what the caller plugs in, and
the helpers cover the two caller-side policies: bounding input size, and
building idempotent upsert records.
"""

import logging
from typing import Protocol

from medextract.core.config import settings as default_settings
from medextract.schemas.base import DocumentType
from medextract.schemas.extraction import ExtractionResult
from medextract.schemas.persistence import BiomarkerRecord, PersistenceRecords, VariantRecord

logger = logging.getLogger(__name__)


class TextExtractionService(Protocol):
    """Converts an uploaded document into best-effort plain text."""

    def extract_text(self, content: bytes, content_type: str | None = None) -> str: ...


class ExtractionRepository(Protocol):
    """Stores extracted entities.

    Upserts must be idempotent on (user_id, record.key): submitting the
    same report twice updates rows rather than duplicating them.
    """

    def upsert_biomarkers(self, user_id: str, records: list[BiomarkerRecord]) -> None: ...

    def upsert_variants(self, user_id: str, records: list[VariantRecord]) -> None: ...


def bound_input(text: str | None, max_chars: int | None = None) -> str:
    """Truncate text to the input size limit before calling the engine.

    Args:
        text: Decoded report text.
        max_chars: Character limit; defaults to settings.max_input_chars.

    Returns:
        The text, cut to at most max_chars characters.
    """
    if not text:
        return ""
    limit = max_chars if max_chars is not None else default_settings.max_input_chars
    if len(text) <= limit:
        return text
    logger.warning(f"Input of {len(text)} characters truncated to {limit}")
    return text[:limit]


def to_persistence_records(result: ExtractionResult, user_id: str) -> PersistenceRecords:
    """Build upsert records from an extraction result.

    Entities sharing a record key collapse to the highest-ranked one, so
    each key appears at most once per submission.
    """
    biomarkers: dict[str, BiomarkerRecord] = {}
    for biomarker in result.biomarkers:
        key = biomarker.record_key
        if key in biomarkers:
            continue
        biomarkers[key] = BiomarkerRecord(
            user_id=user_id,
            key=key,
            name=biomarker.name,
            canonical_key=biomarker.canonical_key,
            value=biomarker.value,
            unit=biomarker.unit,
            reference_range=biomarker.reference_range,
            status=biomarker.status,
            confidence=biomarker.confidence,
        )

    variants: dict[str, VariantRecord] = {}
    for variant in result.variants:
        key = variant.record_key
        if key in variants:
            continue
        variants[key] = VariantRecord(
            user_id=user_id,
            key=key,
            identifier=variant.identifier,
            gene=variant.gene,
            mutation=variant.mutation,
            canonical_key=variant.canonical_key,
            genotype=variant.genotype,
            zygosity=variant.zygosity,
            confidence=variant.confidence,
        )

    return PersistenceRecords(biomarkers=list(biomarkers.values()), variants=list(variants.values()))


def persist_result(repository: ExtractionRepository, result: ExtractionResult, user_id: str) -> PersistenceRecords:
    """Upsert the entities of a processed result.

    Unknown documents are not persisted: they mean "could not process",
    not "found nothing".
    """
    if result.document_type == DocumentType.UNKNOWN:
        logger.info(f"Skipping persistence for user {user_id}: document type unknown")
        return PersistenceRecords()

    records = to_persistence_records(result, user_id)
    if records.biomarkers:
        repository.upsert_biomarkers(user_id, records.biomarkers)
    if records.variants:
        repository.upsert_variants(user_id, records.variants)
    logger.info(
        f"Persisted {len(records.biomarkers)} biomarkers and {len(records.variants)} variants "
        f"for user {user_id}"
    )
    return records
