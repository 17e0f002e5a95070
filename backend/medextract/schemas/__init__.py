"""Schemas and enums shared by the extraction engine."""

from medextract.schemas.base import (
    STRATEGY_PRIORITY,
    BiomarkerStatus,
    DocumentType,
    StrategySource,
    Zygosity,
)
from medextract.schemas.extraction import ExtractionResult, ResolvedBiomarker, ResolvedVariant
from medextract.schemas.persistence import BiomarkerRecord, PersistenceRecords, VariantRecord

__all__ = [
    # Enums
    "BiomarkerStatus",
    "DocumentType",
    "StrategySource",
    "Zygosity",
    "STRATEGY_PRIORITY",
    # Results
    "ExtractionResult",
    "ResolvedBiomarker",
    "ResolvedVariant",
    # Persistence payloads
    "BiomarkerRecord",
    "PersistenceRecords",
    "VariantRecord",
]
