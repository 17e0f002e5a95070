"""Extraction result schemas returned to callers."""

from typing import Any

from pydantic import BaseModel, Field

from medextract.schemas.base import BiomarkerStatus, DocumentType, StrategySource, Zygosity


class ResolvedBiomarker(BaseModel):
    """A biomarker that survived aggregation, with its canonical resolution."""

    name: str = Field(..., description="Name as found in the report")
    canonical_key: str | None = Field(None, description="Canonical vocabulary key, if resolved")
    matched: bool = Field(..., description="Whether the name resolved to the vocabulary")
    value: float = Field(..., description="Numeric value")
    unit: str = Field(..., description="Normalized unit, empty when none was found")
    reference_range: str | None = Field(None, description="Reference range text")
    status: BiomarkerStatus | None = Field(None, description="Reported or inferred status")
    confidence: float = Field(..., ge=0.0, le=100.0, description="Entity confidence")
    source: StrategySource = Field(..., description="Strategy that produced the entity")
    source_text: str = Field("", description="Snippet the entity was extracted from")

    @property
    def record_key(self) -> str:
        """Persistence key: canonical key when resolved, raw name otherwise."""
        return self.canonical_key or self.name


class ResolvedVariant(BaseModel):
    """A genetic variant that survived aggregation, with its canonical resolution."""

    identifier: str | None = Field(None, description="Variant identifier, e.g. rs1801133")
    gene: str | None = Field(None, description="Gene symbol")
    mutation: str | None = Field(None, description="Mutation notation, e.g. C677T")
    genotype: str = Field(..., description="Observed allele letters")
    zygosity: Zygosity | None = Field(None, description="Reported or inferred zygosity")
    canonical_key: str | None = Field(None, description="Canonical vocabulary key, if resolved")
    matched: bool = Field(..., description="Whether the variant resolved to the vocabulary")
    confidence: float = Field(..., ge=0.0, le=100.0, description="Entity confidence")
    source: StrategySource = Field(..., description="Strategy that produced the entity")
    source_text: str = Field("", description="Snippet the entity was extracted from")

    @property
    def name(self) -> str:
        """Raw name of the variant as it appeared in the report."""
        if self.identifier:
            return self.identifier
        if self.gene and self.mutation:
            return f"{self.gene} {self.mutation}"
        return self.gene or self.mutation or ""

    @property
    def record_key(self) -> str:
        """Persistence key: identifier when present, canonical key or name otherwise."""
        return self.identifier or self.canonical_key or self.name


class ExtractionResult(BaseModel):
    """Structured result of one extraction call."""

    document_type: DocumentType = Field(..., description="Classified document type")
    biomarkers: list[ResolvedBiomarker] = Field(default_factory=list)
    variants: list[ResolvedVariant] = Field(default_factory=list)
    confidence: float = Field(..., ge=0.0, le=100.0, description="Document-level confidence")
    needs_review: bool = Field(..., description="Confidence below the review threshold")
    stats: dict[str, Any] = Field(default_factory=dict, description="Extraction statistics")

    @property
    def is_processed(self) -> bool:
        """False when the document could not be classified."""
        return self.document_type != DocumentType.UNKNOWN
