"""Upsert payloads handed to the caller's persistence layer."""

from pydantic import BaseModel, Field

from medextract.schemas.base import BiomarkerStatus, Zygosity


class BiomarkerRecord(BaseModel):
    """Biomarker row keyed by (user_id, key)."""

    user_id: str = Field(..., description="Owner of the report")
    key: str = Field(..., description="Canonical key when resolved, raw name otherwise")
    name: str = Field(..., description="Name as found in the report")
    canonical_key: str | None = None
    value: float
    unit: str
    reference_range: str | None = None
    status: BiomarkerStatus | None = None
    confidence: float = Field(..., ge=0.0, le=100.0)


class VariantRecord(BaseModel):
    """Variant row keyed by (user_id, key)."""

    user_id: str = Field(..., description="Owner of the report")
    key: str = Field(..., description="Identifier when present, canonical key or name otherwise")
    identifier: str | None = None
    gene: str | None = None
    mutation: str | None = None
    canonical_key: str | None = None
    genotype: str
    zygosity: Zygosity | None = None
    confidence: float = Field(..., ge=0.0, le=100.0)


class PersistenceRecords(BaseModel):
    """All upsert rows derived from one extraction."""

    biomarkers: list[BiomarkerRecord] = Field(default_factory=list)
    variants: list[VariantRecord] = Field(default_factory=list)
