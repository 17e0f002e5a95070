"""Raw candidate entities emitted by the generation strategies."""

import math
from dataclasses import dataclass

from medextract.schemas.base import BiomarkerStatus, StrategySource, Zygosity


@dataclass(frozen=True)
class ReferenceRange:
    """Parsed reference range. Either bound may be open."""

    text: str
    low: float | None = None
    high: float | None = None
    low_inclusive: bool = True
    high_inclusive: bool = True

    def contains(self, value: float) -> bool:
        """Check whether a value falls inside the range."""
        if self.low is not None:
            if value < self.low or (value == self.low and not self.low_inclusive):
                return False
        if self.high is not None:
            if value > self.high or (value == self.high and not self.high_inclusive):
                return False
        return True


@dataclass
class BiomarkerCandidate:
    """A lab value proposed by one strategy."""

    name: str
    value: float
    unit: str
    confidence: float
    source: StrategySource
    source_text: str = ""
    reference_range: str | None = None
    status: BiomarkerStatus | None = None
    start_offset: int = 0

    @property
    def is_well_formed(self) -> bool:
        """Finite value and a non-empty name."""
        return bool(self.name and self.name.strip()) and math.isfinite(self.value)


@dataclass
class GeneticVariantCandidate:
    """A genetic variant proposed by one strategy."""

    genotype: str
    confidence: float
    source: StrategySource
    identifier: str | None = None
    gene: str | None = None
    mutation: str | None = None
    zygosity: Zygosity | None = None
    source_text: str = ""
    start_offset: int = 0

    @property
    def is_well_formed(self) -> bool:
        """A genotype plus something that names the variant."""
        return bool(self.genotype) and bool(self.identifier or self.gene or self.mutation)

    @property
    def name(self) -> str:
        if self.identifier:
            return self.identifier
        if self.gene and self.mutation:
            return f"{self.gene} {self.mutation}"
        return self.gene or self.mutation or ""
