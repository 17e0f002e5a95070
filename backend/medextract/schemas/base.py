"""Base enums for the extraction engine."""

from enum import Enum


class DocumentType(str, Enum):
    """Report type decided by the classifier."""

    GENETIC = "genetic"
    BIOMARKER = "biomarker"
    UNKNOWN = "unknown"


class BiomarkerStatus(str, Enum):
    """Flag reported (or inferred) for a lab value."""

    NORMAL = "normal"
    HIGH = "high"
    LOW = "low"
    CRITICAL = "critical"


class Zygosity(str, Enum):
    """Zygosity at a variant position."""

    HOMOZYGOUS = "homozygous"
    HETEROZYGOUS = "heterozygous"
    WILD_TYPE = "wild_type"


class StrategySource(str, Enum):
    """Candidate-generation strategy that produced an entity."""

    # Shared by both document types
    TABLE_STRUCTURE = "table-structure"
    FREE_FORM = "free-form"

    # Biomarker strategies
    LABELED_RANGE = "labeled-range"
    DELIMITER_PAIR = "delimiter-pair"
    UNIT_ANCHORED = "unit-anchored"

    # Genetic strategies
    IDENTIFIER_CONTEXT = "identifier-context"
    GENE_MUTATION = "gene-mutation"
    GENOTYPE_PATTERN = "genotype-pattern"


# Conflict-resolution order, higher wins
STRATEGY_PRIORITY: dict[StrategySource, int] = {
    StrategySource.TABLE_STRUCTURE: 5,
    StrategySource.LABELED_RANGE: 4,
    StrategySource.IDENTIFIER_CONTEXT: 4,
    StrategySource.DELIMITER_PAIR: 3,
    StrategySource.GENE_MUTATION: 3,
    StrategySource.UNIT_ANCHORED: 2,
    StrategySource.GENOTYPE_PATTERN: 2,
    StrategySource.FREE_FORM: 1,
}
