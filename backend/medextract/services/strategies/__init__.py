"""Candidate-generation strategies.

Importing this package registers every built-in strategy.
"""

from medextract.services.strategies import biomarker, genetic  # noqa: F401  (registration)
from medextract.services.strategies.base import (
    CandidateStrategy,
    build_strategies,
    register_strategy,
    registered_strategies,
)
from medextract.services.strategies.biomarker import (
    DelimiterPairStrategy,
    FreeFormStrategy,
    LabeledRangeStrategy,
    TableStructureStrategy,
    UnitAnchoredStrategy,
)
from medextract.services.strategies.genetic import (
    FreeFormGeneStrategy,
    GeneMutationStrategy,
    GeneticTableStrategy,
    GenotypePatternStrategy,
    IdentifierContextStrategy,
)

__all__ = [
    # Registry
    "CandidateStrategy",
    "build_strategies",
    "register_strategy",
    "registered_strategies",
    # Biomarker strategies
    "TableStructureStrategy",
    "LabeledRangeStrategy",
    "DelimiterPairStrategy",
    "UnitAnchoredStrategy",
    "FreeFormStrategy",
    # Genetic strategies
    "GeneticTableStrategy",
    "IdentifierContextStrategy",
    "GeneMutationStrategy",
    "GenotypePatternStrategy",
    "FreeFormGeneStrategy",
]
