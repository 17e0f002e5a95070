"""Candidate strategy interface and registry.

Each strategy scans the full text independently and proposes candidates
with a self-declared confidence. Strategies register themselves per
document type; the registry order is the order results are collected in.
New vendor layouts are supported by registering another strategy, without
touching the existing ones.
"""

import logging
from abc import ABC, abstractmethod
from typing import ClassVar, Generic, Iterable, TypeVar

from medextract.core.config import Settings, settings as default_settings
from medextract.schemas.base import DocumentType, StrategySource
from medextract.services.candidates import BiomarkerCandidate, GeneticVariantCandidate
from medextract.services.name_validation import NameValidator

logger = logging.getLogger(__name__)

CandidateT = TypeVar("CandidateT", BiomarkerCandidate, GeneticVariantCandidate)


class CandidateStrategy(ABC, Generic[CandidateT]):
    """Interface for candidate-generation strategies.

    Example usage:
        @register_strategy
        class MyStrategy(CandidateStrategy[BiomarkerCandidate]):
            document_type = DocumentType.BIOMARKER
            source = StrategySource.FREE_FORM
            name = "my-strategy"

            def scan(self, text):
                yield BiomarkerCandidate(...)

        candidates = MyStrategy().generate(report_text)
    """

    document_type: ClassVar[DocumentType]
    source: ClassVar[StrategySource]
    name: ClassVar[str]

    def __init__(
        self,
        settings: Settings | None = None,
        name_validator: NameValidator | None = None,
    ) -> None:
        self.settings = settings or default_settings
        self.name_validator = name_validator or NameValidator(self.settings)

    @property
    def confidences(self):
        return self.settings.strategy_confidence

    @abstractmethod
    def scan(self, text: str) -> Iterable[CandidateT]:
        """Yield raw candidates found in the text.

        Args:
            text: Full report text.

        Returns:
            Candidates in the order they were found; may include malformed
            ones, which generate() drops.
        """
        pass  # pragma: no cover

    def generate(self, text: str) -> list[CandidateT]:
        """Scan text and return well-formed candidates only."""
        candidates: list[CandidateT] = []
        dropped = 0
        for candidate in self.scan(text):
            if candidate.is_well_formed:
                candidates.append(candidate)
            else:
                dropped += 1
        if dropped:
            logger.debug(f"{self.name}: dropped {dropped} malformed candidates")
        return candidates


_REGISTRY: dict[DocumentType, list[type[CandidateStrategy]]] = {
    DocumentType.BIOMARKER: [],
    DocumentType.GENETIC: [],
}

StrategyT = TypeVar("StrategyT", bound=type[CandidateStrategy])


def register_strategy(strategy_cls: StrategyT) -> StrategyT:
    """Class decorator adding a strategy to the registry of its document type."""
    strategies = _REGISTRY.setdefault(strategy_cls.document_type, [])
    if strategy_cls not in strategies:
        strategies.append(strategy_cls)
    return strategy_cls


def registered_strategies(document_type: DocumentType) -> list[type[CandidateStrategy]]:
    """Registered strategy classes for a document type, in registry order."""
    return list(_REGISTRY.get(document_type, []))


def build_strategies(
    document_type: DocumentType,
    settings: Settings | None = None,
    name_validator: NameValidator | None = None,
) -> list[CandidateStrategy]:
    """Instantiate every registered strategy for a document type.

    Args:
        document_type: Which strategy set to build.
        settings: Settings passed to every strategy.
        name_validator: Shared name validator.

    Returns:
        Strategy instances in registry order.
    """
    settings = settings or default_settings
    name_validator = name_validator or NameValidator(settings)
    return [
        cls(settings=settings, name_validator=name_validator)
        for cls in registered_strategies(document_type)
    ]
