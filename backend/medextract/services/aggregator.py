"""Candidate aggregation: merge, deduplicate and rank.

Candidates from every strategy are unioned and ranked by strategy priority,
then confidence. Walking that ranking, the first instance of an entity
survives and later duplicates are merged into it:

- Biomarkers are duplicates when their normalized names match and their
  values differ by less than the configured epsilon.
- Variants are duplicates when both carry the same identifier, or, when
  at least one has no identifier, they share gene and genotype (and do
  not name different mutations).

A duplicate found by a different strategy boosts the survivor's
confidence, capped at the configured maximum. Implausible values drop to
the floor confidence, and anything below the minimum confidence is
filtered out last.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Sequence, TypeVar

from medextract.core.config import Settings, settings as default_settings
from medextract.schemas.base import STRATEGY_PRIORITY, StrategySource
from medextract.services.candidates import BiomarkerCandidate, GeneticVariantCandidate
from medextract.services.canonical_resolver import normalize_term

logger = logging.getLogger(__name__)

CandidateT = TypeVar("CandidateT", BiomarkerCandidate, GeneticVariantCandidate)


@dataclass
class AggregationResult:
    """Surviving candidates in rank order, with merge statistics."""

    candidates: list = field(default_factory=list)
    stats: dict[str, Any] = field(default_factory=dict)


def rank_key(candidate: BiomarkerCandidate | GeneticVariantCandidate) -> tuple:
    """Sort key: priority desc, confidence desc, then document position and name."""
    return (
        -STRATEGY_PRIORITY.get(candidate.source, 0),
        -candidate.confidence,
        candidate.start_offset,
        candidate.name.lower(),
    )


def _same_gene(a: str | None, b: str | None) -> bool:
    return bool(a and b) and a.upper() == b.upper()


class CandidateAggregator:
    """Merges candidates from all strategies into one ranked list.

    Usage:
        aggregator = CandidateAggregator()
        result = aggregator.aggregate(candidates)
        for candidate in result.candidates:
            print(candidate.name, candidate.confidence)
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or default_settings

    def is_duplicate_biomarker(self, a: BiomarkerCandidate, b: BiomarkerCandidate) -> bool:
        """Same normalized name and (nearly) the same value."""
        return (
            normalize_term(a.name) == normalize_term(b.name)
            and abs(a.value - b.value) < self.settings.duplicate_value_epsilon
        )

    @staticmethod
    def is_duplicate_variant(a: GeneticVariantCandidate, b: GeneticVariantCandidate) -> bool:
        """Same identifier, or same gene and genotype."""
        if a.identifier and b.identifier:
            return a.identifier.lower() == b.identifier.lower()
        if a.mutation and b.mutation and a.mutation.upper() != b.mutation.upper():
            return False
        return _same_gene(a.gene, b.gene) and a.genotype == b.genotype

    def _is_implausible(self, candidate: CandidateT) -> bool:
        value = getattr(candidate, "value", None)
        return value is not None and abs(value) >= self.settings.implausible_value_threshold

    def _merge(
        self,
        candidates: Sequence[CandidateT],
        is_duplicate: Callable[[CandidateT, CandidateT], bool],
    ) -> AggregationResult:
        survivors: list[CandidateT] = []
        agreeing: list[set[StrategySource]] = []
        duplicates = boosts = implausible = 0

        for candidate in sorted(candidates, key=rank_key):
            index = next(
                (i for i, survivor in enumerate(survivors) if is_duplicate(survivor, candidate)),
                None,
            )
            if index is None:
                survivors.append(replace(candidate))
                agreeing.append({candidate.source})
                continue

            duplicates += 1
            if candidate.source not in agreeing[index]:
                agreeing[index].add(candidate.source)
                survivor = survivors[index]
                survivor.confidence = min(
                    survivor.confidence + self.settings.agreement_boost,
                    self.settings.max_entity_confidence,
                )
                boosts += 1
                logger.debug(
                    f"'{survivor.name}' ({survivor.source.value}) confirmed by "
                    f"{candidate.source.value} -> {survivor.confidence:.1f}"
                )

        for survivor in survivors:
            if self._is_implausible(survivor):
                survivor.confidence = self.settings.implausible_value_confidence
                implausible += 1

        kept = [s for s in survivors if s.confidence >= self.settings.min_candidate_confidence]
        kept.sort(key=rank_key)

        stats = {
            "input_count": len(candidates),
            "duplicate_count": duplicates,
            "agreement_boosts": boosts,
            "implausible_count": implausible,
            "below_threshold_count": len(survivors) - len(kept),
            "output_count": len(kept),
        }
        logger.debug(f"Aggregated {len(candidates)} candidates -> {len(kept)} ({stats})")
        return AggregationResult(candidates=kept, stats=stats)

    def aggregate_biomarkers(self, candidates: Sequence[BiomarkerCandidate]) -> AggregationResult:
        """Deduplicate and rank biomarker candidates."""
        return self._merge(candidates, self.is_duplicate_biomarker)

    def aggregate_variants(self, candidates: Sequence[GeneticVariantCandidate]) -> AggregationResult:
        """Deduplicate and rank genetic variant candidates."""
        return self._merge(candidates, self.is_duplicate_variant)

    def aggregate(
        self,
        candidates: Sequence[BiomarkerCandidate] | Sequence[GeneticVariantCandidate],
    ) -> AggregationResult:
        """Deduplicate and rank candidates of a single entity kind.

        Args:
            candidates: All candidates from every strategy for one document.

        Returns:
            AggregationResult with the ranked survivors.
        """
        if candidates and isinstance(candidates[0], GeneticVariantCandidate):
            return self.aggregate_variants(candidates)
        return self.aggregate_biomarkers(candidates)
