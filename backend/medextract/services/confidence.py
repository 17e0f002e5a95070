"""Document-level confidence scoring.

One number per extraction, used by callers to gate automatic acceptance
versus manual review:

    base
  + table bonus (any table-structure survivor)
  + structural bonus per signal (table rows, key/value lines,
    measurement lines), saturating per signal and capped overall
  + entity-count bonus with diminishing returns
  = total, scaled by mean entity confidence / 100

Unknown documents get the fixed Unknown confidence. A classified document
with no entities is scaled by the empty-result multiplier instead.
"""

import logging
from typing import Sequence

from medextract.core.config import Settings, settings as default_settings
from medextract.schemas.base import DocumentType, StrategySource
from medextract.services.candidates import BiomarkerCandidate, GeneticVariantCandidate
from medextract.services.layout import DocumentLayout

logger = logging.getLogger(__name__)


class ConfidenceScorer:
    """Computes the overall confidence of an extraction.

    Usage:
        scorer = ConfidenceScorer()
        confidence = scorer.score(DocumentType.BIOMARKER, survivors, layout)
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or default_settings

    def structural_bonus(self, layout: DocumentLayout | None) -> float:
        """Bonus for table rows, key/value lines and measurement lines."""
        if layout is None:
            return 0.0
        s = self.settings
        bonus = 0.0
        for count in (layout.table_row_count, layout.key_value_count, layout.measurement_count):
            bonus += s.score_structural_bonus * min(1.0, count / s.score_structural_saturation_lines)
        return min(bonus, s.score_structural_cap)

    def entity_bonus(self, entity_count: int) -> float:
        """Bonus approaching the maximum as entities accumulate."""
        s = self.settings
        return s.score_entity_bonus_max * (1.0 - s.score_entity_decay ** entity_count)

    def score(
        self,
        document_type: DocumentType,
        entities: Sequence[BiomarkerCandidate | GeneticVariantCandidate],
        layout: DocumentLayout | None = None,
    ) -> float:
        """Score an extraction.

        Args:
            document_type: Classified type of the document.
            entities: Candidates that survived aggregation.
            layout: Layout analysis of the document text.

        Returns:
            Confidence in [0, 100], rounded to one decimal.
        """
        s = self.settings
        if document_type == DocumentType.UNKNOWN:
            return s.unknown_document_confidence

        total = s.score_base
        if any(e.source == StrategySource.TABLE_STRUCTURE for e in entities):
            total += s.score_table_bonus
        total += self.structural_bonus(layout)
        total += self.entity_bonus(len(entities))

        if entities:
            multiplier = sum(e.confidence for e in entities) / len(entities) / 100.0
        else:
            multiplier = s.score_empty_multiplier

        confidence = round(max(0.0, min(100.0, total * multiplier)), 1)
        logger.debug(
            f"Document confidence {confidence} (raw {total:.1f} x {multiplier:.2f}, "
            f"{len(entities)} entities)"
        )
        return confidence
