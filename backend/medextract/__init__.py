"""Medical report entity extraction engine."""

from medextract.schemas import DocumentType, ExtractionResult
from medextract.services.extraction_pipeline import ExtractionEngine, extract

__all__ = ["DocumentType", "ExtractionEngine", "ExtractionResult", "extract"]
