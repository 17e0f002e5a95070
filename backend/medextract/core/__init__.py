"""Core engine configuration."""

from medextract.core.config import Settings, StrategyConfidence, settings

__all__ = [
    "Settings",
    "StrategyConfidence",
    "settings",
]
