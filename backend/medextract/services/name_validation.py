"""Biomarker name validation.

The primary false-positive control for the loosely anchored strategies:
rejects names that are numeric, single characters, dates or times, units,
status words, administrative boilerplate, or mostly non-letters. Every
list and ratio comes from Settings so the filter can be tuned.
"""

import re

from medextract.core.config import Settings, settings as default_settings
from medextract.services.units import is_unit

_NUMERIC_ONLY = re.compile(r"^[\d\s.,:;/<>=+\-%]+$")
_DATE_OR_TIME = re.compile(
    r"\b\d{1,2}[/\-.]\d{1,2}[/\-.]\d{2,4}\b"  # 01/02/2024, 1-2-24
    r"|\b\d{4}-\d{2}-\d{2}\b"  # 2024-01-02
    r"|\b\d{1,2}:\d{2}(?::\d{2})?\b"  # 08:30, 08:30:15
)
_WHITESPACE = re.compile(r"\s+")


def clean_name(name: str) -> str:
    """Collapse whitespace and trim separator punctuation from a raw name."""
    name = _WHITESPACE.sub(" ", name).strip()
    return name.strip(" .,:;|=-*#\t")


class NameValidator:
    """Configurable biomarker-name filter.

    Usage:
        validator = NameValidator()
        validator.is_valid("Total Cholesterol")  # True
        validator.is_valid("Patient Name")  # False
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or default_settings
        self._rejected = frozenset(
            _WHITESPACE.sub(" ", term.lower()).strip() for term in self.settings.rejected_names
        )
        terms = sorted(
            {term.lower().strip() for term in self.settings.blacklisted_terms if term.strip()},
            key=len,
            reverse=True,
        )
        self._blacklist = (
            re.compile(
                r"(?<![a-z0-9])(?:"
                + "|".join(r"\s+".join(re.escape(w) for w in t.split()) for t in terms)
                + r")(?![a-z0-9])"
            )
            if terms
            else None
        )

    def rejection_reason(self, name: str | None) -> str | None:
        """Explain why a name is rejected, or None when it is acceptable."""
        if not name:
            return "empty"

        cleaned = clean_name(name)
        lowered = cleaned.lower()

        if len(cleaned) < self.settings.min_name_length:
            return "too_short"
        if _NUMERIC_ONLY.match(cleaned):
            return "numeric"
        if _DATE_OR_TIME.search(cleaned):
            return "date_or_time"
        if len(cleaned.split()) > self.settings.max_name_words:
            return "too_many_words"
        if lowered in self._rejected:
            return "rejected_term"
        if is_unit(cleaned):
            return "unit"
        if self._blacklist is not None and self._blacklist.search(lowered):
            return "blacklisted"

        visible = [ch for ch in cleaned if not ch.isspace()]
        letters = sum(1 for ch in visible if ch.isalpha())
        if letters == 0 or letters / len(visible) < self.settings.min_letter_ratio:
            return "low_letter_ratio"

        return None

    def is_valid(self, name: str | None) -> bool:
        """Check whether a name may be emitted as a biomarker."""
        return self.rejection_reason(name) is None
