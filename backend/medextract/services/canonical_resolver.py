"""Canonical name resolution against the static vocabularies.

Resolution order for a raw name:
1. Exact match against aliases, comparing normalized forms (lower-cased,
   punctuation and whitespace removed) with and without common trailing
   qualifiers ("total", "serum", "plasma", "blood").
2. Containment in either direction between the normalized name and an
   alias, when the shorter side is long enough to be meaningful.
3. A curated fuzzy table for abbreviation collisions.

Unresolved names are not an error: callers keep the raw name and mark the
entity unmatched.
"""

import logging
import re
import threading
from types import MappingProxyType
from typing import Mapping

from medextract.core.config import Settings, settings as default_settings
from medextract.services.vocabulary import (
    BIOMARKER_VOCABULARY,
    VARIANT_VOCABULARY,
    CanonicalVocabulary,
)

logger = logging.getLogger(__name__)

TRAILING_QUALIFIERS = ("total", "serum", "plasma", "blood")

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_RSID = re.compile(r"^rs\d+$")


def normalize_term(term: str) -> str:
    """Lower-case a term and drop everything but letters and digits."""
    return _NON_ALNUM.sub("", term.lower())


def strip_qualifiers(normalized: str) -> str:
    """Remove trailing qualifiers from a normalized term.

    Qualifiers are stripped repeatedly ("ironserumtotal" -> "iron") but a
    term is never reduced to fewer than two characters.
    """
    changed = True
    while changed:
        changed = False
        for qualifier in TRAILING_QUALIFIERS:
            if normalized.endswith(qualifier) and len(normalized) - len(qualifier) >= 2:
                normalized = normalized[: -len(qualifier)]
                changed = True
    return normalized


def _term_forms(term: str) -> tuple[str, ...]:
    normalized = normalize_term(term)
    stripped = strip_qualifiers(normalized)
    if stripped == normalized:
        return (normalized,)
    return (normalized, stripped)


class CanonicalResolver:
    """Resolves raw names to canonical keys of one vocabulary.

    Indexes are built once in the constructor and never mutated, so a
    resolver can be shared across threads.

    Usage:
        resolver = CanonicalResolver(BIOMARKER_VOCABULARY)
        resolver.resolve("Cholesterol, Total")  # -> "cholesterol_total"
    """

    def __init__(
        self,
        vocabulary: CanonicalVocabulary,
        settings: Settings | None = None,
        allow_containment: bool = True,
    ) -> None:
        self.vocabulary = vocabulary
        self.settings = settings or default_settings
        self.allow_containment = allow_containment
        self._exact_index = self._build_exact_index(vocabulary)
        # (normalized alias, canonical key) in vocabulary order
        self._aliases: tuple[tuple[str, str], ...] = tuple(
            (normalize_term(alias), entry.key)
            for entry in vocabulary.entries
            for alias in entry.aliases
            if normalize_term(alias)
        )

    @staticmethod
    def _build_exact_index(vocabulary: CanonicalVocabulary) -> Mapping[str, str]:
        """Index full alias forms first, then qualifier-stripped forms.

        The first entry to claim a form keeps it.
        """
        index: dict[str, str] = {}
        for entry in vocabulary.entries:
            for alias in entry.aliases:
                form = normalize_term(alias)
                if form:
                    index.setdefault(form, entry.key)
        for entry in vocabulary.entries:
            for alias in entry.aliases:
                form = strip_qualifiers(normalize_term(alias))
                if form:
                    index.setdefault(form, entry.key)
        return MappingProxyType(index)

    def resolve_exact(self, raw_name: str) -> str | None:
        """Exact alias match only."""
        for form in _term_forms(raw_name):
            key = self._exact_index.get(form)
            if key is not None:
                return key
        return None

    def _resolve_containment(self, raw_name: str) -> str | None:
        """Containment match, preferring the alias closest in length."""
        min_length = self.settings.min_containment_length
        best_key: str | None = None
        best_distance: int | None = None

        for form in _term_forms(raw_name):
            if len(form) < min_length or _RSID.match(form):
                continue
            for alias, key in self._aliases:
                if len(alias) < min_length:
                    continue
                if alias in form or form in alias:
                    distance = abs(len(alias) - len(form))
                    if best_distance is None or distance < best_distance:
                        best_key = key
                        best_distance = distance
        return best_key

    def resolve_fuzzy(self, raw_name: str) -> str | None:
        """Curated fuzzy-collision lookup."""
        for form in _term_forms(raw_name):
            key = self.vocabulary.fuzzy.get(form)
            if key is not None:
                return key
        return None

    def resolve(self, raw_name: str | None) -> str | None:
        """Resolve a raw name to a canonical key.

        Args:
            raw_name: Name as it appeared in the report.

        Returns:
            The canonical key, or None when nothing matches.
        """
        if not raw_name or not normalize_term(raw_name):
            return None

        key = self.resolve_exact(raw_name)
        if key is None and self.allow_containment:
            key = self._resolve_containment(raw_name)
        if key is None:
            key = self.resolve_fuzzy(raw_name)

        if key is None:
            logger.debug(f"No canonical match in {self.vocabulary.name} vocabulary for '{raw_name}'")
        return key


class VariantResolver:
    """Resolves genetic variants by identifier, then gene and mutation.

    Containment matching is disabled for variants: identifiers differ by a
    single digit ("rs123" vs "rs1234") and must never match partially.
    """

    def __init__(
        self,
        vocabulary: CanonicalVocabulary = VARIANT_VOCABULARY,
        settings: Settings | None = None,
    ) -> None:
        self._resolver = CanonicalResolver(vocabulary, settings, allow_containment=False)

    @property
    def vocabulary(self) -> CanonicalVocabulary:
        return self._resolver.vocabulary

    def resolve(
        self,
        identifier: str | None = None,
        gene: str | None = None,
        mutation: str | None = None,
    ) -> str | None:
        """Resolve a variant to a canonical key.

        Args:
            identifier: Variant identifier, e.g. "rs1801133".
            gene: Gene symbol, e.g. "MTHFR".
            mutation: Mutation notation, e.g. "C677T".

        Returns:
            The canonical key, or None when nothing matches.
        """
        resolver = self._resolver

        if identifier:
            key = resolver.resolve_exact(identifier)
            if key is not None:
                return key

        if gene and mutation:
            combined = f"{gene} {mutation}"
            key = resolver.resolve_exact(combined) or resolver.resolve_fuzzy(combined)
            if key is not None:
                return key

        if mutation:
            key = resolver.resolve_exact(mutation)
            # A bare mutation name only counts when it agrees with the gene
            if key is not None and (not gene or key.startswith(normalize_term(gene))):
                return key

        if gene and not identifier and not mutation:
            key = resolver.resolve_exact(gene)
            if key is not None:
                return key

        for raw in (identifier, gene):
            if raw:
                key = resolver.resolve_fuzzy(raw)
                if key is not None:
                    return key

        logger.debug(
            f"No canonical match in variant vocabulary for "
            f"identifier={identifier} gene={gene} mutation={mutation}"
        )
        return None


_biomarker_resolver: CanonicalResolver | None = None
_variant_resolver: VariantResolver | None = None
_resolver_lock = threading.Lock()


def get_biomarker_resolver() -> CanonicalResolver:
    """Get the shared biomarker resolver (default settings)."""
    global _biomarker_resolver
    if _biomarker_resolver is None:
        with _resolver_lock:
            if _biomarker_resolver is None:
                _biomarker_resolver = CanonicalResolver(BIOMARKER_VOCABULARY)
    return _biomarker_resolver


def get_variant_resolver() -> VariantResolver:
    """Get the shared variant resolver (default settings)."""
    global _variant_resolver
    if _variant_resolver is None:
        with _resolver_lock:
            if _variant_resolver is None:
                _variant_resolver = VariantResolver(VARIANT_VOCABULARY)
    return _variant_resolver


def reset_resolvers() -> None:
    """Drop the shared resolvers (for testing)."""
    global _biomarker_resolver, _variant_resolver
    with _resolver_lock:
        _biomarker_resolver = None
        _variant_resolver = None


def resolve_biomarker(raw_name: str | None) -> str | None:
    """Resolve a biomarker name with the shared resolver."""
    return get_biomarker_resolver().resolve(raw_name)


def resolve_variant(
    identifier: str | None = None,
    gene: str | None = None,
    mutation: str | None = None,
) -> str | None:
    """Resolve a variant with the shared resolver."""
    return get_variant_resolver().resolve(identifier, gene, mutation)
