"""Canonical vocabularies for biomarkers and genetic variants.

Both vocabularies ship as JSON fixtures inside the package and are loaded
once, at import, into immutable module constants shared by every
extraction. A missing or malformed fixture is a startup fault and raises
VocabularyLoadError.
"""

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

logger = logging.getLogger(__name__)

FIXTURES_DIR = Path(__file__).resolve().parent.parent / "fixtures"
BIOMARKER_VOCABULARY_PATH = FIXTURES_DIR / "biomarker_vocabulary.json"
VARIANT_VOCABULARY_PATH = FIXTURES_DIR / "variant_vocabulary.json"


class VocabularyLoadError(RuntimeError):
    """A vocabulary fixture is missing, unreadable or structurally invalid."""


@dataclass(frozen=True)
class CanonicalEntry:
    """One canonical key and the raw spellings that map to it."""

    key: str
    aliases: tuple[str, ...]
    category: str | None = None


@dataclass(frozen=True)
class CanonicalVocabulary:
    """Read-only alias vocabulary."""

    name: str
    entries: tuple[CanonicalEntry, ...]
    fuzzy: Mapping[str, str]
    genes: frozenset[str] = frozenset()

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(entry.key for entry in self.entries)

    @property
    def alias_count(self) -> int:
        return sum(len(entry.aliases) for entry in self.entries)

    def get(self, key: str) -> CanonicalEntry | None:
        """Get an entry by canonical key."""
        for entry in self.entries:
            if entry.key == key:
                return entry
        return None

    def get_stats(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "entry_count": len(self.entries),
            "alias_count": self.alias_count,
            "fuzzy_count": len(self.fuzzy),
            "gene_count": len(self.genes),
        }


def _parse_entries(name: str, raw_entries: Any) -> tuple[CanonicalEntry, ...]:
    if not isinstance(raw_entries, list) or not raw_entries:
        raise VocabularyLoadError(f"{name} vocabulary has no entries")

    entries: list[CanonicalEntry] = []
    seen_keys: set[str] = set()
    for raw in raw_entries:
        if not isinstance(raw, dict):
            raise VocabularyLoadError(f"{name} vocabulary entry is not an object: {raw!r}")
        key = raw.get("key")
        aliases = raw.get("aliases")
        if not isinstance(key, str) or not key:
            raise VocabularyLoadError(f"{name} vocabulary entry without a key: {raw!r}")
        if key in seen_keys:
            raise VocabularyLoadError(f"{name} vocabulary has duplicate key '{key}'")
        if not isinstance(aliases, list) or not all(isinstance(a, str) and a for a in aliases):
            raise VocabularyLoadError(f"{name} vocabulary entry '{key}' has invalid aliases")
        seen_keys.add(key)
        entries.append(CanonicalEntry(
            key=key,
            aliases=tuple(aliases),
            category=raw.get("category"),
        ))
    return tuple(entries)


def load_vocabulary(path: str | Path, name: str) -> CanonicalVocabulary:
    """Load and validate a vocabulary fixture.

    Args:
        path: Path to the JSON fixture.
        name: Vocabulary name used in logs and errors.

    Returns:
        The immutable vocabulary.

    Raises:
        VocabularyLoadError: If the fixture cannot be read or is invalid.
    """
    start_time = time.perf_counter()
    path = Path(path)

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise VocabularyLoadError(f"Cannot read {name} vocabulary at {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise VocabularyLoadError(f"{name} vocabulary at {path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise VocabularyLoadError(f"{name} vocabulary at {path} must be a JSON object")

    entries = _parse_entries(name, data.get("entries"))
    known_keys = {entry.key for entry in entries}

    fuzzy = data.get("fuzzy", {})
    if not isinstance(fuzzy, dict):
        raise VocabularyLoadError(f"{name} vocabulary fuzzy table must be an object")
    for alias, key in fuzzy.items():
        if key not in known_keys:
            raise VocabularyLoadError(
                f"{name} vocabulary fuzzy alias '{alias}' points to unknown key '{key}'"
            )

    genes = data.get("genes", [])
    if not isinstance(genes, list):
        raise VocabularyLoadError(f"{name} vocabulary genes must be a list")

    vocabulary = CanonicalVocabulary(
        name=name,
        entries=entries,
        fuzzy=MappingProxyType(dict(fuzzy)),
        genes=frozenset(str(g).upper() for g in genes),
    )

    load_time_ms = (time.perf_counter() - start_time) * 1000
    logger.info(
        f"Vocabulary '{name}' loaded: {len(entries)} entries, "
        f"{vocabulary.alias_count} aliases in {load_time_ms:.2f}ms"
    )
    return vocabulary


BIOMARKER_VOCABULARY = load_vocabulary(BIOMARKER_VOCABULARY_PATH, "biomarker")
VARIANT_VOCABULARY = load_vocabulary(VARIANT_VOCABULARY_PATH, "variant")
