"""Biomarker candidate strategies, most syntactically specific first.

1. Table structure: vendor row grammars and column layouts.
2. Labeled range: "<name> Desired Range: <range> <unit> <value>".
3. Delimiter pair: "<name>: <value> [unit]".
4. Unit anchored: "<name> <value> <unit>" near lab vocabulary words.
5. Free form: any "<value> <unit>", name guessed from preceding words.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterator

from medextract.schemas.base import DocumentType, StrategySource
from medextract.services.candidates import BiomarkerCandidate
from medextract.services.layout import LineKind, classify_line, iter_lines, parse_column_header, split_columns
from medextract.services.name_validation import clean_name
from medextract.services.reference_ranges import (
    RANGE_PATTERN,
    STATUS_PATTERN,
    determine_status,
    parse_reference_range,
)
from medextract.services.strategies.base import CandidateStrategy, register_strategy
from medextract.services.strategies.text_utils import (
    NAME_BODY,
    NAME_START,
    NUM,
    NUMBER,
    STATUS_WORDS,
    UNIT,
    parse_number,
    snippet,
    word_window,
    words_before,
)
from medextract.services.units import UNIT_REGEX, is_unit, normalize_unit
from medextract.services.vocabulary import BIOMARKER_VOCABULARY

logger = logging.getLogger(__name__)

RANGE = rf"(?:{RANGE_PATTERN})"


def _fusable_aliases() -> str:
    """Alternation of vocabulary aliases that can be printed glued to a value.

    Aliases ending in a digit ("Free T4") are excluded: the boundary between
    name and value would be ambiguous.
    """
    aliases = {
        alias
        for entry in BIOMARKER_VOCABULARY.entries
        for alias in entry.aliases
        if len(alias) > 2 and alias[-1].isalpha()
    }
    ordered = sorted(aliases, key=lambda alias: (-len(alias), alias))
    return "|".join(r"\s*".join(re.escape(part) for part in alias.split()) for alias in ordered)


@dataclass(frozen=True)
class RowGrammar:
    """A named single-line row pattern with its confidence attribute."""

    name: str
    pattern: re.Pattern
    confidence_field: str


# "LDL Cholesterol (calc) 111 mg/dL HIGH", "LDL Cholesterol (Calculated)74<130 mg/dL"
CALCULATED_ROW = RowGrammar(
    name="calculated",
    pattern=re.compile(
        rf"^(?P<name>[A-Za-z][A-Za-z0-9 ,\-/]*?)\s*\((?i:calc|calculated)\)\s*:?\s*"
        rf"(?P<value>{NUM})(?![\d.])\s*(?:(?P<status>{STATUS_PATTERN})(?![A-Za-z]))?\s*"
        rf"(?P<range>{RANGE})?\s*(?P<unit>{UNIT})?"
        rf"(?:\s+(?P<trailing_status>{STATUS_PATTERN})(?![A-Za-z]))?"
    ),
    confidence_field="table_calculated_row",
)

# "Glucose115   H65-99 mg/dL", "HDL Cholesterol81> OR = 46 mg/dL"
FUSED_ROW = RowGrammar(
    name="fused",
    pattern=re.compile(
        rf"^(?P<name>(?i:{_fusable_aliases()}))(?P<value>{NUM})(?![\d.])\s*"
        rf"(?:(?P<status>{STATUS_PATTERN})(?![A-Za-z]))?\s*(?P<range>{RANGE})?\s*(?P<unit>{UNIT})?"
    ),
    confidence_field="table_fused_row",
)

# "CHOLESTEROL, TOTAL 222 HIGH <200 mg/dL 01", "GLUCOSE 88 65-99 mg/dL 01"
VENDOR_ROW = RowGrammar(
    name="vendor",
    pattern=re.compile(
        rf"^(?P<name>[A-Z][A-Z0-9 ,\-()/]*?[A-Z)])\s*(?P<value>{NUM})(?![\d.])\s*"
        rf"(?:(?P<status>HIGH|LOW|CRITICAL|NORMAL|H|L)(?![A-Za-z]))?\s*"
        rf"(?P<range>{RANGE})?\s*(?P<unit>{UNIT})?\s*(?P<code>\d{{2}})?\s*$"
    ),
    confidence_field="table_vendor_row",
)

# "Cholesterol, Total 186 mg/dL HIGH 125-200"
SIMPLE_ROW = RowGrammar(
    name="simple",
    pattern=re.compile(
        rf"^(?P<name>[A-Za-z][A-Za-z0-9 ,\-()/]*?)\s+(?P<value>{NUM})(?![\d.])\s*(?P<unit>{UNIT})"
        rf"(?:\s+(?P<status>HIGH|LOW|CRITICAL|NORMAL|H|L)(?![A-Za-z]))?(?:\s+(?P<range>{RANGE}))?"
    ),
    confidence_field="table_simple_row",
)

REGEX_GRAMMARS: tuple[RowGrammar, ...] = (CALCULATED_ROW, FUSED_ROW, VENDOR_ROW)

_LEADING_VALUE = re.compile(rf"^(?P<value>{NUM})(?![\d.])\s*(?P<status>[A-Za-z]+)?\s*$")


@register_strategy
class TableStructureStrategy(CandidateStrategy[BiomarkerCandidate]):
    """Row grammars for tabular lab layouts.

    Each line is tried against the grammars in order and the first grammar
    that yields a valid candidate wins for that line:
    calculated rows, fused rows, upper-case vendor rows, rows under a
    recognized column header, simple "name value unit" rows, then generic
    column rows split on wide whitespace.
    """

    document_type = DocumentType.BIOMARKER
    source = StrategySource.TABLE_STRUCTURE
    name = "table-structure"

    def scan(self, text: str) -> Iterator[BiomarkerCandidate]:
        header: dict[str, int] | None = None

        for _, offset, raw_line in iter_lines(text):
            line = raw_line.strip()
            if not line:
                continue

            roles = parse_column_header(line)
            if roles is not None:
                header = roles
                continue
            if classify_line(line) == LineKind.HEADER:
                header = None
                continue

            line_offset = offset + (len(raw_line) - len(raw_line.lstrip()))
            candidate = self._match_line(line, line_offset, header)
            if candidate is not None:
                yield candidate

    def _match_line(
        self,
        line: str,
        offset: int,
        header: dict[str, int] | None,
    ) -> BiomarkerCandidate | None:
        for grammar in REGEX_GRAMMARS:
            candidate = self._from_regex(grammar, line, offset)
            if candidate is not None:
                return candidate

        candidate = self._from_header_columns(line, offset, header) if header else None
        if candidate is None:
            candidate = self._from_regex(SIMPLE_ROW, line, offset)
        if candidate is None:
            candidate = self._from_columns(line, offset)
        return candidate

    def _build(
        self,
        name: str | None,
        value_text: str | None,
        unit: str | None,
        range_text: str | None,
        flag: str | None,
        confidence: float,
        line: str,
        offset: int,
    ) -> BiomarkerCandidate | None:
        name = clean_name(name or "")
        value = parse_number(value_text)
        if value is None or not self.name_validator.is_valid(name):
            return None
        range_text = range_text.strip() if range_text else None
        return BiomarkerCandidate(
            name=name,
            value=value,
            unit=normalize_unit(unit),
            reference_range=range_text or None,
            status=determine_status(value, flag, range_text),
            confidence=confidence,
            source=self.source,
            source_text=line[:100],
            start_offset=offset,
        )

    def _from_regex(self, grammar: RowGrammar, line: str, offset: int) -> BiomarkerCandidate | None:
        match = grammar.pattern.match(line)
        if not match:
            return None
        groups = match.groupdict()
        # Vendor rows need more than "NAME value" to be told apart from prose
        if grammar is VENDOR_ROW and not (groups.get("status") or groups.get("range") or groups.get("unit")):
            return None
        if grammar is FUSED_ROW and not (groups.get("range") or groups.get("unit")):
            return None
        return self._build(
            groups.get("name"),
            groups.get("value"),
            groups.get("unit"),
            groups.get("range"),
            groups.get("status") or groups.get("trailing_status"),
            getattr(self.confidences, grammar.confidence_field),
            line,
            offset,
        )

    def _from_header_columns(
        self,
        line: str,
        offset: int,
        header: dict[str, int],
    ) -> BiomarkerCandidate | None:
        columns = split_columns(line)
        if len(columns) < 2:
            return None

        def column(role: str, default: int | None = None) -> str | None:
            index = header.get(role, default)
            if index is None or index >= len(columns):
                return None
            return columns[index]

        value_match = _LEADING_VALUE.match(column("value", 1) or "")
        if not value_match:
            return None
        flag = column("status") or value_match.group("status")
        unit = column("unit")
        if unit and not is_unit(unit):
            unit = None
        return self._build(
            column("name", 0),
            value_match.group("value"),
            unit,
            column("range"),
            flag,
            self.confidences.table_header_columns,
            line,
            offset,
        )

    def _from_columns(self, line: str, offset: int) -> BiomarkerCandidate | None:
        columns = split_columns(line)
        if len(columns) < 3:
            return None

        name_col, value_col, third_col, *rest = columns
        value_match = _LEADING_VALUE.match(value_col)
        if not value_match:
            return None

        unit = third_col if is_unit(third_col) else None
        range_text = None
        for col in ([] if unit else [third_col]) + rest:
            if parse_reference_range(col) is not None:
                range_text = col
                break
        return self._build(
            name_col,
            value_match.group("value"),
            unit,
            range_text,
            value_match.group("status"),
            self.confidences.table_columns,
            line,
            offset,
        )


@register_strategy
class LabeledRangeStrategy(CandidateStrategy[BiomarkerCandidate]):
    """Explicitly labeled reference ranges.

    Matches both "Vitamin D Desired Range: 30-100 ng/mL 45" and
    "Ferritin: 45 ng/mL (Reference Range: 30-400)".
    """

    document_type = DocumentType.BIOMARKER
    source = StrategySource.LABELED_RANGE
    name = "labeled-range"

    _LABEL = r"(?i:desired|reference|normal|ref\.?)[ \t]+(?i:range|interval)"

    RANGE_FIRST = re.compile(
        rf"{NAME_START}[ \t]*(?P<name>{NAME_BODY})[ \t]+{_LABEL}[ \t]*:?[ \t]*"
        rf"(?P<range>{RANGE})[ \t]*(?P<unit>{UNIT})?[ \t]*(?P<value>{NUMBER})",
        re.MULTILINE,
    )
    VALUE_FIRST = re.compile(
        rf"{NAME_START}[ \t]*(?P<name>{NAME_BODY})[ \t]*:[ \t]*(?P<value>{NUMBER})[ \t]*"
        rf"(?P<unit>{UNIT})?[ \t]*[(\[]?[ \t]*{_LABEL}[ \t]*:?[ \t]*(?P<range>{RANGE})",
        re.MULTILINE,
    )

    def scan(self, text: str) -> Iterator[BiomarkerCandidate]:
        for pattern in (self.RANGE_FIRST, self.VALUE_FIRST):
            for match in pattern.finditer(text):
                name = clean_name(match.group("name"))
                value = parse_number(match.group("value"))
                if value is None or not self.name_validator.is_valid(name):
                    continue
                range_text = match.group("range").strip()
                yield BiomarkerCandidate(
                    name=name,
                    value=value,
                    unit=normalize_unit(match.group("unit")),
                    reference_range=range_text,
                    status=determine_status(value, None, range_text),
                    confidence=self.confidences.labeled_range,
                    source=self.source,
                    source_text=snippet(text, match.start(), match.end()),
                    start_offset=match.start("name"),
                )


@register_strategy
class DelimiterPairStrategy(CandidateStrategy[BiomarkerCandidate]):
    """"<name>: <value>" pairs, unit optional.

    Values that continue as a date ("1/1/1980"), a time ("8:30") or a range
    ("30-100") are skipped.
    """

    document_type = DocumentType.BIOMARKER
    source = StrategySource.DELIMITER_PAIR
    name = "delimiter-pair"

    PATTERN = re.compile(
        rf"{NAME_START}[ \t]*(?P<name>{NAME_BODY})[ \t]*[:=][ \t]*(?P<value>{NUMBER})"
        rf"(?![ \t]*[/:]\d)(?![ \t]*(?:-|–|to\b)[ \t]*\d)"
        rf"(?:[ \t]*(?P<unit>{UNIT}))?",
        re.MULTILINE,
    )

    def scan(self, text: str) -> Iterator[BiomarkerCandidate]:
        for match in self.PATTERN.finditer(text):
            name = clean_name(match.group("name"))
            value = parse_number(match.group("value"))
            if value is None or not self.name_validator.is_valid(name):
                continue
            yield BiomarkerCandidate(
                name=name,
                value=value,
                unit=normalize_unit(match.group("unit")),
                confidence=self.confidences.delimiter_pair,
                source=self.source,
                source_text=snippet(text, match.start(), match.end()),
                start_offset=match.start("name"),
            )


@register_strategy
class UnitAnchoredStrategy(CandidateStrategy[BiomarkerCandidate]):
    """"<name> <value> <unit>" with lab vocabulary nearby.

    The surrounding word window must contain one of the configured context
    words ("test", "result", "range", ...).
    """

    document_type = DocumentType.BIOMARKER
    source = StrategySource.UNIT_ANCHORED
    name = "unit-anchored"

    PATTERN = re.compile(
        rf"{NAME_START}[ \t]*(?P<name>[A-Za-z][A-Za-z0-9 \t,\-()/]{{1,35}}?)[ \t]*[:=]?[ \t]*"
        rf"(?P<value>{NUMBER})[ \t]*(?P<unit>{UNIT})",
        re.MULTILINE,
    )

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        words = sorted({w.lower() for w in self.settings.unit_context_words}, key=len, reverse=True)
        self._context = re.compile(
            r"\b(?:" + "|".join(re.escape(w) for w in words) + r")s?\b",
            re.IGNORECASE,
        ) if words else None

    def _has_context(self, text: str, start: int, end: int, name: str) -> bool:
        if self._context is None:
            return False
        window = word_window(text, start, end, self.settings.unit_context_window_words)
        # The name itself does not count as context ("Blood Count" is a name)
        window = window.replace(text[start:end], " ", 1)
        return self._context.search(window) is not None

    def scan(self, text: str) -> Iterator[BiomarkerCandidate]:
        for match in self.PATTERN.finditer(text):
            name = clean_name(match.group("name"))
            value = parse_number(match.group("value"))
            if value is None or not self.name_validator.is_valid(name):
                continue
            if not self._has_context(text, match.start(), match.end(), name):
                continue
            yield BiomarkerCandidate(
                name=name,
                value=value,
                unit=normalize_unit(match.group("unit")),
                confidence=self.confidences.unit_anchored,
                source=self.source,
                source_text=snippet(text, match.start(), match.end()),
                start_offset=match.start("name"),
            )


@register_strategy
class FreeFormStrategy(CandidateStrategy[BiomarkerCandidate]):
    """Any number followed by a known unit.

    The name is guessed from up to a few preceding words on the same line,
    stopping at numbers, units, status words and field separators. The
    weakest strategy, kept for recall on malformed text.
    """

    document_type = DocumentType.BIOMARKER
    source = StrategySource.FREE_FORM
    name = "free-form"

    PATTERN = re.compile(rf"(?P<value>{NUMBER})[ \t]*(?P<unit>{UNIT})")

    def _guess_name(self, text: str, position: int) -> str | None:
        words = words_before(text, position, self.settings.free_form_backtrack_words, same_line=True)

        picked: list[str] = []
        for index, word in enumerate(reversed(words)):
            if len(picked) >= self.settings.free_form_backtrack_words:
                break
            # A separator after a word ends the name that precedes the value
            if index > 0 and word[-1] in ":;|,=":
                break
            token = word.strip(":;|,=()[]*#")
            if not token:
                break
            if (
                parse_number(token) is not None
                or token.lower() in STATUS_WORDS
                or UNIT_REGEX.fullmatch(token)
                or not any(ch.isalpha() for ch in token)
            ):
                break
            picked.append(token)

        if not picked:
            return None
        return clean_name(" ".join(reversed(picked)))

    def scan(self, text: str) -> Iterator[BiomarkerCandidate]:
        for match in self.PATTERN.finditer(text):
            value = parse_number(match.group("value"))
            name = self._guess_name(text, match.start())
            if value is None or not name or not self.name_validator.is_valid(name):
                continue
            yield BiomarkerCandidate(
                name=name,
                value=value,
                unit=normalize_unit(match.group("unit")),
                confidence=self.confidences.free_form,
                source=self.source,
                source_text=snippet(text, max(0, match.start() - 40), match.end()),
                start_offset=match.start(),
            )
