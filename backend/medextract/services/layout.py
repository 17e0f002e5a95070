"""Line-level layout analysis of report text.

Classifies each line as a header, table row, key/value line or plain text,
flags lines carrying a number-plus-unit measurement, and groups
consecutive table rows into tables. The confidence scorer uses the counts
as structural signals; the table strategies use the column helpers.
"""

import re
from dataclasses import dataclass, field
from enum import Enum

from medextract.services.units import UNIT_PATTERN


class LineKind(str, Enum):
    """Layout role of a single line."""

    BLANK = "blank"
    HEADER = "header"
    TABLE_ROW = "table_row"
    KEY_VALUE = "key_value"
    TEXT = "text"


@dataclass
class LayoutLine:
    """A classified line with its character offset in the document."""

    index: int
    text: str
    start_offset: int
    kind: LineKind
    has_measurement: bool = False


@dataclass
class DocumentLayout:
    """Layout of a whole document."""

    lines: list[LayoutLine] = field(default_factory=list)
    table_groups: list[list[LayoutLine]] = field(default_factory=list)

    def count(self, kind: LineKind) -> int:
        return sum(1 for line in self.lines if line.kind == kind)

    @property
    def table_row_count(self) -> int:
        return self.count(LineKind.TABLE_ROW)

    @property
    def key_value_count(self) -> int:
        return self.count(LineKind.KEY_VALUE)

    @property
    def measurement_count(self) -> int:
        return sum(1 for line in self.lines if line.has_measurement)

    @property
    def header_count(self) -> int:
        return self.count(LineKind.HEADER)

    def get_stats(self) -> dict[str, int]:
        return {
            "lines": sum(1 for line in self.lines if line.kind != LineKind.BLANK),
            "headers": self.header_count,
            "table_rows": self.table_row_count,
            "key_value_lines": self.key_value_count,
            "measurement_lines": self.measurement_count,
            "tables": len(self.table_groups),
        }


# Name, value, then a unit-like tail: "Glucose   95   mg/dL"
_TABULAR_ROW = re.compile(
    r"^[A-Za-z][A-Za-z\s,\-()0-9]{2,30}?\s+\d+(?:\.\d+)?\s+[A-Za-z/µμ%°\-]+"
)
_COLUMN_SPLIT = re.compile(r"\s{2,}|\t")
_NUMBER = re.compile(r"\d+(?:\.\d+)?")
_MEASUREMENT = re.compile(rf"(?<![\w.])\d+(?:\.\d+)?\s*{UNIT_PATTERN}", re.IGNORECASE)

# Words that mark a column-header line and the role of each column
COLUMN_ROLES: dict[str, str] = {
    "test": "name",
    "tests": "name",
    "analyte": "name",
    "component": "name",
    "marker": "name",
    "biomarker": "name",
    "name": "name",
    "result": "value",
    "results": "value",
    "value": "value",
    "your value": "value",
    "in range": "value",
    "out of range": "value",
    "unit": "unit",
    "units": "unit",
    "reference range": "range",
    "reference interval": "range",
    "desired range": "range",
    "normal range": "range",
    "range": "range",
    "reference": "range",
    "flag": "status",
    "status": "status",
}

# Grouping tolerance: rows at most this many lines apart share a table
TABLE_GROUP_GAP = 2
MIN_TABLE_ROWS = 2


def split_columns(line: str) -> list[str]:
    """Split a line into columns on tabs or runs of two or more spaces."""
    return [col.strip() for col in _COLUMN_SPLIT.split(line.strip()) if col.strip()]


def parse_column_header(line: str) -> dict[str, int] | None:
    """Map column roles to column indexes for a header line.

    Returns None unless the line names at least a name/value pair or two
    other roles, e.g. "Test   Result   Units   Reference Range".
    """
    columns = split_columns(line)
    if len(columns) < 2 or any(_NUMBER.search(col) for col in columns):
        return None

    roles: dict[str, int] = {}
    for index, column in enumerate(columns):
        role = COLUMN_ROLES.get(re.sub(r"\s+", " ", column.lower()))
        if role and role not in roles:
            roles[role] = index

    if "value" not in roles or len(roles) < 2:
        return None
    return roles


def has_measurement(line: str) -> bool:
    """Check whether a line carries a number followed by a known unit."""
    return _MEASUREMENT.search(line) is not None


def classify_line(line: str) -> LineKind:
    """Classify a single line of text."""
    stripped = line.strip()
    if len(stripped) < 3:
        return LineKind.BLANK if not stripped else LineKind.TEXT

    if (
        len(stripped) < 50
        and stripped == stripped.upper()
        and any(ch.isalpha() for ch in stripped)
        and not any(ch.isdigit() for ch in stripped)
    ):
        return LineKind.HEADER

    if _TABULAR_ROW.match(stripped):
        return LineKind.TABLE_ROW

    columns = split_columns(stripped)
    if len(columns) >= 3 and any(_NUMBER.fullmatch(col) for col in columns[1:]):
        return LineKind.TABLE_ROW

    if stripped.count(":") == 1:
        key, value = stripped.split(":")
        if key.strip() and value.strip():
            return LineKind.KEY_VALUE

    return LineKind.TEXT


def _group_tables(lines: list[LayoutLine]) -> list[list[LayoutLine]]:
    groups: list[list[LayoutLine]] = []
    current: list[LayoutLine] = []

    for line in lines:
        if line.kind != LineKind.TABLE_ROW:
            continue
        if current and line.index - current[-1].index > TABLE_GROUP_GAP:
            if len(current) >= MIN_TABLE_ROWS:
                groups.append(current)
            current = []
        current.append(line)

    if len(current) >= MIN_TABLE_ROWS:
        groups.append(current)
    return groups


def iter_lines(text: str):
    """Yield (line index, start offset, line text) for every line."""
    offset = 0
    for index, line in enumerate(text.split("\n")):
        yield index, offset, line
        offset += len(line) + 1


def analyze_layout(text: str) -> DocumentLayout:
    """Classify every line of a document and group table rows.

    Args:
        text: Report text.

    Returns:
        DocumentLayout with classified lines and table groups.
    """
    lines = [
        LayoutLine(
            index=index,
            text=line,
            start_offset=offset,
            kind=classify_line(line),
            has_measurement=has_measurement(line),
        )
        for index, offset, line in iter_lines(text)
    ]
    return DocumentLayout(lines=lines, table_groups=_group_tables(lines))
