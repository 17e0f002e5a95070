"""Reference-range parsing and biomarker status inference.

Handles the range spellings vendors print next to lab values:
"65-99", "3.5 - 5.0", "10 to 40", "<200", "<=5.7", "> OR = 60", ">=40".
"""

import re

from medextract.schemas.base import BiomarkerStatus
from medextract.services.candidates import ReferenceRange

NUM = r"\d+(?:\.\d+)?"

# Regex fragment matching a reference range anywhere in a row
RANGE_PATTERN = (
    rf"(?:(?:<|>)\s*(?:=|OR\s*=)?\s*|[≤≥]\s*){NUM}"
    rf"|{NUM}\s*(?:-|–|to)\s*{NUM}"
)

_BETWEEN = re.compile(rf"^\s*({NUM})\s*(?:-|–|to)\s*({NUM})\s*$", re.IGNORECASE)
_BOUND = re.compile(rf"^\s*(<|>|≤|≥)\s*(=|OR\s*=)?\s*({NUM})\s*$", re.IGNORECASE)

STATUS_FLAGS: dict[str, BiomarkerStatus] = {
    "high": BiomarkerStatus.HIGH,
    "h": BiomarkerStatus.HIGH,
    "hi": BiomarkerStatus.HIGH,
    "elevated": BiomarkerStatus.HIGH,
    "low": BiomarkerStatus.LOW,
    "l": BiomarkerStatus.LOW,
    "lo": BiomarkerStatus.LOW,
    "decreased": BiomarkerStatus.LOW,
    "critical": BiomarkerStatus.CRITICAL,
    "crit": BiomarkerStatus.CRITICAL,
    "hh": BiomarkerStatus.CRITICAL,
    "ll": BiomarkerStatus.CRITICAL,
    "panic": BiomarkerStatus.CRITICAL,
    "normal": BiomarkerStatus.NORMAL,
    "n": BiomarkerStatus.NORMAL,
    "wnl": BiomarkerStatus.NORMAL,
}

# Flags that say "out of range" without a direction; resolved from the range
UNDIRECTED_FLAGS = frozenset({"abnormal", "a", "abn"})

# Regex fragment for a status flag token in a table row
STATUS_PATTERN = r"(?:HIGH|LOW|CRITICAL|NORMAL|ABNORMAL|ELEVATED|DECREASED|HH|LL|H|L|A)"


def parse_reference_range(text: str | None) -> ReferenceRange | None:
    """Parse a reference-range string.

    Args:
        text: Range text such as "65-99" or "< OR = 5.6".

    Returns:
        The parsed range, or None when the text is not a recognizable range.
    """
    if not text:
        return None

    match = _BETWEEN.match(text)
    if match:
        low, high = float(match.group(1)), float(match.group(2))
        if low > high:
            return None
        return ReferenceRange(text=text.strip(), low=low, high=high)

    match = _BOUND.match(text)
    if match:
        op, or_equal, bound = match.group(1), match.group(2), float(match.group(3))
        inclusive = bool(or_equal) or op in ("≤", "≥")
        if op in ("<", "≤"):
            return ReferenceRange(text=text.strip(), high=bound, high_inclusive=inclusive)
        return ReferenceRange(text=text.strip(), low=bound, low_inclusive=inclusive)

    return None


def infer_status(value: float, reference: ReferenceRange | None) -> BiomarkerStatus | None:
    """Compare a value with its reference range."""
    if reference is None:
        return None
    if reference.contains(value):
        return BiomarkerStatus.NORMAL
    if reference.low is not None and value <= reference.low:
        return BiomarkerStatus.LOW
    return BiomarkerStatus.HIGH


def parse_status_flag(token: str | None) -> BiomarkerStatus | None:
    """Map a printed status flag to a status; undirected flags map to None."""
    if not token:
        return None
    return STATUS_FLAGS.get(token.strip().lower())


def determine_status(
    value: float,
    flag: str | None = None,
    range_text: str | None = None,
) -> BiomarkerStatus | None:
    """Explicit flag first, then inference from the reference range."""
    status = parse_status_flag(flag)
    if status is not None:
        return status
    return infer_status(value, parse_reference_range(range_text))
