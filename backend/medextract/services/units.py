"""Unit normalization for lab values.

Maps the many spellings vendors use for the same unit onto one canonical
spelling, and exposes the regex alternation of unit tokens the candidate
strategies anchor on.
"""

import re

# Unit normalization mapping (lower-cased spelling -> canonical spelling)
UNIT_NORMALIZATION: dict[str, str] = {
    # Mass concentration
    "mg/dl": "mg/dL",
    "mg/l": "mg/L",
    "g/dl": "g/dL",
    "g/l": "g/L",
    "ng/ml": "ng/mL",
    "ng/dl": "ng/dL",
    "ng/l": "ng/L",
    "pg/ml": "pg/mL",
    "ug/dl": "mcg/dL",
    "µg/dl": "mcg/dL",
    "μg/dl": "mcg/dL",
    "mcg/dl": "mcg/dL",
    "ug/l": "mcg/L",
    "µg/l": "mcg/L",
    "μg/l": "mcg/L",
    "mcg/l": "mcg/L",
    "ug/ml": "mcg/mL",
    "mcg/ml": "mcg/mL",

    # Molar concentration
    "mmol/l": "mmol/L",
    "umol/l": "umol/L",
    "µmol/l": "umol/L",
    "μmol/l": "umol/L",
    "nmol/l": "nmol/L",
    "pmol/l": "pmol/L",
    "meq/l": "mEq/L",

    # Activity
    "iu/l": "IU/L",
    "iu/ml": "IU/mL",
    "u/l": "U/L",
    "miu/l": "mIU/L",
    "miu/ml": "mIU/mL",
    "uiu/ml": "uIU/mL",
    "µiu/ml": "uIU/mL",
    "μiu/ml": "uIU/mL",

    # Count
    "cells/ul": "cells/uL",
    "cells/µl": "cells/uL",
    "k/ul": "K/uL",
    "thousand/ul": "K/uL",
    "x10e3/ul": "K/uL",
    "x10^3/ul": "K/uL",
    "m/ul": "M/uL",
    "million/ul": "M/uL",
    "x10e6/ul": "M/uL",
    "x10^6/ul": "M/uL",
    "x10^9/l": "x10^9/L",
    "x10^12/l": "x10^12/L",
    "copies/ml": "copies/mL",

    # Volume / mass
    "fl": "fL",
    "pg": "pg",
    "mg": "mg",
    "mcg": "mcg",
    "ug": "mcg",

    # Rate
    "ml/min/1.73m2": "mL/min/1.73m2",
    "ml/min": "mL/min",

    # Dimensionless
    "%": "%",
    "percent": "%",
    "ratio": "ratio",
}

# Tokens recognized as units when scanning text. Kept narrower than the
# normalization table: bare "g"/"ml" are too ambiguous to anchor on.
KNOWN_UNIT_TOKENS: tuple[str, ...] = (
    "mg/dL", "mg/L", "g/dL", "g/L",
    "ng/mL", "ng/dL", "pg/mL",
    "ug/dL", "µg/dL", "μg/dL", "mcg/dL", "ug/L", "mcg/L",
    "mmol/L", "umol/L", "µmol/L", "μmol/L", "nmol/L", "pmol/L", "mEq/L",
    "IU/L", "IU/mL", "U/L", "mIU/L", "mIU/mL", "uIU/mL", "µIU/mL",
    "cells/uL", "K/uL", "M/uL", "Thousand/uL", "Million/uL",
    "x10E3/uL", "x10E6/uL", "copies/mL",
    "mL/min/1.73m2", "fL", "pg", "mcg", "mg", "%",
)


def _build_unit_alternation(tokens: tuple[str, ...]) -> str:
    """Build a regex alternation, longest token first so prefixes never win."""
    ordered = sorted(set(tokens), key=lambda token: (-len(token), token))
    return "|".join(re.escape(token) for token in ordered)


# Unit token pattern fragment. The negative lookahead stops "mg" from
# matching the start of "mgs" or "mg/dLx".
UNIT_PATTERN = rf"(?:{_build_unit_alternation(KNOWN_UNIT_TOKENS)})(?![A-Za-z])"

UNIT_REGEX = re.compile(UNIT_PATTERN, re.IGNORECASE)


def normalize_unit(unit: str | None) -> str:
    """Normalize a unit to its canonical spelling.

    Unknown units pass through unchanged (whitespace-trimmed); a missing
    unit becomes the empty string.
    """
    if not unit:
        return ""
    cleaned = unit.strip()
    key = re.sub(r"\s+", "", cleaned).lower()
    return UNIT_NORMALIZATION.get(key, cleaned)


def is_unit(token: str) -> bool:
    """Check whether a token is a recognized unit spelling."""
    if not token:
        return False
    key = re.sub(r"\s+", "", token).lower()
    return key in UNIT_NORMALIZATION or UNIT_REGEX.fullmatch(token.strip()) is not None
