"""Patterns and helpers shared by the candidate strategies."""

import re
from bisect import bisect_left

from medextract.schemas.base import Zygosity
from medextract.services.units import UNIT_PATTERN

# Numeric value not glued to a preceding word, digit or decimal point
NUMBER = r"(?<![\w.])\d+(?:\.\d+)?(?![\d])"
NUM = r"\d+(?:\.\d+)?"

# Known unit, matched case-insensitively inside otherwise case-sensitive patterns
UNIT = rf"(?i:{UNIT_PATTERN})"

# A name may begin at a line start or after a field separator
NAME_START = r"(?:^|(?<=[;|,])|(?<=\s\s)(?=\S)|(?<=\t)(?=\S))"

# Longest name a pattern will try before giving up on a start position
MAX_NAME_CHARS = 60

# Name text on a single line: letters first, no colons
NAME_BODY = rf"[A-Za-z][A-Za-z0-9 \t,\-()/%.'&]{{0,{MAX_NAME_CHARS - 1}}}?"

# Characters scanned per word when collecting words around a position
CHARS_PER_WORD = 64

_NON_SPACE = re.compile(r"\S")
_NEWLINE = re.compile("\n")

RSID = r"(?<![A-Za-z0-9])[rR][sS]\d{3,}(?![\d])"
RSID_REGEX = re.compile(RSID)

GENOTYPE = r"(?<![A-Za-z0-9/])(?:[ACGT]{1,2}/[ACGT]{1,2}|[ACGT]{2})(?![A-Za-z0-9/])"
GENOTYPE_REGEX = re.compile(GENOTYPE)

# C677T, V158M, Val158Met, Pro12Ala
MUTATION = (
    r"(?<![A-Za-z0-9])(?:[A-Z][a-z]{2}\d{1,4}[A-Z][a-z]{2}|[A-Z]\d{1,5}[A-Z])(?![A-Za-z0-9])"
)
MUTATION_REGEX = re.compile(MUTATION)

GENE_TOKEN = r"(?<![A-Za-z0-9])[A-Z][A-Z0-9]{1,8}(?![A-Za-z0-9])"
GENE_TOKEN_REGEX = re.compile(GENE_TOKEN)

# Upper-case words that look like gene symbols but are not
GENE_STOPWORDS = frozenset({
    "THE", "AND", "FOR", "YOU", "ARE", "NOT", "BUT", "CAN", "ALL", "ANY",
    "NEW", "NOW", "WAY", "MAY", "SAY", "USE", "HER", "HIM", "HIS", "SHE",
    "TWO", "HOW", "ITS", "OUR", "OUT", "DAY", "GET", "HAS", "HAD", "HE",
    "IN", "IS", "IT", "OF", "ON", "TO", "UP", "US", "WE", "SEE", "SEX",
    "DOB", "LAB", "SNP", "DNA", "RNA", "GENE", "GENES", "RESULT", "RESULTS",
    "REPORT", "NAME", "DATE", "PAGE", "TEST", "RSID", "RS", "ID", "NA", "ND",
    "WILD", "TYPE", "HIGH", "LOW", "NORMAL", "RISK", "NONE", "YES", "NO",
    "GENOTYPE", "VARIANT", "ALLELE", "STATUS", "HETEROZYGOUS", "HOMOZYGOUS",
    "MUTATION", "ZYGOSITY", "PATIENT", "SAMPLE", "NOTE", "PDF", "USA",
})

RESULT_CODE_ZYGOSITY: dict[str, Zygosity] = {
    "--": Zygosity.WILD_TYPE,
    "-+": Zygosity.HETEROZYGOUS,
    "+-": Zygosity.HETEROZYGOUS,
    "++": Zygosity.HOMOZYGOUS,
}

_ZYGOSITY_TEXT = re.compile(
    r"\b(wild[\s\-]?type|heterozygous|homozygous|het|hom)\b",
    re.IGNORECASE,
)
_ZYGOSITY_WORDS: dict[str, Zygosity] = {
    "wildtype": Zygosity.WILD_TYPE,
    "heterozygous": Zygosity.HETEROZYGOUS,
    "het": Zygosity.HETEROZYGOUS,
    "homozygous": Zygosity.HOMOZYGOUS,
    "hom": Zygosity.HOMOZYGOUS,
}

STATUS_WORDS = frozenset({
    "high", "low", "normal", "abnormal", "critical", "elevated", "decreased",
    "h", "l", "hh", "ll", "flag", "result", "results",
})


def parse_number(token: str | None) -> float | None:
    """Parse a numeric token, returning None when it is not a number."""
    if not token:
        return None
    try:
        return float(token)
    except ValueError:
        return None


def snippet(text: str, start: int, end: int, max_length: int = 100) -> str:
    """Return the matched span, trimmed to a readable length."""
    first = _NON_SPACE.search(text, start, end)
    if first is None:
        return ""
    return text[first.start():min(end, first.start() + max_length)].rstrip()


class LineIndex:
    """Line boundaries of one text, looked up by binary search over newline offsets."""

    def __init__(self, text: str):
        self.text = text
        self._newlines = [m.start() for m in _NEWLINE.finditer(text)]

    def bounds(self, position: int) -> tuple[int, int]:
        """Start and end offsets of the line containing a position."""
        index = bisect_left(self._newlines, position)
        start = self._newlines[index - 1] + 1 if index > 0 else 0
        end = self._newlines[index] if index < len(self._newlines) else len(self.text)
        return start, end

    def window(self, start: int, end: int, reach: int) -> tuple[int, int]:
        """Span around [start, end) widened by reach characters, clipped to its line."""
        line_start, line_end = self.bounds(start)
        return max(line_start, start - reach), min(line_end, end + reach)


def words_before(text: str, position: int, count: int, same_line: bool = False) -> list[str]:
    """Up to count whitespace-separated words ending at position."""
    low = max(0, position - count * CHARS_PER_WORD)
    if same_line:
        low = text.rfind("\n", low, position) + 1 or low
    words = text[low:position].split()
    # Drop a word cut in half by the window edge
    if words and low > 0 and not text[low - 1].isspace() and not text[low].isspace():
        words = words[1:]
    return words[-count:]


def words_after(text: str, position: int, count: int) -> list[str]:
    """Up to count whitespace-separated words starting at position."""
    high = min(len(text), position + count * CHARS_PER_WORD)
    words = text[position:high].split()
    if words and high < len(text) and not text[high].isspace() and not text[high - 1].isspace():
        words = words[:-1]
    return words[:count]


def word_window(text: str, start: int, end: int, window_words: int) -> str:
    """Text covering up to window_words words on each side of a span."""
    before = words_before(text, start, window_words)
    after = words_after(text, end, window_words)
    return " ".join(before + [text[start:end]] + after)


def normalize_genotype(raw: str | None) -> str | None:
    """Upper-case allele letters without separators ("c/t" -> "CT")."""
    if not raw:
        return None
    genotype = re.sub(r"[\s/|]", "", raw).upper()
    if not genotype or not re.fullmatch(r"[ACGT]{1,4}", genotype):
        return None
    return genotype


def infer_zygosity(genotype: str | None) -> Zygosity | None:
    """Two identical alleles are homozygous, two different heterozygous."""
    if not genotype or len(genotype) != 2:
        return None
    if genotype[0] == genotype[1]:
        return Zygosity.HOMOZYGOUS
    return Zygosity.HETEROZYGOUS


def parse_zygosity(text: str | None) -> Zygosity | None:
    """Find an explicit zygosity word or result code in text."""
    if not text:
        return None
    match = _ZYGOSITY_TEXT.search(text)
    if match:
        word = re.sub(r"[\s\-]", "", match.group(1).lower())
        return _ZYGOSITY_WORDS.get(word)
    code = re.search(r"(?<![\w+\-])(--|-\+|\+-|\+\+)(?![\w+\-])", text)
    if code:
        return RESULT_CODE_ZYGOSITY[code.group(1)]
    return None


def is_likely_gene(token: str, known_genes: frozenset[str]) -> bool:
    """Check whether an upper-case token looks like a gene symbol."""
    if token in known_genes:
        return True
    if token in GENE_STOPWORDS or len(token) < 3 or len(token) > 8:
        return False
    if re.fullmatch(r"[ACGT]+", token) or MUTATION_REGEX.fullmatch(token):
        return False
    return any(ch.isdigit() for ch in token) and token[0].isalpha()
