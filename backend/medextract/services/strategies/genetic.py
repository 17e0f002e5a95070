"""Genetic variant candidate strategies, most syntactically specific first.

1. Table structure: "GENE MUTATION rs#### ++ Homozygous TT" result rows and
   column rows holding an identifier and a genotype.
2. Identifier context: an rs identifier with a genotype close by.
3. Gene/mutation: "MTHFR C677T ... CT".
4. Genotype pattern: a bare genotype with a gene or identifier nearby.
5. Free form: a gene-like token followed by a genotype on the same line.
"""

import logging
import re
from typing import Iterator

from medextract.schemas.base import DocumentType, StrategySource, Zygosity
from medextract.services.candidates import GeneticVariantCandidate
from medextract.services.layout import iter_lines, split_columns
from medextract.services.strategies.base import CandidateStrategy, register_strategy
from medextract.services.strategies.text_utils import (
    GENE_TOKEN,
    GENE_TOKEN_REGEX,
    GENOTYPE,
    GENOTYPE_REGEX,
    LineIndex,
    MUTATION,
    MUTATION_REGEX,
    RESULT_CODE_ZYGOSITY,
    RSID,
    RSID_REGEX,
    infer_zygosity,
    is_likely_gene,
    normalize_genotype,
    parse_zygosity,
    snippet,
)
from medextract.services.vocabulary import VARIANT_VOCABULARY

logger = logging.getLogger(__name__)

KNOWN_GENES = VARIANT_VOCABULARY.genes


def _zygosity(context: str, genotype: str | None) -> Zygosity | None:
    """Explicit zygosity in the context wins over inference from alleles."""
    return parse_zygosity(context) or infer_zygosity(genotype)


def _last_gene(text: str) -> str | None:
    """Closest gene-like token at the end of a text span."""
    genes = [m.group(0) for m in GENE_TOKEN_REGEX.finditer(text) if is_likely_gene(m.group(0), KNOWN_GENES)]
    return genes[-1] if genes else None


@register_strategy
class GeneticTableStrategy(CandidateStrategy[GeneticVariantCandidate]):
    """Result tables from genetic panels.

    Handles rows such as
    "MTHFR C677T rs1801133 -+ Heterozygous CT" where the result code
    ("--", "-+", "++") encodes zygosity, and column rows where one column
    is an identifier and another a genotype.
    """

    document_type = DocumentType.GENETIC
    source = StrategySource.TABLE_STRUCTURE
    name = "genetic-table"

    RESULT_ROW = re.compile(
        rf"^(?P<gene>{GENE_TOKEN})(?:[ \t]*\((?P<alias>[^)\n]{{1,20}})\))?[ \t]+"
        rf"(?:(?P<mutation>{MUTATION})[ \t]+)?(?P<rsid>{RSID})[ \t]+"
        r"(?P<code>--|-\+|\+-|\+\+)"
        r"(?:[ \t]+(?P<zygosity>(?i:wild[ \t\-]?type|heterozygous|homozygous)))?"
        rf"(?:[ \t]+(?P<genotype>{GENOTYPE}))?"
    )

    def scan(self, text: str) -> Iterator[GeneticVariantCandidate]:
        for _, offset, raw_line in iter_lines(text):
            line = raw_line.strip()
            if not line:
                continue
            line_offset = offset + (len(raw_line) - len(raw_line.lstrip()))

            candidate = self._from_result_row(line, line_offset) or self._from_columns(line, line_offset)
            if candidate is not None:
                yield candidate

    def _from_result_row(self, line: str, offset: int) -> GeneticVariantCandidate | None:
        match = self.RESULT_ROW.match(line)
        if not match:
            return None
        gene = match.group("gene")
        if not is_likely_gene(gene, KNOWN_GENES):
            return None
        genotype = normalize_genotype(match.group("genotype"))
        zygosity = parse_zygosity(match.group("zygosity")) or RESULT_CODE_ZYGOSITY[match.group("code")]
        return GeneticVariantCandidate(
            identifier=match.group("rsid").lower(),
            gene=gene,
            mutation=match.group("mutation"),
            genotype=genotype or "",
            zygosity=zygosity,
            confidence=self.confidences.genetic_table_row,
            source=self.source,
            source_text=line[:100],
            start_offset=offset,
        )

    def _from_columns(self, line: str, offset: int) -> GeneticVariantCandidate | None:
        columns = split_columns(line)
        if len(columns) < 2:
            return None

        identifier = genotype = gene = mutation = None
        for column in columns:
            if identifier is None and RSID_REGEX.fullmatch(column):
                identifier = column.lower()
            elif genotype is None and GENOTYPE_REGEX.fullmatch(column):
                genotype = normalize_genotype(column)
            elif mutation is None and MUTATION_REGEX.fullmatch(column):
                mutation = column
            elif gene is None and GENE_TOKEN_REGEX.fullmatch(column) and is_likely_gene(column, KNOWN_GENES):
                gene = column

        if identifier is None or genotype is None:
            return None
        return GeneticVariantCandidate(
            identifier=identifier,
            gene=gene,
            mutation=mutation,
            genotype=genotype,
            zygosity=_zygosity(line, genotype),
            confidence=self.confidences.genetic_table_columns,
            source=self.source,
            source_text=line[:100],
            start_offset=offset,
        )


@register_strategy
class IdentifierContextStrategy(CandidateStrategy[GeneticVariantCandidate]):
    """An rs identifier with the closest genotype.

    The genotype is looked for after the identifier on the same line (up to
    the next identifier), then before it, then on the following line.
    """

    document_type = DocumentType.GENETIC
    source = StrategySource.IDENTIFIER_CONTEXT
    name = "identifier-context"

    def scan(self, text: str) -> Iterator[GeneticVariantCandidate]:
        lines = LineIndex(text)
        lookahead = self.settings.genetic_lookahead_chars
        matches = list(RSID_REGEX.finditer(text))
        for index, match in enumerate(matches):
            line_start, line_end = lines.bounds(match.start())
            previous_end = matches[index - 1].end() if index > 0 else 0
            next_start = matches[index + 1].start() if index + 1 < len(matches) else len(text)

            after = text[match.end():min(line_end, next_start, match.end() + lookahead)]
            before = text[max(line_start, previous_end, match.start() - lookahead):match.start()]

            genotype_match = GENOTYPE_REGEX.search(after)
            context = after
            if genotype_match is None:
                found = list(GENOTYPE_REGEX.finditer(before))
                genotype_match = found[-1] if found else None
                context = before
            if genotype_match is None and line_end < len(text):
                next_end = lines.bounds(line_end + 1)[1]
                next_line = text[line_end + 1:min(next_end, line_end + 1 + lookahead)]
                if not RSID_REGEX.search(next_line):
                    genotype_match = GENOTYPE_REGEX.search(next_line)
                    context = next_line
            if genotype_match is None:
                continue

            genotype = normalize_genotype(genotype_match.group(0))
            mutation = MUTATION_REGEX.search(before) or MUTATION_REGEX.search(after)
            yield GeneticVariantCandidate(
                identifier=match.group(0).lower(),
                gene=_last_gene(before),
                mutation=mutation.group(0) if mutation else None,
                genotype=genotype or "",
                zygosity=_zygosity(context, genotype),
                confidence=self.confidences.identifier_context,
                source=self.source,
                source_text=snippet(text, *lines.window(match.start(), match.end(), lookahead)),
                start_offset=match.start(),
            )


@register_strategy
class GeneMutationStrategy(CandidateStrategy[GeneticVariantCandidate]):
    """Gene symbol paired with mutation notation, genotype later on the line."""

    document_type = DocumentType.GENETIC
    source = StrategySource.GENE_MUTATION
    name = "gene-mutation"

    PATTERN = re.compile(
        rf"(?P<gene>{GENE_TOKEN})[ \t:\-]*(?:\([ \t]*)?(?P<mutation>{MUTATION})"
    )

    def scan(self, text: str) -> Iterator[GeneticVariantCandidate]:
        lines = LineIndex(text)
        lookahead = self.settings.genetic_lookahead_chars
        for match in self.PATTERN.finditer(text):
            gene = match.group("gene")
            if not is_likely_gene(gene, KNOWN_GENES):
                continue
            window_start, window_end = lines.window(match.start(), match.end(), lookahead)
            rest = text[match.end():window_end]
            genotype_match = GENOTYPE_REGEX.search(rest)
            if genotype_match is None:
                continue
            genotype = normalize_genotype(genotype_match.group(0))
            identifier = RSID_REGEX.search(text, window_start, window_end)
            yield GeneticVariantCandidate(
                identifier=identifier.group(0).lower() if identifier else None,
                gene=gene,
                mutation=match.group("mutation"),
                genotype=genotype or "",
                zygosity=_zygosity(rest, genotype),
                confidence=self.confidences.gene_mutation,
                source=self.source,
                source_text=snippet(text, window_start, window_end),
                start_offset=match.start(),
            )


@register_strategy
class GenotypePatternStrategy(CandidateStrategy[GeneticVariantCandidate]):
    """Bare genotypes with an identifier or known gene shortly before them."""

    document_type = DocumentType.GENETIC
    source = StrategySource.GENOTYPE_PATTERN
    name = "genotype-pattern"

    def scan(self, text: str) -> Iterator[GeneticVariantCandidate]:
        lines = LineIndex(text)
        window = self.settings.genetic_context_chars
        lookahead = self.settings.genetic_lookahead_chars
        for match in GENOTYPE_REGEX.finditer(text):
            line_start, line_end = lines.bounds(match.start())
            context = text[max(line_start, match.start() - window):match.start()]
            tail = text[match.end():min(line_end, match.end() + lookahead)]

            identifiers = list(RSID_REGEX.finditer(context))
            identifier = identifiers[-1].group(0).lower() if identifiers else None
            genes = [m.group(0) for m in GENE_TOKEN_REGEX.finditer(context) if m.group(0) in KNOWN_GENES]
            gene = genes[-1] if genes else None
            if identifier is None and gene is None:
                continue

            genotype = normalize_genotype(match.group(0))
            yield GeneticVariantCandidate(
                identifier=identifier,
                gene=gene,
                genotype=genotype or "",
                zygosity=_zygosity(tail, genotype),
                confidence=self.confidences.genotype_pattern,
                source=self.source,
                source_text=snippet(text, *lines.window(match.start(), match.end(), lookahead)),
                start_offset=match.start(),
            )


@register_strategy
class FreeFormGeneStrategy(CandidateStrategy[GeneticVariantCandidate]):
    """Any gene-like token followed by a genotype on the same line.

    Accepts unknown symbols shaped like genes ("SLC19A1"), so it is the
    weakest genetic strategy.
    """

    document_type = DocumentType.GENETIC
    source = StrategySource.FREE_FORM
    name = "free-form-gene"

    def scan(self, text: str) -> Iterator[GeneticVariantCandidate]:
        lines = LineIndex(text)
        lookahead = self.settings.genetic_lookahead_chars
        for match in GENE_TOKEN_REGEX.finditer(text):
            gene = match.group(0)
            if not is_likely_gene(gene, KNOWN_GENES):
                continue
            window_start, window_end = lines.window(match.start(), match.end(), lookahead)
            rest = text[match.end():window_end]
            # Stop at the next gene so each genotype belongs to one symbol
            next_gene = next(
                (m for m in GENE_TOKEN_REGEX.finditer(rest) if is_likely_gene(m.group(0), KNOWN_GENES)),
                None,
            )
            if next_gene is not None:
                rest = rest[:next_gene.start()]
            genotype_match = GENOTYPE_REGEX.search(rest)
            if genotype_match is None:
                continue
            genotype = normalize_genotype(genotype_match.group(0))
            yield GeneticVariantCandidate(
                gene=gene,
                genotype=genotype or "",
                zygosity=_zygosity(rest, genotype),
                confidence=self.confidences.free_form_gene,
                source=self.source,
                source_text=snippet(text, window_start, window_end),
                start_offset=match.start(),
            )
