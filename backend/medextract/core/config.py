"""Engine configuration using pydantic-settings.

Every precision/recall knob of the extraction engine lives here so that
tuning is auditable and can be overridden from the environment, e.g.
``MEDEXTRACT_MIN_CANDIDATE_CONFIDENCE=55`` or
``MEDEXTRACT_STRATEGY_CONFIDENCE__FREE_FORM=55``.
"""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StrategyConfidence(BaseModel):
    """Self-declared confidence (0-100) for each candidate-generation pattern.

    Values reflect how syntactically specific the matching pattern is. They
    were hand-tuned against a small set of vendor reports.
    """

    # Biomarker table-structure row grammars
    table_fused_row: float = Field(default=98.0, description="Known analyte fused with its value")
    table_vendor_row: float = Field(default=95.0, description="Upper-case vendor row with status/range/code")
    table_header_columns: float = Field(default=92.0, description="Column row mapped through a header line")
    table_calculated_row: float = Field(default=90.0, description="'NAME (calc) value unit' rows")
    table_simple_row: float = Field(default=90.0, description="'name value unit [STATUS]' rows")
    table_columns: float = Field(default=85.0, description="Column row split on wide whitespace")

    # Biomarker strategies
    labeled_range: float = Field(default=90.0, description="'<name> ... range: ... <value>'")
    delimiter_pair: float = Field(default=80.0, description="'<name>: <value>'")
    unit_anchored: float = Field(default=70.0, description="Value followed by a known unit with context words")
    free_form: float = Field(default=60.0, description="Any number-plus-unit occurrence")

    # Genetic strategies
    genetic_table_row: float = Field(default=95.0, description="'GENE MUTATION rs# result genotype' rows")
    genetic_table_columns: float = Field(default=92.0, description="Column row with identifier and genotype")
    identifier_context: float = Field(default=90.0, description="Variant identifier with nearby genotype")
    gene_mutation: float = Field(default=80.0, description="Gene symbol with mutation notation")
    genotype_pattern: float = Field(default=70.0, description="Bare genotype with nearby gene or identifier")
    free_form_gene: float = Field(default=60.0, description="Gene-like token with genetic context")


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MEDEXTRACT_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    app_name: str = "Medical Report Entity Extraction Engine"

    # Aggregation
    min_candidate_confidence: float = Field(default=50.0, ge=0.0, le=100.0)
    duplicate_value_epsilon: float = Field(default=0.01, gt=0.0)
    agreement_boost: float = Field(default=5.0, ge=0.0, description="Added per agreeing strategy")
    max_entity_confidence: float = Field(default=99.0, ge=0.0, le=100.0)

    # Values at or above this magnitude are surfaced with the floor confidence
    implausible_value_threshold: float = Field(default=100000.0, gt=0.0)
    implausible_value_confidence: float = Field(default=50.0, ge=0.0, le=100.0)

    # Classification
    classifier_strong_threshold: int = Field(default=5, ge=1)
    classifier_weak_threshold: int = Field(default=3, ge=1)
    unknown_document_confidence: float = Field(default=10.0, ge=0.0, le=100.0)

    strategy_confidence: StrategyConfidence = Field(default_factory=StrategyConfidence)

    # Name validation (delimiter-pair, unit-anchored and free-form strategies,
    # plus the generic table grammars)
    min_name_length: int = Field(default=2, ge=1)
    max_name_words: int = Field(default=8, ge=1)
    min_letter_ratio: float = Field(default=0.5, ge=0.0, le=1.0)
    blacklisted_terms: list[str] = Field(
        default_factory=lambda: [
            "patient", "date", "dob", "page", "specimen", "physician", "doctor",
            "phone", "fax", "email", "address", "account", "collected", "received",
            "reported", "printed", "client", "ordering", "provider", "referring",
            "sex", "gender", "age", "mrn", "npi", "vial", "accession", "requisition",
            "fasting status", "report status", "performed by", "lab director",
            "see note", "see report",
        ]
    )
    rejected_names: list[str] = Field(
        default_factory=lambda: [
            "result", "results", "status", "final", "preliminary", "normal", "high",
            "low", "critical", "abnormal", "flag", "range", "reference range",
            "desired range", "reference", "unit", "units", "value", "test", "tests",
            "name", "test name", "note", "comment", "time", "total", "am", "pm",
            "est", "pst", "utc", "id", "lab", "report", "lab report", "sample",
            "or", "and", "the", "of", "to", "for", "with", "by", "in", "on", "at",
        ]
    )

    # Strategy tuning
    free_form_backtrack_words: int = Field(default=3, ge=1)
    unit_context_window_words: int = Field(default=10, ge=1)
    unit_context_words: list[str] = Field(
        default_factory=lambda: [
            "test", "result", "range", "level", "analysis", "blood", "serum",
            "plasma", "count", "concentration", "value", "reference", "panel",
        ]
    )
    genetic_context_chars: int = Field(default=40, ge=1)
    genetic_lookahead_chars: int = Field(default=120, ge=1, description="Span after a gene or genotype searched for its result")

    # Canonical resolution
    min_containment_length: int = Field(default=4, ge=1)

    # Document confidence scoring
    score_base: float = 40.0
    score_table_bonus: float = 25.0
    score_structural_bonus: float = 15.0
    score_structural_saturation_lines: int = Field(default=2, ge=1)
    score_structural_cap: float = 30.0
    score_entity_bonus_max: float = 25.0
    score_entity_decay: float = Field(default=0.5, gt=0.0, lt=1.0)
    score_empty_multiplier: float = Field(default=0.5, ge=0.0, le=1.0)

    # Caller gate: results below this are flagged for manual review
    review_confidence_threshold: float = Field(default=50.0, ge=0.0, le=100.0)

    # Execution
    parallel_generation: bool = True
    max_workers: int = Field(default=4, ge=1)

    # Caller-side input size limit (applied by bound_input, never by the engine)
    max_input_chars: int = Field(default=2_000_000, ge=1)


settings = Settings()
