"""Tests for engine settings."""

from medextract.core.config import Settings, StrategyConfidence


class TestSettingsDefaults:
    """Test default tuning values."""

    def test_aggregation_defaults(self):
        """Test aggregation thresholds."""
        settings = Settings()
        assert settings.min_candidate_confidence == 50.0
        assert settings.duplicate_value_epsilon == 0.01
        assert settings.max_entity_confidence == 99.0

    def test_classifier_defaults(self):
        """Test classifier thresholds and the Unknown confidence."""
        settings = Settings()
        assert settings.classifier_strong_threshold == 5
        assert settings.classifier_weak_threshold == 3
        assert settings.unknown_document_confidence == 10.0

    def test_strategy_confidences_are_ordered_by_specificity(self):
        """Test that looser patterns declare lower confidence."""
        confidence = StrategyConfidence()
        assert confidence.table_fused_row >= confidence.table_vendor_row >= 90
        assert confidence.labeled_range > confidence.delimiter_pair
        assert confidence.delimiter_pair > confidence.unit_anchored > confidence.free_form
        assert confidence.identifier_context > confidence.gene_mutation
        assert confidence.gene_mutation > confidence.genotype_pattern > confidence.free_form_gene

    def test_name_validation_lists(self):
        """Test that boilerplate terms are blacklisted by default."""
        settings = Settings()
        for term in ("patient", "date", "page", "specimen"):
            assert term in settings.blacklisted_terms


class TestSettingsOverrides:
    """Test explicit and environment overrides."""

    def test_explicit_override(self):
        """Test constructor overrides."""
        settings = Settings(min_candidate_confidence=65, parallel_generation=False)
        assert settings.min_candidate_confidence == 65
        assert settings.parallel_generation is False

    def test_env_override(self, monkeypatch):
        """Test prefixed environment variables."""
        monkeypatch.setenv("MEDEXTRACT_MIN_CANDIDATE_CONFIDENCE", "55")
        assert Settings().min_candidate_confidence == 55

    def test_nested_env_override(self, monkeypatch):
        """Test nested strategy confidence from the environment."""
        monkeypatch.setenv("MEDEXTRACT_STRATEGY_CONFIDENCE__FREE_FORM", "55")
        assert Settings().strategy_confidence.free_form == 55
