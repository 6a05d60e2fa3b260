"""Tests for AggregationConfig validation and overrides."""

from __future__ import annotations

import dataclasses

import pytest

from literature_aggregator.application.search import AggregationConfig, CompositeWeights
from literature_aggregator.shared.exceptions import ConfigurationError


class TestDefaults:
    def test_default_is_valid(self):
        config = AggregationConfig.default()
        assert config.weights.total == pytest.approx(1.0)
        assert config.title_similarity_threshold == 0.95
        assert config.admission_threshold == 3

    def test_immutable(self):
        config = AggregationConfig.default()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.admission_threshold = 1

    def test_hashable(self):
        assert hash(AggregationConfig.default()) == hash(AggregationConfig.default())

    def test_exclusion_and_context_lists_are_disjoint(self):
        config = AggregationConfig.default()
        assert not set(config.off_domain_terms) & set(config.domain_context_terms)


class TestOverrides:
    def test_with_overrides_returns_copy(self):
        config = AggregationConfig.default()
        strict = config.with_overrides(admission_threshold=4)
        assert strict.admission_threshold == 4
        assert config.admission_threshold == 3

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ConfigurationError, match="sum to 1.0"):
            AggregationConfig.default().with_overrides(weights=CompositeWeights(semantic_relevance=0.9))

    @pytest.mark.parametrize("threshold", [0.0, 1.5])
    def test_similarity_threshold_range(self, threshold):
        with pytest.raises(ConfigurationError):
            AggregationConfig.default().with_overrides(title_similarity_threshold=threshold)

    def test_overlapping_exclusion_and_context(self):
        config = AggregationConfig.default()
        with pytest.raises(ConfigurationError, match="clinical"):
            config.with_overrides(off_domain_terms=(*config.off_domain_terms, "clinical"))

    def test_duplicate_source_preference(self):
        with pytest.raises(ConfigurationError):
            AggregationConfig.default().with_overrides(source_preference=("pubmed", "pubmed"))

    @pytest.mark.parametrize("field", ["default_target_count", "provider_timeout"])
    def test_positive_values(self, field):
        with pytest.raises(ConfigurationError):
            AggregationConfig.default().with_overrides(**{field: 0})


class TestSourceHelpers:
    def test_source_rank(self):
        config = AggregationConfig.default()
        assert config.source_rank("semantic_scholar") == 0
        assert config.source_rank("pubmed") == 1
        assert config.source_rank("unknown") == len(config.source_preference)

    def test_source_bonus(self):
        config = AggregationConfig.default()
        assert config.source_bonus("semantic_scholar") == 0.1
        assert config.source_bonus("pubmed") == 0.0
