"""
Unit tests for feature extraction and normalization.
"""

import numpy as np
import pytest

from nightflow.analytics.features import (
    FEATURE_LABELS,
    _EXTRACTORS,
    Feature,
    feature_matrix,
    feature_value,
    normalize_features,
)
from nightflow.core.errors import InvalidArgumentError, UnknownFeatureError
from nightflow.data.models import DisplayMode


class TestFeatureEnum:
    """Tests for the closed feature set."""

    def test_values_match_payload_names(self):
        assert {f.value for f in Feature} == {
            "capturedAlpha",
            "timingDiff",
            "refGap",
            "notional",
            "volume",
            "totalGap",
        }

    def test_every_feature_has_label(self):
        assert set(FEATURE_LABELS) == set(Feature)
        assert Feature.NOTIONAL.label == "Log Notional"

    def test_every_feature_has_extractor(self):
        assert set(_EXTRACTORS) == set(Feature)

    def test_parse_by_name(self):
        assert Feature.parse("refGap") is Feature.REF_GAP
        assert Feature.parse(Feature.VOLUME) is Feature.VOLUME

    def test_parse_unknown_raises(self):
        """Test that names outside the set raise UnknownFeatureError."""
        with pytest.raises(UnknownFeatureError) as exc_info:
            Feature.parse("sharpe")
        assert exc_info.value.feature == "sharpe"
        assert isinstance(exc_info.value, KeyError)


class TestFeatureValue:
    """Tests for feature_value."""

    def test_alpha_follows_display_mode(self, make_observation):
        obs = make_observation(captured_alpha=250.0, captured_alpha_w=100.0)
        assert feature_value(obs, Feature.CAPTURED_ALPHA, DisplayMode.WINSORIZED) == 100.0
        assert feature_value(obs, "capturedAlpha", DisplayMode.FULL_RANGE) == 250.0

    def test_gap_and_timing_follow_display_mode(self, make_observation):
        obs = make_observation(ref_gap=-80.0, ref_gap_w=-50.0, timing_diff=30.0, timing_diff_w=20.0)
        assert feature_value(obs, "refGap") == -50.0
        assert feature_value(obs, "refGap", DisplayMode.FULL_RANGE) == -80.0
        assert feature_value(obs, "timingDiff") == 20.0
        assert feature_value(obs, "timingDiff", DisplayMode.FULL_RANGE) == 30.0

    def test_total_gap_is_raw(self, make_observation):
        obs = make_observation(total_gap=42.0)
        assert feature_value(obs, Feature.TOTAL_GAP, DisplayMode.WINSORIZED) == 42.0

    def test_notional_is_log10(self, make_observation):
        obs = make_observation(notional=1_000_000.0, volume=100)
        assert feature_value(obs, "notional") == pytest.approx(6.0)
        assert feature_value(obs, "volume") == pytest.approx(2.0)

    def test_log_floor_at_one(self, make_observation):
        """Test that values below 1 are floored before the log."""
        obs = make_observation(notional=0.25, volume=0)
        assert feature_value(obs, "notional") == 0.0
        assert feature_value(obs, "volume") == 0.0

    def test_unknown_feature_raises(self, make_observation):
        with pytest.raises(UnknownFeatureError):
            feature_value(make_observation(), "alpha")


class TestFeatureMatrix:
    """Tests for feature_matrix."""

    def test_shape_and_values(self, abc_observations):
        matrix = feature_matrix(abc_observations, ["capturedAlpha", Feature.NOTIONAL])
        assert matrix.shape == (5, 2)
        assert matrix[0, 0] == 10.0
        assert matrix[0, 1] == pytest.approx(6.0)


class TestNormalizeFeatures:
    """Tests for min-max normalization."""

    def test_scales_each_dimension(self):
        result = normalize_features([[0, 10], [5, 20], [10, 30]])
        np.testing.assert_allclose(result.normalized[:, 0], [0.0, 0.5, 1.0])
        np.testing.assert_allclose(result.normalized[:, 1], [0.0, 0.5, 1.0])

    def test_degenerate_dimension_is_half(self):
        """Test that a constant dimension maps to 0.5."""
        result = normalize_features([[0, 10], [5, 10], [10, 10]])
        np.testing.assert_allclose(result.normalized[:, 1], [0.5, 0.5, 0.5])

    def test_values_within_unit_interval(self, rng):
        data = rng.normal(0, 100, size=(50, 3))
        result = normalize_features(data)
        assert result.normalized.min() >= 0.0
        assert result.normalized.max() <= 1.0

    def test_denormalize_round_trip(self):
        result = normalize_features([[0, 10], [5, 10], [10, 10]])
        np.testing.assert_allclose(result.denormalize([0.5, 0.5]), [5.0, 10.0])
        np.testing.assert_allclose(result.denormalize([1.0, 0.0]), [10.0, 10.0])

    def test_empty_raises(self):
        with pytest.raises(InvalidArgumentError):
            normalize_features([])
