"""
Unit tests for correlation and quadrant analysis.
"""

import numpy as np
import pandas as pd
import pytest

from nightflow.analytics.correlation import (
    QUADRANT_INFO,
    CorrelationMetric,
    Quadrant,
    correlation_matrix,
    normalize_columns,
    quadrant,
    quadrant_summary,
)
from nightflow.core.errors import UnknownFeatureError
from nightflow.data.models import DisplayMode


class TestCorrelationMatrix:
    """Tests for correlation_matrix."""

    def test_shape_and_labels(self, abc_observations):
        matrix = correlation_matrix(abc_observations)
        names = [m.value for m in CorrelationMetric]
        assert isinstance(matrix, pd.DataFrame)
        assert matrix.shape == (7, 7)
        assert list(matrix.index) == names
        assert list(matrix.columns) == names

    def test_symmetric_and_rounded(self, abc_observations):
        matrix = correlation_matrix(abc_observations)
        np.testing.assert_allclose(matrix.values, matrix.values.T)
        np.testing.assert_allclose(matrix.values, np.round(matrix.values, 3))

    def test_diagonal(self, abc_observations):
        """Test self-correlation is 1, or 0 for a constant metric."""
        matrix = correlation_matrix(abc_observations)
        assert matrix.loc["capturedAlpha", "capturedAlpha"] == 1.0
        assert matrix.loc["executions", "executions"] == 0.0

    def test_linearly_related_metrics(self, abc_observations):
        matrix = correlation_matrix(abc_observations)
        assert matrix.loc["capturedAlpha", "timingDiff"] == 1.0
        assert matrix.loc["capturedAlpha", "totalGap"] == 1.0

    def test_metric_subset(self, abc_observations):
        matrix = correlation_matrix(
            abc_observations,
            metrics=[CorrelationMetric.CAPTURED_ALPHA, "logNotional"],
        )
        assert matrix.shape == (2, 2)
        assert -1.0 <= matrix.loc["capturedAlpha", "logNotional"] <= 1.0

    def test_too_few_observations_read_zero(self, abc_observations):
        matrix = correlation_matrix(abc_observations[:2])
        assert (matrix.values == 0.0).all()

    def test_unknown_metric_raises(self, abc_observations):
        with pytest.raises(UnknownFeatureError) as exc_info:
            correlation_matrix(abc_observations, metrics=["capturedAlpha", "spread"])
        assert exc_info.value.feature == "spread"

    def test_executions_extracted_raw(self, make_observation):
        obs = make_observation(executions=17)
        assert CorrelationMetric.EXECUTIONS.extract(obs, DisplayMode.WINSORIZED) == 17.0
        assert CorrelationMetric.LOG_NOTIONAL.extract(obs, DisplayMode.WINSORIZED) == pytest.approx(6.0)


class TestQuadrant:
    """Tests for quadrant classification."""

    @pytest.mark.parametrize(
        "rg, td, expected",
        [
            (5.0, 3.0, Quadrant.Q1),
            (0.0, 0.0, Quadrant.Q1),
            (-5.0, 3.0, Quadrant.Q2),
            (-5.0, 0.0, Quadrant.Q2),
            (-5.0, -3.0, Quadrant.Q3),
            (5.0, -3.0, Quadrant.Q4),
            (0.0, -3.0, Quadrant.Q4),
        ],
    )
    def test_classification(self, make_observation, rg, td, expected):
        assert quadrant(make_observation(rg=rg, td=td)) is expected

    def test_follows_display_mode(self, make_observation):
        obs = make_observation(ref_gap=5.0, ref_gap_w=-5.0, td=1.0)
        assert quadrant(obs, DisplayMode.FULL_RANGE) is Quadrant.Q1
        assert quadrant(obs, DisplayMode.WINSORIZED) is Quadrant.Q2

    def test_labels(self):
        assert Quadrant.Q1.label == "Momentum"
        assert Quadrant.Q2.label == "Mean Reversion"
        assert Quadrant.Q3.label == "Protection"
        assert Quadrant.Q4.label == "Top Tick"
        assert set(QUADRANT_INFO) == set(Quadrant)

    def test_summary_counts(self, mixed_observations):
        summary = quadrant_summary(mixed_observations)
        assert list(summary.index) == ["Q1", "Q2", "Q3", "Q4"]
        assert list(summary["count"]) == [3, 5, 5, 0]
        assert summary.loc["Q4", "avg_captured_alpha"] == 0.0
        assert summary.loc["Q2", "name"] == "Mean Reversion"
        assert summary.loc["Q2", "notional"] == pytest.approx(2.5e6)


class TestNormalizeColumns:
    """Tests for heatmap column scaling."""

    def test_min_max_per_column(self):
        table = pd.DataFrame({"a": [1.0, 2.0, 3.0], "b": [10.0, 0.0, 5.0]})
        result = normalize_columns(table)
        np.testing.assert_allclose(result["a"], [0.0, 0.5, 1.0])
        np.testing.assert_allclose(result["b"], [1.0, 0.0, 0.5])

    def test_constant_column_is_zero(self):
        table = pd.DataFrame({"a": [5.0, 5.0, 5.0]})
        np.testing.assert_allclose(normalize_columns(table)["a"], [0.0, 0.0, 0.0])
