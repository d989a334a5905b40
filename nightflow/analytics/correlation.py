"""
Correlation and Quadrant Analysis

Pairwise Pearson correlations between observation metrics, the gap/timing
quadrant classification, and column-wise min-max scaling for heatmaps.
"""

import logging
from enum import Enum
from typing import Dict, Optional, Sequence, Union

import numpy as np
import pandas as pd

from nightflow.analytics.features import Feature
from nightflow.analytics.statistics import mean, pearson_corr
from nightflow.core.errors import UnknownFeatureError
from nightflow.data.models import DisplayMode, Observation

logger = logging.getLogger(__name__)


class CorrelationMetric(str, Enum):
    """Metrics available to the correlation matrix."""

    CAPTURED_ALPHA = "capturedAlpha"
    TIMING_DIFF = "timingDiff"
    REF_GAP = "refGap"
    TOTAL_GAP = "totalGap"
    LOG_NOTIONAL = "logNotional"
    LOG_VOLUME = "logVolume"
    EXECUTIONS = "executions"

    @classmethod
    def parse(cls, name: Union["CorrelationMetric", str]) -> "CorrelationMetric":
        """
        Resolve a metric from its enum member or name.

        Raises:
            UnknownFeatureError: If the name is not a correlation metric
        """
        if isinstance(name, cls):
            return name
        try:
            return cls(name)
        except ValueError:
            raise UnknownFeatureError(name) from None

    def extract(self, obs: Observation, mode: DisplayMode) -> float:
        feature = _FEATURE_BACKED.get(self)
        if feature is not None:
            return feature.extract(obs, mode)
        return float(obs.executions)


_FEATURE_BACKED: Dict[CorrelationMetric, Feature] = {
    CorrelationMetric.CAPTURED_ALPHA: Feature.CAPTURED_ALPHA,
    CorrelationMetric.TIMING_DIFF: Feature.TIMING_DIFF,
    CorrelationMetric.REF_GAP: Feature.REF_GAP,
    CorrelationMetric.TOTAL_GAP: Feature.TOTAL_GAP,
    CorrelationMetric.LOG_NOTIONAL: Feature.NOTIONAL,
    CorrelationMetric.LOG_VOLUME: Feature.VOLUME,
}


def correlation_matrix(
    observations: Sequence[Observation],
    mode: DisplayMode = DisplayMode.WINSORIZED,
    metrics: Optional[Sequence[Union[CorrelationMetric, str]]] = None,
) -> pd.DataFrame:
    """
    Pairwise Pearson correlations rounded to 3 decimals.

    Pairs that are undefined (fewer than 3 observations, or a constant
    metric) read 0, including on the diagonal.

    Args:
        observations: Filtered view
        mode: Display mode for the bps metrics
        metrics: Metrics to include (all of them when None)

    Returns:
        Square DataFrame indexed and labelled by metric name

    Raises:
        UnknownFeatureError: If a metric name is not recognised
    """
    selected = [CorrelationMetric.parse(m) for m in (metrics or list(CorrelationMetric))]
    vectors = {
        m: np.array([m.extract(obs, mode) for obs in observations], dtype=float)
        for m in selected
    }
    names = [m.value for m in selected]
    matrix = pd.DataFrame(0.0, index=names, columns=names)
    for a in selected:
        for b in selected:
            matrix.loc[a.value, b.value] = round(pearson_corr(vectors[a], vectors[b]), 3)
    return matrix


# =============================================================================
# Quadrants
# =============================================================================


class Quadrant(str, Enum):
    """Reference gap sign vs timing differential sign."""

    Q1 = "Q1"
    Q2 = "Q2"
    Q3 = "Q3"
    Q4 = "Q4"

    @property
    def label(self) -> str:
        return QUADRANT_INFO[self]["name"]


QUADRANT_INFO: Dict[Quadrant, Dict[str, str]] = {
    Quadrant.Q1: {"name": "Momentum", "description": "Positive gap, positive timing"},
    Quadrant.Q2: {"name": "Mean Reversion", "description": "Negative gap, positive timing"},
    Quadrant.Q3: {"name": "Protection", "description": "Negative gap, negative timing"},
    Quadrant.Q4: {"name": "Top Tick", "description": "Positive gap, negative timing"},
}


def quadrant(obs: Observation, mode: DisplayMode = DisplayMode.WINSORIZED) -> Quadrant:
    """Classify by reference gap and timing differential; zero counts as positive."""
    td = obs.timing(mode)
    rg = obs.gap(mode)
    if rg >= 0 and td >= 0:
        return Quadrant.Q1
    if rg < 0 and td >= 0:
        return Quadrant.Q2
    if rg < 0 and td < 0:
        return Quadrant.Q3
    return Quadrant.Q4


def quadrant_summary(
    observations: Sequence[Observation],
    mode: DisplayMode = DisplayMode.WINSORIZED,
) -> pd.DataFrame:
    """
    Count, notional, average captured alpha and reference gap, and
    consistency percent per quadrant. All four quadrants are always present.
    """
    buckets: Dict[Quadrant, list] = {q: [] for q in Quadrant}
    for obs in observations:
        buckets[quadrant(obs, mode)].append(obs)

    records = []
    for q, members in buckets.items():
        n = len(members)
        records.append(
            {
                "quadrant": q.value,
                "name": q.label,
                "count": n,
                "notional": float(sum(m.notional for m in members)),
                "avg_captured_alpha": mean([m.alpha(mode) for m in members]),
                "avg_ref_gap": mean([m.gap(mode) for m in members]),
                "consistency_pct": (
                    sum(1 for m in members if m.dir_consistency) / n * 100 if n else 0.0
                ),
            }
        )
    return pd.DataFrame(records).set_index("quadrant")


def normalize_columns(table: pd.DataFrame) -> pd.DataFrame:
    """
    Min-max scale each column to [0, 1] for heatmap colouring.

    A constant column has range 0 and is divided by 1 instead, so every cell
    in it becomes 0.
    """
    numeric = table.astype(float)
    mins = numeric.min(axis=0)
    spans = numeric.max(axis=0) - mins
    spans = spans.where(spans != 0, 1.0)
    return (numeric - mins) / spans
