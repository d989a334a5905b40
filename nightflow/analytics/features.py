"""
Feature Extraction

Maps observations to scalar features for clustering and correlation, and
min-max normalizes feature vectors.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Sequence, Union

import numpy as np

from nightflow.core.errors import UnknownFeatureError, require_non_empty
from nightflow.data.models import DisplayMode, Observation

logger = logging.getLogger(__name__)


def _log10_floor(value: float) -> float:
    return math.log10(max(value, 1))


class Feature(str, Enum):
    """Closed set of clusterable features."""

    CAPTURED_ALPHA = "capturedAlpha"
    TIMING_DIFF = "timingDiff"
    REF_GAP = "refGap"
    NOTIONAL = "notional"
    VOLUME = "volume"
    TOTAL_GAP = "totalGap"

    @classmethod
    def parse(cls, name: Union["Feature", str]) -> "Feature":
        """
        Resolve a feature from its enum member or name.

        Raises:
            UnknownFeatureError: If the name is not in the closed set
        """
        if isinstance(name, cls):
            return name
        try:
            return cls(name)
        except ValueError:
            raise UnknownFeatureError(name) from None

    def extract(self, obs: Observation, mode: DisplayMode) -> float:
        return _EXTRACTORS[self](obs, mode)

    @property
    def label(self) -> str:
        return FEATURE_LABELS[self]


_EXTRACTORS: Dict[Feature, Callable[[Observation, DisplayMode], float]] = {
    Feature.CAPTURED_ALPHA: lambda obs, mode: obs.alpha(mode),
    Feature.TIMING_DIFF: lambda obs, mode: obs.timing(mode),
    Feature.REF_GAP: lambda obs, mode: obs.gap(mode),
    Feature.NOTIONAL: lambda obs, mode: _log10_floor(obs.notional),
    Feature.VOLUME: lambda obs, mode: _log10_floor(obs.volume),
    Feature.TOTAL_GAP: lambda obs, mode: obs.total_gap,
}

FEATURE_LABELS: Dict[Feature, str] = {
    Feature.CAPTURED_ALPHA: "Captured Alpha",
    Feature.TIMING_DIFF: "Timing Diff",
    Feature.REF_GAP: "Reference Gap",
    Feature.NOTIONAL: "Log Notional",
    Feature.VOLUME: "Log Volume",
    Feature.TOTAL_GAP: "Total Gap",
}

def feature_value(
    obs: Observation,
    feature: Union[Feature, str],
    mode: DisplayMode = DisplayMode.WINSORIZED,
) -> float:
    """
    Scalar value of one feature for one observation.

    Notional and volume are log10-transformed with a floor of 1; the bps
    metrics follow the display mode.

    Raises:
        UnknownFeatureError: If feature is not in the closed set
    """
    return Feature.parse(feature).extract(obs, mode)


def feature_matrix(
    observations: Sequence[Observation],
    features: Sequence[Union[Feature, str]],
    mode: DisplayMode = DisplayMode.WINSORIZED,
) -> np.ndarray:
    """Build an (n_observations, n_features) matrix of raw feature values."""
    parsed = [Feature.parse(f) for f in features]
    matrix = np.empty((len(observations), len(parsed)), dtype=float)
    for i, obs in enumerate(observations):
        for j, feat in enumerate(parsed):
            matrix[i, j] = feat.extract(obs, mode)
    return matrix


@dataclass
class NormalizedFeatures:
    """Min-max normalized vectors plus the per-dimension bounds used."""

    normalized: np.ndarray
    mins: np.ndarray
    maxs: np.ndarray

    def denormalize(self, vector: Sequence[float]) -> np.ndarray:
        """
        Map a normalized vector (e.g. a centroid) back to original units.

        Degenerate dimensions map back to their single observed value.
        """
        v = np.asarray(vector, dtype=float)
        span = self.maxs - self.mins
        return np.where(span == 0, self.mins, self.mins + v * span)


def normalize_features(vectors: Union[Sequence[Sequence[float]], np.ndarray]) -> NormalizedFeatures:
    """
    Min-max normalize each dimension independently to [0, 1].

    A dimension whose min equals its max maps every value to 0.5.

    Raises:
        InvalidArgumentError: If vectors is empty
    """
    data = np.asarray(vectors, dtype=float)
    require_non_empty(data, "vectors")
    if data.ndim == 1:
        data = data.reshape(-1, 1)

    mins = data.min(axis=0)
    maxs = data.max(axis=0)
    span = maxs - mins
    degenerate = span == 0

    safe_span = np.where(degenerate, 1.0, span)
    normalized = (data - mins) / safe_span
    normalized[:, degenerate] = 0.5

    if degenerate.any():
        logger.debug(f"{int(degenerate.sum())} degenerate feature dimension(s) set to 0.5")

    return NormalizedFeatures(normalized=normalized, mins=mins, maxs=maxs)
