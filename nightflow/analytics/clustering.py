"""
K-Means Clustering Engine

K-Means++ seeded Lloyd's algorithm over normalized feature vectors, plus the
observation-level clustering run that profiles each resulting cluster.

The run is heuristic exploratory clustering: it stops at the first pass with
no assignment change or at the iteration cap and makes no claim of reaching a
global optimum. Randomness comes only from the injected generator, so a
seeded ``numpy.random.Generator`` reproduces assignments exactly.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

from nightflow.analytics.features import (
    Feature,
    NormalizedFeatures,
    feature_matrix,
    normalize_features,
)
from nightflow.analytics.statistics import mean
from nightflow.config.logging import log_performance
from nightflow.core.errors import InvalidArgumentError, require_non_empty
from nightflow.data.models import DisplayMode, Observation

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITER = 50
TOP_SYMBOLS_PER_CLUSTER = 5


@dataclass
class ClusterResult:
    """Result of one K-Means run.

    Attributes:
        assignments: Cluster index per input row, values in [0, k)
        centroids: Cluster centers (k, n_features) in the input space
        n_iter: Assignment passes executed
        converged: False when the iteration cap was reached first
    """

    assignments: np.ndarray
    centroids: np.ndarray
    n_iter: int
    converged: bool

    @property
    def k(self) -> int:
        return int(self.centroids.shape[0])

    def cluster_sizes(self) -> List[int]:
        return np.bincount(self.assignments, minlength=self.k).tolist()


def _squared_distances(data: np.ndarray, point: np.ndarray) -> np.ndarray:
    diff = data - point
    return np.einsum("ij,ij->i", diff, diff)


def seed_centroids(data: np.ndarray, k: int, rng: np.random.Generator) -> np.ndarray:
    """
    K-Means++ seeding.

    The first centroid is a uniformly random point. Each following centroid
    is drawn with probability proportional to the squared distance from each
    point to its nearest chosen centroid, by subtracting distances from a
    uniform draw over the total until it drops to zero or below. If rounding
    exhausts the loop without a pick, a uniformly random point is used.
    """
    n = data.shape[0]
    centroids = [data[rng.integers(n)].copy()]

    nearest = _squared_distances(data, centroids[0])
    for _ in range(1, k):
        total = float(nearest.sum())
        r = rng.random() * total
        chosen: Optional[int] = None
        for i in range(n):
            r -= nearest[i]
            if r <= 0:
                chosen = i
                break
        if chosen is None:
            chosen = int(rng.integers(n))
            logger.debug("K-Means++ roulette exhausted; falling back to uniform pick")

        centroids.append(data[chosen].copy())
        nearest = np.minimum(nearest, _squared_distances(data, centroids[-1]))

    return np.vstack(centroids)


def assign_points(data: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """
    Index of the nearest centroid per point by squared Euclidean distance.

    Ties resolve to the lowest centroid index.
    """
    diff = data[:, np.newaxis, :] - centroids[np.newaxis, :, :]
    distances = np.einsum("ijk,ijk->ij", diff, diff)
    return np.argmin(distances, axis=1)


def update_centroids(
    data: np.ndarray, assignments: np.ndarray, centroids: np.ndarray
) -> np.ndarray:
    """Per-dimension member mean per cluster; empty clusters keep their position."""
    updated = centroids.copy()
    for c in range(centroids.shape[0]):
        members = data[assignments == c]
        if len(members) > 0:
            updated[c] = members.mean(axis=0)
    return updated


def kmeans(
    data: Union[Sequence[Sequence[float]], np.ndarray],
    k: int,
    max_iter: int = DEFAULT_MAX_ITER,
    rng: Optional[np.random.Generator] = None,
) -> ClusterResult:
    """
    Cluster vectors with K-Means++ seeding and Lloyd iterations.

    Points start unassigned. Each pass reassigns all points, stops if nothing
    changed, and otherwise moves each centroid to its members' mean, so the
    update step always runs at least once.

    Args:
        data: (n, d) real-valued vectors, typically normalized to [0, 1]
        k: Number of clusters, 1 <= k <= n
        max_iter: Maximum assignment passes
        rng: Random generator for seeding (fresh entropy when None)

    Returns:
        ClusterResult in the same vector space as the input

    Raises:
        InvalidArgumentError: If data is empty, k is out of range or
            max_iter < 1
    """
    points = np.asarray(data, dtype=float)
    require_non_empty(points, "data")
    if points.ndim == 1:
        points = points.reshape(-1, 1)

    n = points.shape[0]
    if k < 1 or k > n:
        raise InvalidArgumentError(
            detail=f"k={k} must be between 1 and the number of points ({n})",
            context={"k": k, "n": n},
        )
    if max_iter < 1:
        raise InvalidArgumentError(detail=f"max_iter={max_iter} must be >= 1")

    rng = rng if rng is not None else np.random.default_rng()
    centroids = seed_centroids(points, k, rng)

    # -1 = unassigned, so the first pass always counts as a change
    assignments = np.full(n, -1, dtype=int)
    converged = False
    n_iter = 0
    for n_iter in range(1, max_iter + 1):
        new_assignments = assign_points(points, centroids)
        changed = not np.array_equal(new_assignments, assignments)
        assignments = new_assignments
        if not changed:
            converged = True
            break
        centroids = update_centroids(points, assignments, centroids)

    if converged:
        logger.debug(f"K-Means converged in {n_iter} iterations (k={k}, n={n})")
    else:
        logger.warning(f"K-Means reached iteration cap ({max_iter}) without converging")

    return ClusterResult(
        assignments=assignments,
        centroids=centroids,
        n_iter=n_iter,
        converged=converged,
    )


# =============================================================================
# Observation Clustering
# =============================================================================


@dataclass
class ClusterProfile:
    """Summary of one cluster's members."""

    cluster_id: int
    size: int
    avg_captured_alpha: float
    avg_ref_gap: float
    avg_notional: float
    consistency_pct: float
    top_symbols: List[str]
    centroid: List[float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cluster_id": self.cluster_id,
            "size": self.size,
            "avg_captured_alpha": self.avg_captured_alpha,
            "avg_ref_gap": self.avg_ref_gap,
            "avg_notional": self.avg_notional,
            "consistency_pct": self.consistency_pct,
            "top_symbols": list(self.top_symbols),
            "centroid": list(self.centroid),
        }


@dataclass
class ClusteringReport:
    """Clustering run over observations."""

    features: List[Feature]
    mode: DisplayMode
    result: ClusterResult
    normalization: NormalizedFeatures
    profiles: List[ClusterProfile] = field(default_factory=list)


def profile_clusters(
    observations: Sequence[Observation],
    result: ClusterResult,
    mode: DisplayMode,
) -> List[ClusterProfile]:
    """Per-cluster member statistics, in cluster index order."""
    profiles = []
    for c in range(result.k):
        members = [obs for obs, a in zip(observations, result.assignments) if a == c]
        consistent = sum(1 for m in members if m.dir_consistency)
        symbol_counts = Counter(m.symbol for m in members)

        profiles.append(
            ClusterProfile(
                cluster_id=c,
                size=len(members),
                avg_captured_alpha=mean([m.alpha(mode) for m in members]),
                avg_ref_gap=mean([m.gap(mode) for m in members]),
                avg_notional=mean([m.notional for m in members]),
                consistency_pct=consistent / len(members) * 100 if members else 0.0,
                top_symbols=[s for s, _ in symbol_counts.most_common(TOP_SYMBOLS_PER_CLUSTER)],
                centroid=result.centroids[c].tolist(),
            )
        )
    return profiles


@log_performance(threshold_ms=2000)
def cluster_observations(
    observations: Sequence[Observation],
    features: Sequence[Union[Feature, str]],
    k: int,
    mode: DisplayMode = DisplayMode.WINSORIZED,
    rng: Optional[np.random.Generator] = None,
    max_iter: int = DEFAULT_MAX_ITER,
) -> ClusteringReport:
    """
    Cluster observations on normalized features and profile each cluster.

    Centroids stay in normalized space; use ``report.normalization`` to map
    them back to original units.

    Raises:
        InvalidArgumentError: If k < 2, fewer than two distinct features are
            selected, or there are fewer observations than clusters
        UnknownFeatureError: If a feature name is not recognised
    """
    parsed = [Feature.parse(f) for f in features]
    if len(set(parsed)) < 2:
        raise InvalidArgumentError(
            detail="clustering needs at least two distinct features",
            context={"features": [f.value for f in parsed]},
        )
    if k < 2:
        raise InvalidArgumentError(detail=f"k={k} must be >= 2", context={"k": k})
    require_non_empty(observations, "observations")

    raw = feature_matrix(observations, parsed, mode)
    normalization = normalize_features(raw)
    result = kmeans(normalization.normalized, k, max_iter=max_iter, rng=rng)

    report = ClusteringReport(
        features=parsed,
        mode=mode,
        result=result,
        normalization=normalization,
        profiles=profile_clusters(observations, result, mode),
    )
    logger.info(
        f"Clustered {len(observations)} observations into {k} clusters "
        f"on {', '.join(f.value for f in parsed)}"
    )
    return report
