"""
Risk Analytics Module

Tail-risk percentiles (VaR/CVaR), notional concentration (Lorenz curve, Gini
coefficient, top-decile share) and Sharpe-like ratios per group, built on the
statistics primitives.

Sign convention: VaR is a lower-tail value of the captured-alpha distribution,
so more negative is worse. Unlike the portfolio convention it is not negated
into a positive loss amount.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, List, Literal, Sequence

import numpy as np
from scipy import stats

from nightflow.analytics.aggregation import group_by
from nightflow.analytics.statistics import (
    Numbers,
    kurtosis,
    mean,
    percentile,
    skewness,
    std_dev,
)
from nightflow.config.logging import analytics_logger, log_performance
from nightflow.core.errors import require_non_empty, validate_range
from nightflow.data.models import DisplayMode, Observation

logger = logging.getLogger(__name__)

GiniMethod = Literal["mean", "trapezoid"]


def value_at_risk(values: Numbers, confidence: float = 95.0) -> float:
    """
    Historical VaR: the ``100 - confidence`` percentile of the values.

    Args:
        values: Non-empty metric values (bps)
        confidence: Confidence level in percent, e.g. 95

    Raises:
        InvalidArgumentError: If values is empty or confidence is out of range
    """
    validate_range("confidence", confidence, 0, 100)
    return percentile(values, 100 - confidence)


def conditional_var(values: Numbers, confidence: float = 95.0) -> float:
    """
    Expected shortfall: mean of all values at or below VaR.

    Returns 0 when the tail is empty; with interpolated percentiles the
    minimum always qualifies, so this only guards unusual inputs.
    """
    arr = np.asarray(values, dtype=float)
    threshold = value_at_risk(arr, confidence)
    tail = arr[arr <= threshold]
    if tail.size == 0:
        analytics_logger.log_degenerate("cvar", "empty tail", int(arr.size))
    return mean(tail)


def parametric_var(values: Numbers, confidence: float = 95.0) -> float:
    """
    VaR under a normal approximation: ``mean + z * std`` with
    ``z = norm.ppf(1 - confidence / 100)``.
    """
    validate_range("confidence", confidence, 0, 100)
    arr = np.asarray(values, dtype=float)
    require_non_empty(arr, "values")
    z = stats.norm.ppf(1 - confidence / 100)
    return float(mean(arr) + z * std_dev(arr))


def sharpe_ratio(values: Numbers) -> float:
    """Sharpe-like ratio ``mean / std``; 0 when std is 0."""
    s = std_dev(values)
    if s == 0:
        return 0.0
    return mean(values) / s


# =============================================================================
# Concentration
# =============================================================================


@dataclass
class LorenzCurve:
    """Cumulative share of observations vs cumulative share of weight, in percent."""

    cum_obs_pct: np.ndarray
    cum_weight_pct: np.ndarray

    def __len__(self) -> int:
        return int(self.cum_obs_pct.size)


def lorenz_curve(weights: Numbers) -> LorenzCurve:
    """
    Lorenz curve of weights sorted ascending.

    Point ``i`` is ``((i + 1) / n * 100, cumsum_i / total * 100)``. A zero
    total yields an all-zero weight axis.
    """
    w = np.sort(np.asarray(weights, dtype=float))
    n = w.size
    if n == 0:
        return LorenzCurve(np.array([]), np.array([]))

    cum_obs = np.arange(1, n + 1) / n * 100
    total = float(w.sum())
    if total == 0:
        analytics_logger.log_degenerate("lorenz_curve", "zero total weight", n)
        cum_weight = np.zeros(n)
    else:
        cum_weight = np.cumsum(w) / total * 100
    return LorenzCurve(cum_obs_pct=cum_obs, cum_weight_pct=cum_weight)


def gini_coefficient(weights: Numbers, method: GiniMethod = "trapezoid") -> float:
    """
    Gini coefficient from the Lorenz curve.

    ``method="trapezoid"`` integrates the curve from the origin with the
    trapezoidal rule; equal weights give exactly 0. ``method="mean"``
    reproduces the dashboard figure ``1 - 2 * mean(cum_weight_pct) / 100``,
    a discrete approximation that reads ``-1/n`` for equal weights.

    Returns 0 for empty input or zero total weight.
    """
    curve = lorenz_curve(weights)
    n = len(curve)
    if n == 0 or curve.cum_weight_pct[-1] == 0:
        return 0.0

    if method == "mean":
        return float(1 - 2 * curve.cum_weight_pct.mean() / 100)
    if method == "trapezoid":
        x = np.concatenate(([0.0], curve.cum_obs_pct)) / 100
        y = np.concatenate(([0.0], curve.cum_weight_pct)) / 100
        area = float(np.sum((y[1:] + y[:-1]) / 2 * np.diff(x)))
        return 1 - 2 * area
    raise ValueError(f"Unknown Gini method: {method}")


def top_decile_concentration(weights: Numbers) -> float:
    """
    Percent of total weight held by the largest ``ceil(10% of n)`` weights.

    Returns 0 for empty input or zero total weight.
    """
    w = np.sort(np.asarray(weights, dtype=float))[::-1]
    total = float(w.sum())
    if w.size == 0 or total == 0:
        return 0.0
    top_n = math.ceil(w.size * 0.1)
    return float(w[:top_n].sum() / total * 100)


# =============================================================================
# Summaries
# =============================================================================


@dataclass
class RiskSummary:
    """Risk profile of the captured-alpha distribution."""

    confidence: float
    var: float
    var_99: float
    cvar: float
    max_loss: float
    mean: float
    std_dev: float
    skewness: float
    kurtosis: float
    gini: float
    top_decile_pct: float
    observations: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "confidence": self.confidence,
            "var": self.var,
            "var_99": self.var_99,
            "cvar": self.cvar,
            "max_loss": self.max_loss,
            "mean": self.mean,
            "std_dev": self.std_dev,
            "skewness": self.skewness,
            "kurtosis": self.kurtosis,
            "gini": self.gini,
            "top_decile_pct": self.top_decile_pct,
            "observations": self.observations,
        }


@log_performance(threshold_ms=1000)
def risk_summary(
    observations: Sequence[Observation],
    mode: DisplayMode = DisplayMode.WINSORIZED,
    confidence: float = 95.0,
    gini_method: GiniMethod = "trapezoid",
) -> RiskSummary:
    """
    Tail risk of captured alpha plus notional concentration.

    Raises:
        InvalidArgumentError: If observations is empty
    """
    require_non_empty(observations, "observations")
    alphas = np.array([o.alpha(mode) for o in observations])
    notionals = np.array([o.notional for o in observations])

    return RiskSummary(
        confidence=confidence,
        var=value_at_risk(alphas, confidence),
        var_99=value_at_risk(alphas, 99),
        cvar=conditional_var(alphas, confidence),
        max_loss=float(alphas.min()),
        mean=mean(alphas),
        std_dev=std_dev(alphas),
        skewness=skewness(alphas),
        kurtosis=kurtosis(alphas),
        gini=gini_coefficient(notionals, gini_method),
        top_decile_pct=top_decile_concentration(notionals),
        observations=len(observations),
    )


@dataclass
class GroupRiskRow:
    """Risk metrics for one group of observations."""

    key: Hashable
    count: int
    avg: float
    std_dev: float
    sharpe: float
    var_95: float
    consistency_pct: float


def group_risk_table(
    observations: Sequence[Observation],
    key_fn: Callable[[Observation], Hashable],
    mode: DisplayMode = DisplayMode.WINSORIZED,
    min_count: int = 10,
) -> List[GroupRiskRow]:
    """
    Per-group captured-alpha risk, best Sharpe-like ratio first.

    Groups with fewer than ``min_count`` members are dropped.
    """
    validate_range("min_count", min_count, 1)
    rows = []
    for key, members in group_by(observations, key_fn).items():
        if len(members) < min_count:
            continue
        alphas = [m.alpha(mode) for m in members]
        rows.append(
            GroupRiskRow(
                key=key,
                count=len(members),
                avg=mean(alphas),
                std_dev=std_dev(alphas),
                sharpe=sharpe_ratio(alphas),
                var_95=value_at_risk(alphas, 95),
                consistency_pct=sum(1 for m in members if m.dir_consistency)
                / len(members)
                * 100,
            )
        )
    rows.sort(key=lambda r: r.sharpe, reverse=True)
    return rows
