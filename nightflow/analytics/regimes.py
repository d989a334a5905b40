"""
Regime Detection

Classifies a daily metric series into UP, DOWN and TRANSITION regimes from
the sign of its trailing moving average, and groups consecutive days into
runs. Also builds the per-session input series and the day-of-week profile.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from nightflow.analytics.aggregation import (
    WEEKDAY_LABELS,
    by_date,
    by_day_of_week,
    group_by,
)
from nightflow.analytics.statistics import Numbers, mean, rolling_mean
from nightflow.config.logging import log_performance
from nightflow.data.models import DailySummary, DisplayMode, Observation

logger = logging.getLogger(__name__)

# Consecutive defined rolling values that must agree in sign
REGIME_CONFIRMATION = 3


class Regime(str, Enum):
    UP = "up"
    DOWN = "down"
    TRANSITION = "transition"
    NONE = "none"


@dataclass
class RegimeRun:
    """Maximal run of one regime; ``start`` and ``end`` are inclusive indices."""

    regime: Regime
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1


@dataclass
class RegimeAnalysis:
    """Regime classification of one daily series."""

    window: int
    rolling: List[Optional[float]]
    regimes: List[Regime]
    runs: List[RegimeRun] = field(default_factory=list)
    up_days: int = 0
    down_days: int = 0
    transition_days: int = 0
    up_avg: float = 0.0
    down_avg: float = 0.0

    @property
    def current(self) -> Regime:
        return self.regimes[-1] if self.regimes else Regime.NONE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "window": self.window,
            "current": self.current.value,
            "up_days": self.up_days,
            "down_days": self.down_days,
            "transition_days": self.transition_days,
            "up_avg": self.up_avg,
            "down_avg": self.down_avg,
            "runs": [
                {"regime": r.regime.value, "start": r.start, "end": r.end}
                for r in self.runs
            ],
        }


def classify_regimes(rolling: Sequence[Optional[float]]) -> List[Regime]:
    """
    Regime per index of a rolling series.

    Undefined (None) entries are NONE. Otherwise the defined values among the
    last three indices decide: all three positive is UP, all three negative
    is DOWN, anything else (including fewer than three defined) is
    TRANSITION.
    """
    regimes = []
    for i, value in enumerate(rolling):
        if value is None:
            regimes.append(Regime.NONE)
            continue
        start = max(0, i - REGIME_CONFIRMATION + 1)
        recent = [v for v in rolling[start : i + 1] if v is not None]
        if len(recent) >= REGIME_CONFIRMATION and all(v > 0 for v in recent):
            regimes.append(Regime.UP)
        elif len(recent) >= REGIME_CONFIRMATION and all(v < 0 for v in recent):
            regimes.append(Regime.DOWN)
        else:
            regimes.append(Regime.TRANSITION)
    return regimes


def regime_runs(regimes: Sequence[Regime]) -> List[RegimeRun]:
    """Group consecutive equal regimes into runs, skipping NONE."""
    runs: List[RegimeRun] = []
    for i, regime in enumerate(regimes):
        if regime is Regime.NONE:
            continue
        if runs and runs[-1].regime is regime and runs[-1].end == i - 1:
            runs[-1].end = i
        else:
            runs.append(RegimeRun(regime=regime, start=i, end=i))
    return runs


@log_performance(threshold_ms=500)
def detect_regimes(series: Numbers, window: int = 10) -> RegimeAnalysis:
    """
    Classify a daily series into regimes.

    ``up_avg`` and ``down_avg`` average the raw series (not the rolling
    mean) over the UP and DOWN days respectively.

    Raises:
        InvalidArgumentError: If window < 1
    """
    values = [float(v) for v in series]
    rolling = rolling_mean(values, window)
    regimes = classify_regimes(rolling)

    analysis = RegimeAnalysis(
        window=window,
        rolling=rolling,
        regimes=regimes,
        runs=regime_runs(regimes),
        up_days=sum(1 for r in regimes if r is Regime.UP),
        down_days=sum(1 for r in regimes if r is Regime.DOWN),
        transition_days=sum(1 for r in regimes if r is Regime.TRANSITION),
        up_avg=mean([v for v, r in zip(values, regimes) if r is Regime.UP]),
        down_avg=mean([v for v, r in zip(values, regimes) if r is Regime.DOWN]),
    )
    logger.debug(
        f"Regimes over {len(values)} sessions (window={window}): "
        f"{analysis.up_days} up, {analysis.down_days} down, "
        f"{analysis.transition_days} transition"
    )
    return analysis


# =============================================================================
# Input Series
# =============================================================================


def daily_metric_series(
    observations: Sequence[Observation],
    dates: Sequence[str],
    mode: DisplayMode = DisplayMode.WINSORIZED,
) -> List[float]:
    """Average captured alpha per session in ``dates`` order; 0 for empty dates."""
    groups = group_by(observations, by_date)
    return [mean([o.alpha(mode) for o in groups.get(d, [])]) for d in dates]


def summary_series(
    daily_summary: Optional[Mapping[str, DailySummary]],
    dates: Sequence[str],
    field_name: str = "avg_ca",
) -> List[float]:
    """
    One field of the upstream daily summary in ``dates`` order.

    Dates missing from the summary (or a missing summary) read 0.
    """
    summary = daily_summary or {}
    return [
        float(getattr(summary[d], field_name)) if d in summary else 0.0
        for d in dates
    ]


def rolling_volatility(
    daily_summary: Optional[Mapping[str, DailySummary]],
    dates: Sequence[str],
    window: int = 10,
) -> List[Optional[float]]:
    """Trailing mean of the daily timing-differential standard deviation."""
    return rolling_mean(summary_series(daily_summary, dates, "std_td"), window)


def day_of_week_profile(
    observations: Sequence[Observation],
    mode: DisplayMode = DisplayMode.WINSORIZED,
) -> pd.DataFrame:
    """
    Average metrics per weekday, Monday through Friday.

    Columns: avg_captured_alpha, avg_timing_diff, avg_ref_gap,
    consistency_pct, count. Weekend dates are ignored; weekdays without
    observations read 0.
    """
    groups = group_by(observations, by_day_of_week)
    records = []
    for label in WEEKDAY_LABELS:
        members = groups.get(label, [])
        n = len(members)
        records.append(
            {
                "day": label,
                "avg_captured_alpha": mean([m.alpha(mode) for m in members]),
                "avg_timing_diff": mean([m.timing(mode) for m in members]),
                "avg_ref_gap": mean([m.gap(mode) for m in members]),
                "consistency_pct": (
                    sum(1 for m in members if m.dir_consistency) / n * 100 if n else 0.0
                ),
                "count": n,
            }
        )
    return pd.DataFrame(records).set_index("day")
