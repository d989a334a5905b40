"""
Symbol and Group Aggregation

Partition observations by a key (symbol, sector, date, weekday, asset type,
leverage, quadrant) and reduce each group to summary statistics. Also covers
the screener, per-date series, position size tiers and the dataset headline
summary.
"""

import locale
import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import date as date_cls
from typing import (
    Any,
    Callable,
    Dict,
    Hashable,
    Iterable,
    List,
    Optional,
    Sequence,
    Tuple,
)

import pandas as pd

from nightflow.analytics.correlation import quadrant
from nightflow.analytics.statistics import mean, median, std_dev
from nightflow.config.logging import log_performance
from nightflow.core.errors import InvalidArgumentError, validate_range
from nightflow.data.models import AssetType, DisplayMode, Observation

logger = logging.getLogger(__name__)

KeyFn = Callable[[Observation], Optional[Hashable]]

WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri"]

# (label, inclusive lower bound in USD), largest first
SIZE_TIERS: List[Tuple[str, float]] = [
    (">= $10M", 10e6),
    (">= $5M", 5e6),
    (">= $1M", 1e6),
    (">= $500K", 500e3),
    (">= $100K", 100e3),
    ("< $100K", 0.0),
]


# =============================================================================
# Grouping
# =============================================================================


def group_by(
    observations: Iterable[Observation], key_fn: KeyFn
) -> "OrderedDict[Hashable, List[Observation]]":
    """
    Partition observations by key, in first-seen key order.

    Observations whose key is None are left out of every group.
    """
    groups: "OrderedDict[Hashable, List[Observation]]" = OrderedDict()
    for obs in observations:
        key = key_fn(obs)
        if key is None:
            continue
        groups.setdefault(key, []).append(obs)
    return groups


def by_symbol(obs: Observation) -> str:
    return obs.symbol


def by_sector(obs: Observation) -> str:
    return obs.sector


def by_date(obs: Observation) -> str:
    return obs.date


def by_asset_type(obs: Observation) -> str:
    return obs.asset_type.value


def by_day_of_week(obs: Observation) -> Optional[str]:
    """Weekday label ('Mon'..'Fri'); None for weekend dates."""
    weekday = date_cls.fromisoformat(obs.date).weekday()
    if weekday > 4:
        return None
    return WEEKDAY_LABELS[weekday]


def by_leverage(obs: Observation) -> Optional[str]:
    """Leverage multiplier for ETFs ("1x" when unset); None for stocks."""
    if obs.asset_type is not AssetType.ETF:
        return None
    return obs.leverage_mult or "1x"


def by_quadrant(mode: DisplayMode = DisplayMode.WINSORIZED) -> KeyFn:
    """Key function factory grouping by gap/timing quadrant under ``mode``."""

    def key(obs: Observation) -> str:
        return quadrant(obs, mode).value

    return key


# =============================================================================
# Aggregates
# =============================================================================


@dataclass
class MetricSummary:
    """Location and spread of one bps metric within a group."""

    mean: float
    median: float
    std_dev: float
    min: float

    @classmethod
    def from_values(cls, values: Sequence[float]) -> "MetricSummary":
        return cls(
            mean=mean(values),
            median=median(values),
            std_dev=std_dev(values),
            min=float(min(values)) if len(values) else 0.0,
        )


@dataclass
class GroupAggregate:
    """
    Summary of one group of observations.

    Rates are percents in [0, 100]. ``company``, ``asset_type`` and ``sector``
    come from the group's first member and are only meaningful for symbol
    groups.
    """

    key: Hashable
    count: int
    captured_alpha: MetricSummary
    ref_gap: MetricSummary
    timing_diff: MetricSummary
    avg_notional: float
    total_notional: float
    consistency_pct: float
    up_gap_pct: float
    company: Optional[str] = None
    asset_type: Optional[str] = None
    sector: Optional[str] = None

    @property
    def sharpe(self) -> float:
        """Sharpe-like ratio of captured alpha; 0 when its std is 0."""
        if self.captured_alpha.std_dev == 0:
            return 0.0
        return self.captured_alpha.mean / self.captured_alpha.std_dev

    def to_dict(self) -> Dict[str, Any]:
        """Flat dictionary; these keys are the sortable columns."""
        return {
            "key": self.key,
            "count": self.count,
            "company": self.company,
            "asset_type": self.asset_type,
            "sector": self.sector,
            "avg_captured_alpha": self.captured_alpha.mean,
            "median_captured_alpha": self.captured_alpha.median,
            "std_captured_alpha": self.captured_alpha.std_dev,
            "min_captured_alpha": self.captured_alpha.min,
            "avg_ref_gap": self.ref_gap.mean,
            "median_ref_gap": self.ref_gap.median,
            "std_ref_gap": self.ref_gap.std_dev,
            "min_ref_gap": self.ref_gap.min,
            "avg_timing_diff": self.timing_diff.mean,
            "median_timing_diff": self.timing_diff.median,
            "std_timing_diff": self.timing_diff.std_dev,
            "min_timing_diff": self.timing_diff.min,
            "avg_notional": self.avg_notional,
            "total_notional": self.total_notional,
            "consistency_pct": self.consistency_pct,
            "up_gap_pct": self.up_gap_pct,
            "sharpe": self.sharpe,
        }


def summarize_group(
    key: Hashable, members: Sequence[Observation], mode: DisplayMode
) -> GroupAggregate:
    """Reduce one non-empty group to a GroupAggregate."""
    n = len(members)
    notionals = [m.notional for m in members]
    first = members[0]
    return GroupAggregate(
        key=key,
        count=n,
        captured_alpha=MetricSummary.from_values([m.alpha(mode) for m in members]),
        ref_gap=MetricSummary.from_values([m.gap(mode) for m in members]),
        timing_diff=MetricSummary.from_values([m.timing(mode) for m in members]),
        avg_notional=mean(notionals),
        total_notional=float(sum(notionals)),
        consistency_pct=sum(1 for m in members if m.dir_consistency) / n * 100,
        up_gap_pct=sum(1 for m in members if m.gap_direction.value == "UP") / n * 100,
        company=first.company,
        asset_type=first.asset_type.value,
        sector=first.sector,
    )


def aggregate_groups(
    observations: Sequence[Observation],
    key_fn: KeyFn,
    mode: DisplayMode = DisplayMode.WINSORIZED,
    min_count: int = 1,
) -> List[GroupAggregate]:
    """
    Aggregate every group with at least ``min_count`` members.

    Output follows first-seen key order.
    """
    validate_range("min_count", min_count, 1)
    return [
        summarize_group(key, members, mode)
        for key, members in group_by(observations, key_fn).items()
        if len(members) >= min_count
    ]


@log_performance(threshold_ms=1000)
def screen_symbols(
    observations: Sequence[Observation],
    mode: DisplayMode = DisplayMode.WINSORIZED,
    min_obs: int = 3,
    asset_type: str = "all",
) -> List[GroupAggregate]:
    """
    Per-symbol aggregates for the screener.

    Args:
        observations: Filtered view
        mode: Display mode for the bps metrics
        min_obs: Minimum observations per symbol
        asset_type: "all", "Stock" or "ETF"
    """
    rows = aggregate_groups(observations, by_symbol, mode, min_count=min_obs)
    if asset_type != "all":
        rows = [r for r in rows if r.asset_type == asset_type]
    logger.debug(f"Screener kept {len(rows)} symbols (min_obs={min_obs}, asset_type={asset_type})")
    return rows


def sort_aggregates(
    rows: Sequence[GroupAggregate], column: str, ascending: bool = False
) -> List[GroupAggregate]:
    """
    Sort aggregates by one of the ``GroupAggregate.to_dict`` columns.

    String columns compare case-insensitively under the current locale's
    collation, with the original string breaking ties; numeric columns sort
    by value. Rows with equal values may come out in any order.

    Raises:
        InvalidArgumentError: If the column does not exist
    """
    if not rows:
        return []
    flat = [(r, r.to_dict()) for r in rows]
    if column not in flat[0][1]:
        raise InvalidArgumentError(
            detail=f"Unknown sort column: {column}",
            context={"column": column},
        )

    if isinstance(flat[0][1][column], str):
        def sort_key(item):
            value = item[1][column] or ""
            return (locale.strxfrm(value.casefold()), value)
    else:
        def sort_key(item):
            value = item[1][column]
            return value if value is not None else 0.0

    return [r for r, _ in sorted(flat, key=sort_key, reverse=not ascending)]


def aggregates_to_frame(rows: Sequence[GroupAggregate]) -> pd.DataFrame:
    """Flatten aggregates into a DataFrame, one row per group."""
    if not rows:
        return pd.DataFrame()
    return pd.DataFrame([r.to_dict() for r in rows])


# =============================================================================
# Series and Breakdowns
# =============================================================================


def daily_series(
    observations: Sequence[Observation],
    dates: Sequence[str],
    mode: DisplayMode = DisplayMode.WINSORIZED,
) -> pd.DataFrame:
    """
    Per-session totals indexed by date.

    Columns: notional, volume, count, consistency_pct, avg_captured_alpha.
    Dates with no observations are reported as zeros.
    """
    groups = group_by(observations, by_date)
    records = []
    for d in dates:
        members = groups.get(d, [])
        n = len(members)
        records.append(
            {
                "date": d,
                "notional": float(sum(m.notional for m in members)),
                "volume": int(sum(m.volume for m in members)),
                "count": n,
                "consistency_pct": (
                    sum(1 for m in members if m.dir_consistency) / n * 100 if n else 0.0
                ),
                "avg_captured_alpha": mean([m.alpha(mode) for m in members]),
            }
        )
    columns = ["date", "notional", "volume", "count", "consistency_pct", "avg_captured_alpha"]
    return pd.DataFrame(records, columns=columns).set_index("date")


def size_tier_breakdown(observations: Sequence[Observation]) -> pd.DataFrame:
    """
    Observations bucketed by notional into the position size tiers.

    Each tier covers ``[lower bound, previous tier's lower bound)``.
    """
    total_notional = sum(o.notional for o in observations)
    records = []
    upper = float("inf")
    for label, lower in SIZE_TIERS:
        members = [o for o in observations if lower <= o.notional < upper]
        upper = lower

        n = len(members)
        notional = float(sum(m.notional for m in members))
        records.append(
            {
                "tier": label,
                "count": n,
                "notional": notional,
                "notional_pct": notional / total_notional * 100 if total_notional else 0.0,
                "avg_size": notional / n if n else 0.0,
                "consistency_pct": (
                    sum(1 for m in members if m.dir_consistency) / n * 100 if n else 0.0
                ),
            }
        )
    return pd.DataFrame(records)


@dataclass
class DatasetSummary:
    """Headline figures for a filtered view."""

    observations: int
    unique_symbols: int
    total_notional: float
    total_volume: int
    total_executions: int
    avg_notional: float
    avg_captured_alpha: float
    avg_ref_gap: float
    avg_timing_diff: float
    consistency_pct: float
    trading_days: int
    daily_avg_notional: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "observations": self.observations,
            "unique_symbols": self.unique_symbols,
            "total_notional": self.total_notional,
            "total_volume": self.total_volume,
            "total_executions": self.total_executions,
            "avg_notional": self.avg_notional,
            "avg_captured_alpha": self.avg_captured_alpha,
            "avg_ref_gap": self.avg_ref_gap,
            "avg_timing_diff": self.avg_timing_diff,
            "consistency_pct": self.consistency_pct,
            "trading_days": self.trading_days,
            "daily_avg_notional": self.daily_avg_notional,
        }


def dataset_summary(
    observations: Sequence[Observation],
    mode: DisplayMode = DisplayMode.WINSORIZED,
    trading_days: int = 0,
) -> DatasetSummary:
    """Totals and averages for a view; all zeros for an empty view."""
    n = len(observations)
    total_notional = float(sum(o.notional for o in observations))
    return DatasetSummary(
        observations=n,
        unique_symbols=len({o.symbol for o in observations}),
        total_notional=total_notional,
        total_volume=int(sum(o.volume for o in observations)),
        total_executions=int(sum(o.executions for o in observations)),
        avg_notional=total_notional / n if n else 0.0,
        avg_captured_alpha=mean([o.alpha(mode) for o in observations]),
        avg_ref_gap=mean([o.gap(mode) for o in observations]),
        avg_timing_diff=mean([o.timing(mode) for o in observations]),
        consistency_pct=(
            sum(1 for o in observations if o.dir_consistency) / n * 100 if n else 0.0
        ),
        trading_days=trading_days,
        daily_avg_notional=total_notional / trading_days if trading_days else 0.0,
    )
