"""
Observation and Dataset Models

Immutable records for overnight execution observations, the display-mode
switch that selects winsorized or full-range metrics, filter criteria that
derive a filtered view, and the dataset metadata block.
"""

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class AssetType(str, Enum):
    STOCK = "Stock"
    ETF = "ETF"


class GapDirection(str, Enum):
    UP = "UP"
    DOWN = "DOWN"


class DisplayMode(str, Enum):
    """Which variant of the bps metrics is read."""

    WINSORIZED = "winsorized"
    FULL_RANGE = "full_range"

    @classmethod
    def from_flag(cls, winsorized: bool) -> "DisplayMode":
        return cls.WINSORIZED if winsorized else cls.FULL_RANGE


@dataclass(frozen=True)
class Observation:
    """One symbol-date overnight session."""

    symbol: str
    date: str
    company: str
    sector: str
    asset_type: AssetType
    notional: float
    volume: int
    executions: int
    timing_diff: float
    timing_diff_w: float
    ref_gap: float
    ref_gap_w: float
    captured_alpha: float
    captured_alpha_w: float
    total_gap: float
    gap_direction: GapDirection
    dir_consistency: bool
    is_outlier: bool = False
    vwap: Optional[float] = None
    prior_close: Optional[float] = None
    next_open: Optional[float] = None
    next_close: Optional[float] = None
    market_cap: Optional[float] = None
    leverage_mult: Optional[str] = None

    def alpha(self, mode: DisplayMode) -> float:
        """Captured alpha in bps for the given display mode."""
        if mode is DisplayMode.WINSORIZED:
            return self.captured_alpha_w
        return self.captured_alpha

    def gap(self, mode: DisplayMode) -> float:
        """Reference gap in bps for the given display mode."""
        if mode is DisplayMode.WINSORIZED:
            return self.ref_gap_w
        return self.ref_gap

    def timing(self, mode: DisplayMode) -> float:
        """Timing differential in bps for the given display mode."""
        if mode is DisplayMode.WINSORIZED:
            return self.timing_diff_w
        return self.timing_diff

    @property
    def session_date(self) -> date:
        return date.fromisoformat(self.date)

    @property
    def vs_open_bps(self) -> Optional[float]:
        """Move from execution VWAP to next open, in bps."""
        if not self.vwap or not self.next_open:
            return None
        return (self.next_open - self.vwap) / self.vwap * 10000

    @property
    def vs_close_bps(self) -> Optional[float]:
        """Move from execution VWAP to next close, in bps."""
        if not self.vwap or not self.next_close:
            return None
        return (self.next_close - self.vwap) / self.vwap * 10000

    def to_dict(self, mode: Optional[DisplayMode] = None) -> Dict[str, Any]:
        """
        Convert to a flat dictionary.

        When ``mode`` is given, the selected bps variants are added as
        ``captured_alpha_bps``, ``ref_gap_bps`` and ``timing_diff_bps``.
        """
        result = {
            "symbol": self.symbol,
            "date": self.date,
            "company": self.company,
            "sector": self.sector,
            "asset_type": self.asset_type.value,
            "notional": self.notional,
            "volume": self.volume,
            "executions": self.executions,
            "vwap": self.vwap,
            "prior_close": self.prior_close,
            "next_open": self.next_open,
            "next_close": self.next_close,
            "timing_diff": self.timing_diff,
            "timing_diff_w": self.timing_diff_w,
            "ref_gap": self.ref_gap,
            "ref_gap_w": self.ref_gap_w,
            "captured_alpha": self.captured_alpha,
            "captured_alpha_w": self.captured_alpha_w,
            "total_gap": self.total_gap,
            "gap_direction": self.gap_direction.value,
            "dir_consistency": self.dir_consistency,
            "is_outlier": self.is_outlier,
            "market_cap": self.market_cap,
            "leverage_mult": self.leverage_mult,
        }
        if mode is not None:
            result["captured_alpha_bps"] = self.alpha(mode)
            result["ref_gap_bps"] = self.gap(mode)
            result["timing_diff_bps"] = self.timing(mode)
        return result


# Load order is preserved; duplicate symbol+date rows are allowed.
Dataset = Tuple[Observation, ...]
FilteredView = Tuple[Observation, ...]


@dataclass(frozen=True)
class FilterCriteria:
    """Predicates that derive a filtered view from the dataset."""

    asset_type: str = "all"
    sector: str = "all"
    min_notional: float = 0.0
    symbol_contains: str = ""
    gap_direction: str = "all"

    def matches(self, obs: Observation) -> bool:
        if self.asset_type != "all" and obs.asset_type.value != self.asset_type:
            return False
        if self.sector != "all" and obs.sector != self.sector:
            return False
        if obs.notional < self.min_notional:
            return False
        if self.symbol_contains and self.symbol_contains.upper() not in obs.symbol.upper():
            return False
        if self.gap_direction != "all" and obs.gap_direction.value != self.gap_direction:
            return False
        return True


def apply_filters(
    observations: Sequence[Observation], criteria: Optional[FilterCriteria] = None
) -> FilteredView:
    """
    Select the subsequence of observations matching the criteria.

    Args:
        observations: Dataset in load order
        criteria: Filter predicates (no filtering when None)

    Returns:
        Filtered view preserving the original order
    """
    if criteria is None:
        return tuple(observations)
    view = tuple(obs for obs in observations if criteria.matches(obs))
    logger.debug(f"Filtered {len(observations)} observations to {len(view)}")
    return view


def list_sectors(observations: Sequence[Observation]) -> List[str]:
    """Sorted distinct sectors, excluding blanks and 'Unknown'."""
    return sorted({o.sector for o in observations if o.sector and o.sector != "Unknown"})


# =============================================================================
# Dataset Metadata
# =============================================================================


class WinsorBounds(BaseModel):
    """Lower/upper clipping bounds in bps per winsorized metric."""

    model_config = ConfigDict(extra="ignore")

    ca: Optional[Tuple[float, float]] = None
    td: Optional[Tuple[float, float]] = None
    rg: Optional[Tuple[float, float]] = None


class DailySummary(BaseModel):
    """Per-session summary statistics computed upstream."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    avg_ca: float = Field(default=0.0, alias="avgCa")
    std_td: float = Field(default=0.0, alias="stdTd")


class DateGap(BaseModel):
    """Missing-session gap between two consecutive dates."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    from_date: str = Field(alias="from")
    to_date: str = Field(alias="to")


class DatasetMeta(BaseModel):
    """Metadata block supplied with the dataset."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    date_range: Tuple[str, str] = Field(alias="dateRange")
    trading_days: int = Field(alias="tradingDays", ge=0)
    generated: Optional[str] = None
    winsor: WinsorBounds = Field(default_factory=WinsorBounds)
    daily_summary: Optional[Dict[str, DailySummary]] = Field(
        default=None, alias="dailySummary"
    )
    date_gaps: List[DateGap] = Field(default_factory=list, alias="dateGaps")
    dates: List[str] = Field(default_factory=list)
