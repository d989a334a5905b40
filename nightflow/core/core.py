"""
Nightflow Core Module

Main Nightflow class that holds a loaded dataset and coordinates the
analytics over its current filtered view.
"""

import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

import numpy as np
import pandas as pd

from nightflow.analytics.aggregation import (
    DatasetSummary,
    GroupAggregate,
    aggregate_groups,
    by_sector,
    daily_series,
    dataset_summary,
    screen_symbols,
    size_tier_breakdown,
    sort_aggregates,
)
from nightflow.analytics.clustering import ClusteringReport, cluster_observations
from nightflow.analytics.correlation import correlation_matrix, quadrant_summary
from nightflow.analytics.regimes import (
    RegimeAnalysis,
    daily_metric_series,
    day_of_week_profile,
    detect_regimes,
    rolling_volatility,
    summary_series,
)
from nightflow.analytics.risk import GroupRiskRow, RiskSummary, group_risk_table, risk_summary
from nightflow.config.logging import (
    LogContext,
    analytics_logger,
    clear_run_context,
    log_with_context,
    set_run_context,
)
from nightflow.config.settings import AnalyticsSettings, get_settings
from nightflow.data.loader import load_payload
from nightflow.data.models import (
    Dataset,
    DatasetMeta,
    DisplayMode,
    FilterCriteria,
    FilteredView,
    apply_filters,
    list_sectors,
)

logger = logging.getLogger(__name__)


class Nightflow:
    """
    Entry point for overnight flow analytics.

    Holds the dataset, its metadata, the active filter criteria and display
    mode. Every analysis runs over the current filtered view; changing the
    criteria re-derives the view.
    """

    def __init__(
        self,
        dataset: Dataset,
        meta: DatasetMeta,
        settings: Optional[AnalyticsSettings] = None,
    ):
        """
        Initialize Nightflow over a decoded dataset.

        Args:
            dataset: Observations in load order
            meta: Dataset metadata block
            settings: Analytics settings (environment defaults when None)
        """
        self.dataset: Dataset = tuple(dataset)
        self.meta = meta
        self.settings = settings or get_settings()
        self.mode = DisplayMode.from_flag(self.settings.WINSORIZED)
        self.criteria = FilterCriteria()
        self.view: FilteredView = self.dataset
        logger.info(f"Nightflow initialized with {len(self.dataset)} observations")

    @classmethod
    def from_file(
        cls,
        path: Union[str, Path],
        settings: Optional[AnalyticsSettings] = None,
    ) -> "Nightflow":
        """Load a dashboard payload file and wrap it."""
        dataset, meta = load_payload(path)
        return cls(dataset, meta, settings=settings)

    # -------------------------------------------------------------------------
    # View state
    # -------------------------------------------------------------------------

    def set_filters(self, criteria: Optional[FilterCriteria] = None, **kwargs: Any) -> FilteredView:
        """
        Replace the filter criteria and re-derive the view.

        Either pass a FilterCriteria or its fields as keyword arguments.
        """
        self.criteria = criteria or FilterCriteria(**kwargs)
        self.view = apply_filters(self.dataset, self.criteria)
        log_with_context(
            logger,
            logging.INFO,
            f"Filter applied: {len(self.view)} of {len(self.dataset)} observations",
            filtered=len(self.view),
            total=len(self.dataset),
        )
        return self.view

    def set_mode(self, mode: Union[DisplayMode, str]) -> None:
        self.mode = DisplayMode(mode)

    @property
    def dates(self) -> List[str]:
        return list(self.meta.dates)

    def sectors(self) -> List[str]:
        return list_sectors(self.dataset)

    def _rng(self) -> np.random.Generator:
        return np.random.default_rng(self.settings.RANDOM_SEED)

    @contextmanager
    def _analysis(self, analysis_type: str) -> Iterator[Dict[str, Any]]:
        """
        Run one analysis under a fresh run id.

        Records logged inside the block carry the analysis type and run id.
        The caller may set ``result_count`` on the yielded dict; it is
        reported with the completion event.
        """
        run_id = set_run_context()
        outcome: Dict[str, Any] = {}
        start = time.perf_counter()
        try:
            with LogContext(logger, analysis=analysis_type, run_id=run_id):
                yield outcome
                analytics_logger.log_analysis_complete(
                    analysis_type=analysis_type,
                    rows=len(self.view),
                    mode=self.mode.value,
                    duration_ms=(time.perf_counter() - start) * 1000,
                    result_count=outcome.get("result_count"),
                )
        finally:
            clear_run_context()

    # -------------------------------------------------------------------------
    # Analyses
    # -------------------------------------------------------------------------

    def summary(self) -> DatasetSummary:
        """Headline totals for the current view."""
        return dataset_summary(self.view, self.mode, self.meta.trading_days)

    def daily(self) -> pd.DataFrame:
        """Per-session totals for every trading date."""
        return daily_series(self.view, self.dates, self.mode)

    def size_tiers(self) -> pd.DataFrame:
        return size_tier_breakdown(self.view)

    def screener(
        self,
        min_obs: Optional[int] = None,
        asset_type: str = "all",
        sort_by: str = "avg_captured_alpha",
        ascending: bool = False,
    ) -> List[GroupAggregate]:
        """
        Per-symbol aggregates for the screener, sorted.

        Args:
            min_obs: Minimum observations per symbol (settings default when None)
            asset_type: "all", "Stock" or "ETF"
            sort_by: A ``GroupAggregate.to_dict`` column
            ascending: Sort direction
        """
        min_obs = min_obs if min_obs is not None else self.settings.SCREENER_MIN_OBS
        with self._analysis("screener") as outcome:
            rows = screen_symbols(self.view, self.mode, min_obs=min_obs, asset_type=asset_type)
            rows = sort_aggregates(rows, sort_by, ascending)
            outcome["result_count"] = len(rows)
        return rows

    def sector_breakdown(self, min_count: int = 1) -> List[GroupAggregate]:
        return aggregate_groups(self.view, by_sector, self.mode, min_count=min_count)

    def clustering(
        self,
        k: Optional[int] = None,
        features: Optional[List[str]] = None,
    ) -> ClusteringReport:
        """
        Cluster the current view.

        Uses the configured k, features and iteration cap unless overridden.
        A configured RANDOM_SEED makes the result reproducible.
        """
        with self._analysis("clustering") as outcome:
            report = cluster_observations(
                self.view,
                features or self.settings.CLUSTER_FEATURES,
                k if k is not None else self.settings.CLUSTER_K,
                mode=self.mode,
                rng=self._rng(),
                max_iter=self.settings.CLUSTER_MAX_ITER,
            )
            outcome["result_count"] = report.result.k
        return report

    def risk(self, confidence: Optional[float] = None) -> RiskSummary:
        """Tail risk and concentration of the current view."""
        with self._analysis("risk"):
            result = risk_summary(
                self.view,
                self.mode,
                confidence if confidence is not None else self.settings.RISK_CONFIDENCE,
                gini_method=self.settings.GINI_METHOD,
            )
        return result

    def sector_risk(self) -> List[GroupRiskRow]:
        """Per-sector risk table for sectors with enough observations."""
        return group_risk_table(
            self.view,
            by_sector,
            self.mode,
            min_count=self.settings.GROUP_RISK_MIN_COUNT,
        )

    def regimes(self, window: Optional[int] = None, source: str = "summary") -> RegimeAnalysis:
        """
        Regime detection over the daily average captured alpha.

        Args:
            window: Rolling window (settings default when None)
            source: "summary" reads the upstream daily summary; "view"
                recomputes the daily averages from the filtered view
        """
        window = window if window is not None else self.settings.REGIME_WINDOW
        if source == "summary":
            series = summary_series(self.meta.daily_summary, self.dates, "avg_ca")
        elif source == "view":
            series = daily_metric_series(self.view, self.dates, self.mode)
        else:
            raise ValueError(f"Unknown regime source: {source}")

        with self._analysis("regimes") as outcome:
            result = detect_regimes(series, window)
            outcome["result_count"] = len(result.runs)
        return result

    def volatility(self, window: Optional[int] = None) -> List[Optional[float]]:
        """Rolling mean of the daily timing-differential dispersion."""
        window = window if window is not None else self.settings.REGIME_WINDOW
        return rolling_volatility(self.meta.daily_summary, self.dates, window)

    def day_of_week(self) -> pd.DataFrame:
        return day_of_week_profile(self.view, self.mode)

    def correlations(self) -> pd.DataFrame:
        with self._analysis("correlation"):
            matrix = correlation_matrix(self.view, self.mode)
        return matrix

    def quadrants(self) -> pd.DataFrame:
        return quadrant_summary(self.view, self.mode)

    def health_check(self) -> Dict[str, Union[bool, str, int]]:
        """
        Check the state of the loaded dataset.

        Returns:
            Dictionary with dataset and view status
        """
        return {
            "core": True,
            "status": "operational" if self.dataset else "empty",
            "observations": len(self.dataset),
            "filtered": len(self.view),
            "mode": self.mode.value,
        }
