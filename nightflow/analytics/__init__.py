# Nightflow Analytics Module

from nightflow.analytics.statistics import (
    DistributionStats,
    describe,
    histogram_bins,
    kurtosis,
    mean,
    median,
    pearson_corr,
    percentile,
    rolling_mean,
    skewness,
    std_dev,
)
from nightflow.analytics.features import (
    FEATURE_LABELS,
    Feature,
    NormalizedFeatures,
    feature_matrix,
    feature_value,
    normalize_features,
)
from nightflow.analytics.clustering import (
    ClusteringReport,
    ClusterProfile,
    ClusterResult,
    cluster_observations,
    kmeans,
)
from nightflow.analytics.correlation import (
    CorrelationMetric,
    Quadrant,
    QUADRANT_INFO,
    correlation_matrix,
    normalize_columns,
    quadrant,
    quadrant_summary,
)
from nightflow.analytics.aggregation import (
    DatasetSummary,
    GroupAggregate,
    MetricSummary,
    SIZE_TIERS,
    aggregate_groups,
    aggregates_to_frame,
    by_asset_type,
    by_date,
    by_day_of_week,
    by_leverage,
    by_quadrant,
    by_sector,
    by_symbol,
    daily_series,
    dataset_summary,
    group_by,
    screen_symbols,
    size_tier_breakdown,
    sort_aggregates,
)
from nightflow.analytics.risk import (
    GroupRiskRow,
    LorenzCurve,
    RiskSummary,
    conditional_var,
    gini_coefficient,
    group_risk_table,
    lorenz_curve,
    parametric_var,
    risk_summary,
    sharpe_ratio,
    top_decile_concentration,
    value_at_risk,
)
from nightflow.analytics.regimes import (
    Regime,
    RegimeAnalysis,
    RegimeRun,
    classify_regimes,
    daily_metric_series,
    day_of_week_profile,
    detect_regimes,
    regime_runs,
    rolling_volatility,
)

__all__ = [
    # Statistics
    "DistributionStats",
    "describe",
    "histogram_bins",
    "kurtosis",
    "mean",
    "median",
    "pearson_corr",
    "percentile",
    "rolling_mean",
    "skewness",
    "std_dev",
    # Features
    "FEATURE_LABELS",
    "Feature",
    "NormalizedFeatures",
    "feature_matrix",
    "feature_value",
    "normalize_features",
    # Clustering
    "ClusteringReport",
    "ClusterProfile",
    "ClusterResult",
    "cluster_observations",
    "kmeans",
    # Correlation
    "CorrelationMetric",
    "Quadrant",
    "QUADRANT_INFO",
    "correlation_matrix",
    "normalize_columns",
    "quadrant",
    "quadrant_summary",
    # Aggregation
    "DatasetSummary",
    "GroupAggregate",
    "MetricSummary",
    "SIZE_TIERS",
    "aggregate_groups",
    "aggregates_to_frame",
    "by_asset_type",
    "by_date",
    "by_day_of_week",
    "by_leverage",
    "by_quadrant",
    "by_sector",
    "by_symbol",
    "daily_series",
    "dataset_summary",
    "group_by",
    "screen_symbols",
    "size_tier_breakdown",
    "sort_aggregates",
    # Risk
    "GroupRiskRow",
    "LorenzCurve",
    "RiskSummary",
    "conditional_var",
    "gini_coefficient",
    "group_risk_table",
    "lorenz_curve",
    "parametric_var",
    "risk_summary",
    "sharpe_ratio",
    "top_decile_concentration",
    "value_at_risk",
    # Regimes
    "Regime",
    "RegimeAnalysis",
    "RegimeRun",
    "classify_regimes",
    "daily_metric_series",
    "day_of_week_profile",
    "detect_regimes",
    "regime_runs",
    "rolling_volatility",
]
