"""
Shared test fixtures for Nightflow test suite.
"""

import pytest
import numpy as np

from nightflow.config.settings import AnalyticsSettings
from nightflow.data.models import (
    AssetType,
    DatasetMeta,
    GapDirection,
    Observation,
)

# Monday 2024-01-08 through Friday 2024-01-12
WEEK_DATES = ["2024-01-08", "2024-01-09", "2024-01-10", "2024-01-11", "2024-01-12"]


def build_observation(
    symbol="ABC",
    date="2024-01-08",
    ca=0.0,
    rg=0.0,
    td=0.0,
    notional=1_000_000.0,
    **overrides,
):
    """
    Build an Observation with sensible defaults.

    ``ca``, ``rg`` and ``td`` set both the full-range and winsorized variants;
    pass ``captured_alpha_w`` etc. explicitly to make them differ.
    """
    fields = dict(
        symbol=symbol,
        date=date,
        company=f"{symbol} Corp",
        sector="Technology",
        asset_type=AssetType.STOCK,
        notional=notional,
        volume=10_000,
        executions=5,
        timing_diff=td,
        timing_diff_w=td,
        ref_gap=rg,
        ref_gap_w=rg,
        captured_alpha=ca,
        captured_alpha_w=ca,
        total_gap=rg + td,
        gap_direction=GapDirection.UP if rg >= 0 else GapDirection.DOWN,
        dir_consistency=ca > 0,
    )
    fields.update(overrides)
    return Observation(**fields)


@pytest.fixture
def make_observation():
    """Factory fixture for Observation records."""
    return build_observation


@pytest.fixture
def abc_observations():
    """Five sessions of symbol ABC with known captured alpha and notional."""
    alphas = [10.0, -5.0, 20.0, 15.0, -30.0]
    notionals = [1e6, 2e6, 1.5e6, 3e6, 2.5e6]
    consistency = [True, False, True, True, False]
    return [
        build_observation(
            symbol="ABC",
            date=d,
            ca=ca,
            rg=ca / 2,
            td=ca / 2,
            notional=n,
            dir_consistency=c,
        )
        for d, ca, n, c in zip(WEEK_DATES, alphas, notionals, consistency)
    ]


@pytest.fixture
def mixed_observations(abc_observations):
    """ABC plus a second stock and an ETF across the same week."""
    others = []
    for i, d in enumerate(WEEK_DATES):
        others.append(
            build_observation(
                symbol="XYZ",
                date=d,
                ca=5.0 + i,
                rg=-4.0,
                td=3.0,
                notional=500_000.0,
                sector="Energy",
            )
        )
    for i, d in enumerate(WEEK_DATES[:3]):
        others.append(
            build_observation(
                symbol="TQQQ",
                date=d,
                ca=-2.0,
                rg=-1.0,
                td=-1.0,
                notional=20_000_000.0,
                sector="ETF",
                asset_type=AssetType.ETF,
                leverage_mult="3x",
            )
        )
    return abc_observations + others


@pytest.fixture
def sample_meta():
    """Dataset metadata covering the fixture week."""
    return DatasetMeta.model_validate(
        {
            "dateRange": [WEEK_DATES[0], WEEK_DATES[-1]],
            "tradingDays": len(WEEK_DATES),
            "generated": "2024-01-13T06:00:00",
            "winsor": {"ca": [-100, 100], "td": [-80, 80], "rg": [-90, 90]},
            "dailySummary": {
                d: {"avgCa": v, "stdTd": 10.0 + i}
                for i, (d, v) in enumerate(zip(WEEK_DATES, [4.0, 6.0, 8.0, 2.0, 5.0]))
            },
            "dateGaps": [],
            "dates": WEEK_DATES,
        }
    )


@pytest.fixture
def seeded_settings():
    """Settings with a fixed seed and small windows for deterministic runs."""
    return AnalyticsSettings(
        RANDOM_SEED=42,
        CLUSTER_K=2,
        REGIME_WINDOW=3,
        SCREENER_MIN_OBS=1,
        GROUP_RISK_MIN_COUNT=2,
    )


@pytest.fixture
def rng():
    """Seeded random generator."""
    return np.random.default_rng(42)


@pytest.fixture
def sample_payload():
    """Compact dashboard payload with two rows."""
    return {
        "meta": {
            "dateRange": ["2024-01-08", "2024-01-09"],
            "tradingDays": 2,
            "dailySummary": {
                "2024-01-08": {"avgCa": 12.5, "stdTd": 30.0},
                "2024-01-09": {"avgCa": -3.0, "stdTd": 25.0},
            },
        },
        "lookup": {
            "symbols": ["ABC", "SPY"],
            "companies": ["ABC Corp", "SPDR S&P 500"],
            "dates": ["2024-01-08", "2024-01-09"],
            "sectors": ["Technology", "ETF"],
        },
        "data": [
            [0, 0, 0, 0, 0, 1250000.0, 5000, 12, 250.0, 248.0, 251.0, 252.5,
             40.0, 38.0, 80.0, 75.0, 120.0, 1, 1, 0, 3.2e9, "", 40.0, 38.0],
            [1, 1, 1, 1, 1, 8000000.0, 16000, 30, 500.0, 502.0, 499.0, 498.0,
             -20.0, -20.0, -40.0, -40.0, -60.0, 0, 1, 0, None, "1x", 20.0, 20.0],
        ],
    }


@pytest.fixture
def week_dates():
    """Trading dates Monday 2024-01-08 through Friday 2024-01-12."""
    return list(WEEK_DATES)
