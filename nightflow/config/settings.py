"""
Nightflow Analytics Configuration

Defaults for the analytics pipeline (display mode, clustering, regime window,
screener and risk thresholds) using pydantic-settings for environment
variable management, with optional YAML overrides.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Optional, Union

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class AnalyticsSettings(BaseSettings):
    """
    Analytics pipeline configuration.

    Every value can be overridden with a ``NIGHTFLOW_`` prefixed environment
    variable, e.g. ``NIGHTFLOW_CLUSTER_K=5``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="NIGHTFLOW_",
        case_sensitive=False,
        extra="ignore",
    )

    # Display mode
    WINSORIZED: bool = Field(
        default=True,
        description="Read winsorized bps metrics by default instead of full-range values.",
    )

    # Clustering
    CLUSTER_K: int = Field(default=4, ge=2, le=8, description="Number of clusters.")
    CLUSTER_MAX_ITER: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Lloyd iteration cap.",
    )
    CLUSTER_FEATURES: List[str] = Field(
        default=["capturedAlpha", "refGap", "notional"],
        description="Feature names used for clustering.",
    )
    RANDOM_SEED: Optional[int] = Field(
        default=None,
        description="Seed for K-Means++ sampling; unset draws fresh entropy.",
    )

    # Regime detection
    REGIME_WINDOW: int = Field(
        default=10,
        ge=3,
        le=30,
        description="Rolling window in sessions.",
    )

    # Screener
    SCREENER_MIN_OBS: int = Field(
        default=3,
        ge=1,
        le=50,
        description="Minimum observations per symbol.",
    )

    # Risk
    RISK_CONFIDENCE: float = Field(
        default=95.0,
        gt=50.0,
        lt=100.0,
        description="Confidence level (percent) for VaR/CVaR.",
    )
    GROUP_RISK_MIN_COUNT: int = Field(
        default=10,
        ge=1,
        description="Minimum members per group in the sector risk table.",
    )
    GINI_METHOD: Literal["mean", "trapezoid"] = Field(
        default="trapezoid",
        description="Lorenz-curve integration used for the Gini coefficient.",
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Root log level.")
    LOG_JSON: bool = Field(default=False, description="Emit JSON structured logs.")

    @field_validator("CLUSTER_FEATURES", mode="before")
    @classmethod
    def parse_cluster_features(cls, v):
        """Parse features from a comma-separated string or list."""
        if isinstance(v, str):
            v = [name.strip() for name in v.split(",") if name.strip()]
        return v

    @field_validator("CLUSTER_FEATURES")
    @classmethod
    def validate_cluster_features(cls, v: List[str]) -> List[str]:
        from nightflow.analytics.features import Feature

        known = {f.value for f in Feature}
        unknown = [name for name in v if name not in known]
        if unknown:
            raise ValueError(f"Unknown cluster features: {', '.join(unknown)}")
        if len(set(v)) < 2:
            raise ValueError("At least two distinct cluster features are required")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "AnalyticsSettings":
        """
        Load settings from a YAML file.

        Keys are matched case-insensitively. File values take precedence
        over environment variables; unset keys fall back to the environment.

        Args:
            path: Path to a YAML mapping of setting names to values
        """
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Settings file {path} must contain a mapping")

        logger.info("Loaded analytics settings from %s", path)
        return cls(**{str(k).upper(): v for k, v in data.items()})


@lru_cache()
def get_settings() -> AnalyticsSettings:
    """Cached environment-derived settings."""
    return AnalyticsSettings()
