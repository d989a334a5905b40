"""
Nightflow Configuration

Logging setup and analytics settings.
"""

from .logging import (
    AnalyticsLogger,
    LogContext,
    analytics_logger,
    clear_run_context,
    configure_logging,
    get_run_id,
    log_performance,
    log_with_context,
    set_run_context,
)
from .settings import AnalyticsSettings, get_settings

__all__ = [
    "AnalyticsLogger",
    "AnalyticsSettings",
    "LogContext",
    "analytics_logger",
    "clear_run_context",
    "configure_logging",
    "get_run_id",
    "get_settings",
    "log_performance",
    "log_with_context",
    "set_run_context",
]
