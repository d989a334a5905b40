"""
Nightflow Logging Configuration

Structured logging with JSON format support, analysis-run correlation,
performance tracking and configurable log levels.
"""

import json
import logging
import os
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, Dict, Optional, TypeVar

# Context variable for analysis-run correlation
run_id_var: ContextVar[Optional[str]] = ContextVar("run_id", default=None)


# =============================================================================
# Log Level Strategy
# =============================================================================
#
# DEBUG   - Iteration counts, seeding fallbacks, degenerate statistics
# INFO    - Dataset loaded, analysis complete with timing
# WARNING - Clustering hitting the iteration cap, slow analyses
# ERROR   - Structural misuse surfaced to the caller
# =============================================================================


class StructuredFormatter(logging.Formatter):
    """
    JSON structured log formatter.

    Emits one JSON object per record; fields passed with a ``ctx_`` prefix in
    ``extra`` are flattened into the payload.
    """

    def __init__(self, service_name: str = "nightflow", environment: str = "development"):
        super().__init__()
        self.service_name = service_name
        self.environment = environment
        self.hostname = os.uname().nodename if hasattr(os, "uname") else None

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "level_num": record.levelno,
            "service": self.service_name,
            "environment": self.environment,
            "hostname": self.hostname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
            "run_id": run_id_var.get(),
            "process_id": record.process,
        }

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        for key, value in record.__dict__.items():
            if key.startswith("ctx_"):
                log_data[key[4:]] = value

        log_data = {k: v for k, v in log_data.items() if v is not None}

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable console formatter for development."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        run_id = run_id_var.get()
        run_str = f"[{run_id[:8]}]" if run_id else ""

        formatted = (
            f"{timestamp} {color}{record.levelname:8}{self.RESET} "
            f"{run_str} {record.name} - {record.getMessage()}"
        )

        extras = []
        for key, value in record.__dict__.items():
            if key.startswith("ctx_"):
                extras.append(f"{key[4:]}={value}")
        if extras:
            formatted += f" | {', '.join(extras)}"

        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"

        return formatted


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    service_name: str = "nightflow",
    environment: str = "development",
    log_file: Optional[str] = None,
) -> None:
    """
    Configure logging for Nightflow.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON structured logging
        service_name: Service name for structured logs
        environment: Environment name
        log_file: Optional file path for log output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))
    root_logger.handlers.clear()

    if json_format:
        formatter: logging.Formatter = StructuredFormatter(service_name, environment)
    else:
        formatter = ConsoleFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredFormatter(service_name, environment))
        root_logger.addHandler(file_handler)

    # numexpr/matplotlib chatter when pandas is imported in notebooks
    logging.getLogger("numexpr").setLevel(logging.WARNING)
    logging.getLogger("matplotlib").setLevel(logging.WARNING)


# =============================================================================
# Run Context
# =============================================================================


def set_run_context(run_id: Optional[str] = None) -> str:
    """
    Set the analysis-run id used to correlate log lines.

    Args:
        run_id: Run ID (generated if not provided)

    Returns:
        The run ID being used
    """
    rid = run_id or str(uuid.uuid4())
    run_id_var.set(rid)
    return rid


def clear_run_context() -> None:
    run_id_var.set(None)


def get_run_id() -> Optional[str]:
    return run_id_var.get()


# =============================================================================
# Performance Logging Decorator
# =============================================================================

T = TypeVar("T")


def log_performance(
    threshold_ms: float = 1000.0,
    log_args: bool = False,
) -> Callable:
    """
    Decorator to log the wall time of an analysis function.

    Args:
        threshold_ms: Log a warning if execution exceeds this threshold
        log_args: Include function arguments in log

    Example:
        @log_performance(threshold_ms=500)
        def run_clustering(...):
            ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        logger = logging.getLogger(func.__module__)

        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            start_time = time.perf_counter()

            extra: Dict[str, Any] = {
                "ctx_function": func.__name__,
                "ctx_operation": "analysis",
            }

            if log_args:
                extra["ctx_args"] = str(args)[:200]
                extra["ctx_kwargs"] = str(kwargs)[:200]

            try:
                result = func(*args, **kwargs)
            except Exception as e:
                duration_ms = (time.perf_counter() - start_time) * 1000
                extra["ctx_duration_ms"] = round(duration_ms, 2)
                extra["ctx_status"] = "error"
                extra["ctx_error_type"] = type(e).__name__
                logger.error(
                    f"Analysis failed: {func.__name__} - {e}",
                    extra=extra,
                )
                raise

            duration_ms = (time.perf_counter() - start_time) * 1000
            extra["ctx_duration_ms"] = round(duration_ms, 2)
            extra["ctx_status"] = "success"

            if duration_ms > threshold_ms:
                logger.warning(
                    f"Slow analysis: {func.__name__} took {duration_ms:.2f}ms",
                    extra=extra,
                )
            else:
                logger.debug(
                    f"Analysis completed: {func.__name__} in {duration_ms:.2f}ms",
                    extra=extra,
                )

            return result

        return wrapper

    return decorator


# =============================================================================
# Structured Log Helpers
# =============================================================================


class LogContext:
    """Context manager for adding structured fields to logs within a block."""

    def __init__(self, logger: logging.Logger, **fields: Any):
        self.logger = logger
        self.fields = {f"ctx_{k}": v for k, v in fields.items()}
        self._old_factory = None

    def __enter__(self):
        old_factory = logging.getLogRecordFactory()
        self._old_factory = old_factory
        fields = self.fields

        def record_factory(*args, **kwargs):
            record = old_factory(*args, **kwargs)
            for key, value in fields.items():
                setattr(record, key, value)
            return record

        logging.setLogRecordFactory(record_factory)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._old_factory:
            logging.setLogRecordFactory(self._old_factory)


def log_with_context(logger: logging.Logger, level: int, message: str, **context: Any) -> None:
    """
    Log a message with additional context fields.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        message: Log message
        **context: Additional context fields
    """
    extra = {f"ctx_{k}": v for k, v in context.items()}
    logger.log(level, message, extra=extra)


# =============================================================================
# Analysis Event Logging
# =============================================================================


class AnalyticsLogger:
    """Logger for analysis-level events with structured context."""

    def __init__(self, logger_name: str = "nightflow.analytics.events"):
        self.logger = logging.getLogger(logger_name)

    def log_dataset_loaded(
        self,
        rows: int,
        symbols: int,
        trading_days: int,
        duration_ms: float,
    ) -> None:
        """Log dataset decode completion."""
        self.logger.info(
            f"Dataset loaded: {rows} observations, {symbols} symbols",
            extra={
                "ctx_event": "dataset_loaded",
                "ctx_rows": rows,
                "ctx_symbols": symbols,
                "ctx_trading_days": trading_days,
                "ctx_duration_ms": round(duration_ms, 2),
            },
        )

    def log_analysis_complete(
        self,
        analysis_type: str,
        rows: int,
        mode: str,
        duration_ms: float,
        result_count: Optional[int] = None,
    ) -> None:
        """Log analysis operation completion."""
        extra = {
            "ctx_event": "analysis_complete",
            "ctx_analysis_type": analysis_type,
            "ctx_rows": rows,
            "ctx_mode": mode,
            "ctx_duration_ms": round(duration_ms, 2),
        }
        if result_count is not None:
            extra["ctx_result_count"] = result_count

        self.logger.info(f"Analysis complete: {analysis_type} over {rows} rows", extra=extra)

    def log_degenerate(self, statistic: str, reason: str, sample_size: int) -> None:
        """Log a statistic that fell back to its conventional default."""
        from nightflow.core.errors import ErrorCodes

        self.logger.debug(
            f"Degenerate {statistic}: {reason}",
            extra={
                "ctx_event": "degenerate_computation",
                "ctx_code": str(ErrorCodes.COMPUTATION_DEGENERATE),
                "ctx_statistic": statistic,
                "ctx_sample_size": sample_size,
            },
        )


analytics_logger = AnalyticsLogger()
