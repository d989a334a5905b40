"""
Nightflow Error Handling Module

Structured error codes and exception classes for the analytics layer.
Structural misuse (empty inputs, out-of-range parameters, unknown features)
fails fast with a typed exception; numerically degenerate inputs are handled
locally by the primitives and never raise.
"""

import logging
import traceback
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum, auto
from typing import Any, Dict, Optional, Sized

logger = logging.getLogger(__name__)

# =============================================================================
# Error Code Taxonomy
# =============================================================================


class ErrorCategory(Enum):
    """Top-level error categories."""

    DATA = "DATA"
    VALIDATION = "VALIDATION"
    COMPUTATION = "COMPUTATION"


class ErrorSeverity(Enum):
    """Error severity levels for monitoring and alerting."""

    DEBUG = auto()
    INFO = auto()
    WARNING = auto()
    ERROR = auto()
    CRITICAL = auto()


@dataclass
class ErrorCode:
    """Structured error code with metadata."""

    code: str
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    user_message: str
    recovery_hint: str = ""

    def __str__(self) -> str:
        return f"{self.category.value}_{self.code}"


class ErrorCodes:
    """Central registry of all Nightflow error codes."""

    # Data Errors (2xxx)
    DATA_INVALID_FORMAT = ErrorCode(
        code="2003",
        category=ErrorCategory.DATA,
        severity=ErrorSeverity.ERROR,
        message="Data payload format is invalid or unexpected",
        user_message="The dataset could not be decoded.",
        recovery_hint="Check that the payload contains meta, lookup and data blocks.",
    )

    DATA_INCOMPLETE = ErrorCode(
        code="2005",
        category=ErrorCategory.DATA,
        severity=ErrorSeverity.WARNING,
        message="Data row is incomplete",
        user_message="Some observation fields are missing.",
        recovery_hint="Regenerate the payload with the full column set.",
    )

    # Validation Errors (4xxx)
    VALIDATION_EMPTY_INPUT = ErrorCode(
        code="4001",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.WARNING,
        message="Input sequence is empty",
        user_message="There is no data to analyze.",
        recovery_hint="Relax the active filters so at least one observation remains.",
    )

    VALIDATION_INVALID_VALUE = ErrorCode(
        code="4004",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.WARNING,
        message="Argument value is invalid",
        user_message="One of the parameters is not valid.",
        recovery_hint="Check the allowed range for this parameter.",
    )

    VALIDATION_UNKNOWN_FEATURE = ErrorCode(
        code="4005",
        category=ErrorCategory.VALIDATION,
        severity=ErrorSeverity.WARNING,
        message="Unknown feature name",
        user_message="The selected feature is not supported.",
        recovery_hint=(
            "Use one of capturedAlpha, timingDiff, refGap, notional, volume, totalGap."
        ),
    )

    # Computation Errors (7xxx)
    COMPUTATION_DEGENERATE = ErrorCode(
        code="7001",
        category=ErrorCategory.COMPUTATION,
        severity=ErrorSeverity.INFO,
        message="Degenerate computation returned a conventional default",
        user_message="Not enough variation in the data for this statistic.",
        recovery_hint="Widen the sample before interpreting this value.",
    )


# =============================================================================
# Base Exception Classes
# =============================================================================


class NightflowError(Exception):
    """
    Base exception for all Nightflow errors.

    Provides structured error information including error codes,
    user-friendly messages, and recovery suggestions.
    """

    def __init__(
        self,
        error_code: ErrorCode,
        detail: Optional[str] = None,
        original_error: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.error_code = error_code
        self.detail = detail
        self.original_error = original_error
        self.context = context or {}
        self.debug_info: Dict[str, Any] = {}
        self.timestamp = datetime.now(timezone.utc)

        if original_error:
            self.debug_info["original_traceback"] = traceback.format_exception(
                type(original_error), original_error, original_error.__traceback__
            )

        super().__init__(self.technical_message)

    @property
    def code(self) -> str:
        """Full error code string."""
        return str(self.error_code)

    @property
    def category(self) -> ErrorCategory:
        return self.error_code.category

    @property
    def severity(self) -> ErrorSeverity:
        return self.error_code.severity

    @property
    def user_message(self) -> str:
        """User-friendly error message."""
        msg = self.error_code.user_message
        if self.detail:
            msg = f"{msg} ({self.detail})"
        return msg

    @property
    def technical_message(self) -> str:
        """Technical error message for logging."""
        msg = f"[{self.code}] {self.error_code.message}"
        if self.detail:
            msg = f"{msg}: {self.detail}"
        return msg

    @property
    def recovery_hint(self) -> str:
        return self.error_code.recovery_hint

    def to_dict(self, include_debug: bool = False) -> Dict[str, Any]:
        """
        Convert error to a plain dictionary for the presentation layer.

        Args:
            include_debug: Include context and traceback details
        """
        result = {
            "code": self.code,
            "category": self.category.value,
            "message": self.user_message,
            "recovery_hint": self.recovery_hint,
            "timestamp": self.timestamp.isoformat(),
        }

        if include_debug:
            result["debug"] = {
                "technical_message": self.technical_message,
                "context": self.context,
                "debug_info": self.debug_info,
            }

        return result

    def log(self) -> None:
        """Log the error with appropriate severity."""
        log_method = getattr(logger, self.severity.name.lower(), logger.error)
        log_method(
            self.technical_message,
            extra={"ctx_error_code": self.code, "ctx_context": self.context},
        )


class DataError(NightflowError):
    """Payload decoding errors."""

    def __init__(
        self,
        error_code: ErrorCode = ErrorCodes.DATA_INVALID_FORMAT,
        **kwargs,
    ):
        super().__init__(error_code, **kwargs)


class InvalidArgumentError(NightflowError, ValueError):
    """Empty input or out-of-range parameter passed to an analytics function."""

    def __init__(
        self,
        error_code: ErrorCode = ErrorCodes.VALIDATION_INVALID_VALUE,
        **kwargs,
    ):
        super().__init__(error_code, **kwargs)


class UnknownFeatureError(NightflowError, KeyError):
    """Feature name outside the closed feature set."""

    def __init__(self, feature: Any, **kwargs):
        self.feature = feature
        kwargs.setdefault("detail", f"{feature!r}")
        kwargs.setdefault("context", {"feature": str(feature)})
        super().__init__(ErrorCodes.VALIDATION_UNKNOWN_FEATURE, **kwargs)

    def __str__(self) -> str:
        return self.technical_message


# =============================================================================
# Validation Helpers
# =============================================================================


def require_non_empty(values: Sized, name: str = "values") -> None:
    """
    Fail fast when a structurally required input is empty.

    Raises:
        InvalidArgumentError: If ``values`` has no elements
    """
    if len(values) == 0:
        raise InvalidArgumentError(
            ErrorCodes.VALIDATION_EMPTY_INPUT,
            detail=f"{name} must not be empty",
            context={"argument": name},
        )


def validate_range(
    name: str,
    value: float,
    minimum: Optional[float] = None,
    maximum: Optional[float] = None,
) -> None:
    """
    Validate that a numeric parameter lies within inclusive bounds.

    Raises:
        InvalidArgumentError: If value is outside [minimum, maximum]
    """
    if (minimum is not None and value < minimum) or (
        maximum is not None and value > maximum
    ):
        raise InvalidArgumentError(
            detail=f"{name}={value} outside [{minimum}, {maximum}]",
            context={"argument": name, "value": value, "min": minimum, "max": maximum},
        )


__all__ = [
    "ErrorCategory",
    "ErrorSeverity",
    "ErrorCode",
    "ErrorCodes",
    "NightflowError",
    "DataError",
    "InvalidArgumentError",
    "UnknownFeatureError",
    "require_non_empty",
    "validate_range",
]
