"""
Nightflow Core Module

Main entry point and error handling.
"""

from .core import Nightflow
from .errors import (
    DataError,
    ErrorCategory,
    ErrorCode,
    ErrorCodes,
    ErrorSeverity,
    InvalidArgumentError,
    NightflowError,
    UnknownFeatureError,
)

__all__ = [
    "DataError",
    "ErrorCategory",
    "ErrorCode",
    "ErrorCodes",
    "ErrorSeverity",
    "InvalidArgumentError",
    "Nightflow",
    "NightflowError",
    "UnknownFeatureError",
]
