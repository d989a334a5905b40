"""
Nightflow Data Module

Observation records, filtering and payload decoding.
"""

from .loader import decode_payload, decode_row, load_payload
from .models import (
    AssetType,
    DailySummary,
    Dataset,
    DatasetMeta,
    DateGap,
    DisplayMode,
    FilterCriteria,
    FilteredView,
    GapDirection,
    Observation,
    WinsorBounds,
    apply_filters,
    list_sectors,
)

__all__ = [
    "AssetType",
    "DailySummary",
    "Dataset",
    "DatasetMeta",
    "DateGap",
    "DisplayMode",
    "FilterCriteria",
    "FilteredView",
    "GapDirection",
    "Observation",
    "WinsorBounds",
    "apply_filters",
    "decode_payload",
    "decode_row",
    "list_sectors",
    "load_payload",
]
