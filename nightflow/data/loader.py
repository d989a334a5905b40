"""
Dataset Payload Loader

Decodes the compact dashboard payload ``{"meta", "lookup", "data"}`` into
Observations. Each data row is a positional array; string columns are indices
into the lookup tables and boolean/enum columns are 1/0 flags.
"""

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from nightflow.config.logging import analytics_logger
from nightflow.core.errors import DataError, ErrorCodes
from nightflow.data.models import (
    AssetType,
    Dataset,
    DatasetMeta,
    GapDirection,
    Observation,
)

logger = logging.getLogger(__name__)

# Positional row layout
COL_SYMBOL = 0
COL_COMPANY = 1
COL_DATE = 2
COL_IS_ETF = 3
COL_SECTOR = 4
COL_NOTIONAL = 5
COL_VOLUME = 6
COL_EXECUTIONS = 7
COL_VWAP = 8
COL_PRIOR_CLOSE = 9
COL_NEXT_OPEN = 10
COL_NEXT_CLOSE = 11
COL_TIMING_DIFF = 12
COL_TIMING_DIFF_W = 13
COL_REF_GAP = 14
COL_REF_GAP_W = 15
COL_TOTAL_GAP = 16
COL_GAP_UP = 17
COL_DIR_CONSISTENCY = 18
COL_IS_OUTLIER = 19
COL_MARKET_CAP = 20
COL_LEVERAGE = 21
COL_CAPTURED_ALPHA = 22
COL_CAPTURED_ALPHA_W = 23

ROW_WIDTH = 24

LOOKUP_TABLES = ("symbols", "companies", "dates", "sectors")


def _optional_float(value: Any) -> Union[float, None]:
    return None if value is None else float(value)


def decode_row(row: Sequence[Any], lookup: Dict[str, List[str]]) -> Observation:
    """
    Decode one positional row into an Observation.

    Raises:
        DataError: If the row is short or references a missing lookup entry
    """
    if len(row) < ROW_WIDTH:
        raise DataError(
            ErrorCodes.DATA_INCOMPLETE,
            detail=f"expected {ROW_WIDTH} columns, got {len(row)}",
        )

    try:
        return Observation(
            symbol=lookup["symbols"][row[COL_SYMBOL]],
            company=lookup["companies"][row[COL_COMPANY]],
            date=lookup["dates"][row[COL_DATE]],
            asset_type=AssetType.ETF if row[COL_IS_ETF] == 1 else AssetType.STOCK,
            sector=lookup["sectors"][row[COL_SECTOR]],
            notional=float(row[COL_NOTIONAL]),
            volume=int(row[COL_VOLUME]),
            executions=int(row[COL_EXECUTIONS]),
            vwap=_optional_float(row[COL_VWAP]),
            prior_close=_optional_float(row[COL_PRIOR_CLOSE]),
            next_open=_optional_float(row[COL_NEXT_OPEN]),
            next_close=_optional_float(row[COL_NEXT_CLOSE]),
            timing_diff=float(row[COL_TIMING_DIFF]),
            timing_diff_w=float(row[COL_TIMING_DIFF_W]),
            ref_gap=float(row[COL_REF_GAP]),
            ref_gap_w=float(row[COL_REF_GAP_W]),
            total_gap=float(row[COL_TOTAL_GAP]),
            gap_direction=GapDirection.UP if row[COL_GAP_UP] == 1 else GapDirection.DOWN,
            dir_consistency=row[COL_DIR_CONSISTENCY] == 1,
            is_outlier=row[COL_IS_OUTLIER] == 1,
            market_cap=_optional_float(row[COL_MARKET_CAP]),
            leverage_mult=row[COL_LEVERAGE] or None,
            captured_alpha=float(row[COL_CAPTURED_ALPHA]),
            captured_alpha_w=float(row[COL_CAPTURED_ALPHA_W]),
        )
    except (IndexError, TypeError, ValueError) as e:
        raise DataError(
            ErrorCodes.DATA_INVALID_FORMAT,
            detail=f"could not decode row: {e}",
            original_error=e,
        ) from e


def decode_payload(payload: Dict[str, Any]) -> Tuple[Dataset, DatasetMeta]:
    """
    Decode a parsed dashboard payload.

    Args:
        payload: Mapping with ``meta``, ``lookup`` and ``data`` keys

    Returns:
        Tuple of (dataset in load order, validated metadata). ``meta.dates``
        is filled from the lookup when the meta block omits it.

    Raises:
        DataError: If a block is missing or malformed
    """
    start = time.perf_counter()

    missing = [key for key in ("meta", "lookup", "data") if key not in payload]
    if missing:
        raise DataError(detail=f"payload missing {', '.join(missing)}")

    lookup = payload["lookup"]
    absent = [name for name in LOOKUP_TABLES if name not in lookup]
    if absent:
        raise DataError(detail=f"lookup missing {', '.join(absent)}")

    try:
        meta = DatasetMeta.model_validate(payload["meta"])
    except PydanticValidationError as e:
        raise DataError(detail="invalid meta block", original_error=e) from e

    if not meta.dates:
        meta = meta.model_copy(update={"dates": list(lookup["dates"])})

    dataset: Dataset = tuple(decode_row(row, lookup) for row in payload["data"])

    analytics_logger.log_dataset_loaded(
        rows=len(dataset),
        symbols=len({o.symbol for o in dataset}),
        trading_days=meta.trading_days,
        duration_ms=(time.perf_counter() - start) * 1000,
    )
    return dataset, meta


def load_payload(path: Union[str, Path]) -> Tuple[Dataset, DatasetMeta]:
    """Read a JSON payload file and decode it."""
    with open(path, "r") as f:
        payload = json.load(f)
    logger.debug(f"Read payload from {path}")
    return decode_payload(payload)
