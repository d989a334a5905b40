"""
Statistics Primitives

Descriptive statistics over numeric sequences used by every other analytics
module.

Degenerate inputs (empty samples, samples below the minimum size, zero
variance) return 0 instead of raising so that a single thin group never aborts
a whole dashboard refresh. A returned 0 from ``pearson_corr``, ``skewness`` or
``kurtosis`` therefore does not necessarily mean "no correlation" or
"symmetric": callers that need to tell the two apart should check the sample
size and spread themselves. ``percentile`` is the exception and raises on
empty input, since there is no meaningful default for a quantile.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Union

import numpy as np

from nightflow.core.errors import require_non_empty, validate_range

logger = logging.getLogger(__name__)

Numbers = Union[Sequence[float], np.ndarray]


def _as_array(xs: Numbers) -> np.ndarray:
    return np.asarray(xs, dtype=float)


def _is_constant(arr: np.ndarray) -> bool:
    return arr.size == 0 or float(np.ptp(arr)) == 0.0


def mean(xs: Numbers) -> float:
    """Arithmetic mean; 0 for an empty sequence."""
    arr = _as_array(xs)
    if arr.size == 0:
        return 0.0
    return float(arr.mean())


def median(xs: Numbers) -> float:
    """Median; even lengths average the two middle elements. 0 when empty."""
    arr = _as_array(xs)
    if arr.size == 0:
        return 0.0
    s = np.sort(arr)
    m = s.size // 2
    if s.size % 2:
        return float(s[m])
    return float((s[m - 1] + s[m]) / 2)


def std_dev(xs: Numbers) -> float:
    """Sample standard deviation (n - 1 denominator); 0 when n < 2."""
    arr = _as_array(xs)
    if arr.size < 2 or _is_constant(arr):
        return 0.0
    return float(arr.std(ddof=1))


def percentile(xs: Numbers, p: float) -> float:
    """
    Percentile with linear interpolation between closest ranks.

    The fractional rank is ``p / 100 * (n - 1)`` over the sorted values.

    Args:
        xs: Non-empty numeric sequence
        p: Percentile in [0, 100]

    Raises:
        InvalidArgumentError: If xs is empty or p is out of range
    """
    arr = _as_array(xs)
    require_non_empty(arr, "xs")
    validate_range("p", p, 0, 100)

    s = np.sort(arr)
    i = (p / 100) * (s.size - 1)
    lo, hi = math.floor(i), math.ceil(i)
    if lo == hi:
        return float(s[lo])
    return float(s[lo] + (i - lo) * (s[hi] - s[lo]))


def pearson_corr(xs: Numbers, ys: Numbers) -> float:
    """
    Pearson correlation coefficient.

    Inputs of unequal length are truncated to the shorter one. Returns 0 when
    fewer than 3 pairs are available or either side has zero variance; that 0
    is a placeholder for "undefined", not a measured correlation.
    """
    x = _as_array(xs)
    y = _as_array(ys)
    n = min(x.size, y.size)
    if n < 3:
        return 0.0

    x = x[:n]
    y = y[:n]
    if _is_constant(x) or _is_constant(y):
        return 0.0

    dx = x - x.mean()
    dy = y - y.mean()
    den = math.sqrt(float(np.dot(dx, dx)) * float(np.dot(dy, dy)))
    if den == 0:
        return 0.0
    return float(np.dot(dx, dy) / den)


def skewness(xs: Numbers) -> float:
    """
    Adjusted Fisher-Pearson sample skewness.

    ``n / ((n - 1)(n - 2)) * sum(((x - mean) / s) ** 3)`` with the sample
    standard deviation ``s``. Returns 0 when n < 3 or s == 0.
    """
    arr = _as_array(xs)
    n = arr.size
    s = std_dev(arr)
    if s == 0 or n < 3:
        return 0.0
    z = (arr - arr.mean()) / s
    return float((n / ((n - 1) * (n - 2))) * np.sum(z**3))


def kurtosis(xs: Numbers) -> float:
    """
    Excess kurtosis: ``mean(((x - mean) / s) ** 4) - 3``.

    Uses the sample standard deviation ``s``. Returns 0 when n < 4 or s == 0.
    """
    arr = _as_array(xs)
    n = arr.size
    s = std_dev(arr)
    if s == 0 or n < 4:
        return 0.0
    z = (arr - arr.mean()) / s
    return float(np.sum(z**4) / n - 3)


def rolling_mean(xs: Numbers, window: int) -> List[Optional[float]]:
    """
    Trailing simple moving average.

    Index ``i`` holds the mean of ``xs[i - window + 1 : i + 1]``; indices
    before the window fills hold None.

    Raises:
        InvalidArgumentError: If window < 1
    """
    validate_range("window", window, 1)
    arr = _as_array(xs)
    result: List[Optional[float]] = []
    for i in range(arr.size):
        if i < window - 1:
            result.append(None)
        else:
            result.append(float(arr[i - window + 1 : i + 1].mean()))
    return result


@dataclass
class DistributionStats:
    """Summary of a numeric distribution."""

    count: int
    mean: float
    median: float
    std_dev: float
    min: float
    max: float
    skewness: float
    kurtosis: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "count": self.count,
            "mean": self.mean,
            "median": self.median,
            "std_dev": self.std_dev,
            "min": self.min,
            "max": self.max,
            "skewness": self.skewness,
            "kurtosis": self.kurtosis,
        }


def describe(xs: Numbers) -> DistributionStats:
    """Full distribution summary; min/max are 0 for an empty sequence."""
    arr = _as_array(xs)
    return DistributionStats(
        count=int(arr.size),
        mean=mean(arr),
        median=median(arr),
        std_dev=std_dev(arr),
        min=float(arr.min()) if arr.size else 0.0,
        max=float(arr.max()) if arr.size else 0.0,
        skewness=skewness(arr),
        kurtosis=kurtosis(arr),
    )


def histogram_bins(xs: Numbers, bin_size: float = 50.0) -> Dict[float, int]:
    """
    Count values into fixed-width bins aligned on multiples of ``bin_size``.

    Bin edges run from ``floor(min / bin_size) * bin_size`` to
    ``ceil(max / bin_size) * bin_size``; each key is a bin's lower edge.

    Raises:
        InvalidArgumentError: If bin_size is not positive
    """
    if bin_size <= 0:
        validate_range("bin_size", bin_size, minimum=1e-12)
    arr = _as_array(xs)
    if arr.size == 0:
        return {}

    lo = math.floor(arr.min() / bin_size) * bin_size
    hi = math.ceil(arr.max() / bin_size) * bin_size
    n_bins = int(round((hi - lo) / bin_size)) + 1
    bins = {lo + i * bin_size: 0 for i in range(n_bins)}

    for v in arr:
        edge = math.floor(v / bin_size) * bin_size
        if edge in bins:
            bins[edge] += 1
    return bins
