"""
Price Statistics

Pure functions over price series:
    - average: arithmetic mean of prices
    - correlation: legacy correlation formula, kept bit-compatible with archived outputs
    - pearson_correlation: textbook sample Pearson coefficient

Both correlation functions pair samples positionally (the first min(len) points
of each series, no timestamp alignment), round half-up to 2 decimals, and
return 0.0 when the result is undetermined (empty input, fewer than two
points, zero variance, NaN).

Legacy formula:
    cov   = sum(dx * dy) / (n - 1)
    var_x = sum(dx ** 2)                  # not divided by n - 1, not rooted
    var_y = sqrt(sum(dy ** 2) / (n - 1))
    r     = cov / (var_x * var_y)

This is not the Pearson coefficient and is not bounded to [-1, 1]. Set
CORRELATION_FORMULA=pearson to use the textbook coefficient instead.
"""

import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, List, Sequence, Tuple

from core.errors import ComputationError
from core.logging import get_logger
from core.schemas import PricePoint


logger = get_logger(__name__)

UNDETERMINED = 0.0

_TWO_PLACES = Decimal("0.01")


def round_half_up(value: float, places: Decimal = _TWO_PLACES) -> float:
    """
    Round to 2 decimals, ties away from zero, using the exact binary value.

    Example:
        >>> round_half_up(0.125)   # round() would give 0.12
        0.13
    """
    return float(Decimal(value).quantize(places, rounding=ROUND_HALF_UP))


def average(series: Sequence[PricePoint]) -> float:
    """
    Arithmetic mean of the prices in a series.

    Returns:
        0.0 for an empty series
    """
    if not series:
        return 0.0
    return sum(point.price for point in series) / len(series)


def _paired_prices(
    series_a: Sequence[PricePoint],
    series_b: Sequence[PricePoint]
) -> Tuple[List[float], List[float]]:
    n = min(len(series_a), len(series_b))
    return [p.price for p in series_a[:n]], [p.price for p in series_b[:n]]


def _deviation_sums(x: List[float], y: List[float]) -> Tuple[float, float, float]:
    """Return (sum dx*dy, sum dx^2, sum dy^2) around the sample means."""
    mean_x = sum(x) / len(x)
    mean_y = sum(y) / len(y)

    cross = sq_x = sq_y = 0.0
    for xi, yi in zip(x, y):
        dx = xi - mean_x
        dy = yi - mean_y
        cross += dx * dy
        sq_x += dx * dx
        sq_y += dy * dy
    return cross, sq_x, sq_y


def _finish(raw: float) -> float:
    if math.isnan(raw) or math.isinf(raw):
        logger.warning("Correlation is not finite, returning 0")
        return UNDETERMINED

    result = round_half_up(raw)
    logger.debug(f"Correlation calculated: {result}")
    return result


def correlation(series_a: Sequence[PricePoint], series_b: Sequence[PricePoint]) -> float:
    """
    Legacy correlation between two price series.

    Args:
        series_a: First series (x)
        series_b: Second series (y)

    Returns:
        Correlation rounded to 2 decimals, or 0.0 if undetermined

    Example:
        >>> correlation(prices([1, 2, 3, 4, 5]), prices([2, 4, 6, 8, 10]))
        0.16
    """
    if not series_a or not series_b:
        logger.warning("Insufficient price data for correlation")
        return UNDETERMINED

    x, y = _paired_prices(series_a, series_b)
    n = len(x)
    logger.debug(f"Calculating correlation for {n} data points")

    if n < 2:
        logger.warning("Need at least 2 paired prices for correlation")
        return UNDETERMINED

    cross, sq_x, sq_y = _deviation_sums(x, y)

    covariance = cross / (n - 1)
    var_x = sq_x
    var_y = math.sqrt(sq_y / (n - 1))

    if var_x == 0 or var_y == 0:
        logger.warning("Standard deviation is zero, cannot calculate correlation")
        return UNDETERMINED

    return _finish(covariance / (var_x * var_y))


def pearson_correlation(series_a: Sequence[PricePoint], series_b: Sequence[PricePoint]) -> float:
    """
    Sample Pearson correlation coefficient, same pairing and sentinel rules as `correlation`.

    Example:
        >>> pearson_correlation(prices([1, 2, 3, 4, 5]), prices([2, 4, 6, 8, 10]))
        1.0
    """
    if not series_a or not series_b:
        logger.warning("Insufficient price data for correlation")
        return UNDETERMINED

    x, y = _paired_prices(series_a, series_b)
    if len(x) < 2:
        logger.warning("Need at least 2 paired prices for correlation")
        return UNDETERMINED

    cross, sq_x, sq_y = _deviation_sums(x, y)

    if sq_x == 0 or sq_y == 0:
        logger.warning("Standard deviation is zero, cannot calculate correlation")
        return UNDETERMINED

    # The (n - 1) factors cancel
    return _finish(cross / math.sqrt(sq_x * sq_y))


CORRELATION_FUNCTIONS: Dict[str, Callable[[Sequence[PricePoint], Sequence[PricePoint]], float]] = {
    "legacy": correlation,
    "pearson": pearson_correlation,
}


def compute_correlation(
    series_a: Sequence[PricePoint],
    series_b: Sequence[PricePoint],
    formula: str = "legacy"
) -> float:
    """
    Dispatch to the correlation function named by `formula`.

    Raises:
        ComputationError: If the formula name is unknown
    """
    try:
        func = CORRELATION_FUNCTIONS[formula.lower()]
    except KeyError:
        raise ComputationError(
            f"Unknown correlation formula '{formula}'. "
            f"Available: {', '.join(CORRELATION_FUNCTIONS)}"
        )
    return func(series_a, series_b)
