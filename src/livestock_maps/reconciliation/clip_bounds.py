"""
Clip bounds for color-scale legibility.

A handful of very large operations stretch the color scale so far that every
other county renders the same shade. Bounds are taken from the empirical
distribution with explicit quantile targets, and values are clamped into them
only for presentation.
"""

import logging
import math

import numpy as np
import pandas as pd
from scipy.stats import describe

from livestock_maps.errors import InvalidBoundsError

logger = logging.getLogger(__name__)


def _finite_values(values) -> pd.Series:
    series = pd.to_numeric(pd.Series(values), errors='coerce').astype(float)
    return series[np.isfinite(series)]


def _check_quantile(name, q):
    if q is None:
        return
    if not 0 <= q <= 1:
        raise ValueError(f"{name} must be within [0, 1], got {q}")


def compute_clip_bounds(values, upper_quantile_target, lower_quantile_target=None, symmetric=False):
    """
    Pick (lower, upper) so roughly the requested share of values falls outside
    on each tail.

    Args:
        values: numeric values; NaN and infinite entries are ignored
        upper_quantile_target: quantile for the upper bound, e.g. 0.985
        lower_quantile_target: quantile for the lower bound; None means the
            metric is non-negative and no lower clip applies (lower = -inf)
        symmetric: for signed differences, use the larger magnitude of the two
            quantiles on both sides so zero stays centered on the scale;
            requires a lower quantile target
    """
    _check_quantile('upper_quantile_target', upper_quantile_target)
    if symmetric and lower_quantile_target is None:
        raise ValueError("symmetric bounds need a lower_quantile_target")
    _check_quantile('lower_quantile_target', lower_quantile_target)

    series = _finite_values(values)
    if series.empty:
        raise ValueError("Cannot compute clip bounds from an empty set of values")

    upper = float(series.quantile(upper_quantile_target))

    if lower_quantile_target is None:
        lower = -math.inf
    else:
        lower = float(series.quantile(lower_quantile_target))
        if symmetric:
            bound = max(abs(lower), abs(upper))
            lower, upper = -bound, bound

    if lower > upper:
        raise InvalidBoundsError(lower, upper)

    logger.info(f"Clip bounds: lower={lower:.2f}, upper={upper:.2f} from {len(series)} values")
    return lower, upper


def clip(value, lower, upper):
    if lower > upper:
        raise InvalidBoundsError(lower, upper)
    # NaN stays absent, as in apply_clip
    if value != value:
        return value
    return max(lower, min(upper, value))


def apply_clip(table: pd.DataFrame, column: str, bounds, out_column=None) -> pd.DataFrame:
    """Return a copy of `table` with a clamped version of `column` added."""
    lower, upper = bounds
    if lower > upper:
        raise InvalidBoundsError(lower, upper)

    out_column = out_column or f"{column}_clipped"
    table = table.copy()
    table[out_column] = table[column].clip(lower=lower, upper=upper)

    n_clipped = int((table[column].notna() & (table[column] != table[out_column])).sum())
    logger.info(f"Clipped {n_clipped} of {len(table)} values in '{column}' into '{out_column}'")
    return table


def exceedance_table(values, thresholds, two_sided=False) -> pd.DataFrame:
    """
    Count how many values exceed each candidate threshold.

    With `two_sided`, a value counts when its magnitude exceeds the threshold,
    which suits signed differences.
    """
    series = _finite_values(values)
    total = len(series)
    compared = series.abs() if two_sided else series

    rows = []
    for threshold in sorted(thresholds):
        n_above = int((compared > threshold).sum())
        rows.append({
            'threshold': threshold,
            'n_above': n_above,
            'pct_above': (n_above / total * 100) if total else np.nan,
        })
    return pd.DataFrame(rows, columns=['threshold', 'n_above', 'pct_above'])


def search_threshold(values, candidates, max_fraction=0.015, two_sided=False):
    """Smallest candidate threshold whose exceeding fraction is at most `max_fraction`."""
    table = exceedance_table(values, candidates, two_sided=two_sided)
    ok = table[table['pct_above'] <= max_fraction * 100]
    if ok.empty:
        raise ValueError(
            f"No candidate threshold keeps the exceeding fraction at or below {max_fraction:.2%}"
        )
    return ok['threshold'].iloc[0]


def summarize_distribution(values) -> dict:
    series = _finite_values(values)
    if len(series) < 2:
        raise ValueError("At least two finite values are needed to summarize a distribution")

    stats = describe(series.to_numpy())
    summary = {
        'n': int(stats.nobs),
        'min': float(stats.minmax[0]),
        'max': float(stats.minmax[1]),
        'mean': float(stats.mean),
        'variance': float(stats.variance),
        'skewness': float(stats.skewness),
        'kurtosis': float(stats.kurtosis),
    }
    logger.info(
        f"Distribution: n={summary['n']}, range={summary['min']:.1f} to {summary['max']:.1f}, "
        f"mean={summary['mean']:.2f}, skew={summary['skewness']:.2f}"
    )
    return summary
