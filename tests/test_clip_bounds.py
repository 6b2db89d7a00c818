import math

import numpy as np
import pandas as pd
import pytest

from livestock_maps.errors import InvalidBoundsError
from livestock_maps.reconciliation.clip_bounds import (
    apply_clip,
    clip,
    compute_clip_bounds,
    exceedance_table,
    search_threshold,
    summarize_distribution,
)

VALUES = [-7.5, -3, -1, 0, 0.5, 2, 4, 9, 1e6, -1e6]
BOUNDS = [(-5, 5), (0, 0), (-1, 3.5), (2, 10)]


@pytest.mark.parametrize('lo,hi', BOUNDS)
def test_clip_is_bounded_and_idempotent(lo, hi):
    for v in VALUES:
        once = clip(v, lo, hi)
        assert lo <= once <= hi
        assert clip(once, lo, hi) == once


def test_clip_leaves_inside_values():
    assert clip(3, 0, 10) == 3
    assert clip(-math.inf, 0, 10) == 0
    assert clip(12, -math.inf, 10) == 10


def test_clip_invalid_bounds():
    with pytest.raises(InvalidBoundsError):
        clip(1, 5, 4)


def test_bounds_for_counts_have_no_lower_clip():
    values = np.arange(1, 1001)
    lower, upper = compute_clip_bounds(values, 0.985)

    assert lower == -math.inf
    assert upper == pytest.approx(np.quantile(values, 0.985))
    assert (values > upper).mean() <= 0.015


def test_asymmetric_bounds():
    values = pd.Series(np.arange(0, 101))
    lower, upper = compute_clip_bounds(values, 0.9, 0.1)
    assert (lower, upper) == pytest.approx((10, 90))


def test_symmetric_bounds_for_signed_difference():
    values = pd.Series(list(range(-10, 101)))
    lower, upper = compute_clip_bounds(values, 0.95, 0.05, symmetric=True)

    assert lower == -upper
    assert upper == pytest.approx(values.quantile(0.95))


def test_bounds_ignore_missing_values():
    values = pd.Series([1, 2, 3, np.nan, np.inf])
    assert compute_clip_bounds(values, 1.0) == (-math.inf, 3.0)


def test_bounds_reject_empty_and_bad_quantiles():
    with pytest.raises(ValueError):
        compute_clip_bounds([], 0.9)
    with pytest.raises(ValueError):
        compute_clip_bounds([1, 2, 3], 1.5)
    with pytest.raises(ValueError):
        compute_clip_bounds([1, 2, 3], 0.9, -0.1)


def test_bounds_reject_inverted_quantiles():
    with pytest.raises(InvalidBoundsError):
        compute_clip_bounds(range(100), 0.1, 0.9)


def test_apply_clip_adds_column_without_touching_raw():
    table = pd.DataFrame({'delta': [-50.0, -1.0, 0.0, 3.0, 80.0, np.nan]})

    out = apply_clip(table, 'delta', (-10, 10))

    assert list(table.columns) == ['delta']
    assert out['delta'].tolist()[:5] == [-50.0, -1.0, 0.0, 3.0, 80.0]
    assert out['delta_clipped'].tolist()[:5] == [-10.0, -1.0, 0.0, 3.0, 10.0]
    assert np.isnan(out['delta_clipped'].iloc[5])


def test_apply_clip_invalid_bounds():
    with pytest.raises(InvalidBoundsError):
        apply_clip(pd.DataFrame({'x': [1]}), 'x', (2, 1))


def test_exceedance_table():
    values = list(range(1, 101))
    table = exceedance_table(values, [95, 50, 99])

    assert table['threshold'].tolist() == [50, 95, 99]
    assert table['n_above'].tolist() == [50, 5, 1]
    assert table['pct_above'].tolist() == pytest.approx([50.0, 5.0, 1.0])


def test_exceedance_table_two_sided():
    table = exceedance_table([-30, -5, 0, 5, 30], [10], two_sided=True)
    assert table.loc[0, 'n_above'] == 2


def test_search_threshold_picks_smallest_qualifying_candidate():
    values = list(range(1, 201))
    assert search_threshold(values, [100, 150, 197, 198, 199], max_fraction=0.015) == 197


def test_search_threshold_no_candidate():
    with pytest.raises(ValueError):
        search_threshold(range(100), [1, 2], max_fraction=0.01)


def test_summarize_distribution():
    summary = summarize_distribution([1, 2, 3, 4, np.nan])

    assert summary['n'] == 4
    assert summary['min'] == 1
    assert summary['max'] == 4
    assert summary['mean'] == pytest.approx(2.5)


def test_summarize_distribution_needs_two_values():
    with pytest.raises(ValueError):
        summarize_distribution([1])


def test_clip_keeps_missing_value_missing():
    assert math.isnan(clip(float('nan'), 0, 10))
    assert math.isnan(clip(np.nan, -math.inf, 10))


def test_symmetric_bounds_need_lower_quantile():
    with pytest.raises(ValueError):
        compute_clip_bounds([-5, 0, 5], 0.9, symmetric=True)
