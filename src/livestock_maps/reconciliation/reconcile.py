"""
Reconcile sparse county observations against the county universe.

The census only reports counties that had operations in a given year, so the
raw long table is missing whole counties. Counties the boundary file knows
about but the census never mentions are backfilled with a fill value for every
period; counties reported in only some years are left as they are unless the
config opts in to filling partial gaps.
"""

import logging
from collections import namedtuple

import numpy as np
import pandas as pd

from livestock_maps.config import PipelineConfig
from livestock_maps.errors import DuplicateKeyError, MissingFieldError
from livestock_maps.reconciliation.clip_bounds import apply_clip, compute_clip_bounds

logger = logging.getLogger(__name__)

PresentationTables = namedtuple(
    'PresentationTables',
    ['long', 'wide', 'delta_bounds', 'metric_bounds', 'partial_regions']
)


def _require_columns(df: pd.DataFrame, columns):
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise KeyError(f"Required columns {missing} are missing. Found: {list(df.columns)}")


def _duplicate_keys(observations: pd.DataFrame, config: PipelineConfig):
    keys = [config.region_column, config.period_column]
    dup_mask = observations.duplicated(subset=keys, keep=False)
    dups = observations.loc[dup_mask, keys].drop_duplicates()
    return list(dups.itertuples(index=False, name=None))


def reconcile(observations: pd.DataFrame, region_universe, config: PipelineConfig) -> pd.DataFrame:
    """
    Return a copy of `observations` with synthesized rows for every region in
    `region_universe` that has no observation at all.

    Synthesized rows carry `config.fill_value` for each of `config.periods`.
    Regions with at least one observation are never touched, so raw rows always
    win. With `config.fill_partial_gaps` every missing (region, period) pair is
    filled instead. Rows whose period is not in `config.periods` are dropped
    first, so a region seen only outside those periods counts as absent.
    """
    region, period, metric = config.region_column, config.period_column, config.metric_column
    _require_columns(observations, [region, period, metric])

    in_periods = observations[period].isin(config.periods)
    if not in_periods.all():
        logger.info(f"Dropping {int((~in_periods).sum())} observations outside periods {config.periods}")
        observations = observations[in_periods]

    duplicates = _duplicate_keys(observations, config)
    if duplicates:
        raise DuplicateKeyError(duplicates)

    universe = pd.Index(sorted(set(region_universe)), dtype=object)
    present = pd.Index(observations[region].unique(), dtype=object)

    outside = present.difference(universe)
    if len(outside):
        logger.warning(f"{len(outside)} regions in the observations are not in the region universe; keeping them")

    if config.fill_partial_gaps:
        regions = universe.union(present)
        full = pd.MultiIndex.from_product([regions, config.periods], names=[region, period])
        existing = pd.MultiIndex.from_frame(observations[[region, period]])
        missing_pairs = full.difference(existing)
    else:
        absent = universe.difference(present)
        missing_pairs = pd.MultiIndex.from_product([absent, config.periods], names=[region, period])

    logger.info(
        f"Reconciling {len(observations)} observations: "
        f"{len(present)} regions present, {len(missing_pairs)} rows to synthesize"
    )

    if len(missing_pairs) == 0:
        return observations.sort_values([region, period]).reset_index(drop=True)

    filler = missing_pairs.to_frame(index=False)
    filler[metric] = config.fill_value

    reconciled = pd.concat([observations, filler], ignore_index=True)
    return reconciled.sort_values([region, period]).reset_index(drop=True)


def pivot_wide(observations: pd.DataFrame, config: PipelineConfig, allow_missing=False) -> pd.DataFrame:
    """
    One row per region with one named column per period and the difference
    between the last and first period.

    Periods are taken in `config.periods` order; labels are never sorted.
    Absent (region, period) values raise MissingFieldError unless
    `allow_missing`, in which case they stay NaN rather than becoming zero.
    """
    region, period, metric = config.region_column, config.period_column, config.metric_column
    _require_columns(observations, [region, period, metric])

    duplicates = _duplicate_keys(observations, config)
    if duplicates:
        raise DuplicateKeyError(duplicates)

    regions = pd.Index(observations[region].unique(), dtype=object).sort_values()
    in_periods = observations[observations[period].isin(config.periods)]

    wide = (
        in_periods.pivot(index=region, columns=period, values=metric)
        .reindex(index=regions, columns=list(config.periods))
    )

    rows, cols = np.nonzero(wide.isna().to_numpy())
    gaps = [(wide.index[r], wide.columns[c]) for r, c in zip(rows, cols)]
    if gaps:
        if not allow_missing:
            raise MissingFieldError(gaps, field=metric)
        logger.warning(f"{len(gaps)} (region, period) values are absent and left as NaN")

    wide.columns = [config.wide_column(p) for p in config.periods]
    wide['delta'] = wide[config.wide_column(config.last_period)] - wide[config.wide_column(config.first_period)]

    wide.index.name = region
    return wide.reset_index()


def ensure_renderable(table: pd.DataFrame, column: str, regions, region_column: str) -> None:
    """Raise MissingFieldError unless every region in `regions` has a value for `column`."""
    _require_columns(table, [region_column, column])
    defined = set(table.loc[table[column].notna(), region_column])
    missing = sorted(set(regions) - defined)
    if missing:
        raise MissingFieldError(missing, field=column)


def prepare_presentation(observations: pd.DataFrame, region_universe, config: PipelineConfig) -> PresentationTables:
    """
    Reconcile, pivot and clip everything the maps need.

    `partial_regions` holds every region lacking a value for any period. Their
    delta is undefined when the gap is in the first or last period.
    """
    long = reconcile(observations, region_universe, config)
    wide = pivot_wide(long, config, allow_missing=not config.fill_partial_gaps)

    # any missing census year, not only the first or last one used by delta
    partial = wide.loc[wide[list(config.wide_columns)].isna().any(axis=1), config.region_column]
    partial_regions = frozenset(partial)
    if partial_regions:
        logger.warning(
            f"{len(partial_regions)} regions are missing some census years and render as missing in those years"
        )

    delta_bounds = compute_clip_bounds(
        wide['delta'], config.upper_quantile, config.lower_quantile, symmetric=True
    )
    wide = apply_clip(wide, 'delta', delta_bounds, 'delta_clipped')

    # counts are non-negative, so only the top tail is clipped
    metric_bounds = compute_clip_bounds(long[config.metric_column], config.upper_quantile)
    long = apply_clip(long, config.metric_column, metric_bounds, config.clipped_column)

    return PresentationTables(
        long=long,
        wide=wide,
        delta_bounds=delta_bounds,
        metric_bounds=metric_bounds,
        partial_regions=partial_regions,
    )
