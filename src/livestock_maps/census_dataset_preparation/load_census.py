"""
Load county-level livestock inventory from a Census of Agriculture export.

The CSV follows the USDA QuickStats layout: one row per (county, year) with a
`value` column that may contain thousands separators or suppression markers
such as "(D)" (withheld to avoid disclosing individual operations).
Suppressed, negative and state-level rows are dropped here so the reconciler
only ever sees well-formed observations.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from livestock_maps.config import PipelineConfig

logger = logging.getLogger(__name__)

FIPS_CANDIDATES = ('fips', 'geoid', 'county_fips', 'fips_code')
SUPPRESSION_MARKERS = ('', '(d)', '(z)', '(na)', 'na', 'n/a')
# QuickStats county codes that aggregate a whole state or district
NON_COUNTY_CODES = ('000', '998', '999')


@dataclass(frozen=True)
class Observation:
    """One (county, census year, head count) record."""
    region_id: str
    period: int
    metric: float


def observations_frame(records, config: PipelineConfig) -> pd.DataFrame:
    """Build the long observation table from Observation objects or (region_id, period, metric) tuples."""
    rows = [
        (r.region_id, r.period, r.metric) if isinstance(r, Observation) else tuple(r)
        for r in records
    ]
    df = pd.DataFrame(
        rows,
        columns=[config.region_column, config.period_column, config.metric_column]
    )
    df[config.period_column] = df[config.period_column].astype('int64')
    return df


def _parse_counts(s: pd.Series) -> pd.Series:
    cleaned = (
        s.astype('string')
        .str.replace(',', '', regex=False)
        .str.strip()
    )
    cleaned = cleaned.mask(cleaned.str.lower().isin(SUPPRESSION_MARKERS))
    return pd.to_numeric(cleaned, errors='coerce')


def _build_fips(df: pd.DataFrame) -> pd.Series:
    for c in FIPS_CANDIDATES:
        if c in df.columns:
            return (
                df[c].astype('string')
                .str.strip()
                .str.replace(r'\.0$', '', regex=True)
                .str.zfill(5)
            )

    if 'state_fips_code' in df.columns and 'county_code' in df.columns:
        county = df['county_code'].astype('string').str.strip().str.zfill(3)
        state = df['state_fips_code'].astype('string').str.strip().str.zfill(2)
        return state + county.where(~county.isin(NON_COUNTY_CODES), other='000')

    raise KeyError(
        f"No county identifier column found. Tried {list(FIPS_CANDIDATES)} "
        f"and state_fips_code + county_code. Found: {list(df.columns)}"
    )


def load_census_observations(path, config: PipelineConfig) -> pd.DataFrame:
    """Read the census CSV into a long (fips, year, inventory) table limited to `config.periods`."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Census file not found at {path}")

    raw = pd.read_csv(path, dtype=str)
    raw.columns = raw.columns.str.lower().str.strip().str.replace(r'\s+', '_', regex=True)
    logger.info(f"Loaded {len(raw)} rows from {path}")

    metric_source = config.metric_column if config.metric_column in raw.columns else 'value'
    if metric_source not in raw.columns:
        raise KeyError(f"No '{config.metric_column}' or 'value' column in {path}")
    if 'year' not in raw.columns:
        raise KeyError(f"No 'year' column in {path}")

    df = pd.DataFrame({
        config.region_column: _build_fips(raw),
        config.period_column: pd.to_numeric(raw['year'], errors='coerce').astype('Int64'),
        config.metric_column: _parse_counts(raw[metric_source]),
    })

    no_fips = df[config.region_column].isna()
    if no_fips.any():
        logger.warning(f"Dropping {int(no_fips.sum())} rows without a county identifier")
        df = df[~no_fips]

    state_level = df[config.region_column].str.endswith('000').astype(bool)
    if state_level.any():
        logger.info(f"Dropping {int(state_level.sum())} state-level rows")
        df = df[~state_level]

    suppressed = df[config.metric_column].isna()
    if suppressed.any():
        logger.warning(f"Dropping {int(suppressed.sum())} rows with suppressed or unparseable values")
        df = df[~suppressed]

    negative = df[config.metric_column] < 0
    if negative.any():
        logger.warning(f"Dropping {int(negative.sum())} rows with negative counts")
        df = df[~negative]

    in_periods = df[config.period_column].isin(config.periods)
    if not in_periods.all():
        logger.info(f"Dropping {int((~in_periods).sum())} rows outside census years {config.periods}")
        df = df[in_periods]

    df = df.astype({config.region_column: object, config.period_column: 'int64', config.metric_column: 'float64'})
    logger.info(
        f"Kept {len(df)} observations for {df[config.region_column].nunique()} counties"
    )
    return df.reset_index(drop=True)
