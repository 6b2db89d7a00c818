"""
Pipeline configuration, data locations and logging setup.

Every function in the pipeline receives a `PipelineConfig` explicitly instead
of reading module-level defaults, so a run is fully described by one value.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

CENSUS_YEARS = (1997, 2002, 2007, 2012, 2017)

COUNTY_SHAPEFILE_URL = "https://www2.census.gov/geo/tiger/GENZ2020/shp/cb_2020_us_county_500k.zip"
CENSUS_FILENAME = "county_livestock_inventory.csv"
COUNTY_SHAPEFILE_FILENAME = "cb_2020_us_county_500k.zip"
IMAGE_FILENAME = "cow.png"

# Alaska, Hawaii and Puerto Rico
NON_CONTIGUOUS_STATES = ('02', '15', '72')


@dataclass(frozen=True)
class PipelineConfig:
    """Column names, census periods, fill policy and clip quantile targets."""
    region_column: str = 'fips'
    period_column: str = 'year'
    metric_column: str = 'inventory'
    periods: Tuple[int, ...] = CENSUS_YEARS
    fill_value: float = 0
    # ~1.5% of counties fall outside the color scale on each tail
    upper_quantile: float = 0.985
    lower_quantile: float = 0.015
    fill_partial_gaps: bool = False

    def __post_init__(self):
        periods = tuple(self.periods)
        object.__setattr__(self, 'periods', periods)

        if len(periods) < 2:
            raise ValueError(f"At least two periods are required, got {periods}")
        if len(set(periods)) != len(periods):
            raise ValueError(f"Periods must be unique, got {periods}")
        for name in ('lower_quantile', 'upper_quantile'):
            q = getattr(self, name)
            if not 0 <= q <= 1:
                raise ValueError(f"{name} must be within [0, 1], got {q}")
        if self.lower_quantile >= self.upper_quantile:
            raise ValueError(
                f"lower_quantile ({self.lower_quantile}) must be below upper_quantile ({self.upper_quantile})"
            )

    @property
    def first_period(self) -> int:
        return self.periods[0]

    @property
    def last_period(self) -> int:
        return self.periods[-1]

    def wide_column(self, period) -> str:
        """Name of the wide-table column holding `period`'s value, e.g. 'inventory_1997'."""
        return f"{self.metric_column}_{period}"

    @property
    def wide_columns(self) -> Tuple[str, ...]:
        return tuple(self.wide_column(p) for p in self.periods)

    @property
    def clipped_column(self) -> str:
        return f"{self.metric_column}_clipped"


def get_workspace_root() -> Path:
    """Walk up from this file until the directory holding pyproject.toml."""
    current = Path(__file__).resolve()
    while current.parent != current:
        if (current / 'pyproject.toml').exists():
            return current
        current = current.parent
    raise RuntimeError("Could not find workspace root")


def data_dir() -> Path:
    return get_workspace_root() / 'data'


def figures_dir() -> Path:
    return data_dir() / 'figures'


def setup_logging(level=logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )
