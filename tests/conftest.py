import matplotlib

matplotlib.use('Agg')

import geopandas as gpd
import pytest
from shapely.geometry import box

from livestock_maps.config import PipelineConfig
from livestock_maps.census_dataset_preparation.load_census import observations_frame


@pytest.fixture
def config():
    return PipelineConfig(periods=(1997, 2017))


@pytest.fixture
def example_observations(config):
    return observations_frame([("A", 1997, 10), ("A", 2017, 30), ("B", 1997, 5)], config)


@pytest.fixture
def counties():
    """Four unit squares in two states, in a projected CRS."""
    geoids = ['01001', '01003', '02001', '02003']
    return gpd.GeoDataFrame(
        {
            'GEOID': geoids,
            'STATEFP': [g[:2] for g in geoids],
            'COUNTYFP': [g[2:] for g in geoids],
        },
        geometry=[box(i, 0, i + 1, 1) for i in range(len(geoids))],
        crs='EPSG:5070',
    )
