"""
County boundaries from the US Census Bureau cartographic boundary files.

The boundary file defines which counties the maps can draw. Its GEOIDs form
the region universe the census observations are reconciled against.

Instructions:
1. Download the county shapefile (or run `download_county_boundaries`):
   https://www2.census.gov/geo/tiger/GENZ2020/shp/cb_2020_us_county_500k.zip
2. Place the zip file in data/ (geopandas reads it without extracting)
"""

import logging
from pathlib import Path

import geopandas as gpd
import requests
from tenacity import retry, stop_after_attempt, wait_exponential
from tqdm import tqdm

from livestock_maps.config import NON_CONTIGUOUS_STATES

logger = logging.getLogger(__name__)

# USA Contiguous Albers Equal Area Conic
TARGET_CRS = 'EPSG:5070'


@retry(stop=stop_after_attempt(3), wait=wait_exponential(multiplier=1, min=2, max=10), reraise=True)
def download_county_boundaries(url: str, output_path: Path, chunk_size: int = 8192) -> Path:
    """
    Download the county boundary file with a progress bar, retrying on failure.

    Bytes go to a `.part` file that is renamed only once the transfer
    completes, so an interrupted download never looks like a usable file.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    partial_path = output_path.with_name(output_path.name + '.part')

    try:
        with requests.get(url, stream=True, timeout=60) as response:
            response.raise_for_status()
            expected = int(response.headers.get('content-length', 0)) or None

            with open(partial_path, 'wb') as out, \
                    tqdm(total=expected, unit='iB', unit_scale=True, desc=output_path.name) as progress:
                for chunk in response.iter_content(chunk_size=chunk_size):
                    progress.update(out.write(chunk))

    except requests.exceptions.RequestException as e:
        partial_path.unlink(missing_ok=True)
        logger.error(f"Failed to download {url}: {str(e)}")
        raise

    partial_path.replace(output_path)
    logger.info(f"Saved county boundaries from {url} to {output_path}")
    return output_path


def load_county_geometries(path, exclude_states=NON_CONTIGUOUS_STATES, target_crs=TARGET_CRS) -> gpd.GeoDataFrame:
    """
    Load county polygons keyed by a 5-digit GEOID.

    Args:
        path: shapefile, zipped shapefile or GeoJSON readable by geopandas
        exclude_states: state FIPS codes to leave off the map
        target_crs: projection for drawing; None keeps the file's CRS
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(
            f"County boundary file not found at {path}. Please download the county boundary file first."
        )

    counties = gpd.read_file(path)
    if 'STATEFP' not in counties.columns or 'COUNTYFP' not in counties.columns:
        raise KeyError(f"Boundary file needs STATEFP and COUNTYFP columns. Found: {list(counties.columns)}")

    counties['STATEFP'] = counties['STATEFP'].astype(str).str.zfill(2)
    counties['GEOID'] = counties['STATEFP'] + counties['COUNTYFP'].astype(str).str.zfill(3)

    if exclude_states:
        counties = counties[~counties['STATEFP'].isin(list(exclude_states))]

    if target_crs is not None and counties.crs is not None:
        counties = counties.to_crs(target_crs)

    logger.info(f"Loaded {len(counties)} county geometries from {path}")
    return counties[['GEOID', 'STATEFP', 'geometry']].reset_index(drop=True)


def dissolve_states(counties: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """State outlines for the overlay layer."""
    states = counties[['STATEFP', 'geometry']].dissolve(by='STATEFP')
    return states.reset_index()


def region_universe(counties: gpd.GeoDataFrame) -> frozenset:
    return frozenset(counties['GEOID'])
