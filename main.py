import logging

import matplotlib.pyplot as plt

from livestock_maps.config import (
    CENSUS_FILENAME,
    COUNTY_SHAPEFILE_FILENAME,
    COUNTY_SHAPEFILE_URL,
    IMAGE_FILENAME,
    PipelineConfig,
    data_dir,
    figures_dir,
    setup_logging,
)
from livestock_maps.census_dataset_preparation.county_boundaries import (
    dissolve_states,
    download_county_boundaries,
    load_county_geometries,
    region_universe,
)
from livestock_maps.census_dataset_preparation.load_census import load_census_observations
from livestock_maps.reconciliation.clip_bounds import summarize_distribution
from livestock_maps.reconciliation.reconcile import ensure_renderable, prepare_presentation
from livestock_maps.visualization.choropleth import (
    plot_difference_map,
    plot_difference_map_with_image,
    plot_distribution,
    plot_small_multiples,
)

logger = logging.getLogger(__name__)


def main(config: PipelineConfig = PipelineConfig()):
    """Load the census, reconcile it against the county map and render every figure."""
    setup_logging()
    data = data_dir()
    figs = figures_dir()

    try:
        shapefile = data / COUNTY_SHAPEFILE_FILENAME
        if not shapefile.exists():
            logger.info("County boundaries not found locally, downloading...")
            download_county_boundaries(COUNTY_SHAPEFILE_URL, shapefile)

        logger.info("Loading county boundaries...")
        counties = load_county_geometries(shapefile)
        states = dissolve_states(counties)
        universe = region_universe(counties)

        logger.info("Loading census observations...")
        observations = load_census_observations(data / CENSUS_FILENAME, config)

        tables = prepare_presentation(observations, universe, config)
        ensure_renderable(
            tables.wide, 'delta_clipped', universe - tables.partial_regions, config.region_column
        )
        summarize_distribution(tables.wide['delta'])

        map_kwargs = dict(region_column=config.region_column, bounds=tables.delta_bounds)
        figures = [
            plot_distribution(tables.wide['delta'], tables.delta_bounds, out_path=figs / 'delta_distribution.png'),
            plot_difference_map(tables.wide, counties, states, out_path=figs / 'delta_map.png', **map_kwargs),
            plot_difference_map_with_image(
                tables.wide, counties, states,
                image_path=data / IMAGE_FILENAME,
                out_path=figs / 'delta_map_with_image.png',
                **map_kwargs
            ),
            plot_small_multiples(
                tables.long, counties, states,
                periods=config.periods,
                region_column=config.region_column,
                period_column=config.period_column,
                column=config.clipped_column,
                bounds=tables.metric_bounds,
                out_path=figs / 'inventory_by_year.png'
            ),
        ]
        for fig in figures:
            plt.close(fig)

        print(f"\nMaps saved to {figs}")
        print(f"Counties on the map: {len(universe)}")
        print(f"Counties missing some census years: {len(tables.partial_regions)}")
        print(f"Difference color scale: {tables.delta_bounds[0]:,.0f} to {tables.delta_bounds[1]:,.0f}")

    except Exception as e:
        logger.error(f"Failed to build livestock maps: {str(e)}")
        raise


if __name__ == "__main__":
    main()
