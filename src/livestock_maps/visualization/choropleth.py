"""
Choropleth maps of county livestock inventory.

Draws the 1997-2017 change per county (alone, or with an embedded image), a
grid of one map per census year on a shared color scale, and a histogram of
the difference with its clip bounds. Counties without a value render light
grey; state outlines are drawn on top.
"""

import logging
import math
from pathlib import Path

import geopandas as gpd
import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns
from matplotlib.offsetbox import AnnotationBbox, OffsetImage

logger = logging.getLogger(__name__)

MISSING_KWDS = {'color': 'lightgrey'}

# Common parameters for state overlay
STATE_KWARGS = dict(
    color='none',
    edgecolor='black',
    linewidth=0.6,
    alpha=0.7
)


def _save(fig, out_path):
    if out_path is None:
        return
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_path, dpi=300, bbox_inches='tight', pad_inches=0.5)
    logger.info(f"Saved figure to {out_path}")


def _color_limits(values, bounds):
    lower, upper = bounds
    if math.isinf(lower):
        lower = float(pd.Series(values).min())
    if math.isinf(upper):
        upper = float(pd.Series(values).max())
    return lower, upper


def _padded_extent(gdf, padding=0.05):
    minx, miny, maxx, maxy = gdf.total_bounds
    width = maxx - minx
    height = maxy - miny
    return (
        minx - width * padding,
        miny - height * padding,
        maxx + width * padding,
        maxy + height * padding
    )


def join_geometries(table: pd.DataFrame, counties: gpd.GeoDataFrame, region_column: str) -> gpd.GeoDataFrame:
    """Attach county geometry to `table`; rows without a matching county are dropped."""
    right = counties[['GEOID', 'geometry']]
    if region_column == 'GEOID':
        gdf = table.merge(right, on='GEOID', how='left')
    else:
        gdf = table.merge(right, left_on=region_column, right_on='GEOID', how='left').drop(columns='GEOID')

    gdf = gpd.GeoDataFrame(gdf, geometry='geometry')
    if gdf.crs is None and counties.crs is not None:
        gdf = gdf.set_crs(counties.crs)

    missing = gdf[gdf['geometry'].isna()][region_column].tolist()
    if missing:
        logger.warning(f"Missing geometries for {len(missing)} regions")
        missing_by_state = pd.Series([str(x)[:2] for x in missing]).value_counts()
        for state_fips, count in missing_by_state.items():
            logger.warning(f"  State FIPS {state_fips}: {count} counties")

    return gdf.dropna(subset=['geometry'])


def _draw_layer(ax, gdf, states, column, cmap, vmin, vmax, legend, legend_label):
    layer_kwargs = dict(
        column=column,
        ax=ax,
        cmap=cmap,
        vmin=vmin,
        vmax=vmax,
        missing_kwds=MISSING_KWDS,
        legend=legend,
    )
    if legend:
        layer_kwargs['legend_kwds'] = {
            'label': legend_label,
            'orientation': 'horizontal',
            'fraction': 0.046,
            'pad': 0.04,
            'aspect': 30
        }
    gdf.plot(**layer_kwargs)
    if states is not None:
        states.plot(ax=ax, **STATE_KWARGS)
    ax.axis('off')


def plot_difference_map(
    wide: pd.DataFrame,
    counties: gpd.GeoDataFrame,
    states=None,
    *,
    region_column: str = 'fips',
    column: str = 'delta_clipped',
    bounds=None,
    title: str = 'Change in Cattle Inventory, 1997-2017',
    legend_label: str = 'Change in head count',
    cmap: str = 'RdBu_r',
    out_path=None,
):
    """Single diverging choropleth of the difference column."""
    gdf = join_geometries(wide, counties, region_column)
    if bounds is None:
        bound = float(gdf[column].abs().max())
        bounds = (-bound, bound)
    vmin, vmax = _color_limits(gdf[column], bounds)

    fig, ax = plt.subplots(figsize=(16, 10))
    _draw_layer(ax, gdf, states, column, cmap, vmin, vmax, True, legend_label)

    xmin, ymin, xmax, ymax = _padded_extent(gdf)
    ax.set_xlim(xmin, xmax)
    ax.set_ylim(ymin, ymax)
    ax.set_title(title, fontsize=20, pad=20)

    _save(fig, out_path)
    return fig


def plot_difference_map_with_image(
    wide: pd.DataFrame,
    counties: gpd.GeoDataFrame,
    states=None,
    *,
    image_path,
    zoom: float = 0.15,
    xy=(0.92, 0.12),
    out_path=None,
    **map_kwargs,
):
    """The difference map with an image (e.g. an animal icon) placed at `xy` in axes coordinates."""
    image_path = Path(image_path)
    if not image_path.exists():
        raise FileNotFoundError(f"Image not found at {image_path}")

    fig = plot_difference_map(wide, counties, states, **map_kwargs)
    ax = fig.axes[0]

    image = plt.imread(image_path)
    imagebox = OffsetImage(image, zoom=zoom)
    ax.add_artist(AnnotationBbox(imagebox, xy, xycoords='axes fraction', frameon=False))

    _save(fig, out_path)
    return fig


def plot_small_multiples(
    long: pd.DataFrame,
    counties: gpd.GeoDataFrame,
    states=None,
    *,
    periods,
    region_column: str = 'fips',
    period_column: str = 'year',
    column: str = 'inventory_clipped',
    bounds=(-math.inf, math.inf),
    ncols: int = 3,
    cmap: str = 'YlOrBr',
    title: str = 'Cattle Inventory by Census Year',
    legend_label: str = 'Head count',
    out_path=None,
):
    """One map per period on a shared color scale with a single colorbar."""
    periods = list(periods)
    nrows = math.ceil(len(periods) / ncols)
    vmin, vmax = _color_limits(long[column], bounds)

    fig, axes = plt.subplots(nrows, ncols, figsize=(8 * ncols, 5.5 * nrows), squeeze=False)
    extent = _padded_extent(counties, padding=0.02)

    for ax, period in zip(axes.flat, periods):
        subset = long[long[period_column] == period]
        # counties without a row for this period stay on the map as missing
        gdf = counties.merge(subset, left_on='GEOID', right_on=region_column, how='left')
        _draw_layer(ax, gdf, states, column, cmap, vmin, vmax, False, legend_label)
        ax.set_xlim(extent[0], extent[2])
        ax.set_ylim(extent[1], extent[3])
        ax.set_title(str(period), fontsize=16)

    for ax in axes.flat[len(periods):]:
        ax.set_visible(False)

    mappable = plt.cm.ScalarMappable(cmap=cmap, norm=plt.Normalize(vmin=vmin, vmax=vmax))
    mappable.set_array([])
    fig.colorbar(
        mappable,
        ax=axes.ravel().tolist(),
        orientation='horizontal',
        fraction=0.03,
        pad=0.04,
        label=legend_label
    )
    fig.suptitle(title, fontsize=22)

    _save(fig, out_path)
    return fig


def plot_distribution(values, bounds=None, *, title='Distribution of Change, 1997-2017',
                      xlabel='Change in head count', bins=100, out_path=None):
    """Histogram of `values` with the clip bounds marked."""
    fig, ax = plt.subplots(figsize=(10, 6))
    sns.histplot(x=pd.Series(values, dtype=float).dropna(), bins=bins, ax=ax, color='steelblue')

    if bounds is not None:
        for b in bounds:
            if not math.isinf(b):
                ax.axvline(b, color='firebrick', linestyle='--', linewidth=1)

    ax.set_title(title)
    ax.set_xlabel(xlabel)
    ax.set_ylabel('Counties')
    sns.despine(ax=ax)
    plt.tight_layout()

    _save(fig, out_path)
    return fig
