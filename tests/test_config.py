import pytest

from livestock_maps.config import CENSUS_YEARS, PipelineConfig


def test_defaults():
    config = PipelineConfig()

    assert config.periods == CENSUS_YEARS
    assert config.first_period == 1997
    assert config.last_period == 2017
    assert config.fill_value == 0
    assert not config.fill_partial_gaps
    assert config.wide_columns[0] == 'inventory_1997'
    assert config.clipped_column == 'inventory_clipped'


def test_periods_are_normalized_to_tuple():
    assert PipelineConfig(periods=[2017, 1997]).periods == (2017, 1997)


@pytest.mark.parametrize('kwargs', [
    {'periods': (1997,)},
    {'periods': (1997, 1997)},
    {'upper_quantile': 1.2},
    {'lower_quantile': -0.1},
    {'lower_quantile': 0.9, 'upper_quantile': 0.1},
])
def test_invalid_config(kwargs):
    with pytest.raises(ValueError):
        PipelineConfig(**kwargs)


def test_config_is_immutable():
    config = PipelineConfig()
    with pytest.raises(AttributeError):
        config.fill_value = 1
