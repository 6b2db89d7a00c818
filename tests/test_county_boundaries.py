import pytest
import requests
from tenacity import wait_none

from livestock_maps.census_dataset_preparation.county_boundaries import (
    dissolve_states,
    download_county_boundaries,
    load_county_geometries,
    region_universe,
)


def test_load_county_geometries(tmp_path, counties):
    path = tmp_path / 'counties.shp'
    counties.assign(COUNTYFP=[int(c) for c in counties['COUNTYFP']]).to_file(path)

    loaded = load_county_geometries(path, exclude_states=('02',), target_crs=None)

    assert loaded['GEOID'].tolist() == ['01001', '01003']
    assert list(loaded.columns) == ['GEOID', 'STATEFP', 'geometry']


def test_load_county_geometries_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_county_geometries(tmp_path / 'missing.shp')


def test_region_universe_and_states(counties):
    assert region_universe(counties) == frozenset({'01001', '01003', '02001', '02003'})

    states = dissolve_states(counties)
    assert sorted(states['STATEFP']) == ['01', '02']
    assert states.geometry.area.tolist() == pytest.approx([2.0, 2.0])


class _FakeResponse:
    def __init__(self, chunks, fail=False):
        self.chunks = chunks
        self.fail = fail
        self.headers = {'content-length': str(sum(len(c) for c in chunks))}

    def raise_for_status(self):
        if self.fail:
            raise requests.exceptions.HTTPError("503 Server Error")

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def iter_content(self, chunk_size=8192):
        return iter(self.chunks)


def test_download_county_boundaries(tmp_path, monkeypatch):
    monkeypatch.setattr(requests, 'get', lambda url, **kwargs: _FakeResponse([b'PK', b'\x03\x04']))

    out = download_county_boundaries('https://example.test/counties.zip', tmp_path / 'sub' / 'counties.zip')

    assert out.read_bytes() == b'PK\x03\x04'
    assert not (tmp_path / 'sub' / 'counties.zip.part').exists()


def test_download_retries_then_raises(tmp_path, monkeypatch):
    calls = []

    def fake_get(url, **kwargs):
        calls.append(url)
        return _FakeResponse([], fail=True)

    monkeypatch.setattr(requests, 'get', fake_get)
    no_wait = download_county_boundaries.retry_with(wait=wait_none())

    with pytest.raises(requests.exceptions.HTTPError):
        no_wait('https://example.test/counties.zip', tmp_path / 'counties.zip')
    assert len(calls) == 3
    assert not (tmp_path / 'counties.zip').exists()
    assert not (tmp_path / 'counties.zip.part').exists()
