import json

import requests
import shapefile  # type: ignore

from riskglobe import boundaries

COUNTRIES = {
    'type': 'FeatureCollection',
    'features': [
        {
            'type': 'Feature',
            'properties': {'NAME': 'Dem. Rep. Congo', 'POP_EST': 86790567},
            'geometry': {'type': 'Polygon', 'coordinates': [[[12, -5], [12, 5], [30, 5], [30, -5], [12, -5]]]},
        },
        {'type': 'Feature', 'properties': {'NAME': 'Nowhere'}, 'geometry': None},
    ],
}


class _Response:
    def __init__(self, payload, status=200):
        self._payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f'{self.status_code} error')

    def json(self):
        return self._payload


def test_download_caches_boundaries(tmp_path, monkeypatch):
    calls = []

    def fake_get(url, timeout):
        calls.append(url)
        return _Response(COUNTRIES)

    monkeypatch.setattr(boundaries.requests, 'get', fake_get)
    cache = tmp_path / 'countries.geojson'

    first = boundaries.download_boundaries(cache=cache)
    second = boundaries.download_boundaries(cache=cache)

    assert len(calls) == 1
    assert first == second == COUNTRIES['features']
    assert json.loads(cache.read_text(encoding='utf-8')) == COUNTRIES


def test_download_failure_returns_no_countries(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(boundaries.requests, 'get', lambda url, timeout: _Response({}, status=503))
    cache = tmp_path / 'countries.geojson'

    assert boundaries.download_boundaries(cache=cache) == []
    assert not cache.exists()
    assert 'Country boundaries unavailable' in capsys.readouterr().out


def test_corrupt_cache_is_downloaded_again(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(boundaries.requests, 'get', lambda url, timeout: _Response(COUNTRIES))
    cache = tmp_path / 'countries.geojson'
    cache.write_text('{"type": "FeatureColl', encoding='utf-8')

    assert boundaries.download_boundaries(cache=cache) == COUNTRIES['features']
    assert json.loads(cache.read_text(encoding='utf-8')) == COUNTRIES
    assert 'unreadable boundaries cache' in capsys.readouterr().out


def test_cache_without_features_and_no_network(tmp_path, monkeypatch):
    monkeypatch.setattr(boundaries.requests, 'get', lambda url, timeout: _Response({}, status=503))
    cache = tmp_path / 'countries.geojson'
    cache.write_text('[1, 2, 3]', encoding='utf-8')

    assert boundaries.download_boundaries(cache=cache) == []


def test_slim_features_attaches_profile_details(tmp_path):
    (tmp_path / 'country_profile_Democratic_Republic_of_the_Congo.png').write_bytes(b'png')

    slimmed = boundaries.slim_features(COUNTRIES['features'], profile_base='profiles', profile_dir=tmp_path)

    assert len(slimmed) == 1
    props = slimmed[0]['properties']
    assert props == {
        'NAME': 'Dem. Rep. Congo',
        'key': 'Democratic_Republic_of_the_Congo',
        'profilePath': 'profiles/country_profile_Democratic_Republic_of_the_Congo.png',
        'region': 'Africa',
        'hasProfile': True,
    }
    assert slimmed[0]['geometry'] == COUNTRIES['features'][0]['geometry']


def test_shapefile_boundaries(tmp_path):
    path = tmp_path / 'countries'
    writer = shapefile.Writer(str(path), shapeType=shapefile.POLYGON)
    writer.field('NAME', 'C')
    writer.poly([[[0, 0], [0, 10], [10, 10], [10, 0], [0, 0]]])
    writer.record('Chad')
    writer.close()

    features = boundaries.load_boundaries(str(path) + '.shp')

    assert len(features) == 1
    assert features[0]['properties'] == {'NAME': 'Chad'}
    assert features[0]['geometry']['type'] in ('Polygon', 'MultiPolygon')
