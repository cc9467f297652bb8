import json

import pytest

from riskglobe import optimize_data


def _feature(props, coordinates=None):
    geometry = {'type': 'Point', 'coordinates': coordinates} if coordinates else None
    return {'type': 'Feature', 'properties': props, 'geometry': geometry}


def _write_geojson(path, features, crs=None):
    data = {'type': 'FeatureCollection', 'features': features}
    if crs:
        data['crs'] = {'type': 'name', 'properties': {'name': crs}}
    path.write_text(json.dumps(data), encoding='utf-8')
    return path


def test_optimize_flattens_properties(tmp_path):
    source = _write_geojson(
        tmp_path / 'seismic-risk.geojson',
        [
            _feature({'lat': 35.6, 'lon': 139.7, 'losses': 2.5e6, 'fatalities': 12, 'buildings': 300, 'GID': 'JPN'}),
            _feature({'lat': -33.4, 'lon': -70.6, 'losses': 8000}),
            _feature({'losses': 1}),
        ],
    )
    output = tmp_path / 'out' / 'seismic-risk-optimized.json'

    records = optimize_data.optimize(source, output)

    assert json.loads(output.read_text(encoding='utf-8')) == records
    assert records == [
        {'lat': 35.6, 'lng': 139.7, 'losses': 2.5e6, 'fatalities': 12, 'buildings': 300},
        {'lat': -33.4, 'lng': -70.6, 'losses': 8000},
    ]


def test_point_geometry_is_reprojected(tmp_path):
    source = _write_geojson(
        tmp_path / 'projected.geojson',
        [_feature({'losses': 5000}, coordinates=[0.0, 0.0])],
        crs='EPSG:3857',
    )
    df = optimize_data.features_to_frame(json.loads(source.read_text(encoding='utf-8')))
    assert len(df) == 1
    assert df.loc[0, 'lat'] == pytest.approx(0.0, abs=1e-6)
    assert df.loc[0, 'lng'] == pytest.approx(0.0, abs=1e-6)


def test_sampling_keeps_every_nth_point(tmp_path):
    source = _write_geojson(
        tmp_path / 'seismic-risk.geojson',
        [_feature({'lat': float(idx), 'lon': 0.0, 'losses': idx}) for idx in range(10)],
    )
    records = optimize_data.optimize(source, tmp_path / 'sampled.json', sample_rate=5)
    assert [record['lat'] for record in records] == [0.0, 5.0]

    with pytest.raises(ValueError):
        optimize_data.optimize(source, tmp_path / 'bad.json', sample_rate=0)


def test_missing_or_malformed_source(tmp_path):
    with pytest.raises(FileNotFoundError):
        optimize_data.optimize(tmp_path / 'nope.geojson', tmp_path / 'out.json')
    bad = tmp_path / 'bad.geojson'
    bad.write_text('{"type": "Feature"}', encoding='utf-8')
    with pytest.raises(RuntimeError):
        optimize_data.optimize(bad, tmp_path / 'out.json')


def test_main_reports_sizes(tmp_path, capsys):
    source = _write_geojson(tmp_path / 'seismic-risk.geojson', [_feature({'lat': 1.0, 'lon': 2.0, 'losses': 3.0})])
    optimize_data.main([str(source), str(tmp_path / 'out.json')])
    out = capsys.readouterr().out
    assert 'Original features: 1' in out
    assert 'Optimized size:' in out
