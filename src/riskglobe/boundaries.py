"""Country boundary polygons used for click hit-testing on the globe."""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict, List, Optional, Union

import requests
import shapefile  # type: ignore

from riskglobe.country_mapping import (
    PROFILE_BASE_URL,
    country_profile_path,
    country_region,
    has_country_profile,
    normalize_country_name,
)

BOUNDARIES_URL = (
    'https://raw.githubusercontent.com/nvkelso/natural-earth-vector/master/geojson/'
    'ne_110m_admin_0_countries.geojson'
)
BOUNDARIES_CACHE = Path(
    os.environ.get('SG_BOUNDARIES_CACHE', Path.cwd() / 'public' / 'data' / 'ne_110m_admin_0_countries.geojson')
)
NAME_FIELD = 'NAME'


def download_boundaries(url: str = BOUNDARIES_URL, cache: Path = BOUNDARIES_CACHE) -> List[Dict]:
    """Country features from the cache, downloading them on first use.

    A failed download leaves the globe without countries instead of aborting the build.
    """
    if cache.exists():
        try:
            cached = json.loads(cache.read_text(encoding='utf-8'))
        except ValueError as exc:
            cached = None
            print(f"⚠️  Ignoring unreadable boundaries cache {cache}: {exc}")
        if isinstance(cached, dict) and cached.get('features'):
            return cached['features']
        if cached is not None:
            print(f"⚠️  Boundaries cache {cache} has no features, downloading again")
    print('Downloading country borders GeoJSON…')
    try:
        response = requests.get(url, timeout=60)
        response.raise_for_status()
        data = response.json()
    except (requests.RequestException, ValueError) as exc:
        print(f"⚠️  Country boundaries unavailable: {exc}")
        return []
    if not isinstance(data, dict) or not data.get('features'):
        print('⚠️  Country boundaries response has no features')
        return []
    cache.parent.mkdir(parents=True, exist_ok=True)
    cache.write_text(json.dumps(data), encoding='utf-8')
    print(f"✔️  Cached boundaries at {cache}")
    return data['features']


def load_shapefile_boundaries(path: Union[str, Path], name_field: str = NAME_FIELD) -> List[Dict]:
    reader = shapefile.Reader(str(path))
    try:
        fields = [field[0] for field in reader.fields[1:]]
        if name_field not in fields:
            raise RuntimeError(f"Shapefile {path} has no {name_field!r} field")
        features = []
        for shape_record in reader.iterShapeRecords():
            attr = {name: value for name, value in zip(fields, shape_record.record)}
            if not shape_record.shape.points:
                continue
            features.append(
                {
                    'type': 'Feature',
                    'properties': {NAME_FIELD: attr[name_field]},
                    'geometry': shape_record.shape.__geo_interface__,
                }
            )
        return features
    finally:
        reader.close()


def load_boundaries(source: Optional[Union[str, Path]] = None) -> List[Dict]:
    if source is not None and Path(source).suffix.lower() == '.shp':
        return load_shapefile_boundaries(source)
    if source is not None:
        return download_boundaries(cache=Path(source))
    return download_boundaries()


def slim_features(
    features: List[Dict],
    profile_base: str = PROFILE_BASE_URL,
    profile_dir: Optional[Union[str, Path]] = None,
) -> List[Dict]:
    """Keep name and geometry only, plus the profile image each country opens."""
    slimmed = []
    for feature in features:
        name = (feature.get('properties') or {}).get(NAME_FIELD)
        geometry = feature.get('geometry')
        if not name or not geometry:
            continue
        slimmed.append(
            {
                'type': 'Feature',
                'properties': {
                    NAME_FIELD: name,
                    'key': normalize_country_name(name),
                    'profilePath': country_profile_path(name, base=profile_base),
                    'region': country_region(name),
                    'hasProfile': has_country_profile(name, profile_dir),
                },
                'geometry': geometry,
            }
        )
    return slimmed
