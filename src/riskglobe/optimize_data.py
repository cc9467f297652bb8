#!/usr/bin/env python3
"""Flatten the seismic-risk GeoJSON into the compact point array the globe loads."""
from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
from pyproj import Transformer

DATA_DIR = Path(os.environ.get('SG_DATA_DIR', Path.cwd() / 'public' / 'data'))
SOURCE_GEOJSON = Path(os.environ.get('SG_SOURCE_GEOJSON', DATA_DIR / 'seismic-risk.geojson'))
OPTIMIZED_JSON = Path(os.environ.get('SG_OPTIMIZED_JSON', DATA_DIR / 'seismic-risk-optimized.json'))

METRIC_COLUMNS = ['losses', 'fatalities', 'buildings']
WGS84_NAMES = {'EPSG:4326', 'OGC:CRS84', 'CRS84', 'urn:ogc:def:crs:OGC:1.3:CRS84', 'urn:ogc:def:crs:EPSG::4326'}


def display_path(path: Path) -> Path:
    try:
        return path.relative_to(Path.cwd())
    except ValueError:
        return path


def _size_mb(path: Path) -> float:
    return path.stat().st_size / 1024 / 1024


def _load_geojson(path: Path) -> Dict:
    if not path.exists():
        raise FileNotFoundError(f"Missing source file: {path}")
    data = json.loads(path.read_text(encoding='utf-8'))
    if not isinstance(data, dict) or not isinstance(data.get('features'), list):
        raise RuntimeError(f"{path} is not a GeoJSON FeatureCollection")
    return data


def _source_crs(data: Dict) -> Optional[str]:
    name = ((data.get('crs') or {}).get('properties') or {}).get('name')
    if not name or name in WGS84_NAMES:
        return None
    return name


def _point_coordinates(feature: Dict) -> Optional[List[float]]:
    geometry = feature.get('geometry') or {}
    if geometry.get('type') != 'Point':
        return None
    coords = geometry.get('coordinates') or []
    if len(coords) < 2:
        return None
    return [coords[0], coords[1]]


def features_to_frame(data: Dict) -> pd.DataFrame:
    """One row per feature with lat, lng and the metric columns."""
    crs = _source_crs(data)
    transformer = Transformer.from_crs(crs, 'EPSG:4326', always_xy=True) if crs else None
    rows = []
    for feature in data['features']:
        props = dict(feature.get('properties') or {})
        lat, lng = props.get('lat'), props.get('lon')
        if lat is None or lng is None:
            coords = _point_coordinates(feature)
            if coords is not None:
                x, y = coords
                if transformer is not None:
                    x, y = transformer.transform(x, y)
                lng, lat = x, y
        row = {'lat': lat, 'lng': lng}
        for column in METRIC_COLUMNS:
            row[column] = props.get(column)
        rows.append(row)
    df = pd.DataFrame(rows, columns=['lat', 'lng'] + METRIC_COLUMNS)
    for column in df.columns:
        df[column] = pd.to_numeric(df[column], errors='coerce')
    return df.dropna(subset=['lat', 'lng']).reset_index(drop=True)


def sample_frame(df: pd.DataFrame, sample_rate: int) -> pd.DataFrame:
    if sample_rate < 1:
        raise ValueError(f"Sample rate must be >= 1, got {sample_rate}")
    if sample_rate == 1:
        return df
    return df.iloc[::sample_rate].reset_index(drop=True)


def frame_to_records(df: pd.DataFrame) -> List[Dict]:
    records = []
    for row in df.to_dict(orient='records'):
        records.append({key: value for key, value in row.items() if not pd.isna(value)})
    return records


def optimize(source: Path, output: Path, sample_rate: int = 1) -> List[Dict]:
    print(f"Loading GeoJSON file {display_path(source)}...")
    data = _load_geojson(source)
    print(f"Original features: {len(data['features'])}")

    df = features_to_frame(data)
    if sample_rate != 1:
        df = sample_frame(df, sample_rate)
        print(f"Sampled features: {len(df)}")
    records = frame_to_records(df)
    print(f"Optimized features: {len(records)}")

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(records, separators=(',', ':')), encoding='utf-8')
    print(f"✔️  Wrote {display_path(output)}")
    print(f"Original size: {_size_mb(source):.2f} MB")
    print(f"Optimized size: {_size_mb(output):.2f} MB")
    return records


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description='Reduce the seismic-risk GeoJSON to a flat point array.')
    parser.add_argument('source', nargs='?', type=Path, default=SOURCE_GEOJSON, help='Source GeoJSON')
    parser.add_argument('output', nargs='?', type=Path, default=OPTIMIZED_JSON, help='Output JSON')
    parser.add_argument('--sample-rate', type=int, default=1, help='Keep every Nth point (default: all)')
    args = parser.parse_args(argv)
    optimize(args.source, args.output, sample_rate=args.sample_rate)


if __name__ == '__main__':
    main()
