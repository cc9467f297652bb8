"""Aggregate risk points into grid cells and colour each cell by its summed weight."""
from __future__ import annotations

from typing import Dict, List

import pandas as pd

from riskglobe.color_mapping import classify, resolve_color_hex, side_color_hex, tier_index

METRICS = ('losses', 'fatalities', 'buildings')
BIN_SIZE_DEGREES = {1: 5.0, 2: 1.5, 3: 0.5}
DEFAULT_RESOLUTION = 2
HIGH_RESOLUTION = 3
ZOOM_THRESHOLD = 0.5  # altitude below which the high-detail grid is used
CELL_MARGIN = 0.2


def resolution_for_altitude(altitude: float, base: int = DEFAULT_RESOLUTION) -> int:
    return HIGH_RESOLUTION if altitude < ZOOM_THRESHOLD else base


def _cell_polygon(lat: float, lng: float, size: float) -> List[List[float]]:
    half = size * (1 - CELL_MARGIN) / 2
    south, north = max(lat - half, -90.0), min(lat + half, 90.0)
    west, east = lng - half, lng + half
    # clockwise ring, closed
    return [
        [round(west, 5), round(south, 5)],
        [round(west, 5), round(north, 5)],
        [round(east, 5), round(north, 5)],
        [round(east, 5), round(south, 5)],
        [round(west, 5), round(south, 5)],
    ]


def bin_records(df: pd.DataFrame, metric: str = 'losses', resolution: int = DEFAULT_RESOLUTION) -> List[Dict]:
    if metric not in METRICS:
        raise ValueError(f"Unknown metric {metric!r}. Available: {', '.join(METRICS)}")
    if resolution not in BIN_SIZE_DEGREES:
        raise ValueError(f"Unknown resolution {resolution}. Available: {sorted(BIN_SIZE_DEGREES)}")
    if df.empty or 'lat' not in df.columns or 'lng' not in df.columns:
        return []

    size = BIN_SIZE_DEGREES[resolution]
    n_rows = int(round(180 / size))
    n_cols = int(round(360 / size))
    points = df[['lat', 'lng']].apply(pd.to_numeric, errors='coerce')
    points['weight'] = pd.to_numeric(df[metric], errors='coerce').fillna(0) if metric in df.columns else 0.0
    points = points.dropna(subset=['lat', 'lng'])
    if points.empty:
        return []

    points['row'] = ((points['lat'] + 90) // size).clip(0, n_rows - 1).astype(int)
    points['col'] = (((points['lng'] + 180) % 360) // size).clip(0, n_cols - 1).astype(int)
    grouped = points.groupby(['row', 'col']).agg(sumWeight=('weight', 'sum'), n_points=('weight', 'size')).reset_index()

    cells = []
    for row in grouped.itertuples(index=False):
        lat = -90 + (row.row + 0.5) * size
        lng = -180 + (row.col + 0.5) * size
        weight = float(row.sumWeight)
        cells.append(
            {
                'lat': lat,
                'lng': lng,
                'sumWeight': weight,
                'count': int(row.n_points),
                'tier': tier_index(weight),
                'label': classify(weight).label,
                'topColor': resolve_color_hex(weight),
                'sideColor': side_color_hex(weight),
                'polygon': _cell_polygon(lat, lng, size),
            }
        )
    return cells


def bin_all_metrics(df: pd.DataFrame, resolution: int = DEFAULT_RESOLUTION) -> Dict[str, List[Dict]]:
    return {metric: bin_records(df, metric, resolution) for metric in METRICS}
