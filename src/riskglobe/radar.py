"""Country indicator profiles for the two-country radar comparison."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from riskglobe.country_mapping import normalize_country_name

INDICATORS_CSV = Path(
    os.environ.get('SG_COUNTRY_INDICATORS', Path.cwd() / 'public' / 'data' / 'country-indicators.csv')
)

# CSV column -> axis label
RADAR_SUBJECTS = [
    ('buildings_total', 'Total number of buildings'),
    ('replacement_cost', 'Total replacement cost'),
    ('population', 'Population'),
    ('aal_economic', 'AAL economic'),
    ('aal_fatalities', 'AAL fatalities'),
    ('aal_buildings', 'AAL buildings'),
    ('aal_displaced', 'AAL displaced'),
]
FULL_MARK = 150
SERIES_COLORS = ['#8884d8', '#82ca9d']
FILL_OPACITY = 0.6


def load_indicators(path: Path = INDICATORS_CSV) -> pd.DataFrame:
    columns = ['country'] + [column for column, _ in RADAR_SUBJECTS]
    if not path.exists():
        print(f"⚠️  No country indicators at {path}; radar comparison will be empty")
        return pd.DataFrame(columns=columns)
    df = pd.read_csv(path)
    missing = set(columns) - set(df.columns)
    if missing:
        raise RuntimeError(f"Indicators CSV missing columns: {sorted(missing)}")
    df = df[columns].copy()
    for column, _ in RADAR_SUBJECTS:
        df[column] = pd.to_numeric(df[column], errors='coerce')
    return df.dropna(subset=['country'])


def scale_indicators(df: pd.DataFrame, full_mark: float = FULL_MARK) -> pd.DataFrame:
    """Rescale each subject so the largest country sits on the full mark."""
    scaled = df.reindex(columns=['country'] + [column for column, _ in RADAR_SUBJECTS])
    for column, _ in RADAR_SUBJECTS:
        values = scaled[column].fillna(0).clip(lower=0)
        peak = values.max() if not values.empty else 0
        scaled[column] = (values / peak * full_mark).round(1) if peak > 0 else 0.0
    return scaled


def radar_title(country1: Optional[str], country2: Optional[str]) -> str:
    if country1 and country2:
        return f'{country1} vs {country2}'
    return country1 or country2 or 'Select countries to compare'


def build_radar_payload(df: pd.DataFrame) -> Dict:
    scaled = scale_indicators(df)
    series: Dict[str, List[float]] = {}
    for row in scaled.to_dict(orient='records'):
        key = normalize_country_name(str(row['country']))
        series[key] = [float(row[column]) for column, _ in RADAR_SUBJECTS]
    return {
        'subjects': [label for _, label in RADAR_SUBJECTS],
        'fullMark': FULL_MARK,
        'colors': SERIES_COLORS,
        'fillOpacity': FILL_OPACITY,
        'series': series,
    }
