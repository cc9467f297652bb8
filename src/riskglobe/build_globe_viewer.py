#!/usr/bin/env python3
"""Generate the seismic risk globe viewer (data + HTML) from the optimised point array."""
from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from riskglobe.binning import DEFAULT_RESOLUTION, METRICS, ZOOM_THRESHOLD, bin_all_metrics, resolution_for_altitude
from riskglobe.boundaries import load_boundaries, slim_features
from riskglobe.color_mapping import legend_entries
from riskglobe.country_mapping import PROFILE_BASE_URL
from riskglobe.optimize_data import OPTIMIZED_JSON, display_path
from riskglobe.radar import INDICATORS_CSV, build_radar_payload, load_indicators

OUTPUT_DIR = Path(os.environ.get('SG_VIEWER_OUTPUT', Path.cwd() / 'globe_viewer'))
PROFILE_DIR = os.environ.get('SG_PROFILE_DIR')
BIN_RESOLUTION = int(os.environ.get('SG_BIN_RESOLUTION', DEFAULT_RESOLUTION))

METRIC_CARDS = {
    'losses': {
        'title': 'Losses',
        'description': 'Average annual economic loss from earthquake shaking, summed for each grid cell.',
    },
    'fatalities': {
        'title': 'Fatalities',
        'description': 'Average annual fatalities from building collapse, summed for each grid cell.',
    },
    'buildings': {
        'title': 'Buildings',
        'description': 'Average annual number of damaged buildings, summed for each grid cell.',
    },
}

PANEL_LIMITS = {
    'width': 400,
    'height': 500,
    'minWidth': 300,
    'maxWidth': 800,
    'minHeight': 300,
    'bottomGap': 64,
}


def _load_records(path: Path) -> pd.DataFrame:
    columns = ['lat', 'lng'] + list(METRICS)
    if not path.exists():
        print(f"⚠️  No optimised data at {path}; run riskglobe-optimize first")
        return pd.DataFrame(columns=columns)
    try:
        records = json.loads(path.read_text(encoding='utf-8'))
    except ValueError as exc:
        print(f"⚠️  Could not read {path}: {exc}")
        return pd.DataFrame(columns=columns)
    if not isinstance(records, list):
        print(f"⚠️  {path} does not hold a point array")
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(records).reindex(columns=columns)


def _build_payload(
    records: pd.DataFrame,
    countries: List[Dict],
    indicators: pd.DataFrame,
    resolution: int = DEFAULT_RESOLUTION,
) -> Dict:
    cells = bin_all_metrics(records, resolution)
    detail_resolution = resolution_for_altitude(0.0, resolution)
    detail_cells = cells if detail_resolution == resolution else bin_all_metrics(records, detail_resolution)
    return {
        'activeMetric': METRICS[0],
        'metrics': cells,
        'detailMetrics': detail_cells,
        'metricCards': METRIC_CARDS,
        'resolution': resolution,
        'detailResolution': detail_resolution,
        'zoomThreshold': ZOOM_THRESHOLD,
        'legend': legend_entries(),
        'countries': countries,
        'radar': build_radar_payload(indicators),
        'panel': PANEL_LIMITS,
        'summary': {
            'points': int(len(records)),
            'cells': {metric: len(metric_cells) for metric, metric_cells in cells.items()},
            'countries': len(countries),
        },
    }


def _write_data_js(payload: Dict, output_dir: Path) -> None:
    data_js = output_dir / 'globe_data.js'
    data_js.write_text(f"window.GLOBE_DATA = {json.dumps(payload)};\n", encoding='utf-8')
    print(f"✔️  Wrote {display_path(data_js)}")


def _write_globe_html(output_dir: Path) -> None:
    html_path = output_dir / 'globe.html'
    html_template = """<!DOCTYPE html>
<html lang='en'>
<head>
  <meta charset='utf-8' />
  <title>Global Seismic Risk</title>
  <meta name='viewport' content='width=device-width, initial-scale=1' />
  <style>
    * { box-sizing: border-box; }
    html, body { margin: 0; height: 100%; overflow: hidden; background: #0d1b2a; color: #e2e8f0; font-family: 'Inter', -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif; }
    #globe { position: absolute; inset: 0; }
    #loading { position: absolute; inset: 0; z-index: 2000; display: flex; flex-direction: column; align-items: center; justify-content: center; background: #0d1b2a; transition: opacity 0.4s ease; }
    #loading.done { opacity: 0; pointer-events: none; }
    #loading p { margin-top: 24px; color: rgba(255,255,255,0.75); font-size: 0.85rem; font-weight: 300; letter-spacing: 0.2em; }
    .tooltip { background: rgba(0,0,0,0.8); color: #fff; padding: 6px 10px; border-radius: 6px; font-size: 0.85rem; }
    .overlay { position: absolute; z-index: 1000; }
    #metrics { top: 16px; left: 16px; display: flex; flex-direction: column; gap: 10px; }
    .tabs { display: inline-flex; gap: 4px; padding: 4px; border-radius: 10px; background: rgba(0,0,0,0.4); border: 1px solid rgba(255,255,255,0.1); backdrop-filter: blur(6px); }
    .tabs button { border: none; background: transparent; color: rgba(255,255,255,0.7); padding: 6px 14px; border-radius: 7px; cursor: pointer; font-size: 0.9rem; }
    .tabs button.active { background: rgba(255,255,255,0.15); color: #fff; }
    .card { width: 300px; padding: 16px 18px; border-radius: 12px; background: rgba(0,0,0,0.4); border: 1px solid rgba(255,255,255,0.1); backdrop-filter: blur(6px); }
    .card h3 { margin: 0 0 6px; font-size: 1rem; color: #fff; }
    .card p { margin: 0; font-size: 0.85rem; color: rgba(255,255,255,0.7); }
    .card .meta { margin-top: 8px; color: rgba(255,255,255,0.5); }
    #legend { left: 16px; bottom: 16px; padding: 12px 14px; border-radius: 12px; background: rgba(0,0,0,0.45); border: 1px solid rgba(255,255,255,0.1); font-size: 0.78rem; }
    #legend div { display: flex; align-items: center; gap: 8px; margin: 2px 0; }
    #legend i { width: 14px; height: 10px; border-radius: 2px; display: inline-block; border: 1px solid rgba(255,255,255,0.2); }
    #profile { top: 16px; right: 16px; display: none; flex-direction: column; background: #fff; color: #1f2937; border-radius: 10px; overflow: hidden; box-shadow: 0 25px 60px rgba(0,0,0,0.45); }
    #profile.visible { display: flex; }
    #profile header { display: flex; align-items: center; justify-content: space-between; padding: 1rem; min-height: 60px; border-bottom: 1px solid #e5e7eb; background: #f9fafb; }
    #profile header h2 { margin: 0; font-size: 1.2rem; font-weight: 600; }
    #profile header button { border: none; background: none; font-size: 1.4rem; color: #6b7280; cursor: pointer; }
    #profile .body { flex: 1; min-height: 0; padding: 1rem; overflow: auto; }
    #profile img { width: 100%; height: 100%; object-fit: contain; }
    #profile .missing { height: 100%; display: none; align-items: center; justify-content: center; color: #6b7280; font-size: 0.9rem; }
    #resize-handle { position: absolute; left: 0; bottom: 0; width: 16px; height: 16px; cursor: nesw-resize; background: linear-gradient(135deg, transparent 50%, #9ca3af 50%); border-bottom-left-radius: 10px; }
    #compare { right: 16px; bottom: 16px; width: 520px; padding: 12px; border-radius: 12px; background: rgba(0,0,0,0.45); border: 1px solid rgba(255,255,255,0.1); }
    #compare h3 { margin: 0 0 6px; text-align: center; font-size: 0.95rem; font-weight: 500; color: #fff; }
    #compare svg { width: 100%; height: 300px; display: block; }
    #compare .legend { display: flex; justify-content: center; gap: 16px; font-size: 0.8rem; }
    #compare .legend i { width: 12px; height: 12px; display: inline-block; margin-right: 6px; border-radius: 2px; }
  </style>
</head>
<body>
<div id='loading'>
  <svg width='100' height='100' viewBox='0 0 100 100' fill='none'>
    <circle cx='50' cy='50' r='44' stroke='white' stroke-width='1.2' stroke-opacity='0.85' />
    <ellipse cx='50' cy='50' rx='44' ry='12' stroke='white' stroke-width='0.8' stroke-opacity='0.5' />
    <ellipse cx='50' cy='28' rx='38' ry='10' stroke='white' stroke-width='0.7' stroke-opacity='0.4' />
    <ellipse cx='50' cy='72' rx='38' ry='10' stroke='white' stroke-width='0.7' stroke-opacity='0.4' />
    <ellipse cx='50' cy='50' ry='44' stroke='white' stroke-width='0.9' stroke-opacity='0.65'>
      <animate attributeName='rx' values='44;31;0;31;44;31;0;31;44' dur='4s' repeatCount='indefinite' />
    </ellipse>
    <ellipse cx='50' cy='50' ry='44' stroke='white' stroke-width='0.9' stroke-opacity='0.65'>
      <animate attributeName='rx' values='0;31;44;31;0;31;44;31;0' dur='4s' repeatCount='indefinite' />
    </ellipse>
  </svg>
  <p>LOADING GLOBE...</p>
</div>
<div id='globe'></div>
<div id='metrics' class='overlay'>
  <div class='tabs' id='metric-tabs'></div>
  <div class='card' id='metric-card'>
    <h3 id='metric-title'></h3>
    <p id='metric-description'></p>
    <p class='meta' id='metric-meta'></p>
  </div>
</div>
<div id='legend' class='overlay'></div>
<div id='profile' class='overlay'>
  <header>
    <h2 id='profile-name'></h2>
    <button id='profile-close' aria-label='Close'>&times;</button>
  </header>
  <div class='body'>
    <img id='profile-image' alt='' />
    <div class='missing' id='profile-missing'></div>
  </div>
  <div id='resize-handle'></div>
</div>
<div id='compare' class='overlay'>
  <h3 id='compare-title'></h3>
  <svg id='radar' viewBox='0 0 500 300'></svg>
  <div class='legend' id='compare-legend'></div>
</div>
<script src="//unpkg.com/globe.gl"></script>
<script src="globe_data.js"></script>
<script>
  const DATA = window.GLOBE_DATA;
  const state = { metric: DATA.activeMetric, cardVisible: true, country: null, errorCountry: null, compare: [], detail: false };

  const countryFeatures = (DATA.countries || []).map((feature) => ({
    ...feature,
    properties: { ...feature.properties, kind: 'country' },
  }));

  const cellGrid = () => (state.detail ? DATA.detailMetrics : DATA.metrics);
  const cellFeatures = (metric) => (cellGrid()[metric] || []).map((cell) => ({
    type: 'Feature',
    properties: { ...cell, kind: 'cell' },
    geometry: { type: 'Polygon', coordinates: [cell.polygon] },
  }));

  const escapeHtml = (text) => String(text).replace(/[&<>"']/g, (ch) => `&#${ch.charCodeAt(0)};`);
  const isCell = (d) => d.properties.kind === 'cell';
  const formatNumber = (value) => Number(value).toLocaleString('en-US', { maximumFractionDigits: 0 });

  const world = Globe()(document.getElementById('globe'))
    .globeImageUrl('//unpkg.com/three-globe/example/img/earth-blue-marble.jpg')
    .backgroundImageUrl('//unpkg.com/three-globe/example/img/night-sky.png')
    .polygonsData(countryFeatures.concat(cellFeatures(state.metric)))
    .polygonCapColor((d) => (isCell(d) ? d.properties.topColor : 'rgba(0, 0, 0, 0)'))
    .polygonSideColor((d) => (isCell(d) ? d.properties.sideColor : 'rgba(0, 0, 0, 0)'))
    .polygonStrokeColor((d) => (isCell(d) ? null : 'rgba(100, 100, 100, 0.3)'))
    .polygonAltitude((d) => (isCell(d) ? 0.004 : 0.01))
    .polygonLabel((d) => (isCell(d)
      ? `<div class="tooltip"><b>${formatNumber(d.properties.sumWeight)}</b> · ${d.properties.label}<br/>${d.properties.count} points</div>`
      : `<div class="tooltip"><b>${escapeHtml(d.properties.NAME)}</b></div>`))
    .onPolygonClick((d) => { if (!isCell(d)) selectCountry(d.properties); })
    .onGlobeReady(() => document.getElementById('loading').classList.add('done'));

  world.controls().autoRotate = true;
  world.controls().autoRotateSpeed = 0.5;
  world.controls().addEventListener('change', () => {
    const detail = world.pointOfView().altitude < DATA.zoomThreshold;
    if (detail === state.detail) return;
    state.detail = detail;
    world.polygonsData(countryFeatures.concat(cellFeatures(state.metric)));
    renderMetric();
  });

  function renderMetric() {
    document.querySelectorAll('#metric-tabs button').forEach((button) => {
      button.classList.toggle('active', button.dataset.metric === state.metric);
    });
    const card = DATA.metricCards[state.metric];
    document.getElementById('metric-card').style.display = state.cardVisible ? 'block' : 'none';
    document.getElementById('metric-title').textContent = `${card.title}:`;
    document.getElementById('metric-description').textContent = card.description;
    document.getElementById('metric-meta').textContent = `${(cellGrid()[state.metric] || []).length} cells from ${formatNumber(DATA.summary.points)} points`;
  }

  function handleTabClick(metric) {
    if (metric === state.metric) {
      state.cardVisible = !state.cardVisible;
    } else {
      state.metric = metric;
      state.cardVisible = true;
      world.polygonsData(countryFeatures.concat(cellFeatures(metric)));
    }
    renderMetric();
  }

  const tabs = document.getElementById('metric-tabs');
  Object.entries(DATA.metricCards).forEach(([metric, card]) => {
    const button = document.createElement('button');
    button.dataset.metric = metric;
    button.textContent = card.title;
    button.addEventListener('click', () => handleTabClick(metric));
    tabs.appendChild(button);
  });

  const legend = document.getElementById('legend');
  DATA.legend.forEach((entry) => {
    const row = document.createElement('div');
    row.innerHTML = `<i style="background:${entry.color}"></i>${entry.label}`;
    legend.appendChild(row);
  });

  const panel = document.getElementById('profile');
  const limits = DATA.panel;
  const size = { width: limits.width, height: limits.height };
  const applySize = () => { panel.style.width = `${size.width}px`; panel.style.height = `${size.height}px`; };
  applySize();

  function renderProfile() {
    if (!state.country) {
      panel.classList.remove('visible');
      return;
    }
    const { NAME, profilePath } = state.country;
    const image = document.getElementById('profile-image');
    const missing = document.getElementById('profile-missing');
    const imageError = state.errorCountry === NAME;
    document.getElementById('profile-name').textContent = NAME;
    const message = document.createElement('p');
    const bold = document.createElement('b');
    message.textContent = 'Profile not found for ';
    bold.textContent = NAME;
    message.appendChild(bold);
    missing.replaceChildren(message);
    missing.style.display = imageError ? 'flex' : 'none';
    image.style.display = imageError ? 'none' : 'block';
    if (!imageError && image.getAttribute('src') !== profilePath) {
      image.alt = `${NAME} Seismic Risk Profile`;
      image.src = profilePath;
    }
    panel.classList.add('visible');
  }

  document.getElementById('profile-image').addEventListener('error', () => {
    if (state.country) {
      state.errorCountry = state.country.NAME;
      renderProfile();
    }
  });
  document.getElementById('profile-close').addEventListener('click', () => {
    state.country = null;
    renderProfile();
  });

  document.getElementById('resize-handle').addEventListener('mousedown', (event) => {
    event.preventDefault();
    const start = { x: event.clientX, y: event.clientY, width: size.width, height: size.height };
    const onMove = (e) => {
      // lower-left corner: dragging left widens, dragging down grows
      const deltaX = start.x - e.clientX;
      const deltaY = e.clientY - start.y;
      size.width = Math.max(limits.minWidth, Math.min(limits.maxWidth, start.width + deltaX));
      size.height = Math.max(limits.minHeight, Math.min(window.innerHeight - limits.bottomGap, start.height + deltaY));
      applySize();
    };
    const onUp = () => {
      document.removeEventListener('mousemove', onMove);
      document.removeEventListener('mouseup', onUp);
    };
    document.addEventListener('mousemove', onMove);
    document.addEventListener('mouseup', onUp);
  });

  function radarTitle(first, second) {
    if (first && second) return `${first} vs ${second}`;
    return first || second || 'Select countries to compare';
  }

  function renderRadar() {
    const radar = DATA.radar;
    const svg = document.getElementById('radar');
    const [first, second] = state.compare;
    document.getElementById('compare-title').textContent = radarTitle(first && first.NAME, second && second.NAME);
    const cx = 250, cy = 150, radius = 120;
    const count = radar.subjects.length;
    const point = (idx, value) => {
      const angle = (Math.PI * 2 * idx) / count - Math.PI / 2;
      const r = (value / radar.fullMark) * radius;
      return [cx + r * Math.cos(angle), cy + r * Math.sin(angle)];
    };
    const ring = (value) => radar.subjects.map((_, idx) => point(idx, value).join(',')).join(' ');
    let markup = '';
    [0.2, 0.4, 0.6, 0.8, 1].forEach((share) => {
      markup += `<polygon points="${ring(radar.fullMark * share)}" fill="none" stroke="rgba(255,255,255,0.2)" />`;
    });
    radar.subjects.forEach((subject, idx) => {
      const [x, y] = point(idx, radar.fullMark);
      const [lx, ly] = point(idx, radar.fullMark * 1.12);
      const anchor = Math.abs(lx - cx) < 5 ? 'middle' : (lx > cx ? 'start' : 'end');
      markup += `<line x1="${cx}" y1="${cy}" x2="${x}" y2="${y}" stroke="rgba(255,255,255,0.2)" />`;
      markup += `<text x="${lx}" y="${ly}" fill="#cbd5e1" font-size="10" text-anchor="${anchor}">${subject}</text>`;
    });
    const legendEl = document.getElementById('compare-legend');
    legendEl.replaceChildren();
    state.compare.forEach((country, idx) => {
      const color = radar.colors[idx];
      const values = radar.series[country.key];
      const entry = document.createElement('span');
      const swatch = document.createElement('i');
      swatch.style.background = color;
      entry.appendChild(swatch);
      entry.appendChild(document.createTextNode(`${country.NAME}${values ? '' : ' (no data)'}`));
      legendEl.appendChild(entry);
      if (!values) return;
      const points = values.map((value, vIdx) => point(vIdx, value).join(',')).join(' ');
      markup += `<polygon points="${points}" fill="${color}" fill-opacity="${radar.fillOpacity}" stroke="${color}" />`;
    });
    svg.innerHTML = markup;
  }

  function selectCountry(properties) {
    state.country = properties;
    const already = state.compare.some((country) => country.NAME === properties.NAME);
    if (!already) {
      state.compare = state.compare.concat([properties]).slice(-2);
    }
    renderProfile();
    renderRadar();
  }

  renderMetric();
  renderRadar();
</script>
</body>
</html>
"""
    html_path.write_text(html_template, encoding='utf-8')
    print(f"✔️  Wrote {display_path(html_path)}")


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description='Build the seismic risk globe viewer.')
    parser.add_argument('--data', type=Path, default=OPTIMIZED_JSON, help='Optimised point array (JSON)')
    parser.add_argument('--boundaries', type=Path, default=None, help='Country boundaries (.geojson cache or .shp)')
    parser.add_argument('--indicators', type=Path, default=INDICATORS_CSV, help='Country indicators CSV for the radar')
    parser.add_argument('--output', type=Path, default=OUTPUT_DIR, help='Output directory')
    parser.add_argument('--resolution', type=int, default=BIN_RESOLUTION, help='Grid resolution (1-3)')
    args = parser.parse_args(argv)

    records = _load_records(args.data)
    countries = slim_features(load_boundaries(args.boundaries), PROFILE_BASE_URL, PROFILE_DIR)
    indicators = load_indicators(args.indicators)
    payload = _build_payload(records, countries, indicators, args.resolution)

    args.output.mkdir(parents=True, exist_ok=True)
    _write_data_js(payload, args.output)
    _write_globe_html(args.output)


if __name__ == '__main__':
    main()
