"""Risk colour scale for seismic losses (graduated "losses" field of the GEM QGIS style)."""
from __future__ import annotations

import logging
import math
import re
from typing import Dict, List, NamedTuple, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

SIDE_ALPHA_SUFFIX = '80'

_RGB_PATTERN = re.compile(r'rgb\((\d+),\s*(\d+),\s*(\d+)\)')
_HEX_PATTERN = re.compile(r'#([0-9a-fA-F]{2})([0-9a-fA-F]{2})([0-9a-fA-F]{2})')


class RGB(NamedTuple):
    r: int
    g: int
    b: int


class RiskTier(NamedTuple):
    lower: float
    upper: float
    color: RGB
    label: str


_SCALE_SOURCE: List[Tuple[float, float, str, str]] = [
    (1000, 5000, 'rgb(240,248,255)', '1k - 5k'),
    (5000, 10000, 'rgb(250,252,243)', '5k - 10k'),
    (10000, 25000, 'rgb(139,210,206)', '10k - 25k'),
    (25000, 50000, 'rgb(213,230,53)', '25k - 50k'),
    (50000, 100000, 'rgb(244,237,30)', '50k - 100k'),
    (100000, 500000, 'rgb(246,219,30)', '100k - 500k'),
    (500000, 1000000, 'rgb(249,201,29)', '500k - 1M'),
    (1000000, 2000000, 'rgb(249,168,14)', '1M - 2M'),
    (2000000, 5000000, 'rgb(249,134,0)', '2M - 5M'),
    (5000000, 10000000, 'rgb(255,97,3)', '5M - 10M'),
    (10000000, math.inf, 'rgb(255,69,0)', '10M+'),
]


def _channels(parts: Sequence[int]) -> RGB:
    if any(value < 0 or value > 255 for value in parts):
        raise ValueError(f"Colour channel out of range: {tuple(parts)}")
    return RGB(*parts)


def parse_rgb(value: str) -> RGB:
    """Parse a CSS ``rgb(r, g, b)`` string. Raises ``ValueError`` when malformed."""
    match = _RGB_PATTERN.fullmatch(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Unparseable colour: {value!r}")
    return _channels([int(part) for part in match.groups()])


def hex_to_rgb(value: str) -> RGB:
    match = _HEX_PATTERN.fullmatch(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Unparseable hex colour: {value!r}")
    return RGB(*(int(part, 16) for part in match.groups()))


def rgb_to_hex(color: Union[RGB, str]) -> str:
    """Encode a colour as lowercase ``#rrggbb``.

    CSS strings that cannot be parsed fall back to pure black; the scale is
    static, so reaching that branch means the table itself is broken.
    """
    if isinstance(color, str):
        try:
            color = parse_rgb(color)
        except ValueError:
            logger.warning('Cannot convert colour %r to hex, using #000000', color)
            return '#000000'
    return '#' + ''.join(f'{channel:02x}' for channel in color)


def _build_scale(rows: Sequence[Tuple[float, float, str, str]]) -> Tuple[RiskTier, ...]:
    if not rows:
        raise RuntimeError('Risk colour scale is empty')
    tiers: List[RiskTier] = []
    for idx, (lower, upper, color, label) in enumerate(rows):
        try:
            lower_f, upper_f = float(lower), float(upper)
            rgb = parse_rgb(color)
        except (TypeError, ValueError) as exc:
            raise RuntimeError(f"Invalid risk tier #{idx} ({label!r}): {exc}") from exc
        if math.isnan(lower_f) or math.isnan(upper_f) or lower_f >= upper_f:
            raise RuntimeError(f"Risk tier #{idx} ({label!r}) has bounds {lower_f}..{upper_f}")
        if math.isinf(upper_f) and idx != len(rows) - 1:
            raise RuntimeError(f"Only the last risk tier may be unbounded, got #{idx} ({label!r})")
        if tiers and tiers[-1].upper != lower_f:
            raise RuntimeError(
                f"Risk tiers #{idx - 1} and #{idx} are not contiguous: {tiers[-1].upper} != {lower_f}"
            )
        tiers.append(RiskTier(lower_f, upper_f, rgb, str(label)))
    if not math.isinf(tiers[-1].upper):
        raise RuntimeError('The last risk tier must be unbounded')
    return tuple(tiers)


RISK_COLOR_SCALE: Tuple[RiskTier, ...] = _build_scale(_SCALE_SOURCE)
BELOW_RISK = RiskTier(-math.inf, RISK_COLOR_SCALE[0].lower, RGB(255, 255, 255), 'Below 1k')


def tier_index(magnitude: float) -> int:
    """Position of the matching tier in ``RISK_COLOR_SCALE``; -1 below the scale.

    Values matching no tier (NaN, +inf) fall back to the top tier. The value is
    compared as given, so ints too large for a float still classify.
    """
    if magnitude < RISK_COLOR_SCALE[0].lower:
        return -1
    for idx, tier in enumerate(RISK_COLOR_SCALE):
        if tier.lower <= magnitude < tier.upper:
            return idx
    return len(RISK_COLOR_SCALE) - 1


def classify(magnitude: float) -> RiskTier:
    idx = tier_index(magnitude)
    return BELOW_RISK if idx < 0 else RISK_COLOR_SCALE[idx]


def resolve_color(magnitude: float) -> RGB:
    return classify(magnitude).color


def resolve_color_hex(magnitude: float) -> str:
    return rgb_to_hex(resolve_color(magnitude))


def side_color_hex(magnitude: float, alpha: str = SIDE_ALPHA_SUFFIX) -> str:
    """Hex colour with a trailing alpha pair for the side faces of a cell.

    This only concatenates text; the renderer reads the last pair as alpha.
    """
    return resolve_color_hex(magnitude) + alpha


def legend_entries() -> List[Dict]:
    tiers = (BELOW_RISK,) + RISK_COLOR_SCALE
    return [
        {
            'label': tier.label,
            'color': rgb_to_hex(tier.color),
            'min': None if math.isinf(tier.lower) else tier.lower,
            'max': None if math.isinf(tier.upper) else tier.upper,
        }
        for tier in tiers
    ]
