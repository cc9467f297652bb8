import logging
import math
from decimal import Decimal

import pytest

from riskglobe import color_mapping as colors


def test_scale_is_contiguous_and_ends_unbounded():
    scale = colors.RISK_COLOR_SCALE
    assert scale[0].lower == 1000
    for current, following in zip(scale, scale[1:]):
        assert current.upper == following.lower
    assert math.isinf(scale[-1].upper)
    assert not any(math.isinf(tier.upper) for tier in scale[:-1])


@pytest.mark.parametrize('magnitude', [-5.0, 0, 999.999, float('-inf')])
def test_below_scale_maps_to_white_sentinel(magnitude):
    tier = colors.classify(magnitude)
    assert tier is colors.BELOW_RISK
    assert colors.resolve_color(magnitude) == (255, 255, 255)
    assert colors.resolve_color_hex(magnitude) == '#ffffff'


def test_boundaries_are_lower_inclusive_upper_exclusive():
    assert colors.classify(1000) is colors.RISK_COLOR_SCALE[0]
    assert colors.classify(5000) is colors.RISK_COLOR_SCALE[1]
    assert colors.classify(4999.999) is colors.RISK_COLOR_SCALE[0]
    tier = colors.classify(1000000)
    assert (tier.lower, tier.upper) == (1000000, 2000000)


def test_known_magnitudes_resolve_to_scale_colours():
    assert colors.classify(500) is colors.BELOW_RISK
    assert colors.resolve_color(7500) == (250, 252, 243)
    assert colors.resolve_color_hex(7500) == '#fafcf3'
    assert colors.resolve_color(12000000) == (255, 69, 0)
    assert colors.resolve_color_hex(12000000) == '#ff4500'


def test_values_matching_no_tier_fall_back_to_top_tier():
    assert colors.classify(float('inf')) is colors.RISK_COLOR_SCALE[-1]
    assert colors.classify(float('nan')) is colors.RISK_COLOR_SCALE[-1]
    assert colors.resolve_color_hex(float('nan')) == '#ff4500'


def test_huge_and_decimal_magnitudes_classify():
    assert colors.classify(10 ** 400) is colors.RISK_COLOR_SCALE[-1]
    assert colors.tier_index(10 ** 400) == len(colors.RISK_COLOR_SCALE) - 1
    assert colors.classify(-(10 ** 400)) is colors.BELOW_RISK
    assert colors.classify(Decimal('7500')) is colors.RISK_COLOR_SCALE[1]


def test_tier_index_is_monotonic():
    magnitudes = [-1, 0, 999, 1000, 4999, 5000, 24999, 25000, 1e6, 5e6, 1e7, 1e9, float('inf')]
    indices = [colors.tier_index(m) for m in magnitudes]
    assert indices == sorted(indices)
    assert indices[0] == -1
    assert indices[-1] == len(colors.RISK_COLOR_SCALE) - 1


def test_hex_encoding_round_trips_every_tier():
    for tier in colors.RISK_COLOR_SCALE:
        assert colors.hex_to_rgb(colors.rgb_to_hex(tier.color)) == tier.color


def test_rgb_to_hex_zero_pads_channels():
    assert colors.rgb_to_hex(colors.RGB(5, 0, 255)) == '#0500ff'
    assert colors.rgb_to_hex('rgb(249, 134, 0)') == '#f98600'


def test_unparseable_colour_string_falls_back_to_black(caplog):
    with caplog.at_level(logging.WARNING, logger='riskglobe.color_mapping'):
        assert colors.rgb_to_hex('hsl(10, 20%, 30%)') == '#000000'
        assert colors.rgb_to_hex('rgb(300,0,0)') == '#000000'
    assert 'Cannot convert colour' in caplog.text


def test_side_colour_appends_alpha_suffix():
    for magnitude in [0, 1500, 7500, 3e6, 2e7]:
        side = colors.side_color_hex(magnitude)
        assert len(side) == 9
        assert side == colors.resolve_color_hex(magnitude) + '80'
    assert colors.side_color_hex(7500, alpha='cc') == '#fafcf3cc'


def test_hex_to_rgb_rejects_malformed_input():
    with pytest.raises(ValueError):
        colors.hex_to_rgb('#12345')
    with pytest.raises(ValueError):
        colors.parse_rgb('rgb(1,2)')


@pytest.mark.parametrize(
    'rows',
    [
        [(1000, 5000, 'rgb(1,2,3)', 'a'), (6000, math.inf, 'rgb(1,2,3)', 'b')],
        [(1000, math.inf, 'rgb(1,2,3)', 'a'), (5000, 6000, 'rgb(1,2,3)', 'b')],
        [(1000, 5000, 'rgb(1,2,3)', 'a')],
        [(1000, math.inf, 'not a colour', 'a')],
        [('low', math.inf, 'rgb(1,2,3)', 'a')],
        [],
    ],
)
def test_malformed_scale_fails_fast(rows):
    with pytest.raises(RuntimeError):
        colors._build_scale(rows)


def test_legend_lists_sentinel_then_tiers():
    entries = colors.legend_entries()
    assert len(entries) == len(colors.RISK_COLOR_SCALE) + 1
    assert entries[0] == {'label': 'Below 1k', 'color': '#ffffff', 'min': None, 'max': 1000}
    assert entries[-1]['label'] == '10M+'
    assert entries[-1]['max'] is None
    assert entries[-1]['color'] == '#ff4500'
