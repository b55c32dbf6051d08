"""
Color mapper: tone adjustment, 3-stop ramp, hex fallback.
"""

import numpy as np

from aetherlab import TextureParams
from aetherlab.colors import ColorRamp, adjust_tone, colorize, colorize_field, ramp_lookup


def _neutral(**overrides):
    values = dict(
        base_color="#0f172a",
        secondary_color="#3b82f6",
        accent_color="#bfdbfe",
        contrast=1.0,
        brightness=0.0,
    )
    values.update(overrides)
    return TextureParams(**values)


class TestRampBoundaries:

    def test_stops_hit_exactly(self):
        params = _neutral()
        # Field -1 / 0 / 1 normalizes to 0.0 / 0.5 / 1.0
        assert colorize(-1.0, params) == (0x0f, 0x17, 0x2a, 255)
        assert colorize(0.0, params) == (0x3b, 0x82, 0xf6, 255)
        assert colorize(1.0, params) == (0xbf, 0xdb, 0xfe, 255)

    def test_ramp_lookup_on_normalized_values(self):
        stops = np.array([[0, 0, 0], [100, 150, 200], [255, 255, 255]], dtype=np.float64)
        rgb = ramp_lookup(np.array([0.0, 0.25, 0.5, 0.75, 1.0]), stops)
        assert np.allclose(rgb[0], [0, 0, 0])
        assert np.allclose(rgb[1], [50, 75, 100])
        assert np.allclose(rgb[2], [100, 150, 200])
        assert np.allclose(rgb[3], [177.5, 202.5, 227.5])
        assert np.allclose(rgb[4], [255, 255, 255])

    def test_alpha_always_opaque(self):
        params = _neutral(contrast=3.0, brightness=0.5)
        block = colorize_field(np.linspace(-1, 1, 64).reshape(8, 8), ColorRamp.from_params(params))
        assert block.dtype == np.uint8
        assert np.all(block[..., 3] == 255)


class TestToneAdjustment:

    def test_formula_and_clamp(self):
        values = np.array([0.0, 0.25, 0.5, 1.0])
        assert np.allclose(adjust_tone(values, 1.0, 0.0), values)
        assert np.allclose(adjust_tone(values, 2.0, 0.0), [0.0, 0.0, 0.5, 1.0])
        assert np.allclose(adjust_tone(values, 1.0, 0.25), [0.25, 0.5, 0.75, 1.0])

    def test_brightness_shifts_along_ramp(self):
        # Darkest field value pushed up to mid-tone lands on the secondary stop
        params = _neutral(brightness=0.5)
        assert colorize(-1.0, params) == (0x3b, 0x82, 0xf6, 255)


class TestHexFallback:

    def test_malformed_colors_render_black(self):
        params = _neutral(base_color="not-a-color", secondary_color="#12345", accent_color="#zzzzzz")
        assert params.ramp_colors == ((0, 0, 0), (0, 0, 0), (0, 0, 0))
        block = colorize_field(np.zeros((4, 4)), ColorRamp.from_params(params))
        assert np.all(block[..., :3] == 0)
        assert np.all(block[..., 3] == 255)

    def test_hash_optional_and_case_insensitive(self):
        params = _neutral(base_color="0F172A", secondary_color="#3B82F6")
        base, secondary, _ = params.ramp_colors
        assert base == (0x0f, 0x17, 0x2a)
        assert secondary == (0x3b, 0x82, 0xf6)


class TestColorizeField:

    def test_writes_into_destination(self):
        params = _neutral()
        out = np.zeros((3, 5, 4), dtype=np.uint8)
        result = colorize_field(np.zeros((3, 5)), ColorRamp.from_params(params), out=out)
        assert result is out
        assert np.all(out[..., :3] == [0x3b, 0x82, 0xf6])
