"""
Color mapping.

Maps the banded field ([-1, 1]) through contrast / brightness and a
3-stop piecewise-linear ramp into opaque RGBA bytes:

    value  0.0 -> base color
    value  0.5 -> secondary color
    value  1.0 -> accent color
"""

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .params import RGB, TextureParams

logger = logging.getLogger(__name__)

OPAQUE = 255


@dataclass(frozen=True)
class ColorRamp:
    """Resolved ramp stops plus the tone adjustment applied before lookup."""
    base: RGB
    secondary: RGB
    accent: RGB
    contrast: float = 1.0
    brightness: float = 0.0

    @classmethod
    def from_params(cls, params: TextureParams) -> "ColorRamp":
        base, secondary, accent = params.ramp_colors
        return cls(base, secondary, accent, params.contrast, params.brightness)

    @property
    def stops(self) -> np.ndarray:
        """(3, 3) float array: rows are base, secondary, accent."""
        return np.array([self.base, self.secondary, self.accent], dtype=np.float64)


def adjust_tone(normalized: np.ndarray, contrast: float, brightness: float) -> np.ndarray:
    """clamp01((v - 0.5) * contrast + 0.5 + brightness)"""
    return np.clip((normalized - 0.5) * contrast + 0.5 + brightness, 0.0, 1.0)


def ramp_lookup(tone: np.ndarray, stops: np.ndarray) -> np.ndarray:
    """
    Two-segment linear interpolation across the 3 stops.

    Args:
        tone: Array of values in [0, 1].
        stops: (3, 3) array of RGB stops.

    Returns:
        Float RGB array with shape tone.shape + (3,).
    """
    tone = np.asarray(tone, dtype=np.float64)[..., None]
    base, secondary, accent = stops

    lower = tone < 0.5
    t_low = tone * 2.0
    t_high = (tone - 0.5) * 2.0

    low_rgb = base + (secondary - base) * t_low
    high_rgb = secondary + (accent - secondary) * t_high
    return np.where(lower, low_rgb, high_rgb)


def colorize_field(values: np.ndarray, ramp: ColorRamp, out: np.ndarray = None) -> np.ndarray:
    """
    Converts a block of field values into RGBA uint8.

    Args:
        values: (rows, cols) float array in [-1, 1].
        ramp: Resolved color ramp.
        out: Optional (rows, cols, 4) uint8 destination, written in place.

    Returns:
        The (rows, cols, 4) uint8 RGBA block.
    """
    values = np.asarray(values, dtype=np.float64)
    normalized = (values + 1.0) * 0.5
    tone = adjust_tone(normalized, ramp.contrast, ramp.brightness)
    rgb = ramp_lookup(tone, ramp.stops)

    if out is None:
        out = np.empty(values.shape + (4,), dtype=np.uint8)
    out[..., :3] = np.clip(np.rint(rgb), 0, 255).astype(np.uint8)
    out[..., 3] = OPAQUE
    return out


def colorize(value: float, params: TextureParams) -> Tuple[int, int, int, int]:
    """Single-value convenience wrapper around colorize_field."""
    rgba = colorize_field(np.array([[value]], dtype=np.float64), ColorRamp.from_params(params))
    return tuple(int(c) for c in rgba[0, 0])
