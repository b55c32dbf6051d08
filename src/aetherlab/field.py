"""
Scalar field stages: fractal summation, domain warp, banding.

All stages are pure functions of their inputs plus the kernel's
seed-derived permutation table. They accept scalars or numpy arrays of
matching shape; the engine feeds them one row chunk at a time.
"""

import logging
from typing import Tuple, Union

import numpy as np

from .noise_kernel import NoiseKernel

logger = logging.getLogger(__name__)

ArrayLike = Union[float, np.ndarray]

MIN_OCTAVES = 1
MAX_OCTAVES = 8
LACUNARITY = 2.0
GAIN = 0.5

# Shift applied to the second warp component so qx and qy are uncorrelated
WARP_DECORRELATION = (5.2, 1.3)


def clamp_octaves(octaves: int) -> int:
    return int(min(max(int(octaves), MIN_OCTAVES), MAX_OCTAVES))


def fbm(kernel: NoiseKernel, x: ArrayLike, y: ArrayLike, octaves: int) -> np.ndarray:
    """
    Fractal Brownian motion.

    Sums 'octaves' (clamped to 1..8) kernel samples, doubling frequency and
    halving amplitude each octave, then divides by the amplitude total so
    the output stays in [-1, 1] whatever the octave count.
    """
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)

    total = np.zeros(np.broadcast(x, y).shape, dtype=np.float64)
    frequency = 1.0
    amplitude = 1.0
    amplitude_sum = 0.0

    for _ in range(clamp_octaves(octaves)):
        total += amplitude * kernel.sample_array(x * frequency, y * frequency)
        amplitude_sum += amplitude
        frequency *= LACUNARITY
        amplitude *= GAIN

    return total / amplitude_sum


def warp(
    kernel: NoiseKernel,
    x: ArrayLike,
    y: ArrayLike,
    distortion: float,
    octaves: int
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Domain warp: (x, y) -> (x + d*qx, y + d*qy).

    qx is fBm at (x, y); qy is fBm at the same point shifted by
    WARP_DECORRELATION. distortion == 0 returns the input untouched.
    """
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    if distortion == 0:
        return x, y

    dx, dy = WARP_DECORRELATION
    qx = fbm(kernel, x, y, octaves)
    qy = fbm(kernel, x + dx, y + dy, octaves)
    return x + distortion * qx, y + distortion * qy


def band(value: ArrayLike, phase: float) -> np.ndarray:
    """
    Periodic banding (agate / strata look).

    phase == 0 passes the value through. phase > 0 wraps it with
    sin(value * phase): more phase, denser bands. Output stays in [-1, 1].
    """
    value = np.asarray(value, dtype=np.float64)
    if phase <= 0:
        return value
    return np.clip(np.sin(value * phase), -1.0, 1.0)


class FieldSampler:
    """
    The complete per-coordinate scalar field for one parameter snapshot:

        band(fbm(warp(x, y, distortion), detail), phase)

    Holds only immutable inputs (the kernel's permutation table and four
    numbers), so evaluating the same coordinate twice is bit-identical.
    """

    def __init__(self, kernel: NoiseKernel, distortion: float, detail: int, phase: float):
        self.kernel = kernel
        self.distortion = float(distortion)
        self.detail = clamp_octaves(detail)
        self.phase = float(phase)

    @classmethod
    def from_params(cls, params, kernel: NoiseKernel = None) -> "FieldSampler":
        if kernel is None:
            kernel = NoiseKernel(params.seed)
        return cls(kernel, params.distortion, params.detail, params.phase)

    def warped_value(self, x: ArrayLike, y: ArrayLike) -> np.ndarray:
        """Field value before banding."""
        wx, wy = warp(self.kernel, x, y, self.distortion, self.detail)
        return fbm(self.kernel, wx, wy, self.detail)

    def evaluate(self, x: ArrayLike, y: ArrayLike) -> np.ndarray:
        return band(self.warped_value(x, y), self.phase)

    def sample(self, x: float, y: float) -> float:
        return float(self.evaluate(x, y))
