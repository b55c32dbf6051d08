import logging
from typing import Union

import numpy as np

logger = logging.getLogger(__name__)

ArrayLike = Union[float, np.ndarray]

# 32-bit LCG (Numerical Recipes constants) driving the shuffle
_LCG_A = 1664525
_LCG_C = 1013904223
_LCG_MASK = 0xFFFFFFFF

TABLE_SIZE = 256

# 8 unit gradients spaced 45 degrees apart, selected by (hash & 7)
_ANGLES = np.arange(8, dtype=np.float64) * (np.pi / 4.0)
GRADIENTS_X = np.cos(_ANGLES)
GRADIENTS_Y = np.sin(_ANGLES)
GRADIENTS_X.flags.writeable = False
GRADIENTS_Y.flags.writeable = False

# Unit-gradient 2D noise peaks at sqrt(2)/2; this maps it onto [-1, 1]
_OUTPUT_GAIN = np.sqrt(2.0)


def build_permutation(seed: int) -> np.ndarray:
    """
    Fisher-Yates shuffle of 0..255 driven by a seeded linear congruential
    generator, duplicated to 512 entries so corner lookups never wrap.

    Depends only on 'seed'. The returned array is read-only.
    """
    state = int(seed) & _LCG_MASK
    table = list(range(TABLE_SIZE))
    for i in range(TABLE_SIZE - 1, 0, -1):
        state = (_LCG_A * state + _LCG_C) & _LCG_MASK
        j = state % (i + 1)
        table[i], table[j] = table[j], table[i]

    perm = np.array(table + table, dtype=np.int64)
    perm.flags.writeable = False
    return perm


def _fade(t: np.ndarray) -> np.ndarray:
    """Quintic fade 6t^5 - 15t^4 + 10t^3 (zero 1st and 2nd derivative at the lattice)."""
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


class NoiseKernel:
    """
    Seeded 2D gradient noise.

    Owns one permutation table built from the seed. The table is rebuilt
    only by seed(); sampling never mutates anything, so the same
    (seed, x, y) always returns the same value.

    Each render generation gets its own kernel instance; kernels are never
    shared through module globals.
    """

    def __init__(self, seed: int = 0):
        self._seed = None
        self._perm = None
        self.seed(seed)

    def seed(self, value: int) -> None:
        """Rebuilds the permutation table for 'value' (no-op if unchanged)."""
        value = int(value)
        if self._perm is not None and value == self._seed:
            return
        self._seed = value
        self._perm = build_permutation(value)
        logger.debug(f"NoiseKernel reseeded (seed={value})")

    @property
    def current_seed(self) -> int:
        return self._seed

    @property
    def permutation(self) -> np.ndarray:
        return self._perm

    def sample(self, x: float, y: float) -> float:
        """Noise value in [-1, 1] at a single continuous coordinate."""
        return float(self.sample_array(np.float64(x), np.float64(y)))

    def sample_array(self, x: ArrayLike, y: ArrayLike) -> np.ndarray:
        """
        Vectorized noise over arrays of coordinates (any matching shape).

        Standard lattice gradient noise:
        1. Locate the lattice cell and the offset inside it.
        2. Hash each of the 4 corners through the permutation table.
        3. Dot the corner gradient with the offset to that corner.
        4. Blend the 4 contributions with the quintic fade curve.
        """
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        perm = self._perm

        x0 = np.floor(x)
        y0 = np.floor(y)
        fx = x - x0
        fy = y - y0

        xi = x0.astype(np.int64) & 255
        yi = y0.astype(np.int64) & 255

        # Corner hashes
        row_a = perm[xi]
        row_b = perm[xi + 1]
        h00 = perm[row_a + yi] & 7
        h10 = perm[row_b + yi] & 7
        h01 = perm[row_a + yi + 1] & 7
        h11 = perm[row_b + yi + 1] & 7

        # Gradient . offset at each corner
        n00 = GRADIENTS_X[h00] * fx + GRADIENTS_Y[h00] * fy
        n10 = GRADIENTS_X[h10] * (fx - 1.0) + GRADIENTS_Y[h10] * fy
        n01 = GRADIENTS_X[h01] * fx + GRADIENTS_Y[h01] * (fy - 1.0)
        n11 = GRADIENTS_X[h11] * (fx - 1.0) + GRADIENTS_Y[h11] * (fy - 1.0)

        u = _fade(fx)
        v = _fade(fy)
        nx0 = n00 + u * (n10 - n00)
        nx1 = n01 + u * (n11 - n01)
        result = (nx0 + v * (nx1 - nx0)) * _OUTPUT_GAIN

        return np.clip(result, -1.0, 1.0)

    def __getstate__(self):
        return {"seed": self._seed}

    def __setstate__(self, state):
        self._seed = None
        self._perm = None
        self.seed(state["seed"])

    def __repr__(self):
        return f"NoiseKernel(seed={self._seed})"
