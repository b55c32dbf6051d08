"""
Scalar field stages: fBm, domain warp, banding and the composed sampler.
"""

import numpy as np
import pytest

from aetherlab import TextureParams
from aetherlab.diagnostics import roughness, sample_window
from aetherlab.field import FieldSampler, band, clamp_octaves, fbm, warp
from aetherlab.noise_kernel import NoiseKernel


@pytest.fixture
def kernel():
    return NoiseKernel(12345)


@pytest.fixture
def grid():
    ys, xs = np.indices((48, 48), dtype=np.float64)
    return xs * 0.05 + 3.1, ys * 0.05 + 1.7


class TestFbm:

    def test_single_octave_is_the_kernel(self, kernel, grid):
        xs, ys = grid
        assert np.array_equal(fbm(kernel, xs, ys, 1), kernel.sample_array(xs, ys))

    def test_octaves_are_clamped(self, kernel, grid):
        xs, ys = grid
        assert np.array_equal(fbm(kernel, xs, ys, 0), fbm(kernel, xs, ys, 1))
        assert np.array_equal(fbm(kernel, xs, ys, 12), fbm(kernel, xs, ys, 8))
        assert clamp_octaves(-3) == 1
        assert clamp_octaves(100) == 8

    def test_normalized_range(self, kernel):
        rng = np.random.default_rng(1)
        xs = rng.uniform(-100, 100, 10000)
        ys = rng.uniform(-100, 100, 10000)
        for octaves in (1, 4, 8):
            values = fbm(kernel, xs, ys, octaves)
            assert values.min() >= -1.0
            assert values.max() <= 1.0

    def test_roughness_increases_with_octaves(self):
        values = []
        for detail in range(1, 9):
            params = TextureParams(seed=12345, distortion=0.0, phase=0.0, detail=detail)
            window = sample_window(params, size=256, origin=(10.3, 7.7), step=0.003, banded=False)
            values.append(roughness(window))

        for lower, higher in zip(values, values[1:]):
            assert higher > lower


class TestWarp:

    def test_zero_distortion_is_identity(self, kernel, grid):
        xs, ys = grid
        wx, wy = warp(kernel, xs, ys, 0.0, 4)
        assert np.array_equal(wx, xs)
        assert np.array_equal(wy, ys)

    def test_offset_scales_with_distortion(self, kernel, grid):
        xs, ys = grid
        wx1, wy1 = warp(kernel, xs, ys, 1.0, 3)
        wx3, wy3 = warp(kernel, xs, ys, 3.0, 3)
        assert np.allclose(wx3 - xs, 3.0 * (wx1 - xs))
        assert np.allclose(wy3 - ys, 3.0 * (wy1 - ys))

    def test_components_are_decorrelated(self, kernel, grid):
        xs, ys = grid
        wx, wy = warp(kernel, xs, ys, 1.0, 3)
        assert not np.allclose(wx - xs, wy - ys)


class TestBand:

    def test_zero_phase_passthrough(self):
        values = np.linspace(-1, 1, 101)
        assert np.array_equal(band(values, 0.0), values)

    def test_range_and_effect(self):
        values = np.linspace(-1, 1, 1001)
        banded = band(values, 12.0)
        assert banded.min() >= -1.0
        assert banded.max() <= 1.0
        assert not np.allclose(banded, values)

    def test_more_phase_more_bands(self):
        values = np.linspace(-1, 1, 4001)

        def crossings(phase):
            signs = np.sign(band(values, phase))
            return int(np.count_nonzero(np.diff(signs)))

        assert crossings(3.0) < crossings(8.0) < crossings(20.0)


class TestFieldSampler:

    def test_distortion_zero_matches_unwarped_fbm(self, kernel, grid):
        xs, ys = grid
        sampler = FieldSampler(kernel, distortion=0.0, detail=5, phase=0.0)
        assert np.array_equal(sampler.evaluate(xs, ys), fbm(kernel, xs, ys, 5))

    def test_phase_zero_matches_unbanded(self, kernel, grid):
        xs, ys = grid
        sampler = FieldSampler(kernel, distortion=4.5, detail=4, phase=0.0)
        assert np.array_equal(sampler.evaluate(xs, ys), sampler.warped_value(xs, ys))

    def test_repeatable(self, kernel, grid):
        xs, ys = grid
        sampler = FieldSampler(kernel, distortion=4.5, detail=4, phase=5.0)
        assert np.array_equal(sampler.evaluate(xs, ys), sampler.evaluate(xs, ys))

    def test_scalar_sample_matches_grid(self, kernel, grid):
        xs, ys = grid
        sampler = FieldSampler(kernel, distortion=2.0, detail=3, phase=4.0)
        values = sampler.evaluate(xs, ys)
        assert sampler.sample(xs[5, 7], ys[5, 7]) == pytest.approx(values[5, 7], abs=1e-12)

    def test_from_params(self):
        params = TextureParams(seed=77, distortion=1.5, detail=6, phase=2.0)
        sampler = FieldSampler.from_params(params)
        assert sampler.kernel.current_seed == 77
        assert (sampler.distortion, sampler.detail, sampler.phase) == (1.5, 6, 2.0)
