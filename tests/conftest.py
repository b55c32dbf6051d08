import matplotlib

matplotlib.use("Agg")

import pytest

from aetherlab import RenderGeometry, TextureParams


class FakeClock:
    """Manually advanced monotonic clock for settle-delay tests."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def small_geometry():
    # Non-square and not a multiple of the chunk height
    return RenderGeometry(64, 40)


@pytest.fixture
def example_params():
    return TextureParams(
        seed=12345,
        scale=0.003,
        distortion=4.5,
        detail=4,
        phase=5.0,
        contrast=1.2,
        brightness=0.0,
        base_color="#0f172a",
        secondary_color="#3b82f6",
        accent_color="#bfdbfe",
    )


@pytest.fixture
def fast_config():
    return {"render": {"chunk_rows": 16, "settle_delay": 0.15}}
