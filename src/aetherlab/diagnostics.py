import logging
from typing import Dict, Optional

import matplotlib.pyplot as plt
import numpy as np

from .field import FieldSampler
from .geometry import RenderGeometry
from .params import TextureParams

logger = logging.getLogger(__name__)


def field_stats(values: np.ndarray) -> Dict[str, float]:
    """Min / Max / Mean / Std of a scalar block."""
    values = np.asarray(values, dtype=np.float64)
    return {
        "min": float(np.min(values)),
        "max": float(np.max(values)),
        "mean": float(np.mean(values)),
        "std": float(np.std(values)),
    }


def roughness(values: np.ndarray) -> float:
    """
    Scale-free local detail measure of a 2D field.

    Mean squared difference between horizontal and vertical neighbours,
    divided by the field variance. Adding finer octaves raises it even
    though fBm normalization keeps the overall amplitude flat.
    """
    values = np.asarray(values, dtype=np.float64)
    variance = np.var(values)
    if variance == 0:
        return 0.0
    dx = np.diff(values, axis=1)
    dy = np.diff(values, axis=0)
    neighbour_energy = 0.5 * (np.mean(dx * dx) + np.mean(dy * dy))
    return float(neighbour_energy / variance)


def sample_window(
    params: TextureParams,
    size: int = 128,
    origin: tuple = (0.0, 0.0),
    step: Optional[float] = None,
    banded: bool = True
) -> np.ndarray:
    """
    Evaluates the field of 'params' on a size x size window.

    Args:
        origin: Field-space (x, y) of the top-left sample.
        step: Field-space spacing; defaults to params.scale.
        banded: False returns the field before the banding stage.
    """
    sampler = FieldSampler.from_params(params)
    step = params.scale if step is None else step
    grid_y, grid_x = np.indices((size, size), dtype=np.float64)
    xs = origin[0] + grid_x * step
    ys = origin[1] + grid_y * step
    if banded:
        return sampler.evaluate(xs, ys)
    return sampler.warped_value(xs, ys)


def describe_params(params: TextureParams, geometry: RenderGeometry, size: int = 128) -> Dict[str, float]:
    """Logs and returns field statistics for the top-left window of a render."""
    step = geometry.coordinate_step(params.scale)
    window = sample_window(params, size=min(size, geometry.width, geometry.height), step=step)
    stats = field_stats(window)
    stats["roughness"] = roughness(window)

    logger.info(f"--- Field Statistics (seed={params.seed}, detail={params.detail}, phase={params.phase}) ---")
    for key, value in stats.items():
        logger.info(f"  {key.capitalize():<10} {value:.4f}")
    return stats


def preview_texture(result, title: Optional[str] = None, show: bool = True):
    """
    Displays a completed render with matplotlib. Returns the Figure.

    Args:
        result: A RenderResult (anything with .buffer and .params).
        show: False skips plt.show() (headless use, tests).
    """
    params = result.params
    fig, ax = plt.subplots(figsize=(8, 8))
    ax.set_title(title or f"Texture Preview\nSeed: {params.seed} | Scale: {params.scale} | "
                          f"Distortion: {params.distortion} | Phase: {params.phase}")
    ax.imshow(result.buffer)
    ax.axis('off')
    if show:
        plt.show()
    return fig
