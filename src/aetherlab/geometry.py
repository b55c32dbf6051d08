import logging
import math
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

import numpy as np

from .config import REFERENCE_EXTENT, RESOLUTION_TIERS

logger = logging.getLogger(__name__)

AspectLike = Union[str, float, Tuple[float, float]]


@dataclass(frozen=True)
class RenderGeometry:
    """
    Output raster size for one generation.

    Attributes:
        width, height: Pixel dimensions.
        reference_extent: Short-side pixel count at which 'scale' is defined.
                          Coordinates are stretched by reference_extent / min(w, h)
                          so the zoom level reads the same at every size and aspect.
    """
    width: int
    height: int
    reference_extent: int = REFERENCE_EXTENT

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Geometry must be positive, got {self.width}x{self.height}")
        if self.reference_extent <= 0:
            raise ValueError(f"reference_extent must be positive, got {self.reference_extent}")

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.height, self.width)

    @property
    def short_side(self) -> int:
        return min(self.width, self.height)

    def coordinate_step(self, scale: float) -> float:
        """Field-space distance between two neighbouring pixels."""
        return scale * self.reference_extent / self.short_side

    def row_coordinates(self, y_start: int, y_end: int, scale: float) -> Tuple[np.ndarray, np.ndarray]:
        """
        Field-space (x, y) grids for rows [y_start, y_end).
        Built from absolute pixel indices so chunking never shifts a pixel.
        """
        step = self.coordinate_step(scale)
        grid_y, grid_x = np.indices((y_end - y_start, self.width), dtype=np.float64)
        grid_y += y_start
        return grid_x * step, grid_y * step


def parse_aspect(aspect: AspectLike) -> float:
    """
    Accepts '16:9', '16/9', 1.777, or (16, 9). Returns width / height.
    Malformed or non-positive ratios fall back to 1.0 (square).
    """
    try:
        if isinstance(aspect, str):
            text = aspect.strip().replace("/", ":")
            if ":" in text:
                w_text, h_text = text.split(":", 1)
                ratio = float(w_text) / float(h_text)
            else:
                ratio = float(text)
        elif isinstance(aspect, (tuple, list)):
            ratio = float(aspect[0]) / float(aspect[1])
        else:
            ratio = float(aspect)
    except (TypeError, ValueError, ZeroDivisionError, IndexError):
        logger.warning(f"Unreadable aspect ratio {aspect!r}; using 1:1.")
        return 1.0

    if not math.isfinite(ratio) or ratio <= 0:
        logger.warning(f"Invalid aspect ratio {aspect!r}; using 1:1.")
        return 1.0
    return ratio


def resolve_geometry(
    tier: str = "preview",
    aspect: AspectLike = "1:1",
    tiers: Optional[Dict[str, int]] = None,
    reference_extent: int = REFERENCE_EXTENT
) -> RenderGeometry:
    """
    Turns a (resolution tier, aspect ratio) pair into pixel dimensions.

    The tier's max-dimension constant becomes the long side; the short side
    is that divided by the ratio, rounded to the nearest pixel (min 1).
    Unknown tiers fall back to 'preview' (or the smallest configured tier).
    """
    tiers = tiers if tiers is not None else RESOLUTION_TIERS

    if tier in tiers:
        max_dim = int(tiers[tier])
    else:
        fallback = "preview" if "preview" in tiers else min(tiers, key=tiers.get)
        logger.warning(f"Unknown resolution tier {tier!r}; using '{fallback}'.")
        max_dim = int(tiers[fallback])

    ratio = parse_aspect(aspect)
    if ratio >= 1.0:
        width = max_dim
        height = max(1, int(round(max_dim / ratio)))
    else:
        height = max_dim
        width = max(1, int(round(max_dim * ratio)))

    geometry = RenderGeometry(width, height, reference_extent)
    logger.debug(f"Resolved geometry: tier={tier!r} aspect={aspect!r} -> {width}x{height}")
    return geometry
