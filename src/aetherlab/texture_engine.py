import logging
import os
from typing import Iterator, List, Optional, Tuple

import numpy as np
from joblib import Parallel, delayed
from tqdm import tqdm

from .colors import ColorRamp, colorize_field
from .config import CHUNK_ROWS
from .field import FieldSampler
from .geometry import RenderGeometry
from .noise_kernel import NoiseKernel
from .params import TextureParams


def _render_band_task(engine: "TextureEngine", y_start: int, y_end: int) -> np.ndarray:
    """
    Worker for the parallel path. Top level so joblib can pickle it.
    Every worker receives the same engine snapshot (params + kernel seed).
    """
    return engine.render_chunk(y_start, y_end)


class TextureEngine:
    """
    Rasterizes one parameter snapshot into an RGBA buffer.

    Architecture: Row-Chunked, Stateless per Chunk.

    The image is sliced into horizontal bands of 'chunk_rows' rows. Each band
    rebuilds its own coordinate grid from absolute pixel indices, pushes it
    through warp -> fBm -> band -> color, and returns an (rows, width, 4)
    uint8 block. Nothing is carried between bands, which is what lets the
    scheduler stop after any band and lets bands run on separate workers.
    """

    def __init__(
        self,
        params: TextureParams,
        geometry: RenderGeometry,
        chunk_rows: int = CHUNK_ROWS,
        kernel: Optional[NoiseKernel] = None
    ):
        """
        Args:
            params: Immutable parameter snapshot.
            geometry: Output size, fixed for this engine's lifetime.
            chunk_rows: Rows per band (constant, independent of image size).
            kernel: Optional pre-seeded kernel. A fresh one is built from
                    params.seed otherwise. Its seed must match params.seed.
        """
        if chunk_rows <= 0:
            raise ValueError(f"chunk_rows must be positive, got {chunk_rows}")
        if kernel is None:
            kernel = NoiseKernel(params.seed)
        elif kernel.current_seed != params.seed:
            raise ValueError(f"Kernel seed {kernel.current_seed} does not match params seed {params.seed}")

        self.logger = logging.getLogger(__name__)
        self.params = params
        self.geometry = geometry
        self.chunk_rows = int(chunk_rows)
        self.kernel = kernel
        self.sampler = FieldSampler.from_params(params, kernel)
        self.ramp = ColorRamp.from_params(params)

    # ------------------------------------------------------------------
    # Chunk layout
    # ------------------------------------------------------------------

    @property
    def total_chunks(self) -> int:
        return (self.geometry.height + self.chunk_rows - 1) // self.chunk_rows

    def chunk_bounds(self, index: int) -> Tuple[int, int]:
        """(y_start, y_end) of chunk 'index'."""
        if index < 0 or index >= self.total_chunks:
            raise IndexError(f"Chunk {index} out of range (0..{self.total_chunks - 1})")
        y_start = index * self.chunk_rows
        y_end = min(y_start + self.chunk_rows, self.geometry.height)
        return y_start, y_end

    def iter_chunk_bounds(self) -> Iterator[Tuple[int, int]]:
        for index in range(self.total_chunks):
            yield self.chunk_bounds(index)

    # ------------------------------------------------------------------
    # Per-chunk work
    # ------------------------------------------------------------------

    def field_chunk(self, y_start: int, y_end: int) -> np.ndarray:
        """Banded scalar field for rows [y_start, y_end)."""
        grid_x, grid_y = self.geometry.row_coordinates(y_start, y_end, self.params.scale)
        return self.sampler.evaluate(grid_x, grid_y)

    def render_chunk(self, y_start: int, y_end: int, out: Optional[np.ndarray] = None) -> np.ndarray:
        """
        RGBA block for rows [y_start, y_end).

        Args:
            out: Optional (y_end - y_start, width, 4) uint8 view to write into.
        """
        values = self.field_chunk(y_start, y_end)
        return colorize_field(values, self.ramp, out=out)

    def allocate_buffer(self) -> np.ndarray:
        return np.zeros((self.geometry.height, self.geometry.width, 4), dtype=np.uint8)

    # ------------------------------------------------------------------
    # Whole-image paths
    # ------------------------------------------------------------------

    def render(self, progress: bool = False) -> np.ndarray:
        """Serial full render, chunk by chunk in increasing row order."""
        buffer = self.allocate_buffer()
        bounds = self.iter_chunk_bounds()
        if progress:
            bounds = tqdm(bounds, total=self.total_chunks, desc="Texture Render", leave=False)

        for y_start, y_end in bounds:
            self.render_chunk(y_start, y_end, out=buffer[y_start:y_end])
        return buffer

    def render_parallel(self, n_jobs: int = -1, backend: str = "loky", progress: bool = False) -> np.ndarray:
        """
        Embarrassingly parallel render: row bands are distributed across
        joblib workers and the buffer is assembled only after every band
        returned, so callers never see a partially written image.

        Args:
            n_jobs: Worker count. -1 picks cpu_count - 1 (capped at 8).
            backend: joblib backend ('loky' processes or 'threading').
        """
        if n_jobs == -1:
            cpu_count = os.cpu_count() or 4
            n_jobs = max(1, min(8, cpu_count - 1))

        tasks: List[Tuple[int, int]] = list(self.iter_chunk_bounds())
        self.logger.info(
            f"Parallel render {self.geometry.width}x{self.geometry.height} | "
            f"{len(tasks)} bands | Workers: {n_jobs} ({backend})"
        )

        task_iter = tqdm(tasks, desc="Texture Bands", leave=False) if progress else tasks
        results = Parallel(n_jobs=n_jobs, backend=backend)(
            delayed(_render_band_task)(self, y_start, y_end) for y_start, y_end in task_iter
        )

        buffer = self.allocate_buffer()
        for block, (y_start, y_end) in zip(results, tasks):
            buffer[y_start:y_end] = block
        return buffer


def render_texture(
    params: TextureParams,
    geometry: RenderGeometry,
    chunk_rows: int = CHUNK_ROWS,
    n_jobs: int = 1,
    progress: bool = False
) -> np.ndarray:
    """One-shot render. n_jobs != 1 switches to the joblib path."""
    engine = TextureEngine(params, geometry, chunk_rows=chunk_rows)
    if n_jobs == 1:
        return engine.render(progress=progress)
    return engine.render_parallel(n_jobs=n_jobs, progress=progress)
