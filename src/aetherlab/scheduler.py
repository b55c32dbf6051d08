"""
Render scheduling.

A generation is one attempt to rasterize a (params, geometry) snapshot,
identified by a monotonically increasing token. The scheduler renders the
current generation one row chunk per step() into a private back buffer and
publishes it as the front buffer only once every chunk has been written.
Submitting new input supersedes the in-flight generation: it stops at the
next chunk boundary, never writes again, and never fires callbacks.

step() is the only unit of work, so any driver can sit on top of it: a
plain loop (run_until_complete), an event loop (run_async) or a thread
(BackgroundRenderer).
"""

import asyncio
import enum
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import numpy as np
from tqdm import tqdm

from .config import load_config
from .geometry import AspectLike, RenderGeometry, resolve_geometry
from .params import TextureParams
from .texture_engine import TextureEngine

logger = logging.getLogger(__name__)


class RenderState(enum.Enum):
    IDLE = "idle"
    PENDING = "pending"          # waiting out the settle delay
    RUNNING = "running"
    COMPLETED = "completed"
    SUPERSEDED = "superseded"


@dataclass(frozen=True, eq=False)
class RenderResult:
    """
    A finished, read-only RGBA buffer stamped with its generation.
    Compared by identity: the buffer is an ndarray.
    """
    generation: int
    params: TextureParams
    geometry: RenderGeometry
    buffer: np.ndarray

    @property
    def width(self) -> int:
        return self.geometry.width

    @property
    def height(self) -> int:
        return self.geometry.height


@dataclass(frozen=True)
class RenderStatus:
    state: RenderState
    generation: int
    rows_done: int
    total_rows: int
    width: int
    height: int

    @property
    def progress(self) -> float:
        if self.total_rows == 0:
            return 0.0
        return self.rows_done / self.total_rows

    @property
    def in_progress(self) -> bool:
        return self.state in (RenderState.PENDING, RenderState.RUNNING)


@dataclass
class _PendingRequest:
    params: TextureParams
    geometry: RenderGeometry
    ready_at: float


class RenderGeneration:
    """
    One in-flight render. Owns its engine (and therefore its kernel) and its
    back buffer; both are dropped when the generation is superseded.
    """

    def __init__(self, token: int, params: TextureParams, geometry: RenderGeometry, chunk_rows: int):
        self.token = token
        self.params = params
        self.geometry = geometry
        self.engine = TextureEngine(params, geometry, chunk_rows=chunk_rows)
        self.buffer: Optional[np.ndarray] = self.engine.allocate_buffer()
        self.next_chunk = 0
        self.rows_done = 0
        self.state = RenderState.RUNNING

    @property
    def finished(self) -> bool:
        return self.next_chunk >= self.engine.total_chunks

    def supersede(self) -> None:
        self.state = RenderState.SUPERSEDED
        self.buffer = None

    def __repr__(self):
        return (f"RenderGeneration(token={self.token}, state={self.state.value}, "
                f"rows={self.rows_done}/{self.geometry.height})")


ProgressListener = Callable[[int, int, int], Any]
CompleteListener = Callable[[RenderResult], Any]


class RenderScheduler:
    """
    Generation-token state machine: Idle -> Running(token) -> Completed | Superseded.

    Usage:
        scheduler = RenderScheduler()
        scheduler.submit(params, tier="preview", aspect="1:1")
        result = scheduler.run_until_complete()
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Any] = time.sleep
    ):
        """
        Args:
            config: Overrides merged over config.DEFAULT_CONFIG.
            clock: Monotonic time source used for the settle delay.
            sleep: Blocking sleep used by run_until_complete while waiting
                   out the settle delay.
        """
        self.config = load_config(config)
        render_cfg = self.config["render"]
        resolution_cfg = self.config["resolution"]

        self.chunk_rows = int(render_cfg["chunk_rows"])
        self.settle_delay = float(render_cfg["settle_delay"])
        self.reference_extent = int(render_cfg["reference_extent"])
        self.tiers = dict(resolution_cfg["tiers"])
        self.default_tier = resolution_cfg["default_tier"]
        self.default_aspect = resolution_cfg["default_aspect"]

        self._clock = clock
        self._sleep = sleep
        self._lock = threading.RLock()

        self._token = 0
        self._pending: Optional[_PendingRequest] = None
        self._active: Optional[RenderGeneration] = None
        self._front: Optional[RenderResult] = None
        self._last_params: Optional[TextureParams] = None
        self._last_geometry: Optional[RenderGeometry] = None
        self._last_tier = self.default_tier
        self._last_aspect = self.default_aspect

        self._progress_listeners: List[ProgressListener] = []
        self._complete_listeners: List[CompleteListener] = []

        logger.info(
            f"RenderScheduler ready | chunk_rows={self.chunk_rows} | "
            f"settle_delay={self.settle_delay}s"
        )

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def resolve(self, tier: Optional[str] = None, aspect: Optional[AspectLike] = None) -> RenderGeometry:
        return resolve_geometry(
            tier if tier is not None else self.default_tier,
            aspect if aspect is not None else self.default_aspect,
            tiers=self.tiers,
            reference_extent=self.reference_extent,
        )

    def submit(
        self,
        params: TextureParams,
        geometry: Optional[RenderGeometry] = None,
        tier: Optional[str] = None,
        aspect: Optional[AspectLike] = None,
        immediate: bool = False
    ) -> bool:
        """
        Queues a render of 'params'.

        Geometry comes from 'geometry' if given, else from (tier, aspect),
        else from the previous request (or the configured defaults).
        A tier or aspect left out keeps the last one asked for, so changing
        only the tier preserves the aspect ratio and vice versa.
        Any running generation is superseded right away; the new one
        starts once the settle delay has passed without further submits.

        Returns:
            False if the request matches what is already rendered or queued.
        """
        with self._lock:
            if geometry is None:
                if tier is None and aspect is None and self._last_geometry is not None:
                    geometry = self._last_geometry
                else:
                    tier = tier if tier is not None else self._last_tier
                    aspect = aspect if aspect is not None else self._last_aspect
                    geometry = self.resolve(tier, aspect)
                    self._last_tier = tier
                    self._last_aspect = aspect

            if params == self._last_params and geometry == self._last_geometry:
                logger.debug("Submit ignored: parameters and geometry unchanged.")
                return False

            self._last_params = params
            self._last_geometry = geometry

            if self._active is not None:
                self._supersede_active()

            delay = 0.0 if immediate else self.settle_delay
            self._pending = _PendingRequest(params, geometry, self._clock() + delay)
            logger.debug(f"Render queued ({geometry.width}x{geometry.height}, settle {delay}s)")
            return True

    def set_geometry(self, tier: Optional[str] = None, aspect: Optional[AspectLike] = None, immediate: bool = False) -> bool:
        """
        A geometry change restarts rendering exactly like a parameter change.
        Whichever of tier / aspect is omitted keeps its last requested value.
        """
        with self._lock:
            params = self._last_params
        if params is None:
            params = TextureParams()
        return self.submit(params, tier=tier, aspect=aspect, immediate=immediate)

    def cancel(self) -> None:
        """Drops queued and running work. The front buffer is kept."""
        with self._lock:
            self._pending = None
            if self._active is not None:
                self._supersede_active()
            self._last_params = self._front.params if self._front else None
            self._last_geometry = self._front.geometry if self._front else None

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def on_progress(self, listener: ProgressListener) -> None:
        """listener(generation, rows_done, total_rows) after every chunk."""
        self._progress_listeners.append(listener)

    def on_complete(self, listener: CompleteListener) -> None:
        """listener(result) once per completed (never superseded) generation."""
        self._complete_listeners.append(listener)

    def _notify(self, listeners: List[Callable], *args) -> None:
        for listener in list(listeners):
            try:
                listener(*args)
            except Exception:
                logger.exception(f"Render listener {listener!r} failed")

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def generation(self) -> int:
        """Token of the most recently started generation (0 before any)."""
        return self._token

    @property
    def active_generation(self) -> Optional[RenderGeneration]:
        return self._active

    @property
    def front_buffer(self) -> Optional[RenderResult]:
        """Latest completed render, or None. Never a partially written buffer."""
        return self._front

    @property
    def has_work(self) -> bool:
        with self._lock:
            return self._pending is not None or self._active is not None

    def seconds_until_start(self) -> float:
        """Time left on the settle delay; 0 when rendering, ready or idle."""
        with self._lock:
            if self._active is not None or self._pending is None:
                return 0.0
            return max(0.0, self._pending.ready_at - self._clock())

    @property
    def status(self) -> RenderStatus:
        with self._lock:
            if self._active is not None:
                gen = self._active
                return RenderStatus(RenderState.RUNNING, gen.token, gen.rows_done,
                                    gen.geometry.height, gen.geometry.width, gen.geometry.height)
            if self._pending is not None:
                geo = self._pending.geometry
                return RenderStatus(RenderState.PENDING, self._token, 0, geo.height, geo.width, geo.height)
            if self._front is not None:
                geo = self._front.geometry
                return RenderStatus(RenderState.COMPLETED, self._front.generation,
                                    geo.height, geo.height, geo.width, geo.height)
            return RenderStatus(RenderState.IDLE, self._token, 0, 0, 0, 0)

    # ------------------------------------------------------------------
    # Work
    # ------------------------------------------------------------------

    def _supersede_active(self) -> None:
        gen = self._active
        gen.supersede()
        self._active = None
        logger.info(f"Generation {gen.token} superseded at {gen.rows_done}/{gen.geometry.height} rows")

    def _start_pending(self) -> RenderGeneration:
        request = self._pending
        self._pending = None
        self._token += 1
        gen = RenderGeneration(self._token, request.params, request.geometry, self.chunk_rows)
        self._active = gen
        logger.info(
            f"Generation {gen.token} started | {gen.geometry.width}x{gen.geometry.height} | "
            f"seed={gen.params.seed} detail={gen.params.detail} phase={gen.params.phase}"
        )
        return gen

    def _is_current(self, gen: RenderGeneration) -> bool:
        return (
            gen.token == self._token
            and gen.state is RenderState.RUNNING
            and self._active is gen
        )

    def step(self) -> bool:
        """
        Performs at most one chunk of work.

        Starts the queued generation if its settle delay has elapsed, then
        renders the next row chunk of the running generation. The chunk is
        computed outside the lock and written only if the generation is
        still current.

        Returns:
            True while queued or running work remains.
        """
        with self._lock:
            if self._active is None:
                if self._pending is None:
                    return False
                if self._clock() < self._pending.ready_at:
                    return True
                self._start_pending()
            gen = self._active
            chunk_index = gen.next_chunk

        y_start, y_end = gen.engine.chunk_bounds(chunk_index)
        block = gen.engine.render_chunk(y_start, y_end)

        result = None
        with self._lock:
            if not self._is_current(gen):
                logger.debug(f"Dropping chunk {chunk_index} of superseded generation {gen.token}")
                return self._pending is not None or self._active is not None

            gen.buffer[y_start:y_end] = block
            gen.next_chunk = chunk_index + 1
            gen.rows_done = y_end
            total_rows = gen.geometry.height
            logger.debug(f"Generation {gen.token}: rows {y_start}-{y_end} / {total_rows}")

            if gen.finished:
                result = self._publish(gen)

        self._notify(self._progress_listeners, gen.token, y_end, total_rows)
        if result is not None:
            self._notify(self._complete_listeners, result)

        with self._lock:
            return self._pending is not None or self._active is not None

    def _publish(self, gen: RenderGeneration) -> RenderResult:
        buffer = gen.buffer
        buffer.flags.writeable = False
        result = RenderResult(gen.token, gen.params, gen.geometry, buffer)
        gen.state = RenderState.COMPLETED
        gen.buffer = None
        self._front = result
        self._active = None
        logger.info(f"Generation {gen.token} completed ({gen.geometry.width}x{gen.geometry.height})")
        return result

    # ------------------------------------------------------------------
    # Drivers
    # ------------------------------------------------------------------

    def run_until_complete(self, progress: bool = False) -> Optional[RenderResult]:
        """
        Blocking driver: steps until no work is left and returns the front buffer.
        Waits out the settle delay with the injected sleep.
        """
        bar = None
        bar_token = None
        try:
            while True:
                wait = self.seconds_until_start()
                if wait > 0:
                    self._sleep(wait)
                    continue

                more = self.step()

                if progress:
                    status = self.status
                    if status.state is RenderState.RUNNING:
                        if status.generation != bar_token:
                            if bar is not None:
                                bar.close()
                            bar = tqdm(total=status.total_rows, desc=f"Generation {status.generation}", leave=False)
                            bar_token = status.generation
                        bar.update(status.rows_done - bar.n)
                    elif bar is not None and self._front is not None and self._front.generation == bar_token:
                        bar.update(bar.total - bar.n)

                if not more:
                    break
        finally:
            if bar is not None:
                bar.close()
        return self._front

    async def run_async(self) -> Optional[RenderResult]:
        """Event-loop driver: yields to the loop between chunks."""
        while True:
            wait = self.seconds_until_start()
            if wait > 0:
                await asyncio.sleep(wait)
                continue
            if not self.step():
                break
            await asyncio.sleep(0)
        return self._front


class BackgroundRenderer:
    """
    Thread driver. A daemon thread steps the scheduler whenever there is
    work; submit() may be called from any thread.
    """

    def __init__(self, scheduler: RenderScheduler, idle_timeout: float = 0.05):
        self.scheduler = scheduler
        self.idle_timeout = idle_timeout
        self._wakeup = threading.Event()
        self._idle = threading.Event()
        self._idle.set()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> "BackgroundRenderer":
        if self._thread is not None and self._thread.is_alive():
            return self
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="aetherlab-render", daemon=True)
        self._thread.start()
        return self

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        self._wakeup.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def submit(self, params: TextureParams, **kwargs) -> bool:
        self._idle.clear()
        accepted = self.scheduler.submit(params, **kwargs)
        if accepted:
            self._wakeup.set()
        elif not self.scheduler.has_work:
            self._idle.set()
        return accepted

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """True once no queued or running work is left, False on timeout."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            if self._idle.is_set() and not self.scheduler.has_work:
                return True
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                time.sleep(min(self.idle_timeout, remaining))
            else:
                time.sleep(self.idle_timeout)

    def _loop(self) -> None:
        while not self._stop.is_set():
            if not self.scheduler.has_work:
                self._idle.set()
                self._wakeup.wait(self.idle_timeout)
                self._wakeup.clear()
                continue

            wait = self.scheduler.seconds_until_start()
            if wait > 0:
                self._wakeup.wait(wait)
                self._wakeup.clear()
                continue

            try:
                self.scheduler.step()
            except Exception:
                logger.exception("Background render step failed")
                self.scheduler.cancel()

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc, tb):
        self.stop()
