from __future__ import annotations

import logging
import signal
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Iterable, Iterator, List, Optional

from htop_gear.errors import SampleError

from .course import spawn_obstacles, track_width
from .data_models import ProcessSample, RNGContainer, Runner
from .physics import PhysicsKernel
from .registry import DEFAULT_MAX_LANES, RunnerRegistry, pick_lanes
from .render import TrackRenderer
from .telemetry import TelemetryCollector, TelemetryFrame, TelemetryRunnerFrame

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL = 0.6
SAMPLE_RETRY_DELAY = 2.0


@dataclass
class TickSnapshot:
    tick: int
    time: float
    width: int
    lanes: List[Runner] = field(default_factory=list)
    obstacles: FrozenSet[int] = frozenset()


class RaceLoop:
    """
    Single-threaded orchestration of one race: sample, upsert/reap, pick
    lanes, spawn obstacles, integrate, render. The registry is the only
    state that outlives a tick.
    """

    def __init__(
        self,
        max_lanes: int = DEFAULT_MAX_LANES,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        aggressive_mode: bool = False,
        rng: Optional[RNGContainer] = None,
        telemetry: Optional[TelemetryCollector] = None,
        width_source: Callable[[], int] = track_width,
    ) -> None:
        self.max_lanes = max_lanes
        self.tick_interval = tick_interval
        self.rng = rng if rng is not None else RNGContainer()
        self.registry = RunnerRegistry(rng=self.rng, aggressive_mode=aggressive_mode)
        self.telemetry = telemetry
        self.width_source = width_source
        self.tick_index = 0
        self._stop_requested = False

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    def request_stop(self) -> None:
        self._stop_requested = True

    def step(self, samples: Iterable[ProcessSample], now: float, width: Optional[int] = None) -> TickSnapshot:
        """Advances the simulation by one tick. `now` is in monotonic seconds."""
        self.registry.upsert_all(samples, now)
        self.registry.reap(now)
        lanes = pick_lanes(self.registry, self.max_lanes)

        # one width per tick, shared by obstacles, integration and rendering
        width = width if width is not None else self.width_source()
        obstacles = frozenset(spawn_obstacles(lanes, width, self.rng.obstacle_rng))
        PhysicsKernel(width).step(lanes, obstacles, self.tick_interval)

        snapshot = TickSnapshot(tick=self.tick_index, time=now, width=width, lanes=lanes, obstacles=obstacles)
        if self.telemetry is not None:
            self.telemetry.record_frame(
                TelemetryFrame(
                    tick=snapshot.tick,
                    time=now,
                    width=width,
                    obstacles=obstacles,
                    runners=[TelemetryRunnerFrame.from_runner(runner, lane) for lane, runner in enumerate(lanes, start=1)],
                )
            )
        self.tick_index += 1
        return snapshot

    def run(
        self,
        provider,
        renderer: TrackRenderer,
        terminal,
        max_frames: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> int:
        """
        Drives the loop until a stop is requested or max_frames ticks have
        been drawn. Returns the number of frames drawn.
        """
        frames = 0
        with self._stop_signals(), terminal.session():
            while not self._stop_requested:
                if max_frames is not None and frames >= max_frames:
                    break
                started = clock()
                try:
                    samples = provider.sample()
                except SampleError as exc:
                    logger.warning("%s; retrying in %.0fs", exc, SAMPLE_RETRY_DELAY)
                    sleep(SAMPLE_RETRY_DELAY)
                    continue
                except Exception:
                    logger.warning(
                        "Sample provider failed unexpectedly; retrying in %.0fs", SAMPLE_RETRY_DELAY, exc_info=True
                    )
                    sleep(SAMPLE_RETRY_DELAY)
                    continue

                snapshot = self.step(samples, clock())
                terminal.draw(renderer.render(snapshot.lanes, snapshot.obstacles, snapshot.width, snapshot.tick))
                frames += 1

                remaining = self.tick_interval - (clock() - started)
                if remaining > 0:
                    sleep(remaining)
        logger.info("Race loop stopped after %d frames", frames)
        return frames

    @contextmanager
    def _stop_signals(self) -> Iterator[None]:
        """Turns SIGINT/SIGTERM into a stop request honoured at the next tick boundary."""
        if threading.current_thread() is not threading.main_thread():
            yield
            return

        def _handler(signum, frame):
            logger.info("Received signal %s, stopping after this tick", signum)
            self.request_stop()

        previous = {sig: signal.signal(sig, _handler) for sig in (signal.SIGINT, signal.SIGTERM)}
        try:
            yield
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)
