from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Optional

from .data_models import ProcessSample, RNGContainer, Runner, RunnerStatus
from .physics import compute_velocity, derive_status, is_browser_like

logger = logging.getLogger(__name__)

DEAD_TIMEOUT = 2.0
GRACE_TIMEOUT = 6.0
SPAWN_SPREAD = 5.0
DEFAULT_MAX_LANES = 10


class RunnerRegistry:
    """Long-lived runners keyed by pid; the only state kept across ticks."""

    def __init__(self, rng: Optional[RNGContainer] = None, aggressive_mode: bool = False) -> None:
        self.rng = rng if rng is not None else RNGContainer()
        self.aggressive_mode = aggressive_mode
        self._runners: Dict[int, Runner] = {}

    def __len__(self) -> int:
        return len(self._runners)

    def __contains__(self, pid: object) -> bool:
        return pid in self._runners

    def __iter__(self) -> Iterator[Runner]:
        return iter(self._runners.values())

    def get(self, pid: int) -> Optional[Runner]:
        return self._runners.get(pid)

    def upsert(self, sample: ProcessSample, now: float) -> Runner:
        runner = self._runners.get(sample.pid)
        if runner is None:
            runner = Runner(pid=sample.pid, position=self.rng.spawn_rng.uniform(0.0, SPAWN_SPREAD))
            # uniform() may return the upper bound through rounding
            if runner.position >= SPAWN_SPREAD:
                runner.position = 0.0
            self._runners[sample.pid] = runner
            logger.debug("New runner pid=%s (%s)", sample.pid, sample.command)

        runner.name = sample.command
        runner.cpu = sample.cpu
        runner.mem = sample.mem
        runner.raw_state = sample.state
        runner.aggressive = self.aggressive_mode and is_browser_like(sample.command)
        runner.status = derive_status(sample.state)
        runner.velocity = compute_velocity(runner)
        runner.obstacle_hit = False
        runner.last_seen_at = now
        return runner

    def upsert_all(self, samples: Iterable[ProcessSample], now: float) -> int:
        count = 0
        for sample in samples:
            self.upsert(sample, now)
            count += 1
        return count

    def reap(self, now: float) -> List[int]:
        """
        Marks runners unseen for longer than DEAD_TIMEOUT as dead and drops
        those dead for longer than GRACE_TIMEOUT. Returns removed pids.
        """
        removed: List[int] = []
        for pid in list(self._runners):
            runner = self._runners[pid]
            if now - runner.last_seen_at <= DEAD_TIMEOUT:
                continue
            if runner.status is not RunnerStatus.DEAD:
                runner.status = RunnerStatus.DEAD
                runner.dead_at = now
                runner.velocity = compute_velocity(runner)
                logger.debug("Runner pid=%s is dead", pid)
            if runner.dead_at is not None and now - runner.dead_at > GRACE_TIMEOUT:
                del self._runners[pid]
                removed.append(pid)
        if removed:
            logger.debug("Reaped %d runners: %s", len(removed), removed)
        return removed


def lane_sort_key(runner: Runner):
    """Busiest runner first; equal cpu falls back to the lower pid."""
    return (-runner.cpu, runner.pid)


def pick_lanes(runners: Iterable[Runner], max_lanes: int = DEFAULT_MAX_LANES) -> List[Runner]:
    ordered = sorted(runners, key=lane_sort_key)
    return ordered[:max(0, max_lanes)]
