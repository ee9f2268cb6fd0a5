from __future__ import annotations

import logging
import math
from typing import AbstractSet, Sequence

from .data_models import Runner, RunnerStatus

logger = logging.getLogger(__name__)

# --- Velocity model constants ---

PIT_STOP_VELOCITY = 0.2
ZOMBIE_VELOCITY = 0.5
MIN_VELOCITY = 0.1

CPU_SPEED_DIVISOR = 25.0
SPRINT_CPU_THRESHOLD = 80.0
SPRINT_BONUS = 2.5
PUSH_CPU_THRESHOLD = 50.0
PUSH_BONUS = 1.2
MEM_WEIGHT_DIVISOR = 20.0

AGGRESSIVE_BASE_FACTOR = 0.5
AGGRESSIVE_WEIGHT_PENALTY = -0.2

OBSTACLE_SPEED_FACTOR = 0.4

BROWSER_MARKERS = ("chrome", "chromium")


def derive_status(raw_state: str) -> RunnerStatus:
    """
    Maps a raw ps state code onto a runner status.

    `Z` matches in any case, `W` only in upper case. The zombie check wins
    when both are present.
    """
    if "z" in raw_state.lower():
        return RunnerStatus.ZOMBIE
    if "W" in raw_state:
        return RunnerStatus.PIT_STOP
    return RunnerStatus.RUNNING


def is_browser_like(name: str) -> bool:
    lowered = name.lower()
    return any(marker in lowered for marker in BROWSER_MARKERS)


def compute_velocity(runner: Runner) -> float:
    """Returns the scalar track speed for the runner's current sample."""
    status = runner.status
    if status is RunnerStatus.DEAD:
        return 0.0
    if status is RunnerStatus.PIT_STOP:
        return PIT_STOP_VELOCITY
    if status is RunnerStatus.ZOMBIE:
        return ZOMBIE_VELOCITY
    if status is not RunnerStatus.RUNNING:
        raise ValueError(f"Unhandled runner status: {status}")

    base = max(runner.cpu / CPU_SPEED_DIVISOR, MIN_VELOCITY)
    if runner.cpu > SPRINT_CPU_THRESHOLD:
        base += SPRINT_BONUS
    elif runner.cpu > PUSH_CPU_THRESHOLD:
        base += PUSH_BONUS

    weight_penalty = runner.mem / MEM_WEIGHT_DIVISOR
    if runner.aggressive:
        # heavier vehicle, but it barrels through faster
        base *= AGGRESSIVE_BASE_FACTOR
        weight_penalty = AGGRESSIVE_WEIGHT_PENALTY

    return max(MIN_VELOCITY, base - weight_penalty)


class PhysicsKernel:
    """Implements the forward (1D) position step for the displayed lanes."""

    def __init__(self, track_width: int):
        if track_width <= 2:
            raise ValueError(f"Track width must be greater than 2, got {track_width}")
        self.track_width = track_width

    @property
    def lap_length(self) -> float:
        return float(self.track_width - 2)

    def step(self, lanes: Sequence[Runner], obstacles: AbstractSet[int], dt: float) -> None:
        for runner in lanes:
            if runner.is_frozen:
                continue
            self.advance(runner, obstacles, dt)

    def advance(self, runner: Runner, obstacles: AbstractSet[int], dt: float) -> None:
        speed = runner.velocity
        if math.floor(runner.position) in obstacles:
            runner.obstacle_hit = True
            speed *= OBSTACLE_SPEED_FACTOR
        else:
            runner.obstacle_hit = False

        runner.position += speed * dt
        if runner.position >= self.lap_length:
            runner.position = math.fmod(runner.position, self.lap_length)
            logger.debug("pid %s wrapped to %.2f", runner.pid, runner.position)
