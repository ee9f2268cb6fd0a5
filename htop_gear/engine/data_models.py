from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import random
from typing import Optional


class RunnerStatus(Enum):
    """Lifecycle of a runner on the track."""

    RUNNING = "running"
    ZOMBIE = "zombie"
    PIT_STOP = "pit_stop"
    DEAD = "dead"


class DisplayMode(Enum):
    """Sprite set used by the track panel."""

    COMPACT = "compact"
    ASCII = "ascii"

    @classmethod
    def from_str(cls, value: str) -> "DisplayMode":
        try:
            return cls(value.strip().lower())
        except ValueError as exc:
            raise ValueError(f"Unknown display mode: {value}") from exc


@dataclass(frozen=True)
class ProcessSample:
    pid: int
    cpu: float
    mem: float
    state: str
    command: str


@dataclass
class RNGContainer:
    """Seeded RNGs for spawn positions and obstacle placement."""

    seed: Optional[int] = None

    spawn_rng: random.Random = field(init=False)
    obstacle_rng: random.Random = field(init=False)

    def __post_init__(self) -> None:
        if self.seed is None:
            self.spawn_rng = random.Random()
            self.obstacle_rng = random.Random()
        else:
            self.spawn_rng = random.Random(self.seed * 11 + 1)
            self.obstacle_rng = random.Random(self.seed * 11 + 2)


@dataclass
class Runner:
    """Mutable per-process state, owned by the RunnerRegistry."""

    pid: int
    name: str = ""
    position: float = 0.0
    velocity: float = 0.0
    cpu: float = 0.0
    mem: float = 0.0
    raw_state: str = ""
    status: RunnerStatus = RunnerStatus.RUNNING
    last_seen_at: float = 0.0
    dead_at: Optional[float] = None
    aggressive: bool = False
    obstacle_hit: bool = False

    @property
    def is_frozen(self) -> bool:
        return self.status in (RunnerStatus.DEAD, RunnerStatus.PIT_STOP)
