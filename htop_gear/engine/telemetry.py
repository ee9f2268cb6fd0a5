from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Sequence

from .data_models import Runner, RunnerStatus


@dataclass
class TelemetryRunnerFrame:
    pid: int
    name: str
    lane: int
    position: float
    velocity: float
    cpu: float
    mem: float
    status: RunnerStatus
    obstacle_hit: bool

    @classmethod
    def from_runner(cls, runner: Runner, lane: int) -> "TelemetryRunnerFrame":
        return cls(
            pid=runner.pid,
            name=runner.name,
            lane=lane,
            position=runner.position,
            velocity=runner.velocity,
            cpu=runner.cpu,
            mem=runner.mem,
            status=runner.status,
            obstacle_hit=runner.obstacle_hit,
        )


@dataclass
class TelemetryFrame:
    tick: int
    time: float
    width: int
    obstacles: FrozenSet[int]
    runners: List[TelemetryRunnerFrame] = field(default_factory=list)

    def runner(self, pid: int) -> Optional[TelemetryRunnerFrame]:
        return next((entry for entry in self.runners if entry.pid == pid), None)


class TelemetryCollector:
    """Keeps every tick of a race for headless runs and post-race summaries."""

    def __init__(self) -> None:
        self.frames: List[TelemetryFrame] = []

    def __len__(self) -> int:
        return len(self.frames)

    def record_frame(self, frame: TelemetryFrame) -> None:
        self.frames.append(frame)

    def export(self) -> Sequence[TelemetryFrame]:
        return tuple(self.frames)

    def summary(self) -> Dict[str, Any]:
        seen = set()
        died = set()
        obstacle_hits = 0
        peak_obstacles = 0
        for frame in self.frames:
            peak_obstacles = max(peak_obstacles, len(frame.obstacles))
            for entry in frame.runners:
                seen.add(entry.pid)
                if entry.status is RunnerStatus.DEAD:
                    died.add(entry.pid)
                if entry.obstacle_hit:
                    obstacle_hits += 1
        return {
            "frames": len(self.frames),
            "runners_seen": len(seen),
            "runners_died": len(died),
            "obstacle_hits": obstacle_hits,
            "peak_obstacles": peak_obstacles,
        }
