"""
Race engine turning process samples into runners on a terminal track.

The package is split into data models, the velocity/physics kernel, the
runner registry, course features (width and obstacles) and the renderer.
RaceLoop composes these pieces into the tick loop.
"""

from .course import spawn_obstacles, track_width  # noqa: F401
from .data_models import (  # noqa: F401
    DisplayMode,
    ProcessSample,
    RNGContainer,
    Runner,
    RunnerStatus,
)
from .physics import PhysicsKernel, compute_velocity, derive_status  # noqa: F401
from .registry import RunnerRegistry, pick_lanes  # noqa: F401
from .render import TrackRenderer  # noqa: F401
from .telemetry import TelemetryCollector, TelemetryFrame, TelemetryRunnerFrame  # noqa: F401
from .race_loop import RaceLoop, TickSnapshot  # noqa: F401

__all__ = [
    "spawn_obstacles",
    "track_width",
    "DisplayMode",
    "ProcessSample",
    "RNGContainer",
    "Runner",
    "RunnerStatus",
    "PhysicsKernel",
    "compute_velocity",
    "derive_status",
    "RunnerRegistry",
    "pick_lanes",
    "TrackRenderer",
    "TelemetryCollector",
    "TelemetryFrame",
    "TelemetryRunnerFrame",
    "RaceLoop",
    "TickSnapshot",
]
