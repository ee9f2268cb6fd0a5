from __future__ import annotations

import os
import random
from typing import Mapping, Optional, Sequence, Set

import numpy as np

from .data_models import Runner

DEFAULT_COLUMNS = 100
MIN_COLUMNS = 40
WIDE_COLUMNS = 140
WIDE_TRACK_WIDTH = 90
SCOREBOARD_GUTTER = 40
MIN_TRACK_WIDTH = 20

OBSTACLE_MARGIN = 5
# (exclusive lower bound of average cpu, obstacle count), highest first
OBSTACLE_LEVELS = ((80.0, 3), (60.0, 2), (40.0, 1))


def track_width(env: Optional[Mapping[str, str]] = None) -> int:
    """
    Returns the track width in columns for the current terminal.

    COLUMNS values that are unparsable or not above MIN_COLUMNS are ignored.
    Wide terminals are capped so the scoreboard keeps its gutter.
    """
    env = os.environ if env is None else env
    columns = DEFAULT_COLUMNS
    raw = env.get("COLUMNS")
    if raw:
        try:
            value = int(raw)
        except ValueError:
            value = 0
        if value > MIN_COLUMNS:
            columns = value
    if columns > WIDE_COLUMNS:
        return WIDE_TRACK_WIDTH
    return max(columns - SCOREBOARD_GUTTER, MIN_TRACK_WIDTH)


def average_cpu(lanes: Sequence[Runner]) -> float:
    if not lanes:
        return 0.0
    return float(np.mean([runner.cpu for runner in lanes]))


def obstacle_count(avg_cpu: float) -> int:
    for threshold, count in OBSTACLE_LEVELS:
        if avg_cpu > threshold:
            return count
    return 0


def spawn_obstacles(lanes: Sequence[Runner], width: int, rng: Optional[random.Random] = None) -> Set[int]:
    """Places load-dependent obstacles in the columns [5, width-5)."""
    obstacles: Set[int] = set()
    if not lanes:
        return obstacles
    count = obstacle_count(average_cpu(lanes))
    low, high = OBSTACLE_MARGIN, width - OBSTACLE_MARGIN
    if count == 0 or high <= low:
        return obstacles
    rng = rng if rng is not None else random.Random()
    for _ in range(count):
        obstacles.add(rng.randrange(low, high))
    return obstacles
