import random

import pytest

from htop_gear.engine import Runner, spawn_obstacles, track_width
from htop_gear.engine.course import average_cpu, obstacle_count


class _SequenceRNG:
    def __init__(self, values):
        self.values = list(values)
        self.calls = []

    def randrange(self, low, high):
        self.calls.append((low, high))
        return self.values.pop(0)


def _lanes(*cpus):
    return [Runner(pid=idx, cpu=cpu) for idx, cpu in enumerate(cpus, start=1)]


@pytest.mark.parametrize(
    "avg_cpu, expected",
    [(0.0, 0), (30.0, 0), (40.0, 0), (40.1, 1), (45.0, 1), (60.0, 1), (61.0, 2), (80.0, 2), (85.0, 3), (400.0, 3)],
)
def test_obstacle_count_levels(avg_cpu, expected):
    assert obstacle_count(avg_cpu) == expected


def test_average_cpu():
    assert average_cpu([]) == 0.0
    assert average_cpu(_lanes(80.0, 90.0)) == pytest.approx(85.0)


def test_high_load_spawns_three_obstacles():
    rng = _SequenceRNG([10, 20, 30])
    obstacles = spawn_obstacles(_lanes(80.0, 90.0), 60, rng)
    assert obstacles == {10, 20, 30}
    assert rng.calls == [(5, 55)] * 3


def test_moderate_and_low_load():
    assert len(spawn_obstacles(_lanes(40.0, 50.0), 60, _SequenceRNG([12]))) == 1
    assert spawn_obstacles(_lanes(30.0, 30.0), 60, _SequenceRNG([])) == set()


def test_empty_lane_list_has_no_obstacles():
    assert spawn_obstacles([], 60, _SequenceRNG([])) == set()


def test_duplicate_columns_collapse():
    assert spawn_obstacles(_lanes(95.0), 60, _SequenceRNG([7, 7, 9])) == {7, 9}


def test_obstacles_stay_inside_margins():
    rng = random.Random(11)
    for _ in range(200):
        for column in spawn_obstacles(_lanes(99.0, 99.0), 40, rng):
            assert 5 <= column < 35


def test_narrow_track_has_no_room_for_obstacles():
    assert spawn_obstacles(_lanes(99.0), 10, _SequenceRNG([])) == set()


@pytest.mark.parametrize(
    "env, expected",
    [
        ({}, 60),
        ({"COLUMNS": "120"}, 80),
        ({"COLUMNS": "140"}, 100),
        ({"COLUMNS": "200"}, 90),
        ({"COLUMNS": "30"}, 60),
        ({"COLUMNS": "wide"}, 60),
        ({"COLUMNS": "45"}, 20),
    ],
)
def test_track_width(env, expected):
    assert track_width(env) == expected
