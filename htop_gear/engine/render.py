"""
Terminal compositor for the race view.

Everything here is a pure read-only view over the lanes chosen for the
current tick: the track panel on the left, the scoreboard on the right,
aligned line by line into a single frame string.
"""

from __future__ import annotations

import math
import re
from typing import AbstractSet, List, Sequence, Tuple

from wcwidth import wcswidth

from .data_models import DisplayMode, Runner, RunnerStatus

COLOR_RESET = "\033[0m"
COLOR_RED = "\033[31m"
COLOR_GREEN = "\033[32m"
COLOR_YELLOW = "\033[33m"
COLOR_BLUE = "\033[34m"
COLOR_MAGENTA = "\033[35m"
COLOR_CYAN = "\033[36m"
COLOR_GRAY = "\033[90m"
COLOR_BRIGHT_RED = "\033[91m"
COLOR_BRIGHT_GREEN = "\033[92m"
COLOR_BRIGHT_YELLOW = "\033[93m"
COLOR_BRIGHT_BLUE = "\033[94m"
COLOR_BRIGHT_MAGENTA = "\033[95m"
COLOR_BRIGHT_CYAN = "\033[96m"

LANE_PALETTE = (
    COLOR_RED,
    COLOR_GREEN,
    COLOR_YELLOW,
    COLOR_BLUE,
    COLOR_MAGENTA,
    COLOR_CYAN,
    COLOR_BRIGHT_RED,
    COLOR_BRIGHT_GREEN,
    COLOR_BRIGHT_YELLOW,
    COLOR_BRIGHT_BLUE,
    COLOR_BRIGHT_MAGENTA,
    COLOR_BRIGHT_CYAN,
)

FRAME_PREFIX = "\033[H\033[J"

LABEL_WIDTH = 56
LEFT_COLUMN_EXTRA = 60
NAME_WIDTH = 16
MARKER_SPACING = 8
MARKER_START = 4

SPRINT_CPU = 70.0
IDLE_CPU = 1.0
MEDIUM_MEM = 6.0
HEAVY_MEM = 12.0

DEAD_SPRITE = ("X_X",)
ZOMBIE_SPRITE = ("zZ>",)
PIT_SPRITE = ("PIT",)

COMPACT_LIGHT = "\U0001F3CE\uFE0F\u27A1\uFE0F"
COMPACT_MEDIUM = "\U0001F699\u27A1\uFE0F"
COMPACT_HEAVY = "\U0001F69B\u27A1\uFE0F"
COMPACT_EXHAUST = "\U0001F4A8\U0001F525"

ASCII_CAR = (
    "  ______",
    " /|_||_\\`.__",
    "(   _    _ _\\",
    "=`-(_)--(_)-'",
)
ASCII_EXHAUST = ">>"
AGGRESSIVE_MARKER = "[CHR]"
MEDIUM_MARKER = "[+]"
HEAVY_MARKER = "[P]"

SCOREBOARD_TITLE = "Scoreboard (PID | CPU% | MEM% | state | status)"
SCOREBOARD_RULE_WIDTH = 46

_ANSI_PATTERN = re.compile(r"\033\[[0-9;?]*[A-Za-z]")


def colorize(text: str, color: str) -> str:
    return f"{color}{text}{COLOR_RESET}"


def display_width(text: str) -> int:
    """Terminal columns taken by text; emoji and CJK count as two."""
    width = wcswidth(text)
    return len(text) if width < 0 else width


def clip_display(text: str, columns: int) -> str:
    """Longest prefix of text that fits in columns terminal cells."""
    end = 0
    while end < len(text) and display_width(text[: end + 1]) <= columns:
        end += 1
    return text[:end]


def visible_length(text: str) -> int:
    return display_width(_ANSI_PATTERN.sub("", text))


def pad_visible(text: str, width: int) -> str:
    """Left-justifies text to width columns, ignoring escape sequences."""
    return text + " " * max(0, width - visible_length(text))


def trim_name(name: str) -> str:
    return name[:NAME_WIDTH]


def lane_color(index: int) -> str:
    return LANE_PALETTE[index % len(LANE_PALETTE)]


def lane_badge(index: int) -> str:
    return colorize("■", lane_color(index))


def status_label(runner: Runner) -> str:
    status = runner.status
    if status is RunnerStatus.DEAD:
        return colorize("X_X", COLOR_GRAY)
    if status is RunnerStatus.ZOMBIE:
        return colorize("zombie", COLOR_MAGENTA)
    if status is RunnerStatus.PIT_STOP:
        return colorize("pit", COLOR_YELLOW)
    if status is RunnerStatus.RUNNING:
        if runner.cpu > SPRINT_CPU:
            return colorize("sprint", COLOR_RED)
        if runner.cpu < IDLE_CPU:
            return colorize("idle", COLOR_CYAN)
        return colorize("run", COLOR_GREEN)
    raise ValueError(f"Unhandled runner status: {status}")


def legend() -> str:
    entries = (
        colorize("sprint", COLOR_RED),
        colorize("run", COLOR_GREEN),
        colorize("idle", COLOR_CYAN),
        colorize("pit", COLOR_YELLOW),
        colorize("zombie", COLOR_MAGENTA),
        colorize("X_X", COLOR_GRAY),
    )
    return "Legend: " + " / ".join(entries)


def pick_sprite(runner: Runner, display_mode: DisplayMode) -> Tuple[str, ...]:
    status = runner.status
    if status is RunnerStatus.DEAD:
        return DEAD_SPRITE
    if status is RunnerStatus.ZOMBIE:
        return ZOMBIE_SPRITE
    if status is RunnerStatus.PIT_STOP:
        return PIT_SPRITE
    if status is not RunnerStatus.RUNNING:
        raise ValueError(f"Unhandled runner status: {status}")

    if display_mode is DisplayMode.COMPACT:
        car = COMPACT_LIGHT
        if runner.mem > HEAVY_MEM:
            car = COMPACT_HEAVY
        elif runner.mem > MEDIUM_MEM:
            car = COMPACT_MEDIUM
        if runner.aggressive:
            car = AGGRESSIVE_MARKER + car
        if runner.cpu > SPRINT_CPU:
            car += COMPACT_EXHAUST
        return (car,)

    car = list(ASCII_CAR)
    if runner.mem > HEAVY_MEM:
        car[0] = HEAVY_MARKER + car[0]
    elif runner.mem > MEDIUM_MEM:
        car[0] = MEDIUM_MARKER + car[0]
    if runner.aggressive:
        car[0] = AGGRESSIVE_MARKER + car[0]
    if runner.cpu > SPRINT_CPU:
        car[-1] += ASCII_EXHAUST
    return tuple(car)


class TrackRenderer:
    """Builds one full terminal frame per tick without touching runner state."""

    def __init__(self, display_mode: DisplayMode = DisplayMode.COMPACT, aggressive_mode: bool = False):
        self.display_mode = display_mode
        self.aggressive_mode = aggressive_mode

    def header(self, lanes: Sequence[Runner]) -> str:
        mode = "on" if self.aggressive_mode else "off"
        return (
            f"HTop Gear - {len(lanes)} live runners | aggressive mode: {mode}"
            f" | display: {self.display_mode.value}"
        )

    def lane_height(self, sprites: Sequence[Tuple[str, ...]]) -> int:
        if self.display_mode is DisplayMode.COMPACT or not sprites:
            return 1
        return max(len(sprite) for sprite in sprites)

    def track_panel(self, lanes: Sequence[Runner], obstacles: AbstractSet[int], width: int, frame: int) -> List[str]:
        header = self.header(lanes)
        lines = [header, "=" * visible_length(header), legend()]

        sprites = [pick_sprite(runner, self.display_mode) for runner in lanes]
        height = self.lane_height(sprites)
        middle = height // 2
        for index, (runner, sprite) in enumerate(zip(lanes, sprites)):
            label = (
                f"Lane {index + 1:02d} | {trim_name(runner.name):<{NAME_WIDTH}} "
                f"CPU:{runner.cpu:5.1f} MEM:{runner.mem:5.1f} {status_label(runner)}"
            )
            top = middle - len(sprite) // 2
            for row in range(height):
                sprite_row = row - top
                sprite_line = sprite[sprite_row] if 0 <= sprite_row < len(sprite) else ""
                track = self.track_line(runner, sprite_line, obstacles, width, frame, row == middle, lane_color(index))
                prefix = label if row == 0 else ""
                lines.append(f"{pad_visible(prefix, LABEL_WIDTH)} {track}")
        return lines

    def track_line(
        self,
        runner: Runner,
        sprite_line: str,
        obstacles: AbstractSet[int],
        width: int,
        frame: int,
        is_middle: bool,
        color: str,
    ) -> str:
        cells = [" "] * width
        for column in range(MARKER_START + frame % MARKER_SPACING, width - 1, MARKER_SPACING):
            cells[column] = "-"
        cells[0] = "|"
        cells[width - 2] = "|"

        if is_middle:
            for column in obstacles:
                if 0 <= column < width:
                    cells[column] = "#"
            if runner.obstacle_hit:
                sprite_line = "!" + sprite_line

        start = min(max(int(math.floor(runner.position)), 0), width - 1)
        visible = clip_display(sprite_line, width - start)
        if not visible:
            return "".join(cells)
        end = start + display_width(visible)
        return "".join(cells[:start]) + colorize(visible, color) + "".join(cells[end:])

    def scoreboard_panel(self, lanes: Sequence[Runner]) -> List[str]:
        lines = [SCOREBOARD_TITLE, "-" * SCOREBOARD_RULE_WIDTH]
        for index, runner in enumerate(lanes):
            lines.append(
                f"{lane_badge(index)} {runner.pid:5d} {trim_name(runner.name):<{NAME_WIDTH}} "
                f"{runner.cpu:5.1f} {runner.mem:5.1f} {runner.raw_state:<6} {pad_visible(status_label(runner), 10)}"
            )
        if len(lines) > 2:
            # line the first runner up with lane 1, below the legend
            lines.insert(2, "")
        return lines

    def lines(self, lanes: Sequence[Runner], obstacles: AbstractSet[int], width: int, frame: int) -> List[str]:
        left = self.track_panel(lanes, obstacles, width, frame)
        right = self.scoreboard_panel(lanes)
        pad = width + LEFT_COLUMN_EXTRA
        composed = []
        for index in range(max(len(left), len(right))):
            left_line = left[index] if index < len(left) else ""
            right_line = right[index] if index < len(right) else ""
            if right_line:
                composed.append(f"{pad_visible(left_line, pad)} {right_line}")
            else:
                composed.append(left_line)
        return composed

    def render(self, lanes: Sequence[Runner], obstacles: AbstractSet[int], width: int, frame: int) -> str:
        return FRAME_PREFIX + "".join(f"{line}\n" for line in self.lines(lanes, obstacles, width, frame))
