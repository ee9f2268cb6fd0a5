import copy
import re

from htop_gear.engine import DisplayMode, Runner, RunnerStatus, TrackRenderer
from htop_gear.engine.render import (
    ASCII_CAR,
    COMPACT_EXHAUST,
    COMPACT_HEAVY,
    COMPACT_LIGHT,
    COMPACT_MEDIUM,
    FRAME_PREFIX,
    LABEL_WIDTH,
    LEFT_COLUMN_EXTRA,
    clip_display,
    display_width,
    pick_sprite,
    status_label,
)

ANSI = re.compile(r"\033\[[0-9;?]*[A-Za-z]")
WIDTH = 60


def _plain(text: str) -> str:
    return ANSI.sub("", text)


def _runner(pid: int = 1, cpu: float = 20.0, mem: float = 1.0, position: float = 30.0, **kwargs) -> Runner:
    return Runner(pid=pid, name=kwargs.pop("name", f"proc{pid}"), cpu=cpu, mem=mem, position=position, raw_state="R", **kwargs)


def _after_column(line: str, column: int) -> str:
    return line[len(clip_display(line, column)) :]


def _track(line: str) -> str:
    return _plain(line)[LABEL_WIDTH + 1 : LABEL_WIDTH + 1 + WIDTH]


def test_render_does_not_mutate_runners():
    lanes = [_runner(1, cpu=90.0, obstacle_hit=True), _runner(2, status=RunnerStatus.DEAD)]
    before = copy.deepcopy(lanes)
    obstacles = {10, 20}
    TrackRenderer(DisplayMode.ASCII, aggressive_mode=True).render(lanes, obstacles, WIDTH, 5)
    assert lanes == before
    assert obstacles == {10, 20}


def test_frame_starts_with_home_and_clear():
    frame = TrackRenderer().render([_runner()], set(), WIDTH, 0)
    assert frame.startswith(FRAME_PREFIX)
    assert frame.endswith("\n")


def test_compact_mode_uses_one_row_per_lane():
    lines = TrackRenderer(DisplayMode.COMPACT).lines([_runner(1), _runner(2)], set(), WIDTH, 0)
    assert len(lines) == 3 + 2
    assert "2 live runners" in lines[0]


def test_ascii_mode_uses_tallest_sprite_for_every_lane():
    lanes = [_runner(1), _runner(2, status=RunnerStatus.DEAD)]
    lines = TrackRenderer(DisplayMode.ASCII).lines(lanes, set(), WIDTH, 0)
    height = len(ASCII_CAR)
    assert len(lines) == 3 + 2 * height

    dead_block = lines[3 + height : 3 + 2 * height]
    rows_with_sprite = [idx for idx, line in enumerate(dead_block) if "X_X" in _track(line)]
    assert rows_with_sprite == [height // 2]


def test_ascii_mode_with_only_fixed_sprites_is_one_row():
    lanes = [_runner(1, status=RunnerStatus.ZOMBIE), _runner(2, status=RunnerStatus.PIT_STOP)]
    assert len(TrackRenderer(DisplayMode.ASCII).lines(lanes, set(), WIDTH, 0)) == 5


def test_lane_markers_scroll_with_frame():
    runner = _runner(position=40.0, status=RunnerStatus.PIT_STOP)
    at_zero = _track(TrackRenderer().lines([runner], set(), WIDTH, 0)[3])
    at_three = _track(TrackRenderer().lines([runner], set(), WIDTH, 3)[3])
    assert at_zero[4] == "-" and at_zero[12] == "-"
    assert at_three[4] == " " and at_three[7] == "-"
    assert at_zero[0] == "|"
    assert at_zero[WIDTH - 2] == "|"


def test_obstacles_and_hit_marker_on_track():
    runner = _runner(position=20.4, obstacle_hit=True, status=RunnerStatus.PIT_STOP)
    track = _track(TrackRenderer().lines([runner], {10}, WIDTH, 0)[3])
    assert track[10] == "#"
    assert track[20:24] == "!PIT"


def test_sprite_is_clipped_to_track():
    runner = _runner(position=58.0, status=RunnerStatus.ZOMBIE)
    line = _plain(TrackRenderer().lines([runner], set(), WIDTH, 0)[3])
    track = line[LABEL_WIDTH + 1 :]
    assert track[58:60] == "zZ"
    assert ">" not in track[:WIDTH + 1]


def test_scoreboard_aligned_with_first_lane():
    lanes = [_runner(7, cpu=75.5, name="a-very-long-process-name"), _runner(8)]
    lines = TrackRenderer().lines(lanes, set(), WIDTH, 0)
    pad = WIDTH + LEFT_COLUMN_EXTRA
    plain = [_plain(line) for line in lines]

    assert plain[0][pad + 1 :].startswith("Scoreboard")
    assert plain[1][pad + 1 :].startswith("-" * 46)
    assert len(plain[2]) <= pad
    first_row = _after_column(plain[3], pad + 1)
    assert first_row.startswith("■     7 a-very-long-proc ")
    assert "75.5" in first_row and "sprint" in first_row
    assert plain[3].startswith("Lane 01 | a-very-long-proc ")
    assert _after_column(plain[4], pad + 1).startswith("■     8 proc8")


def test_wide_sprites_keep_scoreboard_column():
    lanes = [_runner(1, cpu=90.0, mem=13.0, position=10.0), _runner(2, mem=1.0, position=57.0)]
    pad = WIDTH + LEFT_COLUMN_EXTRA
    for line in TrackRenderer(DisplayMode.COMPACT).lines(lanes, set(), WIDTH, 0)[3:]:
        plain = _plain(line)
        assert display_width(plain[: plain.index("■")]) == pad + 1


def test_clip_display_counts_terminal_cells():
    assert display_width("abc") == 3
    assert display_width("\u4e2d\u6587") == 4
    assert clip_display("\u4e2d\u6587x", 3) == "\u4e2d"
    assert clip_display("PIT", 2) == "PI"
    assert clip_display("PIT", 0) == ""


def test_taller_track_panel_keeps_scoreboard_column():
    lanes = [_runner(1), _runner(2)]
    renderer = TrackRenderer(DisplayMode.ASCII)
    left = renderer.track_panel(lanes, set(), WIDTH, 0)
    right = renderer.scoreboard_panel(lanes)
    lines = renderer.lines(lanes, set(), WIDTH, 0)
    pad = WIDTH + LEFT_COLUMN_EXTRA

    assert len(left) > len(right)
    assert len(lines) == len(left)
    assert _plain(lines[4])[pad + 1 :].startswith("■     2")
    assert _plain(lines[-1]) == _plain(left[-1])


def test_empty_race_renders_header_and_scoreboard_title():
    lines = TrackRenderer().lines([], set(), WIDTH, 0)
    assert "0 live runners" in lines[0]
    assert len(lines) == 3


def test_compact_sprites():
    assert pick_sprite(_runner(mem=1.0), DisplayMode.COMPACT) == (COMPACT_LIGHT,)
    assert pick_sprite(_runner(mem=8.0), DisplayMode.COMPACT) == (COMPACT_MEDIUM,)
    assert pick_sprite(_runner(mem=13.0, cpu=75.0, aggressive=True), DisplayMode.COMPACT) == (
        "[CHR]" + COMPACT_HEAVY + COMPACT_EXHAUST,
    )


def test_ascii_sprites():
    sprite = pick_sprite(_runner(mem=13.0, cpu=75.0, aggressive=True), DisplayMode.ASCII)
    assert len(sprite) == len(ASCII_CAR)
    assert sprite[0] == "[CHR][P]" + ASCII_CAR[0]
    assert sprite[-1] == ASCII_CAR[-1] + ">>"
    assert pick_sprite(_runner(mem=7.0), DisplayMode.ASCII)[0] == "[+]" + ASCII_CAR[0]


def test_fixed_sprites_ignore_display_mode():
    for mode in DisplayMode:
        assert pick_sprite(_runner(status=RunnerStatus.DEAD), mode) == ("X_X",)
        assert pick_sprite(_runner(status=RunnerStatus.ZOMBIE), mode) == ("zZ>",)
        assert pick_sprite(_runner(status=RunnerStatus.PIT_STOP), mode) == ("PIT",)


def test_status_labels():
    assert _plain(status_label(_runner(cpu=71.0))) == "sprint"
    assert _plain(status_label(_runner(cpu=0.5))) == "idle"
    assert _plain(status_label(_runner(cpu=20.0))) == "run"
    assert _plain(status_label(_runner(status=RunnerStatus.PIT_STOP))) == "pit"
    assert _plain(status_label(_runner(status=RunnerStatus.ZOMBIE))) == "zombie"
    assert _plain(status_label(_runner(status=RunnerStatus.DEAD))) == "X_X"
