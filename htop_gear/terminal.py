import sys
from contextlib import contextmanager
from typing import Iterator, Optional, TextIO

HIDE_CURSOR = "\033[?25l"
SHOW_CURSOR = "\033[?25h"
CLEAR_SCREEN = "\033[H\033[2J"


class Terminal:
    """Thin writer over stdout for full-frame redraws."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream if stream is not None else sys.stdout

    def _emit(self, text: str) -> None:
        self.stream.write(text)
        self.stream.flush()

    def hide_cursor(self) -> None:
        self._emit(HIDE_CURSOR)

    def show_cursor(self) -> None:
        self._emit(SHOW_CURSOR)

    def clear_screen(self) -> None:
        self._emit(CLEAR_SCREEN)

    def draw(self, frame: str) -> None:
        self._emit(frame)

    @contextmanager
    def session(self) -> Iterator["Terminal"]:
        """Hides the cursor for the duration; always clears and restores it."""
        self.hide_cursor()
        try:
            yield self
        finally:
            self.clear_screen()
            self.show_cursor()
