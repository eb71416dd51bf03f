"""Raw-mode terminal used by the REPL driver.

``Terminal`` is the small surface the driver draws through: two live lines
redrawn in place, transcript text written above them, and start/stop so an
external editor can take over the tty between edits. ``ProcessTerminal``
implements it on top of the process's stdin/stdout.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import os
import signal
import sys
import termios
import tty
from typing import IO, Callable, Protocol

from aenv.tui.keys import KeyPress, split_input

logger = logging.getLogger(__name__)

DEFAULT_COLUMNS = 80

# ---------------------------------------------------------------------------
# Control sequences
# ---------------------------------------------------------------------------


def _csi(body: str) -> str:
    return f"\x1b[{body}"


PASTE_ON = _csi("?2004h")
PASTE_OFF = _csi("?2004l")
CURSOR_HIDE = _csi("?25l")
CURSOR_SHOW = _csi("?25h")
ERASE_BELOW = _csi("0J")
ERASE_ALL = _csi("2J") + _csi("H")


def cursor_vertical(lines: int) -> str:
    """Sequence moving the cursor *lines* rows down (negative moves up)."""
    if lines < 0:
        return _csi(f"{-lines}A")
    if lines > 0:
        return _csi(f"{lines}B")
    return ""


def cursor_column(column: int) -> str:
    """Sequence moving the cursor to 0-based *column*."""
    return _csi(f"{max(column, 0) + 1}G")


def to_crlf(data: str) -> str:
    """Raw mode does not translate output newlines; do it here."""
    return data.replace("\r\n", "\n").replace("\n", "\r\n")


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class Terminal(Protocol):
    def start(
        self,
        on_input: Callable[[KeyPress], None],
        on_resize: Callable[[], None],
    ) -> None: ...

    def stop(self) -> None: ...

    def write(self, data: str) -> None: ...

    @property
    def columns(self) -> int: ...

    def move_by(self, lines: int) -> None: ...

    def move_to_column(self, column: int) -> None: ...

    def hide_cursor(self) -> None: ...

    def show_cursor(self) -> None: ...

    def clear_from_cursor(self) -> None: ...

    def clear_screen(self) -> None: ...


# ---------------------------------------------------------------------------
# Process terminal
# ---------------------------------------------------------------------------


class ProcessTerminal:
    """``Terminal`` over the process's own tty.

    ``start`` must run inside an event loop: stdin is watched with
    ``loop.add_reader`` and SIGWINCH with ``loop.add_signal_handler``.
    ``stop`` hands the tty back in cooked mode, and the pair may be
    repeated any number of times during one session.
    """

    def __init__(self, stdin: IO[str] | None = None, stdout: IO[str] | None = None) -> None:
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        self._on_input: Callable[[KeyPress], None] | None = None
        self._on_resize: Callable[[], None] | None = None
        self._saved_mode: list | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._held = ""

    @property
    def active(self) -> bool:
        return self._loop is not None

    @property
    def columns(self) -> int:
        try:
            return os.get_terminal_size(self.stdout.fileno()).columns
        except (ValueError, OSError):
            return DEFAULT_COLUMNS

    # -- start / stop -------------------------------------------------------

    def start(
        self,
        on_input: Callable[[KeyPress], None],
        on_resize: Callable[[], None],
    ) -> None:
        if self.active:
            raise RuntimeError("terminal already started")
        self._on_input = on_input
        self._on_resize = on_resize

        fd = self.stdin.fileno()
        self._saved_mode = termios.tcgetattr(fd)
        tty.setraw(fd)
        self.write(PASTE_ON)

        self._loop = asyncio.get_running_loop()
        self._loop.add_reader(fd, self._read_stdin)
        self._loop.add_signal_handler(signal.SIGWINCH, self._resized)
        logger.debug("terminal started (columns=%d)", self.columns)

    def stop(self) -> None:
        if not self.active:
            return
        fd = self.stdin.fileno()
        assert self._loop is not None
        self._loop.remove_reader(fd)
        self._loop.remove_signal_handler(signal.SIGWINCH)
        self._loop = None

        self.write(PASTE_OFF)
        if self._saved_mode is not None:
            termios.tcsetattr(fd, termios.TCSADRAIN, self._saved_mode)
            self._saved_mode = None

        self._on_input = None
        self._on_resize = None
        self._decoder.reset()
        self._held = ""
        logger.debug("terminal stopped")

    # -- output -------------------------------------------------------------

    def write(self, data: str) -> None:
        if not data:
            return
        try:
            self.stdout.write(to_crlf(data))
            self.stdout.flush()
        except OSError as exc:
            logger.warning("terminal write failed: %s", exc)

    def move_by(self, lines: int) -> None:
        self.write(cursor_vertical(lines))

    def move_to_column(self, column: int) -> None:
        self.write(cursor_column(column))

    def hide_cursor(self) -> None:
        self.write(CURSOR_HIDE)

    def show_cursor(self) -> None:
        self.write(CURSOR_SHOW)

    def clear_from_cursor(self) -> None:
        self.write(ERASE_BELOW)

    def clear_screen(self) -> None:
        self.write(ERASE_ALL)

    # -- input --------------------------------------------------------------

    def _read_stdin(self) -> None:
        try:
            chunk = os.read(self.stdin.fileno(), 4096)
        except BlockingIOError:
            return
        except OSError as exc:
            logger.warning("stdin read failed: %s", exc)
            return
        if not chunk or self._on_input is None:
            return

        # Multi-byte characters and escape sequences may straddle reads.
        text = self._held + self._decoder.decode(chunk)
        presses, self._held = split_input(text)
        handler = self._on_input
        for press in presses:
            handler(press)

    def _resized(self) -> None:
        if self._on_resize is not None:
            self._on_resize()
