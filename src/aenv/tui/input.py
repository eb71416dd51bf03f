"""LineInput - single-line text input state with horizontal scrolling.

The widget owns only its value and cursor. Callers feed it decoded
:class:`~aenv.tui.keys.KeyPress` events and decide for themselves what
submission, completion or history keys mean.
"""

from __future__ import annotations

from aenv.tui.keys import KeyPress
from aenv.tui.utils import graphemes, visible_width

_PUNCTUATION = frozenset("(){}[]<>.,;:'\"!?+-=*/\\|&%^$#@~`")

# Key ids consumed by LineInput.handle_key
EDITING_KEYS = frozenset(
    {
        "left",
        "right",
        "ctrl+b",
        "ctrl+f",
        "home",
        "end",
        "ctrl+a",
        "ctrl+e",
        "alt+left",
        "alt+right",
        "ctrl+left",
        "ctrl+right",
        "alt+b",
        "alt+f",
        "backspace",
        "delete",
        "ctrl+w",
        "alt+backspace",
        "alt+d",
        "ctrl+u",
        "ctrl+k",
    }
)


def _is_space(ch: str) -> bool:
    return ch.isspace()


def _is_punct(ch: str) -> bool:
    return ch in _PUNCTUATION


class LineInput:
    """Single-line text input."""

    def __init__(self, char_limit: int = 0) -> None:
        self._value: str = ""
        self._cursor: int = 0
        self.char_limit = char_limit

    # -- value / cursor -----------------------------------------------------

    @property
    def value(self) -> str:
        return self._value

    @property
    def position(self) -> int:
        return self._cursor

    def set_value(self, value: str) -> None:
        if self.char_limit > 0:
            value = value[: self.char_limit]
        self._value = value
        self._cursor = min(self._cursor, len(value))

    def set_cursor(self, cursor: int) -> None:
        self._cursor = max(0, min(cursor, len(self._value)))

    def reset(self) -> None:
        self._value = ""
        self._cursor = 0

    # -- editing ------------------------------------------------------------

    def insert(self, text: str) -> None:
        if self.char_limit > 0:
            room = self.char_limit - len(self._value)
            if room <= 0:
                return
            text = text[:room]
        self._value = self._value[: self._cursor] + text + self._value[self._cursor :]
        self._cursor += len(text)

    def handle_key(self, press: KeyPress) -> bool:  # noqa: C901
        """Apply an editing key. Returns ``False`` if the key is not one."""
        if press.is_text:
            self.insert(press.text)
            return True

        key = press.key
        if key not in EDITING_KEYS:
            return False

        if key in ("left", "ctrl+b"):
            if self._cursor > 0:
                last = graphemes(self._value[: self._cursor])[-1]
                self._cursor -= len(last)
        elif key in ("right", "ctrl+f"):
            if self._cursor < len(self._value):
                first = graphemes(self._value[self._cursor :])[0]
                self._cursor += len(first)
        elif key in ("home", "ctrl+a"):
            self._cursor = 0
        elif key in ("end", "ctrl+e"):
            self._cursor = len(self._value)
        elif key in ("alt+left", "ctrl+left", "alt+b"):
            self._cursor = self._word_left()
        elif key in ("alt+right", "ctrl+right", "alt+f"):
            self._cursor = self._word_right()
        elif key == "backspace":
            if self._cursor > 0:
                gl = len(graphemes(self._value[: self._cursor])[-1])
                self._value = self._value[: self._cursor - gl] + self._value[self._cursor :]
                self._cursor -= gl
        elif key == "delete":
            if self._cursor < len(self._value):
                gl = len(graphemes(self._value[self._cursor :])[0])
                self._value = self._value[: self._cursor] + self._value[self._cursor + gl :]
        elif key in ("ctrl+w", "alt+backspace"):
            start = self._word_left()
            self._value = self._value[:start] + self._value[self._cursor :]
            self._cursor = start
        elif key == "alt+d":
            end = self._word_right()
            self._value = self._value[: self._cursor] + self._value[end:]
        elif key == "ctrl+u":
            self._value = self._value[self._cursor :]
            self._cursor = 0
        elif key == "ctrl+k":
            self._value = self._value[: self._cursor]

        return True

    def _word_left(self) -> int:
        cursor = self._cursor
        gs = graphemes(self._value[:cursor])

        # Skip trailing whitespace
        while gs and _is_space(gs[-1]):
            cursor -= len(gs.pop())

        if gs:
            if _is_punct(gs[-1]):
                while gs and _is_punct(gs[-1]):
                    cursor -= len(gs.pop())
            else:
                while gs and not _is_space(gs[-1]) and not _is_punct(gs[-1]):
                    cursor -= len(gs.pop())
        return cursor

    def _word_right(self) -> int:
        cursor = self._cursor
        gs = graphemes(self._value[cursor:])
        idx = 0

        while idx < len(gs) and _is_space(gs[idx]):
            cursor += len(gs[idx])
            idx += 1

        if idx < len(gs):
            if _is_punct(gs[idx]):
                while idx < len(gs) and _is_punct(gs[idx]):
                    cursor += len(gs[idx])
                    idx += 1
            else:
                while idx < len(gs) and not _is_space(gs[idx]) and not _is_punct(gs[idx]):
                    cursor += len(gs[idx])
                    idx += 1
        return cursor

    # -- rendering ----------------------------------------------------------

    def view(self, prompt: str, width: int, style=None) -> tuple[str, int]:
        """Render ``prompt + value`` into *width* columns.

        Returns ``(line, cursor_column)`` where *cursor_column* is the
        0-based visible column of the cursor. The value scrolls horizontally
        to keep the cursor on screen.
        """
        prompt_width = visible_width(prompt)
        available = width - prompt_width
        if available <= 1:
            return prompt, prompt_width

        text = self._value
        start = 0
        cursor = self._cursor

        if visible_width(text) >= available:
            half = available // 2
            # Walk back from the cursor until half the space is used.
            cols = 0
            start = cursor
            for g in reversed(graphemes(text[:cursor])):
                w = visible_width(g)
                if cols + w > half:
                    break
                cols += w
                start -= len(g)

        visible: list[str] = []
        cols = 0
        for g in graphemes(text[start:]):
            w = visible_width(g)
            if cols + w > available - 1:
                break
            visible.append(g)
            cols += w
        shown = "".join(visible)

        render = style if style is not None else (lambda s: s)
        cursor_col = prompt_width + visible_width(text[start:cursor])
        return prompt + render(shown), cursor_col
