"""Keyboard input parsing for the REPL terminal.

Raw stdin chunks are split into complete sequences (``split_input``) and each
sequence is named with a key identifier (``parse_key``) such as ``"tab"``,
``"shift+up"`` or ``"alt+down"``. Printable input keeps its literal text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

ESC = "\x1b"
BRACKETED_PASTE_START = "\x1b[200~"
BRACKETED_PASTE_END = "\x1b[201~"

# Legacy escape sequences -> key names
LEGACY_KEY_SEQUENCES: dict[str, str] = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\x1b[H": "home",
    "\x1b[F": "end",
    "\x1bOA": "up",
    "\x1bOB": "down",
    "\x1bOC": "right",
    "\x1bOD": "left",
    "\x1bOH": "home",
    "\x1bOF": "end",
    "\x1b[1~": "home",
    "\x1b[4~": "end",
    "\x1b[7~": "home",
    "\x1b[8~": "end",
    "\x1b[2~": "insert",
    "\x1b[3~": "delete",
    "\x1b[5~": "pageUp",
    "\x1b[6~": "pageDown",
    "\x1b[Z": "shift+tab",
}

# xterm modifier parameter (CSI 1;<mod>X) -> prefix
_MODIFIER_PREFIX: dict[int, str] = {
    2: "shift+",
    3: "alt+",
    4: "shift+alt+",
    5: "ctrl+",
    6: "ctrl+shift+",
    7: "ctrl+alt+",
    8: "ctrl+shift+alt+",
}

_CSI_LETTER_KEYS: dict[str, str] = {
    "A": "up",
    "B": "down",
    "C": "right",
    "D": "left",
    "H": "home",
    "F": "end",
}

_CSI_TILDE_KEYS: dict[str, str] = {
    "2": "insert",
    "3": "delete",
    "5": "pageUp",
    "6": "pageDown",
}

_MODIFIED_LETTER_RE = re.compile(r"^\x1b\[1;(\d+)([ABCDHF])$")
_MODIFIED_TILDE_RE = re.compile(r"^\x1b\[(\d+);(\d+)~$")


@dataclass(frozen=True)
class KeyPress:
    """One decoded input event.

    ``key`` is the key identifier (``None`` for unrecognised sequences),
    ``text`` the literal characters to insert for printable input, and
    ``paste`` marks bracketed-paste content.
    """

    key: str | None
    text: str = ""
    paste: bool = False

    @property
    def is_text(self) -> bool:
        return bool(self.text)


# ---------------------------------------------------------------------------
# Sequence splitting
# ---------------------------------------------------------------------------


def _sequence_length(data: str) -> int | None:
    """Length of the complete escape sequence at the start of *data*.

    Returns ``None`` when more input is needed.
    """
    if len(data) == 1:
        return 1

    second = data[1]

    if second == "[":
        for i in range(2, len(data)):
            if 0x40 <= ord(data[i]) <= 0x7E:
                return i + 1
        return None

    if second == "O":
        return 3 if len(data) >= 3 else None

    if second == ESC:
        # ESC-prefixed CSI/SS3 is the meta form of that key (ESC ESC [ A).
        if len(data) >= 3 and data[2] in "[O":
            inner = _sequence_length(data[1:])
            return None if inner is None else inner + 1
        return 1

    # Meta key: ESC followed by a single character
    return 2


def split_input(data: str) -> tuple[list[KeyPress], str]:
    """Split a raw stdin chunk into key presses.

    Returns ``(presses, remainder)`` where *remainder* is an incomplete
    trailing escape sequence to be prepended to the next chunk.
    """
    presses: list[KeyPress] = []
    pos = 0
    run_start = -1

    def flush_run(end: int) -> None:
        nonlocal run_start
        if run_start >= 0:
            for ch in data[run_start:end]:
                presses.append(parse(ch))
            run_start = -1

    while pos < len(data):
        if data.startswith(BRACKETED_PASTE_START, pos):
            flush_run(pos)
            start = pos + len(BRACKETED_PASTE_START)
            end = data.find(BRACKETED_PASTE_END, start)
            if end == -1:
                return presses, data[pos:]
            pasted = data[start:end].replace("\r\n", "").replace("\r", "").replace("\n", "")
            presses.append(KeyPress(key=None, text=pasted, paste=True))
            pos = end + len(BRACKETED_PASTE_END)
            continue

        if data[pos] == ESC:
            flush_run(pos)
            length = _sequence_length(data[pos:])
            if length is None:
                return presses, data[pos:]
            presses.append(parse(data[pos : pos + length]))
            pos += length
            continue

        if run_start < 0:
            run_start = pos
        pos += 1

    flush_run(pos)
    return presses, ""


# ---------------------------------------------------------------------------
# Key naming
# ---------------------------------------------------------------------------


def parse_key(data: str) -> str | None:  # noqa: C901
    """Parse raw terminal input and return the key identifier, or ``None``.

    e.g. ``"a"``, ``"ctrl+c"``, ``"shift+up"``, ``"alt+down"``.
    """
    if not data:
        return None

    if data in LEGACY_KEY_SEQUENCES:
        return LEGACY_KEY_SEQUENCES[data]

    m = _MODIFIED_LETTER_RE.match(data)
    if m:
        prefix = _MODIFIER_PREFIX.get(int(m.group(1)), "")
        return prefix + _CSI_LETTER_KEYS[m.group(2)]

    m = _MODIFIED_TILDE_RE.match(data)
    if m and m.group(1) in _CSI_TILDE_KEYS:
        prefix = _MODIFIER_PREFIX.get(int(m.group(2)), "")
        return prefix + _CSI_TILDE_KEYS[m.group(1)]

    # --- Simple single-byte keys ---
    if data == ESC:
        return "escape"
    if data in ("\r", "\n"):
        return "enter"
    if data == "\t":
        return "tab"
    if data == " ":
        return "space"
    if data in ("\x7f", "\x08"):
        return "backspace"
    if data == "\x1f":
        return "ctrl+-"

    # --- Ctrl + letter (0x01 - 0x1a) ---
    if len(data) == 1 and 1 <= ord(data) <= 26:
        return "ctrl+" + chr(ord(data) + ord("a") - 1)

    if len(data) > 2 and data[0] == ESC and data[1] == ESC:
        inner = parse_key(data[1:])
        if inner is None or "alt+" in inner:
            return inner
        return "alt+" + inner

    # --- Alt + key (ESC prefix) ---
    if len(data) == 2 and data[0] == ESC:
        ch = data[1]
        if ch in ("\x7f", "\x08"):
            return "alt+backspace"
        if ch in ("\r", "\n"):
            return "alt+enter"
        if ch.isprintable():
            return "alt+" + ch.lower()
        return None

    # --- Plain printable character ---
    if len(data) == 1 and data.isprintable():
        return data

    return None


def parse(data: str) -> KeyPress:
    """Decode one complete sequence into a :class:`KeyPress`."""
    key = parse_key(data)
    text = data if len(data) == 1 and data.isprintable() else ""
    return KeyPress(key=key, text=text)
