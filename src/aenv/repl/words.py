"""Cursor-relative word and parent-path extraction.

Offsets are ``str`` indices. Hyphens are not boundaries, so hyphenated
identifiers such as ``log-pretty`` stay whole.
"""

from __future__ import annotations

from aenv.repl.types import Word

_BOUNDARIES = frozenset(".  \t()[]+*/%<>=!&|,?:;")


def is_word_boundary(ch: str) -> bool:
    return ch in _BOUNDARIES


def word_bounds(text: str, cursor: int) -> Word:
    """Return the word around *cursor*.

    A cursor sitting right after a boundary yields an empty word at that
    position.
    """
    cursor = max(0, min(cursor, len(text)))
    start = cursor
    while start > 0 and not is_word_boundary(text[start - 1]):
        start -= 1
    end = cursor
    while end < len(text) and not is_word_boundary(text[end]):
        end += 1
    return Word(text[start:end], start, end)


def parent_path(text: str, word_start: int) -> str:
    """Dotted member-access chain before the word, e.g. ``server.http``.

    Returns ``""`` for a top-level word.
    """
    prefix = text[:word_start].rstrip(".")
    pos = len(prefix)
    while pos > 0:
        ch = prefix[pos - 1]
        if ch != "." and is_word_boundary(ch):
            break
        pos -= 1
    return prefix[pos:].strip().strip(".")
