"""Tests for aenv.repl.history -- mode-tagged persistent history."""

from __future__ import annotations

import os
import stat
import tempfile

import pytest

from aenv.repl.errors import OutOfBoundsError
from aenv.repl.history import History
from aenv.repl.types import HistoryEntry, Mode


@pytest.fixture
def path() -> str:
    with tempfile.TemporaryDirectory() as d:
        yield os.path.join(d, "history.utf8")


def _read(path: str) -> str:
    with open(path, encoding="utf-8") as f:
        return f.read()


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


class TestWrite:
    def test_append_record(self, path: str) -> None:
        h = History(path)
        h.write("1 + 1", Mode.EVAL)
        h.write("help", Mode.CTRL)
        assert _read(path) == "E:1 + 1\nC:help\n"
        assert len(h) == 2

    def test_trims_input(self, path: str) -> None:
        h = History(path)
        h.write("  greeting  ")
        assert h.get_line(0) == "greeting"

    def test_blank_is_ignored(self, path: str) -> None:
        h = History(path)
        assert h.write("   ") == 0
        assert len(h) == 0
        assert not os.path.exists(path)

    def test_consecutive_duplicate_is_ignored(self, path: str) -> None:
        h = History(path)
        h.write("a")
        h.write("a")
        assert len(h) == 1
        assert _read(path) == "E:a\n"

    def test_same_line_different_modes_are_distinct(self, path: str) -> None:
        h = History(path)
        h.write("list", Mode.EVAL)
        h.write("list", Mode.CTRL)
        assert h.entries() == [HistoryEntry("list", Mode.EVAL), HistoryEntry("list", Mode.CTRL)]

    def test_earlier_duplicate_moves_to_end(self, path: str) -> None:
        h = History(path)
        for line in ("a", "b", "c"):
            h.write(line)
        h.write("a")
        assert h.dump() == ["b", "c", "a"]
        assert _read(path) == "E:b\nE:c\nE:a\n"

    def test_file_is_private(self, path: str) -> None:
        History(path).write("secret")
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

    def test_unwritable_path_raises(self) -> None:
        h = History(os.path.join(tempfile.gettempdir(), "missing-dir-for-aenv", "nested", "h"))
        with pytest.raises(OSError):
            h.write("x")
        assert len(h) == 1


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class TestLoad:
    def test_missing_file_is_empty(self, path: str) -> None:
        h = History(path)
        h.load()
        assert len(h) == 0

    def test_round_trip(self, path: str) -> None:
        h = History(path)
        h.write("x", Mode.EVAL)
        h.write("edit", Mode.CTRL)
        loaded = History(path)
        loaded.load()
        assert loaded.entries() == h.entries()

    def test_legacy_lines_are_eval(self, path: str) -> None:
        with open(path, "w", encoding="utf-8") as f:
            f.write("plain line\n\n   \nC:quit\n")
        h = History(path)
        h.load()
        assert h.entries() == [HistoryEntry("plain line", Mode.EVAL), HistoryEntry("quit", Mode.CTRL)]

    def test_load_replaces_entries(self, path: str) -> None:
        with open(path, "w", encoding="utf-8") as f:
            f.write("E:one\n")
        h = History(path)
        h.load()
        h.load()
        assert h.dump() == ["one"]


# ---------------------------------------------------------------------------
# Access
# ---------------------------------------------------------------------------


class TestAccess:
    def test_out_of_bounds_is_returned(self, path: str) -> None:
        h = History(path)
        h.write("a")
        for index in (-1, 1, 99):
            result = h.get_entry(index)
            assert isinstance(result, OutOfBoundsError)
            assert result.size == 1
            assert isinstance(h.get_line(index), OutOfBoundsError)

    def test_in_bounds(self, path: str) -> None:
        h = History(path)
        h.write("a", Mode.CTRL)
        assert h.get_entry(0) == HistoryEntry("a", Mode.CTRL)
        assert h.get_line(0) == "a"
