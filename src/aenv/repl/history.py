"""Persistent, mode-tagged input history.

Each record is one line: ``E:`` or ``C:`` followed by the submitted text.
Untagged lines from older files load as evaluate-mode entries.
"""

from __future__ import annotations

import logging
import os
import threading

from aenv.repl.errors import OutOfBoundsError
from aenv.repl.types import HistoryEntry, Mode

logger = logging.getLogger(__name__)

_FILE_MODE = 0o600


def _record(entry: HistoryEntry) -> str:
    return f"{entry.mode.value}:{entry.line}\n"


def _parse_record(line: str) -> HistoryEntry:
    for mode in Mode:
        tag = f"{mode.value}:"
        if line.startswith(tag):
            return HistoryEntry(line[len(tag) :], mode)
    return HistoryEntry(line, Mode.EVAL)


class History:
    """Ordered history, oldest first, mirrored to a file on every change."""

    def __init__(self, path: str) -> None:
        self.path = path
        self._entries: list[HistoryEntry] = []
        self._lock = threading.RLock()

    def load(self) -> None:
        """Replace entries with the file's contents. A missing file is empty history."""
        with self._lock:
            try:
                with open(self.path, encoding="utf-8") as f:
                    lines = f.read().splitlines()
            except FileNotFoundError:
                return
            self._entries = [_parse_record(line.strip()) for line in lines if line.strip()]
            logger.debug("history loaded (path=%s, count=%d)", self.path, len(self._entries))

    def write(self, line: str, mode: Mode = Mode.EVAL) -> int:
        """Record a submission and persist it; returns the bytes written.

        An identical submission to the last entry is ignored. An earlier
        duplicate is moved to the end, which rewrites the whole file.
        Raises ``OSError`` when the file cannot be written.
        """
        line = line.strip()
        if not line:
            return 0
        entry = HistoryEntry(line, mode)

        with self._lock:
            if self._entries and self._entries[-1] == entry:
                return len(line)

            rewrite = entry in self._entries
            if rewrite:
                self._entries.remove(entry)
            self._entries.append(entry)

            if rewrite:
                return self._rewrite()
            return self._append(entry)

    def _open(self, flags: int):
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | flags, _FILE_MODE)
        return os.fdopen(fd, "w", encoding="utf-8")

    def _append(self, entry: HistoryEntry) -> int:
        with self._open(os.O_APPEND) as f:
            return f.write(_record(entry))

    def _rewrite(self) -> int:
        with self._open(os.O_TRUNC) as f:
            return sum(f.write(_record(e)) for e in self._entries)

    # -- access -------------------------------------------------------------

    def get_entry(self, index: int) -> HistoryEntry | OutOfBoundsError:
        with self._lock:
            if index < 0 or index >= len(self._entries):
                return OutOfBoundsError(index, len(self._entries))
            return self._entries[index]

    def get_line(self, index: int) -> str | OutOfBoundsError:
        entry = self.get_entry(index)
        if isinstance(entry, OutOfBoundsError):
            return entry
        return entry.line

    def entries(self) -> list[HistoryEntry]:
        with self._lock:
            return list(self._entries)

    def dump(self) -> list[str]:
        with self._lock:
            return [e.line for e in self._entries]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
