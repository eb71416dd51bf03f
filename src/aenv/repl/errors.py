"""REPL error conditions."""

from __future__ import annotations


class ReplError(Exception):
    """Base class for REPL failures."""


class NoSourceError(ReplError):
    def __init__(self, message: str = "no source files provided") -> None:
        super().__init__(message)


class EditDeclinedError(ReplError):
    def __init__(self, message: str = "user declined to re-edit") -> None:
        super().__init__(message)


class OutOfBoundsError(ReplError):
    """History index misuse. Returned as a value by history accessors."""

    def __init__(self, index: int = -1, size: int = 0) -> None:
        self.index = index
        self.size = size
        super().__init__(f"index out of range: {index} (size {size})")
