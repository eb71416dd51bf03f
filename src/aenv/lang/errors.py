"""Exceptions raised by the language engine."""

from __future__ import annotations


class LangError(Exception):
    """Base class for language engine failures."""


class ParseError(LangError):
    """Source text does not conform to the binding grammar."""

    def __init__(self, message: str, line: int = 0, col: int = 0, expected: str | None = None) -> None:
        self.line = line
        self.col = col
        self.expected = expected
        super().__init__(message)

    def __str__(self) -> str:
        msg = self.args[0]
        if self.expected:
            msg = f"{msg} (expected {self.expected!r})"
        if self.line:
            return f"{self.line}:{self.col}: {msg}"
        return msg


class EvalError(LangError):
    """An expression failed to compile or evaluate."""

    def __init__(self, message: str, source: str | None = None, signature: str | None = None) -> None:
        self.source = source
        self.signature = signature
        super().__init__(message)

    def __str__(self) -> str:
        msg = self.args[0]
        if self.signature:
            msg = f"{msg} (signature: {self.signature})"
        return msg


class ValidationError(LangError):
    """A non-parameterized binding failed to evaluate."""

    def __init__(self, name: str, cause: Exception) -> None:
        self.name = name
        self.cause = cause
        super().__init__(f"namespace {name!r}: {cause}")
