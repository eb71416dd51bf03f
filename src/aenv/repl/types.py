"""Core types shared by the REPL completion, history and session layers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple


class Mode(str, Enum):
    """Input mode. The value is the history file tag letter."""

    EVAL = "E"
    CTRL = "C"


class CandidateKind(int, Enum):
    """Candidate provenance; the value is its ranking priority."""

    BINDING = 0
    PARAM_BINDING = 1
    BUILTIN = 2


class Word(NamedTuple):
    """The word at the cursor and its half-open ``[start, end)`` range."""

    text: str
    start: int
    end: int


@dataclass(frozen=True)
class Candidate:
    name: str
    kind: CandidateKind = CandidateKind.BUILTIN
    function: bool = False


@dataclass(frozen=True)
class Match:
    """A ranked candidate with the positions of its matched characters."""

    candidate: Candidate
    score: float = 0.0
    positions: tuple[int, ...] = ()

    @property
    def name(self) -> str:
        return self.candidate.name


@dataclass(frozen=True)
class FunctionCall:
    name: str = ""
    arg_index: int = 0
    in_call: bool = False


@dataclass(frozen=True)
class Signature:
    """A call signature; a trailing variadic param is spelled ``...name``."""

    name: str
    params: tuple[str, ...] = ()

    @property
    def display(self) -> str:
        return f"{self.name}({', '.join(self.params)})"

    def __str__(self) -> str:
        return self.display


@dataclass(frozen=True)
class HistoryEntry:
    line: str
    mode: Mode = Mode.EVAL
