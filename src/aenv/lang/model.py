"""Binding tree types.

A source file is a list of :class:`Namespace` bindings. Each binding has a
name, an optional parameter list, and a :class:`Value` that is either raw
expression text or a block of nested bindings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Kind(str, Enum):
    EXPR = "expr"
    BLOCK = "block"


@dataclass(frozen=True)
class Param:
    """A formal parameter of a binding; a variadic one is always last."""

    name: str
    variadic: bool = False

    def __str__(self) -> str:
        return f"...{self.name}" if self.variadic else self.name


@dataclass
class Value:
    kind: Kind
    source: str = ""
    entries: list[Namespace] = field(default_factory=list)

    @property
    def is_block(self) -> bool:
        return self.kind is Kind.BLOCK

    def get(self, name: str) -> Namespace | None:
        """Return the block entry called *name*, if any."""
        for entry in self.entries:
            if entry.name == name:
                return entry
        return None

    @classmethod
    def expr(cls, source: str) -> Value:
        return cls(kind=Kind.EXPR, source=source)

    @classmethod
    def block(cls, *entries: Namespace) -> Value:
        return cls(kind=Kind.BLOCK, entries=list(entries))


@dataclass
class Namespace:
    name: str
    params: list[Param] = field(default_factory=list)
    value: Value = field(default_factory=lambda: Value.expr(""))

    @property
    def signature(self) -> str:
        """Display form, e.g. ``concat(...parts)``."""
        return f"{self.name}({', '.join(str(p) for p in self.params)})"
