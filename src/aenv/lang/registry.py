"""Dotted-path addressable tables of builtin values and functions.

Both builtin tables (the host environment and the expression builtins) are
:class:`Registry` instances. Nested plain mappings form the dotted namespace:
``file.exists`` is the ``exists`` entry of the ``file`` mapping. Functions
carry their parameter kinds as ordinary type annotations, which
:func:`param_kinds` reads back.
"""

from __future__ import annotations

import collections.abc
import inspect
import typing
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable


class ParamKind(str, Enum):
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    ARRAY = "array"
    MAP = "map"
    FUNC = "func"
    PREDICATE = "predicate"
    ANY = "any"


@dataclass(frozen=True)
class ParamInfo:
    name: str
    kind: ParamKind
    variadic: bool = False


_SIMPLE_KINDS: dict[Any, ParamKind] = {
    str: ParamKind.STRING,
    int: ParamKind.INT,
    float: ParamKind.FLOAT,
    bool: ParamKind.BOOL,
    list: ParamKind.ARRAY,
    dict: ParamKind.MAP,
}


def _kind_of(annotation: Any) -> ParamKind:
    if annotation in _SIMPLE_KINDS:
        return _SIMPLE_KINDS[annotation]
    origin = typing.get_origin(annotation)
    if origin in _SIMPLE_KINDS:
        return _SIMPLE_KINDS[origin]
    if origin is collections.abc.Callable or annotation is Callable:
        args = typing.get_args(annotation)
        if args and args[-1] is bool:
            return ParamKind.PREDICATE
        return ParamKind.FUNC
    return ParamKind.ANY


def param_kinds(fn: Callable[..., Any]) -> list[ParamInfo] | None:
    """Read the formal parameters of *fn*.

    Returns ``None`` when *fn* cannot be introspected. Unannotated
    parameters have kind ``ANY``.
    """
    try:
        sig = inspect.signature(fn)
        hints = typing.get_type_hints(fn)
    except (TypeError, ValueError, NameError):
        return None

    params: list[ParamInfo] = []
    for p in sig.parameters.values():
        if p.kind is inspect.Parameter.VAR_KEYWORD:
            continue
        kind = _kind_of(hints[p.name]) if p.name in hints else ParamKind.ANY
        params.append(ParamInfo(p.name, kind, p.kind is inspect.Parameter.VAR_POSITIONAL))
    return params


def is_function(value: Any) -> bool:
    """True for callables that are not also browsable mappings."""
    return callable(value) and not isinstance(value, Mapping)


class Registry:
    """Read-only, dotted-path addressable name -> value table."""

    def __init__(self, entries: Mapping[str, Any]) -> None:
        self._entries = dict(entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list[str]:
        return list(self._entries)

    def lookup(self, path: str) -> Any | None:
        """Return the value at dotted *path*, or ``None``."""
        if not path:
            return None
        current: Any = self._entries
        for segment in path.split("."):
            if not isinstance(current, Mapping) or segment not in current:
                return None
            current = current[segment]
        return current

    def child_names(self, path: str) -> list[str]:
        """Keys of the mapping at dotted *path*; empty if not a mapping."""
        if not path:
            return self.keys()
        value = self.lookup(path)
        if isinstance(value, Mapping):
            return [str(k) for k in value]
        return []

    def walk(self) -> Iterator[tuple[str, Callable[..., Any]]]:
        """Yield ``(dotted_name, function)`` for every function in the table."""
        stack: list[tuple[str, Mapping[str, Any]]] = [("", self._entries)]
        while stack:
            prefix, table = stack.pop()
            for key, value in table.items():
                name = f"{prefix}{key}"
                if is_function(value):
                    yield name, value
                elif isinstance(value, Mapping) and not callable(value):
                    stack.append((f"{name}.", value))
