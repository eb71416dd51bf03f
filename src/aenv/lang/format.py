"""Native-syntax formatting of bindings and evaluation results."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from aenv.lang.model import Namespace, Value


@dataclass(frozen=True)
class FuncRef:
    """A callable result, displayed by its signature instead of its value."""

    name: str
    signature: str

    def __str__(self) -> str:
        return self.signature or f"{self.name}()"


# ---------------------------------------------------------------------------
# Bindings
# ---------------------------------------------------------------------------


def format_namespaces(namespaces: Iterable[Namespace], indent: int = 2) -> str:
    """Render bindings as source text that parses back to the same tree.

    Top-level bindings are separated by ``;`` and a blank line (a single
    space when *indent* is 0); the result ends with a newline.
    """
    sep = ";\n\n" if indent > 0 else "; "
    return sep.join(_format_namespace(ns, indent, 0) for ns in namespaces) + "\n"


def _format_namespace(ns: Namespace, indent: int, depth: int) -> str:
    head = " ".join([ns.name, *(str(p) for p in ns.params)])
    return f"{head} : {_format_value(ns.value, indent, depth)}"


def _format_value(value: Value, indent: int, depth: int) -> str:
    if not value.is_block:
        return value.source
    if not value.entries:
        return "{}"
    if indent == 0:
        inner = "; ".join(_format_namespace(e, 0, depth + 1) for e in value.entries)
        return "{ " + inner + " }"
    pad = " " * ((depth + 1) * indent)
    lines = [f"{pad}{_format_namespace(e, indent, depth + 1)};" for e in value.entries]
    return "{\n" + "\n".join(lines) + "\n" + " " * (depth * indent) + "}"


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


def format_result(value: Any) -> str:
    """Render an evaluation result in expression syntax."""
    if value is None:
        return "nil"
    if isinstance(value, FuncRef):
        return str(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _format_float(value)
    if isinstance(value, str):
        return _quote(value)
    if isinstance(value, Mapping):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        return "{" + ", ".join(f"{_quote(str(k))}: {format_result(v)}" for k, v in items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(format_result(v) for v in value) + "]"
    return str(value)


def _format_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t"}


def _quote(text: str) -> str:
    return '"' + "".join(_ESCAPES.get(ch, ch) for ch in text) + '"'
