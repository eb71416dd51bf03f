"""Expression builtin functions.

Parameter annotations double as the kind metadata read by signature
introspection, so keep them accurate: ``list`` is an array, ``dict`` a map,
``Callable[[Any], bool]`` a predicate and ``Any`` an untyped value.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable

from aenv.lang.errors import EvalError
from aenv.lang.expr import type_name
from aenv.lang.format import format_result
from aenv.lang.registry import Registry


def _len(v: Any) -> int:
    if isinstance(v, (str, list, tuple, Mapping)):
        return len(v)
    raise EvalError(f"invalid argument for len (type {type_name(v)})")


def _type(v: Any) -> str:
    return type_name(v)


def _int(v: Any) -> int:
    if isinstance(v, str):
        return int(float(v)) if "." in v else int(v)
    return int(v)


def _float(v: Any) -> float:
    return float(v)


def _string(v: Any) -> str:
    return v if isinstance(v, str) else format_result(v)


def upper(s: str) -> str:
    return s.upper()


def lower(s: str) -> str:
    return s.lower()


def trim(s: str) -> str:
    return s.strip()


def split(s: str, sep: str) -> list:
    return s.split(sep) if sep else list(s)


def join(items: list, sep: str = "") -> str:
    return sep.join(i if isinstance(i, str) else str(i) for i in items)


def _filter(items: list, predicate: Callable[[Any], bool]) -> list:
    return [item for item in items if predicate(item)]


def _map(items: list, fn: Callable[[Any], Any]) -> list:
    return [fn(item) for item in items]


def _all(items: list, predicate: Callable[[Any], bool]) -> bool:
    return all(predicate(item) for item in items)


def _any(items: list, predicate: Callable[[Any], bool]) -> bool:
    return any(predicate(item) for item in items)


def none(items: list, predicate: Callable[[Any], bool]) -> bool:
    return not any(predicate(item) for item in items)


def count(items: list, predicate: Callable[[Any], bool]) -> int:
    return sum(1 for item in items if predicate(item))


def keys(m: dict) -> list:
    return list(m)


def values(m: dict) -> list:
    return list(m.values())


def _abs(v: Any) -> Any:
    return abs(v)


def _max(*v: Any) -> Any:
    items = v[0] if len(v) == 1 and isinstance(v[0], list) else v
    return max(items)


def _min(*v: Any) -> Any:
    items = v[0] if len(v) == 1 and isinstance(v[0], list) else v
    return min(items)


def first(items: list) -> Any:
    return items[0] if items else None


def last(items: list) -> Any:
    return items[-1] if items else None


def reverse(items: list) -> list:
    return list(reversed(items))


def _sort(items: list) -> list:
    return sorted(items)


def hasPrefix(s: str, prefix: str) -> bool:  # noqa: N802
    return s.startswith(prefix)


def hasSuffix(s: str, suffix: str) -> bool:  # noqa: N802
    return s.endswith(suffix)


def contains(s: str, sub: str) -> bool:
    return sub in s


def replace(s: str, old: str, new: str) -> str:
    return s.replace(old, new)


def repeat(s: str, n: int) -> str:
    if n < 0:
        raise EvalError("repeat: negative count")
    return s * n


def builtin_registry() -> Registry:
    """Build the expression builtin table."""
    return Registry(
        {
            "len": _len,
            "type": _type,
            "int": _int,
            "float": _float,
            "string": _string,
            "upper": upper,
            "lower": lower,
            "trim": trim,
            "split": split,
            "join": join,
            "filter": _filter,
            "map": _map,
            "all": _all,
            "any": _any,
            "none": none,
            "count": count,
            "keys": keys,
            "values": values,
            "abs": _abs,
            "max": _max,
            "min": _min,
            "first": first,
            "last": last,
            "reverse": reverse,
            "sort": _sort,
            "hasPrefix": hasPrefix,
            "hasSuffix": hasSuffix,
            "contains": contains,
            "replace": replace,
            "repeat": repeat,
        }
    )
