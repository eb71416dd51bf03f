"""Call signature resolution for the parameter hint line.

Signatures come from three places, first hit wins: the binding tree, the
expression builtins and the environment registry. Each registry's
signatures are introspected once, on first use, into a
:class:`SignatureCache`.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

from aenv.lang import AST, Namespace, ParamInfo, ParamKind, Registry, is_function, param_kinds
from aenv.repl.theme import ReplTheme
from aenv.repl.types import Signature

logger = logging.getLogger(__name__)

ParamNamer = Callable[[str, int, ParamInfo], str]

# ---------------------------------------------------------------------------
# Parameter naming
# ---------------------------------------------------------------------------

_KIND_NAMES: dict[ParamKind, str] = {
    ParamKind.STRING: "string",
    ParamKind.INT: "int",
    ParamKind.FLOAT: "float",
    ParamKind.BOOL: "bool",
    ParamKind.ARRAY: "array",
    ParamKind.MAP: "map",
    ParamKind.FUNC: "func",
    ParamKind.PREDICATE: "func",
    ParamKind.ANY: "any",
}

# (function, position) -> name, where the kind alone is not descriptive.
_SEMANTIC_OVERRIDES: dict[tuple[str, int], str] = {
    ("join", 0): "array",
    ("join", 1): "separator",
    ("split", 0): "string",
    ("split", 1): "separator",
}


def plain_param_name(func_name: str, index: int, param: ParamInfo) -> str:
    return _KIND_NAMES[param.kind]


def semantic_param_name(func_name: str, index: int, param: ParamInfo) -> str:
    override = _SEMANTIC_OVERRIDES.get((func_name, index))
    if override is not None:
        return override
    if param.kind is ParamKind.PREDICATE:
        return "predicate"
    if param.kind is ParamKind.ANY:
        return "v"
    return _KIND_NAMES[param.kind]


def generic_param_name(func_name: str) -> str:
    """Name for the single parameter of a function that cannot be introspected."""
    if func_name in ("len", "type", "int", "float", "string"):
        return "v"
    return "arg"


def introspect(name: str, fn: Any, namer: ParamNamer) -> Signature | None:
    """Build the signature of *fn* as called by *name*; ``None`` if not callable."""
    if not is_function(fn):
        return None
    infos = param_kinds(fn)
    if infos is None:
        return Signature(name, (generic_param_name(name),))
    params = []
    for i, info in enumerate(infos):
        label = namer(name, i, info)
        params.append(f"...{label}" if info.variadic else label)
    return Signature(name, tuple(params))


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


class SignatureCache:
    """Every function signature of one registry, built once on first use."""

    def __init__(self, registry: Registry, namer: ParamNamer) -> None:
        self.registry = registry
        self.namer = namer
        self._lock = threading.Lock()
        self._entries: dict[str, Signature] | None = None

    @property
    def built(self) -> bool:
        return self._entries is not None

    def _build(self) -> dict[str, Signature]:
        with self._lock:
            if self._entries is None:
                entries: dict[str, Signature] = {}
                for name, fn in self.registry.walk():
                    sig = introspect(name, fn, self.namer)
                    if sig is not None:
                        entries[name] = sig
                self._entries = entries
                logger.debug("signature cache built (count=%d)", len(entries))
            return self._entries

    def get(self, name: str) -> Signature | None:
        entries = self._entries if self._entries is not None else self._build()
        sig = entries.get(name)
        if sig is not None:
            return sig
        return introspect(name, self.registry.lookup(name), self.namer)


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


def _binding_signature(name: str, ns: Namespace) -> Signature:
    return Signature(name, tuple(str(p) for p in ns.params))


def binding_signature(ast: AST, name: str) -> Signature | None:
    """Signature of a (possibly dotted) binding, displayed under *name*."""
    segments = name.split(".")
    ns = ast.get_namespace(segments[0])
    if ns is None:
        return None
    if len(segments) == 1:
        return _binding_signature(ns.name, ns)

    value = ns.value
    for segment in segments[1:-1]:
        child = value.get(segment) if value.is_block else None
        if child is None:
            return None
        value = child.value
    if not value.is_block:
        return None
    entry = value.get(segments[-1])
    if entry is None:
        return None
    return _binding_signature(name, entry)


class SignatureResolver:
    """Resolves call names to signatures against a live binding tree."""

    def __init__(self, ast: AST) -> None:
        self.ast = ast
        self.expr_cache = SignatureCache(ast.builtins, semantic_param_name)
        self.env_cache = SignatureCache(ast.env, plain_param_name)

    def set_ast(self, ast: AST) -> None:
        """Swap in a new binding tree, keeping caches for unchanged registries."""
        if ast.builtins is not self.ast.builtins:
            self.expr_cache = SignatureCache(ast.builtins, semantic_param_name)
        if ast.env is not self.ast.env:
            self.env_cache = SignatureCache(ast.env, plain_param_name)
        self.ast = ast

    def resolve(self, name: str) -> Signature | None:
        if not name:
            return None
        return binding_signature(self.ast, name) or self.expr_cache.get(name) or self.env_cache.get(name)


def render_signature_hint(sig: Signature, arg_index: int, theme: ReplTheme) -> str:
    """Render ``name(a, b, ...c)`` with the parameter at *arg_index* highlighted.

    A trailing variadic parameter stays highlighted for every index at or
    past its position.
    """
    if not sig.params:
        return theme.signature_name(sig.name) + theme.signature("()")

    parts = []
    for i, param in enumerate(sig.params):
        current = i == arg_index or (param.startswith("...") and arg_index >= i)
        parts.append(theme.current_param(param) if current else theme.signature(param))
    return (
        theme.signature_name(sig.name)
        + theme.signature("(")
        + theme.signature(", ").join(parts)
        + theme.signature(")")
    )
