"""Completion candidates for a resolved parent path."""

from __future__ import annotations

from aenv.lang import AST, Namespace, Value, is_function
from aenv.repl.types import Candidate, CandidateKind

CTRL_COMMANDS: tuple[str, ...] = ("help", "list", "edit", "clear", "quit")


def _binding_candidate(ns: Namespace) -> Candidate:
    kind = CandidateKind.PARAM_BINDING if ns.params else CandidateKind.BINDING
    return Candidate(ns.name, kind)


def command_candidates() -> list[Candidate]:
    return [Candidate(name, CandidateKind.BUILTIN) for name in CTRL_COMMANDS]


def child_candidates(ast: AST, parent: str) -> list[Candidate]:
    """Names that complete the word after *parent*.

    For an empty parent: top-level bindings, then environment builtins,
    then expression builtins (a name already listed is not repeated).
    Otherwise the parent is resolved through the binding tree; when that
    fails the builtin registries are searched by dotted path.
    """
    if not parent:
        seen: set[str] = set()
        out: list[Candidate] = []
        for ns in ast.all():
            if ns.name not in seen:
                seen.add(ns.name)
                out.append(_binding_candidate(ns))
        for registry in (ast.env, ast.builtins):
            for name in registry.keys():
                if name not in seen:
                    seen.add(name)
                    out.append(Candidate(name, CandidateKind.BUILTIN, is_function(registry.lookup(name))))
        return out

    segments = parent.split(".")
    ns = ast.get_namespace(segments[0])
    if ns is not None:
        value: Value | None = ns.value
        for segment in segments[1:]:
            child = value.get(segment) if value is not None and value.is_block else None
            value = child.value if child is not None else None
            if value is None:
                break
        if value is not None:
            if not value.is_block:
                return []
            return [_binding_candidate(entry) for entry in value.entries]

    for registry in (ast.env, ast.builtins):
        names = registry.child_names(parent)
        if names:
            return [Candidate(name, CandidateKind.BUILTIN) for name in names]
    return []
