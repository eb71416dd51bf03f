"""Tests for aenv.repl.candidates -- completion candidate sources."""

from __future__ import annotations

from aenv.lang import AST, Registry
from aenv.repl.candidates import CTRL_COMMANDS, child_candidates, command_candidates
from aenv.repl.types import Candidate, CandidateKind

from .conftest import make_ast, small_env


def _names(candidates: list[Candidate]) -> list[str]:
    return [c.name for c in candidates]


# ---------------------------------------------------------------------------
# Top level
# ---------------------------------------------------------------------------


class TestTopLevel:
    def test_bindings_then_env_then_builtins(self, ast: AST) -> None:
        names = _names(child_candidates(ast, ""))
        assert names[:5] == ["greeting", "add", "concat", "config", "nested"]
        assert names[5:9] == ["target", "cwd", "path", "mung"]
        assert "len" in names[9:]
        assert names.index("filter") > names.index("mung")

    def test_kinds(self, ast: AST) -> None:
        by_name = {c.name: c for c in child_candidates(ast, "")}
        assert by_name["greeting"].kind is CandidateKind.BINDING
        assert by_name["add"].kind is CandidateKind.PARAM_BINDING
        assert by_name["path"].kind is CandidateKind.BUILTIN
        assert by_name["len"].kind is CandidateKind.BUILTIN

    def test_function_flag_only_for_builtin_callables(self, ast: AST) -> None:
        by_name = {c.name: c for c in child_candidates(ast, "")}
        assert by_name["cwd"].function
        assert by_name["len"].function
        assert not by_name["path"].function
        assert not by_name["target"].function
        assert not by_name["add"].function

    def test_binding_shadows_builtin_name(self) -> None:
        ast = AST.parse("len : 3", env=small_env(), builtins=Registry({"len": len}))
        matches = [c for c in child_candidates(ast, "") if c.name == "len"]
        assert matches == [Candidate("len", CandidateKind.BINDING)]


# ---------------------------------------------------------------------------
# Dotted parents
# ---------------------------------------------------------------------------


class TestNested:
    def test_block_children(self, ast: AST) -> None:
        children = child_candidates(ast, "config")
        assert _names(children) == ["log-pretty", "level", "format", "server"]
        assert children[2].kind is CandidateKind.PARAM_BINDING

    def test_deep_block(self, ast: AST) -> None:
        assert _names(child_candidates(ast, "config.server")) == ["port"]

    def test_expression_leaf_has_no_children(self, ast: AST) -> None:
        assert child_candidates(ast, "greeting") == []
        assert child_candidates(ast, "config.level") == []

    def test_falls_back_to_env_registry(self, ast: AST) -> None:
        children = child_candidates(ast, "path")
        assert _names(children) == ["abs", "cat", "rel"]
        assert all(c.kind is CandidateKind.BUILTIN for c in children)

    def test_env_value_map(self, ast: AST) -> None:
        assert _names(child_candidates(ast, "target")) == ["OS", "Arch"]

    def test_unknown_parent(self, ast: AST) -> None:
        assert child_candidates(ast, "nope") == []
        assert child_candidates(ast, "config.nope") == []

    def test_binding_block_wins_over_registry(self) -> None:
        ast = make_ast("path : { mine : 1 }")
        assert _names(child_candidates(ast, "path")) == ["mine"]


class TestCommands:
    def test_fixed_command_set(self) -> None:
        assert _names(command_candidates()) == list(CTRL_COMMANDS)
        assert list(CTRL_COMMANDS) == ["help", "list", "edit", "clear", "quit"]
