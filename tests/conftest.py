"""Shared fixtures: a small binding tree with deterministic registries."""

from __future__ import annotations

import pytest

from aenv.lang import AST, Registry
from aenv.lang.builtins import builtin_registry
from aenv.lang.env import cwd, mung_prefix, mung_prefix_if, path_abs, path_cat, path_rel

SOURCE = """
greeting : "hello";
add x y : x + y;
concat ...parts : parts[0];
config : {
  log-pretty : true;
  level : "info";
  format f : f;
  server : { port : 8080 }
};
nested : { multiply a b : a * b }
"""


def small_env() -> Registry:
    return Registry(
        {
            "target": {"OS": "linux", "Arch": "x86_64"},
            "cwd": cwd,
            "path": {"abs": path_abs, "cat": path_cat, "rel": path_rel},
            "mung": {"prefix": mung_prefix, "prefixif": mung_prefix_if},
        }
    )


def make_ast(source: str = SOURCE) -> AST:
    return AST.parse(source, env=small_env(), builtins=builtin_registry())


@pytest.fixture
def ast() -> AST:
    return make_ast()
