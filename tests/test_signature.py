"""Tests for aenv.repl.signature -- call signature resolution and rendering."""

from __future__ import annotations

import dataclasses
import threading

import pytest

from aenv.lang import AST, Registry
from aenv.lang.env import env_registry
from aenv.repl.signature import (
    SignatureCache,
    SignatureResolver,
    generic_param_name,
    plain_param_name,
    render_signature_hint,
    semantic_param_name,
)
from aenv.repl.theme import PLAIN_THEME
from aenv.repl.types import Signature

from .conftest import make_ast

MARKED = dataclasses.replace(
    PLAIN_THEME,
    current_param=lambda s: f"*{s}*",
    signature_name=lambda s: f"_{s}_",
)


@pytest.fixture
def resolver() -> SignatureResolver:
    source = """greeting : "hello";
add x y : x + y;
concat ...parts : parts[0];
nested : {
  multiply a b : a * b
}"""
    return SignatureResolver(AST.parse(source, env=env_registry({})))


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


class TestResolve:
    @pytest.mark.parametrize(
        ("name", "display", "params"),
        [
            ("greeting", "greeting()", ()),
            ("add", "add(x, y)", ("x", "y")),
            ("concat", "concat(...parts)", ("...parts",)),
            ("nested.multiply", "nested.multiply(a, b)", ("a", "b")),
            ("file.exists", "file.exists(string)", ("string",)),
            ("path.cat", "path.cat(...string)", ("...string",)),
            ("path.rel", "path.rel(string, string)", ("string", "string")),
            ("mung.prefix", "mung.prefix(string, ...string)", ("string", "...string")),
            ("mung.prefixif", "mung.prefixif(string, func, ...string)", ("string", "func", "...string")),
            ("cwd", "cwd()", ()),
            ("len", "len(v)", ("v",)),
            ("join", "join(array, separator)", ("array", "separator")),
            ("split", "split(string, separator)", ("string", "separator")),
            ("upper", "upper(string)", ("string",)),
            ("filter", "filter(array, predicate)", ("array", "predicate")),
            ("map", "map(array, func)", ("array", "func")),
            ("max", "max(...v)", ("...v",)),
            ("repeat", "repeat(string, int)", ("string", "int")),
        ],
    )
    def test_table(self, resolver: SignatureResolver, name: str, display: str, params: tuple) -> None:
        sig = resolver.resolve(name)
        assert sig is not None
        assert sig.display == display
        assert sig.params == params

    def test_unknown_name(self, resolver: SignatureResolver) -> None:
        assert resolver.resolve("doesnotexist") is None
        assert resolver.resolve("nested.nope") is None
        assert resolver.resolve("") is None

    def test_non_callable_registry_entry(self, resolver: SignatureResolver) -> None:
        assert resolver.resolve("path") is None

    def test_binding_shadows_builtin(self) -> None:
        resolver = SignatureResolver(make_ast("len s : s"))
        assert resolver.resolve("len") == Signature("len", ("s",))

    def test_expression_leaf_in_dotted_path(self) -> None:
        resolver = SignatureResolver(make_ast("a : 1"))
        assert resolver.resolve("a.b") is None

    def test_set_ast_sees_new_bindings(self, resolver: SignatureResolver) -> None:
        new = resolver.ast.with_namespaces(make_ast("fresh k : k").namespaces)
        expr_cache = resolver.expr_cache
        resolver.set_ast(new)
        assert resolver.resolve("fresh") == Signature("fresh", ("k",))
        assert resolver.resolve("add") is None
        assert resolver.expr_cache is expr_cache

    def test_set_ast_rebuilds_for_new_registries(self, resolver: SignatureResolver) -> None:
        resolver.set_ast(make_ast())
        assert not resolver.env_cache.built
        assert resolver.resolve("path.cat") is not None


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


def _two(a: str, b: int) -> str:
    return a * b


class TestSignatureCache:
    def test_built_lazily(self) -> None:
        cache = SignatureCache(Registry({"two": _two}), plain_param_name)
        assert not cache.built
        assert cache.get("two") == Signature("two", ("string", "int"))
        assert cache.built

    def test_nested_entries(self) -> None:
        cache = SignatureCache(Registry({"a": {"b": {"two": _two}}}), plain_param_name)
        assert cache.get("a.b.two") == Signature("a.b.two", ("string", "int"))

    def test_miss_falls_back_to_lookup(self) -> None:
        table = {"two": _two}
        registry = Registry(table)
        cache = SignatureCache(registry, plain_param_name)
        cache.get("two")
        registry._entries["late"] = _two
        assert cache.get("late") == Signature("late", ("string", "int"))

    def test_uninspectable_callable_uses_generic_name(self) -> None:
        cache = SignatureCache(Registry({"len": len, "other": print}), semantic_param_name)
        sig = cache.get("len")
        assert sig is not None
        assert sig.params in (("v",), ("obj",), ("any",))

    def test_concurrent_first_use_builds_once(self) -> None:
        cache = SignatureCache(Registry({"two": _two}), plain_param_name)
        results: list[Signature | None] = []

        def worker() -> None:
            results.append(cache.get("two"))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert results == [Signature("two", ("string", "int"))] * 8


class TestParamNames:
    def test_generic_names(self) -> None:
        assert generic_param_name("len") == "v"
        assert generic_param_name("string") == "v"
        assert generic_param_name("whatever") == "arg"


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


class TestRenderSignatureHint:
    def test_no_params(self) -> None:
        assert render_signature_hint(Signature("greeting"), 0, MARKED) == "_greeting_()"

    def test_first_param_highlighted(self) -> None:
        assert render_signature_hint(Signature("add", ("x", "y")), 0, MARKED) == "_add_(*x*, y)"

    def test_second_param_highlighted(self) -> None:
        assert render_signature_hint(Signature("add", ("x", "y")), 1, MARKED) == "_add_(x, *y*)"

    def test_index_past_end_highlights_nothing(self) -> None:
        assert render_signature_hint(Signature("add", ("x", "y")), 2, MARKED) == "_add_(x, y)"

    def test_variadic_stays_highlighted(self) -> None:
        sig = Signature("mung.prefix", ("string", "...string"))
        assert render_signature_hint(sig, 1, MARKED) == "_mung.prefix_(string, *...string*)"
        assert render_signature_hint(sig, 4, MARKED) == "_mung.prefix_(string, *...string*)"

    def test_plain_theme_is_display_string(self) -> None:
        sig = Signature("concat", ("...parts",))
        assert render_signature_hint(sig, 0, PLAIN_THEME) == sig.display
