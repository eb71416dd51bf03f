"""The binding tree and its evaluation entry points."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import IO, Any

from aenv.lang.builtins import builtin_registry
from aenv.lang.env import env_registry
from aenv.lang.errors import EvalError, ValidationError
from aenv.lang.expr import Evaluator, callable_signature, node_path, parse_expression
from aenv.lang.format import FuncRef, format_namespaces
from aenv.lang.model import Namespace
from aenv.lang.parser import parse_reader, parse_string
from aenv.lang.registry import Registry, is_function

logger = logging.getLogger(__name__)


class AST:
    """Top-level bindings plus the two builtin registries they evaluate against.

    An ``AST`` is never mutated after construction; an edit produces a new
    one.
    """

    def __init__(
        self,
        namespaces: Iterable[Namespace] = (),
        *,
        env: Registry | None = None,
        builtins: Registry | None = None,
    ) -> None:
        self.namespaces: list[Namespace] = list(namespaces)
        self._index: dict[str, Namespace] = {}
        for ns in self.namespaces:
            self._index.setdefault(ns.name, ns)
        self.env = env if env is not None else env_registry()
        self.builtins = builtins if builtins is not None else builtin_registry()

    @classmethod
    def parse(cls, source: str, **kwargs: Any) -> AST:
        return cls(parse_string(source), **kwargs)

    @classmethod
    def from_reader(cls, reader: IO[str], **kwargs: Any) -> AST:
        return cls(parse_reader(reader), **kwargs)

    def with_namespaces(self, namespaces: Iterable[Namespace]) -> AST:
        """A new tree sharing this tree's registries."""
        return AST(namespaces, env=self.env, builtins=self.builtins)

    # -- lookup -------------------------------------------------------------

    def get_namespace(self, name: str) -> Namespace | None:
        return self._index.get(name)

    def all(self) -> Iterator[Namespace]:
        return iter(self.namespaces)

    def __iter__(self) -> Iterator[Namespace]:
        return iter(self.namespaces)

    def __len__(self) -> int:
        return len(self.namespaces)

    # -- output -------------------------------------------------------------

    def format(self, indent: int = 2) -> str:
        return format_namespaces(self.namespaces, indent)

    # -- evaluation ---------------------------------------------------------

    def _evaluator(self) -> Evaluator:
        return Evaluator(self.namespaces, self.env, self.builtins)

    def evaluate_expr(self, source: str) -> Any:
        """Evaluate *source* against the bindings.

        A callable result is returned as a :class:`FuncRef`. Raises
        :class:`EvalError` on failure.
        """
        logger.debug("eval expr (source=%r)", source)
        result = self._evaluator().evaluate(source)
        if is_function(result):
            name = node_path(parse_expression(source)) or "func"
            return FuncRef(name, callable_signature(name, result))
        return result

    def evaluate_namespace(self, name: str) -> Any:
        return self._evaluator().evaluate_binding(name)

    def validate_namespaces(self) -> None:
        """Evaluate every non-parameterized binding; raise on the first failure."""
        evaluator = self._evaluator()
        for ns in self.namespaces:
            if ns.params:
                continue
            try:
                evaluator.evaluate_binding(ns.name)
            except EvalError as exc:
                raise ValidationError(ns.name, exc) from exc
        logger.debug("namespaces validated (count=%d)", len(self.namespaces))
