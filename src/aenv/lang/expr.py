"""Expression tokenizer, Pratt parser and evaluator.

The syntax follows expr-lang: literals (numbers, strings, ``true``,
``false``, ``nil``, arrays and maps), identifiers (which may contain
hyphens), member access, indexing, slicing, calls, unary ``-``/``!``/``not``,
the usual binary operators, ``..`` ranges, ``??`` and the ``?:`` ternary.
Inside arguments passed to a builtin's predicate or function parameter,
``#`` names the current element.

Names resolve innermost first: call parameters, the enclosing block's
bindings, top-level bindings, the environment registry, then the expression
builtins.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from aenv.lang.errors import EvalError
from aenv.lang.model import Namespace, Value
from aenv.lang.registry import ParamKind, Registry, is_function, param_kinds

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------

_OPERATORS = sorted(
    [
        "..", "?.", "??", "==", "!=", "<=", ">=", "&&", "||", "**",
        "+", "-", "*", "/", "%", "<", ">", "!", "?", ":", ".", ",",
        "(", ")", "[", "]", "{", "}", "#",
    ],
    key=len,
    reverse=True,
)
_WORD_OPERATORS = frozenset({"and", "or", "not", "in"})
_CONSTANTS = {"true": True, "false": False, "nil": None}
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0", "\\": "\\", '"': '"', "'": "'", "`": "`"}


@dataclass(frozen=True)
class Token:
    kind: str  # "number", "string", "name", "op", "eof"
    value: Any
    pos: int


def _is_name_start(ch: str) -> bool:
    return ch.isalpha() or ch in "_$"


def _is_name_char(ch: str) -> bool:
    return ch.isalnum() or ch in "_$"


def tokenize(source: str) -> list[Token]:
    tokens: list[Token] = []
    i = 0
    n = len(source)
    while i < n:
        ch = source[i]
        if ch.isspace():
            i += 1
            continue
        start = i
        if ch.isdigit():
            i = _scan_number(source, i)
            tokens.append(Token("number", _number_value(source[start:i], start), start))
            continue
        if ch in "\"'`":
            value, i = _scan_string(source, i)
            tokens.append(Token("string", value, start))
            continue
        if _is_name_start(ch):
            i += 1
            while i < n:
                if _is_name_char(source[i]):
                    i += 1
                elif source[i] == "-" and i + 1 < n and (source[i + 1].isalpha() or source[i + 1] == "_"):
                    i += 2
                else:
                    break
            word = source[start:i]
            kind = "op" if word in _WORD_OPERATORS else "name"
            tokens.append(Token(kind, word, start))
            continue
        for op in _OPERATORS:
            if source.startswith(op, i):
                tokens.append(Token("op", op, start))
                i += len(op)
                break
        else:
            raise EvalError(f"unexpected character {ch!r} at {i}", source=source)
    tokens.append(Token("eof", None, n))
    return tokens


def _scan_number(source: str, i: int) -> int:
    n = len(source)
    if source.startswith(("0x", "0X", "0o", "0O", "0b", "0B"), i):
        i += 2
        while i < n and (source[i].isalnum() or source[i] == "_"):
            i += 1
        return i
    while i < n and (source[i].isdigit() or source[i] == "_"):
        i += 1
    # A '.' only belongs to the number when a digit follows ("1..3" is a range).
    if i + 1 < n and source[i] == "." and source[i + 1].isdigit():
        i += 1
        while i < n and (source[i].isdigit() or source[i] == "_"):
            i += 1
    if i < n and source[i] in "eE":
        j = i + 1
        if j < n and source[j] in "+-":
            j += 1
        if j < n and source[j].isdigit():
            i = j
            while i < n and source[i].isdigit():
                i += 1
    return i


def _number_value(text: str, pos: int) -> int | float:
    clean = text.replace("_", "")
    try:
        if clean[:2].lower() in ("0x", "0o", "0b"):
            return int(clean, 0)
        if any(c in clean for c in ".eE"):
            return float(clean)
        return int(clean)
    except ValueError:
        raise EvalError(f"invalid number {text!r} at {pos}") from None


def _scan_string(source: str, i: int) -> tuple[str, int]:
    quote = source[i]
    i += 1
    out: list[str] = []
    while i < len(source):
        ch = source[i]
        if ch == quote:
            return "".join(out), i + 1
        if ch == "\\" and quote != "`" and i + 1 < len(source):
            esc = source[i + 1]
            if esc == "u" and i + 6 <= len(source):
                try:
                    out.append(chr(int(source[i + 2 : i + 6], 16)))
                except ValueError:
                    raise EvalError(f"invalid escape at {i}", source=source) from None
                i += 6
                continue
            out.append(_ESCAPES.get(esc, esc))
            i += 2
            continue
        out.append(ch)
        i += 1
    raise EvalError("unterminated string literal", source=source)


# ---------------------------------------------------------------------------
# Syntax tree
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class Name:
    name: str


@dataclass(frozen=True)
class Pointer:
    pass


@dataclass(frozen=True)
class Member:
    target: Any
    name: str
    optional: bool = False


@dataclass(frozen=True)
class Index:
    target: Any
    index: Any


@dataclass(frozen=True)
class Slice:
    target: Any
    lower: Any
    upper: Any


@dataclass(frozen=True)
class Call:
    callee: Any
    args: tuple


@dataclass(frozen=True)
class Unary:
    op: str
    operand: Any


@dataclass(frozen=True)
class Binary:
    op: str
    left: Any
    right: Any


@dataclass(frozen=True)
class Conditional:
    test: Any
    then: Any
    otherwise: Any


@dataclass(frozen=True)
class ArrayLit:
    items: tuple


@dataclass(frozen=True)
class MapLit:
    pairs: tuple


_BINARY_PRECEDENCE = {
    "or": 10,
    "||": 10,
    "and": 15,
    "&&": 15,
    "==": 20,
    "!=": 20,
    "<": 20,
    ">": 20,
    "<=": 20,
    ">=": 20,
    "in": 20,
    "..": 25,
    "+": 30,
    "-": 30,
    "*": 60,
    "/": 60,
    "%": 60,
    "**": 100,
    "??": 500,
}
_RIGHT_ASSOC = frozenset({"**"})
_TERNARY_PRECEDENCE = 5


class _ExprParser:
    def __init__(self, source: str) -> None:
        self.source = source
        self.tokens = tokenize(source)
        self.i = 0

    def parse(self) -> Any:
        if self.peek().kind == "eof":
            raise EvalError("empty expression", source=self.source)
        node = self.expression(0)
        tok = self.peek()
        if tok.kind != "eof":
            raise EvalError(f"unexpected token {tok.value!r} at {tok.pos}", source=self.source)
        return node

    def peek(self) -> Token:
        return self.tokens[self.i]

    def next(self) -> Token:
        tok = self.tokens[self.i]
        self.i += 1
        return tok

    def accept(self, op: str) -> bool:
        tok = self.peek()
        if tok.kind == "op" and tok.value == op:
            self.i += 1
            return True
        return False

    def expect(self, op: str) -> None:
        if not self.accept(op):
            tok = self.peek()
            found = "end of input" if tok.kind == "eof" else repr(tok.value)
            raise EvalError(f"expected {op!r}, found {found} at {tok.pos}", source=self.source)

    def expression(self, min_prec: int) -> Any:
        left = self.unary()
        while True:
            tok = self.peek()
            if tok.kind != "op":
                break
            if tok.value == "?" and min_prec <= _TERNARY_PRECEDENCE:
                self.next()
                then = self.expression(0)
                self.expect(":")
                otherwise = self.expression(_TERNARY_PRECEDENCE)
                left = Conditional(left, then, otherwise)
                continue
            prec = _BINARY_PRECEDENCE.get(tok.value)
            if prec is None or prec < min_prec:
                break
            self.next()
            op = {"and": "&&", "or": "||"}.get(tok.value, tok.value)
            right = self.expression(prec if op in _RIGHT_ASSOC else prec + 1)
            left = Binary(op, left, right)
        return left

    def unary(self) -> Any:
        tok = self.peek()
        if tok.kind == "op" and tok.value in ("!", "not"):
            self.next()
            return Unary("!", self.expression(50))
        if tok.kind == "op" and tok.value in ("-", "+"):
            self.next()
            return Unary(tok.value, self.expression(90))
        return self.postfix(self.primary())

    def primary(self) -> Any:
        tok = self.next()
        if tok.kind in ("number", "string"):
            return Literal(tok.value)
        if tok.kind == "name":
            if tok.value in _CONSTANTS:
                return Literal(_CONSTANTS[tok.value])
            return Name(tok.value)
        if tok.kind == "op":
            if tok.value == "(":
                node = self.expression(0)
                self.expect(")")
                return node
            if tok.value == "#":
                return Pointer()
            if tok.value == "[":
                return ArrayLit(tuple(self.sequence("]")))
            if tok.value == "{":
                return self.map_literal()
        found = "end of input" if tok.kind == "eof" else repr(tok.value)
        raise EvalError(f"unexpected {found} at {tok.pos}", source=self.source)

    def sequence(self, closer: str) -> list[Any]:
        items: list[Any] = []
        while not self.accept(closer):
            items.append(self.expression(0))
            if not self.accept(","):
                self.expect(closer)
                break
        return items

    def map_literal(self) -> MapLit:
        pairs: list[tuple[Any, Any]] = []
        while not self.accept("}"):
            tok = self.next()
            if tok.kind in ("name", "string", "number"):
                key: Any = Literal(tok.value)
            elif tok.kind == "op" and tok.value == "(":
                key = self.expression(0)
                self.expect(")")
            else:
                raise EvalError(f"invalid map key at {tok.pos}", source=self.source)
            self.expect(":")
            pairs.append((key, self.expression(0)))
            if not self.accept(","):
                self.expect("}")
                break
        return MapLit(tuple(pairs))

    def postfix(self, node: Any) -> Any:
        while True:
            tok = self.peek()
            if tok.kind == "op" and tok.value in (".", "?."):
                self.next()
                field = self.next()
                if field.kind not in ("name", "op") or not _is_name_start(field.value[:1]):
                    raise EvalError(f"expected field name at {field.pos}", source=self.source)
                node = Member(node, field.value, tok.value == "?.")
            elif self.accept("["):
                node = self.subscript(node)
            elif self.accept("("):
                node = Call(node, tuple(self.sequence(")")))
            else:
                return node

    def subscript(self, target: Any) -> Any:
        lower = upper = None
        if self.accept(":"):
            if not self.accept("]"):
                upper = self.expression(0)
                self.expect("]")
            return Slice(target, lower, upper)
        index = self.expression(0)
        if self.accept(":"):
            if not self.accept("]"):
                upper = self.expression(0)
                self.expect("]")
            return Slice(target, index, upper)
        self.expect("]")
        return Index(target, index)


@functools.lru_cache(maxsize=256)
def parse_expression(source: str) -> Any:
    """Parse *source* into an expression tree. Raises :class:`EvalError`."""
    try:
        return _ExprParser(source).parse()
    except RecursionError:
        raise EvalError("expression nested too deeply", source=source) from None


def node_path(node: Any) -> str:
    """Dotted name of a ``Name``/``Member`` chain, or ``""``."""
    if isinstance(node, Name):
        return node.name
    if isinstance(node, Member):
        head = node_path(node.target)
        return f"{head}.{node.name}" if head else ""
    return ""


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------


def type_name(value: Any) -> str:
    if value is None:
        return "nil"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "map"
    if callable(value):
        return "func"
    return type(value).__name__


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def callable_signature(name: str, fn: Callable[..., Any]) -> str:
    """Display signature for any callable result."""
    if isinstance(fn, Closure):
        return fn.namespace.signature
    params = param_kinds(fn) or []
    names = [f"...{p.name}" if p.variadic else p.name for p in params]
    return f"{name}({', '.join(names)})"


class Closure:
    """A parameterized binding captured with its defining scope."""

    def __init__(self, evaluator: Evaluator, namespace: Namespace, scope: tuple) -> None:
        self.evaluator = evaluator
        self.namespace = namespace
        self.scope = scope

    def __repr__(self) -> str:
        return f"Closure({self.namespace.signature})"

    def __call__(self, *args: Any) -> Any:
        ns = self.namespace
        params = ns.params
        variadic = bool(params) and params[-1].variadic
        required = len(params) - 1 if variadic else len(params)
        if (variadic and len(args) < required) or (not variadic and len(args) != required):
            expected = f"at least {required}" if variadic else str(required)
            raise EvalError(
                f"{ns.name}: expected {expected} arguments, got {len(args)}",
                signature=ns.signature,
            )
        bound: dict[str, Any] = {}
        for i, param in enumerate(params):
            bound[param.name] = list(args[i:]) if param.variadic else args[i]
        logger.debug("call binding %s (arg_count=%d)", ns.name, len(args))
        return self.evaluator.eval_value(ns.value, (*self.scope, _Params(bound)))


class _Lambda:
    """An unevaluated argument bound to ``#`` on each call."""

    def __init__(self, evaluator: Evaluator, node: Any, scope: tuple) -> None:
        self.evaluator = evaluator
        self.node = node
        self.scope = scope

    def __call__(self, item: Any) -> Any:
        result = self.evaluator.eval_node(self.node, (*self.scope, _Params({"#": item})))
        if is_function(result):
            return result(item)
        return result


# ---------------------------------------------------------------------------
# Scopes
# ---------------------------------------------------------------------------

_MISSING = object()


class _Params:
    def __init__(self, values: dict[str, Any]) -> None:
        self.values = values

    def lookup(self, name: str) -> Any:
        return self.values.get(name, _MISSING)


class _Bindings:
    """Lazily evaluated, memoized bindings of one block (or the top level)."""

    def __init__(self, evaluator: Evaluator, entries: Sequence[Namespace], parent: tuple) -> None:
        self.evaluator = evaluator
        self.entries: dict[str, Namespace] = {}
        for ns in entries:
            self.entries.setdefault(ns.name, ns)
        self.scope = (*parent, self)
        self.cache: dict[str, Any] = {}

    def lookup(self, name: str) -> Any:
        if name in self.cache:
            return self.cache[name]
        ns = self.entries.get(name)
        if ns is None:
            return _MISSING
        value = self.evaluator.eval_namespace(ns, self.scope)
        self.cache[name] = value
        return value


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------

_ERRORS = (TypeError, ValueError, AttributeError, ArithmeticError, LookupError, OSError)


class Evaluator:
    """Evaluates expressions against a binding tree and two registries."""

    def __init__(self, namespaces: Sequence[Namespace], env: Registry, builtins: Registry) -> None:
        self.env = env
        self.builtins = builtins
        self.top = _Bindings(self, namespaces, ())
        self._active: set[int] = set()

    # -- entry points -------------------------------------------------------

    def evaluate(self, source: str) -> Any:
        node = parse_expression(source)
        try:
            return self.eval_node(node, self.top.scope)
        except RecursionError:
            raise EvalError("maximum evaluation depth exceeded", source=source) from None
        except _ERRORS as exc:
            raise EvalError(str(exc), source=source) from exc

    def evaluate_binding(self, name: str) -> Any:
        try:
            value = self.top.lookup(name)
        except RecursionError:
            raise EvalError(f"maximum evaluation depth exceeded in {name!r}") from None
        except _ERRORS as exc:
            raise EvalError(str(exc)) from exc
        if value is _MISSING:
            raise EvalError(f"unknown name {name!r}")
        return value

    # -- bindings -----------------------------------------------------------

    def eval_namespace(self, ns: Namespace, scope: tuple) -> Any:
        if ns.params:
            return Closure(self, ns, scope)
        key = id(ns)
        if key in self._active:
            raise EvalError(f"cycle detected evaluating {ns.name!r}")
        self._active.add(key)
        try:
            return self.eval_value(ns.value, scope)
        finally:
            self._active.discard(key)

    def eval_value(self, value: Value, scope: tuple) -> Any:
        if value.is_block:
            frame = _Bindings(self, value.entries, scope)
            return {ns.name: frame.lookup(ns.name) for ns in value.entries}
        return self.eval_node(parse_expression(value.source), scope)

    def resolve(self, name: str, scope: tuple) -> Any:
        for frame in reversed(scope):
            value = frame.lookup(name)
            if value is not _MISSING:
                return value
        if name in self.env:
            return self.env.lookup(name)
        if name in self.builtins:
            return self.builtins.lookup(name)
        if "-" in name:
            # "a-b" is subtraction when both sides resolve on their own.
            parts = name.split("-")
            try:
                values = [self.resolve(part, scope) for part in parts]
            except EvalError:
                pass
            else:
                result = values[0]
                for v in values[1:]:
                    result = _binary("-", result, v)
                return result
        raise EvalError(f"unknown name {name!r}")

    # -- nodes --------------------------------------------------------------

    def eval_node(self, node: Any, scope: tuple) -> Any:  # noqa: C901
        if isinstance(node, Literal):
            return node.value
        if isinstance(node, Name):
            return self.resolve(node.name, scope)
        if isinstance(node, Pointer):
            return self.resolve("#", scope)
        if isinstance(node, Member):
            target = self.eval_node(node.target, scope)
            if target is None and node.optional:
                return None
            if isinstance(target, Mapping):
                return target.get(node.name)
            raise EvalError(f"cannot fetch {node.name!r} from {type_name(target)}")
        if isinstance(node, Index):
            return _index(self.eval_node(node.target, scope), self.eval_node(node.index, scope))
        if isinstance(node, Slice):
            target = self.eval_node(node.target, scope)
            lower = None if node.lower is None else self.eval_node(node.lower, scope)
            upper = None if node.upper is None else self.eval_node(node.upper, scope)
            if not isinstance(target, (str, list, tuple)):
                raise EvalError(f"cannot slice {type_name(target)}")
            return target[lower:upper]
        if isinstance(node, Call):
            return self._call(node, scope)
        if isinstance(node, Unary):
            return _unary(node.op, self.eval_node(node.operand, scope))
        if isinstance(node, Binary):
            return self._binary(node, scope)
        if isinstance(node, Conditional):
            branch = node.then if _truthy(self.eval_node(node.test, scope)) else node.otherwise
            return self.eval_node(branch, scope)
        if isinstance(node, ArrayLit):
            return [self.eval_node(item, scope) for item in node.items]
        if isinstance(node, MapLit):
            return {self.eval_node(k, scope): self.eval_node(v, scope) for k, v in node.pairs}
        raise EvalError(f"unsupported node {type(node).__name__}")

    def _binary(self, node: Binary, scope: tuple) -> Any:
        op = node.op
        left = self.eval_node(node.left, scope)
        if op == "&&":
            return _truthy(left) and _truthy(self.eval_node(node.right, scope))
        if op == "||":
            return _truthy(left) or _truthy(self.eval_node(node.right, scope))
        if op == "??":
            return left if left is not None else self.eval_node(node.right, scope)
        return _binary(op, left, self.eval_node(node.right, scope))

    def _call(self, node: Call, scope: tuple) -> Any:
        fn = self.eval_node(node.callee, scope)
        name = node_path(node.callee) or type_name(fn)
        if not callable(fn):
            raise EvalError(f"cannot call {name} ({type_name(fn)})")
        if isinstance(fn, Closure):
            args = [self.eval_node(a, scope) for a in node.args]
            return fn(*args)

        params = param_kinds(fn) or []
        args = []
        for i, arg in enumerate(node.args):
            info = params[i] if i < len(params) else (params[-1] if params and params[-1].variadic else None)
            if info is not None and info.kind in (ParamKind.PREDICATE, ParamKind.FUNC):
                args.append(_Lambda(self, arg, scope))
            else:
                args.append(self.eval_node(arg, scope))
        try:
            return fn(*args)
        except EvalError:
            raise
        except _ERRORS as exc:
            raise EvalError(f"{name}: {exc}", signature=callable_signature(name, fn)) from exc


def _truthy(value: Any) -> bool:
    return bool(value)


def _unary(op: str, value: Any) -> Any:
    if op == "!":
        return not _truthy(value)
    if not _is_number(value):
        raise EvalError(f"invalid operation: {op}{type_name(value)}")
    return -value if op == "-" else value


def _index(target: Any, index: Any) -> Any:
    if isinstance(target, Mapping):
        return target.get(index)
    if isinstance(target, (list, tuple, str)):
        if not isinstance(index, int) or isinstance(index, bool):
            raise EvalError(f"invalid index type {type_name(index)}")
        try:
            return target[index]
        except IndexError:
            raise EvalError(f"index out of range: {index} (array of length {len(target)})") from None
    raise EvalError(f"cannot index {type_name(target)}")


def _binary(op: str, left: Any, right: Any) -> Any:  # noqa: C901
    if op in ("==", "!="):
        if _is_number(left) and _is_number(right):
            equal = left == right
        else:
            equal = type_name(left) == type_name(right) and left == right
        return equal if op == "==" else not equal
    if op == "in":
        if isinstance(right, Mapping) or isinstance(right, (list, tuple)):
            return left in right
        if isinstance(right, str) and isinstance(left, str):
            return left in right
        raise EvalError(f"invalid operation: {type_name(left)} in {type_name(right)}")
    if op == "..":
        if not (isinstance(left, int) and isinstance(right, int)) or isinstance(left, bool) or isinstance(right, bool):
            raise EvalError(f"invalid operation: {type_name(left)}..{type_name(right)}")
        return list(range(left, right + 1))

    both_numbers = _is_number(left) and _is_number(right)
    if op == "+":
        if both_numbers:
            return left + right
        if isinstance(left, str) and isinstance(right, str):
            return left + right
        if isinstance(left, list) and isinstance(right, list):
            return left + right
    elif op in ("<", ">", "<=", ">="):
        if both_numbers or (isinstance(left, str) and isinstance(right, str)):
            if op == "<":
                return left < right
            if op == ">":
                return left > right
            if op == "<=":
                return left <= right
            return left >= right
    elif both_numbers:
        try:
            if op == "-":
                return left - right
            if op == "*":
                return left * right
            if op == "/":
                return left / right
            if op == "%":
                if isinstance(left, int) and isinstance(right, int):
                    return left % right
            if op == "**":
                return float(left**right)
        except ZeroDivisionError:
            raise EvalError("division by zero") from None
        except OverflowError as exc:
            raise EvalError(str(exc)) from None
    raise EvalError(f"invalid operation: {type_name(left)} {op} {type_name(right)}")
