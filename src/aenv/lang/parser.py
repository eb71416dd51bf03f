"""Recursive-descent parser for binding source text.

Grammar::

    Manifest  -> Namespace (';'? Namespace)* EOF
    Namespace -> Ident Param* ':' Value
    Param     -> Ident | '...' Ident        (a variadic param is last)
    Value     -> Block | Expression
    Block     -> '{' (Namespace (';' Namespace)* ';'?)? '}'

An expression is captured as raw, balanced text up to an unbalanced closer
or a top-level ``;``. Comments (``#``, ``//``, ``/* */``) are skipped
everywhere and stripped from captured expressions.
"""

from __future__ import annotations

import logging
import unicodedata
from typing import IO

from aenv.lang.errors import ParseError
from aenv.lang.model import Kind, Namespace, Param, Value

logger = logging.getLogger(__name__)

_QUOTES = "\"'`"
_OPENERS = "([{"
_CLOSERS = ")]}"
_IDENT_SEPARATORS = "-+.@/"

_START_CATEGORIES = frozenset({"Lu", "Ll", "Lt", "Lm", "Lo", "Nl"})
_CONTINUE_CATEGORIES = _START_CATEGORIES | {"Mn", "Mc", "Nd", "Pc"}


def is_identifier_start(ch: str) -> bool:
    return ch == "_" or (bool(ch) and unicodedata.category(ch) in _START_CATEGORIES)


def is_identifier_continue(ch: str) -> bool:
    return bool(ch) and unicodedata.category(ch) in _CONTINUE_CATEGORIES


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_string(source: str) -> list[Namespace]:
    """Parse *source* into top-level bindings. Raises :class:`ParseError`."""
    namespaces = _Parser(source).parse_manifest()
    logger.debug("parse complete (namespace_count=%d)", len(namespaces))
    return namespaces


def parse_reader(reader: IO[str]) -> list[Namespace]:
    return parse_string(reader.read())


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class _Parser:
    def __init__(self, source: str) -> None:
        self.text = source
        self.pos = 0
        self.line = 1
        self.col = 1

    # -- grammar ------------------------------------------------------------

    def parse_manifest(self) -> list[Namespace]:
        namespaces: list[Namespace] = []
        while True:
            self.skip_space()
            if self.eof():
                break
            namespaces.append(self.parse_namespace())
            self.skip_space()
            if self.peek() == ";":
                self.advance()
        return namespaces

    def parse_namespace(self) -> Namespace:
        name = self.parse_identifier()
        params = self.parse_params()
        self.skip_space()
        if not self.expect(":"):
            raise self.error(f"missing ':' after {name!r}", expected=":")
        self.skip_space()
        return Namespace(name=name, params=params, value=self.parse_value())

    def parse_params(self) -> list[Param]:
        params: list[Param] = []
        while True:
            self.skip_space()
            if self.eof() or self.peek() == ":":
                break
            variadic = False
            if self.text.startswith("...", self.pos):
                variadic = True
                for _ in range(3):
                    self.advance()
                self.skip_space()
            if not is_identifier_start(self.peek()):
                if variadic:
                    raise self.error("variadic marker without a name", expected="identifier")
                break
            params.append(Param(self.parse_identifier(), variadic))
            if variadic:
                break
        return params

    def parse_value(self) -> Value:
        if self.peek() == "{" and self.is_block():
            return self.parse_block()
        source = self.capture_expression()
        if not source:
            raise self.error("empty expression", expected="value")
        return Value.expr(source)

    def is_block(self) -> bool:
        """Whether the ``{`` at the cursor opens a block rather than a map literal."""
        saved = (self.pos, self.line, self.col)
        try:
            self.advance()
            self.skip_space()
            if self.peek() == "}":
                return True
            if not is_identifier_start(self.peek()):
                return False
            for ch in self.text[self.pos :]:
                if ch == ":":
                    return True
                if ch in "{};":
                    return False
            return False
        finally:
            self.pos, self.line, self.col = saved

    def parse_block(self) -> Value:
        self.advance()  # '{'
        entries: list[Namespace] = []
        while True:
            self.skip_space()
            if self.eof():
                raise self.error("unterminated block", expected="}")
            if self.peek() == "}":
                self.advance()
                break
            entries.append(self.parse_namespace())
            self.skip_space()
            if self.peek() == ";":
                self.advance()
        return Value(kind=Kind.BLOCK, entries=entries)

    def capture_expression(self) -> str:
        start = self.pos
        depth = 0
        while not self.eof():
            ch = self.peek()
            if ch in _QUOTES:
                self.skip_string(ch)
                continue
            if self.text.startswith("//", self.pos) or ch == "#":
                self.skip_line_comment()
                continue
            if self.text.startswith("/*", self.pos):
                self.skip_block_comment()
                continue
            if ch in _OPENERS:
                depth += 1
            elif ch in _CLOSERS:
                if depth == 0:
                    break
                depth -= 1
            elif ch == ";" and depth == 0:
                break
            self.advance()
        return strip_comments(self.text[start : self.pos])

    def parse_identifier(self) -> str:
        start = self.pos
        if not is_identifier_start(self.peek()):
            raise self.error("expected identifier", expected="identifier")
        self.advance()
        while is_identifier_continue(self.peek()):
            self.advance()
        while self.peek() and self.peek() in _IDENT_SEPARATORS and is_identifier_continue(self.peek_at(1)):
            self.advance()
            while is_identifier_continue(self.peek()):
                self.advance()
        return self.text[start : self.pos]

    # -- lexical helpers ----------------------------------------------------

    def eof(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def peek_at(self, offset: int) -> str:
        i = self.pos + offset
        return self.text[i] if i < len(self.text) else ""

    def advance(self) -> None:
        if self.eof():
            return
        if self.text[self.pos] == "\n":
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        self.pos += 1

    def expect(self, ch: str) -> bool:
        if self.peek() == ch:
            self.advance()
            return True
        return False

    def skip_space(self) -> None:
        while not self.eof():
            ch = self.peek()
            if ch.isspace():
                self.advance()
            elif ch == "#" or self.text.startswith("//", self.pos):
                self.skip_line_comment()
            elif self.text.startswith("/*", self.pos):
                self.skip_block_comment()
            else:
                break

    def skip_line_comment(self) -> None:
        while not self.eof() and self.peek() != "\n":
            self.advance()
        self.advance()

    def skip_block_comment(self) -> None:
        self.advance()
        self.advance()
        while not self.eof():
            if self.text.startswith("*/", self.pos):
                self.advance()
                self.advance()
                return
            self.advance()

    def skip_string(self, quote: str) -> None:
        line, col = self.line, self.col
        self.advance()
        while not self.eof():
            ch = self.peek()
            if ch == "\\" and quote != "`":
                self.advance()
                self.advance()
                continue
            self.advance()
            if ch == quote:
                return
        raise ParseError("unterminated string", line, col, expected=quote)

    def error(self, message: str, expected: str | None = None) -> ParseError:
        return ParseError(message, self.line, self.col, expected)


def strip_comments(source: str) -> str:
    """Remove comments outside string literals and trim whitespace."""
    out: list[str] = []
    i = 0
    quote = ""
    while i < len(source):
        ch = source[i]
        if quote:
            out.append(ch)
            if ch == "\\" and quote != "`" and i + 1 < len(source):
                out.append(source[i + 1])
                i += 2
                continue
            if ch == quote:
                quote = ""
            i += 1
            continue
        if ch in _QUOTES:
            quote = ch
            out.append(ch)
            i += 1
        elif ch == "#" or source.startswith("//", i):
            end = source.find("\n", i)
            i = len(source) if end < 0 else end
        elif source.startswith("/*", i):
            end = source.find("*/", i + 2)
            i = len(source) if end < 0 else end + 2
        else:
            out.append(ch)
            i += 1
    return "".join(out).strip()
