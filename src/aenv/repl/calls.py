"""Detect whether the cursor sits inside a call's argument list."""

from __future__ import annotations

from aenv.repl.types import FunctionCall


def _is_callee_char(ch: str) -> bool:
    return ch in "._-" or ("a" <= ch <= "z") or ("A" <= ch <= "Z") or ("0" <= ch <= "9")


def detect_function_call(text: str, cursor: int) -> FunctionCall:
    """Find the innermost unclosed ``name(`` before *cursor*.

    The argument index counts commas at nesting depth 0 between the opening
    parenthesis and the cursor.
    """
    cursor = max(0, min(cursor, len(text)))

    depth = 0
    open_paren = -1
    for i in range(cursor - 1, -1, -1):
        ch = text[i]
        if ch == ")":
            depth += 1
        elif ch == "(":
            if depth == 0:
                open_paren = i
                break
            depth -= 1
    if open_paren < 0:
        return FunctionCall()

    start = open_paren
    while start > 0 and _is_callee_char(text[start - 1]):
        start -= 1
    name = text[start:open_paren].strip()
    if not name:
        return FunctionCall()

    arg_index = 0
    depth = 0
    for ch in text[open_paren + 1 : cursor]:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch == "," and depth == 0:
            arg_index += 1

    return FunctionCall(name=name, arg_index=arg_index, in_call=True)
