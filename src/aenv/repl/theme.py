"""Styling for the REPL prompt, transcript, candidate bar and signature hints."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from aenv.tui.style import Style, plain

StyleFn = Callable[[str], str]


@dataclass(frozen=True)
class ReplTheme:
    prompt: StyleFn
    ctrl_prompt: StyleFn
    input: StyleFn
    result: StyleFn
    error: StyleFn
    hint: StyleFn
    emphasis: StyleFn
    suggestion: StyleFn
    selected: StyleFn
    match: StyleFn
    selected_match: StyleFn
    signature: StyleFn
    signature_name: StyleFn
    current_param: StyleFn


DEFAULT_THEME = ReplTheme(
    prompt=Style(fg=6, bold=True),
    ctrl_prompt=Style(fg=5, bold=True),
    input=Style(fg=15),
    result=Style(fg=2),
    error=Style(fg=1),
    hint=Style(fg=8),
    emphasis=Style(bold=True),
    suggestion=Style(fg=4),
    selected=Style(fg=0, bg=4),
    match=Style(fg=4, bold=True),
    selected_match=Style(fg=0, bg=4, bold=True),
    signature=Style(fg=8),
    signature_name=Style(fg=6, bold=True),
    current_param=Style(fg=11, bold=True),
)

PLAIN_THEME = ReplTheme(**{name: plain for name in ReplTheme.__dataclass_fields__})
