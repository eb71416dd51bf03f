"""aenv.tui: terminal primitives for the interactive session."""

from aenv.tui.input import LineInput
from aenv.tui.keys import KeyPress, parse_key, split_input
from aenv.tui.style import Style, plain
from aenv.tui.terminal import ProcessTerminal, Terminal
from aenv.tui.utils import truncate_to_width, visible_width

__all__ = [
    "KeyPress",
    "LineInput",
    "ProcessTerminal",
    "Style",
    "Terminal",
    "parse_key",
    "plain",
    "split_input",
    "truncate_to_width",
    "visible_width",
]
