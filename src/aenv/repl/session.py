"""Session - the REPL's message-driven state machine.

:meth:`Session.handle` consumes one message (a key press, a resize or the
outcome of an editor run) and returns the commands the driver must carry
out: print to the transcript, clear the screen, run the editor or quit.
:meth:`Session.view` renders the two live lines below the transcript.
Nothing here touches the terminal, so the whole machine is testable with
plain key presses.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Union

from aenv.lang import AST, LangError, Namespace, Value, format_result
from aenv.repl.calls import detect_function_call
from aenv.repl.candidate_bar import render_candidate_bar
from aenv.repl.config import ReplConfig
from aenv.repl.errors import OutOfBoundsError
from aenv.repl.history import History
from aenv.repl.matching import compute_matches
from aenv.repl.signature import SignatureResolver, render_signature_hint
from aenv.repl.theme import DEFAULT_THEME, ReplTheme
from aenv.repl.types import Candidate, Match, Mode
from aenv.tui.input import LineInput
from aenv.tui.keys import KeyPress
from aenv.tui.utils import truncate_to_width

logger = logging.getLogger(__name__)

EVAL_PROMPT = "➜ "
CTRL_PROMPT = " :"

EVAL_HINT = "Type an expression or press Esc for commands"
CTRL_HINT = "Type: help, list, edit, clear, quit (press Esc to return)"

HELP_TEXT = """
: Commands (press Esc to toggle mode):

  help     Print this cruft
  list     List top-level namespaces
  edit     Edit source in external $EDITOR
  clear    Clear screen
  quit     Exit REPL

Usage:
  Type an expression to evaluate it (namespaces are variables)
  Completions appear automatically as you type
  Press Tab / Shift-Tab to cycle through candidates
  Press Space to accept the current candidate
  Press Esc to toggle between eval and command modes
  Use Up/Down arrows for history navigation (mode switches automatically)
  Use Shift+Up/Shift+Down for history navigation within current mode only
  Use Alt+Up/Alt+Down to switch to command mode and navigate command history
    (restores original mode when reaching end of history)
  Press Ctrl+C on empty line or Ctrl+D to exit
"""

# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KeyMsg:
    press: KeyPress


@dataclass(frozen=True)
class ResizeMsg:
    width: int


@dataclass(frozen=True)
class EditApplied:
    ast: AST


@dataclass(frozen=True)
class EditCancelled:
    pass


@dataclass(frozen=True)
class EditDeclined:
    pass


@dataclass(frozen=True)
class EditFailed:
    error: BaseException


Message = Union[KeyMsg, ResizeMsg, EditApplied, EditCancelled, EditDeclined, EditFailed]

# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Print:
    """Append *text* (plus a newline) to the transcript above the live lines."""

    text: str


@dataclass(frozen=True)
class ClearScreen:
    pass


@dataclass(frozen=True)
class RunEditor:
    """Suspend the session and edit *ast*; the outcome comes back as a message."""

    ast: AST


@dataclass(frozen=True)
class Quit:
    pass


Command = Union[Print, ClearScreen, RunEditor, Quit]

# ---------------------------------------------------------------------------
# Previews
# ---------------------------------------------------------------------------


def value_preview(value: Value) -> str:
    if value.is_block:
        return f"{{ {len(value.entries)} items }}"
    return truncate_to_width(value.source, 40)


def namespace_preview(ns: Namespace) -> str:
    prefix = ""
    if ns.params:
        prefix = "(" + ", ".join(str(p) for p in ns.params) + ") -> "
    return prefix + value_preview(ns.value)


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


@dataclass
class _ModeText:
    text: str = ""
    cursor: int = 0


@dataclass
class _AltNav:
    """Snapshot taken when command-history navigation starts."""

    active: bool = False
    mode: Mode = Mode.EVAL
    text: str = ""
    cursor: int = 0


@dataclass
class _TabCycle:
    active: bool = False
    text: str = ""
    cursor: int = 0
    selected: int = -1


@dataclass
class _Completion:
    matches: list[Match] = field(default_factory=list)
    candidates: list[Candidate] = field(default_factory=list)
    word_start: int = 0
    word_end: int = 0


class Session:
    """Interactive evaluate/command session over a binding tree."""

    def __init__(
        self,
        ast: AST,
        history: History,
        config: ReplConfig | None = None,
        theme: ReplTheme = DEFAULT_THEME,
    ) -> None:
        self.config = config if config is not None else ReplConfig()
        self.ast = ast
        self.history = history
        self.theme = theme
        self.signatures = SignatureResolver(ast)

        self.input = LineInput(char_limit=self.config.char_limit)
        self.mode = Mode.EVAL
        self.width = self.config.default_width
        self.quitting = False
        self.history_idx = len(history)

        self._saved = {Mode.EVAL: _ModeText(), Mode.CTRL: _ModeText()}
        self.tab = _TabCycle()
        self.alt_nav = _AltNav()
        self.completion = _Completion()

    # -- accessors ----------------------------------------------------------

    @property
    def text(self) -> str:
        return self.input.value

    @property
    def cursor(self) -> int:
        return self.input.position

    @property
    def matches(self) -> list[Match]:
        return self.completion.matches

    @property
    def browsing_history(self) -> bool:
        return self.history_idx < len(self.history)

    def _set_line(self, text: str, cursor: int | None = None) -> None:
        self.input.set_value(text)
        self.input.set_cursor(len(text) if cursor is None else cursor)

    # -- dispatch -----------------------------------------------------------

    def handle(self, msg: Message) -> list[Command]:  # noqa: C901
        if isinstance(msg, KeyMsg):
            return self.handle_key(msg.press)

        if isinstance(msg, ResizeMsg):
            self.width = msg.width
            return []

        if isinstance(msg, EditApplied):
            self.ast = msg.ast
            self.signatures.set_ast(msg.ast)
            self._refresh(auto_confirm=False)
            logger.debug("edit complete (namespace_count=%d)", len(msg.ast))
            return [Print(self.theme.result("✔ — AST updated successfully"))]

        if isinstance(msg, EditCancelled):
            return [Print(self.theme.hint("🗴 — edit cancelled."))]

        if isinstance(msg, EditDeclined):
            self.quitting = True
            return [Quit()]

        if isinstance(msg, EditFailed):
            return [Print(self.theme.error(f"🗴 — error: {msg.error}"))]

        return []

    def handle_key(self, press: KeyPress) -> list[Command]:  # noqa: C901
        key = press.key
        logger.debug("keypress (key=%s)", key)

        if key == "ctrl+c":
            if not self.text:
                self.quitting = True
                return [Quit()]
            self.input.reset()
            self.tab.active = False
            self.alt_nav.active = False
            self.history_idx = len(self.history)
            self._refresh(auto_confirm=False)
            return []

        if key == "ctrl+d":
            if not self.text:
                self.quitting = True
                return [Quit()]
            return []

        if key == "enter":
            self.alt_nav.active = False
            if not self.tab.active or not self.matches:
                return self.execute_input()
            self.tab.active = False
            self._refresh(auto_confirm=True)
            return []

        if key == "tab":
            self._cycle(forward=True)
            return []
        if key == "shift+tab":
            self._cycle(forward=False)
            return []

        if key == "up":
            self.history_prev()
            return []
        if key == "down":
            self.history_next()
            return []
        if key == "alt+up":
            self.history_prev_ctrl()
            return []
        if key == "alt+down":
            self.history_next_ctrl()
            return []
        if key == "shift+up":
            self.history_prev_in_mode()
            return []
        if key == "shift+down":
            self.history_next_in_mode()
            return []

        if key == "escape":
            if self.tab.active:
                self.tab.active = False
                self._set_line(self.tab.text, self.tab.cursor)
                self._refresh(auto_confirm=False)
                return []
            self.alt_nav.active = False
            self.toggle_mode()
            return []

        if press.is_text:
            if self.tab.active and press.text == " ":
                self.tab.active = False
            self.history_idx = len(self.history)
            self.input.handle_key(press)
            self._refresh(auto_confirm=True)
            return []

        self.tab.active = False
        self.alt_nav.active = False
        self.history_idx = len(self.history)
        self.input.handle_key(press)
        self._refresh(auto_confirm=False)
        return []

    # -- completion ---------------------------------------------------------

    def _replace_word(self, replacement: str) -> None:
        start, end = self.completion.word_start, self.completion.word_end
        text = self.text
        cursor = start + len(replacement)
        self._set_line(text[:start] + replacement + text[end:], cursor)
        self.completion.word_end = cursor

    def _refresh(self, auto_confirm: bool) -> None:
        result = compute_matches(self.mode, self.ast, self.text, self.cursor)
        self.completion = _Completion(result.matches, result.candidates, result.word_start, result.word_end)

        if not self.tab.active:
            self.tab.selected = -1

        if not auto_confirm or len(self.matches) != 1:
            return

        only = self.matches[0].name
        if self.text[self.completion.word_start : self.completion.word_end] == only:
            self._replace_word(only)
            self.tab.active = False
            self.tab.selected = -1
            self.completion.matches = []

    def _cycle(self, forward: bool) -> None:
        matches = self.matches
        if not matches:
            return

        if len(matches) == 1:
            self._replace_word(matches[0].name)
            self.tab.active = False
            self.tab.selected = -1
            self.completion.matches = []
            return

        if self.tab.active:
            step = 1 if forward else -1
            self.tab.selected = (self.tab.selected + step) % len(matches)
        else:
            self.tab = _TabCycle(
                active=True,
                text=self.text,
                cursor=self.cursor,
                selected=0 if forward else len(matches) - 1,
            )
        self._replace_word(matches[self.tab.selected].name)

    # -- modes --------------------------------------------------------------

    def _save_mode_text(self) -> None:
        self._saved[self.mode] = _ModeText(self.text, self.cursor)

    def switch_to_mode(self, mode: Mode) -> None:
        self._save_mode_text()
        self.mode = mode
        saved = self._saved[mode]
        self._set_line(saved.text, saved.cursor)
        self._refresh(auto_confirm=False)

    def toggle_mode(self) -> None:
        self.switch_to_mode(Mode.CTRL if self.mode is Mode.EVAL else Mode.EVAL)

    # -- history ------------------------------------------------------------

    def _load_entry(self, index: int, switch_mode: bool = False) -> bool:
        entry = self.history.get_entry(index)
        if isinstance(entry, OutOfBoundsError):
            return False
        self.history_idx = index
        if switch_mode and entry.mode is not self.mode:
            self.switch_to_mode(entry.mode)
        self._set_line(entry.line)
        self._refresh(auto_confirm=False)
        return True

    def _stop_browsing(self) -> None:
        self.history_idx = len(self.history)
        self.input.reset()
        self._refresh(auto_confirm=False)

    def _find(self, indices: range, mode: Mode) -> int | None:
        for i in indices:
            entry = self.history.get_entry(i)
            if not isinstance(entry, OutOfBoundsError) and entry.mode is mode:
                return i
        return None

    def history_prev(self) -> None:
        if self.history_idx > 0:
            self._load_entry(self.history_idx - 1, switch_mode=True)

    def history_next(self) -> None:
        if self.history_idx < len(self.history) - 1:
            self._load_entry(self.history_idx + 1, switch_mode=True)
        else:
            self._stop_browsing()

    def history_prev_in_mode(self) -> None:
        found = self._find(range(self.history_idx - 1, -1, -1), self.mode)
        if found is not None:
            self._load_entry(found)

    def history_next_in_mode(self) -> None:
        found = self._find(range(self.history_idx + 1, len(self.history)), self.mode)
        if found is not None:
            self._load_entry(found)
        elif self.browsing_history:
            self._stop_browsing()

    def _begin_alt_nav(self) -> None:
        if self.alt_nav.active:
            return
        self.alt_nav = _AltNav(True, self.mode, self.text, self.cursor)
        if self.mode is not Mode.CTRL:
            self.switch_to_mode(Mode.CTRL)

    def _end_alt_nav(self) -> None:
        if not self.alt_nav.active:
            return
        snapshot = self.alt_nav
        self.alt_nav = _AltNav()
        if snapshot.mode is not self.mode:
            self.switch_to_mode(snapshot.mode)
        self._set_line(snapshot.text, snapshot.cursor)
        self.history_idx = len(self.history)
        self._refresh(auto_confirm=False)

    def history_prev_ctrl(self) -> None:
        self._begin_alt_nav()
        found = self._find(range(self.history_idx - 1, -1, -1), Mode.CTRL)
        if found is not None:
            self._load_entry(found)
        else:
            self._end_alt_nav()

    def history_next_ctrl(self) -> None:
        self._begin_alt_nav()
        found = self._find(range(self.history_idx + 1, len(self.history)), Mode.CTRL)
        if found is not None:
            self._load_entry(found)
        else:
            self._end_alt_nav()

    def _record(self, line: str, mode: Mode) -> list[Command]:
        try:
            self.history.write(line, mode)
        except OSError as exc:
            logger.warning("could not write history: %s", exc)
            return [Print(self.theme.error(f"history: {exc}"))]
        finally:
            self.history_idx = len(self.history)
        return []

    # -- submission ---------------------------------------------------------

    def execute_input(self) -> list[Command]:
        line = self.text.strip()
        if not line:
            return []

        self._saved = {Mode.EVAL: _ModeText(), Mode.CTRL: _ModeText()}
        self.input.reset()
        commands = self._record(line, self.mode)

        if self.mode is Mode.CTRL:
            logger.debug("command (input=%r)", line)
            commands.extend(self.execute_command(line))
        else:
            logger.debug("eval (input=%r)", line)
            commands.extend(self.evaluate(line))

        self._refresh(auto_confirm=False)
        return commands

    def evaluate(self, line: str) -> list[Command]:
        echo = Print(self.theme.prompt(EVAL_PROMPT) + self.theme.input(line))
        try:
            result = self.ast.evaluate_expr(line)
        except LangError as exc:
            logger.debug("eval result (result_type=error, error=%s)", exc)
            return [echo, Print(self.theme.error(f"error: {exc}"))]
        logger.debug("eval result (result_type=%s)", type(result).__name__)
        return [echo, Print(self.theme.result(format_result(result)))]

    def execute_command(self, line: str) -> list[Command]:
        parts = line.split()
        if not parts:
            return []
        name, args = parts[0], parts[1:]
        echo = Print(self.theme.ctrl_prompt(CTRL_PROMPT) + self.theme.input(line))
        logger.debug("exec command (command=%s, args=%s)", name, args)

        if name in ("q", "quit", "exit"):
            self.quitting = True
            return [echo, Quit()]
        if name in ("h", "help"):
            return [echo, Print(HELP_TEXT)]
        if name in ("l", "list"):
            return [echo, Print(self.list_namespaces())]
        if name in ("c", "clear"):
            return [ClearScreen()]
        if name in ("e", "edit"):
            return [echo, RunEditor(self.ast)]
        return [Print(self.theme.error(f"Unknown command: {name} (try 'help')"))]

    def list_namespaces(self) -> str:
        return "".join(f"  {ns.name} {self.theme.hint(namespace_preview(ns))}\n" for ns in self.ast.all())

    # -- view ---------------------------------------------------------------

    @property
    def prompt(self) -> str:
        if self.mode is Mode.EVAL:
            return self.theme.prompt(EVAL_PROMPT)
        return self.theme.ctrl_prompt(CTRL_PROMPT)

    def _bar(self) -> str:
        return render_candidate_bar(self.matches, self.tab.selected, self.tab.active, self.width, self.theme)

    def status_line(self) -> str:
        if self.browsing_history:
            position = self.theme.emphasis(str(self.history_idx + 1))
            return self.theme.hint(f"{position}/{len(self.history)}")

        if not self.text.strip():
            return self.theme.hint(EVAL_HINT if self.mode is Mode.EVAL else CTRL_HINT)

        if self.mode is Mode.EVAL:
            call = detect_function_call(self.text, self.cursor)
            if call.in_call:
                sig = self.signatures.resolve(call.name)
                if sig is not None:
                    return render_signature_hint(sig, call.arg_index, self.theme)

        return self._bar() if self.matches else ""

    def view(self) -> tuple[list[str], int]:
        """The input line and status line, plus the cursor column on line 0."""
        if self.quitting:
            return [], 0
        line, column = self.input.view(self.prompt, self.width)
        return [line, self.status_line()], column
