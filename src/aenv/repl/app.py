"""Asyncio driver connecting a :class:`Session` to a terminal.

The driver owns the two live lines at the bottom of the screen. Transcript
output is written above them and the live lines are redrawn after every
message. Editor runs suspend the terminal and execute in a worker thread;
their outcome is fed back to the session as a message.
"""

from __future__ import annotations

import asyncio
import logging
import subprocess
from typing import IO, Callable, Protocol

from aenv.lang import AST
from aenv.repl.config import ReplConfig
from aenv.repl.editor import EditorBridge
from aenv.repl.errors import EditDeclinedError, NoSourceError
from aenv.repl.history import History
from aenv.repl.session import (
    ClearScreen,
    Command,
    EditApplied,
    EditCancelled,
    EditDeclined,
    EditFailed,
    KeyMsg,
    Message,
    Print,
    Quit,
    ResizeMsg,
    RunEditor,
    Session,
)
from aenv.tui.keys import KeyPress
from aenv.tui.terminal import ProcessTerminal, Terminal

logger = logging.getLogger(__name__)


class Editor(Protocol):
    def run(self) -> AST | None: ...


EditorFactory = Callable[[AST], Editor]


class ReplApp:
    """Runs one session until it quits."""

    def __init__(
        self,
        session: Session,
        terminal: Terminal,
        editor_factory: EditorFactory | None = None,
    ) -> None:
        self.session = session
        self.terminal = terminal
        self.editor_factory = editor_factory or self._default_editor
        self._done: asyncio.Future[None] | None = None
        self._edit_task: asyncio.Task[None] | None = None
        self._live = False

    def _default_editor(self, ast: AST) -> Editor:
        config = self.session.config
        return EditorBridge(ast, config.editor, indent=config.format_indent)

    # -- lifecycle ----------------------------------------------------------

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        self._done = loop.create_future()
        self._start_terminal()
        try:
            await self._done
        finally:
            if self._live:
                self._clear_live()
                self.terminal.show_cursor()
                self.terminal.stop()
                self._live = False

    def _start_terminal(self) -> None:
        self.terminal.start(self._on_input, self._on_resize)
        self._live = True
        self.session.handle(ResizeMsg(self.terminal.columns))
        self.render()

    def _finish(self) -> None:
        if self._done is not None and not self._done.done():
            self._done.set_result(None)

    # -- input --------------------------------------------------------------

    def _on_input(self, press: KeyPress) -> None:
        self.dispatch(KeyMsg(press))

    def _on_resize(self) -> None:
        self.dispatch(ResizeMsg(self.terminal.columns))

    def dispatch(self, msg: Message) -> None:
        self.execute(self.session.handle(msg))

    # -- commands -----------------------------------------------------------

    def execute(self, commands: list[Command]) -> None:
        for command in commands:
            if isinstance(command, Print):
                self._print(command.text)
            elif isinstance(command, ClearScreen):
                self.terminal.clear_screen()
            elif isinstance(command, RunEditor):
                self._edit_task = asyncio.get_running_loop().create_task(self._edit(command.ast))
                self._edit_task.add_done_callback(self._edit_done)
                return
            elif isinstance(command, Quit):
                self._clear_live()
                self._finish()
                return
        self.render()

    async def _edit(self, ast: AST) -> None:
        self._clear_live()
        self.terminal.show_cursor()
        self.terminal.stop()
        self._live = False
        try:
            msg = await asyncio.to_thread(self._run_editor, ast)
        finally:
            self._start_terminal()
        self.dispatch(msg)

    def _run_editor(self, ast: AST) -> Message:
        try:
            result = self.editor_factory(ast).run()
        except EditDeclinedError:
            return EditDeclined()
        except (OSError, subprocess.SubprocessError, ValueError) as exc:
            logger.warning("editor failed: %s", exc)
            return EditFailed(exc)
        if result is None:
            return EditCancelled()
        return EditApplied(result)

    def _edit_done(self, task: asyncio.Task[None]) -> None:
        self._edit_task = None
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        logger.error("edit aborted: %r", exc)
        if self._live:
            self.dispatch(EditFailed(exc))
        elif self._done is not None and not self._done.done():
            self._done.set_exception(exc)

    # -- output -------------------------------------------------------------

    def _clear_live(self) -> None:
        self.terminal.write("\r")
        self.terminal.clear_from_cursor()

    def _print(self, text: str) -> None:
        self._clear_live()
        self.terminal.write(text + "\n")

    def render(self) -> None:
        lines, column = self.session.view()
        self.terminal.hide_cursor()
        self._clear_live()
        if lines:
            self.terminal.write("\n".join(lines))
            self.terminal.move_by(-(len(lines) - 1))
            self.terminal.move_to_column(column)
        self.terminal.show_cursor()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def load_session(reader: IO[str] | None, config: ReplConfig) -> Session:
    """Parse and validate the source, then load history.

    Raises :class:`NoSourceError` without a reader, and the language
    engine's errors when the source does not parse or validate.
    """
    logger.debug("repl start (cache_dir=%s, has_source=%s)", config.cache_dir, reader is not None)
    if reader is None:
        raise NoSourceError()

    ast = AST.from_reader(reader)
    logger.debug("ast loaded (namespace_count=%d)", len(ast))
    ast.validate_namespaces()

    history = History(config.history_path)
    try:
        history.load()
    except (OSError, UnicodeDecodeError) as exc:
        print(f"Warning: could not load history: {exc}")
        logger.warning("could not load history (path=%s): %s", config.history_path, exc)
    logger.debug("history loaded (entry_count=%d)", len(history))

    return Session(ast, history, config)


async def run(
    reader: IO[str] | None,
    config: ReplConfig | None = None,
    terminal: Terminal | None = None,
) -> None:
    config = config if config is not None else ReplConfig.from_env()
    session = load_session(reader, config)
    app = ReplApp(session, terminal if terminal is not None else ProcessTerminal())
    await app.run()
