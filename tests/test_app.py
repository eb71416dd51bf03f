"""Tests for aenv.repl.app -- the asyncio driver over a virtual terminal."""

from __future__ import annotations

import asyncio
import io
import os
import subprocess
import tempfile
from collections.abc import Callable, Iterator
from typing import Any

import pytest

from aenv.lang import AST, LangError
from aenv.repl.app import ReplApp, load_session, run
from aenv.repl.config import ReplConfig
from aenv.repl.editor import EditorBridge
from aenv.repl.errors import EditDeclinedError, NoSourceError
from aenv.repl.history import History
from aenv.repl.session import Session
from aenv.repl.types import Mode
from aenv.tui.utils import strip_ansi

from .conftest import SOURCE, make_ast
from .virtual_terminal import VirtualTerminal

ESC = "\x1b"
CTRL_D = "\x04"


@pytest.fixture
def config() -> Iterator[ReplConfig]:
    with tempfile.TemporaryDirectory() as d:
        yield ReplConfig(cache_dir=d)


class ScriptedEditor:
    """Editor stand-in: returns the tree built by *outcome*, or raises it."""

    def __init__(self, terminal: VirtualTerminal, outcome: Callable[[AST], AST | None]) -> None:
        self.terminal = terminal
        self.outcome = outcome
        self.terminal_started_during_edit: list[bool] = []

    def __call__(self, ast: AST) -> ScriptedEditor:
        self._ast = ast
        return self

    def run(self) -> AST | None:
        self.terminal_started_during_edit.append(self.terminal.started)
        return self.outcome(self._ast)


def _save_bytes(data: bytes) -> Callable[..., subprocess.CompletedProcess]:
    """Editor runner that saves *data* verbatim."""

    def runner(argv: list[str], **kwargs: Any) -> subprocess.CompletedProcess:
        with open(argv[-1], "wb") as f:
            f.write(data)
        return subprocess.CompletedProcess(argv, 0)

    return runner


async def _until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.01)


def _app(config: ReplConfig, terminal: VirtualTerminal, editor: ScriptedEditor | None = None) -> ReplApp:
    session = Session(make_ast(), History(config.history_path), config)
    return ReplApp(session, terminal, editor)


async def _start(app: ReplApp) -> asyncio.Task:
    task = asyncio.create_task(app.run())
    await _until(lambda: app.terminal.started)
    return task


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_ctrl_d_quits_and_restores_terminal(self, config: ReplConfig) -> None:
        terminal = VirtualTerminal()
        app = _app(config, terminal)
        task = await _start(app)
        terminal.simulate_input(CTRL_D)
        await asyncio.wait_for(task, 2)
        assert not terminal.started
        assert terminal.cursor_visible

    @pytest.mark.asyncio
    async def test_initial_render_shows_prompt_and_hint(self, config: ReplConfig) -> None:
        terminal = VirtualTerminal()
        app = _app(config, terminal)
        task = await _start(app)
        out = strip_ansi(terminal.output)
        assert "➜ " in out
        assert "Type an expression or press Esc for commands" in out
        terminal.simulate_input(CTRL_D)
        await asyncio.wait_for(task, 2)

    @pytest.mark.asyncio
    async def test_resize_reaches_session(self, config: ReplConfig) -> None:
        terminal = VirtualTerminal(columns=100)
        app = _app(config, terminal)
        task = await _start(app)
        assert app.session.width == 100
        terminal.simulate_resize(40)
        assert app.session.width == 40
        terminal.simulate_input(CTRL_D)
        await asyncio.wait_for(task, 2)


# ---------------------------------------------------------------------------
# Transcript
# ---------------------------------------------------------------------------


class TestTranscript:
    @pytest.mark.asyncio
    async def test_evaluation_is_printed(self, config: ReplConfig) -> None:
        terminal = VirtualTerminal()
        app = _app(config, terminal)
        task = await _start(app)
        terminal.simulate_input("1 + 2\r")
        out = strip_ansi(terminal.output)
        assert "➜ 1 + 2\n" in out
        assert "3\n" in out
        terminal.simulate_input(CTRL_D)
        await asyncio.wait_for(task, 2)
        assert app.session.history.get_line(0) == "1 + 2"

    @pytest.mark.asyncio
    async def test_quit_command(self, config: ReplConfig) -> None:
        terminal = VirtualTerminal()
        app = _app(config, terminal)
        task = await _start(app)
        terminal.simulate_input(ESC)
        terminal.simulate_input("quit\r")
        await asyncio.wait_for(task, 2)
        assert app.session.history.get_entry(0).mode is Mode.CTRL

    @pytest.mark.asyncio
    async def test_clear_command_clears_screen(self, config: ReplConfig) -> None:
        terminal = VirtualTerminal()
        app = _app(config, terminal)
        task = await _start(app)
        terminal.simulate_input(ESC)
        terminal.simulate_input("clear\r")
        assert "\x1b[2J\x1b[H" in terminal.output
        terminal.simulate_input(CTRL_D)
        await asyncio.wait_for(task, 2)


# ---------------------------------------------------------------------------
# Editor runs
# ---------------------------------------------------------------------------


async def _edit(app: ReplApp, terminal: VirtualTerminal) -> None:
    terminal.simulate_input(ESC)
    terminal.simulate_input("edit\r")
    await _until(lambda: terminal.start_count == 2)


class TestEditor:
    @pytest.mark.asyncio
    async def test_applied_edit_swaps_tree(self, config: ReplConfig) -> None:
        terminal = VirtualTerminal()
        replacement = make_ast("only : 42")
        editor = ScriptedEditor(terminal, lambda ast: ast.with_namespaces(replacement.namespaces))
        app = _app(config, terminal, editor)
        task = await _start(app)
        await _edit(app, terminal)
        await _until(lambda: "AST updated successfully" in terminal.output)
        assert editor.terminal_started_during_edit == [False]
        assert [ns.name for ns in app.session.ast] == ["only"]
        terminal.simulate_input(CTRL_D)
        await asyncio.wait_for(task, 2)

    @pytest.mark.asyncio
    async def test_cancelled_edit_keeps_tree(self, config: ReplConfig) -> None:
        terminal = VirtualTerminal()
        app = _app(config, terminal, ScriptedEditor(terminal, lambda ast: None))
        original = app.session.ast
        task = await _start(app)
        await _edit(app, terminal)
        await _until(lambda: "edit cancelled." in terminal.output)
        assert app.session.ast is original
        terminal.simulate_input(CTRL_D)
        await asyncio.wait_for(task, 2)

    @pytest.mark.asyncio
    async def test_declined_edit_quits(self, config: ReplConfig) -> None:
        def decline(ast: AST) -> AST | None:
            raise EditDeclinedError()

        terminal = VirtualTerminal()
        app = _app(config, terminal, ScriptedEditor(terminal, decline))
        task = await _start(app)
        terminal.simulate_input(ESC)
        terminal.simulate_input("edit\r")
        await asyncio.wait_for(task, 2)
        assert app.session.quitting
        assert not terminal.started

    @pytest.mark.asyncio
    async def test_failed_edit_reports_and_continues(self, config: ReplConfig) -> None:
        def fail(ast: AST) -> AST | None:
            raise FileNotFoundError("no such editor")

        terminal = VirtualTerminal()
        app = _app(config, terminal, ScriptedEditor(terminal, fail))
        task = await _start(app)
        await _edit(app, terminal)
        await _until(lambda: "error: no such editor" in strip_ansi(terminal.output))
        assert terminal.started
        terminal.simulate_input(CTRL_D)
        await asyncio.wait_for(task, 2)

    @pytest.mark.asyncio
    async def test_undecodable_save_reports_and_continues(self, config: ReplConfig) -> None:
        def undecodable(ast: AST) -> AST | None:
            return EditorBridge(ast, runner=_save_bytes(b'name : "caf\xe9"'), stdin=io.StringIO()).run()

        terminal = VirtualTerminal()
        app = _app(config, terminal, ScriptedEditor(terminal, undecodable))
        original = app.session.ast
        task = await _start(app)
        await _edit(app, terminal)
        await _until(lambda: "codec can't decode" in strip_ansi(terminal.output))
        assert "error:" in strip_ansi(terminal.output)
        assert app.session.ast is original
        assert terminal.started
        terminal.simulate_input(CTRL_D)
        await asyncio.wait_for(task, 2)

    @pytest.mark.asyncio
    async def test_unexpected_editor_error_is_reported(self, config: ReplConfig) -> None:
        def crash(ast: AST) -> AST | None:
            raise RuntimeError("editor bridge crashed")

        terminal = VirtualTerminal()
        app = _app(config, terminal, ScriptedEditor(terminal, crash))
        task = await _start(app)
        await _edit(app, terminal)
        await _until(lambda: "error: editor bridge crashed" in strip_ansi(terminal.output))
        assert terminal.started
        terminal.simulate_input(CTRL_D)
        await asyncio.wait_for(task, 2)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class TestLoadSession:
    def test_requires_source(self, config: ReplConfig) -> None:
        with pytest.raises(NoSourceError):
            load_session(None, config)

    def test_parses_and_loads_history(self, config: ReplConfig) -> None:
        History(config.history_path).write("greeting")
        session = load_session(io.StringIO(SOURCE), config)
        assert session.ast.get_namespace("greeting") is not None
        assert len(session.history) == 1
        assert session.history_idx == 1

    def test_invalid_binding_raises(self, config: ReplConfig) -> None:
        with pytest.raises(LangError):
            load_session(io.StringIO("a : nosuch + 1"), config)

    def test_parse_error_raises(self, config: ReplConfig) -> None:
        with pytest.raises(LangError):
            load_session(io.StringIO("a : "), config)

    def test_unreadable_history_warns(self, config: ReplConfig, capsys: pytest.CaptureFixture[str]) -> None:
        with open(config.history_path, "wb") as f:
            f.write(b"E:\xff\xfe\n")
        session = load_session(io.StringIO(SOURCE), config)
        assert "Warning: could not load history:" in capsys.readouterr().out
        assert len(session.history) == 0

    @pytest.mark.asyncio
    async def test_run_until_quit(self, config: ReplConfig) -> None:
        terminal = VirtualTerminal()
        task = asyncio.create_task(run(io.StringIO("a : 1"), config, terminal))
        await _until(lambda: terminal.started)
        terminal.simulate_input("a\r")
        terminal.simulate_input(CTRL_D)
        await asyncio.wait_for(task, 2)
        assert os.path.exists(config.history_path)
