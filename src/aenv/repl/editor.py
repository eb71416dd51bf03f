"""Edit the live bindings in an external editor, re-prompting on parse errors."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import sys
import tempfile
from typing import IO, Any, Callable

from aenv.lang import AST, ParseError, parse_string
from aenv.repl.config import DEFAULT_EDITOR
from aenv.repl.errors import EditDeclinedError

logger = logging.getLogger(__name__)

Runner = Callable[..., Any]


class EditorBridge:
    """One edit session over a private temp file.

    :meth:`run` returns the newly parsed tree, or ``None`` when the user
    saved an empty file. It raises :class:`EditDeclinedError` when the user
    refuses to fix a parse error, ``OSError`` when the editor cannot be
    launched, ``subprocess.CalledProcessError`` when it exits non-zero and
    ``UnicodeDecodeError`` when the saved file is not UTF-8.
    """

    def __init__(
        self,
        ast: AST,
        editor: str = DEFAULT_EDITOR,
        *,
        stdin: IO[str] | None = None,
        stdout: IO[str] | None = None,
        stderr: IO[str] | None = None,
        runner: Runner = subprocess.run,
        indent: int = 2,
    ) -> None:
        self.ast = ast
        self.editor = editor or DEFAULT_EDITOR
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        self.stderr = stderr if stderr is not None else sys.stderr
        self.runner = runner
        self.indent = indent

    def run(self) -> AST | None:
        content = self.ast.format(self.indent)
        fd, path = tempfile.mkstemp(prefix="aenv-repl-", suffix=".aenv")
        os.close(fd)
        try:
            os.chmod(path, 0o600)
            while True:
                with open(path, "w", encoding="utf-8") as f:
                    f.write(content)

                self._launch(path)

                with open(path, encoding="utf-8") as f:
                    data = f.read()
                if not data.strip():
                    logger.debug("edit cancelled (empty file)")
                    return None

                try:
                    namespaces = parse_string(data)
                except ParseError as exc:
                    logger.debug("editor parse attempt (content_length=%d, success=False)", len(data))
                    if not self._confirm_retry(exc):
                        raise EditDeclinedError() from exc
                    with open(path, encoding="utf-8") as f:
                        content = f.read()
                    continue

                logger.debug("editor parse attempt (content_length=%d, success=True)", len(data))
                return self.ast.with_namespaces(namespaces)
        finally:
            try:
                os.remove(path)
            except FileNotFoundError:
                pass

    def _launch(self, path: str) -> None:
        argv = [*shlex.split(self.editor), path]
        logger.debug("launching editor (argv=%s)", argv)
        self.runner(argv, stdin=self.stdin, stdout=self.stdout, stderr=self.stderr, check=True)

    def _confirm_retry(self, exc: ParseError) -> bool:
        self.stderr.write(f"\nParse error: {exc}\n")
        self.stderr.flush()
        self.stdout.write("Re-edit? [Y/n] ")
        self.stdout.flush()
        answer = self.stdin.readline()
        if not answer:
            return False
        return answer.strip().lower() not in ("n", "no")
