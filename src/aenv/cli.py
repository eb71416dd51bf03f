"""CLI entry point for the aenv REPL."""

from __future__ import annotations

import argparse
import asyncio
import io
import logging
import os
import sys
from pathlib import Path
from typing import IO

from aenv.lang import LangError
from aenv.repl import ReplConfig, ReplError
from aenv.repl import run as run_repl

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="aenv-repl",
        description="Browse, complete and evaluate aenv bindings interactively",
    )
    parser.add_argument("source", nargs="?", help="Source file to load ('-' reads stdin)")
    parser.add_argument("--cache-dir", help="Directory for history and logs (default: $XDG_CACHE_HOME/aenv)")
    parser.add_argument("--log-level", default="warning", choices=["debug", "info", "warning", "error"])
    parser.add_argument("--log-file", help="Log file path (default: <cache-dir>/repl.log)")
    return parser.parse_args(argv)


def open_source(source: str | None) -> IO[str] | None:
    """Return a reader for *source*, or ``None`` when there is nothing to read.

    Piped stdin is read eagerly so the terminal can be reattached for input.
    """
    if source is None and sys.stdin.isatty():
        return None
    if source is None or source == "-":
        text = sys.stdin.read()
        try:
            sys.stdin = open("/dev/tty", encoding="utf-8")  # noqa: SIM115
        except OSError as exc:
            logger.warning("no terminal to reattach after reading stdin: %s", exc)
        return io.StringIO(text)
    return open(source, encoding="utf-8")  # noqa: SIM115


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    config = ReplConfig.from_env(cache_dir=args.cache_dir)
    Path(config.cache_dir).mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        filename=args.log_file or os.path.join(config.cache_dir, "repl.log"),
    )

    try:
        reader = open_source(args.source)
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    try:
        asyncio.run(run_repl(reader, config))
    except (ReplError, LangError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(130)
    finally:
        if reader is not None:
            reader.close()


if __name__ == "__main__":
    main()
