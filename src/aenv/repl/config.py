"""Configuration for the REPL session."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

HISTORY_FILE = "history.utf8"
DEFAULT_EDITOR = "vi"


def default_cache_dir(environ: Mapping[str, str] | None = None) -> str:
    env = os.environ if environ is None else environ
    base = env.get("XDG_CACHE_HOME") or str(Path.home() / ".cache")
    return str(Path(base) / "aenv")


@dataclass
class ReplConfig:
    """Session configuration."""

    cache_dir: str = field(default_factory=default_cache_dir)
    history_file: str = HISTORY_FILE
    editor: str = DEFAULT_EDITOR
    default_width: int = 80
    char_limit: int = 1024
    format_indent: int = 2

    @property
    def history_path(self) -> str:
        return str(Path(self.cache_dir) / self.history_file)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides) -> ReplConfig:
        env = os.environ if environ is None else environ
        config = cls(
            cache_dir=default_cache_dir(env),
            editor=env.get("EDITOR") or DEFAULT_EDITOR,
        )
        for key, value in overrides.items():
            if value is not None:
                setattr(config, key, value)
        return config
