"""aenv.repl: interactive evaluate/command session over aenv bindings."""

from aenv.repl.app import ReplApp, load_session, run
from aenv.repl.config import ReplConfig
from aenv.repl.editor import EditorBridge
from aenv.repl.errors import EditDeclinedError, NoSourceError, OutOfBoundsError, ReplError
from aenv.repl.history import History
from aenv.repl.session import Session
from aenv.repl.theme import DEFAULT_THEME, PLAIN_THEME, ReplTheme
from aenv.repl.types import Candidate, CandidateKind, HistoryEntry, Match, Mode, Signature

__all__ = [
    "DEFAULT_THEME",
    "PLAIN_THEME",
    "Candidate",
    "CandidateKind",
    "EditDeclinedError",
    "EditorBridge",
    "History",
    "HistoryEntry",
    "Match",
    "Mode",
    "NoSourceError",
    "OutOfBoundsError",
    "ReplApp",
    "ReplConfig",
    "ReplError",
    "ReplTheme",
    "Session",
    "Signature",
    "load_session",
    "run",
]
