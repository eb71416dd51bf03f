"""Fuzzy ranking of completion candidates.

A query matches when all its characters appear in order in the candidate
(case-insensitive). Lower score is better: consecutive runs and matches at
word starts are rewarded, gaps are penalized.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from aenv.lang import AST
from aenv.repl.candidates import child_candidates, command_candidates
from aenv.repl.types import Candidate, Match, Mode
from aenv.repl.words import parent_path, word_bounds

_WORD_START_RE = re.compile(r"[\s\-_./:]")


@dataclass
class FuzzyMatch:
    matches: bool
    score: float = 0.0
    positions: tuple[int, ...] = ()


def fuzzy_match(query: str, text: str) -> FuzzyMatch:
    query = query.lower()
    lowered = text.lower()

    if not query:
        return FuzzyMatch(matches=True)
    if len(query) > len(lowered):
        return FuzzyMatch(matches=False)

    qi = 0
    score = 0.0
    last = -1
    run = 0
    positions: list[int] = []

    for i, ch in enumerate(lowered):
        if qi >= len(query):
            break
        if ch != query[qi]:
            continue
        if last == i - 1:
            run += 1
            score -= run * 5
        else:
            run = 0
            if last >= 0:
                score += (i - last - 1) * 2
        if i == 0 or _WORD_START_RE.match(lowered[i - 1]):
            score -= 10
        score += i * 0.1
        positions.append(i)
        last = i
        qi += 1

    if qi < len(query):
        return FuzzyMatch(matches=False)
    return FuzzyMatch(matches=True, score=score, positions=tuple(positions))


def fuzzy_find(word: str, candidates: list[Candidate]) -> list[Match]:
    """Matches of *word* against *candidates*, best first; ties keep source order."""
    found: list[Match] = []
    for candidate in candidates:
        m = fuzzy_match(word, candidate.name)
        if m.matches:
            found.append(Match(candidate, m.score, m.positions))
    found.sort(key=lambda match: match.score)
    return found


def sort_by_priority(matches: list[Match]) -> list[Match]:
    """Stable reorder: plain bindings, then parameterized bindings, then builtins."""
    return sorted(matches, key=lambda match: match.candidate.kind.value)


@dataclass
class MatchResult:
    matches: list[Match]
    candidates: list[Candidate]
    word_start: int
    word_end: int


def compute_matches(mode: Mode, ast: AST, text: str, cursor: int) -> MatchResult:
    """Rank completions for the word at *cursor*."""
    word, start, end = word_bounds(text, cursor)

    if mode is Mode.CTRL:
        if not word:
            return MatchResult([], [], start, end)
        candidates = command_candidates()
        return MatchResult(fuzzy_find(word, candidates), candidates, start, end)

    parent = parent_path(text, start)
    candidates = child_candidates(ast, parent)

    if not word:
        # After a dot every child is listed; at top level nothing is, so the
        # hint line stays visible.
        if not parent or not candidates:
            return MatchResult([], [], start, end)
        browse = [Match(c) for c in candidates]
        return MatchResult(sort_by_priority(browse), candidates, start, end)

    if not candidates:
        return MatchResult([], [], start, end)
    return MatchResult(sort_by_priority(fuzzy_find(word, candidates)), candidates, start, end)
