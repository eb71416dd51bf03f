"""Width-budgeted, horizontally scrolling candidate bar.

The bar always shows the selected candidate, even when it alone is wider
than the terminal. ``← `` and `` →`` mark candidates hidden to the left and
right.
"""

from __future__ import annotations

from dataclasses import dataclass

from aenv.repl.theme import ReplTheme
from aenv.repl.types import Match
from aenv.tui.utils import visible_width

SEPARATOR = "  "
LEFT_ARROW = "← "
RIGHT_ARROW = " →"


@dataclass
class _Entry:
    rendered: str
    width: int


def render_candidate(match: Match, selected: bool, theme: ReplTheme) -> str:
    """Render *match* with its matched characters highlighted."""
    base = theme.selected if selected else theme.suggestion
    highlight = theme.selected_match if selected else theme.match
    positions = set(match.positions)
    parts = [(highlight if i in positions else base)(ch) for i, ch in enumerate(match.name)]
    if match.candidate.function:
        parts.append(base("()"))
    return "".join(parts)


def window_start(entries: list[_Entry], selected: int, left_width: int, right_width: int, width: int) -> int:
    """Smallest start <= *selected* such that ``[start..selected]`` fits."""
    sep = len(SEPARATOR)
    for start in range(selected):
        left = left_width if start > 0 else 0
        budget = width - left - right_width
        needed = sum(e.width for e in entries[start : selected + 1]) + sep * (selected - start)
        if needed <= budget:
            return start
    return selected


def window_end(entries: list[_Entry], start: int, right_width: int, budget: int) -> int:
    """Last index reachable from *start* within *budget*, never before *start*."""
    sep = len(SEPARATOR)
    used = 0
    end = start - 1
    for i in range(start, len(entries)):
        extra = entries[i].width + (sep if i > start else 0)
        reserve = right_width if i < len(entries) - 1 else 0
        if used + extra + reserve > budget:
            break
        used += extra
        end = i
    return max(end, start)


def render_candidate_bar(
    matches: list[Match],
    selected: int,
    tab_active: bool,
    width: int,
    theme: ReplTheme,
) -> str:
    if not matches or width <= 0:
        return ""

    left_arrow = theme.hint(LEFT_ARROW)
    right_arrow = theme.hint(RIGHT_ARROW)
    left_width = visible_width(left_arrow)
    right_width = visible_width(right_arrow)

    entries = []
    for i, match in enumerate(matches):
        rendered = render_candidate(match, tab_active and i == selected, theme)
        entries.append(_Entry(rendered, visible_width(rendered)))

    start = 0
    if tab_active and selected > 0:
        start = window_start(entries, selected, left_width, right_width, width)

    need_left = start > 0
    budget = width - left_width if need_left else width
    end = window_end(entries, start, right_width, budget)
    need_right = end < len(entries) - 1

    out = []
    if need_left:
        out.append(left_arrow)
    out.append(SEPARATOR.join(e.rendered for e in entries[start : end + 1]))
    if need_right:
        out.append(right_arrow)
    return "".join(out)
