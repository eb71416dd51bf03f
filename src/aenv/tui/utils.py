"""Terminal text utilities: ANSI handling and width measurement.

Candidate bars, prompts and the input line are laid out against a hard column
budget, so every width here is a *visible* width: escape sequences count for
nothing and wide graphemes count for two.
"""

from __future__ import annotations

import re
import unicodedata
from functools import lru_cache

import grapheme
import wcwidth as _wcwidth

# CSI sequences: ESC[ <params> <final byte>, plus OSC 8 hyperlinks.
_STRIP_RE = re.compile(
    r"\x1b\[[0-9;?]*[A-Za-z]"   # CSI
    r"|\x1b\]8;;[^\x07]*\x07"   # OSC 8
)

# ---------------------------------------------------------------------------
# Graphemes
# ---------------------------------------------------------------------------


def graphemes(text: str) -> list[str]:
    """Split *text* into user-perceived characters."""
    return list(grapheme.graphemes(text))


def grapheme_width(g: str) -> int:
    """Return the terminal display width of a single grapheme cluster.

    Control characters and combining marks are zero width, emoji sequences
    are two columns, and everything else is delegated to wcwidth.
    """
    if not g:
        return 0

    if len(g) == 1:
        cp = ord(g)
        if cp < 0x20 or (0x7F <= cp <= 0x9F):
            return 0
        return max(_wcwidth.wcwidth(g), 0)

    for ch in g:
        cp = ord(ch)
        # VS16, ZWJ, skin tone modifiers, regional indicators
        if cp in (0xFE0F, 0x200D) or 0x1F3FB <= cp <= 0x1F3FF or 0x1F1E6 <= cp <= 0x1F1FF:
            return 2

    first_cp = ord(g[0])
    if first_cp >= 0x1F000 or 0x2600 <= first_cp <= 0x27BF:
        return 2

    cat = unicodedata.category(g[0])
    if cat.startswith("M") or cat == "Cf":
        return 0

    return max(_wcwidth.wcwidth(g[0]), 0)


# ---------------------------------------------------------------------------
# Measuring
# ---------------------------------------------------------------------------


def strip_ansi(text: str) -> str:
    return _STRIP_RE.sub("", text)


@lru_cache(maxsize=512)
def _cluster_columns(text: str) -> int:
    return sum(grapheme_width(g) for g in grapheme.graphemes(text))


def visible_width(text: str) -> int:
    """Columns *text* occupies once printed.

    Escape sequences are free and a tab is laid out as three spaces.
    Printable ASCII is measured by length; anything else goes through
    grapheme clustering, memoised per distinct string.
    """
    plain_text = strip_ansi(text).replace("\t", "   ")
    if plain_text.isascii() and plain_text.isprintable():
        return len(plain_text)
    return _cluster_columns(plain_text)



# ---------------------------------------------------------------------------
# truncate_to_width
# ---------------------------------------------------------------------------


def truncate_to_width(text: str, max_width: int, ellipsis: str = "...") -> str:
    """Truncate plain *text* to fit within *max_width* visible columns.

    The ellipsis counts towards the width. ANSI sequences are not expected in
    *text*; style after truncating.
    """
    if max_width <= 0:
        return ""

    if visible_width(text) <= max_width:
        return text

    target = max_width - visible_width(ellipsis)
    if target <= 0:
        return ellipsis[:max_width]

    out: list[str] = []
    cols = 0
    for g in grapheme.graphemes(text):
        w = grapheme_width(g)
        if cols + w > target:
            break
        out.append(g)
        cols += w

    return "".join(out) + ellipsis
