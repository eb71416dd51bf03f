"""Tests for aenv.tui.keys -- key naming and stdin splitting."""

from __future__ import annotations

import pytest

from aenv.tui.keys import (
    BRACKETED_PASTE_END,
    BRACKETED_PASTE_START,
    LEGACY_KEY_SEQUENCES,
    KeyPress,
    parse,
    parse_key,
    split_input,
)

# ---------------------------------------------------------------------------
# parse_key
# ---------------------------------------------------------------------------


class TestParseKey:
    @pytest.mark.parametrize(("data", "key"), sorted(LEGACY_KEY_SEQUENCES.items()))
    def test_legacy_sequences(self, data: str, key: str) -> None:
        assert parse_key(data) == key

    @pytest.mark.parametrize(
        ("data", "key"),
        [
            ("\x1b[1;2A", "shift+up"),
            ("\x1b[1;2B", "shift+down"),
            ("\x1b[1;3A", "alt+up"),
            ("\x1b[1;3B", "alt+down"),
            ("\x1b[1;5C", "ctrl+right"),
            ("\x1b[1;5D", "ctrl+left"),
            ("\x1b[3;5~", "ctrl+delete"),
        ],
    )
    def test_modified_sequences(self, data: str, key: str) -> None:
        assert parse_key(data) == key

    @pytest.mark.parametrize(
        ("data", "key"),
        [
            ("\x1b", "escape"),
            ("\r", "enter"),
            ("\n", "enter"),
            ("\t", "tab"),
            (" ", "space"),
            ("\x7f", "backspace"),
            ("\x08", "backspace"),
            ("\x01", "ctrl+a"),
            ("\x03", "ctrl+c"),
            ("\x04", "ctrl+d"),
            ("\x17", "ctrl+w"),
        ],
    )
    def test_single_byte_keys(self, data: str, key: str) -> None:
        assert parse_key(data) == key

    @pytest.mark.parametrize(
        ("data", "key"),
        [
            ("\x1bb", "alt+b"),
            ("\x1bF", "alt+f"),
            ("\x1b\x7f", "alt+backspace"),
            ("\x1b\r", "alt+enter"),
        ],
    )
    def test_meta_keys(self, data: str, key: str) -> None:
        assert parse_key(data) == key

    @pytest.mark.parametrize(
        ("data", "key"),
        [
            ("\x1b\x1b[A", "alt+up"),
            ("\x1b\x1b[B", "alt+down"),
            ("\x1b\x1bOA", "alt+up"),
            ("\x1b\x1b[3~", "alt+delete"),
            ("\x1b\x1b[1;3A", "alt+up"),
        ],
    )
    def test_escape_prefixed_sequences(self, data: str, key: str) -> None:
        assert parse_key(data) == key

    def test_printable(self) -> None:
        assert parse_key("a") == "a"
        assert parse_key("é") == "é"

    def test_unknown(self) -> None:
        assert parse_key("") is None
        assert parse_key("\x1b[99x") is None


class TestParse:
    def test_printable_keeps_text(self) -> None:
        assert parse("a") == KeyPress("a", "a")
        assert parse("a").is_text

    def test_space_is_text(self) -> None:
        assert parse(" ") == KeyPress("space", " ")

    def test_control_has_no_text(self) -> None:
        press = parse("\r")
        assert press.key == "enter"
        assert not press.is_text


# ---------------------------------------------------------------------------
# split_input
# ---------------------------------------------------------------------------


class TestSplitInput:
    def test_plain_characters(self) -> None:
        presses, rest = split_input("ab")
        assert [p.text for p in presses] == ["a", "b"]
        assert rest == ""

    def test_mixed_with_escape_sequences(self) -> None:
        presses, _ = split_input("a\x1b[Ab\r")
        assert [p.key for p in presses] == ["a", "up", "b", "enter"]

    def test_ss3_sequence(self) -> None:
        presses, _ = split_input("\x1bOB")
        assert [p.key for p in presses] == ["down"]

    def test_escape_prefixed_arrow_is_one_key(self) -> None:
        presses, rest = split_input("\x1b\x1b[Ax")
        assert [p.key for p in presses] == ["alt+up", "x"]
        assert presses[0].text == ""
        assert rest == ""

    def test_double_escape_is_two_escapes(self) -> None:
        presses, _ = split_input("\x1b\x1b")
        assert [p.key for p in presses] == ["escape", "escape"]

    def test_escape_prefixed_sequence_held_until_complete(self) -> None:
        presses, rest = split_input("\x1b\x1b[1;")
        assert presses == []
        assert rest == "\x1b\x1b[1;"

    def test_lone_escape(self) -> None:
        presses, rest = split_input("\x1b")
        assert [p.key for p in presses] == ["escape"]
        assert rest == ""

    @pytest.mark.parametrize("partial", ["\x1b[", "\x1b[1;", "\x1bO"])
    def test_incomplete_sequence_is_held_back(self, partial: str) -> None:
        presses, rest = split_input("x" + partial)
        assert [p.key for p in presses] == ["x"]
        assert rest == partial

    def test_held_back_sequence_completes(self) -> None:
        _, rest = split_input("\x1b[1;")
        presses, rest = split_input(rest + "2A")
        assert [p.key for p in presses] == ["shift+up"]
        assert rest == ""

    def test_bracketed_paste(self) -> None:
        data = f"a{BRACKETED_PASTE_START}one\r\ntwo\n{BRACKETED_PASTE_END}b"
        presses, _ = split_input(data)
        assert presses[0].text == "a"
        assert presses[1] == KeyPress(None, "onetwo", paste=True)
        assert presses[1].is_text
        assert presses[2].text == "b"

    def test_unterminated_paste_is_held_back(self) -> None:
        data = f"{BRACKETED_PASTE_START}partial"
        presses, rest = split_input(data)
        assert presses == []
        assert rest == data
