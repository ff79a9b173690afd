from __future__ import annotations

import io

import pytest

from issueledger.errors import IssueLedgerError, TerminalRequiredError
from issueledger.prompt import (
    KEY_ABORT,
    KEY_DOWN,
    KEY_ENTER,
    KEY_UP,
    Choice,
    ScriptedSelector,
    TerminalSelector,
    decode_key,
    move_cursor,
)

OPTIONS = [
    Choice('Add "web" to Scope list', "add"),
    Choice('Map to "frontend"', "map", "frontend"),
    Choice('Map to "backend"', "map", "backend"),
    Choice("Skip (leave as-is)", "skip"),
]


@pytest.mark.parametrize(
    "seq, key",
    [
        (b"\x1b[A", KEY_UP),
        (b"k", KEY_UP),
        (b"\x1b[B", KEY_DOWN),
        (b"j", KEY_DOWN),
        (b"\r", KEY_ENTER),
        (b"\x03", KEY_ABORT),
        (b"x", None),
    ],
)
def test_decode_key(seq, key):
    assert decode_key(seq) == key


def test_move_cursor_wraps():
    assert move_cursor(0, KEY_UP, 4) == 3
    assert move_cursor(3, KEY_DOWN, 4) == 0
    assert move_cursor(1, KEY_ENTER, 4) == 1


def test_scripted_selector_answers():
    selector = ScriptedSelector([2, "map:frontend", "add", "skip"])
    assert selector.select("p1", OPTIONS).target == "backend"
    assert selector.select("p2", OPTIONS).target == "frontend"
    assert selector.select("p3", OPTIONS).action == "add"
    assert selector.select("p4", OPTIONS).action == "skip"
    assert selector.prompts == ["p1", "p2", "p3", "p4"]


def test_scripted_selector_unmatched_answer():
    with pytest.raises(IssueLedgerError, match="matches no option"):
        ScriptedSelector(["map:core"]).select("p", OPTIONS)


def test_terminal_selector_requires_tty():
    selector = TerminalSelector(stdin=io.StringIO(), stdout=io.StringIO())
    with pytest.raises(TerminalRequiredError):
        selector.select("p", OPTIONS)


def test_terminal_selector_rejects_empty_options():
    with pytest.raises(ValueError):
        TerminalSelector(stdin=io.StringIO(), stdout=io.StringIO()).select("p", [])
