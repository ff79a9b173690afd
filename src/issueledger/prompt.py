"""Synchronous single-choice selection.

``Selector.select(prompt, options)`` blocks until one option is chosen. The
terminal implementation reads raw keys (arrows or j/k to move, Enter to
confirm, Ctrl+C to abort); the scripted one replays a fixed sequence and is
what tests and non-interactive callers use.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol, TextIO

from .errors import IssueLedgerError, TerminalRequiredError

KEY_UP = "up"
KEY_DOWN = "down"
KEY_ENTER = "enter"
KEY_ABORT = "abort"

_KEYMAP = {
    b"\x1b[A": KEY_UP,
    b"\x1bOA": KEY_UP,
    b"k": KEY_UP,
    b"\x1b[B": KEY_DOWN,
    b"\x1bOB": KEY_DOWN,
    b"j": KEY_DOWN,
    b"\r": KEY_ENTER,
    b"\n": KEY_ENTER,
    b"\x03": KEY_ABORT,
}


@dataclass(frozen=True)
class Choice:
    label: str
    action: str
    target: str | None = None


class Selector(Protocol):  # pragma: no cover - structural only
    def select(self, prompt: str, options: Sequence[Choice]) -> Choice: ...


def decode_key(seq: bytes) -> str | None:
    return _KEYMAP.get(seq)


def move_cursor(index: int, key: str, count: int) -> int:
    if key == KEY_UP:
        return (index - 1) % count
    if key == KEY_DOWN:
        return (index + 1) % count
    return index


class TerminalSelector:
    """Arrow-key menu on a real terminal (POSIX raw mode)."""

    def __init__(self, stdin: TextIO | None = None, stdout: TextIO | None = None):
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout

    def ensure_terminal(self) -> None:
        if not (hasattr(self.stdin, "isatty") and self.stdin.isatty()):
            raise TerminalRequiredError("Interactive migration requires a TTY (run in a terminal).")

    def _render(self, prompt: str, options: Sequence[Choice], index: int) -> None:
        out = self.stdout
        out.write("\x1b[H\x1b[J")
        out.write(prompt + "\n")
        out.write("Use arrows or j/k to choose, Enter to confirm, Ctrl+C to abort\n")
        for i, opt in enumerate(options):
            out.write(("› " if i == index else "  ") + opt.label + "\n")
        out.flush()

    def _read_key(self, fd: int) -> bytes:
        first = os.read(fd, 1)
        if first != b"\x1b":
            return first
        # escape sequences arrive as ESC [ X or ESC O X
        return first + os.read(fd, 2)

    def select(self, prompt: str, options: Sequence[Choice]) -> Choice:
        if not options:
            raise ValueError("select() requires at least one option")
        self.ensure_terminal()
        import termios  # noqa: PLC0415 - POSIX only
        import tty  # noqa: PLC0415

        fd = self.stdin.fileno()
        saved = termios.tcgetattr(fd)
        index = 0
        try:
            tty.setraw(fd)
            while True:
                self._render(prompt, options, index)
                key = decode_key(self._read_key(fd))
                if key == KEY_ABORT:
                    raise KeyboardInterrupt
                if key == KEY_ENTER:
                    return options[index]
                if key is not None:
                    index = move_cursor(index, key, len(options))
        finally:
            termios.tcsetattr(fd, termios.TCSADRAIN, saved)
            self.stdout.write("\n")
            self.stdout.flush()


class ScriptedSelector:
    """Replays scripted answers.

    Each answer is an option index, an action name (``"add"``, ``"skip"``) or
    ``"map:<target>"``.
    """

    def __init__(self, answers: Iterable[int | str]):
        self._answers = list(answers)
        self.prompts: list[str] = []

    def select(self, prompt: str, options: Sequence[Choice]) -> Choice:
        self.prompts.append(prompt)
        if not self._answers:
            raise IssueLedgerError(f"No scripted answer left for prompt: {prompt}")
        answer = self._answers.pop(0)
        if isinstance(answer, int):
            return options[answer]
        action, _, target = answer.partition(":")
        for opt in options:
            if opt.action == action and (not target or opt.target == target):
                return opt
        raise IssueLedgerError(f"Scripted answer {answer!r} matches no option for: {prompt}")


__all__ = ["Choice", "ScriptedSelector", "Selector", "TerminalSelector", "decode_key", "move_cursor"]
