"""Pytest configuration for IssueLedger tests.

Ensures the in-repo `src` directory is on `sys.path` so the package can be
imported without an editable install (`pip install -e .`), and provides a
recording fake of the `gh` transport so no test ever launches the real CLI.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    # Prepend so that 'python -m issueledger.cli' finds local package first
    sys.path.insert(0, str(SRC))

# Subprocesses (invoked by tests via `python -m issueledger.cli`) need the
# in-repo package too.
py_path = os.environ.get("PYTHONPATH", "")
parts = [p for p in py_path.split(os.pathsep) if p]
if str(SRC) not in parts:
    parts.insert(0, str(SRC))
    os.environ["PYTHONPATH"] = os.pathsep.join(parts)

MUTATING_PREFIXES = (
    ("issue", "create"),
    ("issue", "edit"),
    ("project", "item-add"),
    ("project", "item-edit"),
    ("project", "field-create"),
)


class FakeTransport:
    """Records every call; answers from responses keyed by argument prefix.

    A response may be a plain value, an exception instance (raised) or a
    callable ``(args, payload) -> value``. The longest matching prefix wins;
    among equal prefixes the most recently registered one does.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[list[str], str | None]] = []
        self._responses: list[tuple[tuple[str, ...], Any]] = []

    def respond(self, prefix: Sequence[str], value: Any) -> None:
        self._responses.append((tuple(prefix), value))

    def _answer(self, args: Sequence[str], payload: str | None) -> Any:
        self.calls.append((list(args), payload))
        best: tuple[tuple[str, ...], Any] | None = None
        for prefix, value in self._responses:
            if tuple(args[: len(prefix)]) == prefix and (best is None or len(prefix) >= len(best[0])):
                best = (prefix, value)
        if best is None:
            return None
        value = best[1]
        if isinstance(value, BaseException):
            raise value
        if callable(value):
            return value(list(args), payload)
        return value

    def invoke(self, args: Sequence[str]) -> str:
        out = self._answer(args, None)
        return "" if out is None else str(out)

    def invoke_json(self, args: Sequence[str]) -> Any:
        return self._answer(args, None)

    def invoke_with_input(self, args: Sequence[str], payload: str) -> str:
        out = self._answer(args, payload)
        return "" if out is None else str(out)

    # --- inspection helpers ---------------------------------------------
    def calls_matching(self, *prefix: str) -> list[tuple[list[str], str | None]]:
        return [c for c in self.calls if tuple(c[0][: len(prefix)]) == prefix]

    def mutations(self) -> list[tuple[list[str], str | None]]:
        out = []
        for args, payload in self.calls:
            if tuple(args[:2]) in MUTATING_PREFIXES or (args[:1] == ["api"] and "-X" in args):
                out.append((args, payload))
        return out


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def make_session(fake_transport: FakeTransport) -> Callable[..., Any]:
    from issueledger.session import SyncSession  # noqa: PLC0415

    def _make(repo: str = "octo/demo", *, preview: bool = False, verbose: bool = False) -> SyncSession:
        return SyncSession(repo=repo, transport=fake_transport, preview=preview, verbose=verbose)

    return _make


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "ISSUELEDGER_RETRY_ATTEMPTS",
        "ISSUELEDGER_RETRY_BASE",
        "ISSUELEDGER_RETRY_MAX_SLEEP",
        "ISSUELEDGER_QUIET",
        "ISSUELEDGER_GH",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _fresh_logger(monkeypatch: pytest.MonkeyPatch) -> None:
    # the logger binds sys.stdout when created; rebuild it lazily per test
    import issueledger.logging as ledger_logging  # noqa: PLC0415

    monkeypatch.setattr(ledger_logging, "_GLOBAL", None)
