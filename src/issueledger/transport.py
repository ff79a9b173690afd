"""GitHub CLI (``gh``) transport.

This is the only module that launches ``gh``. Arguments are always passed as
a discrete list (never through a shell). All three public call styles funnel
through one retry-wrapped primitive, ``_call``, parameterized by how stdin is
supplied and how stdout is decoded:

- ``invoke(args)`` -> stdout text
- ``invoke_json(args)`` -> parsed JSON value
- ``invoke_with_input(args, payload)`` -> stdout text, ``payload`` on stdin

Failures raise ``TransportError`` carrying the combined stderr/stdout. Rate
limit flavoured failures are retried by ``issueledger.retry``; everything
else surfaces immediately. No timeout is imposed.
"""

from __future__ import annotations

import json
import os
import shutil
import subprocess  # nosec B404 - subprocess is required for GitHub CLI invocation
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from .env_auth import bridged_environment
from .errors import TransportError
from .logging import get_logger
from .retry import RetryConfig, run_with_retries

GH_EXECUTABLE_ENV = "ISSUELEDGER_GH"


class Transport(Protocol):  # pragma: no cover - structural only
    def invoke(self, args: Sequence[str]) -> str: ...

    def invoke_json(self, args: Sequence[str]) -> Any: ...

    def invoke_with_input(self, args: Sequence[str], payload: str) -> str: ...


@dataclass
class TransportConfig:
    executable: str | None = None
    verbose: bool = False
    retry: RetryConfig = field(default_factory=RetryConfig)


def _resolve_executable(explicit: str | None) -> str:
    if explicit:
        return explicit
    override = os.environ.get(GH_EXECUTABLE_ENV)
    if override:
        return override
    return shutil.which("gh") or "gh"


def _decode_text(out: str) -> str:
    return out.strip()


def _decode_json(out: str) -> Any:
    if not out.strip():
        return None
    try:
        return json.loads(out)
    except json.JSONDecodeError as exc:
        raise TransportError(f"GitHub CLI returned malformed JSON: {exc}", out[:2000]) from exc


class GhTransport:
    def __init__(
        self,
        cfg: TransportConfig | None = None,
        *,
        runner: Callable[..., subprocess.CompletedProcess[str]] = subprocess.run,
    ) -> None:
        self.cfg = cfg or TransportConfig()
        self._executable = _resolve_executable(self.cfg.executable)
        self._runner = runner
        self.logger = get_logger()

    # --- public call styles ----------------------------------------------
    def invoke(self, args: Sequence[str]) -> str:
        result: str = self._call(args, stdin=None, decode=_decode_text)
        return result

    def invoke_json(self, args: Sequence[str]) -> Any:
        return self._call(args, stdin=None, decode=_decode_json)

    def invoke_with_input(self, args: Sequence[str], payload: str) -> str:
        result: str = self._call(args, stdin=payload, decode=_decode_text)
        return result

    # --- internal helpers -------------------------------------------------
    def _call(
        self, args: Sequence[str], *, stdin: str | None, decode: Callable[[str], Any]
    ) -> Any:
        cmd = [self._executable, *args]
        return run_with_retries(lambda: decode(self._execute_once(cmd, stdin)), cfg=self.cfg.retry)

    def _execute_once(self, cmd: list[str], stdin: str | None) -> str:
        if self.cfg.verbose:
            suffix = f" (stdin {len(stdin)} bytes)" if stdin is not None else ""
            self.logger.info("[gh] " + " ".join(cmd[1:]) + suffix, operation="gh_invoke")
        try:
            proc = self._runner(  # nosec B603 - argument list, no shell
                cmd,
                input=stdin,
                capture_output=True,
                text=True,
                env=bridged_environment(),
                check=False,
            )
        except OSError as exc:
            raise TransportError(f"GitHub CLI error: {exc}", str(exc)) from exc
        if proc.returncode != 0:
            output = (proc.stderr or "") + (proc.stdout or "")
            raise TransportError(
                f"GitHub CLI exited with {proc.returncode}: {output.strip()}", output
            )
        return proc.stdout or ""


__all__ = ["GhTransport", "Transport", "TransportConfig"]
