"""Error taxonomy & redaction.

All failures the CLI reports as a clean one-line message derive from
``IssueLedgerError``. ``classify_error`` maps any exception onto a small set of
categories for structured logging, and ``redact`` scrubs credentials from
text before it reaches logs or stderr.

Public API:
- IssueLedgerError and subclasses
- classify_error(exc) -> ErrorInfo
- redact(text) -> str
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover
    from .validation import ValidationResult

_SENSITIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"ghp_[A-Za-z0-9]{20,40}"),  # GitHub classic tokens
    re.compile(r"gho_[A-Za-z0-9]{20,40}"),  # OAuth tokens issued to gh
    re.compile(r"github_pat_\w{20,}"),  # GitHub fine-grained tokens
]

_REDACTION_PLACEHOLDER = "<redacted>"


class IssueLedgerError(RuntimeError):
    """Base class for errors reported to the user without a traceback."""


class ConfigError(IssueLedgerError):
    pass


class DatasetFormatError(IssueLedgerError):
    """Raised when a CSV/JSON dataset cannot be decoded."""


class TransportError(IssueLedgerError):
    """A ``gh`` invocation failed (launch, non-zero exit or bad JSON).

    ``output`` carries the combined stderr/stdout text so callers (and the
    retry loop) can inspect it.
    """

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output


class ValidationFailedError(IssueLedgerError):
    def __init__(self, result: ValidationResult) -> None:
        super().__init__(f"Validation failed with {len(result.errors)} error(s)")
        self.result = result


class TerminalRequiredError(IssueLedgerError):
    """Interactive flow started without a terminal capable of raw key input."""


@dataclass
class ErrorInfo:
    category: str
    message: str
    original_type: str
    transient: bool = False
    details: dict[str, Any] | None = None


def redact(text: str) -> str:
    """Redact sensitive tokens in arbitrary text."""
    if not text:
        return text
    redacted = text
    for pat in _SENSITIVE_PATTERNS:
        redacted = pat.sub(_REDACTION_PLACEHOLDER, redacted)
    return redacted


def classify_error(exc: BaseException) -> ErrorInfo:
    """Best-effort classification of an exception.

    - rate limit wording -> 'github.rate_limit' (transient)
    - abuse detection -> 'github.abuse' (transient)
    - network-y keywords -> 'network' (transient)
    - validation / config / dataset errors -> their own categories
    - fallback -> 'generic'
    """
    msg = str(exc) if exc else ""
    if isinstance(exc, TransportError) and exc.output and exc.output not in msg:
        msg = f"{msg}: {exc.output}"
    low = msg.lower()
    name = exc.__class__.__name__

    if isinstance(exc, ValidationFailedError):
        return ErrorInfo("validation", redact(msg), name)
    if isinstance(exc, ConfigError):
        return ErrorInfo("config", redact(msg), name)
    if isinstance(exc, DatasetFormatError):
        return ErrorInfo("parse", redact(msg), name)
    if "rate limit" in low or "secondary rate" in low:
        return ErrorInfo("github.rate_limit", redact(msg), name, transient=True)
    if "abuse" in low:
        return ErrorInfo("github.abuse", redact(msg), name, transient=True)
    if any(k in low for k in ("timeout", "connection reset", "temporarily unavailable")):
        return ErrorInfo("network", redact(msg), name, transient=True)
    if any(k in low for k in ("yaml", "json", "scannererror", "parsererror")):
        return ErrorInfo("parse", redact(msg), name)
    return ErrorInfo("generic", redact(msg), name)


__all__ = [
    "ConfigError",
    "DatasetFormatError",
    "ErrorInfo",
    "IssueLedgerError",
    "TerminalRequiredError",
    "TransportError",
    "ValidationFailedError",
    "classify_error",
    "redact",
]
