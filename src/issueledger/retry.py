"""Centralized retry / backoff helpers.

Provides ``run_with_retries`` which encapsulates exponential backoff and the
classification of transient GitHub CLI failure modes (rate limit / abuse /
secondary rate limits). It is the only resilience mechanism in IssueLedger:
any other failure propagates immediately.

Environment overrides:
  ISSUELEDGER_RETRY_ATTEMPTS (total attempts, default 3)
  ISSUELEDGER_RETRY_BASE (seconds base, default 1.0; doubles per attempt)
  ISSUELEDGER_RETRY_MAX_SLEEP (optional cap on any single sleep)

The caller supplies a thunk returning the desired result or raising
``TransportError``. Only rate-limit flavoured output triggers a retry.
"""

from __future__ import annotations

import os
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from .errors import TransportError
from .logging import get_logger

T = TypeVar("T")

TRANSIENT_TOKENS = (
    "rate limit",
    "abuse detection",
    "secondary rate",
    "was submitted too quickly",
    "too many requests",
)

_RE_RETRY_AFTER = re.compile(r"retry[-\s]after:?\s*(\d+)", re.IGNORECASE)
_RE_SECONDS_HINT = re.compile(r"wait\s*(\d+)\s*seconds", re.IGNORECASE)


def _extract_explicit_backoff(text: str) -> float | None:
    """Extract an explicit backoff (seconds) from error output.

    Supports patterns like:
      Retry-After: 12
      retry after 12
      wait 30 seconds
    Returns None if no positive value found.
    """
    if not text:
        return None
    for pattern in (_RE_RETRY_AFTER, _RE_SECONDS_HINT):
        m = pattern.search(text)
        if m:
            val = float(m.group(1))
            return val if val > 0 else None
    return None


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, default))
    except ValueError:
        return default


@dataclass
class RetryConfig:
    attempts: int = field(default_factory=lambda: _env_int("ISSUELEDGER_RETRY_ATTEMPTS", 3))
    base_sleep: float = field(default_factory=lambda: _env_float("ISSUELEDGER_RETRY_BASE", 1.0))


def is_transient(output: str) -> bool:
    out_lower = (output or "").lower()
    return any(tok in out_lower for tok in TRANSIENT_TOKENS)


def compute_sleep(attempt: int, cfg: RetryConfig, out: str) -> float:
    explicit = _extract_explicit_backoff(out)
    backoff = cfg.base_sleep * (2 ** (attempt - 1))
    sleep_for: float = explicit if explicit is not None else backoff
    max_cap_env = os.environ.get("ISSUELEDGER_RETRY_MAX_SLEEP")
    if max_cap_env:
        try:
            cap = float(max_cap_env)
        except ValueError:
            return sleep_for
        if cap >= 0:
            sleep_for = min(sleep_for, cap)
    return sleep_for


def _should_retry(exc: TransportError, attempt: int, attempts: int, cfg: RetryConfig) -> bool:
    out = exc.output or str(exc)
    if attempt >= attempts or not is_transient(out):
        return False
    sleep_for = compute_sleep(attempt, cfg, out)
    get_logger().warning(
        f"[retry] rate limited, attempt {attempt}/{attempts}, sleeping {sleep_for:.2f}s",
        operation="retry",
        attempt=attempt,
        sleep=sleep_for,
    )
    time.sleep(sleep_for)
    return True


def run_with_retries(fn: Callable[[], T], *, cfg: RetryConfig | None = None) -> T:
    cfg = cfg or RetryConfig()
    attempts = max(1, cfg.attempts)
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except TransportError as exc:
            if not _should_retry(exc, attempt, attempts, cfg):
                raise
    raise RuntimeError("retry logic exited unexpectedly")  # pragma: no cover


__all__ = ["RetryConfig", "compute_sleep", "is_transient", "run_with_retries"]
