"""Terminal output helpers for the CLI (no external dependencies)."""

from __future__ import annotations

import os
import sys
from collections.abc import Sequence
from typing import TYPE_CHECKING, TextIO

if TYPE_CHECKING:  # pragma: no cover
    from .reconcile import ReconcileSummary
    from .validation import ValidationResult

RESET = "\033[0m"
BOLD = "\033[1m"
DIM = "\033[2m"
RED = "\033[31m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
BLUE = "\033[34m"
CYAN = "\033[36m"

RULE_WIDTH = 60


def supports_color(stream: TextIO | None = None) -> bool:
    stream = stream or sys.stdout
    if os.environ.get("NO_COLOR"):
        return False
    if not hasattr(stream, "isatty") or not stream.isatty():
        return False
    return os.environ.get("TERM") != "dumb"


def colorize(text: str, color: str, bold: bool = False, stream: TextIO | None = None) -> str:
    if not supports_color(stream):
        return text
    return f"{BOLD if bold else ''}{color}{text}{RESET}"


def _emit(icon: str, color: str, message: str, stream: TextIO) -> None:
    print(colorize(icon, color, bold=True, stream=stream) + " " + message, file=stream)


def print_success(message: str, stream: TextIO | None = None) -> None:
    _emit("✓", GREEN, message, stream or sys.stdout)


def print_error(message: str, stream: TextIO | None = None) -> None:
    _emit("✗", RED, message, stream or sys.stderr)


def print_warning(message: str, stream: TextIO | None = None) -> None:
    _emit("⚠", YELLOW, message, stream or sys.stdout)


def print_info(message: str, stream: TextIO | None = None) -> None:
    _emit("ℹ", BLUE, message, stream or sys.stdout)


def print_summary_box(
    title: str, items: Sequence[tuple[str, str | int]], stream: TextIO | None = None
) -> None:
    """Print a key/value box; positive counts are highlighted."""
    stream = stream or sys.stdout
    width = max((len(k) for k, _ in items), default=0)
    print(colorize(f"\n{title}", CYAN, bold=True, stream=stream), file=stream)
    print(colorize("─" * RULE_WIDTH, DIM, stream=stream), file=stream)
    for key, value in items:
        text = str(value)
        if isinstance(value, int) and value > 0:
            text = colorize(text, GREEN, bold=True, stream=stream)
        print(f"  {key.ljust(width)}  {text}", file=stream)
    print(colorize("─" * RULE_WIDTH, DIM, stream=stream), file=stream)


def print_validation(result: ValidationResult, stream: TextIO | None = None) -> None:
    stream = stream or sys.stdout
    for err in result.errors:
        print_error(err, stream=stream)
    for warn in result.warnings:
        print_warning(warn, stream=stream)
    if result.valid:
        print_success(f"Validation passed ({len(result.warnings)} warning(s))", stream=stream)
    else:
        print_error(
            f"Validation failed: {len(result.errors)} error(s), {len(result.warnings)} warning(s)",
            stream=stream,
        )


def print_reconcile_summary(
    summary: ReconcileSummary, *, dry_run: bool, stream: TextIO | None = None
) -> None:
    title = "Import summary (dry-run)" if dry_run else "Import summary"
    print_summary_box(
        title,
        [("Created", summary.created), ("Updated", summary.updated), ("Skipped", summary.skipped)],
        stream=stream,
    )


__all__ = [
    "colorize",
    "print_error",
    "print_info",
    "print_reconcile_summary",
    "print_success",
    "print_summary_box",
    "print_validation",
    "print_warning",
    "supports_color",
]
