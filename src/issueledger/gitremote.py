"""Detect ``owner/repo`` from the local git ``origin`` remote."""

from __future__ import annotations

import re
import shutil
import subprocess  # nosec B404 - git CLI invocation
from collections.abc import Callable

from .logging import get_logger

GITHUB_REMOTE = re.compile(r"github\.com[:/]([^/]+/[^/]+?)(\.git)?$")


def parse_github_remote(url: str) -> str | None:
    """Return ``owner/repo`` for https / ssh GitHub remote URLs."""
    match = GITHUB_REMOTE.search(url.strip())
    return match.group(1) if match else None


def detect_github_repo(
    runner: Callable[..., subprocess.CompletedProcess[str]] = subprocess.run,
) -> str | None:
    git = shutil.which("git")
    if not git:
        return None
    try:
        proc = runner(  # nosec B603 - constant args
            [git, "remote", "get-url", "origin"],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        get_logger().debug("git remote lookup failed", error=str(exc))
        return None
    if proc.returncode != 0:
        return None
    return parse_github_remote(proc.stdout or "")


__all__ = ["detect_github_repo", "parse_github_remote"]
