from __future__ import annotations

import hashlib
import json

from .models import Issue

HASHED_FIELDS = ("description", "scope", "size", "priority", "milestone")


def _content_payload(issue: Issue) -> dict[str, str]:
    return {
        "description": (issue.description or "").strip(),
        "scope": (issue.scope or "").strip(),
        "size": (issue.size or "").strip(),
        "priority": (issue.priority or "").strip(),
        "milestone": (issue.milestone or "").strip(),
    }


def compute_content_hash(issue: Issue) -> str:
    """SHA-256 over the logical content of an issue.

    Title and identity are excluded so a rename never triggers a remote
    update and the digest is stable across identity assignment.
    """
    canonical = json.dumps(
        _content_payload(issue), sort_keys=True, separators=(",", ":"), ensure_ascii=False
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


__all__ = ["HASHED_FIELDS", "compute_content_hash"]
