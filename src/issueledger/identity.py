"""Identity and content-hash markers embedded in issue bodies.

Every tracked issue body starts with two HTML comments that are invisible in
the rendered view::

    <!-- GFS-ID: 1b4e28ba-2fa1-41d2-883f-0016d3cca427 -->
    <!-- GFS-HASH: 9f86d081884c7d659a2feaa0c55ad015... -->

    Description text...

All helpers here are pure text transforms. Reads are case-insensitive and
tolerate whitespace inside the comment; ``insert_*`` helpers remove any stale
marker first so repeated application converges on a single marker. Identity
values are not validated here (see ``issueledger.validation``).
"""

from __future__ import annotations

import re
import uuid

IDENTITY_TAG = "GFS-ID"
HASH_TAG = "GFS-HASH"

_UUID_V4_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
_IDENTITY_RE = re.compile(r"<!--\s*GFS-ID:\s*([0-9a-f-]+)\s*-->", re.IGNORECASE)
_HASH_RE = re.compile(r"<!--\s*GFS-HASH:\s*([0-9a-f]+)\s*-->", re.IGNORECASE)
_IDENTITY_STRIP_RE = re.compile(r"<!--\s*GFS-ID:[^>]*?-->[ \t]*(?:\r?\n)*", re.IGNORECASE)
_HASH_STRIP_RE = re.compile(r"<!--\s*GFS-HASH:[^>]*?-->[ \t]*(?:\r?\n)*", re.IGNORECASE)


def generate_identity() -> str:
    return str(uuid.uuid4())


def is_valid_identity(token: object) -> bool:
    if not isinstance(token, str):
        return False
    return bool(_UUID_V4_RE.match(token))


def identity_marker(token: str) -> str:
    return f"<!-- {IDENTITY_TAG}: {token} -->"


def hash_marker(digest: str) -> str:
    return f"<!-- {HASH_TAG}: {digest} -->"


def extract_identity(body: str | None) -> str | None:
    if not body:
        return None
    m = _IDENTITY_RE.search(body)
    return m.group(1) if m else None


def extract_content_hash(body: str | None) -> str | None:
    if not body:
        return None
    m = _HASH_RE.search(body)
    return m.group(1) if m else None


def insert_identity(body: str, token: str) -> str:
    cleaned = _IDENTITY_STRIP_RE.sub("", body or "")
    return f"{identity_marker(token)}\n{cleaned}"


def insert_content_hash(body: str, digest: str) -> str:
    cleaned = _HASH_STRIP_RE.sub("", body or "")
    marker = hash_marker(digest)
    existing = _IDENTITY_RE.search(cleaned)
    if existing:
        end = existing.end()
        rest = cleaned[end:].lstrip("\r\n")
        return f"{cleaned[:end]}\n{marker}\n{rest}"
    return f"{marker}\n{cleaned}"


def strip_markers(body: str | None) -> str:
    """Return the description part of a body (markers removed, trimmed)."""
    if not body:
        return ""
    cleaned = _IDENTITY_STRIP_RE.sub("", body)
    cleaned = _HASH_STRIP_RE.sub("", cleaned)
    return cleaned.strip()


def compose_body(token: str, digest: str, description: str) -> str:
    return f"{identity_marker(token)}\n{hash_marker(digest)}\n\n{description}"


__all__ = [
    "compose_body",
    "extract_content_hash",
    "extract_identity",
    "generate_identity",
    "hash_marker",
    "identity_marker",
    "insert_content_hash",
    "insert_identity",
    "is_valid_identity",
    "strip_markers",
]
