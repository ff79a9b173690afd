"""Per-run reconciliation context.

A ``SyncSession`` bundles the transport, the run flags and the memoized
remote listings for exactly one command invocation. Nothing here outlives
the session, so a fresh run always re-reads remote state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .transport import GhTransport, Transport, TransportConfig


@dataclass
class RunCache:
    """Read-mostly memoization of remote listings.

    Entries are ``None`` until first loaded. Operations known to change a
    listing call the matching ``invalidate_*`` method.
    """

    milestones: list[str] | None = None
    projects: list[dict[str, Any]] | None = None
    project_ids: dict[tuple[str, int], str] = field(default_factory=dict)
    board_fields: dict[tuple[str, int], list[dict[str, Any]]] = field(default_factory=dict)
    board_items: dict[tuple[str, int], list[dict[str, Any]]] = field(default_factory=dict)

    def invalidate_board_items(self, key: tuple[str, int]) -> None:
        self.board_items.pop(key, None)

    def invalidate_board_fields(self, key: tuple[str, int]) -> None:
        self.board_fields.pop(key, None)

    def invalidate_projects(self) -> None:
        self.projects = None


@dataclass
class SyncSession:
    repo: str
    transport: Transport
    preview: bool = False
    verbose: bool = False
    cache: RunCache = field(default_factory=RunCache)

    @classmethod
    def create(cls, repo: str, *, preview: bool = False, verbose: bool = False) -> SyncSession:
        transport = GhTransport(TransportConfig(verbose=verbose))
        return cls(repo=repo, transport=transport, preview=preview, verbose=verbose)


__all__ = ["RunCache", "SyncSession"]
