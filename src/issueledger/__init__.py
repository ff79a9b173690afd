"""IssueLedger - declarative CSV/JSON <-> GitHub issue synchronization.

High-level public API:

from issueledger import SyncSession, Reconciler, read_issues, load_config

cfg = load_config('.issueledger.yaml')
session = SyncSession.create('owner/repo', preview=True)
summary = Reconciler(session, cfg).run(read_issues('issues.csv'))
print(summary.created, summary.updated, summary.skipped)

The CLI (``issueledger``) is a thin layer over these modules.
"""

from __future__ import annotations

from .config import RepoConfig, load_config
from .formats import read_issues, write_issues
from .models import Issue, TrackedIssue
from .reconcile import ReconcileOptions, ReconcileSummary, Reconciler
from .session import SyncSession
from .validation import ValidationResult, validate

__version__ = "0.1.0"

__all__ = [
    "Issue",
    "ReconcileOptions",
    "ReconcileSummary",
    "Reconciler",
    "RepoConfig",
    "SyncSession",
    "TrackedIssue",
    "ValidationResult",
    "load_config",
    "read_issues",
    "validate",
    "write_issues",
    "__version__",
]
