"""Export tracked remote issues back into a local dataset.

Only issues carrying an identity marker are exported. Classification is
recovered from ``scope:``/``size:``/``priority:`` labels (case-insensitive);
the description is the body with both markers removed.
"""

from __future__ import annotations

from pathlib import Path

from .errors import IssueLedgerError
from .github_issues import DEFAULT_FETCH_LIMIT, IssuesClient
from .identity import extract_identity, strip_markers
from .logging import get_logger
from .models import Issue, TrackedIssue
from .session import SyncSession

PREVIEW_CHARS = 100


def tracked_to_issue(tracked: TrackedIssue) -> Issue:
    identity = extract_identity(tracked.body)
    if not identity:
        raise IssueLedgerError(f"Issue #{tracked.number} missing GFS_ID")
    return Issue(
        identity=identity,
        title=tracked.title,
        description=strip_markers(tracked.body),
        milestone=tracked.milestone,
        scope=tracked.label_value("scope"),
        size=tracked.label_value("size"),
        priority=tracked.label_value("priority"),
    )


def export_issues(session: SyncSession, limit: int = DEFAULT_FETCH_LIMIT) -> list[Issue]:
    logger = get_logger()
    logger.info(f"Exporting tracked issues from {session.repo}...")
    tracked = [t for t in IssuesClient(session).list_existing(limit) if extract_identity(t.body)]
    if not tracked:
        logger.info("No tracked issues found (with GFS_ID marker)")
        return []
    logger.info(f"Found {len(tracked)} tracked issues. Parsing...", count=len(tracked))
    issues: list[Issue] = []
    for item in tracked:
        try:
            issues.append(tracked_to_issue(item))
        except (IssueLedgerError, ValueError) as exc:
            logger.log_error(
                f"Error parsing issue #{item.number}",
                error=str(exc),
                issue_number=item.number,
                title=item.title,
                body_preview=item.body[:PREVIEW_CHARS] if item.body else "(empty)",
            )
            raise
    return issues


def default_export_path(fmt: str) -> Path:
    return Path(f"issues-export.{fmt}")


__all__ = ["default_export_path", "export_issues", "tracked_to_issue"]
