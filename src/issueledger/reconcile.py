"""Idempotent reconciliation of local issues against the tracker.

Each desired issue is classified against an identity index built from a single
bulk fetch of remote issues:

* ``UNSEEN``            : no remote issue carries the identity marker
* ``MATCHED_UNCHANGED`` : remote body hash equals the local content hash
* ``MATCHED_CHANGED``   : remote body hash is missing or differs

``decide`` turns the state into an ``Action`` honouring the create-only /
update-only restrictions. Only CREATE and UPDATE produce mutating calls; a
second run over the same input therefore issues none.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .config import RepoConfig
from .errors import IssueLedgerError, TransportError
from .github_issues import DEFAULT_FETCH_LIMIT, IssuesClient, MilestoneResolver
from .hashing import compute_content_hash
from .identity import compose_body, extract_content_hash, extract_identity
from .logging import get_logger
from .models import Issue, TrackedIssue
from .project import BoardMirror
from .session import SyncSession

BODY_EXCERPT_CHARS = 100


class IssueState(Enum):
    UNSEEN = "unseen"
    MATCHED_UNCHANGED = "matched_unchanged"
    MATCHED_CHANGED = "matched_changed"


class Action(Enum):
    CREATE = "create"
    UPDATE = "update"
    SKIP = "skip"


@dataclass
class Decision:
    identity: str
    title: str
    state: IssueState
    action: Action
    number: int | None = None
    url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "identity": self.identity,
            "title": self.title,
            "state": self.state.value,
            "action": self.action.value,
            "number": self.number,
            "url": self.url,
        }


@dataclass
class ReconcileSummary:
    created: int = 0
    updated: int = 0
    skipped: int = 0
    decisions: list[Decision] = field(default_factory=list)

    def record(self, decision: Decision) -> None:
        self.decisions.append(decision)
        if decision.action is Action.CREATE:
            self.created += 1
        elif decision.action is Action.UPDATE:
            self.updated += 1
        else:
            self.skipped += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "totals": {"created": self.created, "updated": self.updated, "skipped": self.skipped},
            "decisions": [d.to_dict() for d in self.decisions],
        }


@dataclass
class ReconcileOptions:
    create_only: bool = False
    update_only: bool = False
    auto_labels: bool = False
    auto_milestones: bool = False
    limit: int = DEFAULT_FETCH_LIMIT


def build_identity_index(tracked: Iterable[TrackedIssue]) -> dict[str, TrackedIssue]:
    """Map identity -> remote issue. The first issue seen for an identity wins."""
    logger = get_logger()
    index: dict[str, TrackedIssue] = {}
    for remote in tracked:
        token = extract_identity(remote.body)
        if not token:
            continue
        key = token.lower()
        if key in index:
            logger.warning(
                f"Identity {token} appears on issues #{index[key].number} and #{remote.number}; "
                f"using #{index[key].number}",
                identity=token,
            )
            continue
        index[key] = remote
    return index


def _require_identity(issue: Issue) -> str:
    if not issue.identity:
        raise IssueLedgerError(f"Issue '{issue.title}' has no identity; run lint --fix first")
    return issue.identity


def _lookup(issue: Issue, index: dict[str, TrackedIssue]) -> TrackedIssue | None:
    if not issue.identity:
        return None
    return index.get(issue.identity.lower())


def classify(issue: Issue, index: dict[str, TrackedIssue]) -> IssueState:
    remote = _lookup(issue, index)
    if remote is None:
        return IssueState.UNSEEN
    if extract_content_hash(remote.body) == compute_content_hash(issue):
        return IssueState.MATCHED_UNCHANGED
    return IssueState.MATCHED_CHANGED


def decide(state: IssueState, create_only: bool = False, update_only: bool = False) -> Action:
    if state is IssueState.UNSEEN:
        return Action.SKIP if update_only else Action.CREATE
    if state is IssueState.MATCHED_CHANGED:
        return Action.SKIP if create_only else Action.UPDATE
    return Action.SKIP


def classification_labels(issue: Issue) -> list[str]:
    return [f"{name}:{value}" for name, value in issue.classification().items() if value]


def _excerpt(text: str) -> str:
    flat = " ".join(text.split())
    return flat[:BODY_EXCERPT_CHARS]


class Reconciler:
    def __init__(
        self,
        session: SyncSession,
        config: RepoConfig | None = None,
        options: ReconcileOptions | None = None,
    ) -> None:
        self.session = session
        self.config = config
        self.options = options or ReconcileOptions()
        self.logger = get_logger()
        self.client = IssuesClient(session)
        self.milestones = MilestoneResolver(self.client, auto_create=self.options.auto_milestones)
        board = config.project if config is not None else None
        self.board = BoardMirror(session, board) if board is not None else None

    def fetch_index(self) -> dict[str, TrackedIssue]:
        with self.logger.timed_operation("fetch_existing", repo=self.session.repo):
            tracked = self.client.list_existing(self.options.limit)
        self.logger.debug(f"Fetched {len(tracked)} remote issues", count=len(tracked))
        return build_identity_index(tracked)

    def run(self, issues: Sequence[Issue]) -> ReconcileSummary:
        for issue in issues:
            _require_identity(issue)
        index = self.fetch_index()
        summary = ReconcileSummary()
        for issue in issues:
            summary.record(self._process(issue, index))
        self.logger.log_operation(
            "reconcile_complete",
            created_count=summary.created,
            updated_count=summary.updated,
            skipped_count=summary.skipped,
            dry_run=self.session.preview,
        )
        return summary

    def _process(self, issue: Issue, index: dict[str, TrackedIssue]) -> Decision:
        identity = _require_identity(issue)
        remote = _lookup(issue, index)
        state = classify(issue, index)
        action = decide(state, self.options.create_only, self.options.update_only)
        decision = Decision(
            identity=identity,
            title=issue.title,
            state=state,
            action=action,
            number=remote.number if remote else None,
            url=remote.url if remote else None,
        )
        if action is Action.SKIP:
            self.logger.debug(
                f"Skipping {issue.title} ({state.value})", identity=identity, state=state.value
            )
            return decision
        try:
            if action is Action.CREATE:
                self._create(issue, identity, decision)
            else:
                self._update(issue, identity, decision)
        except TransportError as exc:
            self.logger.log_error(
                f"Failed to {action.value} issue"
                + (f" #{decision.number}" if decision.number else "")
                + f": {issue.title}",
                error=str(exc),
                identity=identity,
                issue_number=decision.number,
                body_excerpt=_excerpt(issue.description),
            )
            raise
        return decision

    def _body(self, issue: Issue, identity: str) -> str:
        return compose_body(identity, compute_content_hash(issue), issue.description)

    def _create(self, issue: Issue, identity: str, decision: Decision) -> None:
        milestone = self.milestones.resolve(issue.milestone)
        number, url = self.client.create_issue(
            title=issue.title, body=self._body(issue, identity), milestone=milestone
        )
        decision.number = number or None
        decision.url = url or None
        self.logger.log_issue_action(
            "create", identity, number or None, dry_run=self.session.preview, title=issue.title
        )
        self._mirror(issue, decision)

    def _update(self, issue: Issue, identity: str, decision: Decision) -> None:
        number = decision.number
        if number is None:
            raise IssueLedgerError(f"Cannot update '{issue.title}': remote issue number unknown")
        milestone = self.milestones.resolve(issue.milestone)
        self.client.edit_issue(
            number=number, title=issue.title, body=self._body(issue, identity), milestone=milestone
        )
        if not decision.url:
            decision.url = self.client.issue_url(number)
        self.logger.log_issue_action(
            "update", identity, number, dry_run=self.session.preview, title=issue.title
        )
        self._mirror(issue, decision)

    def _mirror(self, issue: Issue, decision: Decision) -> None:
        if self.options.auto_labels:
            labels = classification_labels(issue)
            if decision.number:
                self.client.add_labels(decision.number, labels)
            elif self.session.preview and labels:
                self.logger.info(
                    f"[DRY-RUN] would add labels to {issue.title}: {', '.join(labels)}",
                    operation="labels_preview",
                    identity=decision.identity,
                    labels=labels,
                )
        if self.board is not None and (decision.url or self.session.preview):
            self.board.mirror(issue, decision.url or "")


def reconcile(
    session: SyncSession,
    issues: Sequence[Issue],
    *,
    config: RepoConfig | None = None,
    options: ReconcileOptions | None = None,
) -> ReconcileSummary:
    return Reconciler(session, config, options).run(issues)


__all__ = [
    "Action",
    "Decision",
    "IssueState",
    "ReconcileOptions",
    "ReconcileSummary",
    "Reconciler",
    "build_identity_index",
    "classify",
    "decide",
    "reconcile",
]
