"""GitHub Issues & milestones over the ``gh`` transport.

Encapsulates command construction and output parsing for the issue and
milestone calls the reconciliation engine needs, so the engine itself never
builds argument lists:

 - list_existing: one bulk ``gh issue list --json`` fetch (bounded limit)
 - create_issue / edit_issue: title + body (body always via stdin)
 - add_labels: single comma-joined ``--add-label`` call
 - list_milestones / create_milestone: generic ``gh api`` passthrough

Mutating calls honour the session's preview flag: the command is logged and
nothing is executed.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from typing import Any

from .errors import TransportError
from .logging import get_logger
from .models import TrackedIssue
from .session import SyncSession

NUMBER_PATTERN = re.compile(r"/issues/(\d+)")
ISSUE_JSON_FIELDS = "number,title,body,state,milestone,labels,url"
DEFAULT_FETCH_LIMIT = 1000


class IssuesClient:
    def __init__(self, session: SyncSession):
        self.session = session
        self.logger = get_logger()

    # --- internal helpers -------------------------------------------------
    def _repo_args(self) -> list[str]:
        return ["-R", self.session.repo]

    def _mutate(self, args: Sequence[str], payload: str | None = None) -> str:
        if self.session.preview:
            self.logger.debug("DRY-RUN gh " + " ".join(args), operation="gh_preview")
            return ""
        if payload is None:
            return self.session.transport.invoke(args)
        return self.session.transport.invoke_with_input(args, payload)

    def issue_url(self, number: int) -> str:
        return f"https://github.com/{self.session.repo}/issues/{number}"

    # --- issues -------------------------------------------------------------
    def list_existing(self, limit: int = DEFAULT_FETCH_LIMIT) -> list[TrackedIssue]:
        data = self.session.transport.invoke_json(
            [
                "issue",
                "list",
                *self._repo_args(),
                "--state",
                "all",
                "--limit",
                str(limit),
                "--json",
                ISSUE_JSON_FIELDS,
            ]
        )
        if not isinstance(data, list):
            return []
        issues = [TrackedIssue.from_payload(entry) for entry in data if isinstance(entry, dict)]
        for issue in issues:
            if not issue.url and issue.number:
                issue.url = self.issue_url(issue.number)
        return issues

    def create_issue(self, *, title: str, body: str, milestone: str | None = None) -> tuple[int, str]:
        """Create an issue and return ``(number, url)``.

        In preview mode nothing is created and ``(0, "")`` is returned.
        """
        args = ["issue", "create", *self._repo_args(), "--title", title, "--body-file", "-"]
        if milestone:
            args.extend(["--milestone", milestone])
        out = self._mutate(args, body)
        if self.session.preview:
            return 0, ""
        url = out.strip().splitlines()[-1].strip() if out.strip() else ""
        match = NUMBER_PATTERN.search(url)
        if not match:
            raise TransportError(f"Could not determine issue number for created issue '{title}'", out)
        return int(match.group(1)), url

    def edit_issue(
        self, *, number: int, title: str, body: str, milestone: str | None = None
    ) -> None:
        args = [
            "issue",
            "edit",
            str(number),
            *self._repo_args(),
            "--title",
            title,
            "--body-file",
            "-",
        ]
        if milestone:
            args.extend(["--milestone", milestone])
        self._mutate(args, body)

    def add_labels(self, number: int, labels: Iterable[str]) -> None:
        label_list = [lbl for lbl in labels if lbl]
        if not label_list:
            return
        self._mutate(
            ["issue", "edit", str(number), *self._repo_args(), "--add-label", ",".join(label_list)]
        )

    # --- milestones ---------------------------------------------------------
    def list_milestones(self) -> list[str]:
        data = self.session.transport.invoke_json(
            [
                "api",
                f"repos/{self.session.repo}/milestones?state=all&per_page=100",
                "--paginate",
                "--slurp",
            ]
        )
        if not isinstance(data, list):
            return []
        # --slurp wraps each page in its own array
        entries: list[Any] = []
        for page in data:
            entries.extend(page if isinstance(page, list) else [page])
        return [str(m["title"]) for m in entries if isinstance(m, dict) and m.get("title")]

    def create_milestone(self, title: str) -> str | None:
        data: Any = self.session.transport.invoke_json(
            ["api", f"repos/{self.session.repo}/milestones", "-X", "POST", "-f", f"title={title}"]
        )
        if isinstance(data, dict) and isinstance(data.get("title"), str):
            return str(data["title"])
        return None


class MilestoneResolver:
    """Resolve desired milestone names against the remote list.

    The remote list is fetched at most once per session. A name that cannot
    be resolved never blocks the issue: the caller gets ``None`` and a
    warning is logged.
    """

    def __init__(self, client: IssuesClient, *, auto_create: bool = False):
        self.client = client
        self.auto_create = auto_create
        self.logger = get_logger()

    def _known(self) -> list[str]:
        cache = self.client.session.cache
        if cache.milestones is None:
            cache.milestones = self.client.list_milestones()
        return cache.milestones

    def resolve(self, name: str | None) -> str | None:
        if not name or not name.strip():
            return None
        known = self._known()
        if name in known:
            return name
        session = self.client.session
        if self.auto_create and not session.preview:
            try:
                created = self.client.create_milestone(name)
            except TransportError as exc:
                self.logger.warning(
                    f"Failed to create milestone '{name}'; proceeding without milestone",
                    milestone=name,
                    error=str(exc),
                )
                return None
            if created:
                known.append(created)
                self.logger.info(f"Created missing milestone: {created}", milestone=created)
                return created
            self.logger.warning(
                f"Failed to create milestone '{name}'; proceeding without milestone", milestone=name
            )
            return None
        hint = "" if self.auto_create else " (use --auto-milestones to create)"
        self.logger.warning(
            f"Milestone '{name}' not found; proceeding without milestone{hint}", milestone=name
        )
        return None


__all__ = ["DEFAULT_FETCH_LIMIT", "IssuesClient", "MilestoneResolver"]
