from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

CLASSIFICATION_FIELDS = ("scope", "size", "priority")


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass
class Issue:
    """Canonical in-memory representation of one locally declared issue.

    Optional values are trimmed and empty ones normalized to ``None`` so that a
    value read back from a padded or blank CSV cell and a JSON key compare (and
    hash) equal.
    """

    identity: str | None
    title: str
    description: str = ""
    milestone: str | None = None
    scope: str | None = None
    size: str | None = None
    priority: str | None = None
    acceptance: str | None = None  # legacy column, lint-only

    def __post_init__(self) -> None:
        self.identity = _clean(self.identity)
        self.title = "" if self.title is None else str(self.title)
        self.description = "" if self.description is None else str(self.description)
        self.milestone = _clean(self.milestone)
        self.scope = _clean(self.scope)
        self.size = _clean(self.size)
        self.priority = _clean(self.priority)
        self.acceptance = _clean(self.acceptance)

    def classification(self) -> dict[str, str | None]:
        return {name: getattr(self, name) for name in CLASSIFICATION_FIELDS}


@dataclass
class TrackedIssue:
    """A remote issue as decoded from ``gh issue list --json`` output."""

    number: int
    title: str
    body: str = ""
    state: str | None = None
    milestone: str | None = None
    labels: list[str] = field(default_factory=list)
    url: str | None = None

    @classmethod
    def from_payload(cls, entry: dict[str, Any]) -> TrackedIssue:
        labels: list[str] = []
        raw_labels = entry.get("labels")
        if isinstance(raw_labels, list):
            for lbl in raw_labels:
                if isinstance(lbl, dict):
                    name = lbl.get("name")
                    if isinstance(name, str):
                        labels.append(name)
                elif isinstance(lbl, str):
                    labels.append(lbl)
        milestone = entry.get("milestone")
        milestone_title: str | None = None
        if isinstance(milestone, dict):
            mt = milestone.get("title")
            if isinstance(mt, str) and mt:
                milestone_title = mt
        elif isinstance(milestone, str) and milestone:
            milestone_title = milestone
        number = entry.get("number")
        return cls(
            number=int(number) if isinstance(number, int | str) and str(number).isdigit() else 0,
            title=str(entry.get("title") or ""),
            body=str(entry.get("body") or ""),
            state=entry.get("state") if isinstance(entry.get("state"), str) else None,
            milestone=milestone_title,
            labels=labels,
            url=entry.get("url") if isinstance(entry.get("url"), str) else None,
        )

    def label_value(self, prefix: str) -> str | None:
        """Return the value of the first ``<prefix>:<value>`` label (case-insensitive)."""
        wanted = f"{prefix.lower()}:"
        for name in self.labels:
            if name.lower().startswith(wanted):
                value = name[len(wanted):].strip()
                if value:
                    return value
        return None


__all__ = ["CLASSIFICATION_FIELDS", "Issue", "TrackedIssue"]
