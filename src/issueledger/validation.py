"""Validation gate run before any reconciliation.

``validate`` walks every issue (never stopping at the first problem) and
collects row-prefixed messages. Rows are numbered as in the source file, so
the first data row is row 2 (after the header).
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from .config import RepoConfig
from .identity import generate_identity, is_valid_identity
from .models import CLASSIFICATION_FIELDS, Issue

ROW_OFFSET = 2
TASK_ITEM = re.compile(r"^\s*-\s*\[\s*[\sx]\s*\]", re.IGNORECASE)


@dataclass
class ValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "errors": list(self.errors), "warnings": list(self.warnings)}


def _check_identity(issue: Issue, row: int, autofix: bool, result: ValidationResult) -> None:
    if not issue.identity:
        if autofix:
            issue.identity = generate_identity()
            result.warnings.append(f"Row {row}: Generated missing GFS_ID")
        else:
            result.errors.append(f"Row {row}: GFS_ID is required and cannot be empty")
    elif not is_valid_identity(issue.identity):
        if autofix:
            issue.identity = generate_identity()
            result.warnings.append(f"Row {row}: Invalid GFS_ID format, regenerated")
        else:
            result.errors.append(f"Row {row}: GFS_ID must be a valid UUID v4")


def _check_vocabulary(issue: Issue, row: int, config: RepoConfig, result: ValidationResult) -> None:
    for name in CLASSIFICATION_FIELDS:
        allowed = config.vocabulary(name)
        value = getattr(issue, name)
        if allowed and value and value not in allowed:
            result.errors.append(
                f'Row {row}: Invalid {name.capitalize()} "{value}". Must be one of: {", ".join(allowed)}'
            )


def validate(issues: Sequence[Issue], config: RepoConfig, autofix: bool = False) -> ValidationResult:
    """Validate ``issues`` against ``config``.

    With ``autofix`` a missing or malformed identity is replaced by a freshly
    minted one (reported as a warning); no other field is touched.
    """
    result = ValidationResult()
    seen_ids: set[str] = set()
    seen_titles: set[str] = set()
    for index, issue in enumerate(issues):
        row = index + ROW_OFFSET
        _check_identity(issue, row, autofix, result)

        if issue.identity:
            key = issue.identity.lower()
            if key in seen_ids:
                result.errors.append(
                    f'Row {row}: Duplicate GFS_ID "{issue.identity}" (already seen in earlier row)'
                )
            seen_ids.add(key)

        if not issue.title.strip():
            result.errors.append(f"Row {row}: Title is required and cannot be empty")
        elif issue.title in seen_titles:
            result.warnings.append(
                f'Row {row}: Duplicate title "{issue.title}" (already seen in earlier row)'
            )
        else:
            seen_titles.add(issue.title)

        _check_vocabulary(issue, row, config, result)

        if issue.acceptance and not any(TASK_ITEM.match(line) for line in issue.acceptance.splitlines()):
            result.warnings.append(
                f"Row {row}: Acceptance Criteria should use markdown task list format (- [ ] item)"
            )

        if not issue.milestone:
            result.warnings.append(f"Row {row}: Milestone is empty")
        elif config.milestones and issue.milestone not in config.milestones:
            result.warnings.append(
                f'Row {row}: Milestone "{issue.milestone}" is not in the configured milestones'
            )
    return result


__all__ = ["ValidationResult", "validate"]
