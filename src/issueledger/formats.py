"""CSV / JSON dataset readers and writers.

CSV columns: ``GFS_ID,Title,Milestone,Scope,Size,Priority,Description``.
Headers are matched case-insensitively and a few legacy spellings are
accepted on read. JSON datasets are written as
``{"version": "1.0.0", "issues": [...]}``; a bare list is accepted on read.
The format is chosen by file extension (``.json`` -> JSON, anything else CSV).
"""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

from .errors import DatasetFormatError
from .models import Issue

DATASET_VERSION = "1.0.0"
COLUMNS = ("GFS_ID", "Title", "Milestone", "Scope", "Size", "Priority", "Description")
FORMAT_CSV = "csv"
FORMAT_JSON = "json"

# normalized header -> Issue attribute
_HEADER_ALIASES = {
    "gfs_id": "identity",
    "gfs-id": "identity",
    "gfs id": "identity",
    "id": "identity",
    "title": "title",
    "milestone": "milestone",
    "scope": "scope",
    "size": "size",
    "t-shirt size": "size",
    "priority": "priority",
    "description": "description",
    "acceptance criteria": "acceptance",
}

_ATTR_TO_COLUMN = {
    "identity": "GFS_ID",
    "title": "Title",
    "milestone": "Milestone",
    "scope": "Scope",
    "size": "Size",
    "priority": "Priority",
    "description": "Description",
}


def normalize_header(header: str) -> str | None:
    key = header.strip().lower()
    if key.startswith("acceptance criteria"):
        return "acceptance"
    return _HEADER_ALIASES.get(key)


def detect_format(path: str | Path) -> str:
    return FORMAT_JSON if Path(path).suffix.lower() == ".json" else FORMAT_CSV


def issue_from_mapping(raw: Mapping[str, Any]) -> Issue:
    values: dict[str, Any] = {}
    for key, value in raw.items():
        attr = normalize_header(str(key))
        if attr and attr not in values:
            values[attr] = value
    return _issue_from_attrs(values)


def _issue_from_attrs(values: Mapping[str, Any]) -> Issue:
    return Issue(
        identity=values.get("identity"),
        title=values.get("title") or "",
        description=values.get("description") or "",
        milestone=values.get("milestone"),
        scope=values.get("scope"),
        size=values.get("size"),
        priority=values.get("priority"),
        acceptance=values.get("acceptance"),
    )


def issue_to_row(issue: Issue) -> dict[str, str]:
    return {column: getattr(issue, attr) or "" for attr, column in _ATTR_TO_COLUMN.items()}


# --- CSV ---------------------------------------------------------------------
def parse_csv(text: str) -> list[Issue]:
    reader = csv.reader(io.StringIO(text))
    rows = [row for row in reader if any(cell.strip() for cell in row)]
    if not rows:
        return []
    header = [normalize_header(h) for h in rows[0]]
    if "title" not in header:
        raise DatasetFormatError("CSV header must include a Title column")
    issues: list[Issue] = []
    for row in rows[1:]:
        values: dict[str, str] = {}
        for i, attr in enumerate(header):
            if attr and i < len(row) and attr not in values:
                values[attr] = row[i]
        issues.append(_issue_from_attrs(values))
    return issues


def render_csv(issues: Iterable[Issue]) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=list(COLUMNS), lineterminator="\n")
    writer.writeheader()
    for issue in issues:
        writer.writerow(issue_to_row(issue))
    return buf.getvalue()


# --- JSON --------------------------------------------------------------------
def parse_json(text: str) -> list[Issue]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DatasetFormatError(f"Invalid JSON dataset: {exc}") from exc
    if isinstance(data, dict) and isinstance(data.get("issues"), list):
        entries = data["issues"]
    elif isinstance(data, list):
        entries = data
    else:
        raise DatasetFormatError("Invalid JSON format: expected array of issues or schema object")
    issues: list[Issue] = []
    for entry in entries:
        if not isinstance(entry, dict):
            raise DatasetFormatError(f"Invalid issue entry: {entry!r}")
        issues.append(issue_from_mapping(entry))
    return issues


def render_json(issues: Iterable[Issue]) -> str:
    payload = []
    for issue in issues:
        row: dict[str, str] = issue_to_row(issue)
        payload.append({k: v for k, v in row.items() if v or k in ("GFS_ID", "Title", "Milestone", "Description")})
    return json.dumps({"version": DATASET_VERSION, "issues": payload}, indent=2, ensure_ascii=False) + "\n"


# --- file helpers ------------------------------------------------------------
def read_issues(path: str | Path, fmt: str | None = None) -> list[Issue]:
    p = Path(path)
    if not p.exists():
        raise DatasetFormatError(f"Input file not found: {p}")
    text = p.read_text(encoding="utf-8-sig")
    if (fmt or detect_format(p)) == FORMAT_JSON:
        return parse_json(text)
    return parse_csv(text)


def write_issues(path: str | Path, issues: Sequence[Issue], fmt: str | None = None) -> Path:
    p = Path(path)
    if (fmt or detect_format(p)) == FORMAT_JSON:
        content = render_json(issues)
    else:
        content = render_csv(issues)
    p.write_text(content, encoding="utf-8", newline="")
    return p


__all__ = [
    "COLUMNS",
    "DATASET_VERSION",
    "detect_format",
    "parse_csv",
    "parse_json",
    "read_issues",
    "render_csv",
    "render_json",
    "write_issues",
]
