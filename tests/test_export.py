from __future__ import annotations

import pytest

from issueledger.errors import IssueLedgerError
from issueledger.export import default_export_path, export_issues, tracked_to_issue
from issueledger.identity import compose_body
from issueledger.models import TrackedIssue

TOKEN = "1b4e28ba-2fa1-41d2-883f-0016d3cca427"


def _entry(number: int, body: str, labels: list[str] | None = None) -> dict:
    return {
        "number": number,
        "title": f"Issue {number}",
        "body": body,
        "state": "OPEN",
        "milestone": {"title": "v1.0.0"},
        "labels": [{"name": name} for name in labels or []],
        "url": f"https://github.com/octo/demo/issues/{number}",
    }


def test_export_keeps_only_marked_issues(fake_transport, make_session):
    fake_transport.respond(
        ("issue", "list"),
        [
            _entry(1, compose_body(TOKEN, "ab" * 32, "Tracked body"), ["Scope:backend", "size:L", "bug"]),
            _entry(2, "An issue created by hand"),
        ],
    )
    issues = export_issues(make_session())

    assert len(issues) == 1
    issue = issues[0]
    assert issue.identity == TOKEN
    assert issue.title == "Issue 1"
    assert issue.description == "Tracked body"
    assert issue.milestone == "v1.0.0"
    assert (issue.scope, issue.size, issue.priority) == ("backend", "L", None)
    args, _ = fake_transport.calls_matching("issue", "list")[0]
    assert args[args.index("--state") + 1] == "all"
    assert fake_transport.mutations() == []


def test_export_with_no_tracked_issues(fake_transport, make_session):
    fake_transport.respond(("issue", "list"), [_entry(3, "plain")])
    assert export_issues(make_session()) == []


def test_tracked_to_issue_requires_identity():
    with pytest.raises(IssueLedgerError, match="#4 missing GFS_ID"):
        tracked_to_issue(TrackedIssue(number=4, title="x", body="no marker"))


def test_label_lookup_ignores_empty_values():
    tracked = TrackedIssue(number=1, title="x", labels=["scope:", "scope:core"])
    assert tracked.label_value("scope") == "core"


def test_default_export_path():
    assert str(default_export_path("json")) == "issues-export.json"
