from __future__ import annotations

import io
import json
import subprocess
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path

import pytest
import yaml

from issueledger import cli
from issueledger.formats import read_issues
from issueledger.hashing import compute_content_hash
from issueledger.identity import compose_body, extract_identity
from issueledger.session import SyncSession

TOKEN = "1b4e28ba-2fa1-41d2-883f-0016d3cca427"

SAMPLE_CSV = (
    "GFS_ID,Title,Milestone,Scope,Size,Priority,Description\n"
    f"{TOKEN},Create login page,v1.0.0,frontend,M,P1,Build the login page\n"
    ",Setup database schema,v1.0.0,backend,L,P2,Design the schema\n"
)


def _run(cmd: Sequence[str], cwd: Path, env: Mapping[str, str] | None = None) -> tuple[int, str]:
    result = subprocess.run(cmd, cwd=cwd, capture_output=True, text=True, env=env, check=False)
    return result.returncode, result.stdout + result.stderr


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def patched_session(monkeypatch: pytest.MonkeyPatch, fake_transport):
    created: list[SyncSession] = []

    def _create(repo: str, *, preview: bool = False, verbose: bool = False) -> SyncSession:
        session = SyncSession(repo=repo, transport=fake_transport, preview=preview, verbose=verbose)
        created.append(session)
        return session

    monkeypatch.setattr(cli.SyncSession, "create", staticmethod(_create))
    return created


def test_help_via_module(tmp_path: Path) -> None:
    rc, out = _run([sys.executable, "-m", "issueledger.cli", "--help"], cwd=tmp_path)
    assert rc == 0
    for command in ("init-config", "lint", "import", "export", "migrate", "board-setup"):
        assert command in out


def test_init_config_and_validate_config(workdir: Path, capsys) -> None:
    assert cli.main(["init-config", "--repo", "octo/demo"]) == 0
    assert (workdir / ".issueledger.yaml").exists()
    assert cli.main(["validate-config"]) == 0
    out = capsys.readouterr().out
    assert "Config file is valid" in out
    assert "octo/demo" in out
    # second run refuses to overwrite
    assert cli.main(["init-config", "--repo", "octo/demo"]) == 1


def test_init_creates_dataset(workdir: Path) -> None:
    assert cli.main(["init", "--example"]) == 0
    assert len(read_issues(workdir / "issues.csv")) == 3
    assert cli.main(["init", "--format", "json"]) == 0
    assert (workdir / "issues.json").exists()
    assert cli.main(["init"]) == 1


def test_lint_reports_and_fixes(workdir: Path, capsys) -> None:
    (workdir / "issues.csv").write_text(SAMPLE_CSV, encoding="utf-8")
    assert cli.main(["lint", "issues.csv"]) == 1
    captured = capsys.readouterr()
    assert "Row 3: GFS_ID is required" in captured.out + captured.err

    assert cli.main(["lint", "issues.csv", "--fix"]) == 0
    issues = read_issues(workdir / "issues.csv")
    assert issues[0].identity == TOKEN
    assert issues[1].identity


def test_import_refuses_invalid_dataset(workdir: Path, patched_session) -> None:
    (workdir / "issues.csv").write_text(SAMPLE_CSV, encoding="utf-8")
    assert cli.main(["import", "issues.csv", "--repo", "octo/demo"]) == 1
    assert patched_session == []


def test_import_dry_run_and_real(workdir: Path, patched_session, fake_transport, capsys) -> None:
    (workdir / "issues.csv").write_text(SAMPLE_CSV.splitlines()[0] + "\n" + SAMPLE_CSV.splitlines()[1] + "\n")
    fake_transport.respond(("issue", "list"), [])
    fake_transport.respond(("api",), [{"title": "v1.0.0"}])
    fake_transport.respond(("issue", "create"), "https://github.com/octo/demo/issues/9")

    assert cli.main(["import", "issues.csv", "--repo", "octo/demo", "--dry-run"]) == 0
    assert patched_session[-1].preview
    assert fake_transport.mutations() == []
    assert "Import summary (dry-run)" in capsys.readouterr().out

    assert cli.main(["import", "issues.csv", "--repo", "octo/demo", "--auto-labels"]) == 0
    creates = fake_transport.calls_matching("issue", "create")
    assert len(creates) == 1
    assert extract_identity(creates[0][1]) == TOKEN
    assert any("--add-label" in args for args, _ in fake_transport.calls)


def test_import_flags_are_mutually_exclusive(workdir: Path) -> None:
    with pytest.raises(SystemExit):
        cli.main(["import", "issues.csv", "--create-only", "--update-only"])


def test_export_writes_json(workdir: Path, patched_session, fake_transport) -> None:
    from issueledger.models import Issue  # noqa: PLC0415

    issue = Issue(identity=TOKEN, title="Create login page", description="Body", scope="core")
    fake_transport.respond(
        ("issue", "list"),
        [
            {
                "number": 4,
                "title": issue.title,
                "body": compose_body(TOKEN, compute_content_hash(issue), "Body"),
                "labels": [{"name": "scope:core"}],
                "milestone": None,
            }
        ],
    )
    assert cli.main(["export", "--repo", "octo/demo", "--output", "out.json"]) == 0
    data = json.loads((workdir / "out.json").read_text(encoding="utf-8"))
    assert data["issues"][0]["GFS_ID"] == TOKEN
    assert data["issues"][0]["Scope"] == "core"
    assert patched_session[0].repo == "octo/demo"


def test_migrate_without_tty_fails_cleanly(workdir: Path, monkeypatch, capsys) -> None:
    monkeypatch.setattr(sys, "stdin", io.StringIO())
    assert cli.main(["init-config", "--repo", "octo/demo"]) == 0
    (workdir / "issues.csv").write_text(f"GFS_ID,Title,Scope\n{TOKEN},A,web\n", encoding="utf-8")
    assert cli.main(["migrate", "issues.csv"]) == 1
    assert "requires a TTY" in capsys.readouterr().err


def test_board_setup_records_field_ids(workdir: Path, patched_session, fake_transport) -> None:
    assert cli.main(["init-config", "--repo", "octo/demo"]) == 0
    fields = [
        {"id": "F1", "name": "Scope", "options": [{"id": "O1", "name": "frontend"}]},
        {"id": "F2", "name": "Size", "options": [{"id": "O2", "name": "M"}]},
        {"id": "F3", "name": "Priority", "options": [{"id": "O3", "name": "P1"}]},
    ]
    fake_transport.respond(("project", "view"), {"id": "PVT_9"})
    fake_transport.respond(("project", "field-list"), {"fields": fields})

    assert cli.main(["board-setup", "--owner", "octo", "--number", "2"]) == 0

    saved = yaml.safe_load((workdir / ".issueledger.yaml").read_text(encoding="utf-8"))
    assert saved["project"]["id"] == "PVT_9"
    assert saved["project"]["fields"]["size"] == {"id": "F2", "options": {"M": "O2"}}
    assert fake_transport.calls_matching("project", "field-create") == []


def test_migrate_without_tty_fails_even_when_values_are_valid(workdir: Path, monkeypatch) -> None:
    monkeypatch.setattr(sys, "stdin", io.StringIO())
    assert cli.main(["init-config", "--repo", "octo/demo"]) == 0
    dataset = f"GFS_ID,Title,Scope\n{TOKEN},A,frontend\n"
    (workdir / "issues.csv").write_text(dataset, encoding="utf-8")
    assert cli.main(["migrate", "issues.csv"]) == 1
    assert (workdir / "issues.csv").read_text(encoding="utf-8") == dataset
