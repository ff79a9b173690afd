from __future__ import annotations

import io
import sys
from pathlib import Path

import pytest
import yaml

from issueledger.config import default_config, save_config
from issueledger.errors import IssueLedgerError, TerminalRequiredError
from issueledger.formats import read_issues
from issueledger.identity import is_valid_identity
from issueledger.migrate import build_choices, migrate_issues, run_migration
from issueledger.models import Issue
from issueledger.prompt import ScriptedSelector

TOKEN = "1b4e28ba-2fa1-41d2-883f-0016d3cca427"


def _issue(title: str = "A", **overrides):
    base = {"identity": TOKEN, "title": title, "scope": "frontend", "size": "M", "priority": "P1"}
    base.update(overrides)
    return Issue(**base)


def test_build_choices_layout():
    choices = build_choices("scope", "web", ["frontend", "backend"])
    assert [c.label for c in choices] == [
        'Add "web" to Scope list',
        'Map to "frontend"',
        'Map to "backend"',
        "Skip (leave as-is)",
    ]
    assert choices[1].target == "frontend"


def test_valid_values_never_prompt():
    selector = ScriptedSelector([])
    result = migrate_issues([_issue()], default_config(), selector)
    assert selector.prompts == []
    assert not result.config_changed


def test_map_records_alias_and_is_cached():
    cfg = default_config()
    selector = ScriptedSelector(["map:frontend"])
    issues = [_issue("A", scope="web"), _issue("B", scope="web")]
    result = migrate_issues(issues, cfg, selector)

    assert [i.scope for i in issues] == ["frontend", "frontend"]
    assert len(selector.prompts) == 1
    assert selector.prompts[0] == 'Invalid Scope: "web". Choose how to handle:'
    assert cfg.scope_aliases == {"web": "frontend"}
    assert result.aliased == {"scope": {"web": "frontend"}}
    assert result.config_changed


def test_add_extends_vocabulary():
    cfg = default_config()
    result = migrate_issues([_issue(size="XXXL")], cfg, ScriptedSelector(["add"]))
    assert "XXXL" in cfg.sizes
    assert result.added == {"size": ["XXXL"]}


def test_skip_leaves_value_untouched():
    cfg = default_config()
    issues = [_issue(priority="urgent")]
    result = migrate_issues(issues, cfg, ScriptedSelector(["skip"]))
    assert issues[0].priority == "urgent"
    assert cfg.priorities == ["P0", "P1", "P2", "P3"]
    assert not result.config_changed


def test_existing_alias_applies_without_prompt():
    cfg = default_config()
    cfg.scope_aliases["fe"] = "frontend"
    selector = ScriptedSelector([])
    issues = [_issue(scope="fe")]
    result = migrate_issues(issues, cfg, selector)
    assert issues[0].scope == "frontend"
    assert result.auto_applied == 1
    assert selector.prompts == []


def test_missing_identity_is_minted():
    issues = [_issue(identity=None)]
    result = migrate_issues(issues, default_config(), ScriptedSelector([]))
    assert result.minted == 1
    assert is_valid_identity(issues[0].identity)


def test_exhausted_script_raises():
    with pytest.raises(IssueLedgerError, match="No scripted answer"):
        migrate_issues([_issue(scope="web")], default_config(), ScriptedSelector([]))


def test_run_migration_writes_dataset_and_config(tmp_path: Path):
    cfg_path = tmp_path / ".issueledger.yaml"
    save_config(default_config("octo/demo"), cfg_path)
    data = tmp_path / "issues.csv"
    data.write_text(
        "GFS_ID,Title,Milestone,Scope,Size,Priority,Description\n"
        f"{TOKEN},First,v1.0.0,web,M,P1,desc\n",
        encoding="utf-8",
    )
    out = tmp_path / "out.csv"

    result = run_migration(data, out, cfg_path, selector=ScriptedSelector(["map:frontend"]))

    assert result.aliased == {"scope": {"web": "frontend"}}
    migrated = read_issues(out)
    assert migrated[0].scope == "frontend"
    saved = yaml.safe_load(cfg_path.read_text(encoding="utf-8"))
    assert saved["scope_aliases"] == {"web": "frontend"}
    assert saved["repository"] == "octo/demo"


def test_run_migration_with_empty_dataset(tmp_path: Path):
    cfg_path = tmp_path / ".issueledger.yaml"
    save_config(default_config(), cfg_path)
    data = tmp_path / "issues.csv"
    data.write_text("GFS_ID,Title\n", encoding="utf-8")
    result = run_migration(data, config_path=cfg_path, selector=ScriptedSelector([]))
    assert result.issues == []


def test_run_migration_without_terminal_fails_before_writing(tmp_path: Path, monkeypatch):
    monkeypatch.setattr(sys, "stdin", io.StringIO())
    cfg_path = tmp_path / ".issueledger.yaml"
    save_config(default_config(), cfg_path)
    config_before = cfg_path.read_text(encoding="utf-8")
    data = tmp_path / "issues.csv"
    original = f"GFS_ID,Title,Scope\n{TOKEN},A,frontend\n"
    data.write_text(original, encoding="utf-8")

    with pytest.raises(TerminalRequiredError):
        run_migration(data, config_path=cfg_path)

    assert data.read_text(encoding="utf-8") == original
    assert cfg_path.read_text(encoding="utf-8") == config_before
