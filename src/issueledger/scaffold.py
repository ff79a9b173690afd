"""Scaffolding helpers: starter config and template datasets."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .config import CONFIG_DEFAULT, default_config, save_config
from .errors import ConfigError
from .formats import FORMAT_CSV, FORMAT_JSON, render_csv, render_json
from .identity import generate_identity
from .models import Issue

DATASET_DEFAULTS = {FORMAT_CSV: "issues.csv", FORMAT_JSON: "issues.json"}

CONFIG_HINTS = (
    "repository: GitHub owner/repo",
    "scopes: (optional) Valid scope values for your project",
    "sizes: (optional) Valid t-shirt sizes",
    "priorities: (optional) Valid priority values",
    "milestones: (optional) Valid milestone names",
)


@dataclass
class ScaffoldResult:
    created: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)


def example_issues() -> list[Issue]:
    return [
        Issue(
            identity=generate_identity(),
            title="Create login page",
            milestone="v1.0.0",
            scope="frontend",
            size="M",
            description="Build the main login page with email/password authentication",
        ),
        Issue(
            identity=generate_identity(),
            title="Setup database schema",
            milestone="v1.0.0",
            scope="backend",
            size="L",
            description="Design and implement the initial database schema",
        ),
        Issue(
            identity=generate_identity(),
            title="Write API documentation",
            milestone="v1.0.0",
            scope="documentation",
            size="S",
            description="Document all REST API endpoints with examples and error codes",
        ),
    ]


def empty_issue() -> Issue:
    return Issue(identity=generate_identity(), title="", scope="other", size="M")


def _write_if_needed(path: Path, content: str, force: bool) -> bool:
    if path.exists() and not force:
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8", newline="")
    return True


def init_config(
    output: str | Path | None = None, repository: str | None = None, force: bool = False
) -> Path:
    path = Path(output or CONFIG_DEFAULT)
    if path.exists() and not force:
        raise ConfigError(f"Config file already exists: {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    return save_config(default_config(repository), path)


def init_dataset(
    fmt: str = FORMAT_CSV,
    output: str | Path | None = None,
    *,
    example: bool = False,
    force: bool = False,
) -> ScaffoldResult:
    path = Path(output or DATASET_DEFAULTS[fmt])
    issues = example_issues() if example else [empty_issue()]
    content = render_json(issues) if fmt == FORMAT_JSON else render_csv(issues)
    result = ScaffoldResult()
    if _write_if_needed(path, content, force):
        result.created.append(path)
    else:
        result.skipped.append(path)
    return result


__all__ = [
    "CONFIG_HINTS",
    "ScaffoldResult",
    "empty_issue",
    "example_issues",
    "init_config",
    "init_dataset",
]
