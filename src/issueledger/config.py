from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, cast

import yaml

from .errors import ConfigError

CONFIG_DEFAULT = ".issueledger.yaml"
CONFIG_VERSION = "1.0.0"

DEFAULT_SCOPES = [
    "frontend",
    "backend",
    "core",
    "ui",
    "middleware",
    "devops",
    "documentation",
    "other",
]
DEFAULT_SIZES = ["XS", "S", "M", "L", "XL", "XXL"]
DEFAULT_PRIORITIES = ["P0", "P1", "P2", "P3"]
DEFAULT_MILESTONES = ["v1.0.0", "v2.0.0"]

# classification field -> (vocabulary attribute, alias attribute)
VOCABULARY_ATTRS = {
    "scope": ("scopes", "scope_aliases"),
    "size": ("sizes", "size_aliases"),
    "priority": ("priorities", "priority_aliases"),
}


@dataclass
class BoardField:
    id: str
    options: dict[str, str] = field(default_factory=dict)


@dataclass
class BoardConfig:
    """Secondary board (GitHub Project v2) descriptor."""

    owner: str
    number: int
    id: str | None = None
    fields: dict[str, BoardField] = field(default_factory=dict)

    @property
    def key(self) -> tuple[str, int]:
        return (self.owner, self.number)


@dataclass
class RepoConfig:
    version: str = CONFIG_VERSION
    repository: str = ""
    scopes: list[str] = field(default_factory=list)
    sizes: list[str] = field(default_factory=list)
    priorities: list[str] = field(default_factory=list)
    milestones: list[str] = field(default_factory=list)
    scope_aliases: dict[str, str] = field(default_factory=dict)
    size_aliases: dict[str, str] = field(default_factory=dict)
    priority_aliases: dict[str, str] = field(default_factory=dict)
    project: BoardConfig | None = None
    logging_json: bool = False
    logging_level: str = "INFO"
    source_file: Path | None = None

    def vocabulary(self, field_name: str) -> list[str]:
        list_attr, _ = VOCABULARY_ATTRS[field_name]
        return cast(list[str], getattr(self, list_attr))

    def aliases(self, field_name: str) -> dict[str, str]:
        _, alias_attr = VOCABULARY_ATTRS[field_name]
        return cast(dict[str, str], getattr(self, alias_attr))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "version": self.version,
            "repository": self.repository,
            "scopes": list(self.scopes),
            "sizes": list(self.sizes),
            "priorities": list(self.priorities),
            "milestones": list(self.milestones),
            "scope_aliases": dict(self.scope_aliases),
            "size_aliases": dict(self.size_aliases),
            "priority_aliases": dict(self.priority_aliases),
        }
        if self.project is not None:
            proj: dict[str, Any] = {"owner": self.project.owner, "number": self.project.number}
            if self.project.id:
                proj["id"] = self.project.id
            if self.project.fields:
                proj["fields"] = {
                    name: {"id": f.id, "options": dict(f.options)}
                    for name, f in self.project.fields.items()
                }
            data["project"] = proj
        if self.logging_json or self.logging_level != "INFO":
            data["logging"] = {"json": self.logging_json, "level": self.logging_level}
        return data


def _str_list(raw: Any, key: str) -> list[str]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigError(f"'{key}' must be a list")
    return [str(v) for v in raw if v is not None and str(v).strip()]


def _str_map(raw: Any, key: str) -> dict[str, str]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"'{key}' must be a mapping")
    return {str(k): str(v) for k, v in raw.items()}


def _parse_board(raw: Any) -> BoardConfig | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ConfigError("'project' must be a mapping")
    owner = raw.get("owner")
    number = raw.get("number")
    if not owner or number is None:
        raise ConfigError("'project' requires 'owner' and 'number'")
    try:
        number_int = int(number)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'project.number' must be an integer, got {number!r}") from exc
    fields: dict[str, BoardField] = {}
    raw_fields = raw.get("fields") or {}
    if not isinstance(raw_fields, dict):
        raise ConfigError("'project.fields' must be a mapping")
    for name, entry in raw_fields.items():
        if not isinstance(entry, dict) or not entry.get("id"):
            continue
        fields[str(name).lower()] = BoardField(
            id=str(entry["id"]), options=_str_map(entry.get("options"), f"project.fields.{name}.options")
        )
    project_id = raw.get("id")
    return BoardConfig(
        owner=str(owner),
        number=number_int,
        id=str(project_id) if project_id else None,
        fields=fields,
    )


def parse_config(raw: dict[str, Any], source_file: Path | None = None) -> RepoConfig:
    logging_cfg = cast(dict[str, Any], raw.get("logging", {}) or {})
    return RepoConfig(
        version=str(raw.get("version", CONFIG_VERSION)),
        repository=str(raw.get("repository") or ""),
        scopes=_str_list(raw.get("scopes"), "scopes"),
        sizes=_str_list(raw.get("sizes"), "sizes"),
        priorities=_str_list(raw.get("priorities"), "priorities"),
        milestones=_str_list(raw.get("milestones"), "milestones"),
        scope_aliases=_str_map(raw.get("scope_aliases"), "scope_aliases"),
        size_aliases=_str_map(raw.get("size_aliases"), "size_aliases"),
        priority_aliases=_str_map(raw.get("priority_aliases"), "priority_aliases"),
        project=_parse_board(raw.get("project")),
        logging_json=bool(logging_cfg.get("json", False)),
        logging_level=str(logging_cfg.get("level", "INFO")),
        source_file=source_file,
    )


def load_config(path: str | Path | None = None) -> RepoConfig:
    """Load a repository config (YAML; JSON documents parse as well)."""
    p = Path(path or CONFIG_DEFAULT)
    if not p.exists():
        raise ConfigError(
            f"Config file not found: {p}\n\nRun 'issueledger init-config' to create one."
        )
    try:
        raw_any = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to load config {p}: {exc}") from exc
    if not isinstance(raw_any, dict):
        raise ConfigError(f"Config file {p} must contain a mapping")
    return parse_config(cast(dict[str, Any], raw_any), source_file=p)


def save_config(cfg: RepoConfig, path: str | Path | None = None) -> Path:
    p = Path(path or cfg.source_file or CONFIG_DEFAULT)
    p.write_text(yaml.safe_dump(cfg.to_dict(), sort_keys=False, allow_unicode=True), encoding="utf-8")
    cfg.source_file = p
    return p


def default_config(repository: str | None = None) -> RepoConfig:
    return RepoConfig(
        repository=repository or "owner/repo",
        scopes=list(DEFAULT_SCOPES),
        sizes=list(DEFAULT_SIZES),
        priorities=list(DEFAULT_PRIORITIES),
        milestones=list(DEFAULT_MILESTONES),
    )


__all__ = [
    "BoardConfig",
    "BoardField",
    "CONFIG_DEFAULT",
    "RepoConfig",
    "default_config",
    "load_config",
    "parse_config",
    "save_config",
]
