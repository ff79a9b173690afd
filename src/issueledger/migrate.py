"""Interactive normalization of classification values against the config.

For every issue and every classification field whose value is outside a
non-empty vocabulary, a configured alias is applied first. Remaining values
are put to the selector once per distinct value (cached per field):

* add   : append the value to the vocabulary
* map   : replace the value with a vocabulary entry and remember the alias
* skip  : leave the value as-is

The updated dataset and config are written once, after all issues have been
processed.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from .config import RepoConfig, load_config, save_config
from .formats import read_issues, write_issues
from .identity import generate_identity
from .logging import get_logger
from .models import CLASSIFICATION_FIELDS, Issue
from .prompt import Choice, Selector, TerminalSelector

ACTION_ADD = "add"
ACTION_MAP = "map"
ACTION_SKIP = "skip"


@dataclass
class MigrationResult:
    issues: list[Issue]
    added: dict[str, list[str]] = field(default_factory=dict)
    aliased: dict[str, dict[str, str]] = field(default_factory=dict)
    auto_applied: int = 0
    minted: int = 0

    @property
    def config_changed(self) -> bool:
        return any(self.added.values()) or any(self.aliased.values())


def build_choices(field_name: str, value: str, allowed: Sequence[str]) -> list[Choice]:
    label = field_name.capitalize()
    return [
        Choice(f'Add "{value}" to {label} list', ACTION_ADD),
        *[Choice(f'Map to "{opt}"', ACTION_MAP, opt) for opt in allowed],
        Choice("Skip (leave as-is)", ACTION_SKIP),
    ]


class _FieldResolver:
    def __init__(self, field_name: str, config: RepoConfig, selector: Selector, result: MigrationResult):
        self.field_name = field_name
        self.config = config
        self.selector = selector
        self.result = result
        self.cache: dict[str, str] = {}
        self.logger = get_logger()

    def resolve(self, value: str) -> str:
        allowed = self.config.vocabulary(self.field_name)
        if not allowed or value in allowed:
            return value
        if value in self.cache:
            return self.cache[value]
        aliases = self.config.aliases(self.field_name)
        target = aliases.get(value)
        if target is not None and target in allowed:
            self.result.auto_applied += 1
            self.cache[value] = target
            return target
        choice = self.selector.select(
            f'Invalid {self.field_name.capitalize()}: "{value}". Choose how to handle:',
            build_choices(self.field_name, value, allowed),
        )
        normalized = value
        if choice.action == ACTION_ADD:
            if value not in allowed:
                allowed.append(value)
            self.result.added.setdefault(self.field_name, []).append(value)
        elif choice.action == ACTION_MAP and choice.target:
            normalized = choice.target
            aliases[value] = choice.target
            self.result.aliased.setdefault(self.field_name, {})[value] = choice.target
        self.logger.debug(
            f"{self.field_name} '{value}' -> {choice.action}",
            field=self.field_name,
            value=value,
            choice=choice.action,
        )
        self.cache[value] = normalized
        return normalized


def migrate_issues(issues: Sequence[Issue], config: RepoConfig, selector: Selector) -> MigrationResult:
    """Normalize ``issues`` in place; ``config`` is updated with additions and aliases."""
    result = MigrationResult(issues=list(issues))
    resolvers = {name: _FieldResolver(name, config, selector, result) for name in CLASSIFICATION_FIELDS}
    for issue in result.issues:
        if not issue.identity:
            issue.identity = generate_identity()
            result.minted += 1
        for name in CLASSIFICATION_FIELDS:
            value = getattr(issue, name)
            if value:
                setattr(issue, name, resolvers[name].resolve(value))
    return result


def run_migration(
    input_path: str | Path,
    output_path: str | Path | None = None,
    config_path: str | Path | None = None,
    selector: Selector | None = None,
) -> MigrationResult:
    logger = get_logger()
    if selector is None:
        terminal = TerminalSelector()
        terminal.ensure_terminal()
        selector = terminal
    config = load_config(config_path)
    issues = read_issues(input_path)
    if not issues:
        logger.info("No issues found to migrate.")
        return MigrationResult(issues=[])
    result = migrate_issues(issues, config, selector)
    out = write_issues(output_path or input_path, result.issues)
    saved = save_config(config, config_path or config.source_file)
    logger.info(f"Migrated {len(result.issues)} issues -> {out}", output=str(out))
    logger.info(f"Updated config with any new values/aliases: {saved}", config=str(saved))
    return result


__all__ = ["MigrationResult", "build_choices", "migrate_issues", "run_migration"]
