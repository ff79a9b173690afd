"""Runtime helpers for CLI orchestration: config/repo resolution and error reporting."""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

from .config import CONFIG_DEFAULT, RepoConfig, load_config
from .errors import ConfigError, IssueLedgerError, classify_error, redact
from .gitremote import detect_github_repo
from .logging import configure_logging, get_logger
from .ux import print_error

QUIET_ENV = "ISSUELEDGER_QUIET"

# commands that never read a config file
NO_CONFIG_COMMANDS = {"init-config", "init", "validate-config"}
# commands that cannot run without one
CONFIG_REQUIRED_COMMANDS = {"migrate", "board-setup"}


class _HandlerCallable(Protocol):
    def __call__(self) -> Any: ...


def prepare_config(
    args: Any, *, loader: Callable[[str | Path | None], RepoConfig] = load_config
) -> RepoConfig | None:
    """Load the RepoConfig a command needs.

    An explicit ``--config`` must exist. When the default file is absent,
    commands that only use the config for vocabularies fall back to an
    empty config.
    """
    command = getattr(args, "cmd", None)
    if command in NO_CONFIG_COMMANDS:
        return None
    explicit = getattr(args, "config", None)
    path = Path(explicit or CONFIG_DEFAULT)
    if explicit or path.exists() or command in CONFIG_REQUIRED_COMMANDS:
        return loader(path)
    get_logger().debug(f"No config file at {path}; using empty vocabularies")
    return RepoConfig()


def setup_logging(args: Any, cfg: RepoConfig | None) -> None:
    quiet = bool(getattr(args, "quiet", False)) or os.environ.get(QUIET_ENV) == "1"
    json_logs = bool(getattr(args, "json_logs", False)) or bool(cfg and cfg.logging_json)
    level = getattr(args, "log_level", None) or (cfg.logging_level if cfg else "INFO")
    if quiet:
        level = "WARNING"
    configure_logging(json_logging=json_logs, level=level)


def resolve_repo(
    args: Any, cfg: RepoConfig | None, *, detector: Callable[[], str | None] = detect_github_repo
) -> str:
    """``--repo`` wins, then the config's ``repository``, then the git origin remote."""
    explicit = getattr(args, "repo", None)
    if explicit:
        return str(explicit)
    if cfg is not None and cfg.repository:
        return cfg.repository
    detected = detector()
    if detected:
        get_logger().info(f"Detected repository from git remote: {detected}")
        return detected
    raise ConfigError(
        "Could not determine repository. Pass --repo owner/repo or set 'repository' in the config."
    )


def execute_command(handler: _HandlerCallable, command: str) -> int:
    """Run a command handler, turning reportable failures into exit code 1."""
    logger = get_logger()
    try:
        result = handler()
    except KeyboardInterrupt:
        print_error("Aborted")
        return 1
    except (IssueLedgerError, OSError, ValueError) as exc:
        info = classify_error(exc)
        logger.debug(
            f"{command} failed",
            category=info.category,
            transient=info.transient,
            original_type=info.original_type,
        )
        print_error(redact(str(exc)))
        return 1
    return int(result) if result is not None else 0


__all__ = ["execute_command", "prepare_config", "resolve_repo", "setup_logging"]
