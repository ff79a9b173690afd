"""IssueLedger CLI.

Subcommands:
  init-config      -> write a starter config (vocabularies, repository)
  validate-config  -> load and summarize a config file
  init             -> write a template CSV/JSON dataset
  lint             -> validate a dataset (optionally mint missing identities)
  import           -> reconcile a dataset into GitHub issues
  export           -> write tracked GitHub issues back to a dataset
  migrate          -> interactively normalize scope/size/priority values
  board-setup      -> provision Scope/Size/Priority fields on a project board
"""

from __future__ import annotations

import argparse
import json
from typing import Any

from .config import CONFIG_DEFAULT, BoardConfig, RepoConfig, load_config, save_config
from .env_auth import create_env_auth_manager
from .errors import ConfigError, ValidationFailedError
from .export import default_export_path, export_issues
from .formats import FORMAT_CSV, FORMAT_JSON, detect_format, read_issues, write_issues
from .gitremote import detect_github_repo
from .github_issues import DEFAULT_FETCH_LIMIT
from .logging import get_logger
from .migrate import run_migration
from .project import BoardClient, ensure_board_fields
from .reconcile import ReconcileOptions, Reconciler
from .runtime import execute_command, prepare_config, resolve_repo, setup_logging
from .scaffold import CONFIG_HINTS, init_config, init_dataset
from .session import SyncSession
from .ux import (
    print_info,
    print_reconcile_summary,
    print_success,
    print_summary_box,
    print_validation,
    print_warning,
)
from .validation import validate

REPO_HELP = "Target repository (owner/repo); defaults to config, then git origin"
CONFIG_HELP = f"Config file (default: {CONFIG_DEFAULT})"

_MAX_HELP_WIDTH = 100


class _HelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=30, width=_MAX_HELP_WIDTH)


class _FormatterArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("formatter_class", _HelpFormatter)
        super().__init__(*args, **kwargs)


def _build_parser() -> argparse.ArgumentParser:
    p = _FormatterArgumentParser(
        prog="issueledger", description="Declarative CSV/JSON <-> GitHub issue synchronization"
    )
    p.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress informational logging (env: ISSUELEDGER_QUIET=1)",
    )
    p.add_argument("--json-logs", action="store_true", help="Emit structured JSON log lines")
    p.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Log level")
    sub = p.add_subparsers(
        dest="cmd",
        required=True,
        parser_class=_FormatterArgumentParser,
        metavar="<command>",
    )

    pic = sub.add_parser("init-config", help="Create a starter config file")
    pic.add_argument("--repo", help="Repository to record (default: git origin)")
    pic.add_argument("--output", help=f"Config path (default: {CONFIG_DEFAULT})")
    pic.add_argument("--force", action="store_true", help="Overwrite an existing config")

    pvc = sub.add_parser("validate-config", help="Load and summarize a config file")
    pvc.add_argument("--config", help=CONFIG_HELP)

    pin = sub.add_parser("init", help="Create a template dataset")
    pin.add_argument("--format", choices=[FORMAT_CSV, FORMAT_JSON])
    pin.add_argument("--output", help="Dataset path (default: issues.csv / issues.json)")
    pin.add_argument("--example", action="store_true", help="Include example issues")
    pin.add_argument("--force", action="store_true", help="Overwrite an existing dataset")

    pl = sub.add_parser("lint", help="Validate a dataset")
    pl.add_argument("file")
    pl.add_argument("--config", help=CONFIG_HELP)
    pl.add_argument("--fix", action="store_true", help="Mint identities for missing/invalid GFS_IDs")
    pl.add_argument("--output", help="Where to write the fixed dataset (default: in place)")

    pim = sub.add_parser("import", help="Create/update GitHub issues from a dataset")
    pim.add_argument("file")
    pim.add_argument("--repo", help=REPO_HELP)
    pim.add_argument("--config", help=CONFIG_HELP)
    pim.add_argument("--dry-run", action="store_true", help="Classify only; make no changes")
    only = pim.add_mutually_exclusive_group()
    only.add_argument("--create-only", action="store_true", help="Never update existing issues")
    only.add_argument("--update-only", action="store_true", help="Never create new issues")
    pim.add_argument("--auto-labels", action="store_true", help="Add scope:/size:/priority: labels")
    pim.add_argument(
        "--auto-milestones", action="store_true", help="Create missing milestones on demand"
    )
    pim.add_argument("--verbose", action="store_true", help="Log every gh invocation")
    pim.add_argument("--limit", type=int, default=DEFAULT_FETCH_LIMIT, help="Remote fetch limit")

    pex = sub.add_parser("export", help="Export tracked GitHub issues to a dataset")
    pex.add_argument("--repo", help=REPO_HELP)
    pex.add_argument("--config", help=CONFIG_HELP)
    pex.add_argument("--format", choices=[FORMAT_CSV, FORMAT_JSON])
    pex.add_argument("--output")
    pex.add_argument("--limit", type=int, default=DEFAULT_FETCH_LIMIT, help="Remote fetch limit")

    pm = sub.add_parser("migrate", help="Normalize classification values interactively")
    pm.add_argument("file")
    pm.add_argument("--output", help="Migrated dataset path (default: in place)")
    pm.add_argument("--config", help=CONFIG_HELP)

    pb = sub.add_parser("board-setup", help="Provision project board fields and record their ids")
    pb.add_argument("--config", help=CONFIG_HELP)
    pb.add_argument("--owner", help="Board owner (user or organization)")
    pb.add_argument("--number", type=int, help="Board (project) number")
    pb.add_argument("--dry-run", action="store_true", help="Report missing fields only")
    return p


def _require_cfg(cfg: RepoConfig | None) -> RepoConfig:
    if cfg is None:  # pragma: no cover - defensive guard
        raise ConfigError("Configuration not loaded")
    return cfg


def _load_env_auth() -> None:
    manager = create_env_auth_manager()
    source = manager.token_source()
    get_logger().debug(
        f"GitHub token source: {source or 'gh login'}", dotenv_loaded=manager.dotenv_loaded
    )


def _cmd_init_config(args: argparse.Namespace) -> int:
    repo = args.repo or detect_github_repo()
    path = init_config(args.output, repo, force=args.force)
    print_success(f"Created config file: {path}")
    print("\nEdit this file to customize:")
    for hint in CONFIG_HINTS:
        print(f"  - {hint}")
    return 0


def _cmd_validate_config(args: argparse.Namespace) -> int:
    cfg = load_config(args.config)
    print_success("Config file is valid")
    items: list[tuple[str, str | int]] = [("Repository", cfg.repository or "(unset)")]
    for label, values in (
        ("Scopes", cfg.scopes),
        ("Sizes", cfg.sizes),
        ("Priorities", cfg.priorities),
        ("Milestones", cfg.milestones),
    ):
        if values:
            items.append((label, ", ".join(values)))
    if cfg.project is not None:
        items.append(("Board", f"{cfg.project.owner}#{cfg.project.number}"))
        items.append(("Board fields", ", ".join(sorted(cfg.project.fields)) or "(none)"))
    print_summary_box("Configuration", items)
    return 0


def _cmd_init(args: argparse.Namespace) -> int:
    fmt = args.format or (detect_format(args.output) if args.output else FORMAT_CSV)
    result = init_dataset(fmt, args.output, example=args.example, force=args.force)
    for path in result.created:
        print_success(f"Created {path}")
    for path in result.skipped:
        print_warning(f"Skipped (exists) {path}; use --force to overwrite")
    return 0 if result.created else 1


def _cmd_lint(cfg: RepoConfig, args: argparse.Namespace) -> int:
    issues = read_issues(args.file)
    result = validate(issues, cfg, autofix=args.fix)
    print_validation(result)
    if args.fix:
        out = write_issues(args.output or args.file, issues)
        print_info(f"Wrote {len(issues)} issues to {out}")
    return 0 if result.valid else 1


def _cmd_import(cfg: RepoConfig, args: argparse.Namespace) -> int:
    issues = read_issues(args.file)
    result = validate(issues, cfg)
    if not result.valid:
        print_validation(result)
        raise ValidationFailedError(result)
    for warn in result.warnings:
        print_warning(warn)
    repo = resolve_repo(args, cfg)
    _load_env_auth()
    session = SyncSession.create(repo, preview=args.dry_run, verbose=args.verbose)
    options = ReconcileOptions(
        create_only=args.create_only,
        update_only=args.update_only,
        auto_labels=args.auto_labels,
        auto_milestones=args.auto_milestones,
        limit=args.limit,
    )
    summary = Reconciler(session, cfg, options).run(issues)
    print_reconcile_summary(summary, dry_run=args.dry_run)
    return 0


def _cmd_export(cfg: RepoConfig, args: argparse.Namespace) -> int:
    fmt = args.format or (detect_format(args.output) if args.output else FORMAT_CSV)
    repo = resolve_repo(args, cfg)
    _load_env_auth()
    session = SyncSession.create(repo)
    issues = export_issues(session, limit=args.limit)
    out = write_issues(args.output or default_export_path(fmt), issues, fmt)
    print_success(f"Exported {len(issues)} issues to {out}")
    return 0


def _cmd_migrate(cfg: RepoConfig, args: argparse.Namespace) -> int:
    config_path = args.config or cfg.source_file
    result = run_migration(args.file, args.output, config_path)
    print_success(f"Migrated {len(result.issues)} issues -> {args.output or args.file}")
    if result.config_changed:
        print_info("Updated config with new values/aliases")
    return 0


def _board_from_args(cfg: RepoConfig, args: argparse.Namespace) -> BoardConfig:
    current = cfg.project
    owner = args.owner or (current.owner if current else None)
    number = args.number if args.number is not None else (current.number if current else None)
    if not owner:
        raise ConfigError("Board owner required: pass --owner or set project.owner in the config")
    if number is None:
        raise ConfigError("Board number required: pass --number or set project.number in the config")
    if current is not None and current.owner == owner and current.number == number:
        return current
    return BoardConfig(owner=owner, number=number)


def _print_projects(session: SyncSession, owner: str) -> None:
    projects = BoardClient(session).list_projects(owner)
    for proj in projects:
        print(f"  #{proj.get('number')}  {proj.get('title')}")


def _cmd_board_setup(cfg: RepoConfig, args: argparse.Namespace) -> int:
    _load_env_auth()
    session = SyncSession.create(cfg.repository, preview=args.dry_run)
    if args.number is None and cfg.project is None and args.owner:
        print_info(f"Projects owned by {args.owner}:")
        _print_projects(session, args.owner)
    board = _board_from_args(cfg, args)
    vocabularies = {"scope": cfg.scopes, "size": cfg.sizes, "priority": cfg.priorities}
    updated = ensure_board_fields(session, board, vocabularies)
    if args.dry_run:
        print_info(json.dumps({k: v.id for k, v in updated.fields.items()}, indent=2))
        return 0
    cfg.project = updated
    path = save_config(cfg, args.config or cfg.source_file)
    print_success(f"Recorded {len(updated.fields)} board field(s) in {path}")
    return 0


def _build_handlers(args: argparse.Namespace, cfg: RepoConfig | None) -> dict[str, Any]:
    return {
        "init-config": lambda: _cmd_init_config(args),
        "validate-config": lambda: _cmd_validate_config(args),
        "init": lambda: _cmd_init(args),
        "lint": lambda: _cmd_lint(_require_cfg(cfg), args),
        "import": lambda: _cmd_import(_require_cfg(cfg), args),
        "export": lambda: _cmd_export(_require_cfg(cfg), args),
        "migrate": lambda: _cmd_migrate(_require_cfg(cfg), args),
        "board-setup": lambda: _cmd_board_setup(_require_cfg(cfg), args),
    }


def _dispatch(parser: argparse.ArgumentParser, args: argparse.Namespace) -> int:
    setup_logging(args, None)
    cfg = prepare_config(args)
    if cfg is not None and cfg.source_file is not None:
        setup_logging(args, cfg)
    handler = _build_handlers(args, cfg).get(args.cmd)
    if handler is None:  # pragma: no cover - argparse enforces valid choices
        parser.print_help()
        return 1
    result = handler()
    return int(result) if result is not None else 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return execute_command(lambda: _dispatch(parser, args), args.cmd)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
