"""GitHub Project (v2) board mirroring over the ``gh project`` commands.

Features:
    * Classification values (scope/size/priority) mirrored to single-select fields
    * Per-run caching of project ids, field metadata and item listings on the
      session's ``RunCache`` (invalidated after item-add / field-create)
    * Option name -> ID mapping (exact match first, then case-insensitive)
    * Field provisioning for ``board-setup`` (creates missing single-select fields)

A missing option or field never fails the run; it is logged and skipped.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from .config import BoardConfig, BoardField
from .errors import TransportError
from .logging import get_logger
from .models import CLASSIFICATION_FIELDS, Issue
from .session import SyncSession

ITEM_LIST_LIMIT = 1000
FIELD_LIST_LIMIT = 200
PROJECT_LIST_LIMIT = 200

FIELD_TEXT = "text"
FIELD_OPTION = "option"
FIELD_NESTED = "nested"
FIELD_EMPTY = "empty"


@dataclass(frozen=True)
class FieldValue:
    kind: str
    text: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.kind == FIELD_EMPTY


def decode_field_value(raw: Any) -> FieldValue:
    """Decode a board item field value as returned by ``gh project item-list``.

    Plain strings and numbers decode as ``text``; single-select payloads
    (objects with ``name``/``optionId``) as ``option``; any other object or
    list as ``nested`` (first textual member wins); ``None`` and blanks as
    ``empty``.
    """
    if raw is None:
        return FieldValue(FIELD_EMPTY)
    if isinstance(raw, bool):
        return FieldValue(FIELD_TEXT, str(raw).lower())
    if isinstance(raw, int | float):
        return FieldValue(FIELD_TEXT, str(raw))
    if isinstance(raw, str):
        return FieldValue(FIELD_TEXT, raw) if raw.strip() else FieldValue(FIELD_EMPTY)
    if isinstance(raw, Mapping):
        if "optionId" in raw or ("name" in raw and "id" in raw):
            name = raw.get("name")
            if isinstance(name, str) and name.strip():
                return FieldValue(FIELD_OPTION, name)
            return FieldValue(FIELD_EMPTY)
        for key in ("name", "text", "title", "value", "login"):
            inner = raw.get(key)
            if isinstance(inner, str) and inner.strip():
                return FieldValue(FIELD_NESTED, inner)
        return FieldValue(FIELD_EMPTY)
    if isinstance(raw, Sequence):
        parts = [decode_field_value(v) for v in raw]
        texts = [p.text for p in parts if p.text]
        if texts:
            return FieldValue(FIELD_NESTED, ", ".join(texts))
        return FieldValue(FIELD_EMPTY)
    return FieldValue(FIELD_TEXT, str(raw))


def lookup_option(options: Mapping[str, str], value: str) -> str | None:
    if value in options:
        return options[value]
    folded = value.casefold()
    for name, option_id in options.items():
        if name.casefold() == folded:
            return option_id
    return None


def field_display_name(field_name: str) -> str:
    return field_name.capitalize()


class BoardClient:
    """Thin ``gh project`` wrapper sharing the session's cache."""

    def __init__(self, session: SyncSession):
        self.session = session
        self.logger = get_logger()

    @property
    def transport(self) -> Any:
        return self.session.transport

    def list_projects(self, owner: str) -> list[dict[str, Any]]:
        cache = self.session.cache
        if cache.projects is None:
            data = self.transport.invoke_json(
                ["project", "list", "--owner", owner, "--format", "json", "-L", str(PROJECT_LIST_LIMIT)]
            )
            projects = data.get("projects") if isinstance(data, dict) else None
            cache.projects = [p for p in projects or [] if isinstance(p, dict)]
        return cache.projects

    def project_id(self, board: BoardConfig) -> str:
        cache = self.session.cache
        if board.key in cache.project_ids:
            return cache.project_ids[board.key]
        if board.id:
            cache.project_ids[board.key] = board.id
            return board.id
        data = self.transport.invoke_json(
            ["project", "view", str(board.number), "--owner", board.owner, "--format", "json"]
        )
        pid = data.get("id") if isinstance(data, dict) else None
        if not isinstance(pid, str) or not pid:
            raise TransportError(
                f"Could not resolve id for project {board.owner}/{board.number}", str(data)
            )
        cache.project_ids[board.key] = pid
        return pid

    def list_fields(self, board: BoardConfig) -> list[dict[str, Any]]:
        cache = self.session.cache
        if board.key not in cache.board_fields:
            data = self.transport.invoke_json(
                [
                    "project",
                    "field-list",
                    str(board.number),
                    "--owner",
                    board.owner,
                    "--format",
                    "json",
                    "-L",
                    str(FIELD_LIST_LIMIT),
                ]
            )
            fields = data.get("fields") if isinstance(data, dict) else None
            cache.board_fields[board.key] = [f for f in fields or [] if isinstance(f, dict)]
        return cache.board_fields[board.key]

    def list_items(self, board: BoardConfig) -> list[dict[str, Any]]:
        cache = self.session.cache
        if board.key not in cache.board_items:
            data = self.transport.invoke_json(
                [
                    "project",
                    "item-list",
                    str(board.number),
                    "--owner",
                    board.owner,
                    "--format",
                    "json",
                    "-L",
                    str(ITEM_LIST_LIMIT),
                ]
            )
            items = data.get("items") if isinstance(data, dict) else None
            cache.board_items[board.key] = [i for i in items or [] if isinstance(i, dict)]
        return cache.board_items[board.key]

    def find_item(self, board: BoardConfig, url: str) -> dict[str, Any] | None:
        for item in self.list_items(board):
            content = item.get("content") or {}
            if isinstance(content, dict) and content.get("url") == url:
                return item
        return None

    def add_item(self, board: BoardConfig, url: str) -> str:
        data = self.transport.invoke_json(
            ["project", "item-add", str(board.number), "--owner", board.owner, "--url", url, "--format", "json"]
        )
        self.session.cache.invalidate_board_items(board.key)
        item_id = data.get("id") if isinstance(data, dict) else None
        if not isinstance(item_id, str) or not item_id:
            raise TransportError(f"Could not determine board item id for {url}", str(data))
        return item_id

    def set_option(self, *, item_id: str, project_id: str, field_id: str, option_id: str) -> None:
        self.transport.invoke(
            [
                "project",
                "item-edit",
                "--id",
                item_id,
                "--project-id",
                project_id,
                "--field-id",
                field_id,
                "--single-select-option-id",
                option_id,
            ]
        )

    def create_field(self, board: BoardConfig, name: str, options: Sequence[str]) -> None:
        self.transport.invoke_json(
            [
                "project",
                "field-create",
                str(board.number),
                "--owner",
                board.owner,
                "--name",
                name,
                "--data-type",
                "SINGLE_SELECT",
                "--single-select-options",
                ",".join(options),
                "--format",
                "json",
            ]
        )
        self.session.cache.invalidate_board_fields(board.key)


class BoardMirror:
    """Mirror an issue's classification onto its board item."""

    def __init__(self, session: SyncSession, board: BoardConfig, client: BoardClient | None = None):
        self.session = session
        self.board = board
        self.client = client or BoardClient(session)
        self.logger = get_logger()

    def mirror(self, issue: Issue, url: str) -> int:
        """Set board fields for ``issue``; returns the number of field edits made."""
        wanted = {
            name: value
            for name, value in issue.classification().items()
            if value and name in self.board.fields
        }
        if not wanted:
            return 0
        if self.session.preview:
            self.logger.debug(
                f"DRY-RUN board mirror {url or issue.title}: "
                + ", ".join(f"{k}={v}" for k, v in wanted.items()),
                operation="board_preview",
            )
            return 0
        item = self.client.find_item(self.board, url)
        if item is None:
            item_id = self.client.add_item(self.board, url)
            item = {"id": item_id}
        else:
            item_id = str(item.get("id"))
        project_id = self.client.project_id(self.board)
        edits = 0
        for name, value in wanted.items():
            field = self.board.fields[name]
            option_id = lookup_option(field.options, value)
            if option_id is None:
                self.logger.warning(
                    f"Board option '{value}' not found for field {field_display_name(name)}; skipping",
                    field=name,
                    value=value,
                )
                continue
            current = decode_field_value(item.get(name))
            if current.text is not None and current.text.casefold() == value.casefold():
                continue
            self.client.set_option(
                item_id=item_id, project_id=project_id, field_id=field.id, option_id=option_id
            )
            edits += 1
        return edits


def _options_map(payload: Mapping[str, Any]) -> dict[str, str]:
    options: dict[str, str] = {}
    for opt in payload.get("options") or []:
        if isinstance(opt, Mapping) and isinstance(opt.get("id"), str) and isinstance(opt.get("name"), str):
            options[str(opt["name"])] = str(opt["id"])
    return options


def _find_field(fields: Sequence[Mapping[str, Any]], display: str) -> Mapping[str, Any] | None:
    folded = display.casefold()
    for f in fields:
        if str(f.get("name", "")).casefold() == folded:
            return f
    return None


def ensure_board_fields(
    session: SyncSession,
    board: BoardConfig,
    vocabularies: Mapping[str, Sequence[str]],
    client: BoardClient | None = None,
) -> BoardConfig:
    """Make sure Scope/Size/Priority single-select fields exist on the board.

    Missing fields are created with the configured vocabulary as options.
    Returns a new ``BoardConfig`` carrying the project id and the field /
    option id maps read back from the board.
    """
    logger = get_logger()
    client = client or BoardClient(session)
    project_id = client.project_id(board)
    fields = client.list_fields(board)
    created = False
    for name in CLASSIFICATION_FIELDS:
        display = field_display_name(name)
        existing = _find_field(fields, display)
        if existing is not None:
            missing = [v for v in vocabularies.get(name, []) if lookup_option(_options_map(existing), v) is None]
            if missing:
                logger.warning(
                    f"Board field {display} lacks options: {', '.join(missing)}",
                    field=name,
                )
            continue
        vocab = list(vocabularies.get(name, []))
        if not vocab:
            logger.info(f"No vocabulary for {name}; not creating board field {display}", field=name)
            continue
        if session.preview:
            logger.info(f"[DRY-RUN] would create board field {display}", field=name)
            continue
        client.create_field(board, display, vocab)
        logger.info(f"Created board field {display}", field=name, options=len(vocab))
        created = True
    if created:
        fields = client.list_fields(board)
    mapped: dict[str, BoardField] = {}
    for name in CLASSIFICATION_FIELDS:
        payload = _find_field(fields, field_display_name(name))
        if payload is not None and payload.get("id"):
            mapped[name] = BoardField(id=str(payload["id"]), options=_options_map(payload))
    return BoardConfig(owner=board.owner, number=board.number, id=project_id, fields=mapped)


__all__ = [
    "BoardClient",
    "BoardMirror",
    "FieldValue",
    "decode_field_value",
    "ensure_board_fields",
    "lookup_option",
]
