"""Change-set normalization and validation.

A change-set arrives from an untrusted producer (often generated JSON), so
every entry is re-validated into a strict :class:`FileChange` before
anything touches the remote store.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum

from ._paths import _normalize_path
from .exceptions import ValidationError

__all__ = [
    "ChangeKind",
    "FileChange",
    "ChangeSummary",
    "normalize_changes",
    "summarize",
    "format_commit_message",
]

_PLACEHOLDER_RE = re.compile(r"\{(default|create_count|update_count|delete_count|total_count)\}")


class ChangeKind(str, Enum):
    """Kind of a proposed change: ``CREATE``, ``UPDATE``, or ``DELETE``."""
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"

    def __str__(self) -> str:          # noqa: D105
        return self.value


@dataclass(frozen=True, slots=True)
class FileChange:
    """A single proposed file change.

    ``content`` is ``None`` for deletions and set (possibly empty) for
    creations and updates.
    """

    path: str
    kind: ChangeKind
    content: str | bytes | None = None

    def __post_init__(self):
        if self.kind is ChangeKind.DELETE:
            if self.content is not None:
                raise ValidationError("Delete must not carry content", self.path)
        elif self.content is None:
            raise ValidationError(f"{self.kind.value.capitalize()} requires content", self.path)
        elif not isinstance(self.content, (str, bytes)):
            raise ValidationError("Content must be a string or bytes", self.path)

    @property
    def is_delete(self) -> bool:
        return self.kind is ChangeKind.DELETE

    def data(self) -> bytes:
        """Return the content as bytes (UTF-8 for text)."""
        if self.content is None:
            raise ValueError(f"Delete of {self.path!r} has no content")
        if isinstance(self.content, bytes):
            return self.content
        return self.content.encode("utf-8")

    @classmethod
    def create(cls, path: str, content: str | bytes) -> FileChange:
        return cls(path, ChangeKind.CREATE, content)

    @classmethod
    def update(cls, path: str, content: str | bytes) -> FileChange:
        return cls(path, ChangeKind.UPDATE, content)

    @classmethod
    def delete(cls, path: str) -> FileChange:
        return cls(path, ChangeKind.DELETE)


_KIND_KEYS = ("changeKind", "change_kind")


def _parse_kind(value, path) -> ChangeKind | None:
    if value is None:
        return None
    if isinstance(value, ChangeKind):
        return value
    try:
        return ChangeKind(value)
    except ValueError:
        raise ValidationError(f"Unknown change kind {value!r}", path)


def _coerce(raw, exists: Callable[[str], bool] | None) -> FileChange:
    if isinstance(raw, FileChange):
        return FileChange(_normalize_path(raw.path), raw.kind, raw.content)
    if not isinstance(raw, Mapping):
        raise ValidationError(f"Change entry must be an object, got {type(raw).__name__}")

    path = raw.get("path")
    if path is None:
        raise ValidationError("Change entry has no 'path'")
    path = _normalize_path(path)

    kind_value = next((raw[k] for k in _KIND_KEYS if k in raw), None)
    kind = _parse_kind(kind_value, path)
    has_content = raw.get("content") is not None

    if kind is None:
        if not has_content:
            raise ValidationError("Change without content must declare changeKind 'delete'", path)
        if exists is not None and not exists(path):
            kind = ChangeKind.CREATE
        else:
            kind = ChangeKind.UPDATE

    return FileChange(path, kind, raw.get("content"))


def normalize_changes(
    raw: Iterable[FileChange | Mapping],
    *,
    exists: Callable[[str], bool] | None = None,
) -> list[FileChange]:
    """Validate and normalize a caller-supplied change-set.

    Leading slashes are stripped; empty paths, empty segments, ``.`` and
    ``..`` segments are rejected. Entries without ``changeKind`` default
    to ``update`` when they carry content, or to ``create`` when the
    optional *exists* predicate reports the path as new.

    Raises:
        ValidationError: For any malformed entry, a duplicate path, a path
            written as a file while another change lies beneath it, or an
            empty change-set.
    """
    changes: list[FileChange] = []
    seen: set[str] = set()
    for entry in raw:
        change = _coerce(entry, exists)
        if change.path in seen:
            raise ValidationError("Duplicate path in change-set", change.path)
        seen.add(change.path)
        changes.append(change)
    if not changes:
        raise ValidationError("Change-set is empty")
    directories: set[str] = set()
    for path in seen:
        parts = path.split("/")[:-1]
        directories.update("/".join(parts[:i]) for i in range(1, len(parts) + 1))
    for change in changes:
        if change.kind is not ChangeKind.DELETE and change.path in directories:
            raise ValidationError("Path is both a file and a directory in change-set", change.path)
    return changes


@dataclass(frozen=True, slots=True)
class ChangeSummary:
    create: tuple[str, ...] = ()
    update: tuple[str, ...] = ()
    delete: tuple[str, ...] = ()

    @property
    def total(self) -> int:
        return len(self.create) + len(self.update) + len(self.delete)


def summarize(changes: Iterable[FileChange]) -> ChangeSummary:
    buckets: dict[ChangeKind, list[str]] = {k: [] for k in ChangeKind}
    for c in changes:
        buckets[c.kind].append(c.path)
    return ChangeSummary(
        create=tuple(buckets[ChangeKind.CREATE]),
        update=tuple(buckets[ChangeKind.UPDATE]),
        delete=tuple(buckets[ChangeKind.DELETE]),
    )


def format_commit_message(changes: Iterable[FileChange], custom_message: str | None = None) -> str:
    """Generate a commit message for a change-set.

    Args:
        changes: The normalized change-set.
        custom_message: Custom message (overrides auto-generation).
            Supports placeholders: ``{default}``, ``{create_count}``,
            ``{update_count}``, ``{delete_count}``, ``{total_count}``.
            Any other brace text is kept as written.
    """
    summary = summarize(changes)
    if custom_message:
        values = {
            "default": _auto_message(summary),
            "create_count": str(len(summary.create)),
            "update_count": str(len(summary.update)),
            "delete_count": str(len(summary.delete)),
            "total_count": str(summary.total),
        }
        return _PLACEHOLDER_RE.sub(lambda m: values[m.group(1)], custom_message)
    return _auto_message(summary)


def _auto_message(summary: ChangeSummary) -> str:
    if summary.total == 0:
        return "No changes"

    # Single change - use +/~/- notation
    if summary.total == 1:
        if summary.create:
            return f"+ {summary.create[0]}"
        if summary.update:
            return f"~ {summary.update[0]}"
        return f"- {summary.delete[0]}"

    parts = []
    if summary.create:
        parts.append(f"+{len(summary.create)}")
    if summary.update:
        parts.append(f"~{len(summary.update)}")
    if summary.delete:
        parts.append(f"-{len(summary.delete)}")
    return "Deploy: " + " ".join(parts)
