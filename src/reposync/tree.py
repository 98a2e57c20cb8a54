"""Tree composition: overlay a change-set onto a branch's existing tree."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .changes import FileChange
from .objects import FILEMODE_BLOB, BlobRef, RepositoryRef, TreeEntry
from .store.base import RemoteStore

logger = logging.getLogger(__name__)


def overlay_entries(changes: Sequence[FileChange], blobs: Sequence[BlobRef]) -> list[TreeEntry]:
    """Pair every change with its blob id, or ``None`` for a deletion.

    *blobs* must hold exactly one :class:`BlobRef` per non-delete change.
    """
    by_path = {b.path: b.object_id for b in blobs}
    entries = []
    for change in changes:
        if change.is_delete:
            entries.append(TreeEntry(change.path, None, FILEMODE_BLOB))
            continue
        try:
            object_id = by_path[change.path]
        except KeyError:
            raise ValueError(f"No blob was created for {change.path!r}")
        entries.append(TreeEntry(change.path, object_id, FILEMODE_BLOB))
    return entries


def compose_tree(
    store: RemoteStore,
    repo: RepositoryRef,
    base_tree_id: str | None,
    entries: Sequence[TreeEntry],
) -> str:
    """Create a tree equal to *base_tree_id* with *entries* overlaid.

    Paths not named in *entries* keep their existing object ids; nothing
    outside the overlay is re-uploaded. *base_tree_id* is ``None`` for the
    first commit of an empty repository.
    """
    tree_id = store.create_tree(repo, base_tree_id, entries)
    logger.debug(
        "Composed tree %s from %s with %d entr%s",
        tree_id[:7], base_tree_id[:7] if base_tree_id else "empty",
        len(entries), "y" if len(entries) == 1 else "ies",
    )
    return tree_id
