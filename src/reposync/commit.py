"""Commit composition."""

from __future__ import annotations

import logging

from .exceptions import ValidationError
from .objects import CommitInfo, RepositoryRef
from .store.base import RemoteStore

logger = logging.getLogger(__name__)


def compose_commit(
    store: RemoteStore,
    repo: RepositoryRef,
    tree_id: str,
    parent_commit_id: str | None,
    message: str,
) -> CommitInfo:
    """Create exactly one commit pointing at *tree_id*.

    The commit has no parent only when *parent_commit_id* is ``None``,
    i.e. for the first commit of an empty repository.
    """
    if not message or not message.strip():
        raise ValidationError("Commit message must not be empty")
    parents = [parent_commit_id] if parent_commit_id is not None else []
    commit = store.create_commit(repo, tree_id, parents, message)
    logger.debug("Created commit %s (parents: %s)", commit.id[:7], [p[:7] for p in parents])
    return commit
