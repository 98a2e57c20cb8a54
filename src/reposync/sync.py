"""Synchronization pipeline: browse a repository and deploy change-sets.

:func:`deploy` turns a change-set into exactly one commit::

    normalize -> resolve ref -> create blobs (parallel) -> compose tree
              -> compose commit -> update ref

The branch head and base tree are read once, at the start, and the ref is
moved only in the final step, so an interrupted deploy leaves the branch
untouched. Blobs, and rarely a tree or commit, may be left unreferenced;
they are inert until a tree points at them.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager

from ._deadline import Deadline
from ._paths import _normalize_path
from .blobs import create_blobs
from .changes import FileChange, format_commit_message, normalize_changes
from .commit import compose_commit
from .exceptions import NotFoundError, Stage, SyncError, ValidationError
from .objects import DeployResult, RepositoryInfo, RepositoryRef
from .pathtree import TreeNode, build_tree
from .refs import resolve_branch, update_branch
from .store.base import RemoteStore
from .tree import compose_tree, overlay_entries

logger = logging.getLogger(__name__)

__all__ = [
    "deploy",
    "fetch_tree",
    "fetch_file_content",
    "ensure_repository",
    "list_repositories",
]


@contextmanager
def _stage(stage: Stage) -> Iterator[None]:
    """Tag any :class:`SyncError` escaping the block with *stage*."""
    try:
        yield
    except SyncError as exc:
        if exc.stage is None:
            exc.stage = stage
        raise


def ensure_repository(
    store: RemoteStore,
    repo: RepositoryRef,
    *,
    private: bool = True,
    description: str | None = None,
) -> RepositoryInfo:
    """Return the repository, creating it empty when it does not exist."""
    try:
        return store.get_repository(repo)
    except NotFoundError:
        logger.info("Repository %s not found, creating it", repo.full_name)
        return store.create_repository(repo, private=private, description=description)


def list_repositories(store: RemoteStore) -> list[RepositoryInfo]:
    """Repositories of the authenticated user, most recently updated first."""
    return store.list_repositories()


def deploy(
    store: RemoteStore,
    repo: RepositoryRef,
    changes: Iterable[FileChange | Mapping],
    message: str | None = None,
    *,
    max_workers: int = 8,
    timeout: float | None = None,
    create_repository: bool = False,
    private: bool = True,
    description: str | None = None,
) -> DeployResult:
    """Apply a change-set to ``repo.branch`` as a single commit.

    Args:
        store: Remote store to write through.
        repo: Target repository; ``repo.branch`` falls back to the default
            branch when it does not exist.
        changes: Raw change entries; re-validated here.
        message: Commit message; generated from the changes when omitted.
            Supports the placeholders of
            :func:`~reposync.changes.format_commit_message`.
        max_workers: Upper bound on concurrent blob uploads.
        timeout: Overall deadline in seconds, or ``None``.
        create_repository: Create the repository (empty) if it is missing.
        private: Visibility of a repository created here.
        description: Description of a repository created here.

    Returns:
        A :class:`DeployResult` with the new commit id and URL.

    Raises:
        SyncError: Any pipeline failure; its ``stage`` attribute names the
            :class:`Stage` that failed. :class:`ConflictError` at
            ``UPDATE_REF`` means another writer won the race; retrying is
            the caller's decision.
    """
    deadline = Deadline(timeout)

    with _stage(Stage.VALIDATE):
        normalized = normalize_changes(changes)
        final_message = format_commit_message(normalized, message)

    with _stage(Stage.RESOLVE):
        deadline.check("branch resolution")
        if create_repository:
            ensure_repository(store, repo, private=private, description=description)
        state = resolve_branch(store, repo)
        logger.info(
            "Deploying %d change(s) to %s/%s at %s",
            len(normalized), repo.full_name, state.branch,
            state.head_commit_id[:7] if state.head_commit_id else "(empty)",
        )

    with _stage(Stage.VALIDATE):
        if state.is_empty:
            deletes = [c.path for c in normalized if c.is_delete]
            if deletes:
                raise ValidationError(
                    "Cannot delete from a repository without commits", deletes[0]
                )

    with _stage(Stage.BLOBS):
        blobs = create_blobs(store, repo, normalized, max_workers=max_workers, deadline=deadline)

    with _stage(Stage.TREE):
        deadline.check("tree composition")
        entries = overlay_entries(normalized, blobs)
        tree_id = compose_tree(store, repo, state.base_tree_id, entries)

    with _stage(Stage.COMMIT):
        deadline.check("commit composition")
        commit = compose_commit(store, repo, tree_id, state.head_commit_id, final_message)

    with _stage(Stage.UPDATE_REF):
        deadline.check("ref update")
        update_branch(store, repo, state.branch, commit.id, state.head_commit_id)

    url = commit.url or store.commit_url(repo, commit.id)
    logger.info("Deployed %s to %s/%s", commit.id[:7], repo.full_name, state.branch)
    return DeployResult(
        commit_id=commit.id,
        commit_url=url,
        branch=state.branch,
        tree_id=tree_id,
        parent_id=state.head_commit_id,
        changes=tuple(normalized),
    )


def fetch_tree(store: RemoteStore, repo: RepositoryRef) -> tuple[TreeNode, ...]:
    """Fetch the head tree of ``repo.branch`` as a nested :class:`TreeNode` tree.

    An empty repository yields an empty tuple.
    """
    state = resolve_branch(store, repo)
    if state.is_empty:
        return ()
    entries, truncated = store.list_tree(repo, state.base_tree_id)
    if truncated:
        logger.warning(
            "Tree listing of %s/%s was truncated; some paths are missing",
            repo.full_name, state.branch,
        )
    return build_tree(entries)


def fetch_file_content(store: RemoteStore, repo: RepositoryRef, path: str) -> bytes:
    """Read one file from the head of ``repo.branch``.

    Raises:
        NotFoundError: If *path* does not exist or is a directory.
    """
    path = _normalize_path(path)
    state = resolve_branch(store, repo)
    if state.is_empty:
        raise NotFoundError(f"File not found: {path} ({repo.full_name} has no commits)")
    return store.read_file(repo, state.head_commit_id, path)
