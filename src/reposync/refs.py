"""Branch resolution and update.

:func:`resolve_branch` is a small state machine over the possible
states of the target repository:

1. the named branch exists: use its head and tree;
2. the named branch is missing but the repository's default branch
   exists: fall back to the default branch;
3. the repository has no branches at all: an empty state, which is
   how the first commit of a fresh repository starts;
4. anything else has no usable branch: :class:`NotFoundError`.
"""

from __future__ import annotations

import logging

from .exceptions import NotFoundError
from .objects import BranchState, RepositoryRef
from .store.base import RemoteStore

logger = logging.getLogger(__name__)


def _state(store: RemoteStore, repo: RepositoryRef, branch: str, head: str, fallback: bool) -> BranchState:
    commit = store.get_commit(repo, head)
    return BranchState(branch, head, commit.tree_id, fallback=fallback)


def resolve_branch(store: RemoteStore, repo: RepositoryRef) -> BranchState:
    """Resolve ``repo.branch`` to its head commit and tree.

    Returns:
        A :class:`BranchState` naming the branch actually resolved. Its
        ids are ``None`` when the repository has no commits yet.

    Raises:
        NotFoundError: If the repository is missing, or it has branches
            but neither the named nor the default one.
    """
    head = store.get_ref(repo, repo.branch)
    if head is not None:
        return _state(store, repo, repo.branch, head, fallback=False)

    info = store.get_repository(repo)
    default = info.default_branch
    if default and default != repo.branch:
        head = store.get_ref(repo, default)
        if head is not None:
            logger.warning(
                "Branch %r not found in %s, falling back to default branch %r",
                repo.branch, repo.full_name, default,
            )
            return _state(store, repo, default, head, fallback=True)

    branches = store.list_branches(repo)
    if not branches:
        logger.info("Repository %s has no commits yet", repo.full_name)
        return BranchState(repo.branch)

    raise NotFoundError(
        f"Branch {repo.branch!r} not found in {repo.full_name} and no usable "
        f"default branch (existing: {', '.join(sorted(branches))})"
    )


def update_branch(
    store: RemoteStore,
    repo: RepositoryRef,
    branch: str,
    commit_id: str,
    previous_head: str | None,
) -> None:
    """Point *branch* at *commit_id*.

    With a *previous_head* the existing ref is fast-forwarded from it;
    without one the ref did not exist and is created.

    Raises:
        ConflictError: If the branch moved since *previous_head* was read,
            or it appeared since it was found missing.
    """
    if previous_head is not None:
        store.update_ref(repo, branch, commit_id, previous_head)
        logger.info("Moved %s/%s %s -> %s", repo.full_name, branch, previous_head[:7], commit_id[:7])
    else:
        store.create_ref(repo, branch, commit_id)
        logger.info("Created %s/%s at %s", repo.full_name, branch, commit_id[:7])
