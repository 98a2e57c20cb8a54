"""Abstract remote object store.

Every pipeline stage talks to the hosting service through a
:class:`RemoteStore` passed in explicitly, so tests can substitute a
:class:`~reposync.store.local.LocalStore` or any other implementation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from ..objects import CommitInfo, RemoteEntry, RepositoryInfo, RepositoryRef, TreeEntry


class RemoteStore(ABC):
    """Content-addressed object store plus refs for a set of repositories.

    Methods raise :class:`~reposync.exceptions.NotFoundError`,
    :class:`~reposync.exceptions.AuthError`,
    :class:`~reposync.exceptions.ConflictError`, or
    :class:`~reposync.exceptions.RemoteAPIError`; never transport-specific
    exceptions.
    """

    def close(self) -> None:
        """Release network or file resources."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # --- Repositories ---

    @abstractmethod
    def get_repository(self, repo: RepositoryRef) -> RepositoryInfo:
        """Return repository metadata, including its default branch."""

    @abstractmethod
    def create_repository(
        self,
        repo: RepositoryRef,
        *,
        private: bool = True,
        description: str | None = None,
    ) -> RepositoryInfo:
        """Create an empty repository (no initial commit).

        Stores that can set the default branch of an empty repository point
        it at ``repo.branch``; others leave it to the first branch pushed.
        """

    @abstractmethod
    def list_repositories(self) -> list[RepositoryInfo]:
        """Repositories visible to the credential, most recently updated first."""

    # --- Refs ---

    @abstractmethod
    def list_branches(self, repo: RepositoryRef) -> list[str]:
        """Names of all branches; empty for a repository without commits."""

    @abstractmethod
    def get_ref(self, repo: RepositoryRef, branch: str) -> str | None:
        """Commit id the branch points at, or ``None`` if it does not exist."""

    @abstractmethod
    def create_ref(self, repo: RepositoryRef, branch: str, commit_id: str) -> None:
        """Create a branch. ``ConflictError`` if it already exists."""

    @abstractmethod
    def update_ref(self, repo: RepositoryRef, branch: str, commit_id: str, expected: str) -> None:
        """Move an existing branch forward from *expected* to *commit_id*.

        The update is never forced: ``ConflictError`` if the branch no
        longer points at *expected* (or the move is not a fast-forward).
        """

    # --- Objects ---

    @abstractmethod
    def get_commit(self, repo: RepositoryRef, commit_id: str) -> CommitInfo: ...

    @abstractmethod
    def create_blob(self, repo: RepositoryRef, data: bytes) -> str:
        """Store *data* and return its content-derived object id."""

    @abstractmethod
    def create_tree(
        self,
        repo: RepositoryRef,
        base_tree_id: str | None,
        entries: Sequence[TreeEntry],
    ) -> str:
        """Overlay *entries* onto *base_tree_id* and return the new tree id.

        An entry whose ``object_id`` is ``None`` removes that path.
        """

    @abstractmethod
    def create_commit(
        self,
        repo: RepositoryRef,
        tree_id: str,
        parents: Sequence[str],
        message: str,
    ) -> CommitInfo: ...

    # --- Reads ---

    @abstractmethod
    def list_tree(self, repo: RepositoryRef, tree_id: str) -> tuple[list[RemoteEntry], bool]:
        """Recursive flat listing of a tree and whether it was truncated."""

    @abstractmethod
    def read_file(self, repo: RepositoryRef, commit_id: str, path: str) -> bytes:
        """Content of the file at *path* in *commit_id*.

        ``NotFoundError`` if the path is missing or is a directory.
        """

    @abstractmethod
    def commit_url(self, repo: RepositoryRef, commit_id: str) -> str | None:
        """Browser link to a commit, if the store has one."""
