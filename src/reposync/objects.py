"""Value types exchanged between the pipeline stages and the stores."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, NamedTuple

if TYPE_CHECKING:
    from .changes import FileChange

__all__ = [
    "FILEMODE_BLOB",
    "RepositoryRef",
    "RepositoryInfo",
    "BlobRef",
    "TreeEntry",
    "CommitInfo",
    "RemoteEntry",
    "BranchState",
    "DeployResult",
]

FILEMODE_BLOB = "100644"


@dataclass(frozen=True, slots=True)
class RepositoryRef:
    """Identifies a target repository and branch.

    ``branch`` is the name to read and update first; it is not assumed to
    exist (see :func:`~reposync.refs.resolve_branch`).
    """

    owner: str
    name: str
    branch: str = "main"

    def __str__(self) -> str:
        return f"{self.owner}/{self.name}@{self.branch}"

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    @classmethod
    def parse(cls, spec: str, default_branch: str = "main") -> RepositoryRef:
        """Parse ``owner/name`` or ``owner/name@branch``."""
        repo_part, sep, branch = spec.partition("@")
        if sep and not branch:
            raise ValueError(f"Empty branch in repository spec: {spec!r}")
        owner, slash, name = repo_part.partition("/")
        if not owner or not slash or not name or "/" in name:
            raise ValueError(f"Expected OWNER/NAME[@BRANCH], got {spec!r}")
        return cls(owner, name, branch or default_branch)

    def with_branch(self, branch: str) -> RepositoryRef:
        return RepositoryRef(self.owner, self.name, branch)


@dataclass(frozen=True, slots=True)
class RepositoryInfo:
    owner: str
    name: str
    default_branch: str | None
    url: str | None = None
    private: bool | None = None
    description: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True, slots=True)
class BlobRef:
    """A created blob. Several paths may share one ``object_id``."""

    path: str
    object_id: str


@dataclass(frozen=True, slots=True)
class TreeEntry:
    """One overlay entry for tree composition.

    ``object_id`` is ``None`` for a deletion.
    """

    path: str
    object_id: str | None
    mode: str = FILEMODE_BLOB


@dataclass(frozen=True, slots=True)
class CommitInfo:
    id: str
    tree_id: str
    parents: tuple[str, ...] = ()
    message: str | None = None
    url: str | None = None


class RemoteEntry(NamedTuple):
    """A record of a flat recursive tree listing."""

    path: str
    kind: str
    size: int | None = None
    object_id: str | None = None


@dataclass(frozen=True, slots=True)
class BranchState:
    """Result of branch resolution.

    ``branch`` is the branch actually resolved, which differs from the
    requested one after a fallback to the repository default. Both ids
    are ``None`` for a repository without commits.
    """

    branch: str
    head_commit_id: str | None = None
    base_tree_id: str | None = None
    fallback: bool = False

    @property
    def is_empty(self) -> bool:
        return self.head_commit_id is None


@dataclass(frozen=True, slots=True)
class DeployResult:
    commit_id: str
    commit_url: str | None
    branch: str
    tree_id: str
    parent_id: str | None = None
    changes: tuple[FileChange, ...] = field(default_factory=tuple)
