from .changes import ChangeKind, FileChange, normalize_changes, format_commit_message
from .config import SyncConfig
from .exceptions import (
    Stage, SyncError, ValidationError, AuthError, NotFoundError,
    ConflictError, RemoteAPIError, BlobUploadError, DeadlineExceeded,
)
from .objects import RepositoryRef, RepositoryInfo, BlobRef, TreeEntry, CommitInfo, BranchState, DeployResult
from .pathtree import NodeKind, TreeNode, build_tree, flatten_tree
from .refs import resolve_branch, update_branch
from .store import RemoteStore, GitHubStore, LocalStore
from .sync import deploy, fetch_tree, fetch_file_content, ensure_repository, list_repositories

__all__ = [
    "ChangeKind", "FileChange", "normalize_changes", "format_commit_message",
    "SyncConfig",
    "Stage", "SyncError", "ValidationError", "AuthError", "NotFoundError",
    "ConflictError", "RemoteAPIError", "BlobUploadError", "DeadlineExceeded",
    "RepositoryRef", "RepositoryInfo", "BlobRef", "TreeEntry", "CommitInfo", "BranchState", "DeployResult",
    "NodeKind", "TreeNode", "build_tree", "flatten_tree",
    "resolve_branch", "update_branch",
    "RemoteStore", "GitHubStore", "LocalStore",
    "deploy", "fetch_tree", "fetch_file_content", "ensure_repository", "list_repositories",
]
