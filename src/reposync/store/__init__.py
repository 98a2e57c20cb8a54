"""Remote object stores: the seam between the pipeline and the hosting service."""

from .base import RemoteStore
from .github import GitHubStore
from .local import LocalStore

__all__ = ["RemoteStore", "GitHubStore", "LocalStore"]
