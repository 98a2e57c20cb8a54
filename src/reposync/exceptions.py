"""Exceptions for reposync."""

from __future__ import annotations

from enum import Enum


class Stage(str, Enum):
    """Pipeline stage of a :func:`~reposync.sync.deploy` call."""
    VALIDATE = "validate"
    RESOLVE = "resolve"
    BLOBS = "blobs"
    TREE = "tree"
    COMMIT = "commit"
    UPDATE_REF = "update_ref"

    def __str__(self) -> str:          # noqa: D105
        return self.value


class SyncError(Exception):
    """Base class for all reposync errors.

    ``stage`` is filled in by :func:`~reposync.sync.deploy` with the
    pipeline :class:`Stage` that failed; it stays ``None`` for errors
    raised outside a deploy.
    """

    stage: Stage | None = None


class ValidationError(SyncError, ValueError):
    """Raised for a malformed path or change entry. Never retried."""

    def __init__(self, reason: str, path: str | None = None):
        self.reason = reason
        self.path = path
        super().__init__(f"{reason}: {path!r}" if path is not None else reason)


class AuthError(SyncError, PermissionError):
    """Raised when the credential is missing, invalid, or lacks access."""


class NotFoundError(SyncError, LookupError):
    """Raised when a repository, branch, or file does not exist."""


class ConflictError(SyncError):
    """Raised when a branch moved between resolution and update.

    Another writer advanced the ref first. Re-run the deploy to rebase the
    change-set onto the new head; reposync never retries on its own.
    """


class RemoteAPIError(SyncError):
    """Raised for rate limiting, server errors, and transport failures."""

    def __init__(self, message: str, status: int | None = None, detail: str | None = None):
        self.status = status
        self.detail = detail
        super().__init__(message)


class BlobUploadError(RemoteAPIError):
    """Raised when one or more blob uploads of a change-set failed.

    ``failures`` maps each failed path to the exception its upload raised.
    """

    def __init__(self, failures: dict[str, BaseException]):
        self.failures = failures
        paths = ", ".join(sorted(failures))
        super().__init__(f"Failed to create {len(failures)} blob(s): {paths}")


class DeadlineExceeded(RemoteAPIError):
    """Raised when a deploy runs past its caller-supplied deadline."""
