"""Concurrent blob creation for a change-set."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor, wait

from ._deadline import Deadline
from .changes import FileChange
from .exceptions import AuthError, BlobUploadError, DeadlineExceeded
from .objects import BlobRef, RepositoryRef
from .store.base import RemoteStore

logger = logging.getLogger(__name__)


def create_blob(store: RemoteStore, repo: RepositoryRef, change: FileChange) -> BlobRef:
    """Upload the content of one create/update change."""
    if change.is_delete:
        raise ValueError(f"Delete of {change.path!r} has no blob")
    return BlobRef(change.path, store.create_blob(repo, change.data()))


def create_blobs(
    store: RemoteStore,
    repo: RepositoryRef,
    changes: Sequence[FileChange],
    *,
    max_workers: int = 8,
    deadline: Deadline | None = None,
) -> list[BlobRef]:
    """Create one blob per non-delete change, in parallel.

    Uploads are independent, so a failure never stops the others; every
    outcome is collected before deciding. Results follow change-set order.

    Raises:
        AuthError: If the store rejected the credential.
        BlobUploadError: If any upload failed, naming every failed path.
        DeadlineExceeded: If *deadline* passed before all uploads finished.
    """
    uploads = [c for c in changes if not c.is_delete]
    if not uploads:
        return []
    deadline = deadline or Deadline(None)
    deadline.check("blob creation")

    workers = max(1, min(max_workers, len(uploads)))
    logger.debug("Creating %d blob(s) with %d worker(s)", len(uploads), workers)

    pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="reposync-blob")
    try:
        futures: dict[Future, FileChange] = {
            pool.submit(create_blob, store, repo, c): c for c in uploads
        }
        done, pending = wait(futures, timeout=deadline.remaining())
        if pending:
            for f in pending:
                f.cancel()
            raise DeadlineExceeded(
                f"Deadline exceeded with {len(pending)} of {len(uploads)} blob(s) pending"
            )
    finally:
        pool.shutdown(wait=False, cancel_futures=True)

    results: dict[str, BlobRef] = {}
    failures: dict[str, BaseException] = {}
    for future, change in futures.items():
        exc = future.exception()
        if exc is None:
            results[change.path] = future.result()
        else:
            logger.debug("Blob for %s failed: %s", change.path, exc)
            failures[change.path] = exc

    if failures:
        auth = next((e for e in failures.values() if isinstance(e, AuthError)), None)
        if auth is not None:
            raise auth
        raise BlobUploadError(failures)

    return [results[c.path] for c in uploads]
