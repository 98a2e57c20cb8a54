"""Advisory repository lock: serializes ref updates across threads and processes."""

from __future__ import annotations

import os
import threading
from contextlib import contextmanager

try:
    import fcntl
except ImportError:  # Windows
    fcntl = None
    import msvcrt

_LOCK_NAME = "reposync.lock"

# Per-process thread locks, keyed by resolved repository path
_thread_locks: dict[str, threading.Lock] = {}
_thread_locks_guard = threading.Lock()


def _get_thread_lock(repo_path: str) -> threading.Lock:
    key = os.path.normcase(os.path.realpath(repo_path))
    with _thread_locks_guard:
        lock = _thread_locks.get(key)
        if lock is None:
            lock = _thread_locks[key] = threading.Lock()
        return lock


def _lock_fd(fd: int) -> None:
    if fcntl is not None:
        fcntl.flock(fd, fcntl.LOCK_EX)
    else:
        msvcrt.locking(fd, msvcrt.LK_LOCK, 1)


def _unlock_fd(fd: int) -> None:
    if fcntl is not None:
        fcntl.flock(fd, fcntl.LOCK_UN)
    else:
        msvcrt.locking(fd, msvcrt.LK_UNLCK, 1)


@contextmanager
def repo_lock(repo_path: str):
    """Hold an exclusive lock on the repository at *repo_path*."""
    tlock = _get_thread_lock(repo_path)
    with tlock:
        lock_path = os.path.join(repo_path, _LOCK_NAME)
        fd = os.open(lock_path, os.O_CREAT | os.O_RDWR | getattr(os, "O_CLOEXEC", 0))
        try:
            _lock_fd(fd)
            try:
                yield
            finally:
                _unlock_fd(fd)
        finally:
            os.close(fd)
