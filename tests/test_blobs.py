"""Tests for concurrent blob creation."""

import threading
import time

import pytest

from reposync import (
    AuthError,
    BlobUploadError,
    DeadlineExceeded,
    FileChange,
    LocalStore,
    RemoteAPIError,
)
from reposync._deadline import Deadline
from reposync.blobs import create_blob, create_blobs


class FlakyStore(LocalStore):
    """Fails uploads whose content starts with a marker."""

    def create_blob(self, repo, data):
        if data.startswith(b"fail"):
            raise RemoteAPIError("boom", status=502)
        if data.startswith(b"deny"):
            raise AuthError("Bad credentials")
        return super().create_blob(repo, data)


class SlowStore(LocalStore):
    def create_blob(self, repo, data):
        time.sleep(0.5)
        return super().create_blob(repo, data)


class CountingStore(LocalStore):
    """Records the peak number of concurrent uploads."""

    def __init__(self, root):
        super().__init__(root)
        self._lock = threading.Lock()
        self.active = 0
        self.peak = 0

    def create_blob(self, repo, data):
        with self._lock:
            self.active += 1
            self.peak = max(self.peak, self.active)
        try:
            time.sleep(0.02)
            return super().create_blob(repo, data)
        finally:
            with self._lock:
                self.active -= 1


class TestCreateBlob:
    def test_single(self, store, empty_repo):
        ref = create_blob(store, empty_repo, FileChange.create("a.txt", "hello"))
        assert ref.path == "a.txt"
        assert len(ref.object_id) == 40

    def test_delete_has_no_blob(self, store, empty_repo):
        with pytest.raises(ValueError):
            create_blob(store, empty_repo, FileChange.delete("a.txt"))


class TestCreateBlobs:
    def test_order_and_deletes_skipped(self, store, empty_repo):
        changes = [
            FileChange.create("z.txt", "z"),
            FileChange.delete("gone.txt"),
            FileChange.update("a.txt", "a"),
        ]
        refs = create_blobs(store, empty_repo, changes)
        assert [r.path for r in refs] == ["z.txt", "a.txt"]

    def test_identical_content_shares_object(self, store, empty_repo):
        refs = create_blobs(store, empty_repo, [
            FileChange.create("one.txt", "same"),
            FileChange.create("two.txt", "same"),
        ])
        assert refs[0].path != refs[1].path
        assert refs[0].object_id == refs[1].object_id

    def test_only_deletes(self, store, empty_repo):
        assert create_blobs(store, empty_repo, [FileChange.delete("a")]) == []

    def test_concurrency_is_bounded(self, tmp_path, repo):
        store = CountingStore(tmp_path / "repos")
        store.create_repository(repo)
        changes = [FileChange.create(f"f{i}.txt", str(i)) for i in range(12)]
        refs = create_blobs(store, repo, changes, max_workers=3)
        assert len(refs) == 12
        assert store.peak <= 3

    def test_failures_collected(self, tmp_path, repo):
        store = FlakyStore(tmp_path / "repos")
        store.create_repository(repo)
        changes = [
            FileChange.create("ok.txt", "fine"),
            FileChange.create("bad1.txt", "fail 1"),
            FileChange.create("bad2.txt", "fail 2"),
        ]
        with pytest.raises(BlobUploadError) as exc_info:
            create_blobs(store, repo, changes)
        err = exc_info.value
        assert set(err.failures) == {"bad1.txt", "bad2.txt"}
        assert "bad1.txt, bad2.txt" in str(err)

    def test_auth_error_propagates(self, tmp_path, repo):
        store = FlakyStore(tmp_path / "repos")
        store.create_repository(repo)
        with pytest.raises(AuthError):
            create_blobs(store, repo, [
                FileChange.create("a.txt", "fail"),
                FileChange.create("b.txt", "deny"),
            ])

    def test_deadline(self, tmp_path, repo):
        store = SlowStore(tmp_path / "repos")
        store.create_repository(repo)
        changes = [FileChange.create(f"f{i}.txt", str(i)) for i in range(4)]
        with pytest.raises(DeadlineExceeded):
            create_blobs(store, repo, changes, max_workers=1, deadline=Deadline(0.1))

    def test_expired_deadline_uploads_nothing(self, tmp_path, repo):
        store = CountingStore(tmp_path / "repos")
        store.create_repository(repo)
        deadline = Deadline(0.01)
        time.sleep(0.05)
        with pytest.raises(DeadlineExceeded):
            create_blobs(store, repo, [FileChange.create("a", "a")], deadline=deadline)
        assert store.peak == 0
