"""Remote store backed by bare git repositories on local disk.

Repositories live at ``<root>/<owner>/<name>.git`` and are read and
written through dulwich. This gives the pipeline a real content-addressed
object model without network access, for offline use and tests.
"""

from __future__ import annotations

import logging
import os
import stat
import threading
import time
from collections import defaultdict
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path

from dulwich.objects import Blob, Commit, Tree, S_ISGITLINK
from dulwich.repo import Repo

from .._lock import repo_lock
from .._paths import _split_path
from ..config import SyncConfig
from ..exceptions import ConflictError, NotFoundError
from ..objects import CommitInfo, RemoteEntry, RepositoryInfo, RepositoryRef, TreeEntry
from .base import RemoteStore

logger = logging.getLogger(__name__)

GIT_FILEMODE_TREE = 0o040000
GIT_FILEMODE_BLOB = 0o100644

_HEADS = b"refs/heads/"


def _hex(sha: bytes) -> str:
    return sha.decode("ascii")


def _sha(object_id: str) -> bytes:
    return object_id.encode("ascii")


class LocalStore(RemoteStore):
    """A :class:`RemoteStore` over bare repositories under *root*."""

    def __init__(self, root: str | os.PathLike[str], config: SyncConfig | None = None):
        self._root = Path(root)
        self._config = config or SyncConfig()
        self._identity = f"{self._config.author_name} <{self._config.author_email}>".encode()
        # dulwich loose-object writes race when two threads add the same blob
        self._write_lock = threading.Lock()

    def __repr__(self) -> str:
        return f"LocalStore({str(self._root)!r})"

    @property
    def root(self) -> Path:
        return self._root

    def repo_path(self, repo: RepositoryRef) -> Path:
        return self._root / repo.owner / f"{repo.name}.git"

    def _open(self, repo: RepositoryRef) -> Repo:
        path = self.repo_path(repo)
        if not path.is_dir():
            raise NotFoundError(f"Repository not found: {repo.full_name}")
        return Repo(str(path))

    def _object(self, r: Repo, object_id: str, expected: type):
        try:
            obj = r.object_store[_sha(object_id)]
        except KeyError:
            raise NotFoundError(f"Object not found: {object_id}")
        if not isinstance(obj, expected):
            raise NotFoundError(f"Object {object_id} is not a {expected.__name__.lower()}")
        return obj

    # --- Repositories ---

    def _info(self, repo: RepositoryRef, r: Repo) -> RepositoryInfo:
        head = r.refs.read_ref(b"HEAD") or b""
        default = None
        if head.startswith(b"ref: " + _HEADS):
            default = head[len(b"ref: ") + len(_HEADS):].decode()
        path = self.repo_path(repo)
        mtime = max(
            (p.stat().st_mtime for p in (path, path / "refs" / "heads") if p.exists()),
            default=0.0,
        )
        return RepositoryInfo(
            owner=repo.owner,
            name=repo.name,
            default_branch=default,
            url=path.resolve().as_uri(),
            updated_at=datetime.fromtimestamp(mtime, tz=timezone.utc).isoformat(),
        )

    def get_repository(self, repo: RepositoryRef) -> RepositoryInfo:
        with self._open(repo) as r:
            return self._info(repo, r)

    def create_repository(
        self,
        repo: RepositoryRef,
        *,
        private: bool = True,
        description: str | None = None,
    ) -> RepositoryInfo:
        path = self.repo_path(repo)
        if path.exists():
            raise ConflictError(f"Repository already exists: {repo.full_name}")
        path.parent.mkdir(parents=True, exist_ok=True)
        with Repo.init_bare(str(path), mkdir=True) as r:
            r.refs.set_symbolic_ref(b"HEAD", _HEADS + repo.branch.encode())
            if description:
                (path / "description").write_text(description + "\n")
            logger.info("Created repository %s at %s", repo.full_name, path)
            return self._info(repo, r)

    def list_repositories(self) -> list[RepositoryInfo]:
        infos = []
        if not self._root.is_dir():
            return infos
        for path in self._root.glob("*/*.git"):
            ref = RepositoryRef(path.parent.name, path.name[: -len(".git")])
            infos.append(self.get_repository(ref))
        infos.sort(key=lambda i: i.updated_at or "", reverse=True)
        return infos

    # --- Refs ---

    def list_branches(self, repo: RepositoryRef) -> list[str]:
        with self._open(repo) as r:
            return sorted(k.decode() for k in r.refs.keys(base=_HEADS))

    def get_ref(self, repo: RepositoryRef, branch: str) -> str | None:
        with self._open(repo) as r:
            try:
                return _hex(r.refs[_HEADS + branch.encode()])
            except KeyError:
                return None

    def create_ref(self, repo: RepositoryRef, branch: str, commit_id: str) -> None:
        name = _HEADS + branch.encode()
        with self._open(repo) as r, repo_lock(r.path):
            self._object(r, commit_id, Commit)
            had_branches = bool(r.refs.keys(base=_HEADS))
            if not r.refs.add_if_new(name, _sha(commit_id)):
                raise ConflictError(f"Branch {branch!r} already exists")
            if not had_branches:
                # First branch of an empty repository becomes its default
                r.refs.set_symbolic_ref(b"HEAD", name)
        logger.debug("Created ref %s -> %s", name.decode(), commit_id[:7])

    def update_ref(self, repo: RepositoryRef, branch: str, commit_id: str, expected: str) -> None:
        name = _HEADS + branch.encode()
        with self._open(repo) as r, repo_lock(r.path):
            self._object(r, commit_id, Commit)
            if not r.refs.set_if_equals(name, _sha(expected), _sha(commit_id)):
                raise ConflictError(
                    f"Branch {branch!r} has advanced since {expected[:7]}"
                )
        logger.debug("Moved ref %s %s -> %s", name.decode(), expected[:7], commit_id[:7])

    # --- Objects ---

    def get_commit(self, repo: RepositoryRef, commit_id: str) -> CommitInfo:
        with self._open(repo) as r:
            c = self._object(r, commit_id, Commit)
            return CommitInfo(
                id=commit_id,
                tree_id=_hex(c.tree),
                parents=tuple(_hex(p) for p in c.parents),
                message=c.message.decode("utf-8", errors="replace").rstrip("\n"),
                url=self.commit_url(repo, commit_id),
            )

    def create_blob(self, repo: RepositoryRef, data: bytes) -> str:
        blob = Blob.from_string(data)
        with self._open(repo) as r, self._write_lock:
            if blob.id not in r.object_store:
                r.object_store.add_object(blob)
        return _hex(blob.id)

    def create_tree(
        self,
        repo: RepositoryRef,
        base_tree_id: str | None,
        entries: Sequence[TreeEntry],
    ) -> str:
        writes: dict[str, tuple[int, bytes]] = {}
        removes: set[str] = set()
        for e in entries:
            _split_path(e.path)
            if e.object_id is None:
                removes.add(e.path)
            else:
                writes[e.path] = (int(e.mode, 8), _sha(e.object_id))
        with self._open(repo) as r, self._write_lock:
            base = _sha(base_tree_id) if base_tree_id is not None else None
            if base is not None:
                self._object(r, base_tree_id, Tree)
            for mode, sha in writes.values():
                if sha not in r.object_store:
                    raise NotFoundError(f"Blob not found: {_hex(sha)}")
            return _hex(rebuild_tree(r, base, writes, removes))

    def create_commit(
        self,
        repo: RepositoryRef,
        tree_id: str,
        parents: Sequence[str],
        message: str,
    ) -> CommitInfo:
        with self._open(repo) as r, self._write_lock:
            self._object(r, tree_id, Tree)
            for p in parents:
                self._object(r, p, Commit)
            c = Commit()
            c.tree = _sha(tree_id)
            c.parents = [_sha(p) for p in parents]
            c.author = c.committer = self._identity
            c.author_time = c.commit_time = int(time.time())
            c.author_timezone = c.commit_timezone = 0
            msg = message.encode()
            if not msg.endswith(b"\n"):
                msg += b"\n"
            c.message = msg
            c.encoding = b"UTF-8"
            r.object_store.add_object(c)
        commit_id = _hex(c.id)
        return CommitInfo(
            id=commit_id,
            tree_id=tree_id,
            parents=tuple(parents),
            message=message,
            url=self.commit_url(repo, commit_id),
        )

    # --- Reads ---

    def list_tree(self, repo: RepositoryRef, tree_id: str) -> tuple[list[RemoteEntry], bool]:
        with self._open(repo) as r:
            self._object(r, tree_id, Tree)
            return list(_walk(r, _sha(tree_id), "")), False

    def read_file(self, repo: RepositoryRef, commit_id: str, path: str) -> bytes:
        segments = _split_path(path)
        with self._open(repo) as r:
            obj = r.object_store[self._object(r, commit_id, Commit).tree]
            for seg in segments:
                if not isinstance(obj, Tree):
                    raise NotFoundError(f"File not found: {path}")
                try:
                    _, sha = obj[seg.encode()]
                except KeyError:
                    raise NotFoundError(f"File not found: {path}")
                obj = r.object_store[sha]
            if isinstance(obj, Tree):
                raise NotFoundError(f"{path} is a directory, not a file")
            return obj.data

    def commit_url(self, repo: RepositoryRef, commit_id: str) -> str | None:
        return f"{self.repo_path(repo).resolve().as_uri()}#{commit_id}"


def _walk(r: Repo, tree_sha: bytes, prefix: str):
    tree = r.object_store[tree_sha]
    for entry in tree.iteritems():
        name = entry.path.decode()
        path = f"{prefix}/{name}" if prefix else name
        if S_ISGITLINK(entry.mode):
            continue
        if stat.S_ISDIR(entry.mode):
            yield RemoteEntry(path, "directory", None, _hex(entry.sha))
            yield from _walk(r, entry.sha, path)
        else:
            size = len(r.object_store[entry.sha].data)
            yield RemoteEntry(path, "file", size, _hex(entry.sha))


def rebuild_tree(
    r: Repo,
    base_tree: bytes | None,
    writes: dict[str, tuple[int, bytes]],
    removes: set[str],
) -> bytes:
    """Rebuild a tree with writes and removes applied.

    Only the ancestor chain from changed leaves to root is rebuilt;
    sibling subtrees are shared by hash reference. Removing a path that
    does not exist is a no-op, and directories left empty are pruned.

    Returns:
        SHA of the new root tree.
    """
    sub_writes: dict[str, dict[str, tuple[int, bytes]]] = defaultdict(dict)
    leaf_writes: dict[str, tuple[int, bytes]] = {}
    sub_removes: dict[str, set[str]] = defaultdict(set)
    leaf_removes: set[str] = set()

    for path, value in writes.items():
        head, sep, rest = path.partition("/")
        if sep:
            sub_writes[head][rest] = value
        else:
            leaf_writes[head] = value

    for path in removes:
        head, sep, rest = path.partition("/")
        if sep:
            sub_removes[head].add(rest)
        else:
            leaf_removes.add(head)

    entries: dict[bytes, tuple[int, bytes]] = {}
    if base_tree is not None:
        for entry in r.object_store[base_tree].iteritems():
            entries[entry.path] = (entry.mode, entry.sha)

    for name, value in leaf_writes.items():
        entries[name.encode()] = value

    for name in leaf_removes:
        entries.pop(name.encode(), None)

    for subdir in set(sub_writes) | set(sub_removes):
        key = subdir.encode()
        existing = entries.get(key)
        existing_tree = existing[1] if existing and stat.S_ISDIR(existing[0]) else None
        if existing_tree is None and subdir not in sub_writes:
            # Nothing to remove below a path that is not a directory
            continue
        new_sha = rebuild_tree(
            r,
            existing_tree,
            sub_writes.get(subdir, {}),
            sub_removes.get(subdir, set()),
        )
        if len(r.object_store[new_sha]) == 0:
            entries.pop(key, None)
        else:
            entries[key] = (GIT_FILEMODE_TREE, new_sha)

    tree = Tree()
    for name, (mode, sha) in entries.items():
        tree.add(name, mode, sha)
    r.object_store.add_object(tree)
    return tree.id
