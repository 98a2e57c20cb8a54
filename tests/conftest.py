"""Shared fixtures for reposync tests."""

import pytest
from click.testing import CliRunner

from reposync import FileChange, LocalStore, RepositoryRef, deploy

SETTINGS_ENV = (
    "REPOSYNC_TOKEN", "GITHUB_TOKEN", "REPOSYNC_LOCAL", "REPOSYNC_BRANCH",
    "REPOSYNC_DEFAULT_BRANCH", "REPOSYNC_MAX_WORKERS", "REPOSYNC_TIMEOUT",
    "REPOSYNC_DEPLOY_TIMEOUT", "REPOSYNC_REQUEST_TIMEOUT", "REPOSYNC_API_URL",
    "REPOSYNC_WEB_URL", "REPOSYNC_AUTHOR_NAME", "REPOSYNC_AUTHOR_EMAIL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's REPOSYNC_* settings out of every test."""
    for var in SETTINGS_ENV:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def store(tmp_path):
    """A LocalStore rooted in a temporary directory."""
    return LocalStore(tmp_path / "repos")


@pytest.fixture
def repo():
    return RepositoryRef("octo", "project", "main")


@pytest.fixture
def empty_repo(store, repo):
    """A repository with no commits (HEAD -> main, unborn)."""
    store.create_repository(repo)
    return repo


@pytest.fixture
def populated_repo(store, empty_repo):
    """Repository whose main branch holds a small tree.

    Tree:
        readme.md, a.txt, b.txt, c.txt,
        docs/old.md, docs/guide.md,
        src/app.py, src/lib/util.py
    """
    deploy(store, empty_repo, [
        FileChange.create("readme.md", "# project\n"),
        FileChange.create("a.txt", "a"),
        FileChange.create("b.txt", "b"),
        FileChange.create("c.txt", "c"),
        FileChange.create("docs/old.md", "old"),
        FileChange.create("docs/guide.md", "guide"),
        FileChange.create("src/app.py", "print('app')\n"),
        FileChange.create("src/lib/util.py", "def util(): ...\n"),
    ], "Initial import")
    return empty_repo


# ---------------------------------------------------------------------------
# CLI fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def local_root(store):
    return str(store.root)
