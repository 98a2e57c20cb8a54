"""Tests for SyncConfig and repository specs."""

import pytest
from pydantic import ValidationError

from reposync import RepositoryRef, SyncConfig


class TestSyncConfig:
    def test_defaults(self):
        cfg = SyncConfig.from_env()
        assert cfg.token is None
        assert cfg.api_url == "https://api.github.com"
        assert cfg.default_branch == "main"
        assert cfg.max_workers == 8
        assert cfg.deploy_timeout is None

    def test_env(self, monkeypatch):
        monkeypatch.setenv("REPOSYNC_TOKEN", "t1")
        monkeypatch.setenv("REPOSYNC_API_URL", "https://ghe.example.com/api/v3/")
        monkeypatch.setenv("REPOSYNC_BRANCH", "dev")
        monkeypatch.setenv("REPOSYNC_MAX_WORKERS", "3")
        monkeypatch.setenv("REPOSYNC_REQUEST_TIMEOUT", "5")
        monkeypatch.setenv("REPOSYNC_TIMEOUT", "60")
        cfg = SyncConfig.from_env()
        assert cfg.token == "t1"
        assert cfg.api_url == "https://ghe.example.com/api/v3"
        assert cfg.default_branch == "dev"
        assert cfg.max_workers == 3
        assert cfg.request_timeout == 5.0
        assert cfg.deploy_timeout == 60.0

    def test_github_token_fallback(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "gh")
        assert SyncConfig.from_env().token == "gh"
        monkeypatch.setenv("REPOSYNC_TOKEN", "rs")
        assert SyncConfig.from_env().token == "rs"

    def test_empty_env_ignored(self, monkeypatch):
        monkeypatch.setenv("REPOSYNC_TOKEN", "")
        monkeypatch.setenv("GITHUB_TOKEN", "gh")
        monkeypatch.setenv("REPOSYNC_BRANCH", "")
        cfg = SyncConfig.from_env()
        assert cfg.token == "gh"
        assert cfg.default_branch == "main"

    def test_overrides_win(self, monkeypatch):
        monkeypatch.setenv("REPOSYNC_BRANCH", "dev")
        monkeypatch.setenv("REPOSYNC_TOKEN", "from-env")
        monkeypatch.setenv("REPOSYNC_TIMEOUT", "60")
        cfg = SyncConfig.from_env(default_branch="prod", token="explicit", deploy_timeout=None)
        assert cfg.default_branch == "prod"
        assert cfg.token == "explicit"
        # None overrides leave the environment value in place
        assert cfg.deploy_timeout == 60.0

    def test_keyword_arguments_win(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "from-env")
        monkeypatch.setenv("REPOSYNC_MAX_WORKERS", "2")
        cfg = SyncConfig(token="secret", max_workers=4)
        assert cfg.token == "secret"
        assert cfg.max_workers == 4

    def test_invalid_number(self, monkeypatch):
        monkeypatch.setenv("REPOSYNC_MAX_WORKERS", "lots")
        with pytest.raises(ValidationError, match="max_workers"):
            SyncConfig.from_env()

    def test_frozen(self):
        cfg = SyncConfig()
        with pytest.raises(ValidationError):
            cfg.max_workers = 2

    @pytest.mark.parametrize("kwargs", [
        {"max_workers": 0},
        {"request_timeout": 0},
        {"deploy_timeout": -1},
        {"default_branch": ""},
    ])
    def test_validation(self, kwargs):
        with pytest.raises(ValueError):
            SyncConfig(**kwargs)

    @pytest.mark.parametrize("var, value", [
        ("REPOSYNC_MAX_WORKERS", "0"),
        ("REPOSYNC_REQUEST_TIMEOUT", "-5"),
        ("REPOSYNC_TIMEOUT", "0"),
    ])
    def test_env_bounds(self, monkeypatch, var, value):
        monkeypatch.setenv(var, value)
        with pytest.raises(ValueError):
            SyncConfig.from_env()


class TestRepositoryRef:
    def test_parse(self):
        assert RepositoryRef.parse("octo/project") == RepositoryRef("octo", "project", "main")
        assert RepositoryRef.parse("octo/project@dev").branch == "dev"
        assert RepositoryRef.parse("octo/project@feature/x").branch == "feature/x"

    def test_parse_default_branch(self):
        assert RepositoryRef.parse("octo/project", default_branch="trunk").branch == "trunk"

    @pytest.mark.parametrize("spec", ["octo", "/project", "octo/", "octo/a/b", "octo/project@"])
    def test_parse_invalid(self, spec):
        with pytest.raises(ValueError):
            RepositoryRef.parse(spec)

    def test_str_and_full_name(self):
        ref = RepositoryRef("octo", "project", "dev")
        assert str(ref) == "octo/project@dev"
        assert ref.full_name == "octo/project"
        assert ref.with_branch("main") == RepositoryRef("octo", "project")
