"""Runtime configuration for reposync.

Settings come from ``REPOSYNC_*`` environment variables, validated by
pydantic-settings. Keyword arguments given to ``SyncConfig`` win over the
environment.
"""

from __future__ import annotations

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["SyncConfig", "DEFAULT_API_URL", "DEFAULT_WEB_URL", "DEFAULT_BRANCH"]

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_WEB_URL = "https://github.com"
DEFAULT_BRANCH = "main"


class SyncConfig(BaseSettings):
    """Settings shared by the stores and the deploy pipeline.

    Attributes:
        token: Bearer credential for the hosting API (``None`` for anonymous
            reads or a local store). Read from ``REPOSYNC_TOKEN``, falling
            back to ``GITHUB_TOKEN``.
        api_url: Base URL of the REST API.
        web_url: Base URL used to build browser links to commits.
        default_branch: Branch targeted when a repository spec names none
            (``REPOSYNC_BRANCH``).
        max_workers: Upper bound on concurrent blob uploads.
        request_timeout: Per-request network timeout in seconds.
        deploy_timeout: Overall deadline of one deploy in seconds, or ``None``
            (``REPOSYNC_TIMEOUT``).
        author_name: Commit author for stores that sign commits locally.
        author_email: Commit author email for those stores.
    """

    model_config = SettingsConfigDict(
        env_prefix="REPOSYNC_",
        case_sensitive=False,
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("REPOSYNC_TOKEN", "GITHUB_TOKEN"),
    )
    api_url: str = DEFAULT_API_URL
    web_url: str = DEFAULT_WEB_URL
    default_branch: str = Field(
        default=DEFAULT_BRANCH,
        min_length=1,
        validation_alias=AliasChoices("REPOSYNC_BRANCH"),
    )
    max_workers: int = Field(default=8, ge=1)
    request_timeout: float = Field(default=30.0, gt=0)
    deploy_timeout: float | None = Field(
        default=None,
        gt=0,
        validation_alias=AliasChoices("REPOSYNC_TIMEOUT"),
    )
    author_name: str = "reposync"
    author_email: str = "reposync@localhost"

    @model_validator(mode="before")
    @classmethod
    def _explicit_names_win(cls, data):
        # Environment values arrive under their alias, keyword arguments
        # under the field name; pydantic would otherwise prefer the alias.
        if not isinstance(data, dict):
            return data
        for name, field in cls.model_fields.items():
            if name in data and isinstance(field.validation_alias, AliasChoices):
                for alias in field.validation_alias.choices:
                    if isinstance(alias, str) and alias != name:
                        data.pop(alias, None)
        return data

    @field_validator("api_url", "web_url")
    @classmethod
    def _strip_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @classmethod
    def from_env(cls, **overrides) -> SyncConfig:
        """Build a config from the environment.

        Keyword *overrides* that are not ``None`` win over the environment.
        """
        return cls(**{k: v for k, v in overrides.items() if v is not None})
