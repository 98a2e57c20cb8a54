"""Shared helpers, option decorators, and the main CLI group."""

from __future__ import annotations

import json
import logging
import sys
from contextlib import contextmanager

import click

from ..config import SyncConfig
from ..exceptions import ConflictError, Stage, SyncError
from ..objects import RepositoryRef
from ..store import GitHubStore, LocalStore, RemoteStore


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _status(ctx, msg):
    """Emit a status message to stderr when verbose mode (-v) is on."""
    if ctx.obj.get("verbose"):
        click.echo(msg, err=True)


def _config(ctx) -> SyncConfig:
    return ctx.obj["config"]


def _open_store(ctx) -> RemoteStore:
    """Build the store selected by --local (disk) or the GitHub API."""
    local = ctx.obj.get("local")
    if local:
        return LocalStore(local, _config(ctx))
    return GitHubStore(_config(ctx))


def _parse_repo(ctx, spec: str) -> RepositoryRef:
    try:
        return RepositoryRef.parse(spec, default_branch=_config(ctx).default_branch)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="REPO")


@contextmanager
def _cli_errors():
    """Turn reposync errors into ClickException messages."""
    try:
        yield
    except SyncError as exc:
        if isinstance(exc, ConflictError) and exc.stage is Stage.UPDATE_REF:
            raise click.ClickException(f"Branch modified concurrently, retry: {exc}")
        where = f" [{exc.stage}]" if exc.stage is not None else ""
        raise click.ClickException(f"{exc}{where}")


def _load_changes(source) -> list:
    """Read a JSON array of change entries from an open file."""
    try:
        data = json.load(source)
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"Invalid JSON in {source.name}: {exc}")
    if isinstance(data, dict) and "changes" in data:
        data = data["changes"]
    if not isinstance(data, list):
        raise click.ClickException("Changes must be a JSON array (or an object with 'changes')")
    return data


def _format_option(f):
    return click.option("--json", "as_json", is_flag=True, default=False,
                        help="Print machine-readable JSON.")(f)


def _setup_logging(verbosity: int) -> None:
    if verbosity <= 0:
        return
    level = logging.INFO if verbosity == 1 else logging.DEBUG
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Main group
# ---------------------------------------------------------------------------

@click.group()
@click.option("--token", envvar=["REPOSYNC_TOKEN", "GITHUB_TOKEN"], default=None,
              help="API token (or set REPOSYNC_TOKEN / GITHUB_TOKEN).")
@click.option("--api-url", envvar="REPOSYNC_API_URL", default=None,
              help="REST API base URL (default: https://api.github.com).")
@click.option("--local", "local", type=click.Path(file_okay=False), envvar="REPOSYNC_LOCAL",
              default=None,
              help="Use bare repositories under this directory instead of GitHub.")
@click.option("--branch", "default_branch", envvar="REPOSYNC_BRANCH", default=None,
              help="Branch used when a repo spec has no @BRANCH (default: main).")
@click.option("-v", "--verbose", count=True, help="Verbose output on stderr (repeat for debug).")
@click.pass_context
def main(ctx, token, api_url, local, default_branch, verbose):
    """reposync: atomic multi-file commits to remote git repositories.

    Browse a repository as a tree, read files, and deploy a JSON
    change-set as exactly one commit.

    \b
    Quick start:
      reposync ls octo/project
      reposync cat octo/project@dev src/app.py
      reposync deploy octo/project changes.json -m "Update app"

    \b
    Change-set format (JSON array):
      [{"path": "src/app.py", "content": "...", "changeKind": "update"},
       {"path": "old.txt", "changeKind": "delete"}]
    """
    ctx.ensure_object(dict)
    _setup_logging(verbose)
    try:
        ctx.obj["config"] = SyncConfig.from_env(
            token=token,
            api_url=api_url,
            default_branch=default_branch,
        )
    except ValueError as exc:
        raise click.ClickException(str(exc))
    ctx.obj["local"] = local
    ctx.obj["verbose"] = verbose
