"""Commands: ls, cat, deploy, repos, init."""

from __future__ import annotations

import json

import click

from ..pathtree import find_node, render_tree
from ..sync import deploy as deploy_changes
from ..sync import fetch_file_content, fetch_tree, list_repositories
from ._helpers import (
    main,
    _cli_errors,
    _config,
    _format_option,
    _load_changes,
    _open_store,
    _parse_repo,
    _status,
)


# ---------------------------------------------------------------------------
# ls
# ---------------------------------------------------------------------------

@main.command()
@click.argument("repo")
@click.argument("path", required=False)
@_format_option
@click.pass_context
def ls(ctx, repo, path, as_json):
    """List the files of REPO as a tree, optionally below PATH."""
    ref = _parse_repo(ctx, repo)
    with _open_store(ctx) as store, _cli_errors():
        nodes = fetch_tree(store, ref)
        node = find_node(nodes, path.strip("/")) if path else None
    if path:
        if node is None:
            raise click.ClickException(f"Path not found: {path}")
        nodes = node.children if node.is_dir else (node,)
    if as_json:
        click.echo(json.dumps([n.to_dict() for n in nodes], indent=2))
    elif nodes:
        click.echo(render_tree(nodes))


# ---------------------------------------------------------------------------
# cat
# ---------------------------------------------------------------------------

@main.command()
@click.argument("repo")
@click.argument("path")
@click.pass_context
def cat(ctx, repo, path):
    """Write the content of PATH in REPO to stdout."""
    ref = _parse_repo(ctx, repo)
    with _open_store(ctx) as store, _cli_errors():
        data = fetch_file_content(store, ref, path)
    stdout = click.get_binary_stream("stdout")
    stdout.write(data)
    stdout.flush()


# ---------------------------------------------------------------------------
# deploy
# ---------------------------------------------------------------------------

@main.command()
@click.argument("repo")
@click.argument("changes", type=click.File("r"))
@click.option("-m", "--message", default=None,
              help="Commit message (default: generated from the changes).")
@click.option("--create", "create_repository", is_flag=True, default=False,
              help="Create the repository if it does not exist.")
@click.option("--public", is_flag=True, default=False,
              help="Make a repository created by --create public.")
@click.option("--description", default=None, help="Description of a created repository.")
@click.option("--timeout", type=float, default=None,
              help="Overall deadline in seconds (or set REPOSYNC_TIMEOUT).")
@_format_option
@click.pass_context
def deploy(ctx, repo, changes, message, create_repository, public, description, timeout, as_json):
    """Commit the JSON change-set CHANGES (file or '-') to REPO."""
    ref = _parse_repo(ctx, repo)
    entries = _load_changes(changes)
    config = _config(ctx)
    _status(ctx, f"Deploying {len(entries)} change(s) to {ref}")
    with _open_store(ctx) as store, _cli_errors():
        result = deploy_changes(
            store, ref, entries, message,
            max_workers=config.max_workers,
            timeout=timeout if timeout is not None else config.deploy_timeout,
            create_repository=create_repository,
            private=not public,
            description=description,
        )
    if as_json:
        click.echo(json.dumps({
            "commit": result.commit_id,
            "url": result.commit_url,
            "branch": result.branch,
            "parent": result.parent_id,
            "changes": [{"path": c.path, "changeKind": c.kind.value} for c in result.changes],
        }, indent=2))
    else:
        click.echo(f"{result.commit_id} {result.branch}")
        if result.commit_url:
            click.echo(result.commit_url)


# ---------------------------------------------------------------------------
# repos
# ---------------------------------------------------------------------------

@main.command()
@_format_option
@click.pass_context
def repos(ctx, as_json):
    """List repositories, most recently updated first."""
    with _open_store(ctx) as store, _cli_errors():
        infos = list_repositories(store)
    if as_json:
        click.echo(json.dumps([
            {
                "name": f"{i.owner}/{i.name}",
                "default_branch": i.default_branch,
                "private": i.private,
                "description": i.description,
                "url": i.url,
                "updated_at": i.updated_at,
            }
            for i in infos
        ], indent=2))
        return
    for i in infos:
        click.echo(f"{i.owner}/{i.name}")


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------

@main.command()
@click.argument("repo")
@click.option("--public", is_flag=True, default=False, help="Create a public repository.")
@click.option("--description", default=None, help="Repository description.")
@click.pass_context
def init(ctx, repo, public, description):
    """Create an empty repository REPO (no initial commit).

    With --local, HEAD points at @BRANCH (or the default branch). On
    GitHub an empty repository has no branch yet; the first branch you
    deploy becomes its default.
    """
    ref = _parse_repo(ctx, repo)
    with _open_store(ctx) as store, _cli_errors():
        info = store.create_repository(ref, private=not public, description=description)
    _status(ctx, f"Created {info.owner}/{info.name} (default branch: {info.default_branch})")
    click.echo(info.url or f"{info.owner}/{info.name}")
