"""Remote repository management: branch, merge, fork, collab."""

from __future__ import annotations

import click

from .. import workflows
from ..config import DEFAULT_BRANCH
from ._helpers import main, _errors, _open_session, _workspace


@main.command()
@click.argument("name")
@click.option("--from", "source", default=DEFAULT_BRANCH, show_default=True,
              help="Branch to start from.")
@click.pass_context
def branch(ctx, name, source):
    """Create branch NAME on the remote repository."""
    ws = _workspace(ctx)
    with _errors():
        ws.descriptor()
        workflows.create_branch(ws, _open_session(ctx), source, name)
    click.echo(f"Created branch {name} from {source}")


@main.command()
@click.argument("source")
@click.option("--into", "target", default=DEFAULT_BRANCH, show_default=True,
              help="Branch to merge into.")
@click.pass_context
def merge(ctx, source, target):
    """Merge branch SOURCE into another branch on the remote."""
    ws = _workspace(ctx)
    with _errors():
        ws.descriptor()
        workflows.merge_branch(ws, _open_session(ctx), source, target)
    click.echo(f"Merged {source} into {target}")


@main.command()
@click.argument("name")
@click.pass_context
def fork(ctx, name):
    """Fork the remote repository under a new NAME."""
    ws = _workspace(ctx)
    with _errors():
        ws.descriptor()
        report = workflows.fork(ws, _open_session(ctx), name)
    click.echo(f"Forked repository as ID: {report.repository_id}")


@main.command()
@click.argument("principal")
@click.pass_context
def collab(ctx, principal):
    """Add PRINCIPAL as a collaborator on the remote repository."""
    ws = _workspace(ctx)
    with _errors():
        ws.descriptor()
        workflows.add_collaborator(ws, _open_session(ctx), principal)
    click.echo(f"Added collaborator {principal}")
