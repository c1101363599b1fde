"""Sync commands: push, clone."""

from __future__ import annotations

import click

from .. import workflows
from ._helpers import main, _errors, _open_session, _status, _warn, _workspace


# ---------------------------------------------------------------------------
# push
# ---------------------------------------------------------------------------

@main.command()
@click.option("--by-ref", "by_reference", is_flag=True, default=False,
              help="Move 'main' to the last commit instead of re-submitting its tree.")
@click.pass_context
def push(ctx, by_reference):
    """Push the last local commit to 'main'.

    By default the last commit's tree and message are submitted again, which
    creates a new commit on every push.  --by-ref points the remote branch at
    the existing commit instead.
    """
    ws = _workspace(ctx)
    with _errors():
        workflows.check_push(ws)
        session = _open_session(ctx)
        report = workflows.push(ws, session, by_reference=by_reference)
    if report.by_reference:
        click.echo(f"Push successful! main -> {report.commit_id}")
    else:
        _status(ctx, f"Replayed commit {report.source_commit_id}")
        click.echo(f"Push successful! New commit ID: {report.commit_id}")


# ---------------------------------------------------------------------------
# clone
# ---------------------------------------------------------------------------

@main.command()
@click.pass_context
def clone(ctx):
    """Write the files at the head of 'main' into the working copy."""
    ws = _workspace(ctx)
    with _errors():
        ws.descriptor()
        session = _open_session(ctx)
        report = workflows.clone(ws, session)
    _warn(report.warnings)
    for path in report.files:
        click.echo(f"Cloned file: {path}")
    click.echo(f"Clone complete. Latest commit: {report.commit_id}")
