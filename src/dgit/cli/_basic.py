"""Basic commands: init, add, commit, status."""

from __future__ import annotations

import click

from .. import workflows
from ._helpers import main, _errors, _open_session, _status, _warn, _workspace


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------

@main.command()
@click.argument("name", required=False)
@click.argument("visibility", required=False, default="true",
                type=click.Choice(["true", "false"], case_sensitive=False))
@click.option("-f", "--force", is_flag=True,
              help="Re-initialize even if this directory already has a descriptor.")
@click.pass_context
def init(ctx, name, visibility, force):
    """Create a remote repository NAME bound to this directory.

    VISIBILITY is 'true' (public, the default) or 'false'.
    """
    ws = _workspace(ctx)
    with _errors():
        workflows.check_init(ws, name, force=force)
        session = _open_session(ctx)
        report = workflows.init(ws, session, name, visibility.lower() == "true",
                                force=force)
    click.echo(f"Repository created with ID: {report.repository_id}")
    if report.seeded_ignore:
        _status(ctx, f"Wrote default ignore rules to {ws.root / '.dgitignore'}")


# ---------------------------------------------------------------------------
# add
# ---------------------------------------------------------------------------

@main.command()
@click.argument("patterns", nargs=-1)
@click.pass_context
def add(ctx, patterns):
    """Stage files whose path contains PATTERN ('.' stages everything)."""
    ws = _workspace(ctx)
    with _errors():
        report = workflows.add(ws, patterns)

    for w in report.warnings:
        click.echo(f"WARNING: No files matched pattern '{w.path}'", err=True)
    click.echo("Staging files...")
    if report.added:
        click.echo(f"\nAdded {len(report.added)} new file(s) to staging area:")
        for path in report.added:
            click.echo(f"+ {path}")
    if report.already_staged:
        click.echo(f"\n{len(report.already_staged)} file(s) already staged:")
        for path in report.already_staged:
            click.echo(f"= {path}")
    if not report.added and not report.already_staged:
        click.echo(
            "No files were added "
            "(all matching files are either ignored or already staged)"
        )


# ---------------------------------------------------------------------------
# commit
# ---------------------------------------------------------------------------

@main.command()
@click.argument("message", required=False)
@click.pass_context
def commit(ctx, message):
    """Commit the staged files to 'main' with MESSAGE."""
    ws = _workspace(ctx)
    with _errors():
        workflows.check_commit(ws, message)
        session = _open_session(ctx)
        report = workflows.commit(ws, session, message)
    _warn(report.warnings)
    _status(ctx, f"Committed {len(report.files)} file(s)")
    click.echo(f"Commit created with ID: {report.commit_id}")


# ---------------------------------------------------------------------------
# status
# ---------------------------------------------------------------------------

@main.command()
@click.pass_context
def status(ctx):
    """Show repository metadata and staged files."""
    ws = _workspace(ctx)
    with _errors():
        ws.descriptor()
        session = _open_session(ctx)
        report = workflows.status(ws, session)

    repo = report.repository
    click.echo(f"Repository: {repo.name}")
    click.echo(f"Public: {'true' if repo.is_public else 'false'}")
    click.echo(f"Owner: {repo.owner}")
    click.echo(f"Collaborators: {', '.join(repo.collaborators)}")
    if report.last_commit_id:
        click.echo(f"Last commit: {report.last_commit_id}")

    click.echo("\nStaged files:")
    if not report.staged:
        click.echo("  (no files staged)")
    for path in report.staged:
        click.echo(f"  {path}")
