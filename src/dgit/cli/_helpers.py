"""Shared helpers, error mapping, and the main CLI group."""

from __future__ import annotations

from contextlib import contextmanager

import click

from ..config import (
    DEFAULT_REMOTE_URL,
    DEFAULT_SERVICE_ID,
    ENV_DIR,
    ENV_INDEX,
    ENV_REMOTE,
    ENV_SERVICE_ID,
    Settings,
)
from ..exceptions import DgitError
from ..remote import HttpTransport
from ..session import RepositorySession
from ..workflows import Workspace


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class CommandError(click.ClickException):
    """A :class:`DgitError` surfaced on the command line with its exit code."""

    def __init__(self, error: DgitError):
        super().__init__(str(error))
        self.exit_code = error.exit_code


@contextmanager
def _errors():
    """Translate dgit errors raised inside the block into click errors."""
    try:
        yield
    except DgitError as exc:
        raise CommandError(exc) from exc


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _status(ctx, msg):
    """Emit a status message to stderr when verbose mode (-v) is on."""
    if ctx.obj["settings"].verbose:
        click.echo(msg, err=True)


def _warn(warnings):
    for w in warnings:
        click.echo(f"WARNING: {w.path}: {w.error}", err=True)


def _workspace(ctx) -> Workspace:
    settings: Settings = ctx.obj["settings"]
    return Workspace(root=settings.root, index_path=settings.index_path)


def _open_session(ctx) -> RepositorySession:
    """Open a new session for this invocation.

    A transport placed in ``ctx.obj["transport"]`` (tests, embedding) takes
    precedence over the configured HTTP endpoint.
    """
    settings: Settings = ctx.obj["settings"]
    transport = ctx.obj.get("transport")
    if transport is None:
        transport = HttpTransport(settings.remote_url, settings.service_id)
    with _errors():
        session = RepositorySession.open(transport)
    _status(ctx, f"Session principal: {session.principal}")
    return session


# ---------------------------------------------------------------------------
# Main group
# ---------------------------------------------------------------------------

class _DgitGroup(click.Group):
    """Group that lists the available commands when given an unknown one."""

    def resolve_command(self, ctx, args):
        name = args[0] if args else None
        if name and not name.startswith("-") and self.get_command(ctx, name) is None:
            available = ", ".join(self.list_commands(ctx))
            ctx.fail(f"Unknown command '{name}'. Available commands: {available}")
        return super().resolve_command(ctx, args)


@click.group(cls=_DgitGroup)
@click.option("-C", "--dir", "root", type=click.Path(file_okay=False),
              default=".", envvar=ENV_DIR, show_default=True,
              help="Working-copy root (or set DGIT_DIR).")
@click.option("--remote", "remote_url", default=DEFAULT_REMOTE_URL, envvar=ENV_REMOTE,
              show_default=True, help="Repository service URL (or set DGIT_REMOTE).")
@click.option("--service-id", default=DEFAULT_SERVICE_ID, envvar=ENV_SERVICE_ID,
              show_default=True, help="Repository service id (or set DGIT_SERVICE_ID).")
@click.option("--index-file", type=click.Path(dir_okay=False), default=None,
              envvar=ENV_INDEX,
              help="Staging index file (default ~/.dgit_staged_files, or set DGIT_INDEX).")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output on stderr.")
@click.pass_context
def main(ctx, root, remote_url, service_id, index_file, verbose):
    """dgit: client for a remote version-control service.

    \b
    Quick start:
      dgit init demo
      dgit add .
      dgit commit "first"
      dgit push

    \b
    Commands:
      init <name> [true|false]   Create a repository for this directory
      add <pattern...> | add .   Stage files
      commit "message"           Commit staged files to main
      push                       Push the last commit to main
      clone                      Write main's files into this directory
      status                     Show repository and staged files
    """
    ctx.ensure_object(dict)
    ctx.obj["settings"] = Settings(
        root=root,
        remote_url=remote_url,
        service_id=service_id,
        index_path=index_file,
        verbose=verbose,
    )
