from pathlib import Path

import click


@click.group()
def main() -> None:
    """pawprint - agent operations monitoring."""


@main.command()
@click.option("--host", default=None, help="Bind host (default: from PAWPRINT_HOST or 0.0.0.0).")
@click.option("--port", default=None, type=int, help="Bind port (default: from PAWPRINT_PORT or 8000).")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development.")
def server(host: str | None, port: int | None, reload: bool) -> None:
    """Start the pawprint API server."""
    import uvicorn

    from pawprint.server.settings import ServerSettings

    settings = ServerSettings()

    uvicorn.run(
        "pawprint.server.app:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="warning",  # uvicorn's own logging is intercepted by loguru
    )


@main.command()
@click.option("--dry-run", is_flag=True, default=False, help="Print the payload instead of sending it.")
def report(dry_run: bool) -> None:
    """Collect local metrics once and send them to the pawprint API."""
    from functools import partial

    import anyio

    from pawprint.log import setup_logging
    from pawprint.reporter.settings import ReporterSettings
    from pawprint.reporter.transport import ReporterError, run_once

    settings = ReporterSettings()
    setup_logging(settings.log_level, compact=True)

    try:
        anyio.run(partial(run_once, settings, dry_run=dry_run))
    except ReporterError as exc:
        click.echo(f"Reporter failed: {exc}", err=True)
        raise SystemExit(1) from None


# ---------------------------------------------------------------------------
# Database migrations (Alembic, run once per deployment)
# ---------------------------------------------------------------------------

ALEMBIC_INI = Path(__file__).parent / "server" / "alembic.ini"


def _alembic_config():
    """Alembic ``Config`` for the packaged ``alembic.ini``.

    The ini and the ``alembic/`` scripts ship inside the package, so this
    resolves the same from a checkout or an installed wheel.
    """
    from alembic.config import Config

    return Config(str(ALEMBIC_INI))


@main.group()
def db() -> None:
    """Manage the PostgreSQL schema (PAWPRINT_DATABASE_URL)."""


@db.command()
@click.option("--revision", default="head", show_default=True, help="Target revision.")
@click.option("--sql", "offline", is_flag=True, default=False, help="Print the DDL instead of applying it.")
def upgrade(revision: str, offline: bool) -> None:
    """Apply migrations up to REVISION."""
    from alembic import command

    command.upgrade(_alembic_config(), revision, sql=offline)
    if not offline:
        click.echo(f"Schema at {revision}.", err=True)


@db.command()
@click.option("--revision", default="-1", show_default=True, help="Target revision (-1 is one step back).")
@click.option("--sql", "offline", is_flag=True, default=False, help="Print the DDL instead of applying it.")
def downgrade(revision: str, offline: bool) -> None:
    """Revert migrations down to REVISION."""
    from alembic import command

    if offline and revision.startswith("-"):
        msg = "relative revisions need a live database; pass head:<rev>"
        raise click.BadParameter(msg, param_hint="--revision")
    command.downgrade(_alembic_config(), revision, sql=offline)
    if not offline:
        click.echo(f"Schema at {revision}.", err=True)


@db.command()
def current() -> None:
    """Show the revision the database is at."""
    from alembic import command

    command.current(_alembic_config(), verbose=True)


@db.command()
def history() -> None:
    """List known revisions."""
    from alembic import command

    command.history(_alembic_config(), verbose=True)


if __name__ == "__main__":
    main()
