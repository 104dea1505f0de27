from __future__ import annotations

import sys
from contextlib import contextmanager
from typing import Generator

import psycopg
import typer

from pgguard.config import get_settings
from pgguard.errors import PersistenceError
from pgguard.infrastructure.db_factory import PoolManager, wait_for_database
from pgguard.migrator import MigrationRunner
from pgguard.reporter import print_migrations, print_status
from pgguard.utils.logging import configure_logging, get_logger

app = typer.Typer(help="pgguard database operations CLI.")
log = get_logger("pgguard.cli")

WaitOption = typer.Option(
    False,
    "--wait",
    "-w",
    help="Wait (with backoff) until the database accepts connections.",
)


@contextmanager
def _runner(wait: bool) -> Generator[MigrationRunner, None, None]:
    """
    Configure logging, open the pool and turn any propagated error into exit code 1.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    manager = PoolManager()
    try:
        if wait:
            wait_for_database(settings)
        yield MigrationRunner(manager.get_pool(), settings=settings)
    except (PersistenceError, psycopg.Error) as exc:
        log.error(f"Migration operation failed: {exc}")
        typer.echo(f"Migration operation failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    finally:
        manager.close_all()


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"pool=({settings.db_pool_min_size},{settings.db_pool_max_size}) "
        f"statement_timeout={settings.db_statement_timeout_ms}ms env={settings.app_env}"
    )


@app.command()
def migrate(wait: bool = WaitOption) -> None:
    """
    Run all pending migrations.
    """
    with _runner(wait) as runner:
        applied = runner.migrate()
    print_migrations("Applied", applied)


@app.command()
def rollback(wait: bool = WaitOption) -> None:
    """
    Roll back the last applied migration.
    """
    with _runner(wait) as runner:
        migration = runner.rollback()
    print_migrations("Rolled back", [migration] if migration else [])


@app.command()
def status(wait: bool = WaitOption) -> None:
    """
    Show the migration ledger and pending migrations.
    """
    with _runner(wait) as runner:
        current = runner.get_status()
    print_status(current)


@app.command()
def reset(
    wait: bool = WaitOption,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """
    Roll back every applied migration (refused when APP_ENV=production).
    """
    if not yes:
        typer.confirm("This reverts every applied migration. Continue?", abort=True)
    with _runner(wait) as runner:
        reverted = runner.reset()
    print_migrations("Reverted", reverted)


@app.command()
def health(wait: bool = WaitOption) -> None:
    """
    Check that the database answers a trivial query.
    """
    with _runner(wait) as runner:
        healthy = runner.executor.health_check()
    if not healthy:
        typer.echo("Database health check failed.", err=True)
        raise typer.Exit(code=1)
    typer.echo("Database is healthy.")


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
