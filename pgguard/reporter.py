from __future__ import annotations

from typing import List, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from pgguard.domain.models import LedgerEntry, Migration, MigrationStatus


def _ledger_table(entries: List[LedgerEntry]) -> Table:
    table = Table(title="Migration Ledger", box=box.ROUNDED, caption="Ordered by version")
    table.add_column("", no_wrap=True)
    table.add_column("Version", style="cyan", no_wrap=True)
    table.add_column("Name", style="magenta")
    table.add_column("Executed At", style="blue")
    table.add_column("Time (ms)", justify="right", style="green")
    table.add_column("Error", style="red")

    for entry in entries:
        icon = "[green]✔[/green]" if entry.success else "[red]✘[/red]"
        duration = f"{entry.execution_time_ms:,}" if entry.execution_time_ms is not None else "N/A"
        table.add_row(
            icon,
            entry.version,
            entry.name,
            entry.executed_at.strftime("%Y-%m-%d %H:%M:%S"),
            duration,
            entry.error_message or "",
        )
    return table


def print_status(status: MigrationStatus, console: Optional[Console] = None) -> None:
    """
    Render the ledger and pending migrations as rich tables.

    Failed attempts stay visible next to later successful retries of the
    same version.
    """
    console = console or Console()

    if not status.ledger and not status.pending:
        console.print("[yellow]No migrations found.[/yellow]")
        return

    if status.ledger:
        console.print(_ledger_table(status.ledger))

    if status.pending:
        pending = Table(title="Pending Migrations", box=box.ROUNDED)
        pending.add_column("Version", style="cyan", no_wrap=True)
        pending.add_column("Name", style="magenta")
        for item in status.pending:
            pending.add_row(item.version, item.name)
        console.print(pending)
    else:
        console.print("[green]No pending migrations.[/green]")


def print_migrations(title: str, migrations: List[Migration], console: Optional[Console] = None) -> None:
    """Summarize the migrations a command applied or reverted."""
    console = console or Console()
    if not migrations:
        console.print(f"[yellow]{title}: nothing to do.[/yellow]")
        return
    console.print(f"[bold]{title}:[/bold]")
    for migration in migrations:
        console.print(f"  • {migration.label}")


__all__ = ["print_migrations", "print_status"]
