"""``refwatch history [STEP_ID]`` — show what earlier runs of a step recorded."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from refwatch.config import settings
from refwatch.core.step_history import StepHistory
from refwatch.models.results import LAST_SEEN_REVISIONS_KEY

console = Console()


def history_cmd(
    step_id: str = typer.Argument(None, help="Step to show. Lists known steps if omitted."),
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Number of entries to show."),
    history_db: str = typer.Option(
        None, "--history", "-H", help="Path to the step history SQLite database."
    ),
) -> None:
    """Show the most recent results recorded for STEP_ID."""
    db_path = Path(history_db) if history_db else settings.history_path
    if not db_path.exists():
        console.print(f"[bold red]History not found:[/bold red] {db_path}")
        console.print("[dim]Run a step first with: refwatch watch REMOTE[/dim]")
        raise typer.Exit(code=1)

    history = StepHistory(db_path)
    if step_id is None:
        step_ids = history.get_all_step_ids()
        if not step_ids:
            console.print("[dim]No steps recorded.[/dim]")
            return
        console.print("[bold]Recorded steps:[/bold]")
        for sid in step_ids:
            console.print(f"  [cyan]{sid}[/cyan]")
        return

    entries = history.results_for(step_id, limit=limit)
    if not entries:
        console.print(f"[bold red]No results for step:[/bold red] {step_id}")
        raise typer.Exit(code=1)

    table = Table(title=f"History of {step_id}")
    table.add_column("Run", style="cyan")
    table.add_column("Finished (UTC)")
    table.add_column("Status")
    table.add_column("Changed ref")
    table.add_column("Revision", style="green")
    table.add_column("Last seen refs", justify="right")

    for entry in entries:
        last_seen = entry.details.get(LAST_SEEN_REVISIONS_KEY)
        table.add_row(
            entry.run_id,
            entry.timestamp_utc.strftime("%Y-%m-%d %H:%M:%S"),
            entry.status.value,
            str(entry.details.get("changed_ref") or "-"),
            str(entry.details.get("revision") or "-")[:12],
            str(len(last_seen)) if isinstance(last_seen, dict) else "-",
        )
    console.print(table)
