"""``refwatch list-changes`` — list commits between two revisions of a clone."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from refwatch.cli.support import EXIT_CODES, build_executor, print_result
from refwatch.steps.repository import list_changes

console = Console()


def list_changes_cmd(
    cwd: Path = typer.Option(Path("."), "--cwd", "-C", help="Working directory of the clone."),
    old_revision: str = typer.Option(
        None, "--from", help="Revision the listing starts after."
    ),
    revision: str = typer.Option(None, "--to", help="Revision the listing ends at."),
    history_db: str = typer.Option(
        None, "--history", "-H", help="Path to the step history SQLite database."
    ),
) -> None:
    """Print commits between --from and --to, oldest first.

    Without both revisions only the current HEAD is shown.
    """
    args = {"cwd": str(cwd), "old_revision": old_revision, "revision": revision}
    executor = build_executor(Path(history_db) if history_db else None)
    result = executor.run("list-changes", lambda ctx: list_changes(args, ctx))
    print_result(console, "list-changes", result)
    raise typer.Exit(code=EXIT_CODES[result.status])
