"""``refwatch clone REPO CWD`` — clone a repository and check out a ref."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from refwatch.cli.support import EXIT_CODES, build_executor, print_result
from refwatch.steps.repository import clone

console = Console()


def clone_cmd(
    repo: str = typer.Argument(..., help="Repository URL to clone."),
    cwd: Path = typer.Argument(..., help="Directory to clone into."),
    ref: str = typer.Option("master", "--ref", "-r", help="Branch, tag or revision to check out."),
    history_db: str = typer.Option(
        None, "--history", "-H", help="Path to the step history SQLite database."
    ),
) -> None:
    """Clone REPO into CWD and check out --ref."""
    executor = build_executor(Path(history_db) if history_db else None)
    result = executor.run("clone", lambda ctx: clone(ctx, repo, ref, cwd))
    print_result(console, "clone", result)
    raise typer.Exit(code=EXIT_CODES[result.status])
