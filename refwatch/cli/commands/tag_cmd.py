"""``refwatch tag REMOTE TAG`` — tag a revision and push to a remote."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from refwatch.cli.support import EXIT_CODES, build_executor, print_result
from refwatch.steps.repository import tag_version

console = Console()


def tag_cmd(
    remote: str = typer.Argument(..., help="Remote to push branches and tags to."),
    tag: str = typer.Argument(..., help="Name of the tag to create."),
    revision: str = typer.Option("HEAD", "--revision", "-r", help="Revision to tag."),
    cwd: Path = typer.Option(Path("."), "--cwd", "-C", help="Working directory of the clone."),
    history_db: str = typer.Option(
        None, "--history", "-H", help="Path to the step history SQLite database."
    ),
) -> None:
    """Tag --revision in the clone at --cwd as TAG and push to REMOTE."""
    executor = build_executor(Path(history_db) if history_db else None)
    result = executor.run("tag", lambda ctx: tag_version(ctx, cwd, remote, revision, tag))
    print_result(console, "tag", result)
    raise typer.Exit(code=EXIT_CODES[result.status])
