"""Main Typer application — imports and registers all CLI commands.

Entry point: ``refwatch`` (configured via pyproject.toml console_scripts).
"""

from __future__ import annotations

import typer

from refwatch import __version__
from refwatch.cli.commands.clone_cmd import clone_cmd
from refwatch.cli.commands.history_cmd import history_cmd
from refwatch.cli.commands.list_changes_cmd import list_changes_cmd
from refwatch.cli.commands.tag_cmd import tag_cmd
from refwatch.cli.commands.watch import watch_cmd
from refwatch.cli.support import configure_logging
from refwatch.config import settings

app = typer.Typer(
    name="refwatch",
    help="refwatch: trigger pipelines when refs on a git remote move.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def root(
    log_level: str = typer.Option(
        settings.log_level, "--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)."
    ),
) -> None:
    configure_logging(log_level)


# Register subcommands
app.command(name="watch", help="Wait until a ref on a remote moves.")(watch_cmd)
app.command(name="clone", help="Clone a repository and check out a ref.")(clone_cmd)
app.command(name="list-changes", help="List commits between two revisions.")(list_changes_cmd)
app.command(name="tag", help="Tag a revision and push branches and tags.")(tag_cmd)
app.command(name="history", help="Show recorded results of a step.")(history_cmd)


@app.command(name="version", help="Print the refwatch version.")
def version_cmd() -> None:
    typer.echo(__version__)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
