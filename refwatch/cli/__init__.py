"""refwatch CLI — Typer-based command-line interface.

Provides the ``refwatch`` command with subcommands for watching a remote,
cloning, listing changes, tagging versions and inspecting step history.

All output uses Rich for formatted terminal display.
"""
