"""``refwatch watch REMOTE`` — block until a watched ref on REMOTE moves.

Runs the trigger step against the configured step history, so a restarted
watcher resumes from the revisions it last reported.  With ``--serve`` the
notification endpoint runs in-process and webhooks can cut waits short.
Ctrl+C kills the step instead of tearing the process down mid-poll.
"""

from __future__ import annotations

import logging
import re
import threading
from pathlib import Path

import typer
import uvicorn
from rich.console import Console
from rich.markup import escape

from refwatch.api.notify import create_app
from refwatch.cli.support import EXIT_CODES, build_executor, print_result
from refwatch.config import settings
from refwatch.core.notification_bus import NotificationBus
from refwatch.models.results import StepResult
from refwatch.steps.trigger import wait_for_git

logger = logging.getLogger(__name__)

console = Console()


def _start_notify_server(bus: NotificationBus, host: str, port: int) -> uvicorn.Server:
    config = uvicorn.Config(create_app(bus), host=host, port=port, log_level="warning")
    server = uvicorn.Server(config)
    thread = threading.Thread(target=server.run, name="refwatch-notify", daemon=True)
    thread.start()
    logger.info("Serving notifications on http://%s:%d/notify-git", host, port)
    return server


def watch_cmd(
    remote: str = typer.Argument(
        ...,
        help="URL of the remote to watch.",
    ),
    ref: str = typer.Option(
        settings.default_ref,
        "--ref",
        "-r",
        help="Ref to watch, e.g. refs/heads/main.",
    ),
    regex: bool = typer.Option(
        False,
        "--regex",
        "-E",
        help="Treat --ref as a regular expression matched against full ref names.",
    ),
    interval_ms: int = typer.Option(
        settings.ms_between_polls,
        "--interval",
        "-i",
        min=0,
        help="Milliseconds between polls.",
    ),
    step_id: str = typer.Option(
        "wait-for-git",
        "--step-id",
        help="Step id under which history is recorded.",
    ),
    history_db: str = typer.Option(
        None,
        "--history",
        "-H",
        help="Path to the step history SQLite database.",
    ),
    serve: bool = typer.Option(
        False,
        "--serve/--no-serve",
        help="Serve POST /notify-git while watching.",
    ),
    host: str = typer.Option(settings.notify_host, "--host", help="Notify endpoint host."),
    port: int = typer.Option(settings.notify_port, "--port", help="Notify endpoint port."),
) -> None:
    """Wait for a ref on REMOTE to change and print what moved."""
    try:
        ref_spec = re.compile(ref) if regex else ref
    except re.error as exc:
        console.print(f"[bold red]Invalid ref pattern:[/bold red] {escape(ref)} ({escape(str(exc))})")
        raise typer.Exit(code=1)
    bus = NotificationBus()
    executor = build_executor(Path(history_db) if history_db else None, bus=bus)

    server = _start_notify_server(bus, host, port) if serve else None

    ctx = executor.new_context(step_id)
    results: list[StepResult] = []

    def _run() -> None:
        results.append(
            executor.run(
                step_id,
                lambda c: wait_for_git(c, remote, ref=ref_spec, ms_between_polls=interval_ms),
                ctx=ctx,
            )
        )

    console.print(f"[dim]Watching {ref} on {remote}. Press Ctrl+C to stop.[/dim]")
    worker = threading.Thread(target=_run, name=f"refwatch-{step_id}", daemon=True)
    worker.start()
    try:
        while worker.is_alive():
            worker.join(timeout=0.5)
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted, stopping watcher...[/yellow]")
        ctx.kill_switch.kill()
        worker.join()
    finally:
        if server is not None:
            server.should_exit = True

    result = results[0]
    print_result(console, step_id, result)
    raise typer.Exit(code=EXIT_CODES[result.status])
