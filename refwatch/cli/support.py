"""Shared wiring for CLI commands: logging, the step executor, result display."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel

from refwatch.config import settings
from refwatch.core.executor import StepExecutor
from refwatch.core.notification_bus import NotificationBus
from refwatch.core.step_history import StepHistory
from refwatch.models.results import StepResult, StepStatus

_STATUS_STYLE = {
    StepStatus.SUCCESS: "green",
    StepStatus.FAILURE: "red",
    StepStatus.WAITING: "yellow",
    StepStatus.KILLED: "magenta",
}

EXIT_CODES = {
    StepStatus.SUCCESS: 0,
    StepStatus.FAILURE: 1,
    StepStatus.WAITING: 1,
    StepStatus.KILLED: 130,
}


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(name)s | %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(show_path=False, rich_tracebacks=True)],
        force=True,
    )


def build_executor(
    history_path: Path | None = None, bus: NotificationBus | None = None
) -> StepExecutor:
    history = StepHistory(history_path or settings.history_path)
    return StepExecutor(history=history, bus=bus, git_config=settings.git)


def print_result(console: Console, step_id: str, result: StepResult) -> None:
    style = _STATUS_STYLE.get(result.status, "white")
    lines = [f"[bold]Status:[/bold] [{style}]{result.status.value}[/{style}]"]
    for key in ("changed_ref", "changed_remote", "old_revision", "revision", "tag"):
        if key in result.details:
            lines.append(f"[bold]{key}:[/bold] {escape(str(result.details[key]))}")
    if result.out:
        lines += ["", escape(result.out)]
    console.print(
        Panel(
            "\n".join(lines),
            title=f"[bold]{step_id}[/bold]",
            border_style=style,
            padding=(1, 2),
        )
    )
