"""
Rendering functions for gitqueue output.

This module handles all pretty-printing and table formatting.
Services return data, this module makes it human-readable.
"""

from rich.table import Table
from rich.console import Console
from rich import box
from typing import List, Optional

from .domain.message import Message, MessageKind

console = Console()

PAYLOAD_PREVIEW_LENGTH = 60


def _payload_preview(payload: str) -> str:
    first_line = payload.splitlines()[0] if payload else ""
    if len(first_line) > PAYLOAD_PREVIEW_LENGTH or len(payload.splitlines()) > 1:
        return first_line[:PAYLOAD_PREVIEW_LENGTH - 3] + "..."
    return first_line


def render_queue_log(queue_name: str, messages: List[Message], target: Optional[Console] = None) -> None:
    """
    Render a queue's message history as a table, most recent first.

    Args:
        queue_name: Queue the messages belong to
        messages: Messages, most recent first
        target: Console to print to (default: module console)
    """
    out = target or console

    if not messages:
        out.print(f"[yellow]Queue '{queue_name}' has no messages.[/yellow]")
        return

    table = Table(
        title=f"Queue: {queue_name}",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )

    table.add_column("Commit", style="cyan", no_wrap=True)
    table.add_column("Event")
    table.add_column("Author", style="dim")
    table.add_column("Date", style="dim")
    table.add_column("Payload")

    for message in messages:
        if message.kind is MessageKind.CREATE_JOB:
            event = "[yellow]job created[/yellow]"
        else:
            event = "[green]job done[/green]"

        table.add_row(
            message.commit_hash[:8],
            event,
            message.author_name,
            message.date.strftime('%Y-%m-%d %H:%M') if message.date else "",
            _payload_preview(message.payload),
        )

    out.print(table)

    latest = messages[0]
    if latest.kind is MessageKind.CREATE_JOB:
        out.print(f"Pending job: [bold cyan]{latest.commit_hash}[/bold cyan]")
    else:
        out.print("[green]No pending job[/green]")
