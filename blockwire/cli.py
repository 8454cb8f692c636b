from __future__ import annotations
import asyncio
from pathlib import Path
from typing import Optional
import typer
from rich import print
from rich.syntax import Syntax

from blockwire.config import load_settings
from blockwire.core.delivery import send as send_message
from blockwire.core.errors import BlockwireError
from blockwire.domain.attachments import Attachment, FileType
from blockwire.domain.blocks import Context, Divider, FieldsSection, Header, MarkdownSection
from blockwire.domain.message import Message
from blockwire.observability.logging import configure_logging

app = typer.Typer(help="blockwire CLI - compose Slack Block Kit messages and deliver them.")

def _build_message(
    channel: str,
    header: Optional[str],
    text: Optional[str],
    fields: list[str],
    context: list[str],
    ts: Optional[str],
    files: list[Path] | None = None,
) -> Message:
    attachments = [
        Attachment.file_data(p.read_bytes(), p.name, FileType.from_filename(p.name), title=p.name)
        for p in files or []
    ]
    return Message(
        channel,
        Header(header) if header else None,
        MarkdownSection(text) if text else None,
        FieldsSection(*fields) if fields else None,
        Divider() if context else None,
        Context(*context) if context else None,
        ts=ts,
        attachments=attachments,
    )

@app.command()
def preview(
    channel: str = typer.Option(..., "--channel", "-c"),
    header: Optional[str] = None,
    text: Optional[str] = None,
    field: list[str] = typer.Option([], "--field", help="Markdown field, repeatable."),
    context: list[str] = typer.Option([], "--context", help="Context line element, repeatable."),
    ts: Optional[str] = None,
):
    """Print the wire JSON of a message without sending it."""
    message = _build_message(channel, header, text, field, context, ts)
    print(Syntax(message.pretty(), "json"))

@app.command()
def send(
    channel: str = typer.Option(..., "--channel", "-c"),
    header: Optional[str] = None,
    text: Optional[str] = None,
    field: list[str] = typer.Option([], "--field", help="Markdown field, repeatable."),
    context: list[str] = typer.Option([], "--context", help="Context line element, repeatable."),
    ts: Optional[str] = None,
    file: list[Path] = typer.Option([], "--file", exists=True, dir_okay=False, help="File to upload and attach, repeatable."),
    token: str = typer.Option("", envvar="BLOCKWIRE_SLACK_TOKEN"),
):
    """Send a message, uploading --file attachments first."""
    settings = load_settings()
    configure_logging(settings.log_level, json_logs=settings.json_logs)
    message = _build_message(channel, header, text, field, context, ts, file)
    try:
        meta = asyncio.run(send_message(message, token or None, settings=settings))
    except BlockwireError as e:
        print(f"[bold red]send failed:[/bold red] {e}")
        raise typer.Exit(code=1)
    print(f"[bold]sent[/bold] ts={meta.timestamp}")

def main():
    """Entry point for the CLI."""
    app()
