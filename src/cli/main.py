"""ReplyAgent CLI: operator tooling for the auto-reply service.

Usage:
    replyagent init-db              Create database tables
    replyagent serve                Run the HTTP API
    replyagent reply --text ...     Run the pipeline for one message
    replyagent config show          Show resolved configuration
"""

import asyncio
import logging
import os
import sys
from typing import Optional

import typer
from rich.console import Console

from src.cli.config import CONFIG_PATH_ENV, load_config
from src.cli.output import format_config, format_reply_result
from src.errors import ReplyAgentError, format_error

_log = logging.getLogger(__name__)

app = typer.Typer(
    name="replyagent",
    help="Persona-driven automatic replies for inbound WhatsApp messages",
    no_args_is_help=True,
)
config_app = typer.Typer(help="Configuration management")

app.add_typer(config_app, name="config")

console = Console()

# --- Global state ---
_config_path: str | None = None


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(levelname)s:%(name)s:%(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def _load_or_exit():
    try:
        return load_config(config_path=_config_path)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e
    except ReplyAgentError as e:
        console.print(f"[red]{format_error(e)}[/red]")
        raise typer.Exit(1) from e


@app.callback()
def main(
    config: Optional[str] = typer.Option(
        None, "--config", help="Path to replyagent.yaml config file"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log pipeline stages"),
):
    """ReplyAgent CLI for automatic replies for inbound messages."""
    global _config_path
    _config_path = config
    _configure_logging("info" if verbose else "warning")


# --- Version ---


@app.command()
def version():
    """Show ReplyAgent version."""
    from importlib.metadata import version as pkg_version

    try:
        v = pkg_version("replyagent")
    except Exception:
        v = "unknown"
    console.print(f"[bold]ReplyAgent[/bold] v{v}")


# --- Config commands ---


@config_app.command("show")
def config_show():
    """Display resolved configuration (secrets masked)."""
    cfg = _load_or_exit()
    console.print(format_config(cfg), end="")


# --- Database ---


@app.command("init-db")
def init_db_cmd():
    """Create all database tables (safe to re-run)."""
    from src.db.connection import init_db, session_factory_for

    cfg = _load_or_exit()
    session_factory = session_factory_for(cfg.database.url)
    init_db(bind=session_factory.kw["bind"])
    console.print("[green]Database initialized.[/green]")


# --- Server ---


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port"),
):
    """Run the ReplyAgent HTTP API with uvicorn."""
    import uvicorn

    cfg = _load_or_exit()
    final_host = host or cfg.server.host
    final_port = port or cfg.server.port

    # The API process loads the same config file as the CLI
    if _config_path:
        os.environ[CONFIG_PATH_ENV] = str(_config_path)

    console.print(f"[bold]Starting ReplyAgent API on {final_host}:{final_port}[/bold]")
    uvicorn.run(
        "src.api.main:app",
        host=final_host,
        port=final_port,
        workers=1,
        log_level=cfg.server.log_level,
        lifespan="on",
    )


# --- Pipeline ---


@app.command()
def reply(
    text: str = typer.Option(..., "--text", "-t", help="Inbound message text"),
    sender: str = typer.Option(..., "--sender", "-s", help="Sender address (phone or JID)"),
    receiver: Optional[str] = typer.Option(None, "--receiver", "-r", help="Receiving address"),
    owner_id: Optional[str] = typer.Option(None, "--owner-id", help="Conversation owner id"),
    contact_type: str = typer.Option(
        "unknown", "--contact-type", help="customer, carrier or unknown"
    ),
    record_id: Optional[str] = typer.Option(None, "--record-id", help="Linked order id"),
    conversation_id: Optional[str] = typer.Option(
        None, "--conversation-id", help="Conversation id (defaults to the sender)"
    ),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Run the reply pipeline for one message and print the result."""
    from pydantic import ValidationError

    from src.cli.factory import build_orchestrator
    from src.orchestrator.models import InboundEvent

    cfg = _load_or_exit()
    try:
        event = InboundEvent(
            conversation_id=conversation_id or sender,
            message_text=text,
            sender_address=sender,
            receiver_address=receiver,
            owner_id=owner_id,
            record_id=record_id,
            contact_type=contact_type,
        )
    except ValidationError as e:
        console.print(f"[red]Invalid message: {e}[/red]")
        raise typer.Exit(2) from e

    orchestrator = build_orchestrator(cfg)
    result = asyncio.run(orchestrator.handle(event))
    output = format_reply_result(result, as_json=as_json)
    if as_json:
        typer.echo(output)
    else:
        console.print(output, end="")
    if not result.success:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
