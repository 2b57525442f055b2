"""CLI output formatters for Rich tables and JSON.

Provides human-readable Rich output (default) and machine-parseable JSON
output (--json flag). All formatting goes through these functions so the
CLI commands stay clean.
"""

import json

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from sqlalchemy.engine import make_url

from src.cli.config import ReplyAgentConfig
from src.orchestrator.models import ReplyResult
from src.utils.redaction import mask_secret

console = Console()

# Status color map
STATUS_COLORS = {
    "sent": "green",
    "pending_manual_send": "yellow",
    "human_handoff_required": "magenta",
    "failed": "red",
    "error": "red",
    "skipped": "dim",
}


def format_reply_result(result: ReplyResult, as_json: bool = False) -> str:
    """Format one pipeline result as a Rich panel or JSON.

    Args:
        result: Pipeline result to display.
        as_json: If True, return JSON string instead of Rich panel.

    Returns:
        Formatted string output.
    """
    if as_json:
        return json.dumps(result.to_dict(), indent=2, ensure_ascii=False)

    status = result.status.value
    status_color = STATUS_COLORS.get(status, "white")

    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Status", f"[{status_color}]{status}[/{status_color}]")
    table.add_row("Sent", "yes" if result.sent else "no")
    if result.reason:
        table.add_row("Reason", result.reason)
    if result.handoff:
        table.add_row("Handoff", ", ".join(result.matched_phrases) or "yes")
    if result.model:
        table.add_row("Model", result.model)
    if result.knowledge_used:
        table.add_row("Knowledge", ", ".join(result.knowledge_used))
    table.add_row("Time", f"{result.processing_time_ms} ms")
    if result.error_code:
        table.add_row("Error", f"[red]{result.error_code}[/red] {result.error or ''}".rstrip())

    with console.capture() as capture:
        console.print(Panel(table, title="Reply", border_style="cyan"))
        if result.message:
            console.print(Panel(result.message, title="Message", border_style="green"))
    return capture.get()


def format_config(cfg: ReplyAgentConfig) -> str:
    """Format the resolved configuration with secrets masked.

    Args:
        cfg: Resolved configuration.

    Returns:
        Formatted string output.
    """
    lines = [
        "[bold]Database:[/bold]",
        f"  url: {make_url(cfg.database.url).render_as_string(hide_password=True)}",
        "",
        "[bold]Completion:[/bold]",
        f"  api_key: {mask_secret(cfg.completion.api_key)}",
        f"  default_model: {cfg.completion.default_model}",
        f"  max_tokens: {cfg.completion.max_tokens}",
        f"  temperature: {cfg.completion.temperature}",
        f"  timeout_seconds: {cfg.completion.timeout_seconds}",
        "",
        "[bold]Gateway:[/bold]",
        f"  base_url: {cfg.gateway.base_url or '(not set)'}",
        f"  token: {mask_secret(cfg.gateway.token)}",
        f"  send_path: {cfg.gateway.send_path}",
        f"  attempt_timeout_seconds: {cfg.gateway.attempt_timeout_seconds}",
        f"  default_country_code: {cfg.gateway.default_country_code}",
        "",
        "[bold]Pipeline:[/bold]",
        f"  history_limit: {cfg.pipeline.history_limit}",
        f"  knowledge_candidate_limit: {cfg.pipeline.knowledge_candidate_limit}",
        f"  knowledge_top_k: {cfg.pipeline.knowledge_top_k}",
        f"  knowledge_snippet_chars: {cfg.pipeline.knowledge_snippet_chars}",
        f"  channel: {cfg.pipeline.channel}",
        "",
        "[bold]Server:[/bold]",
        f"  host: {cfg.server.host}",
        f"  port: {cfg.server.port}",
        f"  log_level: {cfg.server.log_level}",
    ]
    with console.capture() as capture:
        console.print("\n".join(lines))
    return capture.get()
