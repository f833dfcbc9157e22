"""
Functions for formatting and displaying data in the console using Rich.
"""

from collections.abc import Sequence
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from tabtorrent.models.config import AppConfig
from tabtorrent.models.session import Session, SessionState


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "ConfigurationError": [
            "• Check the values in your configuration file.",
            "• Run `tabtorrent init --force` to write a fresh configuration.",
        ],
        "ValidationError": [
            "• Pass a magnet link or the path of a .torrent file.",
        ],
        "SessionStartError": [
            "• Make sure the download engine is running (`tabtorrent diagnose`).",
            "• The same torrent may already be downloading in another tab.",
        ],
        "ResolutionError": [
            "• Check that the magnet link or .torrent file is valid.",
        ],
        "ClientConnectorError": [
            "• The download engine could not be reached.",
            "• Check `engine_url` with `tabtorrent --show-config`.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config: AppConfig):
    """Displays the current configuration."""
    console = Console()
    content = "\n".join(
        f"{key} = {getattr(config, key)}" for key in sorted(AppConfig.get_ini_keys())
    )
    console.print(
        Panel(
            escape(content),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_tabs_table(
    console: Console, sessions: Sequence[Session], active: Session | None
):
    """Lists open tabs with their state."""
    if not sessions:
        console.print("[dim]No open tabs. Use 'new' to open one.[/dim]")
        return

    state_styles = {
        SessionState.COMPLETED: "green",
        SessionState.FAILED: "red",
        SessionState.CANCELLED: "yellow",
        SessionState.DOWNLOADING: "cyan",
    }
    table = Table(box=None, padding=(0, 2))
    table.add_column("", width=1)
    table.add_column("Tab", style="bold cyan", justify="right")
    table.add_column("Name")
    table.add_column("State")
    table.add_column("Source", style="dim", overflow="ellipsis", max_width=48)
    for session in sessions:
        style = state_styles.get(session.state, "white")
        table.add_row(
            "*" if active is not None and session.id == active.id else "",
            str(session.id),
            escape(session.display_name),
            f"[{style}]{session.state.value}[/{style}]",
            escape(session.uri),
        )
    console.print(table)


def print_run_summary(console: Console, sessions: Sequence[Session]):
    """Final per-tab outcome table after a `download` run."""
    table = Table(title="Downloads", show_header=True, header_style="bold cyan")
    table.add_column("Tab", justify="right")
    table.add_column("Name")
    table.add_column("Result")
    for session in sessions:
        if session.state is SessionState.COMPLETED:
            result = "[green]✓ complete[/green]"
        elif session.state is SessionState.FAILED:
            result = f"[red]✗ {escape(session.error or 'failed')}[/red]"
        elif session.state is SessionState.IDLE:
            result = "[yellow]not started[/yellow]"
        else:
            result = f"[yellow]{session.state.value}[/yellow]"
        table.add_row(str(session.id), escape(session.display_name), result)
    console.print(table)
