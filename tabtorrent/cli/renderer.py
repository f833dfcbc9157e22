"""
Draws tabs with Rich: a tab bar plus the active tab's progress, summary and
peer table. Can run inside a Live display or print on demand.
"""

import asyncio
from dataclasses import dataclass

from rich.console import Console, Group
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from tabtorrent.core.projection import TabView
from tabtorrent.models.session import Session, SessionState
from tabtorrent.utils.formatting import format_percent

STATE_STYLES = {
    SessionState.IDLE: ("○", "dim"),
    SessionState.RESOLVING: ("…", "yellow"),
    SessionState.DOWNLOADING: ("▶", "cyan"),
    SessionState.COMPLETED: ("✓", "green"),
    SessionState.FAILED: ("✗", "red"),
    SessionState.CANCELLED: ("■", "yellow"),
}


@dataclass
class TabHandle:
    """Renderer-side state of one tab, keyed by session id."""

    session_id: int
    label: str
    view: TabView | None = None


class ConsoleRenderer:
    """
    Rich adapter for tab views.

    Holds one handle per open tab. Views for tabs without a handle (already
    closed) are ignored.
    """

    def __init__(self, console: Console, max_peer_rows: int = 25):
        self.console = console
        self.max_peer_rows = max_peer_rows
        self._handles: dict[int, TabHandle] = {}
        self._active_id: int | None = None
        self._live: Live | None = None

    def attach(self, session: Session) -> None:
        self._handles[session.id] = TabHandle(session.id, session.display_name)
        self._update_display()

    def detach(self, session_id: int) -> None:
        self._handles.pop(session_id, None)
        self._update_display()

    def set_active(self, session_id: int | None) -> None:
        self._active_id = session_id
        self._update_display()

    def render(self, view: TabView) -> None:
        handle = self._handles.get(view.session_id)
        if handle is None:
            return
        handle.view = view
        handle.label = view.label
        self._update_display()

    def handle(self, session_id: int) -> TabHandle | None:
        return self._handles.get(session_id)

    def _generate_tab_bar(self) -> Text:
        bar = Text()
        for handle in self._handles.values():
            state = handle.view.state if handle.view else SessionState.IDLE
            icon, style = STATE_STYLES[state]
            label = f" {icon} {handle.session_id}: {handle.label} "
            if handle.session_id == self._active_id:
                bar.append(label, style=f"bold reverse {style}")
            else:
                bar.append(label, style=style)
            bar.append("│", style="dim")
        if not self._handles:
            bar.append("No open tabs", style="dim italic")
        return bar

    def _generate_progress_bar(self, percent: float, width: int = 30) -> Text:
        filled = int(width * percent / 100)
        color = "green" if percent >= 100 else "cyan" if percent > 50 else "yellow"
        bar = Text("█" * filled + "░" * (width - filled), style=color)
        bar.append(f" {format_percent(percent):>4}", style="bold")
        return bar

    def _generate_peer_table(self, view: TabView) -> Table:
        table = Table(expand=True, box=None, header_style="bold cyan")
        table.add_column("Address", style="white", no_wrap=True)
        table.add_column("Client", style="magenta")
        table.add_column("Origin", style="dim")
        table.add_column("Downloaded", justify="right", style="green")
        table.add_column("Uploaded", justify="right", style="blue")
        for row in view.peers[: self.max_peer_rows]:
            table.add_row(
                escape(row.address),
                escape(row.client),
                escape(row.origin),
                row.downloaded,
                row.uploaded,
            )
        hidden = len(view.peers) - self.max_peer_rows
        if hidden > 0:
            table.add_row(f"[dim]… and {hidden} more[/dim]", "", "", "", "")
        return table

    def _generate_tab_panel(self, handle: TabHandle) -> Panel:
        view = handle.view
        if view is None:
            return Panel(
                Text("Welcome to tabtorrent!", style="dim italic", justify="center"),
                title=f"[bold]{escape(handle.label)}[/bold]",
                border_style="cyan",
            )

        _, style = STATE_STYLES[view.state]
        parts = [Text(view.title, style=f"bold {style}")]
        if view.summary:
            parts.append(self._generate_progress_bar(view.percent))
            parts.append(Text(view.summary, style="dim"))
        if view.raw_text is not None:
            parts.append(Text(view.raw_text))
        elif view.peers:
            parts.append(self._generate_peer_table(view))
        elif view.state is SessionState.DOWNLOADING:
            parts.append(Text("Waiting for peers...", style="dim italic"))

        return Panel(
            Group(*parts),
            title=f"[bold]{escape(view.label)}[/bold]",
            subtitle=f"[dim]{len(view.peers)} peers[/dim]" if view.peers else None,
            border_style=style,
        )

    def build(self) -> Group:
        """The full tab bar plus the active tab's panel."""
        parts = [self._generate_tab_bar()]
        active = self._handles.get(self._active_id)
        if active is not None:
            parts.append(self._generate_tab_panel(active))
        return Group(*parts)

    def _update_display(self):
        if self._live is not None:
            self._live.update(self.build())

    def print_active(self) -> None:
        self.console.print(self.build())

    async def __aenter__(self):
        self._live = Live(
            self.build(),
            console=self.console,
            refresh_per_second=8,
            vertical_overflow="visible",
        )
        self._live.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._live:
            await asyncio.sleep(0.2)
            self._live.update(self.build())
            self._live.stop()
            self._live = None
