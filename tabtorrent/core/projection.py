"""
Pure projection from a session and its latest update to renderable data.

Nothing here touches the engine or the terminal; the renderer consumes the
resulting `TabView`.
"""

from dataclasses import dataclass, field
from typing import Protocol

from tabtorrent.models.session import RawText, Session, SessionState, Snapshot
from tabtorrent.utils.formatting import format_percent, format_size

from .normalizer import percent as progress_percent

STATE_TITLES = {
    SessionState.IDLE: "Ready",
    SessionState.RESOLVING: "Resolving name",
    SessionState.DOWNLOADING: "Download in progress",
}


@dataclass(frozen=True)
class PeerRow:
    address: str
    client: str
    origin: str
    downloaded: str
    uploaded: str


@dataclass(frozen=True)
class TabView:
    """Everything needed to draw one tab."""

    session_id: int
    label: str
    title: str
    state: SessionState
    percent: float = 0.0
    summary: str = ""
    peers: list[PeerRow] = field(default_factory=list)
    raw_text: str | None = None
    terminal_message: str | None = None


def terminal_message(session: Session) -> str | None:
    if session.state is SessionState.COMPLETED:
        return "Download complete"
    if session.state is SessionState.FAILED:
        return f"Download failed: {session.error or 'unknown error'}"
    if session.state is SessionState.CANCELLED:
        return "Download cancelled"
    return None


def byte_summary(snapshot: Snapshot) -> str:
    """e.g. '1.5 MB / 3.0 MB (50%)', with '?' for counters the engine did not send."""
    progress = snapshot.progress
    downloaded = format_size(progress.downloaded, missing="?")
    total = format_size(progress.total, missing="?") if progress.total else "?"
    return f"{downloaded} / {total} ({format_percent(progress_percent(progress))})"


def peer_rows(snapshot: Snapshot) -> list[PeerRow]:
    """Peers ordered by address string, so rows do not jump between updates."""
    return [
        PeerRow(
            address=peer.address,
            client=peer.client,
            origin=peer.origin,
            downloaded=format_size(peer.downloaded_bytes),
            uploaded=format_size(peer.uploaded_bytes),
        )
        for _, peer in sorted(snapshot.peers.items())
    ]


def project(session: Session, latest: Snapshot | RawText | None = None) -> TabView:
    """Builds the view of a tab from its state and the most recent update."""
    pct = 0.0
    summary = ""
    if isinstance(latest, Snapshot):
        pct = progress_percent(latest.progress)
        summary = byte_summary(latest)

    final = terminal_message(session)
    if final is not None:
        return TabView(
            session_id=session.id,
            label=session.display_name,
            title=final,
            state=session.state,
            percent=pct,
            summary=summary,
            terminal_message=final,
        )

    return TabView(
        session_id=session.id,
        label=session.display_name,
        title=STATE_TITLES[session.state],
        state=session.state,
        percent=pct,
        summary=summary,
        peers=peer_rows(latest) if isinstance(latest, Snapshot) else [],
        raw_text=latest.text if isinstance(latest, RawText) else None,
    )


class TabRenderer(Protocol):
    """
    Side-effecting adapter that draws tabs.

    The renderer keeps one handle per session id; the registry attaches and
    detaches handles, the controller pushes views.
    """

    def attach(self, session: Session) -> None: ...

    def render(self, view: TabView) -> None: ...

    def detach(self, session_id: int) -> None: ...

    def set_active(self, session_id: int | None) -> None: ...
