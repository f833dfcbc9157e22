"""
Session state and the canonical snapshot shapes produced by the normalizer.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum

UNKNOWN = "unknown"


class SessionState(Enum):
    """Lifecycle states of a download tab."""

    IDLE = "idle"
    RESOLVING = "resolving"
    DOWNLOADING = "downloading"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (
            SessionState.COMPLETED,
            SessionState.FAILED,
            SessionState.CANCELLED,
        )

    @property
    def is_active(self) -> bool:
        """True while a backend subscription may be open."""
        return self in (SessionState.RESOLVING, SessionState.DOWNLOADING)


@dataclass
class Session:
    """
    One user-visible download tab.

    The registry owns the object; only the session controller changes `state`.
    """

    id: int
    uri: str = ""
    state: SessionState = SessionState.IDLE
    display_name: str = ""
    output_dir: str | None = None
    error: str | None = None

    def __post_init__(self):
        if not self.display_name:
            self.display_name = f"Tab {self.id}"


@dataclass(frozen=True)
class ByteProgress:
    """Byte counters of a download. `None` marks a counter the engine did not report."""

    downloaded: int | None = None
    total: int | None = None


@dataclass(frozen=True)
class PeerRecord:
    address: str
    origin: str = UNKNOWN
    client: str = UNKNOWN
    downloaded_bytes: int | None = None
    uploaded_bytes: int | None = None


@dataclass(frozen=True)
class Snapshot:
    """A normalized point-in-time progress and peer update."""

    progress: ByteProgress = field(default_factory=ByteProgress)
    peers: Mapping[str, PeerRecord] = field(default_factory=dict)


@dataclass(frozen=True)
class RawText:
    """A pushed message that did not match the snapshot shape."""

    text: str
