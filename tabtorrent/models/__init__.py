"""
Data Models Layer.

This package contains the configuration model, the session and snapshot
types shared by the core, and the Pydantic schema of engine messages.
"""

from .config import AppConfig
from .session import (
    ByteProgress,
    PeerRecord,
    RawText,
    Session,
    SessionState,
    Snapshot,
)

__all__ = [
    "AppConfig",
    "ByteProgress",
    "PeerRecord",
    "RawText",
    "Session",
    "SessionState",
    "Snapshot",
]
