"""
Turns whatever the engine pushes into a `Snapshot` or a `RawText` fallback.
"""

import json
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from tabtorrent.models.session import (
    UNKNOWN,
    ByteProgress,
    PeerRecord,
    RawText,
    Snapshot,
)
from tabtorrent.models.wire import WirePeer, WireSnapshot

log = logging.getLogger(__name__)

SNAPSHOT_KEYS = frozenset({"bytes", "peers"})


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return repr(value)


def _peer_record(address: str, peer: WirePeer) -> PeerRecord:
    return PeerRecord(
        address=address,
        origin=peer.origin or UNKNOWN,
        client=peer.client or UNKNOWN,
        downloaded_bytes=peer.download.bytes_received if peer.download else None,
        uploaded_bytes=peer.upload.bytes_sent if peer.upload else None,
    )


def normalize(value: Any) -> Snapshot | RawText:
    """
    Normalizes one pushed message.

    A mapping with a `bytes` or `peers` key becomes a Snapshot, with unknown
    markers for every field that is missing or malformed. Anything else is
    returned as RawText. Never raises.
    """
    if not isinstance(value, Mapping) or not SNAPSHOT_KEYS.intersection(value):
        return RawText(_as_text(value))

    try:
        wire = WireSnapshot.model_validate(dict(value))
    except ValidationError as e:
        log.debug(f"Snapshot did not validate, showing it as text: {e}")
        return RawText(_as_text(value))

    counts = wire.byte_counts
    progress = ByteProgress(
        downloaded=counts.downloaded if counts else None,
        total=counts.total if counts else None,
    )
    peers = {
        address: _peer_record(address, peer) for address, peer in wire.peers.items()
    }
    return Snapshot(progress=progress, peers=peers)


def percent(progress: ByteProgress) -> float:
    """Completion percentage clamped to [0, 100]; 0 when the size is unknown."""
    total = progress.total or 0
    if total <= 0:
        return 0.0
    downloaded = progress.downloaded or 0
    return min(max(downloaded / total * 100, 0.0), 100.0)
