"""
The command interface the session controller expects from a download engine.
"""

from typing import Protocol

from tabtorrent.core.subscription import StreamSink


class TaskBackend(Protocol):
    async def resolve_name(self, uri: str) -> str:
        """Returns the torrent's display name or raises."""
        ...

    async def start_task(self, uri: str, output_dir: str, sink: StreamSink) -> None:
        """
        Runs a download to completion, pushing progress messages into `sink`.
        Returns on success and raises when the download cannot start or fails.
        """
        ...

    async def stop_task(self, uri: str) -> None:
        """Asks the engine to stop a running download."""
        ...
