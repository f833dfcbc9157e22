"""
Async HTTP client for the local download engine daemon.
"""

import asyncio
import json
import logging
import time
from typing import Any, Optional

import aiohttp

from tabtorrent.core.subscription import StreamSink
from tabtorrent.exceptions import ResolutionError, SessionStartError, StopError

log = logging.getLogger(__name__)


class EngineClient:
    """
    Talks to the engine's HTTP API.

    Endpoints:
    - GET    /name?uri=...   -> {"name": "..."}
    - POST   /downloads      -> newline-delimited JSON progress stream
    - DELETE /downloads?uri= -> stop a running download
    """

    def __init__(self, base_url: str, connect_timeout: float = 10.0):
        """
        Initializes the engine client.

        Args:
            base_url: Root URL of the engine, without a trailing slash.
            connect_timeout: Seconds allowed for establishing a connection. Reads
                are not limited, since a download stream stays open for as long
                as the download runs.
        """
        self.base_url = base_url.rstrip("/")
        self.connect_timeout = connect_timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def _initialize_session(self) -> aiohttp.ClientSession:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"Accept": "application/json, application/x-ndjson"},
                timeout=aiohttp.ClientTimeout(
                    total=None, sock_connect=self.connect_timeout
                ),
            )
        return self._session

    async def close(self) -> None:
        """Gracefully closes the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> "EngineClient":
        await self._initialize_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def resolve_name(self, uri: str) -> str:
        session = await self._initialize_session()
        try:
            async with session.get(
                f"{self.base_url}/name", params={"uri": uri}
            ) as r:
                if r.status >= 400:
                    raise ResolutionError(
                        f"Engine could not resolve name ({r.status}): "
                        f"{(await r.text()).strip()}"
                    )
                payload = await r.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ResolutionError(f"Name lookup failed: {e}") from e
        except json.JSONDecodeError as e:
            raise ResolutionError(f"Engine returned an invalid name response: {e}") from e

        name = payload.get("name") if isinstance(payload, dict) else None
        if not isinstance(name, str) or not name.strip():
            raise ResolutionError("Engine response did not contain a name.")
        return name.strip()

    async def start_task(self, uri: str, output_dir: str, sink: StreamSink) -> None:
        session = await self._initialize_session()
        start_time = time.monotonic()
        lines = 0
        try:
            async with session.post(
                f"{self.base_url}/downloads",
                json={"uri": uri, "output_dir": output_dir},
            ) as r:
                if r.status >= 400:
                    raise SessionStartError((await r.text()).strip() or r.reason)

                async for raw_line in r.content:
                    line = raw_line.decode("utf-8", errors="replace").strip()
                    if not line:
                        continue
                    lines += 1
                    message = self._decode_line(line)
                    if isinstance(message, dict) and set(message) == {"error"}:
                        raise SessionStartError(str(message["error"]))
                    if not sink.send(message):
                        log.debug(f"Receiver for '{uri}' is gone, closing stream.")
                        return
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise SessionStartError(f"Connection to engine failed: {e}") from e
        finally:
            log.debug(
                f"Download stream for '{uri}' ended after {lines} message(s) "
                f"in {time.monotonic() - start_time:.1f}s"
            )

    async def stop_task(self, uri: str) -> None:
        session = await self._initialize_session()
        try:
            async with session.delete(
                f"{self.base_url}/downloads", params={"uri": uri}
            ) as r:
                if r.status >= 400:
                    raise StopError(
                        f"Engine refused to stop '{uri}' ({r.status}): "
                        f"{(await r.text()).strip()}"
                    )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise StopError(f"Stop request failed: {e}") from e

    async def ping(self) -> bool:
        """Returns True if the engine answers at all."""
        session = await self._initialize_session()
        try:
            async with session.get(self.base_url + "/") as r:
                return r.status < 500
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.debug(f"Engine ping failed: {e}")
            return False

    @staticmethod
    def _decode_line(line: str) -> Any:
        """Parses a JSON line; undecodable lines are passed on as plain text."""
        try:
            return json.loads(line)
        except json.JSONDecodeError:
            return line
