"""
Drives the lifecycle of download tabs: validation, output selection, name
resolution, the engine download and its progress stream, and finalization.
"""

import asyncio
import dataclasses
import logging
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Optional

from rich.markup import escape

from tabtorrent.exceptions import SessionBusyError, ValidationError
from tabtorrent.models.session import RawText, Session, SessionState, Snapshot
from tabtorrent.utils.formatting import short_label
from tabtorrent.utils.structured_logger import SessionLogger

from .normalizer import normalize
from .projection import TabRenderer, TabView, project
from .subscription import Subscription

if TYPE_CHECKING:
    from tabtorrent.api.backend import TaskBackend

log = logging.getLogger(__name__)

OutputChooser = Callable[[], Awaitable[Optional[str]]]


class SessionController:
    """
    Owns the state transitions of every session.

    Each call to `start` runs one download to its end; several can run
    concurrently on the same event loop. `cancel` takes effect locally at once
    while the engine is asked to stop in the background.
    """

    def __init__(
        self,
        backend: "TaskBackend",
        renderer: TabRenderer,
        label_length: int = 12,
        snapshot_dump_interval: int = 10,
        session_logger: SessionLogger | None = None,
    ):
        """
        Initializes the controller.

        Args:
            backend: The engine commands (name lookup, start, stop).
            renderer: Adapter that draws each projected tab view.
            label_length: Length of the fallback tab label cut from the uri.
            snapshot_dump_interval: Every n-th accepted message of a session is
                written to the debug log.
            session_logger: Optional structured event logger.
        """
        self._backend = backend
        self._renderer = renderer
        self._label_length = label_length
        self._dump_interval = snapshot_dump_interval
        self._events = session_logger

        self._sessions: dict[int, Session] = {}
        self._latest: dict[int, Snapshot | RawText] = {}
        self._subscriptions: dict[int, Subscription] = {}
        self._runs: dict[int, asyncio.Future] = {}
        self._ticks: dict[int, int] = {}
        self._started_at: dict[int, float] = {}
        # Sessions waiting on the output picker
        self._choosing: set[int] = set()
        # Fire-and-forget stop requests; referenced here until they finish
        self._detached: set[asyncio.Task] = set()

    def latest(self, session_id: int) -> Snapshot | RawText | None:
        return self._latest.get(session_id)

    def view(self, session: Session) -> TabView:
        return project(session, self._latest.get(session.id))

    def is_streaming(self, session_id: int) -> bool:
        sub = self._subscriptions.get(session_id)
        return sub is not None and sub.attached

    async def start(
        self, session: Session, uri: str, choose_output_location: OutputChooser
    ) -> SessionState:
        """
        Runs one download for `session` and returns the state it ended in.

        Raises:
            ValidationError: `uri` is empty or whitespace.
            SessionBusyError: The session is already starting or downloading.
        """
        if session.state.is_active or session.id in self._choosing:
            raise SessionBusyError(
                f"Tab {session.id} already has a download in progress."
            )
        uri = (uri or "").strip()
        if not uri:
            raise ValidationError("Magnet link or .torrent file path is required.")

        self._sessions[session.id] = session
        self._choosing.add(session.id)
        try:
            output_dir = await choose_output_location()
        finally:
            still_wanted = session.id in self._choosing
            self._choosing.discard(session.id)
        if not still_wanted:
            log.debug(f"Tab {session.id} was closed while choosing an output folder.")
            return session.state
        if not output_dir:
            log.debug(f"Tab {session.id}: no output folder chosen, nothing started.")
            return session.state

        self._reset_run(session, uri, output_dir)
        self._transition(session, SessionState.RESOLVING)
        lookup = self._track(session, self._resolve_display_name(session, uri))
        try:
            display_name = await lookup
        except asyncio.CancelledError:
            if self._cancelled_locally(session, lookup):
                return session.state
            self.cancel(session)
            raise
        finally:
            self._untrack(session, lookup)
        if session.state is not SessionState.RESOLVING:
            return session.state
        session.display_name = display_name

        subscription = Subscription(session.id, self._on_message)
        self._subscriptions[session.id] = subscription
        self._transition(session, SessionState.DOWNLOADING)
        if self._events:
            self._events.session_started(session.id, uri, output_dir)

        run = self._track(
            session, self._backend.start_task(uri, output_dir, subscription)
        )
        try:
            await run
        except asyncio.CancelledError:
            if self._cancelled_locally(session, run):
                return session.state
            self.cancel(session)
            raise
        except Exception as e:
            self._finish(
                session, subscription, SessionState.FAILED, str(e) or type(e).__name__
            )
        else:
            self._finish(session, subscription, SessionState.COMPLETED)
        finally:
            self._untrack(session, run)
        return session.state

    def cancel(self, session: Session) -> bool:
        """
        Cancels the session's download, if any. Returns False for a session
        that has already finished.

        The local transition happens before this returns; the engine stop runs
        as a detached task whose outcome is ignored.
        """
        choosing = session.id in self._choosing
        self._choosing.discard(session.id)
        if session.state.is_terminal and not choosing:
            return False

        previous = session.state
        self._detach(session.id)
        run = self._runs.pop(session.id, None)
        if run is not None and not run.done():
            run.cancel()

        session.error = None
        self._transition(session, SessionState.CANCELLED)
        if previous.is_active:
            self._log_finished(session)
            if session.uri:
                self._spawn_detached(self._stop_quietly(session.id, session.uri))
        return True

    def is_cancellable(self, session: Session) -> bool:
        """True while a start is pending or a download is resolving or running."""
        return session.state.is_active or session.id in self._choosing

    def release(self, session_id: int) -> None:
        """Drops everything kept for a closed tab."""
        self._detach(session_id)
        self._sessions.pop(session_id, None)
        self._latest.pop(session_id, None)
        self._ticks.pop(session_id, None)
        self._started_at.pop(session_id, None)

    async def drain(self) -> None:
        """Waits for outstanding stop requests, e.g. before closing the engine client."""
        if self._detached:
            await asyncio.gather(*self._detached, return_exceptions=True)

    def _track(self, session: Session, coro: Awaitable[Any]) -> asyncio.Future:
        """Runs `coro` as the session's current step; `cancel` cancels it."""
        step = asyncio.ensure_future(coro)
        self._runs[session.id] = step
        return step

    def _untrack(self, session: Session, step: asyncio.Future) -> None:
        if self._runs.get(session.id) is step:
            del self._runs[session.id]

    @staticmethod
    def _cancelled_locally(session: Session, step: asyncio.Future) -> bool:
        return step.cancelled() and session.state is SessionState.CANCELLED

    def _reset_run(self, session: Session, uri: str, output_dir: str) -> None:
        session.uri = uri
        session.output_dir = output_dir
        session.error = None
        self._latest.pop(session.id, None)
        self._ticks[session.id] = 0
        self._started_at[session.id] = time.monotonic()

    async def _resolve_display_name(self, session: Session, uri: str) -> str:
        try:
            name = await self._backend.resolve_name(uri)
            if not name or not name.strip():
                raise ValueError("empty name")
            fallback = False
        except Exception as e:
            name = short_label(uri, self._label_length) or f"Tab {session.id}"
            fallback = True
            log.info(
                f"[yellow]Could not resolve a name for tab {session.id}, "
                f"using '{escape(name)}': {escape(str(e))}[/yellow]"
            )
        if self._events:
            self._events.name_resolved(session.id, name, fallback)
        return name

    def _on_message(self, session_id: int, message: Any) -> None:
        session = self._sessions.get(session_id)
        if (
            session is None
            or session.state is not SessionState.DOWNLOADING
            or not self.is_streaming(session_id)
        ):
            log.debug(f"Dropping late message for tab {session_id}.")
            return

        update = normalize(message)
        previous = self._latest.get(session_id)
        if isinstance(update, Snapshot) and isinstance(previous, Snapshot):
            update = self._keep_monotonic(previous, update)
        self._latest[session_id] = update

        self._ticks[session_id] = self._ticks.get(session_id, 0) + 1
        tick = self._ticks[session_id]
        if tick % self._dump_interval == 0:
            log.debug(f"Tab {session_id} snapshot #{tick}: {update}")
            if self._events:
                self._events.snapshot_dump(session_id, tick, message)

        self._renderer.render(project(session, update))

    @staticmethod
    def _keep_monotonic(previous: Snapshot, update: Snapshot) -> Snapshot:
        """Never lets the downloaded counter go backwards within one run."""
        before = previous.progress.downloaded
        after = update.progress.downloaded
        if before is not None and after is not None and after < before:
            return dataclasses.replace(
                update,
                progress=dataclasses.replace(update.progress, downloaded=before),
            )
        return update

    def _finish(
        self,
        session: Session,
        subscription: Subscription,
        state: SessionState,
        error: str | None = None,
    ) -> None:
        if (
            session.state is not SessionState.DOWNLOADING
            or self._subscriptions.get(session.id) is not subscription
        ):
            return
        self._detach(session.id)
        session.error = error
        self._transition(session, state)
        self._log_finished(session)

    def _transition(self, session: Session, state: SessionState) -> None:
        log.debug(f"Tab {session.id}: {session.state.value} -> {state.value}")
        session.state = state
        self._renderer.render(self.view(session))

    def _detach(self, session_id: int) -> None:
        subscription = self._subscriptions.pop(session_id, None)
        if subscription is not None:
            subscription.detach()

    def _log_finished(self, session: Session) -> None:
        duration = time.monotonic() - self._started_at.get(session.id, time.monotonic())
        if session.state is SessionState.COMPLETED:
            log.info(f"[green]✓ {escape(session.display_name)} finished.[/green]")
        elif session.state is SessionState.FAILED:
            log.error(
                f"[red]✗ {escape(session.display_name)} failed: "
                f"{escape(session.error or '')}[/red]"
            )
        else:
            log.info(f"{escape(session.display_name)} cancelled.")
        if self._events:
            self._events.session_finished(
                session.id, session.state.value, duration, session.error
            )

    def _spawn_detached(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._detached.add(task)
        task.add_done_callback(self._detached.discard)

    async def _stop_quietly(self, session_id: int, uri: str) -> None:
        # The stop outcome never changes local state, so errors only get logged.
        try:
            await self._backend.stop_task(uri)
        except Exception as e:
            log.debug(f"Stop request for tab {session_id} failed: {e}")
