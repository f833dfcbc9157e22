"""
Keeps the set of open tabs and which one is visible.
"""

import logging

from tabtorrent.exceptions import SessionNotFoundError
from tabtorrent.models.session import Session

from .id_allocator import IdAllocator
from .projection import TabRenderer
from .session_controller import SessionController

log = logging.getLogger(__name__)


class TabRegistry:
    """
    Opens and closes tabs and tracks the single active one.

    Closing a tab always asks the controller to cancel its download first;
    that request never fails the close.
    """

    def __init__(
        self,
        controller: SessionController,
        renderer: TabRenderer,
        id_allocator: IdAllocator | None = None,
    ):
        self._controller = controller
        self._renderer = renderer
        self._ids = id_allocator or IdAllocator()
        self._sessions: dict[int, Session] = {}
        self._closing: set[int] = set()
        self._active_id: int | None = None

    @property
    def sessions(self) -> list[Session]:
        """Open tabs in creation order."""
        return list(self._sessions.values())

    @property
    def active(self) -> Session | None:
        if self._active_id is None:
            return None
        return self._sessions.get(self._active_id)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: int) -> bool:
        return session_id in self._sessions

    def get(self, session_id: int) -> Session:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(f"No open tab with id {session_id}.") from None

    def create_session(self, auto_activate: bool = True) -> Session:
        session = Session(id=self._ids.next())
        self._sessions[session.id] = session
        self._renderer.attach(session)
        self._renderer.render(self._controller.view(session))
        log.debug(f"Opened tab {session.id}.")
        if auto_activate or self._active_id is None:
            self._activate(session.id)
        return session

    def close_session(self, session_id: int) -> None:
        session = self._sessions.get(session_id)
        if session is None or session_id in self._closing:
            return
        self._closing.add(session_id)
        try:
            try:
                self._controller.cancel(session)
            except Exception as e:
                log.debug(f"Cancelling tab {session_id} on close failed: {e}")
            self._controller.release(session_id)
            del self._sessions[session_id]
            self._renderer.detach(session_id)
            log.debug(f"Closed tab {session_id}.")
            if self._active_id == session_id:
                remaining = next(reversed(self._sessions), None)
                self._activate(remaining)
        finally:
            self._closing.discard(session_id)

    def close_all(self) -> None:
        for session_id in list(self._sessions):
            self.close_session(session_id)

    def set_active(self, session_id: int) -> None:
        if session_id not in self._sessions:
            raise SessionNotFoundError(f"No open tab with id {session_id}.")
        if session_id != self._active_id:
            self._activate(session_id)

    def _activate(self, session_id: int | None) -> None:
        self._active_id = session_id
        self._renderer.set_active(session_id)
