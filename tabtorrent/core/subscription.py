"""
The per-session stream sink handed to the engine when a download starts.
"""

import logging
from collections.abc import Callable
from typing import Any, Protocol

log = logging.getLogger(__name__)


class StreamSink(Protocol):
    """What a backend needs to push messages for one download."""

    def send(self, message: Any) -> bool:
        """Delivers one message. Returns False once the receiver is gone."""
        ...


class Subscription:
    """
    Routes engine messages to the handler of a single session.

    After `detach()` every message is dropped and `send` returns False, which
    tells a well-behaved producer to stop emitting.
    """

    def __init__(self, session_id: int, handler: Callable[[int, Any], None]):
        self.session_id = session_id
        self._handler = handler
        self._attached = True
        self.received = 0

    @property
    def attached(self) -> bool:
        return self._attached

    def detach(self) -> None:
        if self._attached:
            self._attached = False
            log.debug(
                f"Tab {self.session_id}: stream detached after "
                f"{self.received} message(s)."
            )

    def send(self, message: Any) -> bool:
        if not self._attached:
            return False
        self.received += 1
        self._handler(self.session_id, message)
        return self._attached
