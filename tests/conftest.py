"""Pytest configuration and shared doubles for tabtorrent tests."""

import asyncio

import pytest

from tabtorrent.core.id_allocator import IdAllocator
from tabtorrent.core.session_controller import SessionController
from tabtorrent.core.tab_registry import TabRegistry

MAGNET = "magnet:?xt=urn:btih:0123456789abcdef0123456789abcdef01234567&dn=debian"


class CapturingRenderer:
    """Records everything the core asks to draw."""

    def __init__(self):
        self.views = []
        self.attached = []
        self.detached = []
        self.active_history = []

    def attach(self, session):
        self.attached.append(session.id)

    def render(self, view):
        self.views.append(view)

    def detach(self, session_id):
        self.detached.append(session_id)

    def set_active(self, session_id):
        self.active_history.append(session_id)

    def views_for(self, session_id):
        return [v for v in self.views if v.session_id == session_id]

    def last_for(self, session_id):
        return self.views_for(session_id)[-1]


class FakeBackend:
    """
    Engine double whose downloads stay open until the test settles them
    through `finish(uri)` / `fail(uri, error)`.
    """

    def __init__(self):
        self.names = {}
        self.resolve_error = None
        self.stop_error = None
        self.resolved = []
        self.started = []
        self.stopped = []
        self.sinks = {}
        self._pending = {}
        self._started_events = {}

    async def resolve_name(self, uri):
        self.resolved.append(uri)
        if self.resolve_error is not None:
            raise self.resolve_error
        return self.names.get(uri, "debian-12.iso")

    async def start_task(self, uri, output_dir, sink):
        self.started.append((uri, output_dir))
        self.sinks[uri] = sink
        done = asyncio.get_running_loop().create_future()
        self._pending[uri] = done
        self._event(uri).set()
        await done

    async def stop_task(self, uri):
        self.stopped.append(uri)
        if self.stop_error is not None:
            raise self.stop_error

    def _event(self, uri):
        return self._started_events.setdefault(uri, asyncio.Event())

    async def wait_started(self, uri=MAGNET):
        await asyncio.wait_for(self._event(uri).wait(), timeout=1)

    def finish(self, uri=MAGNET):
        self._pending[uri].set_result(None)

    def fail(self, uri=MAGNET, error=None):
        self._pending[uri].set_exception(error or RuntimeError("boom"))


def snapshot_message(downloaded=0, total=1000, peers=None):
    return {
        "bytes": {"downloaded": downloaded, "total": total},
        "peers": peers if peers is not None else {},
    }


def chooser(value="/downloads"):
    calls = []

    async def choose():
        calls.append(value)
        return value

    choose.calls = calls
    return choose


@pytest.fixture
def renderer():
    return CapturingRenderer()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def controller(backend, renderer):
    return SessionController(backend, renderer, snapshot_dump_interval=2)


@pytest.fixture
def registry(controller, renderer):
    return TabRegistry(controller, renderer, IdAllocator())
