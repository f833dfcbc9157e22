"""Tests for tab bookkeeping and the active-tab rules."""

import asyncio

import pytest
from conftest import MAGNET, chooser

from tabtorrent.core.id_allocator import IdAllocator
from tabtorrent.exceptions import SessionNotFoundError
from tabtorrent.models.session import SessionState


def test_new_tab_is_idle_attached_and_active(registry, renderer):
    session = registry.create_session()

    assert session.id == 1
    assert session.state is SessionState.IDLE
    assert renderer.attached == [1]
    assert renderer.last_for(1).title == "Ready"
    assert registry.active is session


def test_first_tab_is_activated_even_without_auto_activate(registry):
    first = registry.create_session(auto_activate=False)
    second = registry.create_session(auto_activate=False)

    assert registry.active is first
    assert registry.sessions == [first, second]


def test_ids_are_never_reused(registry):
    first = registry.create_session()
    registry.close_session(first.id)
    second = registry.create_session()

    assert second.id > first.id


def test_closing_active_tab_activates_most_recent_remaining(registry, renderer):
    a = registry.create_session()
    b = registry.create_session()
    c = registry.create_session()
    registry.set_active(a.id)

    registry.close_session(a.id)

    assert registry.active is c
    assert renderer.active_history[-1] == c.id
    assert a.id not in registry
    assert b.id in registry


def test_closing_inactive_tab_keeps_active(registry):
    a = registry.create_session()
    b = registry.create_session()

    registry.close_session(a.id)

    assert registry.active is b


def test_closing_last_tab_leaves_nothing_active(registry, renderer):
    session = registry.create_session()

    registry.close_session(session.id)

    assert registry.active is None
    assert len(registry) == 0
    assert renderer.active_history[-1] is None
    assert renderer.detached == [session.id]


def test_close_is_idempotent_and_ignores_unknown_ids(registry, renderer):
    session = registry.create_session()

    registry.close_session(session.id)
    registry.close_session(session.id)
    registry.close_session(999)

    assert renderer.detached == [session.id]


def test_set_active_on_current_tab_does_not_notify(registry, renderer):
    session = registry.create_session()
    history = list(renderer.active_history)

    registry.set_active(session.id)

    assert renderer.active_history == history


def test_set_active_unknown_tab_raises(registry):
    registry.create_session()

    with pytest.raises(SessionNotFoundError):
        registry.set_active(42)
    with pytest.raises(SessionNotFoundError):
        registry.get(42)


def test_custom_allocator_start(controller, renderer):
    from tabtorrent.core.tab_registry import TabRegistry

    registry = TabRegistry(controller, renderer, IdAllocator(start=100))

    assert registry.create_session().id == 100


@pytest.mark.asyncio
async def test_closing_a_downloading_tab_cancels_it(registry, controller, backend):
    session = registry.create_session()
    task = asyncio.create_task(controller.start(session, MAGNET, chooser()))
    await backend.wait_started()
    sink = backend.sinks[MAGNET]

    registry.close_session(session.id)

    assert session.state is SessionState.CANCELLED
    assert sink.send({"bytes": {"downloaded": 1, "total": 2}}) is False
    assert await task is SessionState.CANCELLED
    await controller.drain()
    assert backend.stopped == [MAGNET]
    assert controller.latest(session.id) is None


@pytest.mark.asyncio
async def test_close_all_stops_every_download(registry, controller, backend):
    uris = [MAGNET, "magnet:?xt=urn:btih:ffff"]
    tasks = []
    for uri in uris:
        session = registry.create_session()
        tasks.append(asyncio.create_task(controller.start(session, uri, chooser())))
        await backend.wait_started(uri)

    registry.close_all()
    await asyncio.gather(*tasks)
    await controller.drain()

    assert len(registry) == 0
    assert sorted(backend.stopped) == sorted(uris)


def test_close_survives_controller_errors(registry, controller, renderer, monkeypatch):
    session = registry.create_session()

    def broken_cancel(_session):
        raise RuntimeError("boom")

    monkeypatch.setattr(controller, "cancel", broken_cancel)
    registry.close_session(session.id)

    assert session.id not in registry
    assert renderer.detached == [session.id]
