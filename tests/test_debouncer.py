"""Tests for edit debouncing."""

from __future__ import annotations

import asyncio

import pytest

from blamelens.blame.debouncer import ChangeDebouncer
from blamelens.blame.store import DocumentBlameStore
from tests.helpers import prompt_result

DELAY = 0.05


@pytest.fixture
def store() -> DocumentBlameStore:
    return DocumentBlameStore()


@pytest.fixture
def fired() -> list[str]:
    return []


@pytest.fixture
def debouncer(store: DocumentBlameStore, fired: list[str]) -> ChangeDebouncer:
    return ChangeDebouncer(store, fired.append, delay_seconds=DELAY)


@pytest.mark.asyncio
async def test_change_invalidates_immediately(debouncer: ChangeDebouncer, store: DocumentBlameStore) -> None:
    record = store.get_or_create("doc")
    record.cached_result = prompt_result({"p": [1]})

    generation = debouncer.handle_change("doc")

    assert generation == 1
    assert record.cached_result is None
    assert debouncer.is_pending("doc")
    debouncer.cancel("doc")


@pytest.mark.asyncio
async def test_burst_of_edits_fires_once(debouncer: ChangeDebouncer, fired: list[str]) -> None:
    for _ in range(5):
        debouncer.handle_change("doc")
        await asyncio.sleep(DELAY / 5)

    assert fired == []
    await asyncio.sleep(DELAY * 3)

    assert fired == ["doc"]
    assert not debouncer.is_pending("doc")


@pytest.mark.asyncio
async def test_window_is_timed_from_last_edit(store: DocumentBlameStore) -> None:
    loop = asyncio.get_running_loop()
    fire_times: list[float] = []
    debouncer_with_clock = ChangeDebouncer(
        store,
        lambda doc: fire_times.append(loop.time()),
        delay_seconds=DELAY,
    )

    debouncer_with_clock.handle_change("doc")
    await asyncio.sleep(DELAY * 0.6)
    last_edit = loop.time()
    debouncer_with_clock.handle_change("doc")
    await asyncio.sleep(DELAY * 3)

    assert len(fire_times) == 1
    assert fire_times[0] - last_edit >= DELAY * 0.9


@pytest.mark.asyncio
async def test_documents_debounce_independently(debouncer: ChangeDebouncer, fired: list[str]) -> None:
    debouncer.handle_change("a")
    debouncer.handle_change("b")
    await asyncio.sleep(DELAY * 3)

    assert sorted(fired) == ["a", "b"]


@pytest.mark.asyncio
async def test_timer_never_fires_after_destroy(
    debouncer: ChangeDebouncer, store: DocumentBlameStore, fired: list[str]
) -> None:
    debouncer.handle_change("doc")
    store.destroy("doc")
    await asyncio.sleep(DELAY * 3)

    assert fired == []


@pytest.mark.asyncio
async def test_cancel_stops_pending_timer(debouncer: ChangeDebouncer, fired: list[str]) -> None:
    debouncer.handle_change("doc")

    assert debouncer.cancel("doc")
    await asyncio.sleep(DELAY * 3)

    assert fired == []
    assert not debouncer.cancel("doc")


@pytest.mark.asyncio
async def test_restart_on_unknown_document_is_dropped(debouncer: ChangeDebouncer, fired: list[str]) -> None:
    debouncer.restart("ghost")
    await asyncio.sleep(DELAY * 3)

    assert fired == []
    assert not debouncer.is_pending("ghost")


def test_negative_delay_clamped(store: DocumentBlameStore) -> None:
    assert ChangeDebouncer(store, lambda doc: None, delay_seconds=-1).delay_seconds == 0.0
