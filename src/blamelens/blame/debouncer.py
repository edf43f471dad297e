"""Coalesces bursts of edits into one delayed refresh per document."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from ..services.settings import DEFAULT_DEBOUNCE_SECONDS
from .store import DocumentBlameStore

__all__ = ["ChangeDebouncer"]

LOGGER = logging.getLogger(__name__)


class ChangeDebouncer:
    """Invalidates on every edit and fires ``on_elapsed`` after a quiet window.

    The timer handle lives on the document's record, so destroying the record
    cancels it. A fired timer that no longer matches its record's handle
    (restarted or destroyed in the meantime) does nothing.
    """

    def __init__(
        self,
        store: DocumentBlameStore,
        on_elapsed: Callable[[str], None],
        *,
        delay_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._store = store
        self._on_elapsed = on_elapsed
        self._delay = max(0.0, float(delay_seconds))
        self._loop = loop

    @property
    def delay_seconds(self) -> float:
        return self._delay

    def handle_change(self, document_id: str) -> int | None:
        """Invalidate cached attribution now and restart the quiet window.

        Returns the document's new generation.
        """

        self._store.get_or_create(document_id)
        generation = self._store.invalidate(document_id)
        self.restart(document_id)
        return generation

    def restart(self, document_id: str) -> None:
        loop = self._resolve_loop()
        timer: asyncio.TimerHandle | None = None

        def _fire() -> None:
            self._fire(document_id, timer)

        timer = loop.call_later(self._delay, _fire)
        if not self._store.replace_debounce_timer(document_id, timer):
            LOGGER.debug("Dropped debounce for unknown document %s", document_id)

    def cancel(self, document_id: str) -> bool:
        return self._store.clear_debounce_timer(document_id)

    def is_pending(self, document_id: str) -> bool:
        record = self._store.get(document_id)
        return record is not None and record.debounce_timer is not None

    def _fire(self, document_id: str, timer: asyncio.TimerHandle | None) -> None:
        if timer is None or not self._store.clear_debounce_timer(document_id, timer):
            return
        LOGGER.debug("Debounce window elapsed for %s", document_id)
        self._on_elapsed(document_id)

    def _resolve_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop
