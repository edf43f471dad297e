"""Keyed store of per-document blame state.

The store is the only owner of :class:`DocumentState` records. Other
components read records but mutate them exclusively through the accessor
operations below, each of which runs under one re-entrant lock so the
generation, cache and timer fields change together.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from threading import RLock
from typing import Any, Callable, Iterator

from ..attribution.models import BlameResult
from ..core.ranges import LineRange
from .lifecycle import LensState

__all__ = ["DocumentBlameStore", "DocumentState", "FetchCanceller"]

LOGGER = logging.getLogger(__name__)

FetchCanceller = Callable[[str], None]


@dataclass(slots=True)
class DocumentState:
    """Blame bookkeeping for one open document."""

    document_id: str
    cached_result: BlameResult | None = None
    fetch_generation: int = 0
    pending_fetch: Any = None
    debounce_timer: asyncio.TimerHandle | None = None
    last_selection: LineRange | None = None
    viewport: LineRange | None = None
    lens_state: LensState = LensState.EMPTY

    @property
    def has_multi_line_selection(self) -> bool:
        return self.last_selection is not None and self.last_selection.is_multi_line


class DocumentBlameStore:
    """Owns every :class:`DocumentState`, created lazily and destroyed on close."""

    def __init__(self, *, fetch_canceller: FetchCanceller | None = None) -> None:
        self._records: dict[str, DocumentState] = {}
        self._lock = RLock()
        self._fetch_canceller = fetch_canceller

    def bind_fetch_canceller(self, canceller: FetchCanceller | None) -> None:
        """Route :meth:`destroy` cancellations to the request coordinator."""

        self._fetch_canceller = canceller

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def get_or_create(self, document_id: str) -> DocumentState:
        with self._lock:
            record = self._records.get(document_id)
            if record is None:
                record = DocumentState(document_id=document_id)
                self._records[document_id] = record
                LOGGER.debug("Created blame state for %s", document_id)
            return record

    def get(self, document_id: str) -> DocumentState | None:
        with self._lock:
            return self._records.get(document_id)

    def __contains__(self, document_id: object) -> bool:
        with self._lock:
            return document_id in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def document_ids(self) -> list[str]:
        with self._lock:
            return list(self._records)

    def __iter__(self) -> Iterator[DocumentState]:
        with self._lock:
            return iter(list(self._records.values()))

    def invalidate(self, document_id: str) -> int | None:
        """Drop the cached result and supersede any in-flight fetch.

        The fetch keeps running; its result will fail the generation check.
        Returns the new generation, or ``None`` for unknown documents.
        """

        with self._lock:
            record = self._records.get(document_id)
            if record is None:
                return None
            record.cached_result = None
            record.pending_fetch = None
            record.fetch_generation += 1
            LOGGER.debug("Invalidated blame for %s (generation %d)", document_id, record.fetch_generation)
            return record.fetch_generation

    def destroy(self, document_id: str) -> bool:
        """Cancel the fetch, clear the timer, and remove the record."""

        with self._lock:
            record = self._records.pop(document_id, None)
            if record is None:
                return False
            timer = record.debounce_timer
            record.debounce_timer = None
            record.pending_fetch = None
            record.cached_result = None
            record.fetch_generation += 1
        if timer is not None:
            timer.cancel()
        canceller = self._fetch_canceller
        if canceller is not None:
            canceller(document_id)
        LOGGER.debug("Destroyed blame state for %s", document_id)
        return True

    def clear(self) -> list[str]:
        """Destroy every record; returns the ids that were removed."""

        removed = self.document_ids()
        for document_id in removed:
            self.destroy(document_id)
        return removed

    # ------------------------------------------------------------------
    # Fetch bookkeeping
    # ------------------------------------------------------------------
    def current_generation(self, document_id: str) -> int | None:
        with self._lock:
            record = self._records.get(document_id)
            return None if record is None else record.fetch_generation

    def attach_fetch(self, document_id: str, generation: int, handle: Any) -> bool:
        """Record ``handle`` as the current fetch if ``generation`` is current."""

        with self._lock:
            record = self._records.get(document_id)
            if record is None or record.fetch_generation != generation:
                return False
            record.pending_fetch = handle
            return True

    def complete_fetch(self, document_id: str, generation: int, result: BlameResult | None) -> bool:
        """Install ``result`` if its fetch is still current.

        Returns ``False`` (and changes nothing) when the document was
        destroyed or invalidated since the fetch was issued.
        """

        with self._lock:
            record = self._records.get(document_id)
            if record is None or record.fetch_generation != generation:
                return False
            record.pending_fetch = None
            if result is not None:
                record.cached_result = result
            return True

    def clear_pending_fetch(self, document_id: str) -> None:
        with self._lock:
            record = self._records.get(document_id)
            if record is not None:
                record.pending_fetch = None

    # ------------------------------------------------------------------
    # Timers, selection, and lifecycle state
    # ------------------------------------------------------------------
    def replace_debounce_timer(self, document_id: str, timer: asyncio.TimerHandle | None) -> bool:
        """Swap in ``timer``, cancelling the previous one."""

        with self._lock:
            record = self._records.get(document_id)
            if record is None:
                if timer is not None:
                    timer.cancel()
                return False
            previous = record.debounce_timer
            record.debounce_timer = timer
        if previous is not None and previous is not timer:
            previous.cancel()
        return True

    def clear_debounce_timer(self, document_id: str, timer: asyncio.TimerHandle | None = None) -> bool:
        """Forget the pending timer; with ``timer`` given, only if it matches."""

        with self._lock:
            record = self._records.get(document_id)
            if record is None or record.debounce_timer is None:
                return False
            if timer is not None and record.debounce_timer is not timer:
                return False
            previous = record.debounce_timer
            record.debounce_timer = None
        if previous is not timer:
            previous.cancel()
        return True

    def set_selection(self, document_id: str, selection: LineRange | None) -> DocumentState:
        with self._lock:
            record = self.get_or_create(document_id)
            record.last_selection = selection
            return record

    def set_viewport(self, document_id: str, viewport: LineRange | None) -> DocumentState:
        with self._lock:
            record = self.get_or_create(document_id)
            record.viewport = viewport
            return record

    def set_lens_state(self, document_id: str, state: LensState) -> bool:
        with self._lock:
            record = self._records.get(document_id)
            if record is None:
                return False
            record.lens_state = state
            return True
