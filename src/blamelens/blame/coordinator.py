"""Single-flight, generation-guarded blame fetches."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..attribution.models import BlameResult, Priority
from ..services.settings import BlameLensSettings
from ..services.telemetry import emit
from .provider import BlameProvider
from .store import DocumentBlameStore

__all__ = ["FetchCancelledCallback", "FetchSettledCallback", "RequestCoordinator"]

LOGGER = logging.getLogger(__name__)

FetchSettledCallback = Callable[[str, int, "BlameResult | None", bool], None]
FetchCancelledCallback = Callable[[str], None]


@dataclass(slots=True, eq=False)
class _PendingFetch:
    document_id: str
    generation: int
    priority: Priority
    future: asyncio.Future
    task: asyncio.Task | None = None
    cancelled: bool = False
    started_at: float = field(default_factory=time.perf_counter)


class RequestCoordinator:
    """Issues provider fetches with single-flight and stale-response discard.

    Every fetch captures the document's generation at issue time. When it
    resolves, the result is installed through the store only if that
    generation is still current; otherwise it is dropped and awaiters see
    ``None``. Concurrent requests for the same document and generation share
    one provider call.
    """

    def __init__(
        self,
        provider: BlameProvider,
        store: DocumentBlameStore,
        *,
        settings: BlameLensSettings | None = None,
        on_settled: FetchSettledCallback | None = None,
        on_cancelled: FetchCancelledCallback | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if provider is None:
            raise ValueError("provider is required")
        self._provider = provider
        self._store = store
        self._settings = settings or BlameLensSettings()
        self._on_settled = on_settled
        self._on_cancelled = on_cancelled
        self._loop = loop
        self._fetches: dict[str, list[_PendingFetch]] = {}
        self._disposed = False
        store.bind_fetch_canceller(self.cancel_for_uri)

    @property
    def provider(self) -> BlameProvider:
        return self._provider

    def set_settled_callback(self, callback: FetchSettledCallback | None) -> None:
        self._on_settled = callback

    def set_cancelled_callback(self, callback: FetchCancelledCallback | None) -> None:
        self._on_cancelled = callback

    def outstanding(self, document_id: str) -> int:
        """Number of fetches still running for ``document_id`` (current or superseded)."""

        return sum(1 for fetch in self._fetches.get(document_id, ()) if not fetch.future.done())

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def request_blame(
        self,
        document_id: str,
        content: str | None = None,
        priority: Priority = Priority.NORMAL,
    ) -> asyncio.Future:
        """Return a future resolving to the document's attribution or ``None``.

        Joins the outstanding fetch when one exists for the current
        generation; otherwise starts a new one.
        """

        loop = self._resolve_loop()
        if self._disposed:
            future = loop.create_future()
            future.set_result(None)
            return future
        record = self._store.get_or_create(document_id)
        generation = record.fetch_generation
        for fetch in self._fetches.get(document_id, ()):
            if fetch.generation == generation and not fetch.future.done():
                LOGGER.debug(
                    "Joining in-flight blame fetch for %s (generation %d)", document_id, generation
                )
                return fetch.future

        fetch = _PendingFetch(
            document_id=document_id,
            generation=generation,
            priority=priority,
            future=loop.create_future(),
        )
        self._fetches.setdefault(document_id, []).append(fetch)
        self._store.attach_fetch(document_id, generation, fetch.future)
        fetch.task = loop.create_task(self._run_fetch(fetch, content))
        emit(
            "blame.fetch.start",
            {"document_id": document_id, "generation": generation, "priority": priority.value},
        )
        return fetch.future

    def cancel_for_uri(self, document_id: str) -> None:
        """Abort every outstanding fetch for ``document_id``; awaiters get ``None``.

        When the document is still tracked, the cancelled callback is told so
        the caller can leave its loading state. Destroyed documents are not
        reported.
        """

        fetches = self._fetches.pop(document_id, [])
        for fetch in fetches:
            self._cancel_fetch(fetch)
        self._store.clear_pending_fetch(document_id)
        try:
            self._provider.cancel_for_uri(document_id)
        except Exception:  # pragma: no cover - provider isolation
            LOGGER.debug("Provider cancel_for_uri failed for %s", document_id, exc_info=True)
        if fetches:
            emit("blame.fetch.cancelled", {"document_id": document_id, "count": len(fetches)})
            if self._store.get(document_id) is not None:
                self._notify_cancelled(document_id)

    def invalidate_cache(self, document_id: str) -> None:
        try:
            self._provider.invalidate_cache(document_id)
        except Exception:  # pragma: no cover - provider isolation
            LOGGER.debug("Provider invalidate_cache failed for %s", document_id, exc_info=True)

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        for document_id in list(self._fetches):
            for fetch in self._fetches.pop(document_id, []):
                self._cancel_fetch(fetch)
        try:
            self._provider.dispose()
        except Exception:  # pragma: no cover - provider isolation
            LOGGER.debug("Provider dispose failed", exc_info=True)

    # ------------------------------------------------------------------
    # Fetch execution
    # ------------------------------------------------------------------
    async def _run_fetch(self, fetch: _PendingFetch, content: str | None) -> None:
        document_id = fetch.document_id
        failed = False
        try:
            result = await self._call_provider(fetch, content)
        except asyncio.CancelledError:
            LOGGER.debug("Blame fetch for %s cancelled", document_id)
            raise
        except Exception:
            LOGGER.warning("Blame request failed for %s", document_id, exc_info=True)
            emit("blame.fetch.failed", {"document_id": document_id, "generation": fetch.generation})
            result = None
            failed = True

        if fetch.cancelled:
            return
        self._forget(fetch)
        current = self._store.complete_fetch(document_id, fetch.generation, result)
        latency_ms = round((time.perf_counter() - fetch.started_at) * 1000.0, 3)
        if not current:
            LOGGER.debug(
                "Discarding stale blame result for %s (generation %d)", document_id, fetch.generation
            )
            emit("blame.fetch.stale", {"document_id": document_id, "generation": fetch.generation})
            result = None
        elif not failed:
            emit(
                "blame.fetch.end",
                {
                    "document_id": document_id,
                    "generation": fetch.generation,
                    "latency_ms": latency_ms,
                    "status": "ok" if result is not None else "empty",
                    "line_count": len(result.line_authors) if result is not None else 0,
                },
            )
        if not fetch.future.done():
            fetch.future.set_result(result)
        callback = self._on_settled
        if callback is None:
            return
        try:
            callback(document_id, fetch.generation, result, current)
        except Exception:  # pragma: no cover - listeners must not break the coordinator
            LOGGER.exception("Blame settle callback failed for %s", document_id)

    def _notify_cancelled(self, document_id: str) -> None:
        callback = self._on_cancelled
        if callback is None:
            return
        try:
            callback(document_id)
        except Exception:  # pragma: no cover - listeners must not break the coordinator
            LOGGER.exception("Blame cancel callback failed for %s", document_id)

    async def _call_provider(self, fetch: _PendingFetch, content: str | None) -> BlameResult | None:
        async for attempt in self._retrying():
            with attempt:
                return await self._provider.request_blame(
                    fetch.document_id,
                    fetch.priority,
                    content=content,
                )
        return None  # pragma: no cover - AsyncRetrying reraises on exhaustion

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(max(1, self._settings.fetch_attempts)),
            wait=wait_exponential(
                multiplier=self._settings.retry_min_seconds,
                max=self._settings.retry_max_seconds,
            ),
            retry=retry_if_exception_type(Exception),
        )

    def _cancel_fetch(self, fetch: _PendingFetch) -> None:
        fetch.cancelled = True
        if fetch.task is not None and not fetch.task.done():
            fetch.task.cancel()
        if not fetch.future.done():
            fetch.future.set_result(None)

    def _forget(self, fetch: _PendingFetch) -> None:
        fetches = self._fetches.get(fetch.document_id)
        if not fetches:
            return
        if fetch in fetches:
            fetches.remove(fetch)
        if not fetches:
            self._fetches.pop(fetch.document_id, None)

    def _resolve_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop
