"""Host-facing entry point tying the blame core together.

Editor hosts forward discrete events (selection, edit, save, close, scroll,
focus) to :class:`BlameLensManager`. Each event is reduced by the lifecycle
state machine and the resulting actions are applied to the store, debouncer
and coordinator. The presentation layer listens on the event bus and pulls
selection views through the query methods.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

from ..attribution.aggregator import (
    AttributionAggregator,
    LensAnchor,
    SelectionGroup,
    SelectionSummary,
    count_document_lines,
    first_ai_line,
    summarize_selection,
)
from ..attribution.models import BlameResult, LineAttribution, Priority
from ..attribution.palette import ColorAssigner
from ..core.ranges import LineRange
from ..services.settings import BlameLensSettings
from .coordinator import RequestCoordinator
from .debouncer import ChangeDebouncer
from .events import (
    AttributionInvalidatedEvent,
    AttributionReadyEvent,
    BlameEventBus,
    DocumentReleasedEvent,
    LensRefreshEvent,
    StatusRefreshEvent,
)
from .lifecycle import ActionKind, LensAction, LensEvent, LensEventKind, LensState, transition
from .provider import BlameProvider
from .store import DocumentBlameStore, DocumentState

__all__ = ["BlameLensManager", "ContentResolver"]

LOGGER = logging.getLogger(__name__)

ContentResolver = Callable[[str], "str | None"]


class BlameLensManager:
    """Per-document attribution cache driven by editor events."""

    def __init__(
        self,
        provider: BlameProvider,
        *,
        settings: BlameLensSettings | None = None,
        bus: BlameEventBus | None = None,
        colors: ColorAssigner | None = None,
        content_resolver: ContentResolver | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._settings = settings or BlameLensSettings()
        self._bus = bus or BlameEventBus()
        self._store = DocumentBlameStore()
        self._aggregator = AttributionAggregator(colors)
        self._content_resolver = content_resolver
        self._coordinator = RequestCoordinator(
            provider,
            self._store,
            settings=self._settings,
            on_settled=self._handle_fetch_settled,
            on_cancelled=self._handle_fetch_cancelled,
            loop=loop,
        )
        self._debouncer = ChangeDebouncer(
            self._store,
            self._handle_debounce_elapsed,
            delay_seconds=self._settings.debounce_seconds,
            loop=loop,
        )
        self._active_document_id: str | None = None
        self._disposed = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    @property
    def bus(self) -> BlameEventBus:
        return self._bus

    @property
    def store(self) -> DocumentBlameStore:
        return self._store

    @property
    def coordinator(self) -> RequestCoordinator:
        return self._coordinator

    @property
    def debouncer(self) -> ChangeDebouncer:
        return self._debouncer

    @property
    def aggregator(self) -> AttributionAggregator:
        return self._aggregator

    @property
    def settings(self) -> BlameLensSettings:
        return self._settings

    @property
    def active_document_id(self) -> str | None:
        return self._active_document_id

    def state_of(self, document_id: str) -> LensState:
        record = self._store.get(document_id)
        return LensState.EMPTY if record is None else record.lens_state

    # ------------------------------------------------------------------
    # Host events
    # ------------------------------------------------------------------
    def handle_active_document_change(self, document_id: str | None) -> None:
        """Focus moved to ``document_id`` (``None`` when no editor is active)."""

        previous = self._active_document_id
        if previous == document_id:
            return
        self._active_document_id = document_id
        if previous is not None and previous in self._store:
            self._store.set_selection(previous, None)
            self._bus.publish(LensRefreshEvent(previous))
        if document_id is not None:
            self._bus.publish(LensRefreshEvent(document_id))

    def handle_selection_change(self, document_id: str, selection: Any) -> None:
        """Primary selection changed; ``selection`` is a :class:`LineRange` or ``None``."""

        if self._disposed:
            return
        line_range = LineRange.from_value(selection)
        self.handle_active_document_change(document_id)
        record = self._store.set_selection(document_id, line_range)
        self._dispatch(document_id, LensEventKind.SELECTION_CHANGED, record=record)

    def handle_content_change(self, document_id: str, *, change_count: int = 1) -> None:
        """Document text was edited; metadata-only changes pass ``change_count=0``."""

        if self._disposed or change_count <= 0:
            return
        if document_id not in self._store and document_id != self._active_document_id:
            return
        self._dispatch(document_id, LensEventKind.CONTENT_CHANGED)

    def handle_document_saved(self, document_id: str) -> None:
        if self._disposed:
            return
        if document_id not in self._store:
            self._coordinator.invalidate_cache(document_id)
            return
        self._dispatch(document_id, LensEventKind.SAVED)

    def handle_document_closed(self, document_id: str) -> None:
        if self._disposed:
            return
        if document_id not in self._store:
            self._coordinator.invalidate_cache(document_id)
            return
        self._dispatch(document_id, LensEventKind.CLOSED)
        if self._active_document_id == document_id:
            self._active_document_id = None

    def handle_visible_range_change(self, document_id: str, viewport: Any) -> None:
        if self._disposed:
            return
        record = self._store.set_viewport(document_id, LineRange.from_value(viewport))
        self._dispatch(document_id, LensEventKind.VIEWPORT_CHANGED, record=record)

    async def ensure_blame(
        self,
        document_id: str,
        priority: Priority = Priority.NORMAL,
    ) -> BlameResult | None:
        """Return cached attribution, fetching it when absent."""

        if self._disposed:
            return None
        record = self._store.get_or_create(document_id)
        if record.lens_state is LensState.READY and record.cached_result is not None:
            return record.cached_result
        self._dispatch(document_id, LensEventKind.BLAME_REQUESTED, priority=priority)
        return await self._coordinator.request_blame(
            document_id,
            self._resolve_content(document_id),
            priority,
        )

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        released = self._store.clear()
        self._aggregator.reset()
        for document_id in released:
            self._bus.publish(DocumentReleasedEvent(document_id))
        self._coordinator.dispose()
        self._active_document_id = None

    # ------------------------------------------------------------------
    # Presentation queries
    # ------------------------------------------------------------------
    def blame_result(self, document_id: str) -> BlameResult | None:
        record = self._store.get(document_id)
        return None if record is None else record.cached_result

    def line_attribution(self, document_id: str, line: int) -> LineAttribution | None:
        result = self.blame_result(document_id)
        return None if result is None else result.attribution_for(line)

    def totals_by_prompt(self, document_id: str) -> dict[str, int]:
        result = self.blame_result(document_id)
        return {} if result is None else self._aggregator.totals_for(result)

    def selection_groups(self, document_id: str) -> list[SelectionGroup]:
        result, selection = self._selection_context(document_id)
        if result is None or selection is None:
            return []
        return self._aggregator.selection_groups(result, selection)

    def lens_anchors(
        self,
        document_id: str,
        *,
        total_document_lines: int | None = None,
        viewport: LineRange | None = None,
    ) -> list[LensAnchor]:
        """Anchors for the current multi-line selection; empty otherwise.

        Without ``total_document_lines`` the line count comes from the
        resolved document text, then from the highest attributed line.
        """

        result, selection = self._selection_context(document_id)
        if result is None or selection is None or not selection.is_multi_line:
            return []
        record = self._store.get(document_id)
        effective_viewport = viewport or (record.viewport if record is not None else None)
        if total_document_lines is None:
            content = self._resolve_content(document_id)
            if content is not None:
                total_document_lines = count_document_lines(content)
        return self._aggregator.lens_anchors(
            result,
            selection,
            viewport=effective_viewport,
            total_document_lines=total_document_lines,
        )

    def highlight_lines(self, document_id: str) -> dict[int, list[int]]:
        result, selection = self._selection_context(document_id)
        if result is None or selection is None or not selection.is_multi_line:
            return {}
        return self._aggregator.highlight_lines(result, selection)

    def selection_summary(self, document_id: str) -> SelectionSummary:
        result, selection = self._selection_context(document_id)
        if result is None or selection is None:
            return SelectionSummary()
        return summarize_selection(result, selection)

    def first_ai_line(self, document_id: str) -> int | None:
        result, selection = self._selection_context(document_id)
        if result is None or selection is None:
            return None
        return first_ai_line(result, selection)

    def color_index(self, prompt_id: str) -> int:
        return self._aggregator.colors.index_for(prompt_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _selection_context(self, document_id: str) -> tuple[BlameResult | None, LineRange | None]:
        record = self._store.get(document_id)
        if record is None:
            return None, None
        return record.cached_result, record.last_selection

    def _dispatch(
        self,
        document_id: str,
        kind: LensEventKind,
        *,
        record: DocumentState | None = None,
        has_result: bool = False,
        priority: Priority = Priority.NORMAL,
    ) -> None:
        record = record or self._store.get_or_create(document_id)
        event = LensEvent(
            kind=kind,
            multi_line=record.has_multi_line_selection,
            active=self._active_document_id == document_id,
            has_result=has_result,
            priority=priority,
        )
        previous = record.lens_state
        step = transition(previous, event)
        self._store.set_lens_state(document_id, step.state)
        if self._settings.debug_logging:
            LOGGER.debug(
                "%s: %s --%s--> %s %s",
                document_id,
                previous.value,
                kind.value,
                step.state.value,
                [action.kind.value for action in step.actions],
            )
        for action in step.actions:
            self._execute(document_id, action)

    def _execute(self, document_id: str, action: LensAction) -> None:
        kind = action.kind
        if kind is ActionKind.ISSUE_FETCH:
            self._coordinator.request_blame(
                document_id,
                self._resolve_content(document_id),
                action.priority or Priority.NORMAL,
            )
        elif kind is ActionKind.DEBOUNCE_CHANGE:
            generation = self._debouncer.handle_change(document_id)
            if generation is not None:
                self._bus.publish(
                    AttributionInvalidatedEvent(document_id, generation=generation, reason="edit")
                )
        elif kind is ActionKind.INVALIDATE:
            generation = self._store.invalidate(document_id)
            if generation is not None:
                self._bus.publish(
                    AttributionInvalidatedEvent(document_id, generation=generation, reason="save")
                )
        elif kind is ActionKind.INVALIDATE_PROVIDER_CACHE:
            self._coordinator.invalidate_cache(document_id)
        elif kind is ActionKind.REFRESH_LENSES:
            self._bus.publish(LensRefreshEvent(document_id))
        elif kind is ActionKind.REFRESH_STATUS:
            self._bus.publish(StatusRefreshEvent(document_id))
        elif kind is ActionKind.DESTROY:
            result = self.blame_result(document_id)
            if result is not None:
                self._aggregator.forget(result)
            self._store.destroy(document_id)
            self._coordinator.invalidate_cache(document_id)
            self._bus.publish(DocumentReleasedEvent(document_id))
        else:  # pragma: no cover - exhaustive over ActionKind
            raise ValueError(f"Unhandled lens action: {kind!r}")

    def _handle_debounce_elapsed(self, document_id: str) -> None:
        if self._disposed or document_id not in self._store:
            return
        self._dispatch(document_id, LensEventKind.DEBOUNCE_ELAPSED)

    def _handle_fetch_settled(
        self,
        document_id: str,
        generation: int,
        result: BlameResult | None,
        current: bool,
    ) -> None:
        if not current or self._disposed:
            return
        record = self._store.get(document_id)
        if record is None:
            return
        if result is not None:
            self._bus.publish(AttributionReadyEvent(document_id, generation=generation, result=result))
        self._dispatch(document_id, LensEventKind.FETCH_SETTLED, record=record, has_result=result is not None)

    def _handle_fetch_cancelled(self, document_id: str) -> None:
        if self._disposed:
            return
        record = self._store.get(document_id)
        if record is None:
            return
        self._dispatch(document_id, LensEventKind.FETCH_CANCELLED, record=record)

    def _resolve_content(self, document_id: str) -> str | None:
        resolver = self._content_resolver
        if resolver is None:
            return None
        try:
            return resolver(document_id)
        except Exception:  # pragma: no cover - host isolation
            LOGGER.debug("Content resolver failed for %s", document_id, exc_info=True)
            return None
