"""Per-document attribution lifecycle as a pure state machine.

Host events are reduced to :class:`LensEvent` values; :func:`transition`
returns the next :class:`LensState` together with the ordered follow-up
actions the manager must execute. No I/O happens here.

States:
    EMPTY    no attribution and no current fetch
    LOADING  a fetch for the current generation is outstanding
    READY    cached attribution matches the current generation
    STALE    content changed; waiting for the debounce window to close
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..attribution.models import Priority

__all__ = [
    "ActionKind",
    "LensAction",
    "LensEvent",
    "LensEventKind",
    "LensState",
    "Transition",
    "transition",
]


class LensState(str, Enum):
    EMPTY = "empty"
    LOADING = "loading"
    READY = "ready"
    STALE = "stale"


class LensEventKind(str, Enum):
    SELECTION_CHANGED = "selection_changed"
    CONTENT_CHANGED = "content_changed"
    SAVED = "saved"
    DEBOUNCE_ELAPSED = "debounce_elapsed"
    FETCH_SETTLED = "fetch_settled"
    FETCH_CANCELLED = "fetch_cancelled"
    VIEWPORT_CHANGED = "viewport_changed"
    BLAME_REQUESTED = "blame_requested"
    CLOSED = "closed"


class ActionKind(str, Enum):
    ISSUE_FETCH = "issue_fetch"
    DEBOUNCE_CHANGE = "debounce_change"
    INVALIDATE = "invalidate"
    INVALIDATE_PROVIDER_CACHE = "invalidate_provider_cache"
    REFRESH_LENSES = "refresh_lenses"
    REFRESH_STATUS = "refresh_status"
    DESTROY = "destroy"


@dataclass(slots=True, frozen=True)
class LensEvent:
    """One discrete input for a document.

    ``multi_line`` reflects the document's selection when the event is
    handled, ``active`` whether the document has focus, ``has_result``
    whether a settled fetch produced attribution.
    """

    kind: LensEventKind
    multi_line: bool = False
    active: bool = True
    has_result: bool = False
    priority: Priority = Priority.NORMAL


@dataclass(slots=True, frozen=True)
class LensAction:
    kind: ActionKind
    priority: Priority | None = None


@dataclass(slots=True, frozen=True)
class Transition:
    state: LensState
    actions: tuple[LensAction, ...] = ()


_REFRESH_LENSES = LensAction(ActionKind.REFRESH_LENSES)
_REFRESH_STATUS = LensAction(ActionKind.REFRESH_STATUS)


def _fetch(priority: Priority) -> LensAction:
    return LensAction(ActionKind.ISSUE_FETCH, priority)


def _selection_priority(event: LensEvent) -> Priority:
    return Priority.HIGH if event.multi_line else Priority.NORMAL


def transition(state: LensState, event: LensEvent) -> Transition:
    """Return the next state and follow-up actions for ``event``."""

    kind = event.kind

    if kind is LensEventKind.CLOSED:
        return Transition(LensState.EMPTY, (LensAction(ActionKind.DESTROY),))

    if kind is LensEventKind.CONTENT_CHANGED:
        # Line numbers shift on every edit; cached attribution is unusable.
        return Transition(LensState.STALE, (LensAction(ActionKind.DEBOUNCE_CHANGE), _REFRESH_LENSES))

    if kind is LensEventKind.SAVED:
        actions = (
            LensAction(ActionKind.INVALIDATE),
            LensAction(ActionKind.INVALIDATE_PROVIDER_CACHE),
        )
        if event.active and event.multi_line:
            return Transition(LensState.LOADING, actions + (_fetch(Priority.HIGH), _REFRESH_LENSES))
        return Transition(LensState.EMPTY, actions + (_REFRESH_LENSES,))

    if kind is LensEventKind.SELECTION_CHANGED:
        if state is LensState.READY or state is LensState.LOADING:
            return Transition(state, (_REFRESH_LENSES, _REFRESH_STATUS))
        if state is LensState.STALE and not event.multi_line:
            # Cursor moves while typing; the debounce timer owns the refetch.
            return Transition(state, (_REFRESH_LENSES,))
        return Transition(LensState.LOADING, (_fetch(_selection_priority(event)), _REFRESH_LENSES, _REFRESH_STATUS))

    if kind is LensEventKind.BLAME_REQUESTED:
        if state is LensState.EMPTY or state is LensState.STALE:
            return Transition(LensState.LOADING, (_fetch(event.priority),))
        return Transition(state)

    if kind is LensEventKind.DEBOUNCE_ELAPSED:
        if state is LensState.STALE:
            if not event.active:
                return Transition(LensState.EMPTY)
            return Transition(
                LensState.LOADING,
                (_fetch(_selection_priority(event)), _REFRESH_LENSES, _REFRESH_STATUS),
            )
        return Transition(state, (_REFRESH_STATUS,) if event.active else ())

    if kind is LensEventKind.FETCH_SETTLED:
        if state is not LensState.LOADING:
            return Transition(state)
        if event.has_result:
            return Transition(LensState.READY, (_REFRESH_LENSES, _REFRESH_STATUS))
        return Transition(LensState.EMPTY, (_REFRESH_LENSES, _REFRESH_STATUS))

    if kind is LensEventKind.FETCH_CANCELLED:
        # An aborted fetch resolves as absent; the next selection refetches.
        if state is LensState.LOADING:
            return Transition(LensState.EMPTY, (_REFRESH_LENSES, _REFRESH_STATUS))
        return Transition(state)

    if kind is LensEventKind.VIEWPORT_CHANGED:
        if state is LensState.READY and event.multi_line:
            return Transition(state, (_REFRESH_LENSES,))
        return Transition(state)

    raise ValueError(f"Unhandled lens event: {kind!r}")
