"""Notification bus between the blame core and the presentation layer."""

from __future__ import annotations

from dataclasses import dataclass
from threading import RLock
from typing import Any, Callable, List, MutableMapping, Type
import logging
import weakref

from ..attribution.models import BlameResult

_LOGGER = logging.getLogger(__name__)


class BlameLensEvent:
    """Base class for notifications about one document."""

    __slots__ = ("document_id",)

    def __init__(self, document_id: str) -> None:
        self.document_id = document_id

    def __repr__(self) -> str:
        return f"{type(self).__name__}(document_id={self.document_id!r})"


class AttributionReadyEvent(BlameLensEvent):
    """Published after a fetch result is installed as the document's cache."""

    __slots__ = ("generation", "result")

    def __init__(self, document_id: str, *, generation: int, result: BlameResult) -> None:
        super().__init__(document_id)
        self.generation = int(generation)
        self.result = result


class AttributionInvalidatedEvent(BlameLensEvent):
    """Published when cached attribution is dropped (edit or save)."""

    __slots__ = ("generation", "reason")

    def __init__(self, document_id: str, *, generation: int, reason: str) -> None:
        super().__init__(document_id)
        self.generation = int(generation)
        self.reason = reason


class LensRefreshEvent(BlameLensEvent):
    """Selection-scoped views (lenses, highlights) should be recomputed."""

    __slots__ = ()


class StatusRefreshEvent(BlameLensEvent):
    """The single-line status indicator should be recomputed."""

    __slots__ = ()


class DocumentReleasedEvent(BlameLensEvent):
    """The document closed; presentation state for it should be cleared."""

    __slots__ = ()


Subscriber = Callable[[BlameLensEvent], None]


@dataclass(slots=True)
class _Subscriber:
    event_type: Type[BlameLensEvent]
    identity_func: Any
    identity_target: object | weakref.ReferenceType[Any] | None
    strong_handler: Subscriber | None
    weak_ref: Callable[[], Subscriber | None] | None = None

    def resolve(self) -> Subscriber | None:
        if self.weak_ref is not None:
            return self.weak_ref()
        return self.strong_handler

    def matches(self, handler: Subscriber) -> bool:
        if getattr(handler, "__func__", handler) is not self.identity_func:
            return False
        bound = getattr(handler, "__self__", None)
        target = self.identity_target
        if isinstance(target, weakref.ReferenceType):
            target = target()
        return target is bound


class BlameEventBus:
    """Synchronous pub/sub bus; handlers run in the publisher's thread."""

    def __init__(self) -> None:
        self._subscribers: MutableMapping[Type[BlameLensEvent], List[_Subscriber]] = {}
        self._lock = RLock()

    def subscribe(
        self,
        event_type: Type[BlameLensEvent],
        handler: Subscriber,
        *,
        weak: bool = False,
    ) -> None:
        """Register ``handler`` for ``event_type`` and its subclasses.

        With ``weak=True`` a bound method does not keep its owner alive; the
        subscription disappears once the owner is collected.
        """

        func = getattr(handler, "__func__", handler)
        bound = getattr(handler, "__self__", None)
        identity_target: object | weakref.ReferenceType[Any] | None = bound
        strong: Subscriber | None = handler
        weak_ref: Callable[[], Subscriber | None] | None = None
        if weak:
            weak_ref = self._weak_handler(handler)
            if weak_ref is not None:
                strong = None
                if bound is not None:
                    identity_target = weakref.ref(bound)
        subscriber = _Subscriber(
            event_type=event_type,
            identity_func=func,
            identity_target=identity_target,
            strong_handler=strong,
            weak_ref=weak_ref,
        )
        with self._lock:
            self._subscribers.setdefault(event_type, []).append(subscriber)

    def unsubscribe(self, event_type: Type[BlameLensEvent], handler: Subscriber) -> None:
        with self._lock:
            subscribers = self._subscribers.get(event_type)
            if not subscribers:
                return
            subscribers[:] = [sub for sub in subscribers if not sub.matches(handler)]
            if not subscribers:
                self._subscribers.pop(event_type, None)

    def publish(self, event: BlameLensEvent) -> None:
        to_invoke: list[Subscriber] = []
        with self._lock:
            for event_type, subscribers in list(self._subscribers.items()):
                if not isinstance(event, event_type):
                    continue
                live: list[_Subscriber] = []
                for subscriber in subscribers:
                    callback = subscriber.resolve()
                    if callback is None:
                        continue
                    live.append(subscriber)
                    to_invoke.append(callback)
                if live:
                    subscribers[:] = live
                else:
                    self._subscribers.pop(event_type, None)
        for callback in to_invoke:
            try:
                callback(event)
            except Exception:  # pragma: no cover - subscriber isolation
                _LOGGER.exception("Blame lens subscriber failed for %r", event)

    @staticmethod
    def _weak_handler(handler: Subscriber) -> Callable[[], Subscriber | None] | None:
        try:
            return weakref.WeakMethod(handler)  # type: ignore[arg-type]
        except TypeError:
            try:
                return weakref.ref(handler)
            except TypeError:
                return None


__all__ = [
    "AttributionInvalidatedEvent",
    "AttributionReadyEvent",
    "BlameEventBus",
    "BlameLensEvent",
    "DocumentReleasedEvent",
    "LensRefreshEvent",
    "StatusRefreshEvent",
]
