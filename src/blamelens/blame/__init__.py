"""Per-document blame cache, fetch coordination, and host wiring."""

from .coordinator import RequestCoordinator
from .debouncer import ChangeDebouncer
from .events import (
    AttributionInvalidatedEvent,
    AttributionReadyEvent,
    BlameEventBus,
    BlameLensEvent,
    DocumentReleasedEvent,
    LensRefreshEvent,
    StatusRefreshEvent,
)
from .lifecycle import ActionKind, LensAction, LensEvent, LensEventKind, LensState, Transition, transition
from .manager import BlameLensManager
from .provider import BlameProvider
from .store import DocumentBlameStore, DocumentState

__all__ = [
    "ActionKind",
    "AttributionInvalidatedEvent",
    "AttributionReadyEvent",
    "BlameEventBus",
    "BlameLensEvent",
    "BlameLensManager",
    "BlameProvider",
    "ChangeDebouncer",
    "DocumentBlameStore",
    "DocumentReleasedEvent",
    "DocumentState",
    "LensAction",
    "LensEvent",
    "LensEventKind",
    "LensRefreshEvent",
    "LensState",
    "RequestCoordinator",
    "StatusRefreshEvent",
    "Transition",
    "transition",
]
