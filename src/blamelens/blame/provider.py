"""Boundary to the external service that computes line attribution."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ..attribution.models import BlameResult, Priority

__all__ = ["BlameProvider"]


@runtime_checkable
class BlameProvider(Protocol):
    """Computes per-line authorship for a document.

    ``priority`` is a scheduling hint only. Implementations may raise; the
    coordinator treats any exception as "no attribution".
    """

    async def request_blame(
        self,
        document_id: str,
        priority: Priority,
        *,
        content: str | None = None,
    ) -> BlameResult | None:  # pragma: no cover - protocol stub
        ...

    def invalidate_cache(self, document_id: str) -> None:  # pragma: no cover - protocol stub
        ...

    def cancel_for_uri(self, document_id: str) -> None:  # pragma: no cover - protocol stub
        ...

    def dispose(self) -> None:  # pragma: no cover - protocol stub
        ...
