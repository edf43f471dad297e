"""Shared test helpers and stub classes.

Import from here instead of duplicating fakes in individual test files.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from blamelens.attribution.models import BlameResult, LineAttribution, Priority, PromptRecord


def ai_line(prompt_id: str, *, tool: str = "claude", model: str = "claude-3-opus", human: str = "Ada <ada@example.com>") -> LineAttribution:
    return LineAttribution(
        is_ai_authored=True,
        author=tool,
        prompt_id=prompt_id,
        record=PromptRecord(tool=tool, model=model, human_author=human),
    )


def human_line(author: str = "Ada <ada@example.com>") -> LineAttribution:
    return LineAttribution(is_ai_authored=False, author=author, prompt_id="")


def make_result(lines: Mapping[int, LineAttribution] | Iterable[tuple[int, LineAttribution]], *, version: Any = None) -> BlameResult:
    return BlameResult(line_authors=dict(lines), subject_version=version)


def prompt_result(assignments: Mapping[str, Iterable[int]], *, human_lines: Iterable[int] = (), version: Any = None) -> BlameResult:
    """Build a result from ``{prompt_id: [lines]}`` plus explicit human lines."""

    line_authors: dict[int, LineAttribution] = {}
    for prompt_id, lines in assignments.items():
        for line in lines:
            line_authors[line] = ai_line(prompt_id)
    for line in human_lines:
        line_authors[line] = human_line()
    return BlameResult(line_authors=line_authors, subject_version=version)


@dataclass
class ProviderCall:
    document_id: str
    priority: Priority
    content: str | None
    future: asyncio.Future


@dataclass
class FakeBlameProvider:
    """Blame provider whose responses are resolved by the test.

    Each ``request_blame`` call records a :class:`ProviderCall` and awaits its
    future; tests finish calls with :meth:`resolve` or :meth:`fail`. With
    ``auto_result`` set, calls resolve immediately to that value.
    """

    auto_result: BlameResult | None = None
    auto_error: Exception | None = None
    calls: list[ProviderCall] = field(default_factory=list)
    invalidated: list[str] = field(default_factory=list)
    cancelled: list[str] = field(default_factory=list)
    disposed: bool = False

    async def request_blame(
        self,
        document_id: str,
        priority: Priority,
        *,
        content: str | None = None,
    ) -> BlameResult | None:
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self.calls.append(ProviderCall(document_id, priority, content, future))
        if self.auto_error is not None:
            raise self.auto_error
        if self.auto_result is not None:
            return self.auto_result
        return await future

    def invalidate_cache(self, document_id: str) -> None:
        self.invalidated.append(document_id)

    def cancel_for_uri(self, document_id: str) -> None:
        self.cancelled.append(document_id)

    def dispose(self) -> None:
        self.disposed = True

    # ------------------------------------------------------------------
    # Test controls
    # ------------------------------------------------------------------
    def calls_for(self, document_id: str) -> list[ProviderCall]:
        return [call for call in self.calls if call.document_id == document_id]

    def resolve(self, index: int, result: BlameResult | None) -> None:
        future = self.calls[index].future
        if not future.done():
            future.set_result(result)

    def fail(self, index: int, error: Exception) -> None:
        future = self.calls[index].future
        if not future.done():
            future.set_exception(error)


async def settle(rounds: int = 5) -> None:
    """Let pending tasks and callbacks run."""

    for _ in range(rounds):
        await asyncio.sleep(0)


class EventRecorder:
    """Collects events published on a bus."""

    def __init__(self) -> None:
        self.events: list[Any] = []

    def __call__(self, event: Any) -> None:
        self.events.append(event)

    def of_type(self, event_type: type) -> list[Any]:
        return [event for event in self.events if isinstance(event, event_type)]

    def clear(self) -> None:
        self.events.clear()
