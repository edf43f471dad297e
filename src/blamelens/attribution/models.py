"""Dataclasses describing per-line attribution results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Literal, Mapping, Sequence

MessageType = Literal["user", "assistant"]


class Priority(str, Enum):
    """Scheduling hint forwarded to the blame provider."""

    NORMAL = "normal"
    HIGH = "high"


def _coerce_optional_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _coerce_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _coerce_timestamp(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


@dataclass(slots=True, frozen=True)
class PromptMessage:
    """One entry of the conversation that produced a prompt's lines."""

    type: MessageType
    text: str = ""
    timestamp: datetime | None = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> PromptMessage:
        raw_type = str(payload.get("type") or "user").strip().lower()
        message_type: MessageType = "assistant" if raw_type == "assistant" else "user"
        return cls(
            type=message_type,
            text=_coerce_str(payload.get("text")),
            timestamp=_coerce_timestamp(payload.get("timestamp")),
        )


@dataclass(slots=True, frozen=True)
class PromptRecord:
    """Metadata for one AI-generation event."""

    tool: str = ""
    model: str = ""
    human_author: str = ""
    messages: tuple[PromptMessage, ...] = ()
    accepted_lines: int | None = None
    other_files: tuple[str, ...] = ()

    @property
    def has_transcript(self) -> bool:
        return any(message.text for message in self.messages)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> PromptRecord:
        """Build a record from a loosely-typed payload, tolerating missing fields.

        Accepts both flat ``tool``/``model`` keys and the nested ``agent_id``
        shape; anything absent becomes an empty placeholder.
        """

        agent = payload.get("agent_id")
        agent = agent if isinstance(agent, Mapping) else {}
        raw_messages = payload.get("messages")
        messages: list[PromptMessage] = []
        if isinstance(raw_messages, Sequence) and not isinstance(raw_messages, (str, bytes)):
            for item in raw_messages:
                if isinstance(item, PromptMessage):
                    messages.append(item)
                elif isinstance(item, Mapping):
                    messages.append(PromptMessage.from_mapping(item))
        raw_files = payload.get("other_files")
        other_files: tuple[str, ...] = ()
        if isinstance(raw_files, Sequence) and not isinstance(raw_files, (str, bytes)):
            other_files = tuple(str(path) for path in raw_files if path)
        return cls(
            tool=_coerce_str(payload.get("tool") or agent.get("tool")),
            model=_coerce_str(payload.get("model") or agent.get("model")),
            human_author=_coerce_str(payload.get("human_author")),
            messages=tuple(messages),
            accepted_lines=_coerce_optional_int(payload.get("accepted_lines")),
            other_files=other_files,
        )


@dataclass(slots=True, frozen=True)
class LineAttribution:
    """Who most recently wrote a line, and under which prompt if AI-authored."""

    is_ai_authored: bool
    author: str
    prompt_id: str
    record: PromptRecord | None = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> LineAttribution:
        raw_record = payload.get("record", payload.get("prompt_record"))
        record: PromptRecord | None
        if isinstance(raw_record, PromptRecord):
            record = raw_record
        elif isinstance(raw_record, Mapping):
            record = PromptRecord.from_mapping(raw_record)
        else:
            record = None
        return cls(
            is_ai_authored=bool(payload.get("is_ai_authored", False)),
            author=_coerce_str(payload.get("author")),
            prompt_id=_coerce_str(payload.get("prompt_id")),
            record=record,
        )


@dataclass(slots=True, frozen=True)
class BlameResult:
    """Line attribution map computed against one version of a document."""

    line_authors: Mapping[int, LineAttribution] = field(default_factory=dict)
    subject_version: Any = None

    @property
    def line_count(self) -> int:
        """Highest attributed line number; a lower bound on the document length."""

        return max(self.line_authors, default=0)

    def attribution_for(self, line: int) -> LineAttribution | None:
        return self.line_authors.get(line)


__all__ = [
    "BlameResult",
    "LineAttribution",
    "MessageType",
    "Priority",
    "PromptMessage",
    "PromptRecord",
]
