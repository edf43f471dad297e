"""Display strings derived from attribution data.

Missing record fields fall back to placeholders ("unknown" model, "Unknown"
human) so presentation never fails on a partial prompt record.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Mapping

from .models import LineAttribution

if TYPE_CHECKING:
    from .aggregator import LensAnchor, SelectionSummary

__all__ = [
    "AI_GLYPH",
    "HUMAN_GLYPH",
    "StatusText",
    "extract_human_name",
    "extract_model_name",
    "format_line_suffix",
    "format_relative_time",
    "lens_title",
    "model_logo",
    "status_for_line",
    "status_for_selection",
]

HUMAN_GLYPH = "\U0001f9d1\u200d\U0001f4bb"
AI_GLYPH = "\U0001f916"
UNKNOWN_MODEL = "unknown"
UNKNOWN_HUMAN = "Unknown"

_MODEL_LOGOS: Mapping[str, str] = {
    "Claude": AI_GLYPH,
    "Openai": AI_GLYPH,
    "Codex": AI_GLYPH,
    "Gpt": AI_GLYPH,
    "Cursor": AI_GLYPH,
    "Grok": AI_GLYPH,
    "Gemini": AI_GLYPH,
}


@dataclass(slots=True, frozen=True)
class StatusText:
    text: str
    tooltip: str


def extract_human_name(author: str | None) -> str:
    """Return the name part of a ``"Name <email>"`` author string."""

    if not author:
        return UNKNOWN_HUMAN
    name = author.split("<", 1)[0].strip()
    return name or author


def extract_model_name(model: str | None) -> str | None:
    """``"claude-3-opus-20240229"`` -> ``"Claude"``; ``None`` when blank."""

    if not model or not model.strip():
        return None
    first = model.split("-", 1)[0]
    if not first.strip():
        return None
    return first[:1].upper() + first[1:]


def model_logo(model_name: str | None) -> str:
    if not model_name:
        return AI_GLYPH
    normalized = model_name[:1].upper() + model_name[1:].lower()
    return _MODEL_LOGOS.get(normalized) or _MODEL_LOGOS.get(model_name) or AI_GLYPH


def format_line_suffix(total_lines: int, percentage: int) -> str:
    unit = "line" if total_lines == 1 else "lines"
    return f"({total_lines} {unit} {percentage}% of file)"


def lens_title(anchor: LensAnchor) -> str:
    group = anchor.group
    record = group.record
    model = (record.model if record else "") or UNKNOWN_MODEL
    human = extract_human_name(record.human_author if record else "")
    suffix = format_line_suffix(group.total_in_file, anchor.percentage)
    return f"{AI_GLYPH} {group.attribution.author}|{model} <{human}> {suffix}"


def format_relative_time(delta: timedelta | float) -> str:
    """Render the gap between two transcript messages (``"5 mins later"``)."""

    seconds = delta.total_seconds() if isinstance(delta, timedelta) else float(delta)
    total_seconds = int(seconds // 1)
    minutes = total_seconds // 60
    hours = minutes // 60
    days = hours // 24
    if days > 0:
        return f"{days} {'day' if days == 1 else 'days'} later"
    if hours > 0:
        return f"{hours} {'hr' if hours == 1 else 'hrs'} later"
    if minutes > 0:
        return f"{minutes} {'min' if minutes == 1 else 'mins'} later"
    if total_seconds > 0:
        return f"{total_seconds} {'sec' if total_seconds == 1 else 'secs'} later"
    return "just now"


def status_for_line(attribution: LineAttribution | None, *, loading: bool = False) -> StatusText:
    """Status indicator for the line under the cursor."""

    if loading:
        return StatusText(HUMAN_GLYPH, "Loading...")
    if attribution is None or not attribution.is_ai_authored:
        return StatusText(HUMAN_GLYPH, "Human-authored code")
    model_name = extract_model_name(attribution.record.model if attribution.record else None)
    if model_name is None:
        return StatusText(AI_GLYPH, "AI-authored code")
    return StatusText(model_logo(model_name), f"AI Model: {model_name}")


def status_for_selection(summary: SelectionSummary) -> StatusText:
    if not summary.model_names:
        return StatusText(HUMAN_GLYPH, "Human-authored code")
    logos = list(dict.fromkeys(model_logo(name) for name in summary.model_names))
    return StatusText(" ".join(logos), "AI Models: " + " | ".join(summary.model_names))
