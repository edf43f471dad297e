"""Aggregation of line attribution maps into per-prompt summaries.

Totals are document-scoped (a full scan of ``line_authors``); groups are
selection-scoped and ordered by first occurrence in a top-to-bottom scan of
the selection. Anchor lines pick one presentation line per group, preferring
lines inside the viewport.
"""

from __future__ import annotations

import logging
import math
from collections import OrderedDict
from dataclasses import dataclass, field
from threading import RLock
from typing import Iterable, Mapping

from ..core.ranges import LineRange
from .labels import extract_model_name
from .models import BlameResult, LineAttribution, PromptRecord
from .palette import ColorAssigner

__all__ = [
    "AttributionAggregator",
    "LensAnchor",
    "SelectionGroup",
    "SelectionSummary",
    "compute_highlight_lines",
    "compute_selection_groups",
    "compute_totals_by_prompt",
    "count_document_lines",
    "first_ai_line",
    "percentage_of_file",
    "prompts_in_selection",
    "select_anchor_line",
    "summarize_selection",
]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class SelectionGroup:
    """AI-authored lines of one prompt that fall inside a selection."""

    prompt_id: str
    lines_in_range: list[int]
    record: PromptRecord | None
    total_in_file: int
    attribution: LineAttribution

    @property
    def first_line(self) -> int:
        return self.lines_in_range[0]


@dataclass(slots=True, frozen=True)
class LensAnchor:
    """Where and how to present one selection group."""

    line: int
    group: SelectionGroup
    percentage: int
    color_index: int


@dataclass(slots=True)
class SelectionSummary:
    """Status-indicator view of a selection."""

    ai_line_count: int = 0
    model_names: list[str] = field(default_factory=list)

    @property
    def has_ai_lines(self) -> bool:
        return self.ai_line_count > 0


def _iter_ai_lines(result: BlameResult, selection: LineRange) -> Iterable[tuple[int, LineAttribution]]:
    line_authors = result.line_authors
    for line in selection.lines():
        attribution = line_authors.get(line)
        if attribution is not None and attribution.is_ai_authored:
            yield line, attribution


def compute_totals_by_prompt(result: BlameResult) -> dict[str, int]:
    """Count AI-authored lines per prompt across the whole document."""

    totals: dict[str, int] = {}
    for attribution in result.line_authors.values():
        if attribution is None or not attribution.is_ai_authored:
            continue
        totals[attribution.prompt_id] = totals.get(attribution.prompt_id, 0) + 1
    return totals


def compute_selection_groups(
    result: BlameResult,
    selection: LineRange,
    totals: Mapping[str, int] | None = None,
) -> list[SelectionGroup]:
    """Group the AI-authored lines of ``selection`` by prompt.

    Groups appear in order of first occurrence. ``total_in_file`` comes from
    ``totals``; pass the cached mapping to avoid rescanning the document.
    """

    if totals is None:
        totals = compute_totals_by_prompt(result)
    groups: dict[str, SelectionGroup] = {}
    for line, attribution in _iter_ai_lines(result, selection):
        group = groups.get(attribution.prompt_id)
        if group is None:
            groups[attribution.prompt_id] = SelectionGroup(
                prompt_id=attribution.prompt_id,
                lines_in_range=[line],
                record=attribution.record,
                total_in_file=0,
                attribution=attribution,
            )
        else:
            group.lines_in_range.append(line)
    for group in groups.values():
        group.total_in_file = totals.get(group.prompt_id, len(group.lines_in_range))
    return list(groups.values())


def select_anchor_line(lines: Iterable[int], viewport: LineRange | None) -> int:
    """Pick the smallest line inside ``viewport``, else the smallest overall."""

    candidates = list(lines)
    if not candidates:
        raise ValueError("select_anchor_line requires at least one line")
    if viewport is not None:
        visible = [line for line in candidates if viewport.contains(line)]
        if visible:
            return min(visible)
    return min(candidates)


def count_document_lines(text: str) -> int:
    """Line count the way editors report it; an empty or newline-terminated
    document still has a final (possibly empty) line.
    """

    return text.count("\n") + 1


def percentage_of_file(total_in_file: int, total_document_lines: int) -> int:
    """Integer share of the document, rounding halves up."""

    if total_document_lines <= 0:
        return 0
    return int(math.floor(total_in_file / total_document_lines * 100 + 0.5))


def prompts_in_selection(result: BlameResult, selection: LineRange) -> list[str]:
    """Return the distinct prompts touched by ``selection`` in scan order."""

    seen: dict[str, None] = {}
    for _, attribution in _iter_ai_lines(result, selection):
        seen.setdefault(attribution.prompt_id, None)
    return list(seen)


def compute_highlight_lines(
    result: BlameResult,
    selection: LineRange,
    colors: ColorAssigner,
) -> dict[int, list[int]]:
    """Bucket every line of every prompt touched by ``selection`` by color index.

    Lines outside the selection are included so the full extent of each
    referenced prompt can be revealed.
    """

    selected = set(prompts_in_selection(result, selection))
    if not selected:
        return {}
    buckets: dict[int, list[int]] = {}
    for line in sorted(result.line_authors):
        attribution = result.line_authors[line]
        if attribution is None or not attribution.is_ai_authored:
            continue
        if attribution.prompt_id not in selected:
            continue
        buckets.setdefault(colors.index_for(attribution.prompt_id), []).append(line)
    return buckets


def summarize_selection(result: BlameResult, selection: LineRange) -> SelectionSummary:
    summary = SelectionSummary()
    for _, attribution in _iter_ai_lines(result, selection):
        summary.ai_line_count += 1
        model = attribution.record.model if attribution.record else None
        name = extract_model_name(model)
        if name and name not in summary.model_names:
            summary.model_names.append(name)
    return summary


def first_ai_line(result: BlameResult, selection: LineRange) -> int | None:
    for line, _ in _iter_ai_lines(result, selection):
        return line
    return None


class AttributionAggregator:
    """Memoizes document totals per result and builds selection views.

    Totals are kept for the most recently used results (one per open document
    in practice) and recomputed whenever a document's result object changes.
    """

    def __init__(self, colors: ColorAssigner | None = None, *, max_entries: int = 16) -> None:
        self._colors = colors or ColorAssigner()
        self._max_entries = max(1, int(max_entries))
        self._lock = RLock()
        # Keyed by id(); the entry holds the result so the id stays unique.
        self._totals: OrderedDict[int, tuple[BlameResult, dict[str, int]]] = OrderedDict()

    @property
    def colors(self) -> ColorAssigner:
        return self._colors

    def totals_for(self, result: BlameResult) -> dict[str, int]:
        """Return per-prompt totals, scanning ``result`` only once."""

        key = id(result)
        with self._lock:
            entry = self._totals.get(key)
            if entry is not None and entry[0] is result:
                self._totals.move_to_end(key)
                return dict(entry[1])
            totals = compute_totals_by_prompt(result)
            self._totals[key] = (result, totals)
            while len(self._totals) > self._max_entries:
                self._totals.popitem(last=False)
            LOGGER.debug("Recomputed prompt totals (%d prompts)", len(totals))
            return dict(totals)

    def selection_groups(self, result: BlameResult, selection: LineRange) -> list[SelectionGroup]:
        return compute_selection_groups(result, selection, self.totals_for(result))

    def lens_anchors(
        self,
        result: BlameResult,
        selection: LineRange,
        *,
        viewport: LineRange | None = None,
        total_document_lines: int | None = None,
    ) -> list[LensAnchor]:
        """One anchor per prompt touched by ``selection``, in scan order."""

        line_total = total_document_lines if total_document_lines is not None else result.line_count
        anchors: list[LensAnchor] = []
        for group in self.selection_groups(result, selection):
            anchors.append(
                LensAnchor(
                    line=select_anchor_line(group.lines_in_range, viewport),
                    group=group,
                    percentage=percentage_of_file(group.total_in_file, line_total),
                    color_index=self._colors.index_for(group.prompt_id),
                )
            )
        return anchors

    def highlight_lines(self, result: BlameResult, selection: LineRange) -> dict[int, list[int]]:
        return compute_highlight_lines(result, selection, self._colors)

    def forget(self, result: BlameResult) -> None:
        with self._lock:
            entry = self._totals.get(id(result))
            if entry is not None and entry[0] is result:
                del self._totals[id(result)]

    def reset(self) -> None:
        with self._lock:
            self._totals.clear()
