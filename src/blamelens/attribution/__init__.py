"""Attribution data model, aggregation, and color assignment."""

from .aggregator import (
    AttributionAggregator,
    LensAnchor,
    SelectionGroup,
    SelectionSummary,
    compute_highlight_lines,
    compute_selection_groups,
    compute_totals_by_prompt,
    count_document_lines,
    first_ai_line,
    percentage_of_file,
    prompts_in_selection,
    select_anchor_line,
    summarize_selection,
)
from .labels import StatusText, lens_title, status_for_line, status_for_selection
from .models import BlameResult, LineAttribution, Priority, PromptMessage, PromptRecord
from .palette import HUNK_COLORS, ColorAssigner, get_color_index, prompt_hash

__all__ = [
    "AttributionAggregator",
    "BlameResult",
    "ColorAssigner",
    "HUNK_COLORS",
    "LensAnchor",
    "LineAttribution",
    "Priority",
    "PromptMessage",
    "PromptRecord",
    "SelectionGroup",
    "SelectionSummary",
    "StatusText",
    "compute_highlight_lines",
    "compute_selection_groups",
    "compute_totals_by_prompt",
    "count_document_lines",
    "first_ai_line",
    "get_color_index",
    "lens_title",
    "percentage_of_file",
    "prompt_hash",
    "prompts_in_selection",
    "select_anchor_line",
    "status_for_line",
    "status_for_selection",
    "summarize_selection",
]
