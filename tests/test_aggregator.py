"""Tests for attribution aggregation and anchor selection."""

from __future__ import annotations

import pytest

from blamelens.attribution.aggregator import (
    AttributionAggregator,
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
from blamelens.attribution.models import BlameResult, LineAttribution, PromptRecord
from blamelens.attribution.palette import ColorAssigner
from blamelens.core.ranges import LineRange
from tests.helpers import ai_line, human_line, make_result, prompt_result


@pytest.fixture
def ten_line_result() -> BlameResult:
    lines = {line: ai_line("p1") for line in (1, 2, 3)}
    lines[4] = human_line()
    for line in range(5, 11):
        lines[line] = human_line()
    return make_result(lines)


# =============================================================================
# Totals
# =============================================================================


class TestTotals:
    def test_counts_ai_lines_per_prompt(self) -> None:
        result = prompt_result({"p1": [1, 2, 3], "p2": [7, 9]}, human_lines=[4, 5, 6, 8])

        assert compute_totals_by_prompt(result) == {"p1": 3, "p2": 2}

    def test_ignores_human_lines(self) -> None:
        result = prompt_result({}, human_lines=range(1, 6))

        assert compute_totals_by_prompt(result) == {}

    def test_repeated_calls_are_identical(self) -> None:
        result = prompt_result({"p1": [1, 5], "p2": [2]})

        first = compute_totals_by_prompt(result)
        second = compute_totals_by_prompt(result)

        assert first == second
        assert first is not second

    def test_empty_result(self) -> None:
        assert compute_totals_by_prompt(BlameResult()) == {}


# =============================================================================
# Selection groups
# =============================================================================


class TestSelectionGroups:
    def test_ten_line_scenario(self, ten_line_result: BlameResult) -> None:
        totals = compute_totals_by_prompt(ten_line_result)
        groups = compute_selection_groups(ten_line_result, LineRange(1, 4), totals)

        assert len(groups) == 1
        group = groups[0]
        assert group.prompt_id == "p1"
        assert group.lines_in_range == [1, 2, 3]
        assert group.total_in_file == 3
        assert totals["p1"] == 3
        assert percentage_of_file(group.total_in_file, 10) == 30

    def test_groups_ordered_by_first_occurrence(self) -> None:
        result = prompt_result({"a": [5, 7], "b": [3, 6], "c": [4]})

        groups = compute_selection_groups(result, LineRange(1, 10))

        assert [group.prompt_id for group in groups] == ["b", "c", "a"]
        assert groups[0].lines_in_range == [3, 6]
        assert groups[2].lines_in_range == [5, 7]

    def test_total_in_file_comes_from_totals_mapping(self) -> None:
        result = prompt_result({"p1": [1, 2, 20, 21]})

        groups = compute_selection_groups(result, LineRange(1, 5), {"p1": 99})

        assert groups[0].total_in_file == 99

    def test_lines_in_range_never_exceed_total(self) -> None:
        result = prompt_result({"p1": [1, 4, 9, 12], "p2": [2, 3, 10]}, human_lines=[5, 6, 7, 8, 11])
        totals = compute_totals_by_prompt(result)

        for start in range(1, 13):
            for end in range(start, 13):
                for group in compute_selection_groups(result, LineRange(start, end), totals):
                    assert len(group.lines_in_range) <= group.total_in_file

    def test_selection_beyond_result_is_empty(self) -> None:
        result = prompt_result({"p1": [1, 2]})

        assert compute_selection_groups(result, LineRange(50, 60)) == []

    def test_group_carries_record(self) -> None:
        record = PromptRecord(tool="cursor", model="gpt-4o")
        result = make_result({2: LineAttribution(True, "cursor", "p9", record)})

        groups = compute_selection_groups(result, LineRange(1, 3))

        assert groups[0].record is record
        assert groups[0].first_line == 2


# =============================================================================
# Anchors and percentages
# =============================================================================


class TestAnchors:
    def test_prefers_first_line_inside_viewport(self) -> None:
        assert select_anchor_line([2, 3, 18], LineRange(5, 20)) == 18

    def test_falls_back_to_smallest_line(self) -> None:
        assert select_anchor_line([2, 3, 18], LineRange(25, 30)) == 2

    def test_without_viewport_uses_smallest_line(self) -> None:
        assert select_anchor_line([9, 4, 6], None) == 4

    def test_requires_lines(self) -> None:
        with pytest.raises(ValueError):
            select_anchor_line([], None)

    def test_one_anchor_per_prompt(self) -> None:
        result = prompt_result({"a": [2, 3, 18], "b": [4, 19]}, human_lines=range(5, 18))
        aggregator = AttributionAggregator()

        anchors = aggregator.lens_anchors(
            result,
            LineRange(1, 20),
            viewport=LineRange(5, 20),
            total_document_lines=40,
        )

        assert [anchor.group.prompt_id for anchor in anchors] == ["a", "b"]
        assert [anchor.line for anchor in anchors] == [18, 19]
        assert anchors[0].percentage == percentage_of_file(3, 40) == 8
        assert anchors[0].color_index == ColorAssigner().index_for("a")

    def test_percentage_defaults_to_highest_attributed_line(self, ten_line_result: BlameResult) -> None:
        anchors = AttributionAggregator().lens_anchors(ten_line_result, LineRange(1, 4))

        assert anchors[0].percentage == 30

    @pytest.mark.parametrize(
        ("total", "lines", "expected"),
        [(3, 10, 30), (1, 3, 33), (2, 3, 67), (1, 8, 13), (1, 200, 1), (1, 400, 0), (5, 0, 0)],
    )
    def test_percentage_rounding(self, total: int, lines: int, expected: int) -> None:
        assert percentage_of_file(total, lines) == expected

    @pytest.mark.parametrize(
        ("text", "expected"),
        [("", 1), ("one", 1), ("one\n", 2), ("a\nb\nc", 3), ("a\r\nb", 2)],
    )
    def test_count_document_lines(self, text: str, expected: int) -> None:
        assert count_document_lines(text) == expected

    def test_explicit_line_count_beats_attributed_extent(self) -> None:
        result = prompt_result({"p1": [1, 2, 3]}, human_lines=[4])
        aggregator = AttributionAggregator()

        assert aggregator.lens_anchors(result, LineRange(1, 4))[0].percentage == 75
        assert aggregator.lens_anchors(result, LineRange(1, 4), total_document_lines=10)[0].percentage == 30


# =============================================================================
# Highlights and summaries
# =============================================================================


class TestHighlights:
    def test_buckets_whole_file_extent_of_selected_prompts(self) -> None:
        result = prompt_result({"a": [1, 2, 30], "b": [10], "c": [3]})
        colors = ColorAssigner()

        buckets = compute_highlight_lines(result, LineRange(1, 3), colors)

        expected: dict[int, list[int]] = {}
        for prompt_id, lines in (("a", [1, 2, 30]), ("c", [3])):
            expected.setdefault(colors.index_for(prompt_id), []).extend(lines)
        assert {key: sorted(value) for key, value in buckets.items()} == {
            key: sorted(value) for key, value in expected.items()
        }
        assert all(10 not in lines for lines in buckets.values())

    def test_no_ai_lines_means_no_highlights(self) -> None:
        result = prompt_result({"a": [10]}, human_lines=[1, 2])

        assert compute_highlight_lines(result, LineRange(1, 2), ColorAssigner()) == {}

    def test_prompts_in_selection_scan_order(self) -> None:
        result = prompt_result({"a": [4], "b": [2, 5]})

        assert prompts_in_selection(result, LineRange(1, 5)) == ["b", "a"]

    def test_summary_lists_distinct_models(self) -> None:
        result = make_result(
            {
                1: ai_line("a", model="claude-3-opus"),
                2: ai_line("b", model="claude-3-5-sonnet"),
                3: ai_line("c", model="gpt-4o"),
                4: human_line(),
                5: LineAttribution(True, "tool", "d", None),
            }
        )

        summary = summarize_selection(result, LineRange(1, 5))

        assert summary.ai_line_count == 4
        assert summary.model_names == ["Claude", "Gpt"]
        assert summary.has_ai_lines

    def test_summary_for_human_selection(self) -> None:
        result = prompt_result({}, human_lines=[1, 2])

        assert summarize_selection(result, LineRange(1, 2)) == SelectionSummary()

    def test_first_ai_line(self) -> None:
        result = prompt_result({"a": [6, 8]}, human_lines=[1, 2, 3])

        assert first_ai_line(result, LineRange(1, 10)) == 6
        assert first_ai_line(result, LineRange(1, 3)) is None


# =============================================================================
# Memoization
# =============================================================================


class TestAggregatorCache:
    def test_totals_computed_once_per_result(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from blamelens.attribution import aggregator as aggregator_module

        calls: list[BlameResult] = []
        original = aggregator_module.compute_totals_by_prompt

        def _counting(result: BlameResult) -> dict[str, int]:
            calls.append(result)
            return original(result)

        monkeypatch.setattr(aggregator_module, "compute_totals_by_prompt", _counting)
        aggregator = AttributionAggregator()
        result = prompt_result({"p1": [1, 2]})

        assert aggregator.totals_for(result) == {"p1": 2}
        assert aggregator.totals_for(result) == {"p1": 2}
        aggregator.selection_groups(result, LineRange(1, 2))

        assert len(calls) == 1

    def test_new_result_recomputes(self) -> None:
        aggregator = AttributionAggregator()

        assert aggregator.totals_for(prompt_result({"p1": [1]})) == {"p1": 1}
        assert aggregator.totals_for(prompt_result({"p1": [1, 2, 3]})) == {"p1": 3}

    def test_returned_totals_are_copies(self) -> None:
        aggregator = AttributionAggregator()
        result = prompt_result({"p1": [1]})

        aggregator.totals_for(result)["p1"] = 500

        assert aggregator.totals_for(result) == {"p1": 1}

    def test_forget_and_eviction(self) -> None:
        aggregator = AttributionAggregator(max_entries=2)
        results = [prompt_result({"p": list(range(1, n + 2))}) for n in range(3)]
        for result in results:
            aggregator.totals_for(result)

        aggregator.forget(results[2])
        aggregator.reset()

        assert aggregator.totals_for(results[0]) == {"p": 1}
