"""Tests for deterministic prompt color assignment."""

from __future__ import annotations

import pytest

from blamelens.attribution.palette import HUNK_COLORS, ColorAssigner, get_color_index, prompt_hash
from blamelens.core.errors import BlameLensError, InvalidPaletteError


def test_palette_has_forty_entries() -> None:
    assert len(HUNK_COLORS) == 40
    assert len(set(HUNK_COLORS)) == 40


def test_prompt_hash_matches_known_values() -> None:
    assert prompt_hash("") == 0
    assert prompt_hash("a") == 97
    assert prompt_hash("hello") == 99162322


def test_prompt_hash_wraps_to_signed_32_bit() -> None:
    value = prompt_hash("polygenelubricants")
    assert value == -(2**31)

    long_id = "x" * 500
    assert -(2**31) <= prompt_hash(long_id) < 2**31


def test_minimum_signed_hash_maps_to_zero() -> None:
    assert get_color_index("polygenelubricants") == 0


def test_color_index_uses_abs_mod_palette() -> None:
    assert get_color_index("hello") == 99162322 % 40
    assert get_color_index("a") == 17
    assert get_color_index("") == 0


def test_hash_uses_utf16_code_units_for_astral_characters() -> None:
    # U+1F600 encodes as the surrogate pair D83D DE00.
    assert prompt_hash("\U0001f600") == 0xD83D * 31 + 0xDE00
    assert get_color_index("\U0001f600") == 19


def test_colliding_ids_share_an_index() -> None:
    assert prompt_hash("Aa") == prompt_hash("BB")
    assert get_color_index("Aa") == get_color_index("BB")


@pytest.mark.parametrize("prompt_id", ["p1", "7f3a9c2e", "prompt-with-dashes", "ünïcødé", "x" * 300])
def test_color_index_is_stable_and_in_range(prompt_id: str) -> None:
    first = get_color_index(prompt_id)
    assert 0 <= first < len(HUNK_COLORS)
    assert all(get_color_index(prompt_id) == first for _ in range(5))
    assert ColorAssigner().index_for(prompt_id) == first


def test_invalid_palette_size_raises() -> None:
    with pytest.raises(InvalidPaletteError):
        get_color_index("p1", 0)


def test_empty_palette_rejected() -> None:
    with pytest.raises(BlameLensError):
        ColorAssigner(())


def test_custom_palette_sizes_index_range() -> None:
    assigner = ColorAssigner(["red", "green", "blue"])

    assert assigner.size == 3
    assert assigner.index_for("hello") == 99162322 % 3
    assert assigner.color_for("hello") == ["red", "green", "blue"][99162322 % 3]
