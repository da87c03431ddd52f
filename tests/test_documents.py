"""Tests for draft-id and title helpers."""

from __future__ import annotations

import pytest

from gallery.documents import (
    clean_title,
    clear_unpublished_title,
    dedupe_ids,
    draft_id,
    has_unpublished_suffix,
    is_corrupted_id,
    is_draft_id,
    mark_unpublished_title,
    published_id,
    slugify,
)


class TestIds:
    def test_published_id_strips_prefix(self):
        assert published_id("drafts.abc") == "abc"
        assert published_id("abc") == "abc"

    def test_published_id_collapses_double_prefix(self):
        assert published_id("drafts.drafts.abc") == "abc"

    def test_draft_id_has_exactly_one_prefix(self):
        assert draft_id("abc") == "drafts.abc"
        assert draft_id("drafts.abc") == "drafts.abc"
        assert draft_id("drafts.drafts.abc") == "drafts.abc"

    def test_corrupted_detection(self):
        assert is_corrupted_id("drafts.drafts.abc")
        assert not is_corrupted_id("drafts.abc")
        assert is_draft_id("drafts.abc")
        assert not is_draft_id("abc")

    def test_dedupe_keeps_first_seen_order(self):
        assert dedupe_ids(["b", "drafts.a", "a", "drafts.b", "c"]) == ["b", "a", "c"]


class TestTitles:
    def test_untitled_nocturne_round_trip(self):
        marked = mark_unpublished_title("Untitled Nocturne")
        assert marked == "Untitled Nocturne unpublished"
        assert clear_unpublished_title(marked) == "Untitled Nocturne"

    @pytest.mark.parametrize("title", ["Nocturne", "Blue Hour", "Study No. 4"])
    def test_mark_and_clear_are_idempotent(self, title):
        once = mark_unpublished_title(title)
        assert mark_unpublished_title(once) == once
        cleared = clear_unpublished_title(once)
        assert clear_unpublished_title(cleared) == cleared == title

    def test_clean_title_is_case_insensitive_and_trims(self):
        assert clean_title("Nocturne  UNPUBLISHED  ") == "Nocturne"
        assert clean_title("Nocturne Unpublished") == "Nocturne"

    def test_mark_normalises_legacy_spacing(self):
        assert mark_unpublished_title("Nocturne   Unpublished") == "Nocturne unpublished"

    def test_suffix_detection(self):
        assert has_unpublished_suffix("Rain unpublished")
        assert not has_unpublished_suffix("Unpublished letters from home")
        assert not has_unpublished_suffix("")

    def test_empty_title(self):
        assert clean_title("") == ""
        assert mark_unpublished_title("") == "unpublished"


class TestSlugify:
    def test_transliterates_accents(self):
        assert slugify("Café Noir") == "cafe-noir"

    def test_drops_punctuation_and_collapses_hyphens(self):
        assert slugify("  Hello   World!! ") == "hello-world"
        assert slugify("a -- b") == "a-b"

    def test_truncates(self):
        assert len(slugify("x" * 200)) == 96
