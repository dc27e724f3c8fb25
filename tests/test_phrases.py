"""Tests for word and phrase extraction."""

from __future__ import annotations

from kpi_engine.phrases import extract_fragments, extract_phrases, extract_words


class TestExtractWords:
    def test_keeps_words_longer_than_three(self):
        assert extract_words("The budget was approved") == ["budget", "approved"]

    def test_lowercases(self):
        assert extract_words("SPONSOR Meeting") == ["sponsor", "meeting"]

    def test_punctuation_stays_attached(self):
        assert extract_words("cost, scope") == ["cost,", "scope"]

    def test_empty_text(self):
        assert extract_words("   ") == []


class TestExtractPhrases:
    def test_two_to_four_word_windows(self):
        assert extract_phrases("plan the budget now") == [
            "plan the",
            "plan the budget",
            "plan the budget now",
            "the budget",
            "the budget now",
            "budget now",
        ]

    def test_short_phrases_dropped(self):
        assert extract_phrases("a b c") == []

    def test_single_word_has_no_phrases(self):
        assert extract_phrases("stakeholders") == []

    def test_never_longer_than_four_words(self):
        phrases = extract_phrases("one two three four five six")
        assert max(len(p.split()) for p in phrases) == 4
        assert "one two three four five" not in phrases

    def test_max_words_parameter(self):
        phrases = extract_phrases("one two three four", max_words=2)
        assert phrases == ["one two", "two three", "three four"]


def test_extract_fragments_words_then_phrases():
    fragments = extract_fragments("Weekly sponsor reviews")
    assert fragments[:3] == ["weekly", "sponsor", "reviews"]
    assert "weekly sponsor" in fragments
    assert "weekly sponsor reviews" in fragments
