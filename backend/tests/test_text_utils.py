"""Tests for text helpers."""

import pytest

from ytscribe.utils.text_utils import (
    count_words,
    reading_time_minutes,
    split_into_chunks,
    split_sentences,
)


class TestWordStats:
    def test_count_words(self):
        assert count_words("Hello   world\nagain") == 3
        assert count_words("") == 0

    @pytest.mark.parametrize(
        "words, minutes",
        [(0, 0), (1, 1), (200, 1), (201, 2), (1000, 5)],
    )
    def test_reading_time_rounds_up(self, words, minutes):
        assert reading_time_minutes(words) == minutes


class TestSplitSentences:
    def test_keeps_terminators(self):
        assert split_sentences("One. Two! Three?") == ["One.", " Two!", " Three?"]

    def test_unterminated_tail(self):
        assert split_sentences("First. second part") == ["First.", " second part"]

    def test_blank(self):
        assert split_sentences("   ") == []


class TestSplitIntoChunks:
    def test_short_text_single_chunk(self):
        assert split_into_chunks("Short text.", 100) == ["Short text."]

    def test_empty_text(self):
        assert split_into_chunks("", 100) == []

    def test_cuts_at_sentence_boundaries(self):
        sentence = "A" * 40 + ". "
        text = sentence * 5  # 210 chars

        chunks = split_into_chunks(text, 100)

        assert len(chunks) == 3
        assert all(len(c) <= 100 for c in chunks)
        assert all(c.endswith(".") for c in chunks)
        assert " ".join(chunks).replace(" ", "") == text.replace(" ", "")

    def test_hard_splits_overlong_sentence(self):
        text = "x" * 250

        chunks = split_into_chunks(text, 100)

        assert [len(c) for c in chunks] == [100, 100, 50]

    def test_rejects_non_positive_size(self):
        with pytest.raises(ValueError):
            split_into_chunks("text", 0)
