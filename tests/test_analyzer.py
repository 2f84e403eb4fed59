"""
tests/test_analyzer.py — Unit tests for word counting and fancy-word detection
"""
from __future__ import annotations

from eiken_sim.services.analyzer import (
    FANCY_WORDS,
    VOCABULARY_TIERS,
    count_fancy_words,
    count_words,
    format_vocabulary_feedback,
    tokenize,
    vocabulary_score,
)


def test_count_words_empty():
    assert count_words("") == 0
    assert count_words("   \n\t ") == 0


def test_count_words_collapses_whitespace():
    assert count_words("  a   b  c ") == 3
    assert count_words("one\ntwo\tthree four") == 4


def test_tokenize_strips_punctuation_and_case():
    assert tokenize("However, the PHENOMENON-like 2023 effect!") == [
        "however", "the", "phenomenonlike", "effect",
    ]


def test_fancy_words_counted_by_occurrence():
    """Three 'however' are three hits, not one."""
    report = count_fancy_words("however however however")
    assert report.hits == 3
    assert report.found[0].word == "however"
    assert report.found[0].count == 3
    assert report.score == vocabulary_score(3) == 4


def test_fancy_words_ignore_punctuation_and_case():
    report = count_fancy_words("However, this is significant. THEREFORE we act.")
    found = {f.word: f.count for f in report.found}
    assert found == {"however": 1, "therefore": 1, "significant": 1}
    assert report.hits == 3


def test_fancy_words_custom_lexicon_deduplicated():
    report = count_fancy_words("Moreover it was moreover", ["Moreover", "moreover", "absent"])
    assert [(f.word, f.count) for f in report.found] == [("Moreover", 2)]
    assert report.hits == 2


def test_fancy_words_none_found():
    report = count_fancy_words("the cat sat on the mat")
    assert report.hits == 0
    assert report.found == []
    assert report.score == 0


def test_vocabulary_score_tiers():
    assert vocabulary_score(0) == 0
    assert vocabulary_score(1) == 2
    assert vocabulary_score(2) == 2
    assert vocabulary_score(3) == 4
    assert vocabulary_score(6) == 6
    assert vocabulary_score(9) == 6
    assert vocabulary_score(10) == 8
    assert vocabulary_score(500) == 8


def test_vocabulary_score_monotonic_and_bounded():
    scores = [vocabulary_score(h) for h in range(0, 50)]
    assert scores == sorted(scores)
    assert all(0 <= s <= 8 for s in scores)


def test_vocabulary_tiers_ordered_descending():
    minimums = [m for m, _ in VOCABULARY_TIERS]
    assert minimums == sorted(minimums, reverse=True)


def test_lexicon_is_lowercase_letters_only():
    assert all(w.isalpha() and w == w.lower() for w in FANCY_WORDS)


def test_vocabulary_feedback_lists_counts():
    line = format_vocabulary_feedback(count_fancy_words("however however moreover"))
    assert "3 advanced word(s)" in line
    assert "\"however\" x2" in line
    assert "\"moreover\" x1" in line
    assert "4/8" in line


def test_vocabulary_feedback_none():
    line = format_vocabulary_feedback(count_fancy_words("plain words only"))
    assert "[none]" in line
    assert "0/8" in line
