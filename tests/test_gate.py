"""
tests/test_gate.py — Unit tests for the probabilistic word-count gate
"""
from __future__ import annotations

import pytest

from eiken_sim.models import ZeroReason
from eiken_sim.services.gate import NO_ANSWER_REASON, check_word_count_gate, zero_probability


def test_zero_probability_is_zero_at_center():
    assert zero_probability(100) == 0.0


def test_zero_probability_non_decreasing_away_from_center():
    upward = [zero_probability(w) for w in range(100, 111)]
    downward = [zero_probability(w) for w in range(100, 89, -1)]
    assert upward == sorted(upward)
    assert downward == sorted(downward)


def test_zero_probability_symmetric():
    for d in range(0, 11):
        assert zero_probability(100 - d) == pytest.approx(zero_probability(100 + d))


def test_zero_probability_peaks_at_band_edges_below_certainty():
    in_band = [zero_probability(w) for w in range(90, 111)]
    assert zero_probability(90) == max(in_band)
    assert zero_probability(110) == max(in_band)
    assert 0.0 < zero_probability(90) < 1.0


@pytest.mark.parametrize("word_count", [1, 50, 89, 111, 200, 5000])
def test_zero_probability_is_one_outside_band(word_count):
    assert zero_probability(word_count) == 1.0


def test_empty_answer_fails_with_fixed_reason():
    result = check_word_count_gate(0)
    assert not result.passed
    assert result.reason == NO_ANSWER_REASON
    assert result.zero_reason == ZeroReason.NO_ANSWER


@pytest.mark.parametrize("word_count", [60, 89, 111, 300])
def test_outside_band_fails_without_random_draw(word_count):
    def no_draw() -> float:
        raise AssertionError("rng must not be consulted outside the band")

    result = check_word_count_gate(word_count, rng=no_draw)
    assert not result.passed
    assert result.reason is None
    assert result.zero_reason == ZeroReason.OUT_OF_RANGE


def test_center_always_passes(always_fail):
    """Even the unluckiest draw passes at exactly 100 words."""
    assert check_word_count_gate(100, rng=always_fail).passed


def test_in_band_failure_explains_randomness(always_fail):
    result = check_word_count_gate(95, rng=always_fail)
    assert not result.passed
    assert result.zero_reason == ZeroReason.PROBABILISTIC
    assert "95 words" in result.reason
    assert "probabilistic" in result.reason


def test_in_band_pass_with_lucky_draw(always_pass):
    for w in range(90, 111):
        assert check_word_count_gate(w, rng=always_pass).passed


def test_single_draw_compared_to_probability():
    draws = []

    def rng() -> float:
        draws.append(1)
        return zero_probability(105) + 0.01

    assert check_word_count_gate(105, rng=rng).passed
    assert len(draws) == 1
