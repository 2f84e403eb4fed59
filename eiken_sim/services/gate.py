"""
eiken_sim/services/gate.py — Probabilistic word-count gate
Being inside the 90-110 word band is necessary but not sufficient: the
further an answer sits from 100 words, the likelier it is zeroed anyway.
One uniform draw per call; the same answer can pass once and fail the next.
"""
from __future__ import annotations

import random
from typing import Callable

from eiken_sim.config import get_settings
from eiken_sim.models import GateResult, ZeroReason

settings = get_settings()

NO_ANSWER_REASON = "No answer was submitted."


def zero_probability(word_count: int) -> float:
    """
    Probability that an answer with this word count is zeroed.
    1.0 outside the band, 0.0 at the center, rising as
    edge_probability * (distance / half_width) ** exponent inside it.
    """
    lo, hi = settings.gate_min_words, settings.gate_max_words
    if word_count < lo or word_count > hi:
        return 1.0
    center = settings.gate_center_words
    half_width = max(center - lo, hi - center)
    if half_width <= 0:
        return 0.0
    distance = abs(word_count - center) / half_width
    prob = settings.gate_edge_zero_probability * distance ** settings.gate_curve_exponent
    return min(1.0, max(0.0, prob))


def _in_band_reason(word_count: int) -> str:
    return (
        f"Your word count is within the required range ({word_count} words), "
        f"but an overall assessment has ruled it a word-count violation.\n"
        f"* This judgement is probabilistic; the same answer may be graded differently.\n"
        f"* Appeals are not accepted."
    )


def check_word_count_gate(
    word_count: int,
    rng: Callable[[], float] = random.random,
) -> GateResult:
    """Decide whether an answer proceeds to scoring. rng must return [0, 1)."""
    if word_count == 0:
        return GateResult(passed=False, reason=NO_ANSWER_REASON, zero_reason=ZeroReason.NO_ANSWER)

    if word_count < settings.gate_min_words or word_count > settings.gate_max_words:
        return GateResult(passed=False, zero_reason=ZeroReason.OUT_OF_RANGE)

    prob = zero_probability(word_count)
    if rng() < prob:
        return GateResult(
            passed=False,
            reason=_in_band_reason(word_count),
            zero_reason=ZeroReason.PROBABILISTIC,
        )
    return GateResult(passed=True)
