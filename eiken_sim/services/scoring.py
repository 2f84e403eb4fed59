"""
eiken_sim/services/scoring.py — Submission scoring paths
Serious mode: Gemini grades all four dimensions (20-word minimum).
Standard mode: word-count gate, then
  content      = 8 - |words - 100| (floored at 0)
  organization = grammar, reused as-is
  vocabulary   = local occurrence count of the words Gemini flagged
  grammar      = Gemini
"""
from __future__ import annotations

import random
from typing import Callable, Optional

from eiken_sim.clients.gemini_client import score_with_gemini
from eiken_sim.config import get_settings
from eiken_sim.core import logging as app_logging
from eiken_sim.models import MAX_SUBSCORE, GeminiScore, ScoreResult, Submission, ZeroReason
from eiken_sim.services.analyzer import (
    count_fancy_words,
    count_words,
    format_vocabulary_feedback,
)
from eiken_sim.services.gate import check_word_count_gate

settings = get_settings()

# (answer_text, serious) -> GeminiScore; may raise GeminiRateLimitedError
Scorer = Callable[[str, bool], GeminiScore]

SERIOUS_MINIMUM_MESSAGE = (
    f"Serious grading requires at least {settings.serious_min_words} words."
)


def out_of_range_message(word_count: int) -> str:
    return (
        f"Your answer does not meet the required word count "
        f"({settings.gate_min_words}-{settings.gate_max_words} words), "
        f"so every category was scored 0.\n"
        f"Detected word count: {word_count}\n"
        f"* Answers that violate the word-count rule are not graded, regardless of content."
    )


def make_zero_score(
    word_count: int,
    reason: Optional[str] = None,
    zero_reason: Optional[ZeroReason] = None,
    serious: Optional[bool] = None,
) -> ScoreResult:
    """All-zero result. Without a reason the generic out-of-range text is used."""
    return ScoreResult(
        content=0,
        organization=0,
        vocabulary=0,
        grammar=0,
        feedback=reason or out_of_range_message(word_count),
        word_count=word_count,
        serious=serious,
        zero_reason=zero_reason,
    )


def content_score(word_count: int) -> int:
    """Closer to 100 words is better content. Nothing else is read."""
    distance = abs(word_count - settings.gate_center_words)
    return max(0, MAX_SUBSCORE - distance)


def _score_serious(answer: str, word_count: int, scorer: Scorer) -> ScoreResult:
    if word_count < settings.serious_min_words:
        return make_zero_score(
            word_count,
            SERIOUS_MINIMUM_MESSAGE,
            zero_reason=ZeroReason.SERIOUS_MINIMUM,
            serious=True,
        )

    gemini = scorer(answer, True)
    return ScoreResult(
        content=gemini.content or 0,
        organization=gemini.organization or 0,
        vocabulary=gemini.vocabulary,
        grammar=gemini.grammar,
        feedback=gemini.feedback,
        word_count=word_count,
        serious=True,
    )


def _score_standard(
    answer: str,
    word_count: int,
    scorer: Scorer,
    rng: Callable[[], float],
) -> ScoreResult:
    gate = check_word_count_gate(word_count, rng=rng)
    if not gate.passed:
        return make_zero_score(word_count, gate.reason, zero_reason=gate.zero_reason)

    gemini = scorer(answer, False)

    # Gemini proposes candidates, local counting decides the score.
    # No list (degraded or malformed reply) earns no vocabulary points.
    vocab = count_fancy_words(answer, gemini.fancy_words or [])

    feedback = "\n".join(
        part for part in (gemini.feedback, format_vocabulary_feedback(vocab)) if part
    )
    return ScoreResult(
        content=content_score(word_count),
        organization=gemini.grammar,
        vocabulary=vocab.score,
        grammar=gemini.grammar,
        feedback=feedback,
        word_count=word_count,
    )


def score_submission(
    submission: Submission,
    scorer: Scorer = score_with_gemini,
    rng: Callable[[], float] = random.random,
) -> ScoreResult:
    """
    Score a validated submission. Quota has already been consumed.
    Raises GeminiRateLimitedError if the scorer reports an upstream 429.
    """
    word_count = count_words(submission.answer)
    if submission.serious:
        result = _score_serious(submission.answer, word_count, scorer)
    else:
        result = _score_standard(submission.answer, word_count, scorer, rng)

    app_logging.log_score_submission(
        word_count=word_count,
        serious=submission.serious,
        total=result.total,
        passed=result.passed,
        zero_reason=result.zero_reason.value if result.zero_reason else None,
        question_id=submission.question_id,
    )
    return result
