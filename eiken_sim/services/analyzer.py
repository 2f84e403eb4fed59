"""
eiken_sim/services/analyzer.py — Word counting and "fancy word" detection
Vocabulary is scored by raw occurrence count, so repeating one advanced
word three times earns the same as using three different ones.
"""
from __future__ import annotations

import re
from typing import Iterable

from eiken_sim.models import FoundWord, VocabularyReport

_NON_LETTERS = re.compile(r"[^a-z]")

# ── Curated advanced vocabulary (Eiken pre-1 / 1 level) ───────────────────────
FANCY_WORDS: tuple[str, ...] = (
    "however",
    "therefore",
    "moreover",
    "furthermore",
    "nevertheless",
    "nonetheless",
    "consequently",
    "subsequently",
    "significant",
    "substantial",
    "considerable",
    "fundamental",
    "comprehensive",
    "contribute",
    "facilitate",
    "implement",
    "phenomenon",
    "unprecedented",
    "inevitable",
    "predominantly",
    "prevalent",
    "alleviate",
    "exacerbate",
    "mitigate",
    "undermine",
    "advocate",
    "proponents",
    "demographic",
    "infrastructure",
    "sustainable",
    "ambiguous",
    "controversial",
    "indispensable",
    "paramount",
    "profound",
    "leverage",
    "incentive",
    "disincentive",
    "accessible",
    "additionally",
)

# (minimum hits, score) — checked from the top, must stay non-increasing
VOCABULARY_TIERS: tuple[tuple[int, int], ...] = (
    (10, 8),
    (6, 6),
    (3, 4),
    (1, 2),
)


def count_words(text: str) -> int:
    """Count whitespace-separated words after trimming."""
    return len(text.split()) if text else 0


def normalize_token(token: str) -> str:
    """Lower-case and drop every non a-z character."""
    return _NON_LETTERS.sub("", token.lower())


def tokenize(text: str) -> list[str]:
    """Split on whitespace and normalize each token, dropping empty ones."""
    tokens = (normalize_token(t) for t in text.split())
    return [t for t in tokens if t]


def vocabulary_score(hits: int) -> int:
    """Step function from total fancy-word hits to a 0-8 sub-score."""
    for minimum, score in VOCABULARY_TIERS:
        if hits >= minimum:
            return score
    return 0


def count_fancy_words(
    text: str,
    lexicon: Iterable[str] = FANCY_WORDS,
) -> VocabularyReport:
    """
    Count every occurrence of every lexicon word in text.
    Lexicon entries are normalized like tokens and de-duplicated; the
    reported word keeps the form it had in the lexicon.
    """
    counts: dict[str, int] = {}
    for token in tokenize(text):
        counts[token] = counts.get(token, 0) + 1

    found: list[FoundWord] = []
    seen: set[str] = set()
    for word in lexicon:
        key = normalize_token(word)
        if not key or key in seen:
            continue
        seen.add(key)
        count = counts.get(key, 0)
        if count > 0:
            found.append(FoundWord(word=word, count=count))

    hits = sum(f.count for f in found)
    return VocabularyReport(score=vocabulary_score(hits), hits=hits, found=found)


def format_vocabulary_feedback(report: VocabularyReport) -> str:
    """One-line vocabulary breakdown appended to the grammar feedback."""
    breakdown = (
        " ".join(f"\"{f.word}\" x{f.count}" for f in report.found)
        if report.found
        else "none"
    )
    return (
        f"Vocabulary: {report.hits} advanced word(s) detected [{breakdown}] "
        f"-> {report.score}/8\n"
        f"* Every repeated occurrence earns points."
    )
