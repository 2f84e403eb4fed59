"""
eiken_sim/models.py — All Pydantic data schemas
Submission, score results, Gemini responses, quota records, questions.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

# ── Grading constants ─────────────────────────────────────────────────────────
MAX_SUBSCORE = 8
MAX_TOTAL = 32
PASS_THRESHOLD = 24


# ──────────────────────────────────────────────────────────────────────────────
# Enumerations
# ──────────────────────────────────────────────────────────────────────────────

class ZeroReason(str, Enum):
    NO_ANSWER = "no_answer"
    OUT_OF_RANGE = "out_of_range"
    PROBABILISTIC = "probabilistic"
    SERIOUS_MINIMUM = "serious_minimum"


# ──────────────────────────────────────────────────────────────────────────────
# Submission (request-scoped, never persisted)
# ──────────────────────────────────────────────────────────────────────────────

class Submission(BaseModel):
    model_config = ConfigDict(frozen=True)

    answer: str = Field(min_length=1)
    serious: bool = False
    question_id: Optional[int] = None


# ──────────────────────────────────────────────────────────────────────────────
# Score result
# ──────────────────────────────────────────────────────────────────────────────

class ScoreResult(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    content: int = Field(ge=0, le=MAX_SUBSCORE)
    organization: int = Field(ge=0, le=MAX_SUBSCORE)
    vocabulary: int = Field(ge=0, le=MAX_SUBSCORE)
    grammar: int = Field(ge=0, le=MAX_SUBSCORE)
    feedback: str
    word_count: int = Field(ge=0, alias="wordCount")
    serious: Optional[bool] = None
    zero_reason: Optional[ZeroReason] = Field(default=None, alias="zeroReason")

    @computed_field
    @property
    def total(self) -> int:
        return self.content + self.organization + self.vocabulary + self.grammar

    @computed_field
    @property
    def passed(self) -> bool:
        return self.total >= PASS_THRESHOLD

    def to_response(self) -> dict:
        """Serialize with the camelCase wire names, omitting unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ShareSummary(BaseModel):
    content: int
    organization: int
    vocabulary: int
    grammar: int
    total: int
    passed: bool
    verdict: str
    title: str
    description: str


# ──────────────────────────────────────────────────────────────────────────────
# Gemini scoring response (normalized)
# ──────────────────────────────────────────────────────────────────────────────

class GeminiScore(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    grammar: int = Field(default=0, ge=0, le=MAX_SUBSCORE)
    vocabulary: int = Field(default=0, ge=0, le=MAX_SUBSCORE)
    content: Optional[int] = Field(default=None, ge=0, le=MAX_SUBSCORE)
    organization: Optional[int] = Field(default=None, ge=0, le=MAX_SUBSCORE)
    feedback: str = ""
    fancy_words: Optional[list[str]] = Field(default=None, alias="fancyWords")


# ──────────────────────────────────────────────────────────────────────────────
# Vocabulary analysis
# ──────────────────────────────────────────────────────────────────────────────

class FoundWord(BaseModel):
    word: str
    count: int = Field(ge=1)


class VocabularyReport(BaseModel):
    score: int = Field(ge=0, le=MAX_SUBSCORE)
    hits: int = Field(ge=0)
    found: list[FoundWord] = []


# ──────────────────────────────────────────────────────────────────────────────
# Word-count gate
# ──────────────────────────────────────────────────────────────────────────────

class GateResult(BaseModel):
    passed: bool
    reason: Optional[str] = None
    zero_reason: Optional[ZeroReason] = None


# ──────────────────────────────────────────────────────────────────────────────
# Daily quota
# ──────────────────────────────────────────────────────────────────────────────

class RateLimitRecord(BaseModel):
    count: int = Field(ge=0)
    date: str  # YYYY-MM-DD in the quota timezone
    fingerprint: str


class QuotaDecision(BaseModel):
    allowed: bool
    remaining: int = Field(ge=0)
    # Freshly signed cookie value to send back; None when nothing changed
    cookie_value: Optional[str] = None


# ──────────────────────────────────────────────────────────────────────────────
# Question bank
# ──────────────────────────────────────────────────────────────────────────────

class Question(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    paragraphs: list[str]
