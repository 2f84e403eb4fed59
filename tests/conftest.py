"""
tests/conftest.py — Shared pytest fixtures
"""
from __future__ import annotations

import os

# Settings are read once at import time; pin the test environment first.
os.environ["ENVIRONMENT"] = "testing"
os.environ["BURST_LIMIT_ENABLED"] = "false"
os.environ["RATE_LIMIT_SECRET"] = "test-secret"
os.environ.pop("GEMINI_API_KEY", None)
os.environ.pop("ALLOWED_ORIGIN", None)

from typing import Callable, Optional

import pytest
from fastapi.testclient import TestClient

from eiken_sim.core.cache_manager import score_cache
from eiken_sim.core.quota import DailyQuota, QuotaStore
from eiken_sim.main import app
from eiken_sim.models import GeminiScore
from eiken_sim.routers.api import get_quota, get_scorer

FILLER = "word"


def make_answer(word_count: int, extra_words: Optional[list[str]] = None) -> str:
    """An answer of exactly word_count words; extra_words come first."""
    words = list(extra_words or [])
    words += [FILLER] * (word_count - len(words))
    return " ".join(words)


class FakeScorer:
    """Stands in for score_with_gemini and records every call."""

    def __init__(self, joke: Optional[GeminiScore] = None, serious: Optional[GeminiScore] = None) -> None:
        self.joke = joke or GeminiScore(grammar=6, feedback="Grammar is fine.", fancy_words=["however"])
        self.serious = serious or GeminiScore(
            grammar=7, vocabulary=6, content=5, organization=4, feedback="Solid summary."
        )
        self.calls: list[tuple[str, bool]] = []

    def __call__(self, answer_text: str, serious: bool) -> GeminiScore:
        self.calls.append((answer_text, serious))
        return self.serious if serious else self.joke


class FixedDay:
    """Mutable 'today' for quota tests."""

    def __init__(self, day: str = "2026-10-19") -> None:
        self.day = day

    def __call__(self) -> str:
        return self.day


@pytest.fixture(autouse=True)
def clear_score_cache():
    score_cache.clear()
    yield
    score_cache.clear()


@pytest.fixture
def fake_scorer() -> FakeScorer:
    return FakeScorer()


@pytest.fixture
def fixed_day() -> FixedDay:
    return FixedDay()


@pytest.fixture
def quota(fixed_day) -> DailyQuota:
    return DailyQuota(max_submissions=20, secret="test-secret", store=QuotaStore(), today=fixed_day)


@pytest.fixture
def client(fake_scorer, quota):
    app.dependency_overrides[get_scorer] = lambda: fake_scorer
    app.dependency_overrides[get_quota] = lambda: quota
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def always_pass() -> Callable[[], float]:
    """rng that never trips the in-band gate."""
    return lambda: 0.999999


@pytest.fixture
def always_fail() -> Callable[[], float]:
    """rng that trips the gate whenever the zero probability is above 0."""
    return lambda: 0.0


@pytest.fixture(name="make_answer")
def make_answer_fixture() -> Callable[..., str]:
    return make_answer
