"""
tests/test_api.py — End-to-end tests for the HTTP endpoints
"""
from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from eiken_sim.clients.gemini_client import GeminiRateLimitedError
from eiken_sim.core.rate_limiter import limiter
from eiken_sim.models import GeminiScore
from eiken_sim.routers.api import build_share_summary, get_quota, get_scorer
from eiken_sim.main import app


def _post(client, body, **headers):
    return client.post("/api/score", json=body, headers=headers or None)


# ── Validation ────────────────────────────────────────────────────────────────

def test_foreign_origin_rejected(client, make_answer):
    resp = _post(client, {"answer": make_answer(100)}, Origin="https://evil.example")
    assert resp.status_code == 403
    assert "error" in resp.json()


def test_same_origin_accepted(client, make_answer):
    resp = _post(client, {"answer": make_answer(100)}, Origin="http://testserver")
    assert resp.status_code == 200


def test_wrong_content_type_rejected(client):
    resp = client.post("/api/score", content="answer=hello", headers={"Content-Type": "text/plain"})
    assert resp.status_code == 415


def test_oversized_body_rejected(client):
    resp = client.post(
        "/api/score",
        content=json.dumps({"answer": "a " * 9000}),
        headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 413


def test_chunked_oversized_body_rejected(client):
    def chunks():
        yield b'{"answer": "'
        for _ in range(20):
            yield b"a " * 500
        yield b'"}'

    resp = client.post("/api/score", content=chunks(), headers={"Content-Type": "application/json"})
    assert resp.status_code == 413


def test_malformed_json_rejected(client):
    resp = client.post("/api/score", content="{nope", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400


@pytest.mark.parametrize(
    "body",
    [
        [],
        {"answer": 42},
        {"answer": "   \u0000  "},
        {"answer": "hello", "serious": "yes"},
        {"answer": "hello", "questionId": 99},
        {"answer": "hello", "questionId": "1"},
        {"answer": "hello", "questionId": True},
        {"answer": "hello", "questionId": 1.5},
    ],
)
def test_invalid_fields_rejected(client, body):
    resp = _post(client, body)
    assert resp.status_code == 400
    assert set(resp.json()) == {"error"}


def test_answer_too_long_rejected(client):
    resp = _post(client, {"answer": "x" * 4001})
    assert resp.status_code == 413


def test_integral_float_question_id_accepted(client, make_answer):
    resp = _post(client, {"answer": make_answer(100), "questionId": 2.0})
    assert resp.status_code == 200


def test_validation_failure_does_not_consume_quota(client, quota):
    _post(client, {"answer": 42})
    assert client.get("/api/quota").json() == {"remaining": 20, "limit": 20}


# ── Scoring scenarios ─────────────────────────────────────────────────────────

def test_center_word_count_scenario(client, fake_scorer, make_answer):
    answer = make_answer(100, ["however", "however", "however"])
    resp = _post(client, {"answer": answer, "questionId": 1})
    assert resp.status_code == 200
    data = resp.json()
    assert data["wordCount"] == 100
    assert data["content"] == 8
    assert data["organization"] == data["grammar"] == 6
    assert data["vocabulary"] == 4
    assert data["total"] == 24
    assert data["passed"] is True
    assert "serious" not in data and "zeroReason" not in data
    assert len(fake_scorer.calls) == 1


def test_serious_below_minimum_makes_no_scorer_call(client, fake_scorer, make_answer):
    resp = _post(client, {"answer": make_answer(10), "serious": True})
    assert resp.status_code == 200
    data = resp.json()
    assert (data["content"], data["organization"], data["vocabulary"], data["grammar"]) == (0, 0, 0, 0)
    assert data["serious"] is True
    assert data["zeroReason"] == "serious_minimum"
    assert "at least 20 words" in data["feedback"]
    assert fake_scorer.calls == []


def test_short_answer_zeroed_with_accurate_count(client, fake_scorer, make_answer):
    resp = _post(client, {"answer": make_answer(60)})
    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 0
    assert data["wordCount"] == 60
    assert data["zeroReason"] == "out_of_range"
    assert fake_scorer.calls == []


def test_null_bytes_stripped_before_counting(client, make_answer):
    resp = _post(client, {"answer": "\u0000" + make_answer(100) + "\u0000"})
    assert resp.json()["wordCount"] == 100


def test_upstream_rate_limit_maps_to_try_later(client, make_answer):
    def busy(answer_text: str, serious: bool) -> GeminiScore:
        raise GeminiRateLimitedError()

    app.dependency_overrides[get_scorer] = lambda: busy
    resp = _post(client, {"answer": make_answer(100)})
    assert resp.status_code == 429
    assert "try again later" in resp.json()["error"]


# ── Daily quota ───────────────────────────────────────────────────────────────

def test_quota_exhausted_returns_429(client, make_answer):
    answer = make_answer(60)
    for _ in range(20):
        assert _post(client, {"answer": answer}).status_code == 200
    resp = _post(client, {"answer": answer})
    assert resp.status_code == 429
    assert "tomorrow" in resp.json()["error"]


def test_quota_cookie_set_and_signed(client, make_answer):
    resp = _post(client, {"answer": make_answer(60)})
    cookie = resp.cookies.get("eiken_sim")
    assert cookie is not None
    payload, sig = cookie.split(".")
    assert payload and len(sig) == 64
    set_cookie = resp.headers["set-cookie"].lower()
    assert "httponly" in set_cookie
    assert "samesite=strict" in set_cookie


def test_quota_endpoint_reports_remaining(client, make_answer):
    _post(client, {"answer": make_answer(60)})
    _post(client, {"answer": make_answer(60)})
    assert client.get("/api/quota").json()["remaining"] == 18


# ── Questions / share / ping ──────────────────────────────────────────────────

def test_get_question(client):
    resp = client.get("/api/questions/2")
    assert resp.status_code == 200
    assert resp.json()["id"] == 2
    assert len(resp.json()["paragraphs"]) == 3


def test_unknown_question_404(client):
    resp = client.get("/api/questions/42")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Question not found."}


def test_random_question(client):
    assert client.get("/api/questions/random").json()["id"] in {1, 2, 3}


def test_share_summary_clamps_values(client):
    data = client.get("/api/share", params={"c": "9", "o": "7.6", "v": "abc", "g": "-2"}).json()
    assert (data["content"], data["organization"], data["vocabulary"], data["grammar"]) == (8, 8, 0, 0)
    assert data["total"] == 16
    assert data["verdict"] == "FAIL"


def test_share_summary_pass():
    summary = build_share_summary("8", "6", "4", "6")
    assert summary.total == 24
    assert summary.passed
    assert summary.title.startswith("24/32 (PASS)")


def test_ping_and_security_headers(client):
    resp = client.get("/api/ping")
    assert resp.json()["status"] == "ok"
    assert resp.headers["x-content-type-options"] == "nosniff"


# ── Burst limiter / unhandled errors ──────────────────────────────────────────

def test_burst_limit_returns_429(client):
    limiter.reset()
    limiter.enabled = True
    try:
        codes = [client.get("/api/ping").status_code for _ in range(61)]
        resp = client.get("/api/ping")
    finally:
        limiter.enabled = False
        limiter.reset()
    assert codes[:60] == [200] * 60
    assert codes[60] == 429
    assert resp.status_code == 429
    assert resp.json() == {"error": "Rate limit exceeded. Slow down."}


def test_unexpected_error_returns_generic_500(quota, make_answer):
    def broken(answer_text: str, serious: bool) -> GeminiScore:
        raise RuntimeError("secret upstream detail")

    app.dependency_overrides[get_scorer] = lambda: broken
    app.dependency_overrides[get_quota] = lambda: quota
    try:
        with TestClient(app, raise_server_exceptions=False) as test_client:
            resp = test_client.post("/api/score", json={"answer": make_answer(100)})
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error."}
    assert "secret" not in resp.text
