"""
eiken_sim/clients/gemini_client.py — Google Gemini scoring client
Builds the joke / serious grading prompt, calls Gemini once, parses the
JSON it returns defensively and caches normalized results.
Upstream rate limiting is re-raised as GeminiRateLimitedError; every other
failure degrades to an all-zero score with an apology.
"""
from __future__ import annotations

import json
import re
import time
from typing import Any, Callable, Optional

import google.generativeai as genai
from google.api_core.exceptions import ResourceExhausted
from loguru import logger

from eiken_sim.config import get_settings
from eiken_sim.core import logging as app_logging
from eiken_sim.core.cache_manager import ScoreCache, hash_score_key, score_cache
from eiken_sim.models import GeminiScore
from eiken_sim.utils.validators import filter_strings, sanitize_feedback, to_subscore

settings = get_settings()

FALLBACK_FEEDBACK = "An error occurred while scoring. Sorry about that."

JOKE_PROMPT = "\n".join([
    "You are a parody English grader.",
    "Score ONLY grammar from 0 to 8.",
    "Ignore topic relevance, repetition, and meaning.",
    "Also list every advanced/sophisticated vocabulary word (Eiken Pre-1 to Grade 1 level) found in the text.",
    "Include words like: however, therefore, significant, contribute, phenomenon, implement, facilitate, comprehensive, etc.",
    "Do NOT include basic words (is, have, make, good, bad, important, etc.).",
    "Return each word exactly as it appears in the text (preserve original form).",
    "Write feedback in exactly 2 lines separated by \\n:",
    "Line1: grammar finding.",
    "Line2: note that content relevance is not graded.",
    "Return JSON only: {\"grammar\": number, \"fancyWords\": string[], \"feedback\": string}",
])

SERIOUS_PROMPT = "\n".join([
    "Evaluate this English summary.",
    "Return integer scores (0-8): grammar, vocabulary, content, organization.",
    "Also return feedback in 1-2 sentences.",
    "Return JSON only:",
    "{\"grammar\":number,\"vocabulary\":number,\"content\":number,\"organization\":number,\"feedback\":string}",
])

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

GenerateFn = Callable[[str, float], str]


class GeminiNotConfiguredError(Exception):
    """Raised when no Gemini API key is configured."""


class GeminiRateLimitedError(Exception):
    """Raised when Gemini reports a rate limit / quota error."""

    def __init__(self, message: str = "RATE_LIMITED", status_code: int = 429) -> None:
        super().__init__(message)
        self.status_code = status_code


# ──────────────────────────────────────────────────────────────────────────────
# Core Gemini call — single attempt, no retry
# ──────────────────────────────────────────────────────────────────────────────

_configured_key: Optional[str] = None


def _configure_genai() -> None:
    """Configure Gemini SDK with API key from env, once per key."""
    global _configured_key
    if not settings.gemini_api_key:
        raise GeminiNotConfiguredError("GEMINI_API_KEY is not set")
    if _configured_key != settings.gemini_api_key:
        genai.configure(api_key=settings.gemini_api_key)
        _configured_key = settings.gemini_api_key


def call_gemini(prompt: str, temperature: float) -> str:
    """
    Send one prompt to Gemini and return the raw response text.
    Requests a JSON response with a bounded token budget and timeout.
    """
    _configure_genai()
    gen_model = genai.GenerativeModel(
        settings.gemini_model,
        generation_config=genai.types.GenerationConfig(
            temperature=temperature,
            max_output_tokens=settings.gemini_max_output_tokens,
            response_mime_type="application/json",
        ),
    )
    response = gen_model.generate_content(
        prompt,
        request_options={"timeout": settings.gemini_timeout_seconds},
    )
    return response.text.strip() if response.text else ""


def _is_rate_limited(exc: Exception) -> bool:
    if isinstance(exc, ResourceExhausted):
        return True
    status = getattr(exc, "code", None)
    if status is None:
        status = getattr(exc, "status_code", None)
    return status == 429


# ──────────────────────────────────────────────────────────────────────────────
# Prompt + response handling
# ──────────────────────────────────────────────────────────────────────────────

def build_prompt(answer_text: str, serious: bool) -> str:
    return f"{SERIOUS_PROMPT if serious else JOKE_PROMPT}\n\nText:\n{answer_text}"


def extract_json_from_response(text: str) -> dict[str, Any]:
    """
    Locate and parse the JSON object in a Gemini response.
    Handles markdown code fences and prose around the object.
    Raises ValueError if no JSON object can be parsed.
    """
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        text = "\n".join(lines[1:-1] if lines[-1].strip() == "```" else lines[1:]).strip()

    if text.startswith("{"):
        json_text = text
    else:
        match = _JSON_OBJECT.search(text)
        if match is None:
            raise ValueError("No JSON found in Gemini response")
        json_text = match.group(0)

    parsed = json.loads(json_text)
    if not isinstance(parsed, dict):
        raise ValueError("Gemini response JSON is not an object")
    return parsed


def parse_score_response(text: str, serious: bool) -> GeminiScore:
    """Normalize a raw Gemini response into a clamped GeminiScore."""
    parsed = extract_json_from_response(text)
    if serious:
        return GeminiScore(
            grammar=to_subscore(parsed.get("grammar")),
            vocabulary=to_subscore(parsed.get("vocabulary")),
            content=to_subscore(parsed.get("content")),
            organization=to_subscore(parsed.get("organization")),
            feedback=sanitize_feedback(parsed.get("feedback")),
        )
    fancy_words = parsed.get("fancyWords")
    return GeminiScore(
        grammar=to_subscore(parsed.get("grammar")),
        vocabulary=0,
        feedback=sanitize_feedback(parsed.get("feedback")),
        fancy_words=filter_strings(fancy_words, "fancyWords") if isinstance(fancy_words, list) else None,
    )


def fallback_score(serious: bool) -> GeminiScore:
    """The totally-failed result: zero everything, apologise."""
    if serious:
        return GeminiScore(grammar=0, vocabulary=0, content=0, organization=0, feedback=FALLBACK_FEEDBACK)
    return GeminiScore(grammar=0, vocabulary=0, feedback=FALLBACK_FEEDBACK)


# ──────────────────────────────────────────────────────────────────────────────
# Public entry point
# ──────────────────────────────────────────────────────────────────────────────

def score_with_gemini(
    answer_text: str,
    serious: bool = False,
    *,
    cache: Optional[ScoreCache] = None,
    generate: Optional[GenerateFn] = None,
) -> GeminiScore:
    """
    Score an answer with Gemini, serving identical (mode, text) requests
    from the cache while their TTL lasts.
    Raises GeminiRateLimitedError on upstream 429; never raises otherwise.
    """
    cache = score_cache if cache is None else cache
    generate = call_gemini if generate is None else generate
    mode = "serious" if serious else "joke"

    start_time = time.monotonic()
    cache_key = hash_score_key(answer_text, serious)
    cached = cache.get(cache_key)
    if cached is not None:
        app_logging.log_gemini_call(
            model=settings.gemini_model,
            mode=mode,
            latency_ms=(time.monotonic() - start_time) * 1000,
            cached=True,
            success=True,
        )
        return cached

    temperature = settings.gemini_serious_temperature if serious else settings.gemini_joke_temperature
    try:
        text = generate(build_prompt(answer_text, serious), temperature)
        result = parse_score_response(text, serious)
    except Exception as exc:
        latency_ms = (time.monotonic() - start_time) * 1000
        if _is_rate_limited(exc):
            logger.warning(f"Gemini rate limited ({mode}): {exc}")
            app_logging.log_gemini_call(
                model=settings.gemini_model, mode=mode, latency_ms=latency_ms,
                cached=False, success=False, error="rate_limited",
            )
            raise GeminiRateLimitedError() from exc

        app_logging.log_error("gemini_client", "score_with_gemini", exc, {"mode": mode})
        app_logging.log_gemini_call(
            model=settings.gemini_model, mode=mode, latency_ms=latency_ms,
            cached=False, success=False, error=type(exc).__name__,
        )
        return fallback_score(serious)

    cache.set(cache_key, result)
    app_logging.log_gemini_call(
        model=settings.gemini_model,
        mode=mode,
        latency_ms=(time.monotonic() - start_time) * 1000,
        cached=False,
        success=True,
    )
    return result
