"""
eiken_sim/routers/api.py — Public API endpoints
Endpoints: /api/score, /api/quota, /api/questions/*, /api/share
/api/score runs Validate → daily quota → scoring → respond.
"""

import json
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.concurrency import run_in_threadpool

from eiken_sim.clients.gemini_client import GeminiRateLimitedError, score_with_gemini
from eiken_sim.config import get_settings
from eiken_sim.core.quota import DailyQuota, client_ip_from_headers, daily_quota
from eiken_sim.core.rate_limiter import RATE_LIMITS, limiter
from eiken_sim.models import MAX_TOTAL, PASS_THRESHOLD, ShareSummary
from eiken_sim.services import questions as question_bank
from eiken_sim.services.scoring import Scorer, score_submission
from eiken_sim.utils.validators import SubmissionRejected, parse_submission, to_subscore

settings = get_settings()

router = APIRouter()

QUOTA_EXCEEDED_MESSAGE = "You have reached today's submission limit. Please try again tomorrow."
SCORER_BUSY_MESSAGE = "The scoring service is busy. Please try again later."


# ──────────────────────────────────────────────────────────────────────────────
# Dependencies — overridden in tests
# ──────────────────────────────────────────────────────────────────────────────

def get_scorer() -> Scorer:
    return score_with_gemini


def get_quota() -> DailyQuota:
    return daily_quota


# ──────────────────────────────────────────────────────────────────────────────
# Request checks
# ──────────────────────────────────────────────────────────────────────────────

def _serving_origin(request: Request) -> str:
    if settings.allowed_origin:
        return settings.allowed_origin.rstrip("/")
    return f"{request.url.scheme}://{request.url.netloc}"


def _check_origin(request: Request) -> None:
    """A present Origin header must match the serving origin."""
    origin = request.headers.get("origin")
    if origin and origin.rstrip("/") != _serving_origin(request):
        raise SubmissionRejected("Invalid origin.", status_code=status.HTTP_403_FORBIDDEN)


def _check_content_type(request: Request) -> None:
    content_type = request.headers.get("content-type") or ""
    if "application/json" not in content_type.lower():
        raise SubmissionRejected(
            "Please submit JSON.", status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
        )


def _check_declared_size(request: Request) -> None:
    content_length = request.headers.get("content-length")
    try:
        size = int(content_length) if content_length else 0
    except ValueError:
        size = 0
    if size > settings.max_body_bytes:
        raise SubmissionRejected(
            "Request body is too large.", status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
        )


async def _read_json_body(request: Request) -> Any:
    """Read the body in chunks, stopping as soon as it passes the size limit."""
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > settings.max_body_bytes:
            raise SubmissionRejected(
                "Request body is too large.", status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
            )
    try:
        return json.loads(body)
    except ValueError:
        raise SubmissionRejected("Malformed request body.")


def _client_ip(request: Request) -> str:
    peer = request.client.host if request.client else None
    return client_ip_from_headers(request.headers, peer)


def _set_quota_cookie(response: JSONResponse, cookie_value: str) -> None:
    response.set_cookie(
        key=settings.quota_cookie_name,
        value=cookie_value,
        max_age=settings.quota_cookie_max_age,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )


# ──────────────────────────────────────────────────────────────────────────────
# POST /api/score
# ──────────────────────────────────────────────────────────────────────────────

@router.post("/score")
@limiter.limit(RATE_LIMITS["score"])
async def score_answer(
    request: Request,
    scorer: Scorer = Depends(get_scorer),
    quota: DailyQuota = Depends(get_quota),
) -> JSONResponse:
    """
    Grade one summary answer.
    Every rejection is an {error} body with a 4xx status; gate failures
    are ordinary 200 results with all-zero scores.
    """
    _check_origin(request)
    _check_content_type(request)
    _check_declared_size(request)
    raw = await _read_json_body(request)
    submission = parse_submission(raw, question_bank.VALID_QUESTION_IDS)

    decision = quota.consume(
        _client_ip(request),
        request.headers.get("user-agent"),
        request.cookies.get(settings.quota_cookie_name),
    )
    if not decision.allowed:
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={"error": QUOTA_EXCEEDED_MESSAGE},
        )

    try:
        result = await run_in_threadpool(score_submission, submission, scorer)
    except GeminiRateLimitedError as exc:
        logger.warning("Scoring upstream rate limited; asking client to retry later.")
        response = JSONResponse(status_code=exc.status_code, content={"error": SCORER_BUSY_MESSAGE})
    else:
        response = JSONResponse(content=result.to_response())

    # The submission was counted either way
    if decision.cookie_value:
        _set_quota_cookie(response, decision.cookie_value)
    return response


# ──────────────────────────────────────────────────────────────────────────────
# GET /api/quota
# ──────────────────────────────────────────────────────────────────────────────

@router.get("/quota")
@limiter.limit(RATE_LIMITS["questions"])
async def quota_status(
    request: Request,
    quota: DailyQuota = Depends(get_quota),
) -> dict[str, int]:
    """Remaining submissions today. Does not consume one."""
    remaining = quota.peek(
        _client_ip(request),
        request.headers.get("user-agent"),
        request.cookies.get(settings.quota_cookie_name),
    )
    return {"remaining": remaining, "limit": quota.max_submissions}


# ──────────────────────────────────────────────────────────────────────────────
# GET /api/questions/*
# ──────────────────────────────────────────────────────────────────────────────

@router.get("/questions/random")
@limiter.limit(RATE_LIMITS["questions"])
async def random_question(request: Request) -> dict[str, Any]:
    return question_bank.random_question().model_dump()


@router.get("/questions/{question_id}")
@limiter.limit(RATE_LIMITS["questions"])
async def get_question(request: Request, question_id: int) -> Any:
    question = question_bank.get_question(question_id)
    if question is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": "Question not found."},
        )
    return question.model_dump()


# ──────────────────────────────────────────────────────────────────────────────
# GET /api/share — data for the share card
# ──────────────────────────────────────────────────────────────────────────────

def build_share_summary(
    c: Optional[str],
    o: Optional[str],
    v: Optional[str],
    g: Optional[str],
) -> ShareSummary:
    """Clamp untrusted query values and derive the verdict text."""
    content, organization, vocabulary, grammar = (to_subscore(x) for x in (c, o, v, g))
    total = content + organization + vocabulary + grammar
    passed = total >= PASS_THRESHOLD
    verdict = "PASS" if passed else "FAIL"
    return ShareSummary(
        content=content,
        organization=organization,
        vocabulary=vocabulary,
        grammar=grammar,
        total=total,
        passed=passed,
        verdict=verdict,
        title=f"{total}/{MAX_TOTAL} ({verdict}) - Eiken Grade 1 Summary Simulator",
        description=(
            f"Content {content} Organization {organization} "
            f"Vocabulary {vocabulary} Grammar {grammar} = {total}/{MAX_TOTAL} ({verdict})"
        ),
    )


@router.get("/share", response_model=ShareSummary)
@limiter.limit(RATE_LIMITS["questions"])
async def share_summary(
    request: Request,
    c: Optional[str] = None,
    o: Optional[str] = None,
    v: Optional[str] = None,
    g: Optional[str] = None,
) -> ShareSummary:
    return build_share_summary(c, o, v, g)
