"""
eiken_sim/main.py — FastAPI application entry point
Includes: lifespan management, CORS, burst rate limiting, security headers,
          {error}-shaped exception handlers, ping endpoint.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from eiken_sim.config import get_settings
from eiken_sim.core import logging as app_logging
from eiken_sim.core.logging import setup_logging
from eiken_sim.core.rate_limiter import RATE_LIMITS, limiter
from eiken_sim.routers import api
from eiken_sim.utils.validators import SubmissionRejected

settings = get_settings()


# ──────────────────────────────────────────────────────────────────────────────
# Application Lifespan
# ──────────────────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    FastAPI lifespan: startup → yield → shutdown.
    Startup: Initialize logging, warn about missing secrets.
    """
    setup_logging(settings.log_level)
    logger.info("Eiken summary simulator starting up...")

    _validate_env()

    logger.info("Startup complete.")
    yield
    logger.info("Shutting down Eiken summary simulator.")


def _validate_env() -> None:
    """
    Warn about unset secrets. The app still starts: scoring degrades to
    zero scores without a Gemini key, and quota cookies fall back to a
    per-process secret.
    """
    if not settings.gemini_api_key:
        logger.critical("GEMINI_API_KEY is not set. Every scored answer will get the fallback result.")
    if not settings.rate_limit_secret:
        logger.warning(
            "RATE_LIMIT_SECRET is not set. Quota cookies will be invalidated on every restart."
        )


# ──────────────────────────────────────────────────────────────────────────────
# FastAPI App
# ──────────────────────────────────────────────────────────────────────────────

app = FastAPI(
    title="Eiken Grade 1 Summary Simulator",
    description=(
        "Satirical grader for the Eiken Grade 1 English summary task. "
        "Scores are partly AI, partly word count, partly luck."
    ),
    version=settings.app_version,
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url=None,
    lifespan=lifespan,
)

# ── Rate limiting — fastapi/slowapi ───────────────────────────────────────────
app.state.limiter = limiter
app.add_exception_handler(
    RateLimitExceeded,
    lambda req, exc: JSONResponse(
        status_code=429,
        content={"error": "Rate limit exceeded. Slow down."},
    ),
)
app.add_middleware(SlowAPIMiddleware)


# ── Error bodies — never leak internals ───────────────────────────────────────
@app.exception_handler(SubmissionRejected)
async def submission_rejected_handler(request: Request, exc: SubmissionRejected) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    app_logging.log_error("api", request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error."})


# ── CORS ──────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.environment == "development" else [],
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# ── Security headers middleware ───────────────────────────────────────────────
@app.middleware("http")
async def add_security_headers(request: Request, call_next) -> Response:
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    if settings.environment == "production":
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )
    return response


# ── Routers ───────────────────────────────────────────────────────────────────
app.include_router(api.router, prefix="/api", tags=["api"])


# ── Ping endpoint ─────────────────────────────────────────────────────────────
@app.get("/api/ping", tags=["health"])
@limiter.limit(RATE_LIMITS["ping"])
async def ping(request: Request):
    """Liveness check. Does NOT call any external services."""
    return {"status": "ok", "version": settings.app_version}
