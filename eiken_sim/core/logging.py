"""
eiken_sim/core/logging.py — loguru structured JSON logging setup
Every Gemini call, every scored submission, every quota decision and
every handled error is logged as one JSON record on stdout.
"""
from __future__ import annotations

import json
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Optional

from loguru import logger


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure loguru for structured JSON output to stdout.
    """
    # Remove default loguru handler
    logger.remove()

    logger.add(
        sys.stdout,
        level=log_level.upper(),
        format="{message}",
        serialize=True,       # loguru built-in JSON serialization
        backtrace=True,
        diagnose=False,       # Never dump locals (answers, secrets) into logs
        colorize=False,
    )


def _build_log_record(
    component: str,
    operation: str,
    extra: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """Build a base structured log record."""
    record: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "component": component,
        "operation": operation,
    }
    if extra:
        record.update(extra)
    return record


# ──────────────────────────────────────────────────────────────────────────────
# Log event helpers
# ──────────────────────────────────────────────────────────────────────────────

def log_gemini_call(
    model: str,
    mode: str,
    latency_ms: float,
    cached: bool,
    success: bool,
    error: Optional[str] = None,
) -> None:
    """Every Gemini scoring lookup is logged, cache hits included."""
    record = _build_log_record("gemini_client", "score", {
        "model": model,
        "mode": mode,
        "latency_ms": round(latency_ms, 2),
        "cached": cached,
        "success": success,
        "error": error,
    })
    logger.info(json.dumps(record))


def log_score_submission(
    word_count: int,
    serious: bool,
    total: int,
    passed: bool,
    zero_reason: Optional[str] = None,
    question_id: Optional[int] = None,
) -> None:
    """Every scored submission is logged. The answer text itself is not."""
    record = _build_log_record("scoring", "score_submission", {
        "word_count": word_count,
        "serious": serious,
        "total": total,
        "passed": passed,
        "zero_reason": zero_reason,
        "question_id": question_id,
    })
    logger.info(json.dumps(record))


def log_quota_decision(
    fingerprint: str,
    allowed: bool,
    remaining: int,
    cookie_count: int,
    memory_count: int,
) -> None:
    """Every daily quota decision is logged with both count sources."""
    record = _build_log_record("quota", "consume", {
        "fingerprint": fingerprint,
        "allowed": allowed,
        "remaining": remaining,
        "cookie_count": cookie_count,
        "memory_count": memory_count,
    })
    logger.info(json.dumps(record))


def log_error(
    component: str,
    operation: str,
    error: Exception,
    context: Optional[dict[str, Any]] = None,
) -> None:
    """Every handled error is logged with full context."""
    tb = traceback.format_exc()
    record = _build_log_record(component, operation, {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "stack_trace": tb[:2000] if tb else "",
        "context": context or {},
    })
    logger.error(json.dumps(record))
