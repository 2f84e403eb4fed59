"""
eiken_sim/utils/validators.py — Submission validation and safe value coercion
Request bodies and Gemini output are both untrusted; everything that turns
them into typed values lives here.
"""
from __future__ import annotations

import math
from typing import Any, Container, Optional

from loguru import logger

from eiken_sim.config import get_settings
from eiken_sim.models import MAX_SUBSCORE, Submission

settings = get_settings()


class SubmissionRejected(Exception):
    """Raised when a submission fails validation. Carries the HTTP status."""

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


# ──────────────────────────────────────────────────────────────────────────────
# Generic helpers
# ──────────────────────────────────────────────────────────────────────────────

def strip_null_bytes(value: str) -> str:
    return value.replace("\0", "")


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Clamp a float value between min and max."""
    return max(min_val, min(max_val, value))


def to_subscore(value: Any) -> int:
    """
    Coerce a model-supplied value to an integer sub-score in [0, 8].
    Numbers and numeric strings are rounded; anything else becomes 0.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        num = float(value)
    elif isinstance(value, str):
        try:
            num = float(value.strip())
        except ValueError:
            return 0
    else:
        return 0
    if not math.isfinite(num):
        return 0
    # Half-up rounding, not banker's rounding
    return int(clamp(math.floor(num + 0.5), 0, MAX_SUBSCORE))


def sanitize_feedback(value: Any, max_chars: Optional[int] = None) -> str:
    """Keep string feedback only, strip null bytes, truncate."""
    if not isinstance(value, str):
        return ""
    limit = max_chars if max_chars is not None else settings.max_feedback_chars
    return strip_null_bytes(value)[:limit]


def filter_strings(value: Any, field_name: str = "") -> list[str]:
    """Keep only the string items of a list. Non-lists become []."""
    if not isinstance(value, list):
        if value is not None:
            logger.warning(f"Expected list for {field_name!r}, got {type(value).__name__}. Using [].")
        return []
    return [item for item in value if isinstance(item, str)]


# ──────────────────────────────────────────────────────────────────────────────
# Submission body validation
# ──────────────────────────────────────────────────────────────────────────────

def normalize_answer(value: Any) -> Optional[str]:
    """Strip null bytes and surrounding whitespace. None if not a string."""
    if not isinstance(value, str):
        return None
    return strip_null_bytes(value).strip()


def parse_submission(raw: Any, known_question_ids: Container[int]) -> Submission:
    """
    Validate a decoded JSON body into a Submission.
    Raises SubmissionRejected with a user-facing message and status code.
    """
    if not isinstance(raw, dict):
        raise SubmissionRejected("Malformed request body.")

    answer = normalize_answer(raw.get("answer"))
    if answer is None:
        raise SubmissionRejected("answer must be a string.")
    if not answer:
        raise SubmissionRejected("No answer was submitted.")
    if len(answer) > settings.max_answer_chars:
        raise SubmissionRejected("The answer is too long.", status_code=413)

    serious = raw.get("serious")
    if serious is not None and not isinstance(serious, bool):
        raise SubmissionRejected("serious must be a boolean.")
    if "serious" in raw and serious is None:
        raise SubmissionRejected("serious must be a boolean.")

    question_id = raw.get("questionId")
    if "questionId" in raw:
        # JSON has one number type: 2.0 is the integer 2
        if isinstance(question_id, float) and question_id.is_integer():
            question_id = int(question_id)
        # bool is an int subclass; true/false are not question ids
        if (
            not isinstance(question_id, int)
            or isinstance(question_id, bool)
            or question_id not in known_question_ids
        ):
            raise SubmissionRejected("questionId is invalid.")

    return Submission(answer=answer, serious=serious is True, question_id=question_id)
