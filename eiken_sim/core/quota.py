"""
eiken_sim/core/quota.py — Per-client daily submission quota
Two advisory copies of the day's count are kept: a signed cookie on the
client and a memory table on the server. The effective count is the max of
the two, so clearing cookies or restarting the server alone does not reset
the quota. This deters casual abuse; it is not a security boundary.
"""
from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import secrets
from typing import Callable, Mapping, Optional

from pydantic import ValidationError

from eiken_sim.config import get_settings
from eiken_sim.core import logging as app_logging
from eiken_sim.models import QuotaDecision, RateLimitRecord
from eiken_sim.utils.timezone import today_quota_str

settings = get_settings()

_FINGERPRINT_LENGTH = 24


# ──────────────────────────────────────────────────────────────────────────────
# Client identity
# ──────────────────────────────────────────────────────────────────────────────

def client_ip_from_headers(headers: Mapping[str, str], peer: Optional[str] = None) -> str:
    """First X-Forwarded-For hop, then X-Real-IP, then the transport peer."""
    forwarded_for = (headers.get("x-forwarded-for") or "").split(",")[0].strip()
    real_ip = (headers.get("x-real-ip") or "").strip()
    return forwarded_for or real_ip or peer or "unknown-ip"


def client_fingerprint(ip: str, user_agent: Optional[str], salt: Optional[str] = None) -> str:
    """One-way, truncated hash of client address + user agent."""
    salt = settings.fingerprint_salt if salt is None else salt
    raw = f"{salt}|{ip}|{user_agent or 'unknown-ua'}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:_FINGERPRINT_LENGTH]


# ──────────────────────────────────────────────────────────────────────────────
# Cookie signing
# ──────────────────────────────────────────────────────────────────────────────

def sign(payload: str, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()


def _b64url_encode(data: str) -> str:
    return base64.urlsafe_b64encode(data.encode("utf-8")).decode("ascii").rstrip("=")


def _b64url_decode(data: str) -> str:
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")


def encode_cookie(record: RateLimitRecord, secret: str) -> str:
    """Serialize a record as base64url(json).hex(hmac)."""
    payload = json.dumps(
        {"count": record.count, "date": record.date, "fingerprint": record.fingerprint},
        separators=(",", ":"),
    )
    return f"{_b64url_encode(payload)}.{sign(payload, secret)}"


def decode_cookie(
    raw: Optional[str],
    today: str,
    fingerprint: str,
    secret: str,
    max_count: int,
) -> Optional[RateLimitRecord]:
    """
    Return the cookie's record only if it is well-formed, correctly signed,
    dated today and bound to this fingerprint. Anything else is None.
    """
    if not raw:
        return None
    parts = raw.split(".")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None
    encoded, sig = parts

    try:
        decoded = _b64url_decode(encoded)
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None
    if not hmac.compare_digest(sig.encode("utf-8"), sign(decoded, secret).encode("utf-8")):
        return None

    try:
        data = json.loads(decoded)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    count = data.get("count")
    if not isinstance(count, int) or isinstance(count, bool) or count < 0:
        return None
    if data.get("date") != today or data.get("fingerprint") != fingerprint:
        return None

    try:
        return RateLimitRecord(count=min(max_count, count), date=today, fingerprint=fingerprint)
    except ValidationError:
        return None


# ──────────────────────────────────────────────────────────────────────────────
# Memory store
# ──────────────────────────────────────────────────────────────────────────────

class QuotaStore:
    """
    Server-side counts keyed by "{date}:{fingerprint}".
    Records from any other day are stale and pruned on access. Past
    max_entries the oldest-written records are evicted.
    """

    def __init__(self, max_entries: Optional[int] = None) -> None:
        self.max_entries = (
            max_entries if max_entries is not None else settings.quota_store_max_entries
        )
        self._records: dict[str, RateLimitRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    @staticmethod
    def key(date: str, fingerprint: str) -> str:
        return f"{date}:{fingerprint}"

    def get(self, date: str, fingerprint: str) -> Optional[RateLimitRecord]:
        key = self.key(date, fingerprint)
        record = self._records.get(key)
        if record is None:
            return None
        if record.date != date:
            self._records.pop(key, None)
            return None
        return record

    def set(self, record: RateLimitRecord) -> None:
        key = self.key(record.date, record.fingerprint)
        # Re-insert at the end so eviction order follows the latest write
        self._records.pop(key, None)
        self._records[key] = record

        overage = len(self._records) - self.max_entries
        if overage > 0:
            for stale_key in list(self._records)[:overage]:
                self._records.pop(stale_key, None)

    def prune(self, today: str) -> int:
        stale = [k for k, v in list(self._records.items()) if v.date != today]
        for k in stale:
            self._records.pop(k, None)
        return len(stale)


def reconcile_count(cookie_count: int, memory_count: int) -> int:
    """Neither source is trusted alone; the higher count wins."""
    return max(cookie_count, memory_count)


# ──────────────────────────────────────────────────────────────────────────────
# Daily quota
# ──────────────────────────────────────────────────────────────────────────────

class DailyQuota:
    def __init__(
        self,
        max_submissions: Optional[int] = None,
        secret: Optional[str] = None,
        store: Optional[QuotaStore] = None,
        today: Callable[[], str] = today_quota_str,
    ) -> None:
        self.max_submissions = (
            max_submissions if max_submissions is not None else settings.max_daily_submissions
        )
        self.secret = secret or settings.rate_limit_secret or secrets.token_hex(32)
        self.store = store if store is not None else QuotaStore()
        self._today = today

    def _current_count(
        self,
        fingerprint: str,
        cookie_value: Optional[str],
    ) -> tuple[int, str, int, int]:
        today = self._today()
        self.store.prune(today)

        cookie_record = decode_cookie(
            cookie_value, today, fingerprint, self.secret, self.max_submissions
        )
        memory_record = self.store.get(today, fingerprint)
        cookie_count = cookie_record.count if cookie_record else 0
        memory_count = memory_record.count if memory_record else 0
        return reconcile_count(cookie_count, memory_count), today, cookie_count, memory_count

    def peek(self, client_ip: str, user_agent: Optional[str], cookie_value: Optional[str]) -> int:
        """Remaining submissions today, without consuming one."""
        fingerprint = client_fingerprint(client_ip, user_agent)
        count, _, _, _ = self._current_count(fingerprint, cookie_value)
        return max(0, self.max_submissions - count)

    def consume(
        self,
        client_ip: str,
        user_agent: Optional[str],
        cookie_value: Optional[str],
    ) -> QuotaDecision:
        """Admit and count one submission, or deny once today's cap is reached."""
        fingerprint = client_fingerprint(client_ip, user_agent)
        count, today, cookie_count, memory_count = self._current_count(fingerprint, cookie_value)

        if count >= self.max_submissions:
            decision = QuotaDecision(allowed=False, remaining=0)
        else:
            new_count = min(self.max_submissions, count + 1)
            record = RateLimitRecord(count=new_count, date=today, fingerprint=fingerprint)
            self.store.set(record)
            decision = QuotaDecision(
                allowed=True,
                remaining=self.max_submissions - new_count,
                cookie_value=encode_cookie(record, self.secret),
            )

        app_logging.log_quota_decision(
            fingerprint=fingerprint,
            allowed=decision.allowed,
            remaining=decision.remaining,
            cookie_count=cookie_count,
            memory_count=memory_count,
        )
        return decision


# Single shared quota instance — process lifetime
daily_quota = DailyQuota()
