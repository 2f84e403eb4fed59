"""
eiken_sim/core/cache_manager.py — In-memory Gemini score cache
Bounded, TTL-based, process-wide. Callers only use get / set / prune, so a
shared key-value store can replace ScoreCache without touching them.
Concurrent writers race last-write-wins; entries are whole snapshots.
"""
from __future__ import annotations

import hashlib
import time
from typing import Callable, NamedTuple, Optional

from eiken_sim.config import get_settings
from eiken_sim.models import GeminiScore

settings = get_settings()


# ──────────────────────────────────────────────────────────────────────────────
# Hash utilities
# ──────────────────────────────────────────────────────────────────────────────

def normalize_answer_text(answer_text: str) -> str:
    """Trim and collapse whitespace runs to a single space."""
    return " ".join(answer_text.split())


def hash_score_key(answer_text: str, serious: bool) -> str:
    """SHA-256 cache key over the scoring mode and the normalized answer."""
    combined = f"{'1' if serious else '0'}:{normalize_answer_text(answer_text)}"
    return hashlib.sha256(combined.encode("utf-8")).hexdigest()


# ──────────────────────────────────────────────────────────────────────────────
# Score cache
# ──────────────────────────────────────────────────────────────────────────────

class CachedScoreEntry(NamedTuple):
    expires_at: float
    value: GeminiScore


class ScoreCache:
    """Insertion-ordered dict with TTL expiry and a max entry count."""

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.score_cache_ttl_seconds
        self.max_entries = max_entries if max_entries is not None else settings.score_cache_max_entries
        self._clock = clock
        self._entries: dict[str, CachedScoreEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[GeminiScore]:
        """Return the cached value if present and not expired."""
        now = self._clock()
        self.prune(now)
        entry = self._entries.get(key)
        if entry is None or entry.expires_at <= now:
            return None
        return entry.value

    def set(self, key: str, value: GeminiScore) -> None:
        """Store value under key, replacing any previous entry wholesale."""
        now = self._clock()
        # Re-insert at the end so eviction order follows the latest write
        self._entries.pop(key, None)
        self._entries[key] = CachedScoreEntry(expires_at=now + self.ttl_seconds, value=value)
        self.prune(now)

    def prune(self, now: Optional[float] = None) -> int:
        """
        Drop expired entries, then evict oldest-inserted entries until the
        cache is within max_entries. Returns how many entries were removed.
        """
        if now is None:
            now = self._clock()
        removed = 0
        for key, entry in list(self._entries.items()):
            if entry.expires_at <= now:
                self._entries.pop(key, None)
                removed += 1

        overage = len(self._entries) - self.max_entries
        if overage > 0:
            for key in list(self._entries)[:overage]:
                self._entries.pop(key, None)
                removed += 1
        return removed

    def clear(self) -> None:
        self._entries.clear()


# Single shared cache instance — used by the Gemini client
score_cache = ScoreCache()
