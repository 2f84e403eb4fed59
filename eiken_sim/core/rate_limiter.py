"""
eiken_sim/core/rate_limiter.py — slowapi burst rate limiting configuration
Short-window per-IP limits on top of the daily quota in core/quota.py.
"""
from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

from eiken_sim.config import get_settings

settings = get_settings()

# Single shared limiter instance — imported by main.py and routers
limiter = Limiter(key_func=get_remote_address, enabled=settings.burst_limit_enabled)

# ── Rate limits per endpoint category ─────────────────────────────────────────
# These string values are used as decorators on individual route handlers.
RATE_LIMITS = settings.burst_limits
