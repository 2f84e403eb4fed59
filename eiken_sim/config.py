"""
eiken_sim/config.py — Pydantic BaseSettings configuration
All tunables for validation limits, the word-count gate, the daily quota,
and the Gemini scoring client live here.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ────────────────────────────────────────────────────────────
    environment: str = "development"
    log_level: str = "INFO"
    port: int = 8000
    app_version: str = "1.0.0"

    # Serving origin override (behind a proxy the Host header may differ)
    allowed_origin: Optional[str] = None

    # ── Google Gemini ──────────────────────────────────────────────────────────
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash-lite"
    gemini_max_output_tokens: int = 350
    gemini_timeout_seconds: float = 20.0
    gemini_joke_temperature: float = 0.4
    gemini_serious_temperature: float = 0.2
    max_feedback_chars: int = 700

    # ── Score cache ───────────────────────────────────────────────────────────
    score_cache_ttl_seconds: int = 10 * 60
    score_cache_max_entries: int = 300

    # ── Daily quota ───────────────────────────────────────────────────────────
    # Unset secret → random per-process secret, cookies die with the process
    rate_limit_secret: Optional[str] = None
    fingerprint_salt: str = "eiken-sim"
    max_daily_submissions: int = 20
    quota_timezone: str = "Asia/Tokyo"
    quota_cookie_name: str = "eiken_sim"
    quota_cookie_max_age: int = 60 * 60 * 24
    quota_store_max_entries: int = 10_000

    # ── Burst limits (slowapi) ────────────────────────────────────────────────
    burst_limit_enabled: bool = True
    burst_limits: dict[str, str] = {
        "score": "30/minute",
        "questions": "60/minute",
        "ping": "60/minute",
    }

    # ── Submission limits ─────────────────────────────────────────────────────
    max_body_bytes: int = 16_000
    max_answer_chars: int = 4_000
    serious_min_words: int = 20

    # ── Word-count gate ───────────────────────────────────────────────────────
    gate_min_words: int = 90
    gate_max_words: int = 110
    gate_center_words: int = 100
    # Zero probability at the band edges; grows as distance ** exponent
    gate_edge_zero_probability: float = 0.6
    gate_curve_exponent: float = 2.0

    @field_validator("environment")
    @classmethod
    def validate_env(cls, v: str) -> str:
        allowed = {"development", "production", "testing"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("gate_edge_zero_probability")
    @classmethod
    def validate_edge_probability(cls, v: float) -> float:
        if not 0.0 <= v < 1.0:
            raise ValueError("gate_edge_zero_probability must be in [0, 1)")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


@lru_cache()
def get_settings() -> Settings:
    """Return cached Settings instance. Use this everywhere."""
    return Settings()
