"""Centralized generation policy settings (timeouts, retries, stagger)."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from core.config import (
    get_float_setting,
    get_int_setting,
    get_long_timeout_seconds,
    get_timeout_seconds,
)


@dataclass(slots=True, frozen=True)
class GenerationSettings:
    request_timeout_seconds: float = 60.0
    analysis_timeout_seconds: float = 120.0
    max_attempts: int = 3
    backoff_base_seconds: float = 1.0
    stagger_step_seconds: float = 3.0
    analysis_thinking_budget: int = 32768
    score_resume_chars: int = 15000
    score_requirement_chars: int = 5000
    refine_context_chars: int = 1000

    def stagger_offset(self, position: int) -> float:
        """Delay for the position-th background job (0-based)."""
        return (position + 1) * self.stagger_step_seconds


@lru_cache
def get_generation_settings() -> GenerationSettings:
    return GenerationSettings(
        request_timeout_seconds=get_timeout_seconds(),
        analysis_timeout_seconds=get_long_timeout_seconds(),
        max_attempts=max(1, get_int_setting("LLM_MAX_ATTEMPTS", 3)),
        backoff_base_seconds=get_float_setting("LLM_BACKOFF_BASE_SECONDS", 1.0),
        stagger_step_seconds=get_float_setting("GENERATION_STAGGER_SECONDS", 3.0),
        analysis_thinking_budget=get_int_setting("ANALYSIS_THINKING_BUDGET", 32768),
    )
