""" Configuration management for the generation service."""

from __future__ import annotations

from functools import lru_cache
import os
from pathlib import Path

from core.config_adapter import ConfigAdapter, ConfigSource, DotEnvConfigSource, EnvConfigSource

DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_LONG_TIMEOUT_SECONDS = 120.0


@lru_cache
def _config_adapter() -> ConfigAdapter:
    sources: list[ConfigSource] = [EnvConfigSource()]
    dotenv_path = Path(os.getenv("DOTENV_PATH", ".env"))
    sources.append(DotEnvConfigSource(path=dotenv_path))
    return ConfigAdapter(tuple(sources))


def get_config_value(key: str, default: str | None = None) -> str | None:
    return _config_adapter().get(key, default)


def get_float_setting(key: str, default: float) -> float:
    raw = get_config_value(key)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def get_int_setting(key: str, default: int) -> int:
    raw = get_config_value(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        try:
            return int(float(raw))
        except ValueError:
            return default


def get_default_model() -> str:
    """Return the configured default model name.

    Requires LLM_MODEL to be set in configuration; no implicit defaults.
    """
    value = get_config_value("LLM_MODEL")
    if not value:
        raise RuntimeError("LLM_MODEL is not configured; set it in your config/.env")
    return value


def get_model_for_tier(tier: str) -> str:
    """Return the model configured for a tier (standard, fast, reasoning).

    Looks up LLM_MODEL_<TIER> first and falls back to LLM_MODEL.
    """
    value = get_config_value(f"LLM_MODEL_{tier.upper()}")
    if value:
        return value
    try:
        return get_default_model()
    except RuntimeError as exc:
        raise RuntimeError(
            f"No model configured for tier '{tier}'; set LLM_MODEL_{tier.upper()} or LLM_MODEL"
        ) from exc


def get_timeout_seconds() -> float:
    """Timeout budget for single-document generation calls."""
    return get_float_setting("LLM_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)


def get_long_timeout_seconds() -> float:
    """Timeout budget for the analysis call that also reads the attachment."""
    return get_float_setting("LLM_LONG_TIMEOUT_SECONDS", DEFAULT_LONG_TIMEOUT_SECONDS)
