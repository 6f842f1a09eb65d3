"""Sanity-check the configured generation provider/models without leaking secrets.

Usage:
  .venv/bin/python -m scripts.check_llm_config
  .venv/bin/python -m scripts.check_llm_config --ping
"""

from __future__ import annotations

import argparse
import asyncio
import os

from core.config import get_config_value, get_model_for_tier, get_timeout_seconds, get_long_timeout_seconds
from core.llm_client import GenerationRequest
from core.llm_factory import get_async_llm_client, get_request_executor
from core.settings import get_generation_settings


TIERS = ("standard", "fast", "reasoning")


def _key_name_for_provider(provider: str) -> str | None:
    provider = provider.lower()
    if provider == "openai":
        return "OPENAI_API_KEY"
    if provider == "claude":
        return "ANTHROPIC_API_KEY"
    if provider == "gemini":
        return "GOOGLE_API_KEY"
    return None


async def _ping(provider: str, model: str) -> str:
    executor = get_request_executor(client=get_async_llm_client(provider=provider))
    resp = await executor.execute(
        GenerationRequest(model=model, prompt="Reply with the single word: pong", temperature=0.0)
    )
    return resp.text


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--ping",
        action="store_true",
        help="Make a live call through the retrying executor (requires network + valid API key).",
    )
    args = parser.parse_args()

    provider = (get_config_value("LLM_PROVIDER", "gemini") or "gemini").lower()
    print(f"LLM_PROVIDER={provider}")
    for tier in TIERS:
        try:
            print(f"model[{tier}]={get_model_for_tier(tier)}")
        except RuntimeError as exc:
            print(f"model[{tier}]: not configured ({exc})")
    print(f"LLM_TIMEOUT_SECONDS={get_timeout_seconds()}")
    print(f"LLM_LONG_TIMEOUT_SECONDS={get_long_timeout_seconds()}")

    settings = get_generation_settings()
    print(
        f"max_attempts={settings.max_attempts} backoff_base={settings.backoff_base_seconds:g}s "
        f"stagger_step={settings.stagger_step_seconds:g}s"
    )

    key_name = _key_name_for_provider(provider)
    if key_name:
        key_in_config = bool(get_config_value(key_name))
        key_in_env = bool(os.getenv(key_name))
        print(f"{key_name}: configured={key_in_config} env_set={key_in_env}")
    else:
        print("API key: unknown provider mapping")

    llm = get_async_llm_client(provider=provider)
    print(f"Generation client: {llm.__class__.__name__}")

    if args.ping:
        text = asyncio.run(_ping(provider, get_model_for_tier("fast")))
        print("Ping response preview:", (text or "").strip()[:100])

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
