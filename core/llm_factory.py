"""Factory functions to get generation clients and executors based on configuration."""

from __future__ import annotations

from typing import Callable, Dict

from core.config import get_config_value
from core.executor import RequestExecutor
from core.llm_client import (
    AsyncClaudeGenerationClient,
    AsyncGeminiGenerationClient,
    AsyncGenerationClient,
    AsyncOpenAIGenerationClient,
)
from core.obs import JsonRepoLogger, Logger
from core.settings import GenerationSettings, get_generation_settings


# Provider registry for simple DI. Extend as new adapters are added.
_ASYNC_PROVIDERS: Dict[str, Callable[[Logger], AsyncGenerationClient]] = {
    "gemini": lambda logger: AsyncGeminiGenerationClient(logger=logger),
    "openai": lambda logger: AsyncOpenAIGenerationClient(logger=logger),
    "claude": lambda logger: AsyncClaudeGenerationClient(logger=logger),
}


def get_async_llm_client(logger: Logger | None = None, provider: str | None = None) -> AsyncGenerationClient:
    # Use a shared JSON repo logger by default so all LLM calls are observable.
    logger = logger or JsonRepoLogger(service="llm")
    name = (provider or get_config_value("LLM_PROVIDER", "gemini") or "gemini").lower()
    try:
        factory = _ASYNC_PROVIDERS[name]
    except KeyError as exc:
        raise ValueError(f"Unknown LLM provider '{name}'") from exc
    return factory(logger)


def get_request_executor(
    client: AsyncGenerationClient | None = None,
    logger: Logger | None = None,
    settings: GenerationSettings | None = None,
) -> RequestExecutor:
    """Wire a client with the retry/timeout policy from configuration."""
    logger = logger or JsonRepoLogger(service="llm")
    settings = settings or get_generation_settings()
    return RequestExecutor(
        client or get_async_llm_client(logger=logger),
        max_attempts=settings.max_attempts,
        backoff_base=settings.backoff_base_seconds,
        default_timeout=settings.request_timeout_seconds,
        logger=logger,
    )
