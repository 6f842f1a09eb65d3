"""Timeout + retry wrapper around a single generation call."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

from core.errors import GenerationError, RequestTimeout
from core.llm_client import AsyncGenerationClient, GenerationRequest, GenerationResponse
from core.obs import Logger, NullLogger, with_span

Sleep = Callable[[float], Awaitable[None]]


def _executor_span_fields(*args: Any, **kwargs: Any) -> dict[str, Any]:
    request = kwargs.get("request")
    if request is None and len(args) >= 2:
        request = args[1]
    return {"req_id": getattr(request, "req_id", None), "model": getattr(request, "model", None)}


class RequestExecutor:
    """Runs a request against the generation service with a timeout race and bounded retry.

    Each attempt is raced against `timeout`; a lost race abandons the attempt and
    counts as `RequestTimeout`. Retryable errors (rate limit, unavailable, network,
    timeout) are retried up to `max_attempts` total calls, sleeping
    `backoff_base * 2**attempt` between them. Anything else (notably `AuthError`)
    is re-raised immediately.
    """

    def __init__(
        self,
        client: AsyncGenerationClient,
        *,
        max_attempts: int = 3,
        backoff_base: float = 1.0,
        default_timeout: float = 60.0,
        logger: Optional[Logger] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._client = client
        self._max_attempts = max_attempts
        self._backoff_base = backoff_base
        self._default_timeout = default_timeout
        self._logger: Logger = logger or NullLogger()
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def backoff_delay(self, attempt: int) -> float:
        """Delay after the given (0-based) failed attempt."""
        return self._backoff_base * (2 ** attempt)

    async def _attempt(self, request: GenerationRequest, timeout: float) -> GenerationResponse:
        try:
            return await asyncio.wait_for(self._client.generate(request), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise RequestTimeout(f"Generation request timed out after {timeout:g}s") from exc

    @with_span("llm.execute", fields_fn=_executor_span_fields)
    async def execute(self, request: GenerationRequest, timeout: float | None = None) -> GenerationResponse:
        budget = self._default_timeout if timeout is None else timeout
        for attempt in range(self._max_attempts):
            try:
                return await self._attempt(request, budget)
            except GenerationError as exc:
                self._logger.warn(
                    "llm.timeout" if isinstance(exc, RequestTimeout) else "llm.attempt_failed",
                    req_id=request.req_id,
                    model=request.model,
                    attempt=attempt + 1,
                    error_type=type(exc).__name__,
                    error=str(exc),
                    retryable=exc.retryable,
                )
                if not exc.retryable:
                    raise
                if attempt == self._max_attempts - 1:
                    self._logger.error(
                        "llm.gave_up",
                        req_id=request.req_id,
                        model=request.model,
                        attempts=self._max_attempts,
                        error_type=type(exc).__name__,
                    )
                    raise
                delay = self.backoff_delay(attempt)
                self._logger.info(
                    "llm.retry", req_id=request.req_id, attempt=attempt + 1, delay_s=delay
                )
                await self._sleep(delay)
        raise AssertionError("unreachable")  # pragma: no cover
