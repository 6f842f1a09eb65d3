""" Generation service port and provider adapters.

Adapters make exactly one attempt per call and translate provider failures
into the `core.errors` taxonomy; retry and timeout policy live in
`core.executor.RequestExecutor`.
"""

from __future__ import annotations

import base64
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Protocol

import anthropic
import httpx
import openai
from anthropic import AsyncAnthropic
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types
from openai import AsyncOpenAI

from core.config import get_config_value, get_int_setting
from core.errors import (
    AuthError,
    GenerationError,
    NetworkError,
    RateLimited,
    RequestTimeout,
    classify_status,
)
from core.obs import Logger, NullLogger, with_span


class OutputMode(str, Enum):
    TEXT = "text"
    JSON = "json"


class Tool(str, Enum):
    SEARCH_GROUNDING = "search_grounding"


@dataclass(frozen=True, slots=True)
class Attachment:
    """Binary document sent alongside the prompt (e.g. the uploaded resume)."""

    data: bytes
    mime_type: str
    name: str | None = None

    def as_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


@dataclass(frozen=True, slots=True)
class Citation:
    title: str | None
    uri: str


@dataclass(slots=True)
class GenerationRequest:
    model: str
    prompt: str
    attachment: Attachment | None = None
    temperature: float = 0.4
    output_mode: OutputMode = OutputMode.TEXT
    response_schema: dict[str, Any] | None = None
    tools: frozenset[Tool] = frozenset()
    thinking_budget: int | None = None
    req_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def grounded(self) -> bool:
        return Tool.SEARCH_GROUNDING in self.tools


@dataclass(slots=True)
class GenerationResponse:
    text: str
    citations: list[Citation] = field(default_factory=list)


def _is_truthy(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _log_content_enabled() -> bool:
    """Whether logs may include prompt/response previews (disable with LLM_LOG_CONTENT=0)."""

    raw = get_config_value("LLM_LOG_CONTENT")
    if raw is None:
        return True
    return _is_truthy(raw)


def _safe_text_preview(text: str, limit: int = 1000) -> str:
    return (text or "")[:limit]


def _llm_span_fields(*args: Any, **kwargs: Any) -> dict[str, Any]:
    request = kwargs.get("request")
    if request is None and len(args) >= 2:
        request = args[1]
    return {"req_id": getattr(request, "req_id", None), "model": getattr(request, "model", None)}


def _llm_span(provider: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    return with_span("llm.generate", fields={"provider": provider}, fields_fn=_llm_span_fields)


def _log_request(logger: Logger, provider: str, request: GenerationRequest, **extra: Any) -> bool:
    log_content = _log_content_enabled()
    fields: dict[str, Any] = {
        "req_id": request.req_id,
        "provider": provider,
        "model": request.model,
        "temperature": request.temperature,
        "output_mode": request.output_mode.value,
        "tools": sorted(t.value for t in request.tools),
        "attachment_mime": request.attachment.mime_type if request.attachment else None,
        "attachment_bytes": len(request.attachment.data) if request.attachment else 0,
        "prompt_len": len(request.prompt),
        **extra,
    }
    if log_content:
        fields["prompt"] = _safe_text_preview(request.prompt)
    logger.info("llm.request", **fields)
    return log_content


def _log_response(
    logger: Logger,
    provider: str,
    request: GenerationRequest,
    response: GenerationResponse,
    usage: Any,
    log_content: bool,
) -> None:
    fields: dict[str, Any] = {
        "req_id": request.req_id,
        "provider": provider,
        "model": request.model,
        "usage": getattr(usage, "__dict__", None) if usage else None,
        "content_len": len(response.text),
        "citations": len(response.citations),
    }
    if log_content:
        fields["preview"] = _safe_text_preview(response.text)
    logger.info("llm.response", **fields)


# ---------- Port ----------


class AsyncGenerationClient(Protocol):
    """Port interface for the remote text generation service."""

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        """Run one generation attempt, raising a `GenerationError` subclass on failure."""
        ...


# ---------- Google Gemini ----------


def _gemini_error(exc: genai_errors.APIError) -> GenerationError:
    message = getattr(exc, "message", None) or str(exc)
    return classify_status(getattr(exc, "code", None), message)


def _gemini_citations(resp: Any) -> list[Citation]:
    candidates = getattr(resp, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []
    citations: list[Citation] = []
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        uri = getattr(web, "uri", None)
        if uri:
            citations.append(Citation(title=getattr(web, "title", None), uri=uri))
    return citations


class AsyncGeminiGenerationClient(AsyncGenerationClient):
    def __init__(
        self,
        api_key: str | None = None,
        logger: Optional[Logger] = None,
        max_output_tokens: int | None = None,
    ):
        self._logger: Logger = logger or NullLogger()
        api_key = api_key or get_config_value("GOOGLE_API_KEY")
        self._client = genai.Client(api_key=api_key)
        self._max_tokens = max_output_tokens or get_int_setting("LLM_MAX_OUTPUT_TOKENS", 0) or None

    def _config(self, request: GenerationRequest) -> genai_types.GenerateContentConfig:
        config: dict[str, Any] = {"temperature": request.temperature}
        if self._max_tokens:
            config["max_output_tokens"] = self._max_tokens
        if request.grounded:
            config["tools"] = [genai_types.Tool(google_search=genai_types.GoogleSearch())]
        if request.output_mode is OutputMode.JSON:
            if request.grounded:
                # Search grounding cannot be combined with a JSON response type.
                self._logger.warn(
                    "llm.structured_output_dropped",
                    req_id=request.req_id,
                    provider="gemini",
                    model=request.model,
                )
            else:
                config["response_mime_type"] = "application/json"
                if request.response_schema:
                    config["response_schema"] = request.response_schema
        if request.thinking_budget is not None:
            config["thinking_config"] = genai_types.ThinkingConfig(thinking_budget=request.thinking_budget)
        return genai_types.GenerateContentConfig(**config)

    def _contents(self, request: GenerationRequest) -> list[Any]:
        contents: list[Any] = []
        if request.attachment is not None:
            contents.append(
                genai_types.Part.from_bytes(
                    data=request.attachment.data, mime_type=request.attachment.mime_type
                )
            )
        contents.append(request.prompt)
        return contents

    @_llm_span("gemini")
    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        log_content = _log_request(self._logger, "gemini", request)
        try:
            resp = await self._client.aio.models.generate_content(
                model=request.model,
                contents=self._contents(request),
                config=self._config(request),
            )
        except genai_errors.APIError as exc:
            raise _gemini_error(exc) from exc
        except httpx.TimeoutException as exc:
            raise RequestTimeout(f"Gemini request timed out: {exc}") from exc
        except httpx.TransportError as exc:
            raise NetworkError(f"Gemini transport error: {exc}") from exc
        response = GenerationResponse(text=(resp.text or "").strip(), citations=_gemini_citations(resp))
        _log_response(
            self._logger, "gemini", request, response, getattr(resp, "usage_metadata", None), log_content
        )
        return response


# ---------- OpenAI / Anthropic error mapping ----------


def _sdk_error(module: Any, exc: Exception) -> GenerationError:
    """Shared mapping for the openai and anthropic SDKs (identical exception names)."""
    if isinstance(exc, (module.AuthenticationError, module.PermissionDeniedError)):
        return AuthError(str(exc))
    if isinstance(exc, module.RateLimitError):
        return RateLimited(str(exc))
    if isinstance(exc, module.APITimeoutError):
        return RequestTimeout(str(exc))
    if isinstance(exc, module.APIConnectionError):
        return NetworkError(str(exc))
    if isinstance(exc, module.APIStatusError):
        return classify_status(exc.status_code, str(exc))
    return classify_status(None, str(exc))


# ---------- OpenAI ----------


def _openai_content(request: GenerationRequest) -> list[dict[str, Any]]:
    parts: list[dict[str, Any]] = []
    attachment = request.attachment
    if attachment is not None:
        data_url = f"data:{attachment.mime_type};base64,{attachment.as_base64()}"
        if attachment.mime_type.startswith("image/"):
            parts.append({"type": "image_url", "image_url": {"url": data_url}})
        else:
            parts.append(
                {
                    "type": "file",
                    "file": {"filename": attachment.name or "attachment", "file_data": data_url},
                }
            )
    parts.append({"type": "text", "text": request.prompt})
    return parts


class AsyncOpenAIGenerationClient(AsyncGenerationClient):
    def __init__(
        self,
        api_key: str | None = None,
        logger: Optional[Logger] = None,
    ):
        api_key = api_key or get_config_value("OPENAI_API_KEY")
        self._client = AsyncOpenAI(api_key=api_key, max_retries=0)
        self._logger: Logger = logger or NullLogger()
        tokens = get_int_setting("OPENAI_MAX_COMPLETION_TOKENS", 0)
        self._default_max_completion_tokens = tokens or None

    @_llm_span("openai")
    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        if request.tools or request.thinking_budget is not None:
            self._logger.warn(
                "llm.capability_ignored",
                req_id=request.req_id,
                provider="openai",
                tools=sorted(t.value for t in request.tools),
                thinking_budget=request.thinking_budget,
            )
        payload: dict[str, Any] = {
            "model": request.model,
            "messages": [{"role": "user", "content": _openai_content(request)}],
            "temperature": request.temperature,
        }
        if request.output_mode is OutputMode.JSON:
            payload["response_format"] = {"type": "json_object"}
        if self._default_max_completion_tokens:
            payload["max_completion_tokens"] = self._default_max_completion_tokens
        log_content = _log_request(self._logger, "openai", request)
        try:
            resp = await self._client.chat.completions.create(**payload)
        except openai.OpenAIError as exc:
            raise _sdk_error(openai, exc) from exc
        content = resp.choices[0].message.content if resp.choices else ""
        response = GenerationResponse(text=(content or "").strip())
        _log_response(self._logger, "openai", request, response, getattr(resp, "usage", None), log_content)
        return response


# ---------- Anthropic Claude ----------


def _claude_content(request: GenerationRequest) -> list[dict[str, Any]]:
    blocks: list[dict[str, Any]] = []
    attachment = request.attachment
    if attachment is not None:
        block_type = "image" if attachment.mime_type.startswith("image/") else "document"
        blocks.append(
            {
                "type": block_type,
                "source": {
                    "type": "base64",
                    "media_type": attachment.mime_type,
                    "data": attachment.as_base64(),
                },
            }
        )
    blocks.append({"type": "text", "text": request.prompt})
    return blocks


class AsyncClaudeGenerationClient(AsyncGenerationClient):
    def __init__(
        self,
        api_key: str | None = None,
        logger: Optional[Logger] = None,
        max_tokens: int | None = None,
    ):
        api_key = api_key or get_config_value("ANTHROPIC_API_KEY")
        self._client = AsyncAnthropic(api_key=api_key, max_retries=0)
        self._logger: Logger = logger or NullLogger()
        self._max_tokens = max_tokens or get_int_setting("CLAUDE_MAX_TOKENS", 4096)

    @_llm_span("anthropic")
    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        if request.tools:
            self._logger.warn(
                "llm.capability_ignored",
                req_id=request.req_id,
                provider="anthropic",
                tools=sorted(t.value for t in request.tools),
            )
        payload: dict[str, Any] = {
            "model": request.model,
            "messages": [{"role": "user", "content": _claude_content(request)}],
            "max_tokens": self._max_tokens,
            "temperature": min(request.temperature, 1.0),
        }
        log_content = _log_request(self._logger, "anthropic", request)
        try:
            resp = await self._client.messages.create(**payload)
        except anthropic.AnthropicError as exc:
            raise _sdk_error(anthropic, exc) from exc
        texts = [getattr(block, "text", "") for block in (resp.content or [])]
        response = GenerationResponse(text="".join(t for t in texts if t).strip())
        _log_response(self._logger, "anthropic", request, response, getattr(resp, "usage", None), log_content)
        return response
