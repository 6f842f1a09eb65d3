"""Structured JSON event logging and timing spans.

Events are one JSON object per line: ``ts``, ``level``, ``event``,
``service``, ``env`` plus caller fields. Configured API keys are masked in
every string field before a record is written.
"""

from __future__ import annotations

import asyncio
import datetime
import functools
import inspect
import json
import sys
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Protocol, TextIO

from core.config import get_config_value

REPO_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_LOG_DIR = REPO_ROOT / "logs"

_SECRET_KEYS = ("GOOGLE_API_KEY", "OPENAI_API_KEY", "ANTHROPIC_API_KEY")
_MASK = "***"


@functools.lru_cache(maxsize=None)
def _file_lock(path: Path) -> threading.Lock:
    return threading.Lock()


class Logger(Protocol):
    def info(self, event: str, **fields: Any) -> None: ...
    def warn(self, event: str, **fields: Any) -> None: ...
    def error(self, event: str, **fields: Any) -> None: ...


class NullLogger:
    def info(self, event: str, **fields: Any) -> None:
        pass

    def warn(self, event: str, **fields: Any) -> None:
        pass

    def error(self, event: str, **fields: Any) -> None:
        pass


def _configured_secrets() -> tuple[str, ...]:
    return tuple(s for s in (get_config_value(k) for k in _SECRET_KEYS) if s)


def redact(value: Optional[str], secrets: tuple[str, ...] | None = None) -> Optional[str]:
    """Mask configured API keys inside a string; non-strings pass through."""
    if not isinstance(value, str) or not value:
        return value
    for secret in _configured_secrets() if secrets is None else secrets:
        value = value.replace(secret, _MASK)
    return value


def _utc_now() -> str:
    return (
        datetime.datetime.now(datetime.timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


class JsonStdoutLogger:
    """Writes records to stdout (errors to stderr) and optionally to a file."""

    def __init__(
        self,
        service: str = "generation",
        env: str | None = None,
        log_path: str | Path | None = None,
        **context: Any,
    ):
        self.service = service
        self.env = env or get_config_value("APP_ENV", "dev") or "dev"
        self.context = context
        self._log_path = Path(log_path).expanduser() if log_path else None
        self._secrets = _configured_secrets()

    def bind(self, **fields: Any) -> "JsonStdoutLogger":
        """Child logger that adds `fields` to every record (e.g. a session id)."""
        child = object.__new__(type(self))
        child.__dict__.update(self.__dict__)
        child.context = {**self.context, **fields}
        return child

    def _line(self, level: str, event: str, fields: Mapping[str, Any]) -> str:
        record = {
            "ts": _utc_now(),
            "level": level,
            "event": event,
            "service": self.service,
            "env": self.env,
            **self.context,
            **fields,
        }
        masked = {k: redact(v, self._secrets) if isinstance(v, str) else v for k, v in record.items()}
        return json.dumps(masked, default=str)

    def _stream(self, level: str) -> TextIO:
        return sys.stderr if level == "error" else sys.stdout

    def _emit(self, level: str, event: str, **fields: Any) -> None:
        line = self._line(level, event, fields)
        print(line, file=self._stream(level))
        if self._log_path is None:
            return
        with _file_lock(self._log_path):
            self._log_path.parent.mkdir(parents=True, exist_ok=True)
            with self._log_path.open("a", encoding="utf-8") as fh:
                fh.write(line + "\n")

    def info(self, event: str, **fields: Any) -> None:
        self._emit("info", event, **fields)

    def warn(self, event: str, **fields: Any) -> None:
        self._emit("warn", event, **fields)

    def error(self, event: str, **fields: Any) -> None:
        self._emit("error", event, **fields)


class JsonRepoLogger(JsonStdoutLogger):
    """JSON logger that also appends to logs/<service>.log (or OBS_LOG_FILE)."""

    def __init__(
        self,
        service: str = "generation",
        env: str | None = None,
        log_dir: str | Path | None = None,
        filename: str | None = None,
        **context: Any,
    ):
        super().__init__(service=service, env=env, log_path=_repo_log_path(service, log_dir, filename), **context)


def _repo_log_path(service: str, log_dir: str | Path | None, filename: str | None) -> Path:
    override = get_config_value("OBS_LOG_FILE")
    if override and not filename:
        path = Path(override).expanduser()
        return path if path.is_absolute() else REPO_ROOT / path
    base = Path(log_dir).expanduser() if log_dir else DEFAULT_LOG_DIR
    return base / (filename or f"{service}.log")


# ---------- Spans ----------


@dataclass(slots=True)
class Span:
    """Times a block and logs ``<event>.start`` and then ``.end``, ``.error`` or ``.cancelled``."""

    logger: Logger
    event: str
    fields: Mapping[str, Any] = field(default_factory=dict)
    started: float = 0.0

    def __enter__(self) -> "Span":
        self.started = time.perf_counter()
        self.logger.info(self.event + ".start", **self.fields)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        duration_ms = round((time.perf_counter() - self.started) * 1000, 3)
        if exc is None:
            self.logger.info(self.event + ".end", duration_ms=duration_ms, **self.fields)
        elif isinstance(exc, asyncio.CancelledError):
            self.logger.info(self.event + ".cancelled", duration_ms=duration_ms, **self.fields)
        else:
            self.logger.error(
                self.event + ".error",
                duration_ms=duration_ms,
                error_type=type(exc).__name__,
                error=str(exc),
                **self.fields,
            )


def with_span(
    event: str,
    *,
    logger_attr: str = "_logger",
    fields: Mapping[str, Any] | None = None,
    fields_fn: Callable[..., Mapping[str, Any]] | None = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Wrap a method (sync or async) in a `Span` logged to ``self.<logger_attr>``."""

    def _open(args: tuple[Any, ...], kwargs: dict[str, Any]) -> Span:
        logger = getattr(args[0], logger_attr, None) if args else None
        merged = dict(fields or {})
        if fields_fn:
            merged.update(fields_fn(*args, **kwargs))
        return Span(logger or NullLogger(), event, merged)

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        if inspect.iscoroutinefunction(fn):

            @functools.wraps(fn)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with _open(args, kwargs):
                    return await fn(*args, **kwargs)

            return async_wrapper

        @functools.wraps(fn)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with _open(args, kwargs):
                return fn(*args, **kwargs)

        return sync_wrapper

    return decorator
