""" Configuration sources consulted in order (process env, then .env). """

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Protocol


class ConfigSource(Protocol):
    """Strategy interface for pulling configuration values from a backing store."""

    def get(self, key: str) -> str | None: ...


@dataclass(slots=True)
class EnvConfigSource:
    """Reads values directly from environment variables."""

    prefix: str | None = None

    def get(self, key: str) -> str | None:
        return os.getenv(f"{self.prefix or ''}{key}")


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        return value[1:-1]
    # Unquoted values may carry a trailing " # comment".
    return value.split(" #", 1)[0].rstrip()


def parse_dotenv(text: str) -> dict[str, str]:
    """Parse KEY=VALUE lines; skips blanks, comments and lines without '='."""
    values: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if line.startswith("export "):
            line = line[len("export ") :].lstrip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        values[key.strip()] = _unquote(value.strip())
    return values


@dataclass(slots=True)
class DotEnvConfigSource:
    """Reads a .env file once, on first lookup. A missing file is an empty source."""

    path: Path = Path(".env")
    encoding: str = "utf-8"
    _values: dict[str, str] | None = field(default=None, init=False)

    def _load(self) -> dict[str, str]:
        if self._values is None:
            try:
                self._values = parse_dotenv(self.path.read_text(encoding=self.encoding))
            except FileNotFoundError:
                self._values = {}
        return self._values

    def as_dict(self) -> dict[str, str]:
        return dict(self._load())

    def get(self, key: str) -> str | None:
        return self._load().get(key)


@dataclass(slots=True)
class ConfigAdapter:
    """Composite over multiple sources; the first source holding a key wins."""

    sources: tuple[ConfigSource, ...]

    def get(self, key: str, default: str | None = None) -> str | None:
        return next(
            (value for value in (source.get(key) for source in self.sources) if value is not None),
            default,
        )
