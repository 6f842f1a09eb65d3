"""Best-effort cleanup of raw model text.

Models wrap their payload in conversational filler ("Here is your resume:")
or code fences. These helpers cut that wrapping away without ever raising on
malformed input; strict decoding is left to `parse_json_object`.
"""

from __future__ import annotations

import json
import re
from typing import Any, Iterable

from core.errors import ParseError

_LEADING_FENCE = re.compile(r"^```[a-zA-Z0-9_-]*[ \t]*\n?")
_TRAILING_FENCE = re.compile(r"\n?[ \t]*```$")
_MARKDOWN_START = re.compile(r"^(#{1,3}\s|\*\*|<div)", re.MULTILINE)

SOURCES_HEADER = "\n\n---\n### Sources & References\n"


def sanitize_json(raw: str) -> str:
    """Return the outermost {...} span of `raw`, stripped of fences and preamble.

    Without braces the trimmed, unfenced text is returned unchanged.
    """
    clean = (raw or "").strip()
    while True:
        unfenced = _TRAILING_FENCE.sub("", _LEADING_FENCE.sub("", clean)).strip()
        if unfenced == clean:
            break
        clean = unfenced
    start, end = clean.find("{"), clean.rfind("}")
    if start != -1 and end > start:
        return clean[start : end + 1]
    return clean


def sanitize_markdown(raw: str) -> str:
    """Drop everything before the first heading, bold marker or <div> line."""
    text = raw or ""
    match = _MARKDOWN_START.search(text)
    if match:
        return text[match.start() :]
    return text


def format_sources(citations: Iterable[Any]) -> str:
    """Render grounding citations as a trailing markdown list; '' when none have a URI."""
    lines: list[str] = []
    for index, citation in enumerate(citations):
        uri = getattr(citation, "uri", None)
        if not uri:
            continue
        title = getattr(citation, "title", None) or f"Source {index + 1}"
        lines.append(f"- [{title}]({uri})")
    if not lines:
        return ""
    return SOURCES_HEADER + "\n".join(lines) + "\n"


def is_json_object(text: str) -> bool:
    try:
        return isinstance(json.loads(text), dict)
    except (json.JSONDecodeError, TypeError):
        return False


def parse_json_object(raw: str, error_cls: type[Exception] = ParseError) -> dict[str, Any]:
    """Decode a JSON object from model output, raising error_cls on failure.

    Tries the full string first, then the sanitized {...} span.
    """
    try:
        data = json.loads(raw)
        if isinstance(data, dict):
            return data
    except (json.JSONDecodeError, TypeError):
        pass
    candidate = sanitize_json(raw or "")
    if not candidate.startswith("{"):
        raise error_cls("No JSON detected in model output")
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise error_cls("Malformed JSON in model output") from exc
    if not isinstance(data, dict):
        raise error_cls("Expected JSON object in model output")
    return data
