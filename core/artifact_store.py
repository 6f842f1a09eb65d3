"""Pluggable storage for generated artifacts, keyed by content type.

The orchestrator and refinement engine are the only writers. Artifacts are
strings, so readers always receive a value they cannot mutate in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Protocol

from core.models import ContentType


class ArtifactStore(Protocol):
    """Abstract storage for one session's artifacts."""

    def get(self, content_type: ContentType) -> Optional[str]:
        """Return the stored artifact, or None if none has been produced."""

    def put(self, content_type: ContentType, artifact: str) -> None:
        """Replace the artifact for content_type wholesale."""

    def clear(self) -> None:
        """Drop every artifact."""

    def snapshot(self) -> Dict[ContentType, str]:
        """Return a copy of all stored artifacts."""


@dataclass
class InMemoryArtifactStore:
    """In-memory ArtifactStore for a single session.

    Persistence across page loads is left to the caller, which can export
    `snapshot()` and seed a new store from it.
    """

    _db: Dict[ContentType, str]

    def __init__(self, initial: Optional[Dict[ContentType, str]] = None) -> None:
        self._db = dict(initial or {})

    def get(self, content_type: ContentType) -> Optional[str]:
        return self._db.get(content_type)

    def put(self, content_type: ContentType, artifact: str) -> None:
        self._db[content_type] = artifact

    def clear(self) -> None:
        self._db.clear()

    def snapshot(self) -> Dict[ContentType, str]:
        return dict(self._db)

    def __contains__(self, content_type: object) -> bool:
        return content_type in self._db
