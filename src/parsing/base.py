"""Core parsing interfaces and data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Protocol


class DocumentParseError(RuntimeError):
    """Raised when a document cannot be converted into text."""


@dataclass(frozen=True)
class ParseTarget:
    """Describes the local document that a parser should operate on."""

    source: str
    media_type: str | None = None

    def to_path(self) -> Path:
        return Path(self.source)


@dataclass(slots=True)
class ParsedDocument:
    """Raw text blocks pulled out of a document, in reading order."""

    target: ParseTarget
    checksum: str
    parser_name: str
    segments: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def add_segment(self, segment: str) -> None:
        self.segments.append(segment)

    def extend_segments(self, items: Iterable[str]) -> None:
        self.segments.extend(items)

    def is_empty(self) -> bool:
        return not any(segment.strip() for segment in self.segments)

    @property
    def text(self) -> str:
        """Flat text blob with one block per line."""
        return "\n".join(self.segments)


class DocumentParser(Protocol):
    """Contract shared by all concrete parsers."""

    @property
    def name(self) -> str:
        ...

    def detect(self, target: ParseTarget) -> bool:
        ...

    def extract(self, target: ParseTarget) -> ParsedDocument:
        ...


def require_local_file(target: ParseTarget, *, kind: str) -> Path:
    """Return the target path, raising ``DocumentParseError`` if it is unusable."""

    path = target.to_path()
    if not path.exists():
        raise DocumentParseError(f"{kind} file '{path}' does not exist")
    if not path.is_file():
        raise DocumentParseError(f"{kind} target '{path}' is not a file")
    return path
