"""Parser registry for routing documents to concrete implementations."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from . import utils
from .base import DocumentParseError, DocumentParser, ParsedDocument, ParseTarget


@dataclass(slots=True)
class _RegistryEntry:
    parser: DocumentParser
    media_types: tuple[str, ...]
    suffixes: tuple[str, ...]
    priority: int

    def matches(self, media_type: str | None, suffix: str | None) -> bool:
        if self.media_types and media_type in self.media_types:
            return True
        if self.suffixes and suffix in self.suffixes:
            return True
        return not self.media_types and not self.suffixes


class ParserRegistry:
    """Manage parser implementations and select appropriate handlers."""

    def __init__(self) -> None:
        self._entries: list[_RegistryEntry] = []

    def register_parser(
        self,
        parser: DocumentParser,
        *,
        media_types: Sequence[str] | None = None,
        suffixes: Sequence[str] | None = None,
        priority: int = 0,
        replace: bool = False,
    ) -> None:
        if not parser.name:
            raise ValueError("Parser must define a non-empty name")

        if not replace and any(entry.parser.name == parser.name for entry in self._entries):
            raise ValueError(f"Parser '{parser.name}' already registered")

        self._entries = [entry for entry in self._entries if entry.parser.name != parser.name]
        self._entries.append(
            _RegistryEntry(
                parser=parser,
                media_types=tuple(sorted({item.lower() for item in media_types or () if item})),
                suffixes=utils.normalize_suffixes(suffixes),
                priority=priority,
            )
        )
        self._entries.sort(key=lambda entry: entry.priority, reverse=True)

    def get_registered_names(self) -> list[str]:
        return [entry.parser.name for entry in self._entries]

    def find_parser(self, target: ParseTarget) -> DocumentParser | None:
        """Return the first parser that accepts ``target``.

        Parsers whose media types or suffixes match are asked first, in
        priority order; the remaining parsers are consulted after them.
        """
        path = target.to_path()
        media_type = (target.media_type or utils.guess_media_type(path) or "").lower() or None
        suffix = path.suffix.lower() or None

        ranked = sorted(self._entries, key=lambda entry: not entry.matches(media_type, suffix))
        for entry in ranked:
            if entry.parser.detect(target):
                return entry.parser
        return None

    def require_parser(self, target: ParseTarget) -> DocumentParser:
        parser = self.find_parser(target)
        if parser is None:
            raise DocumentParseError(f"No parser registered for document '{target.source}'")
        return parser


def parse_document(
    source: str | Path,
    *,
    media_type: str | None = None,
    registry_override: ParserRegistry | None = None,
) -> ParsedDocument:
    """Convert a local document into raw text using the matching parser."""

    active_registry = registry_override or registry
    target = ParseTarget(source=str(source), media_type=media_type)
    if not target.to_path().exists():
        raise DocumentParseError(f"Document '{source}' does not exist")
    parser = active_registry.require_parser(target)
    return parser.extract(target)


registry = ParserRegistry()
