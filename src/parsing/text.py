"""Plain text parser for ``.txt`` and ``.md`` sources."""

from __future__ import annotations

from dataclasses import dataclass

from . import utils
from .base import DocumentParseError, ParsedDocument, ParseTarget, require_local_file
from .registry import registry

_TEXT_SUFFIXES = (".txt", ".md", ".markdown")


@dataclass(slots=True)
class TextParser:
    name: str = "text"

    def detect(self, target: ParseTarget) -> bool:
        path = target.to_path()
        if not path.is_file():
            return False
        if path.suffix.lower() in _TEXT_SUFFIXES:
            return True
        media_type = target.media_type or utils.guess_media_type(path)
        return bool(media_type) and media_type.lower().startswith("text/")

    def extract(self, target: ParseTarget) -> ParsedDocument:
        path = require_local_file(target, kind="Text")
        try:
            raw = path.read_text(encoding="utf-8-sig")
            checksum = utils.sha256_path(path)
            file_size = path.stat().st_size
        except (OSError, UnicodeDecodeError) as exc:
            raise DocumentParseError(f"Failed to read text file '{path}': {exc}") from exc

        document = ParsedDocument(target=target, checksum=checksum, parser_name=self.name)
        document.extend_segments(raw.splitlines())
        document.metadata["file_size"] = file_size
        if document.is_empty():
            document.warnings.append("Text file contained no extractable content")
        return document


text_parser = TextParser()
registry.register_parser(
    text_parser,
    suffixes=_TEXT_SUFFIXES,
    priority=4,
    replace=True,
)

__all__ = ["TextParser", "text_parser"]
