"""DOCX parser implementation using python-docx."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterator

from docx import Document as load_docx
from docx.document import Document as DocxDocument
from docx.opc.exceptions import PackageNotFoundError
from docx.oxml.ns import qn
from docx.table import Table as DocxTable
from docx.text.paragraph import Paragraph as DocxParagraph

from . import utils
from .base import DocumentParseError, ParsedDocument, ParseTarget, require_local_file
from .registry import registry

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


@dataclass(slots=True)
class DocxParser:
    """Concrete :class:`DocumentParser` for DOCX sources."""

    name: str = "docx"

    def detect(self, target: ParseTarget) -> bool:
        path = target.to_path()
        if not path.exists() or not path.is_file():
            return False
        if path.suffix.lower() == ".docx":
            return True
        media_type = target.media_type or utils.guess_media_type(path)
        if not media_type:
            return False
        return media_type.lower() == DOCX_MEDIA_TYPE

    def extract(self, target: ParseTarget) -> ParsedDocument:
        path = require_local_file(target, kind="DOCX")
        try:
            checksum = utils.sha256_path(path)
            file_size = path.stat().st_size
            docx_document = load_docx(str(path))
        except (PackageNotFoundError, ValueError, OSError, KeyError) as exc:
            raise DocumentParseError(f"Failed to read DOCX '{path}': {exc}") from exc
        document = ParsedDocument(target=target, checksum=checksum, parser_name=self.name)

        blocks = list(_iter_document_blocks(docx_document))
        paragraph_count = sum(isinstance(block, DocxParagraph) for block in blocks)
        table_count = sum(isinstance(block, DocxTable) for block in blocks)

        metadata = _extract_core_properties(docx_document)
        metadata.update(
            {
                "paragraph_count": paragraph_count,
                "table_count": table_count,
                "file_size": file_size,
            }
        )
        document.metadata.update(metadata)

        for block in blocks:
            if isinstance(block, DocxParagraph):
                text = block.text.strip()
                if text:
                    document.add_segment(text)
            else:
                cells = list(_table_cell_texts(block))
                if cells:
                    document.extend_segments(cells)
                else:
                    document.warnings.append("Encountered empty table while parsing DOCX")

        if not document.segments:
            document.warnings.append("DOCX file contained no extractable content")

        return document


def _iter_document_blocks(doc: DocxDocument) -> Iterator[DocxParagraph | DocxTable]:
    """Yield block-level elements preserving document order."""

    body = doc.element.body
    for child in body.iterchildren():
        if child.tag == qn("w:p"):
            yield DocxParagraph(child, doc)
        elif child.tag == qn("w:tbl"):
            yield DocxTable(child, doc)


def _table_cell_texts(table: DocxTable) -> Iterator[str]:
    # Merged cells are reported once per grid column they span.
    for row in table.rows:
        previous: Any = None
        for cell in row.cells:
            if cell._tc is previous:
                continue
            previous = cell._tc
            text = cell.text.strip()
            if text:
                yield text


def _extract_core_properties(doc: DocxDocument) -> dict[str, Any]:
    props = doc.core_properties
    mapping = {
        "title": props.title,
        "subject": props.subject,
        "author": props.author,
        "created": getattr(props, "created", None),
        "modified": getattr(props, "modified", None),
    }
    sanitized: dict[str, Any] = {}
    for key, value in mapping.items():
        if value in (None, ""):
            continue
        if isinstance(value, datetime):
            sanitized[key] = value.isoformat()
        else:
            sanitized[key] = value
    return sanitized


docx_parser = DocxParser()
registry.register_parser(
    docx_parser,
    media_types=(DOCX_MEDIA_TYPE,),
    suffixes=(".docx",),
    priority=8,
    replace=True,
)

__all__ = ["DocxParser", "docx_parser"]
