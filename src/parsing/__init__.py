"""Document parsing: turn uploaded documents into a paragraph sequence."""

from importlib import import_module

from .base import DocumentParseError, DocumentParser, ParsedDocument, ParseTarget
from .registry import ParserRegistry, parse_document, registry
from .docx import DocxParser, docx_parser
from .text import TextParser, text_parser
from .paragraphs import MIN_PARAGRAPH_LENGTH, split_paragraphs

utils = import_module("src.parsing.utils")

__all__ = [
    "DocumentParseError",
    "DocumentParser",
    "ParsedDocument",
    "ParseTarget",
    "ParserRegistry",
    "parse_document",
    "registry",
    "DocxParser",
    "docx_parser",
    "TextParser",
    "text_parser",
    "MIN_PARAGRAPH_LENGTH",
    "split_paragraphs",
    "utils",
]
