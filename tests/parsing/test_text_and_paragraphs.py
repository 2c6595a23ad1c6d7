"""Tests for plain text parsing and paragraph splitting."""

from __future__ import annotations

import pytest

from src.parsing import parse_document, split_paragraphs
from src.parsing import utils as parsing_utils
from src.parsing.base import DocumentParseError, ParseTarget
from src.parsing.text import TextParser


def test_split_paragraphs_trims_and_drops_short_lines() -> None:
    text = "  First person entry.  \r\n\nX\n\n  \nSecond person entry.\n-\nOK"

    assert split_paragraphs(text) == ("First person entry.", "Second person entry.", "OK")


def test_split_paragraphs_empty_text() -> None:
    assert split_paragraphs("") == ()
    assert split_paragraphs("\n\n \n") == ()


def test_text_parser_reads_utf8_with_bom(tmp_path) -> None:
    source = tmp_path / "roster.txt"
    source.write_text("孙立人，安徽省庐江县人。\n张自忠，山东临清人。\n", encoding="utf-8-sig")

    parser = TextParser()
    target = ParseTarget(source=str(source))

    assert parser.detect(target)
    document = parser.extract(target)

    assert document.segments == ["孙立人，安徽省庐江县人。", "张自忠，山东临清人。"]
    assert not document.warnings


def test_parse_document_routes_markdown_to_text_parser(tmp_path) -> None:
    source = tmp_path / "notes.md"
    source.write_text("# Heading\nBody line\n", encoding="utf-8")

    document = parse_document(source)

    assert document.parser_name == "text"
    assert split_paragraphs(document.text) == ("# Heading", "Body line")


def test_text_parser_warns_on_blank_file(tmp_path) -> None:
    source = tmp_path / "blank.txt"
    source.write_text("\n\n", encoding="utf-8")

    document = TextParser().extract(ParseTarget(source=str(source)))

    assert document.is_empty()
    assert document.warnings


def test_text_parser_rejects_invalid_encoding(tmp_path) -> None:
    source = tmp_path / "latin.txt"
    source.write_bytes("Caf\xe9".encode("latin-1"))

    with pytest.raises(DocumentParseError, match="Failed to read text file"):
        TextParser().extract(ParseTarget(source=str(source)))


def test_text_parser_wraps_io_errors(monkeypatch, tmp_path) -> None:
    source = tmp_path / "roster.txt"
    source.write_text("Some person.\n", encoding="utf-8")

    def unreadable(path, **_kwargs):
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr(parsing_utils, "sha256_path", unreadable)

    with pytest.raises(DocumentParseError, match="Failed to read text file"):
        TextParser().extract(ParseTarget(source=str(source)))
