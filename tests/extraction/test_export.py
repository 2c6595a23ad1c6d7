"""Tests for CSV export of extraction results."""
from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from src.extraction import ExtractionRecord
from src.extraction.export import (
    csv_header,
    default_export_path,
    render_results_csv,
    write_results_csv,
)


def _records() -> list[ExtractionRecord]:
    return [
        ExtractionRecord(name="Zhang Zizhong", description='Called "Jinchen", born in Linqing.', fields={"office": "General"}),
        ExtractionRecord(name="Sun Liren", description="Born in Lujiang,\nAnhui.", fields={}),
    ]


def test_header_order() -> None:
    assert csv_header(["birthplace", "office"]) == ["name", "description", "birthplace", "office"]


def test_render_quotes_every_value_and_escapes() -> None:
    text = render_results_csv(_records(), ["office"])

    lines = text.split("\n")
    assert lines[0] == '"name","description","office"'
    assert lines[1] == '"Zhang Zizhong","Called ""Jinchen"", born in Linqing.","General"'
    assert '"Sun Liren","Born in Lujiang,\nAnhui.",""' in text


def test_write_uses_utf8_bom(tmp_path: Path) -> None:
    target = tmp_path / "out" / "people.csv"

    path = write_results_csv([ExtractionRecord(name="孙立人", description="安徽庐江人")], [], target)

    raw = path.read_bytes()
    assert path == target
    assert raw.startswith(b"\xef\xbb\xbf")
    assert raw.decode("utf-8-sig") == '"name","description"\n"孙立人","安徽庐江人"\n'


def test_write_refuses_empty_results(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="No extraction results"):
        write_results_csv([], ["office"], tmp_path / "empty.csv")


def test_default_export_path(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("ROSTER_DATA_DIR", str(tmp_path))

    path = default_export_path(date(2024, 5, 4))

    assert path == tmp_path / "exports" / "extracted_2024-05-04.csv"
