"""CSV export of accumulated extraction results."""
from __future__ import annotations

import csv
import io
from datetime import date
from pathlib import Path
from typing import Sequence

from src import paths
from src.parsing import utils

from . import ExtractionRecord

# Spreadsheet applications need the BOM to detect UTF-8.
CSV_ENCODING = "utf-8-sig"


def csv_header(extraction_fields: Sequence[str]) -> list[str]:
    return ["name", "description", *extraction_fields]


def render_results_csv(results: Sequence[ExtractionRecord], extraction_fields: Sequence[str]) -> str:
    """Render results as CSV text with every value quoted."""

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    header = csv_header(extraction_fields)
    writer.writerow(header)
    for record in results:
        writer.writerow([record.get(column) for column in header])
    return buffer.getvalue()


def write_results_csv(
    results: Sequence[ExtractionRecord],
    extraction_fields: Sequence[str],
    path: Path | None = None,
) -> Path:
    if not results:
        raise ValueError("No extraction results to export")

    target = Path(path) if path is not None else default_export_path()
    utils.ensure_directory(target.parent)
    target.write_text(render_results_csv(results, extraction_fields), encoding=CSV_ENCODING)
    return target


def default_export_path(today: date | None = None) -> Path:
    stamp = (today or date.today()).isoformat()
    return paths.get_exports_root() / f"extracted_{stamp}.csv"


__all__ = [
    "CSV_ENCODING",
    "csv_header",
    "default_export_path",
    "render_results_csv",
    "write_results_csv",
]
