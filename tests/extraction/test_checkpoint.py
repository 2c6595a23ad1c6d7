"""Tests for run checkpoint persistence."""
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from src.extraction import ExtractionRecord, ProgressState, RunStatus, SkippedSpan
from src.extraction.checkpoint import CheckpointError, CheckpointStore, RunCheckpoint


def _checkpoint() -> RunCheckpoint:
    return RunCheckpoint(
        source="roster.docx",
        paragraphs=("Zhang Zizhong, born in Linqing.", "Sun Liren, born in Lujiang.", "Closing remarks."),
        cursor=1,
        stats=ProgressState(
            total_paragraphs=3,
            processed_paragraphs=2,
            extracted_count=1,
            start_time=datetime(2024, 5, 4, 12, 0, tzinfo=timezone.utc),
            status=RunStatus.PAUSED,
        ),
        results=[ExtractionRecord(name="张自忠", description="山东临清人", fields={"office": "上将"})],
        skipped=[SkippedSpan(start=2, end=3, error="API HTTP 500")],
    )


def test_save_and_load(tmp_path: Path) -> None:
    store = CheckpointStore(tmp_path / "nested" / "run.checkpoint.json")
    original = _checkpoint()

    saved_path = store.save(original)
    loaded = store.load()

    assert saved_path == store.path
    assert store.exists()
    assert not saved_path.with_name(saved_path.name + ".tmp").exists()
    assert loaded.source == original.source
    assert loaded.paragraphs == original.paragraphs
    assert loaded.cursor == 1
    assert loaded.stats == original.stats
    assert loaded.results == original.results
    assert loaded.skipped == original.skipped
    assert "张自忠" in saved_path.read_text(encoding="utf-8")


def test_missing_cursor_falls_back_to_processed(tmp_path: Path) -> None:
    payload = _checkpoint().to_dict()
    del payload["cursor"]

    restored = RunCheckpoint.from_dict(payload)

    assert restored.cursor == 2


def test_cursor_outside_paragraphs_rejected() -> None:
    payload = _checkpoint().to_dict()
    payload["cursor"] = 7

    with pytest.raises(CheckpointError, match="cursor"):
        RunCheckpoint.from_dict(payload)


def test_unsupported_version_rejected() -> None:
    payload = _checkpoint().to_dict()
    payload["version"] = 99

    with pytest.raises(CheckpointError, match="version"):
        RunCheckpoint.from_dict(payload)


def test_load_missing_file(tmp_path: Path) -> None:
    with pytest.raises(CheckpointError, match="does not exist"):
        CheckpointStore(tmp_path / "absent.json").load()


def test_load_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{oops", encoding="utf-8")

    with pytest.raises(CheckpointError, match="unreadable"):
        CheckpointStore(path).load()


def test_load_non_object(tmp_path: Path) -> None:
    path = tmp_path / "list.json"
    path.write_text(json.dumps([1, 2]), encoding="utf-8")

    with pytest.raises(CheckpointError, match="JSON object"):
        CheckpointStore(path).load()


def test_load_malformed_status(tmp_path: Path) -> None:
    payload = _checkpoint().to_dict()
    payload["stats"]["status"] = "sleeping"
    path = tmp_path / "bad-status.json"
    path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(CheckpointError, match="malformed"):
        CheckpointStore(path).load()


def test_delete(tmp_path: Path) -> None:
    store = CheckpointStore(tmp_path / "run.json")
    assert store.delete() is False

    store.save(_checkpoint())
    assert store.delete() is True
    assert not store.exists()


def test_extraction_fields_are_persisted(tmp_path: Path) -> None:
    store = CheckpointStore(tmp_path / "run.json")
    checkpoint = _checkpoint()
    checkpoint.extraction_fields = ("rank", "office")

    store.save(checkpoint)

    assert store.load().extraction_fields == ("rank", "office")


def test_checkpoint_without_fields_loads_as_unknown() -> None:
    payload = _checkpoint().to_dict()
    del payload["extraction_fields"]

    assert RunCheckpoint.from_dict(payload).extraction_fields is None


def test_empty_field_list_is_kept() -> None:
    payload = _checkpoint().to_dict()
    payload["extraction_fields"] = []

    assert RunCheckpoint.from_dict(payload).extraction_fields == ()


def test_non_list_fields_rejected() -> None:
    payload = _checkpoint().to_dict()
    payload["extraction_fields"] = "rank"

    with pytest.raises(CheckpointError, match="extraction_fields"):
        RunCheckpoint.from_dict(payload)
