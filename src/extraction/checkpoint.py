"""Persistence of run state so an extraction can resume in a later process."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from src.parsing import utils

from . import ExtractionRecord, ProgressState, SkippedSpan

_CHECKPOINT_VERSION = 1


class CheckpointError(RuntimeError):
    """Raised when a checkpoint file cannot be read."""


@dataclass(slots=True)
class RunCheckpoint:
    source: str | None
    paragraphs: tuple[str, ...]
    cursor: int
    stats: ProgressState
    results: list[ExtractionRecord] = field(default_factory=list)
    skipped: list[SkippedSpan] = field(default_factory=list)
    # None when the checkpoint predates field tracking.
    extraction_fields: tuple[str, ...] | None = None
    saved_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    version: int = _CHECKPOINT_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "source": self.source,
            "saved_at": self.saved_at.isoformat(),
            "cursor": self.cursor,
            "stats": self.stats.to_dict(),
            "paragraphs": list(self.paragraphs),
            "results": [record.to_dict() for record in self.results],
            "skipped": [span.to_dict() for span in self.skipped],
            "extraction_fields": None if self.extraction_fields is None else list(self.extraction_fields),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "RunCheckpoint":
        version = payload.get("version", _CHECKPOINT_VERSION)
        if version != _CHECKPOINT_VERSION:
            raise CheckpointError(f"Unsupported checkpoint version: {version}")
        stats = ProgressState.from_dict(payload.get("stats") or {})
        paragraphs = tuple(str(item) for item in payload.get("paragraphs") or ())
        cursor = int(payload.get("cursor", stats.processed_paragraphs))
        if not 0 <= cursor <= len(paragraphs):
            raise CheckpointError(f"Checkpoint cursor {cursor} outside [0, {len(paragraphs)}]")
        saved_at = payload.get("saved_at")
        raw_fields = payload.get("extraction_fields")
        if raw_fields is not None and not isinstance(raw_fields, list):
            raise CheckpointError("Checkpoint extraction_fields must be a list")
        return cls(
            source=payload.get("source"),
            paragraphs=paragraphs,
            cursor=cursor,
            stats=stats,
            results=[ExtractionRecord.from_dict(item) for item in payload.get("results") or ()],
            skipped=[SkippedSpan.from_dict(item) for item in payload.get("skipped") or ()],
            extraction_fields=None if raw_fields is None else tuple(str(name) for name in raw_fields),
            saved_at=datetime.fromisoformat(saved_at) if saved_at else datetime.now(timezone.utc),
            version=version,
        )


class CheckpointStore:
    """Reads and writes a single checkpoint file atomically."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> RunCheckpoint:
        if not self.path.exists():
            raise CheckpointError(f"Checkpoint '{self.path}' does not exist")
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise CheckpointError(f"Checkpoint '{self.path}' is unreadable: {exc}") from exc
        if not isinstance(raw, Mapping):
            raise CheckpointError(f"Checkpoint '{self.path}' must contain a JSON object")
        try:
            return RunCheckpoint.from_dict(raw)
        except (KeyError, TypeError, ValueError) as exc:
            raise CheckpointError(f"Checkpoint '{self.path}' is malformed: {exc}") from exc

    def save(self, checkpoint: RunCheckpoint) -> Path:
        utils.ensure_directory(self.path.parent)
        payload = json.dumps(checkpoint.to_dict(), indent=2, ensure_ascii=False)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(payload, encoding="utf-8")
        tmp_path.replace(self.path)
        return self.path

    def delete(self) -> bool:
        if not self.path.exists():
            return False
        self.path.unlink()
        return True


__all__ = ["CheckpointError", "CheckpointStore", "RunCheckpoint"]
