"""Core data models for person record extraction."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Mapping

__all__ = [
    "ExtractionRecord",
    "FewShotExample",
    "ProgressState",
    "RunStatus",
    "SkippedSpan",
]


class RunStatus(str, Enum):
    """Lifecycle of an extraction run."""

    IDLE = "idle"
    PARSING = "parsing"
    PROCESSING = "processing"
    COMPLETED = "completed"
    PAUSED = "paused"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class FewShotExample:
    """An input/output pair embedded in the prompt to steer formatting."""

    input: str
    output: str

    def to_dict(self) -> dict[str, str]:
        return {"input": self.input, "output": self.output}


@dataclass(frozen=True, slots=True)
class ExtractionRecord:
    """A person extracted from the text.

    ``fields`` holds the caller-configured extra attributes; it only ever
    contains names from the run's extraction field list.
    """

    name: str
    description: str
    fields: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", dict(self.fields))

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        extraction_fields: Iterable[str] = (),
    ) -> "ExtractionRecord":
        """Build a record from model output, keeping only configured fields."""

        return cls(
            name=_as_text(payload.get("name")).strip(),
            description=_as_text(payload.get("description")).strip(),
            fields={name: _as_text(payload.get(name)) for name in extraction_fields},
        )

    def get(self, field_name: str) -> str:
        if field_name == "name":
            return self.name
        if field_name == "description":
            return self.description
        return self.fields.get(field_name, "")

    def to_dict(self) -> dict[str, str]:
        payload = {"name": self.name, "description": self.description}
        payload.update(self.fields)
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ExtractionRecord":
        extra = [key for key in payload if key not in ("name", "description")]
        return cls.from_payload(payload, extra)


@dataclass(frozen=True, slots=True)
class SkippedSpan:
    """A batch ``[start, end)`` given up on after a failed extraction."""

    start: int
    end: int
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"start": self.start, "end": self.end, "error": self.error}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "SkippedSpan":
        return cls(start=int(payload["start"]), end=int(payload["end"]), error=str(payload.get("error", "")))


@dataclass(slots=True)
class ProgressState:
    """Counters and lifecycle status of a run.

    ``processed_paragraphs`` is the resume cursor reported to the outside and
    ``extracted_count`` mirrors the dedup ledger size.
    """

    total_paragraphs: int = 0
    processed_paragraphs: int = 0
    extracted_count: int = 0
    start_time: datetime | None = None
    status: RunStatus = RunStatus.IDLE
    error_message: str | None = None

    @property
    def remaining_paragraphs(self) -> int:
        return max(self.total_paragraphs - self.processed_paragraphs, 0)

    @property
    def percent_complete(self) -> float:
        if self.total_paragraphs == 0:
            return 0.0
        return 100.0 * self.processed_paragraphs / self.total_paragraphs

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_paragraphs": self.total_paragraphs,
            "processed_paragraphs": self.processed_paragraphs,
            "extracted_count": self.extracted_count,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "status": self.status.value,
            "error_message": self.error_message,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ProgressState":
        start_time = payload.get("start_time")
        return cls(
            total_paragraphs=int(payload.get("total_paragraphs", 0)),
            processed_paragraphs=int(payload.get("processed_paragraphs", 0)),
            extracted_count=int(payload.get("extracted_count", 0)),
            start_time=datetime.fromisoformat(start_time) if start_time else None,
            status=RunStatus(payload.get("status", RunStatus.IDLE.value)),
            error_message=payload.get("error_message"),
        )


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return ", ".join(_as_text(item) for item in value)
    return str(value)
