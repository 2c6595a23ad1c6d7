"""Sequential, resumable extraction over a document's paragraphs."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Protocol, Sequence

from src.parsing import DocumentParseError, parse_document, split_paragraphs

from . import ExtractionRecord, ProgressState, RunStatus, SkippedSpan
from .activity import ActivityLog
from .checkpoint import RunCheckpoint
from .client import ExtractionClient, ExtractionError
from .config import RunConfig
from .ledger import DedupLedger
from .planner import Batch, advance_cursor, plan_batch

logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 30

_STARTABLE = (RunStatus.IDLE, RunStatus.PAUSED)


class Extractor(Protocol):
    def extract(self, paragraphs: Sequence[str], config: RunConfig) -> list[ExtractionRecord]:
        ...


class ExtractionDriver:
    """Drives planner, extraction client and ledger over the loaded paragraphs.

    Batches run strictly one after another. A failed batch is logged and
    skipped so one bad span never blocks the rest of the document.
    ``request_pause`` is honoured between batches; ``start`` picks up again
    at the preserved cursor.
    """

    def __init__(
        self,
        config: RunConfig,
        *,
        extractor: Extractor | None = None,
        activity: ActivityLog | None = None,
        sleep: Callable[[float], object] | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.config = config
        self.activity = activity or ActivityLog()
        self._extractor = extractor
        self._pause_requested = threading.Event()
        self._sleep = sleep or self._pause_requested.wait
        self._clock = clock or time.monotonic

        self.source: str | None = None
        self._paragraphs: tuple[str, ...] = ()
        self._cursor = 0
        self.results: list[ExtractionRecord] = []
        self.skipped: list[SkippedSpan] = []
        self.ledger = DedupLedger()
        self.stats = ProgressState()

    @property
    def paragraphs(self) -> tuple[str, ...]:
        return self._paragraphs

    @property
    def cursor(self) -> int:
        """Start of the next batch; trails ``processed_paragraphs`` by the overlap."""
        return self._cursor

    @property
    def is_running(self) -> bool:
        return self.stats.status is RunStatus.PROCESSING

    # Document loading -----------------------------------------------------

    def load_document(self, path: str | Path) -> int:
        """Parse ``path`` into paragraphs and reset the run.

        Raises:
            DocumentParseError: If the document cannot be read. The run status
                becomes ``error``.
        """
        self._ensure_idle("load a document")
        self.stats.status = RunStatus.PARSING
        self.activity.info(f"Parsing document: {Path(path).name}...")
        try:
            document = parse_document(path)
        except DocumentParseError as exc:
            self.stats.status = RunStatus.ERROR
            self.stats.error_message = "Document parsing failed"
            self.activity.error(f"Failed to parse document: {exc}")
            raise

        for warning in document.warnings:
            logger.warning("%s: %s", path, warning)
        return self.load_text(document.text, source=str(path))

    def load_text(self, text: str, *, source: str | None = None) -> int:
        return self.load_paragraphs(split_paragraphs(text), source=source)

    def load_paragraphs(self, paragraphs: Sequence[str], *, source: str | None = None) -> int:
        """Replace the paragraph sequence and clear all progress."""

        self._ensure_idle("load a document")
        self.source = source
        self._paragraphs = tuple(paragraphs)
        self._clear_progress()
        self.activity.success(f"Document parsed, {len(self._paragraphs)} text blocks found")
        return len(self._paragraphs)

    # Run control ----------------------------------------------------------

    def start(self) -> ProgressState:
        """Process batches until the document is done or a pause is requested."""

        if not self.config.has_credential:
            self.activity.error("Enter an API key to start processing")
            return self.stats
        if not self._paragraphs:
            self.activity.error("Load and parse a document first")
            return self.stats
        if self.stats.status not in _STARTABLE:
            self.activity.error(f"Cannot start a run while status is '{self.stats.status.value}'")
            return self.stats

        extractor = self._extractor or ExtractionClient.from_config(self.config, activity=self.activity)

        self._pause_requested.clear()
        self.stats.status = RunStatus.PROCESSING
        self.stats.error_message = None
        if self.stats.start_time is None:
            self.stats.start_time = datetime.now(timezone.utc)
        self.activity.info(
            f"Run started: model={self.config.model} | batch_size={self.config.batch_size} "
            f"overlap={self.config.overlap_size} max_characters={self.config.max_characters}"
        )

        total = len(self._paragraphs)
        try:
            while self._cursor < total and not self._pause_requested.is_set():
                elapsed = self._run_batch(extractor)
                if self._cursor < total and not self._pause_requested.is_set():
                    self._sleep(max(self.config.cooldown_budget - elapsed, self.config.cooldown_floor))
        except Exception as exc:
            self.stats.status = RunStatus.ERROR
            self.stats.error_message = str(exc)
            self.activity.error(
                f"Run stopped at paragraph {self._cursor + 1} by an unexpected error: {exc}"
            )
            raise
        finally:
            # A KeyboardInterrupt mid-batch leaves the cursor on the unfinished batch.
            if self.stats.status is RunStatus.PROCESSING and self._cursor < total:
                self.stats.status = RunStatus.PAUSED

        if self._cursor >= total:
            self.stats.status = RunStatus.COMPLETED
            self.activity.success(
                f"Extraction completed: {len(self.results)} records from {total} paragraphs"
            )
        else:
            self.stats.status = RunStatus.PAUSED
            self.activity.warning(
                f"Extraction paused after paragraph {self.stats.processed_paragraphs}"
            )
        return self.stats

    def request_pause(self) -> None:
        """Ask the loop to stop after the batch currently in flight."""

        self._pause_requested.set()

    def reset(self) -> None:
        """Drop the document, results, progress and the activity log."""

        self._ensure_idle("reset")
        self.source = None
        self._paragraphs = ()
        self._clear_progress()
        self.activity.clear()
        self.activity.info("Run state reset")

    # Checkpoints ------------------------------------------------------------

    def snapshot(self) -> RunCheckpoint:
        return RunCheckpoint(
            source=self.source,
            paragraphs=self._paragraphs,
            cursor=self._cursor,
            stats=replace(self.stats),
            results=list(self.results),
            skipped=list(self.skipped),
            extraction_fields=self.config.extraction_fields,
        )

    def restore(self, checkpoint: RunCheckpoint) -> None:
        """Reinstate a saved run; an interrupted run comes back as paused."""

        self._ensure_idle("restore a checkpoint")
        self.source = checkpoint.source
        self._paragraphs = tuple(checkpoint.paragraphs)
        self._cursor = checkpoint.cursor
        self.results = list(checkpoint.results)
        self.skipped = list(checkpoint.skipped)
        self.ledger = DedupLedger.from_records(self.results)
        self.stats = replace(
            checkpoint.stats,
            total_paragraphs=len(self._paragraphs),
            extracted_count=len(self.ledger),
        )
        if self.stats.status in (RunStatus.PROCESSING, RunStatus.PARSING):
            self.stats.status = RunStatus.PAUSED
        self.activity.info(
            f"Checkpoint restored: {self.stats.processed_paragraphs}/{self.stats.total_paragraphs} "
            f"paragraphs processed, {len(self.results)} records"
        )

    # Internals --------------------------------------------------------------

    def _run_batch(self, extractor: Extractor) -> float:
        """Process the batch at the cursor and return the seconds it took."""

        config = self.config
        total = len(self._paragraphs)
        batch = plan_batch(self._paragraphs, self._cursor, config.batch_size, config.max_characters)
        self.activity.info(f"[Extracting] {batch.label} ({batch.char_count} characters)...")

        started = self._clock()
        try:
            candidates = extractor.extract(batch.paragraphs, config)
        except ExtractionError as exc:
            self._record_failure(batch, exc)
            self._cursor = batch.end
        else:
            accepted = self.ledger.filter(candidates)
            self.results.extend(accepted)
            self._cursor = advance_cursor(batch.start, batch.end, total, config.overlap_size)
            logger.info(
                "%s: %d candidates, %d new records", batch.label, len(candidates), len(accepted)
            )

        self.stats.processed_paragraphs = batch.end
        self.stats.extracted_count = len(self.ledger)
        return self._clock() - started

    def _record_failure(self, batch: Batch, exc: Exception) -> None:
        self.skipped.append(SkippedSpan(start=batch.start, end=batch.end, error=str(exc)))
        first = _excerpt(batch.paragraphs[0])
        last = _excerpt(batch.paragraphs[-1])
        self.activity.error(
            f"Batch failed and was skipped: {batch.label} (~{batch.char_count} characters) | "
            f"first: {first} | last: {last} | reason: {exc}"
        )
        self.activity.warning(f"Continuing with paragraph {batch.end + 1}")

    def _clear_progress(self) -> None:
        self._cursor = 0
        self.results = []
        self.skipped = []
        self.ledger.clear()
        self.stats = ProgressState(total_paragraphs=len(self._paragraphs))

    def _ensure_idle(self, action: str) -> None:
        if self.is_running:
            raise RuntimeError(f"Cannot {action} while a run is in progress")


def _excerpt(text: str) -> str:
    return text[:EXCERPT_LENGTH] + "..."


__all__ = ["EXCERPT_LENGTH", "ExtractionDriver"]
