"""Deduplication of extracted records across batches."""
from __future__ import annotations

from typing import Iterable

from . import ExtractionRecord

# Descriptions are compared on this many leading characters.
DESCRIPTION_KEY_LENGTH = 100

DedupKey = tuple[str, str]


def dedup_key(record: ExtractionRecord) -> DedupKey:
    name = record.name.strip()
    description = record.description.strip()
    return name, description[:DESCRIPTION_KEY_LENGTH]


class DedupLedger:
    """Set of identity keys for every record accepted so far.

    Overlapping batches re-feed paragraphs, so the same person is routinely
    extracted twice; only the first sighting is kept.
    """

    def __init__(self) -> None:
        self._keys: set[DedupKey] = set()

    @classmethod
    def from_records(cls, records: Iterable[ExtractionRecord]) -> "DedupLedger":
        ledger = cls()
        ledger.filter(records)
        return ledger

    def accept(self, record: ExtractionRecord) -> bool:
        """Record ``record`` if it is valid and unseen; report whether it was."""

        name, prefix = dedup_key(record)
        if not name or not prefix:
            return False
        if (name, prefix) in self._keys:
            return False
        self._keys.add((name, prefix))
        return True

    def filter(self, candidates: Iterable[ExtractionRecord]) -> list[ExtractionRecord]:
        return [record for record in candidates if self.accept(record)]

    def clear(self) -> None:
        self._keys.clear()

    def __contains__(self, record: object) -> bool:
        if not isinstance(record, ExtractionRecord):
            return False
        return dedup_key(record) in self._keys

    def __len__(self) -> int:
        return len(self._keys)


__all__ = ["DESCRIPTION_KEY_LENGTH", "DedupLedger", "DedupKey", "dedup_key"]
