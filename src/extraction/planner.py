"""Batch planning: partition paragraphs into bounded, overlapping spans."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

__all__ = ["Batch", "advance_cursor", "plan_batch"]


@dataclass(frozen=True, slots=True)
class Batch:
    """Contiguous paragraph span ``[start, end)`` submitted in one call."""

    start: int
    end: int
    paragraphs: tuple[str, ...]
    char_count: int

    def __len__(self) -> int:
        return self.end - self.start

    @property
    def label(self) -> str:
        """Human-friendly 1-based inclusive bounds."""
        return f"paragraphs {self.start + 1}-{self.end}"


def plan_batch(
    paragraphs: Sequence[str],
    start: int,
    max_count: int,
    max_chars: int,
) -> Batch:
    """Greedily collect paragraphs from ``start`` while both caps allow.

    The paragraph at ``start`` is always included whole, even when it alone
    exceeds ``max_chars``; the caps only bound further accumulation.
    """

    total = len(paragraphs)
    if not 0 <= start < total:
        raise ValueError(f"Batch start {start} outside paragraph range [0, {total})")

    char_count = len(paragraphs[start])
    end = start + 1
    while end < total and (end - start) < max_count and char_count < max_chars:
        char_count += len(paragraphs[end])
        end += 1

    return Batch(
        start=start,
        end=end,
        paragraphs=tuple(paragraphs[start:end]),
        char_count=char_count,
    )


def advance_cursor(start: int, end: int, total: int, overlap: int) -> int:
    """Return the next batch start after a successful ``[start, end)`` batch.

    The tail of the batch is re-fed as context when paragraphs remain. The
    result is always greater than ``start``.
    """

    if end >= total:
        return end

    actual_overlap = max(0, min(overlap, end - start - 1))
    next_start = end - actual_overlap
    if next_start <= start:
        return end
    return next_start
