"""Split raw document text into the paragraph sequence fed to extraction."""

from __future__ import annotations

# Segments this short are bullets, page numbers or stray punctuation.
MIN_PARAGRAPH_LENGTH = 2


def split_paragraphs(text: str) -> tuple[str, ...]:
    """Split on line breaks, trim each line and drop lines of length <= 1."""

    lines = (line.strip() for line in text.split("\n"))
    return tuple(line for line in lines if len(line) >= MIN_PARAGRAPH_LENGTH)


__all__ = ["MIN_PARAGRAPH_LENGTH", "split_paragraphs"]
