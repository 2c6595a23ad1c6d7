"""Utility helpers shared across parsing components."""

from __future__ import annotations

import hashlib
import mimetypes
from collections.abc import Sequence
from pathlib import Path

_DEFAULT_CHUNK_SIZE = 1024 * 1024


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def guess_media_type(path: Path) -> str | None:
    media_type, _encoding = mimetypes.guess_type(path)
    return media_type


def sha256_path(path: Path, *, chunk_size: int = _DEFAULT_CHUNK_SIZE) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        while True:
            chunk = handle.read(chunk_size)
            if not chunk:
                break
            digest.update(chunk)
    return digest.hexdigest()


def normalize_suffixes(values: Sequence[str] | str | None) -> tuple[str, ...]:
    """Normalize file suffix tokens to lowercase dotted form, keeping first-seen order."""

    if not values:
        return ()
    if isinstance(values, str):
        values = [values]
    cleaned: list[str] = []
    for raw in values:
        token = str(raw).strip().lower()
        if not token:
            continue
        if not token.startswith("."):
            token = f".{token}"
        cleaned.append(token)
    return tuple(dict.fromkeys(cleaned))
