"""Paragraph-packing chunker."""

from __future__ import annotations

import re

from markdown_retrieval.config import CHUNK_MAX_CHARS, CHUNK_MIN_CHARS, SNIPPET_CHARS
from markdown_retrieval.models import ChunkSpan

_PARAGRAPH_SPLIT_RE = re.compile(r"\n\n+")
_WHITESPACE_RE = re.compile(r"\s+")


def chunk_text(
    text: str,
    *,
    min_chars: int = CHUNK_MIN_CHARS,
    max_chars: int = CHUNK_MAX_CHARS,
) -> list[ChunkSpan]:
    """Pack paragraphs into chunks of at most ``max_chars``.

    A paragraph longer than ``max_chars`` is hard-split. A chunk following one
    shorter than ``min_chars`` is folded into it, so merged chunks may exceed
    ``max_chars``.
    """
    if max_chars <= 0:
        raise ValueError("max_chars must be positive")
    if min_chars < 0:
        raise ValueError("min_chars must be non-negative")

    packed: list[str] = []
    current = ""
    for paragraph in _PARAGRAPH_SPLIT_RE.split(text):
        block = paragraph.strip()
        if not block:
            continue
        candidate = f"{current}\n\n{block}" if current else block
        if len(candidate) <= max_chars:
            current = candidate
            continue
        if current:
            packed.append(current)
        current = block
        if len(current) > max_chars:
            packed.extend(
                current[start : start + max_chars]
                for start in range(0, len(current), max_chars)
            )
            current = ""
    if current:
        packed.append(current)

    merged: list[str] = []
    for chunk in packed:
        if merged and len(merged[-1]) < min_chars:
            merged[-1] = f"{merged[-1]}\n\n{chunk}"
        else:
            merged.append(chunk)
    return [ChunkSpan(text=chunk, offset=offset) for offset, chunk in enumerate(merged)]


def make_snippet(text: str, *, limit: int = SNIPPET_CHARS) -> str:
    return _WHITESPACE_RE.sub(" ", text[:limit])
