"""JSON persistence for the TF-IDF index."""

from __future__ import annotations

import json
import math
import os
import tempfile
from pathlib import Path
from typing import Any

from markdown_retrieval.errors import MalformedIndexFile
from markdown_retrieval.models import Chunk, Index
from markdown_retrieval.telemetry import configure_logging, log_event

# Stored norms may drift from the vector by float formatting only.
_NORM_TOLERANCE = 1e-6


def write_index(index: Index, path: Path) -> Path:
    """Write ``index`` to ``path`` atomically.

    The payload goes to a temporary file in the same directory and is moved into
    place with ``os.replace``; on any failure the previous file is untouched.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(index.to_dict(), ensure_ascii=False, indent=2)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    log_event(
        configure_logging(),
        "index_written",
        path=str(path),
        chunks=len(index.chunks),
        terms=len(index.idf),
        bytes=len(payload.encode("utf-8")),
    )
    return path


def load_index(path: Path) -> Index:
    """Read and validate an index file; raises ``MalformedIndexFile``."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise MalformedIndexFile(f"Index file not found: {path}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise MalformedIndexFile(f"Index file unreadable: {path}: {exc}") from exc
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedIndexFile(f"Index file is not valid JSON: {path}: {exc}") from exc
    return index_from_dict(payload)


def index_from_dict(payload: Any) -> Index:
    if not isinstance(payload, dict):
        raise MalformedIndexFile("Index payload must be an object")
    idf_raw = payload.get("idf", {})
    chunks_raw = payload.get("chunks", [])
    if not isinstance(idf_raw, dict):
        raise MalformedIndexFile("'idf' must be an object")
    if not isinstance(chunks_raw, list):
        raise MalformedIndexFile("'chunks' must be an array")

    idf: dict[str, float] = {}
    for term, weight in idf_raw.items():
        if not _is_weight(weight) or weight < 0:
            raise MalformedIndexFile(f"Invalid idf weight for {term!r}: {weight!r}")
        idf[str(term)] = float(weight)

    chunks = tuple(_chunk_from_dict(item, pos) for pos, item in enumerate(chunks_raw))
    for chunk in chunks:
        missing = [term for term in chunk.vector if term not in idf]
        if missing:
            raise MalformedIndexFile(
                f"Chunk {chunk.id!r} uses terms without idf: {', '.join(missing[:5])}"
            )
    version = payload.get("version", 1)
    return Index(
        idf=idf,
        chunks=chunks,
        version=version if isinstance(version, int) else 1,
        built_at=str(payload.get("builtAt") or ""),
    )


def _chunk_from_dict(item: Any, pos: int) -> Chunk:
    if not isinstance(item, dict):
        raise MalformedIndexFile(f"Chunk #{pos} must be an object")
    chunk_id = item.get("id")
    if not isinstance(chunk_id, str) or not chunk_id:
        raise MalformedIndexFile(f"Chunk #{pos} has no id")

    vector: dict[str, float] = {}
    for pair in item.get("vector") or []:
        if (
            not isinstance(pair, (list, tuple))
            or len(pair) != 2
            or not isinstance(pair[0], str)
            or not _is_weight(pair[1])
        ):
            raise MalformedIndexFile(f"Chunk {chunk_id!r} has a malformed vector entry")
        if pair[1] > 0:
            vector[pair[0]] = float(pair[1])

    tags = item.get("tags") or []
    if not isinstance(tags, list):
        raise MalformedIndexFile(f"Chunk {chunk_id!r} tags must be an array")

    chunk = Chunk(
        id=chunk_id,
        href=str(item.get("href") or ""),
        rel_path=str(item.get("relPath") or chunk_id.split("#", 1)[0]),
        title=str(item.get("title") or ""),
        date=str(item.get("date") or ""),
        tags=tuple(str(tag) for tag in tags),
        snippet=str(item.get("snippet") or ""),
        vector=vector,
    )
    stored_norm = item.get("norm")
    if _is_weight(stored_norm) and not math.isclose(
        stored_norm, chunk.norm, rel_tol=_NORM_TOLERANCE
    ):
        log_event(
            configure_logging(),
            "index_norm_recomputed",
            chunk_id=chunk_id,
            stored_norm=stored_norm,
            norm=chunk.norm,
        )
    return chunk


def _is_weight(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )
